import streamlit as st

from app_settings import Settings

STALE_COLOR = "#9a6700"  # amber


def get_int_state(key: str, default: int) -> int:
    """Integer value of a session-state key, or ``default`` when it is missing or not a number."""

    raw = st.session_state.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def initialize_display():
    """Seed every calculator widget key with its default on first load."""

    seeded = {}
    Settings().apply_to_session_state(seeded)
    for key, default in seeded.items():
        # Re-assigning keeps values of widgets on hidden tabs from being dropped
        st.session_state[key] = st.session_state[key] if key in st.session_state else default
    st.session_state.setdefault("projection_summary", None)


def render_dirty_banner():
    """Warn that the projection shown was run with different inputs."""

    st.markdown(
        f"""
        <div style="
            padding: 0.6rem 1rem;
            margin-bottom: 0.75rem;
            border-left: 4px solid {STALE_COLOR};
            background: rgba(154,103,0,0.08);
            color: {STALE_COLOR};
            font-weight: 600;">
            Projection inputs changed since the last run. Click 'Run Simulation' to refresh.
        </div>
        """,
        unsafe_allow_html=True,
    )


def hydrate_settings():
    """Apply a ``?config=`` share link to the session, recording any decode error."""

    params = st.query_params
    payload = params.get("config") if params is not None else None
    if payload:
        try:
            shared = Settings.from_base64(payload)
        except (TypeError, ValueError) as exc:
            st.session_state["_settings_error"] = str(exc)
        else:
            shared.apply_to_session_state(st.session_state)
            st.session_state["settings"] = shared
            st.session_state["_settings_loaded_from_query"] = True
    st.session_state["_settings_initialized"] = True
