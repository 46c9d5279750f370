import datetime

import streamlit as st

import annuity
import controls
import display
import fire
import mortgage
import retirement_rules
import taxes
import utils
from app_settings import RETURN_MODES, Settings, TABS, WALK_SERIES
from tax_tables import FilingStatus, SP500_END_YEAR, SP500_START_YEAR

st.set_page_config(layout="wide", page_title="Retirement Planning Calculator")

# Apply configuration from hyperlink when available (only once per session)
if "_settings_initialized" not in st.session_state:
    controls.hydrate_settings()

controls.initialize_display()

active_tab = st.radio(
    "Calculator",
    TABS,
    horizontal=True,
    key="active_tab",
    label_visibility="collapsed",
)

st.sidebar.header(f"{active_tab} Inputs")

settings_error = st.session_state.get("_settings_error")
if settings_error:
    st.sidebar.error(f"Unable to load shared configuration: {settings_error}")

FILING_LABELS = {
    FilingStatus.SINGLE.value: "Single",
    FilingStatus.MARRIED_JOINT.value: "Married Filing Jointly",
    FilingStatus.MARRIED_SEPARATE.value: "Married Filing Separately",
    FilingStatus.HEAD_OF_HOUSEHOLD.value: "Head of Household",
}

# ------ Sidebar inputs, one block per calculator -------
#
if active_tab == "Annuity":
    st.sidebar.number_input("Lump Sum ($)", min_value=1_000.0, step=10_000.0, format="%.0f", key="annuity_lump_sum")
    st.sidebar.number_input("Age", min_value=50, max_value=90, step=1, key="annuity_age")
    st.sidebar.selectbox("Gender", options=["male", "female"], format_func=str.title, key="annuity_gender")
    st.sidebar.checkbox("Joint Life (with spouse)", key="annuity_joint_life",
                        help="Joint life payouts are about 15% lower than single life.")
    st.sidebar.selectbox("Annuity Type", options=[t.value for t in annuity.AnnuityType],
                         format_func=lambda v: annuity.ANNUITY_TYPES[annuity.AnnuityType(v)].name,
                         key="annuity_annuity_type")
    st.sidebar.slider("Comparison Withdrawal Rate (%)", min_value=0.0, max_value=10.0, step=0.25,
                      key="annuity_withdrawal_rate_pct")
    st.sidebar.slider("Comparison Portfolio Return", min_value=0.0, max_value=0.10, step=0.005,
                      format="%.3f", key="annuity_expected_return")
    with st.sidebar.expander("Sales Pitch Details", expanded=True):
        st.number_input("Commission (%)", min_value=0.0, max_value=15.0, step=0.5, key="annuity_commission_pct")
        st.number_input("Surrender Period (years)", min_value=0.0, max_value=20.0, step=1.0,
                        key="annuity_surrender_years")
        st.number_input("Annual Fees (%)", min_value=0.0, max_value=6.0, step=0.1, key="annuity_annual_fees_pct")
        st.checkbox("Held Inside an IRA", key="annuity_is_in_ira")
        st.number_input("Proposed Amount ($)", min_value=0.0, step=10_000.0, format="%.0f",
                        key="annuity_proposed_amount")
        st.number_input("Total Portfolio ($)", min_value=0.0, step=10_000.0, format="%.0f",
                        key="annuity_total_portfolio")

elif active_tab == "FIRE":
    variants = [v.value for v in fire.FireVariant]
    st.sidebar.selectbox("FIRE Variant", options=variants, format_func=str.title, key="fire_variant")
    st.sidebar.number_input("Current Age", min_value=16, max_value=80, step=1, key="fire_current_age")
    st.sidebar.number_input("Annual Income ($)", min_value=0.0, step=5_000.0, format="%.0f", key="fire_annual_income")
    st.sidebar.number_input("Annual Expenses ($)", min_value=0.0, step=5_000.0, format="%.0f",
                            key="fire_annual_expenses",
                            help=f"Typical budget for this variant: "
                                 f"{display._fmt_currency(fire.DEFAULT_EXPENSES[fire.FireVariant(st.session_state['fire_variant'])])}")
    st.sidebar.number_input("Current Savings ($)", min_value=0.0, step=10_000.0, format="%.0f",
                            key="fire_current_savings")
    st.sidebar.slider("Expected Return (%)", min_value=0.0, max_value=12.0, step=0.5, key="fire_expected_return_pct")
    st.sidebar.slider("Inflation (%)", min_value=0.0, max_value=6.0, step=0.25, key="fire_inflation_pct")
    st.sidebar.selectbox("Withdrawal Rule", options=[r.value for r in fire.WithdrawalRule],
                         format_func={"4percent": "4% Rule", "3percent": "3% Rule", "variable": "Variable"}.get,
                         key="fire_withdrawal_rule")
    with st.sidebar.expander("Adjustments"):
        st.checkbox("Include Pre-Medicare Healthcare", key="fire_include_healthcare")
        st.number_input("Healthcare Cost ($/year)", min_value=0.0, step=1_000.0, format="%.0f",
                        key="fire_healthcare_cost")
        st.number_input("Part-Time Income ($/year, Barista)", min_value=0.0, step=1_000.0, format="%.0f",
                        key="fire_part_time_income")
        st.number_input("Coast Target Age", min_value=30, max_value=80, step=1, key="fire_coast_target_age")

elif active_tab == "Mortgage":
    st.sidebar.number_input("Current Balance ($)", min_value=1_000.0, step=10_000.0, format="%.0f",
                            key="mortgage_current_balance")
    st.sidebar.number_input("Current Rate (%)", min_value=0.0, max_value=15.0, step=0.125, format="%.3f",
                            key="mortgage_current_rate")
    st.sidebar.number_input("Current Payment ($/month)", min_value=0.0, step=50.0, format="%.0f",
                            key="mortgage_current_payment")
    st.sidebar.number_input("Years Remaining", min_value=1.0, max_value=40.0, step=1.0,
                            key="mortgage_years_remaining")
    st.sidebar.number_input("New Rate (%)", min_value=0.0, max_value=15.0, step=0.125, format="%.3f",
                            key="mortgage_new_rate")
    st.sidebar.selectbox("New Term (years)", options=[15, 20, 30], key="mortgage_new_term_years")
    st.sidebar.number_input("Closing Costs ($)", min_value=0.0, step=500.0, format="%.0f",
                            key="mortgage_closing_costs")
    st.sidebar.number_input("Extra Payment ($/month)", min_value=0.0, step=50.0, format="%.0f",
                            key="mortgage_extra_monthly_payment")
    with st.sidebar.expander("Cash-Out and Points"):
        st.checkbox("Cash-Out Refinance", key="mortgage_use_cash_out")
        st.number_input("Cash-Out Amount ($)", min_value=0.0, step=5_000.0, format="%.0f",
                        key="mortgage_cash_out_amount")
        st.number_input("Rate on Debt Being Paid Off (%)", min_value=0.0, max_value=36.0, step=0.5,
                        key="mortgage_cash_out_debt_rate")
        st.checkbox("Buy Points", key="mortgage_use_points")
        st.number_input("Points Cost ($)", min_value=0.0, step=500.0, format="%.0f", key="mortgage_points_cost")
        st.number_input("Rate Reduction (%)", min_value=0.0, max_value=2.0, step=0.125, format="%.3f",
                        key="mortgage_points_rate_reduction")

elif active_tab == "Taxes":
    st.sidebar.number_input("Gross Income ($)", min_value=0.0, step=5_000.0, format="%.0f", key="tax_gross_income")
    st.sidebar.selectbox("Filing Status", options=list(FILING_LABELS), format_func=FILING_LABELS.get,
                         key="tax_filing_status")
    st.sidebar.number_input("Long-Term Capital Gains ($)", min_value=0.0, step=1_000.0, format="%.0f",
                            key="tax_long_term_gains")
    st.sidebar.number_input("Net Investment Income ($)", min_value=0.0, step=1_000.0, format="%.0f",
                            key="tax_net_investment_income")
    st.sidebar.selectbox("Bracket to Fill (Roth conversions)", options=[0.12, 0.22, 0.24, 0.32],
                         format_func=lambda r: f"{r:.0%}", key="tax_target_bracket_rate")

elif active_tab == "RMD & Estate":
    st.sidebar.number_input("Tax-Deferred Balance ($)", min_value=0.0, step=50_000.0, format="%.0f",
                            key="rmd_balance")
    st.sidebar.number_input("Age", min_value=50, max_value=110, step=1, key="rmd_age")
    has_spouse = st.sidebar.checkbox(
        "Spouse Is Sole Beneficiary",
        value=st.session_state.get("rmd_spouse_age") is not None,
        key="_rmd_has_spouse",
        help="A spouse 10 or more years younger uses the smaller Joint Life divisors.",
    )
    if has_spouse:
        spouse_age = st.sidebar.number_input(
            "Spouse Age",
            value=controls.get_int_state("rmd_spouse_age", controls.get_int_state("rmd_age", 73) - 10),
            min_value=18,
            max_value=110,
            step=1,
        )
        st.session_state["rmd_spouse_age"] = int(spouse_age)
    else:
        st.session_state["rmd_spouse_age"] = None
    st.sidebar.slider("Growth (%)", min_value=0.0, max_value=12.0, step=0.5, key="rmd_growth_pct")
    st.sidebar.slider("Tax Rate on RMDs (%)", min_value=0.0, max_value=50.0, step=1.0, key="rmd_tax_rate_pct")
    with st.sidebar.expander("Estate"):
        st.number_input("Estate Value ($)", min_value=0.0, step=500_000.0, format="%.0f", key="rmd_estate_value")
        st.number_input("Year of Death", min_value=2026, max_value=2100, step=1, key="rmd_estate_year")
        st.checkbox("Married (portability)", key="rmd_married")

elif active_tab == "Projection":
    st.sidebar.number_input("Current Age", min_value=18, max_value=90, step=1, key="projection_current_age")
    st.sidebar.number_input("Retirement Age", min_value=19, max_value=95, step=1, key="projection_retirement_age")
    st.sidebar.number_input("Life Expectancy", min_value=50, max_value=110, step=1, key="projection_life_expectancy")
    st.sidebar.number_input("Current Balance ($)", min_value=0.0, step=25_000.0, format="%.0f",
                            key="projection_starting_balance")
    st.sidebar.number_input("Annual Contribution ($)", min_value=0.0, step=1_000.0, format="%.0f",
                            key="projection_annual_contribution")
    st.sidebar.slider("Contribution Growth (%/year)", min_value=0.0, max_value=10.0, step=0.5,
                      key="projection_contribution_growth_pct")
    st.sidebar.slider("Withdrawal Rate (%)", min_value=0.0, max_value=10.0, step=0.1,
                      key="projection_withdrawal_rate_pct")
    st.sidebar.selectbox("Returns", options=RETURN_MODES, format_func=str.title, key="projection_return_mode",
                         help="Fixed uses one assumed return every year. Historical replays S&P 500 years in order "
                              "from the start year. Random draws years from history at random.")
    st.sidebar.slider("Fixed Nominal Return (%)", min_value=0.0, max_value=15.0, step=0.1,
                      key="projection_nominal_return_pct",
                      disabled=st.session_state.get("projection_return_mode") != "fixed")
    st.sidebar.slider("Inflation (%)", min_value=0.0, max_value=8.0, step=0.1, key="projection_inflation_pct")
    st.sidebar.selectbox("Return Series", options=WALK_SERIES, format_func=str.title, key="projection_walk_series",
                         disabled=st.session_state.get("projection_return_mode") == "fixed")
    st.sidebar.number_input("Historical Start Year", min_value=SP500_START_YEAR, max_value=SP500_END_YEAR, step=1,
                            key="projection_historical_start_year",
                            disabled=st.session_state.get("projection_return_mode") != "historical")
    with st.sidebar.expander("Income and Taxes"):
        st.selectbox("Filing Status", options=list(FILING_LABELS), format_func=FILING_LABELS.get,
                     key="projection_filing_status")
        st.number_input("Average Indexed Earnings for Social Security ($/year, 0 = none)", min_value=0.0,
                        step=5_000.0, format="%.0f", key="projection_social_security_earnings")
        st.number_input("Social Security Claim Age", min_value=62, max_value=70, step=1,
                        key="projection_social_security_claim_age")
    with st.sidebar.expander("Simulation"):
        st.number_input("Paths", min_value=100, max_value=10_000, step=100, key="projection_n_runs")
        st.number_input("Seed", min_value=0, step=1, key="projection_seed")
        st.slider("Guardrail Spending Cut", min_value=0.0, max_value=0.5, step=0.01,
                  key="projection_spending_reduction")

# Build Settings object representing the full control state
try:
    settings = Settings.from_session_state(st.session_state)
except ValueError as exc:
    st.error(f"Invalid inputs: {exc}")
    st.stop()

st.session_state["settings"] = settings
encoded_config = settings.to_base64()
share_link_url = f"?config={encoded_config}"

# ------ Main Program Logic -------
#
if active_tab == "Annuity":
    cfg = settings.annuity
    quote = annuity.estimate_spia(cfg.lump_sum, cfg.age, cfg.gender, cfg.joint_life)
    comparison = annuity.simulate_withdrawal(cfg.lump_sum, cfg.withdrawal_rate_pct, cfg.age, cfg.expected_return)
    flags = annuity.check_red_flags(
        commission_pct=cfg.commission_pct,
        surrender_years=cfg.surrender_years,
        annual_fees_pct=cfg.annual_fees_pct,
        is_in_ira=cfg.is_in_ira,
        proposed_amount=cfg.proposed_amount,
        total_portfolio=cfg.total_portfolio,
    )
    display.render_annuity_results(quote, comparison, flags, cfg.annuity_type)

elif active_tab == "FIRE":
    result = fire.calculate_fire_results(settings.fire, today=datetime.date.today())
    display.render_fire_results(result)
    if result.savings_rate > 0:
        st.caption(
            f"Rule of thumb: a {result.savings_rate:.0f}% savings rate reaches financial independence in about "
            f"{fire.years_to_fi_for_savings_rate(result.savings_rate):.1f} years starting from zero."
        )

elif active_tab == "Mortgage":
    analysis = mortgage.analyze_refinance(settings.mortgage)
    display.render_mortgage_results(analysis, settings.mortgage.current_payment)

elif active_tab == "Taxes":
    cfg = settings.tax
    calc = taxes.calculate_income_tax(cfg.gross_income, cfg.filing_status, cfg.tax_year)
    magi = cfg.gross_income + cfg.long_term_gains
    try:
        headroom = taxes.bracket_headroom(calc.taxable_income, cfg.target_bracket_rate, cfg.filing_status,
                                          cfg.tax_year)
    except ValueError as exc:
        st.warning(str(exc))
        headroom = None
    display.render_tax_results(
        calc,
        ltcg_tax=taxes.calculate_ltcg_tax(cfg.long_term_gains, calc.taxable_income, cfg.filing_status, cfg.tax_year),
        niit=taxes.calculate_niit(cfg.net_investment_income, magi, cfg.filing_status, cfg.tax_year),
        headroom=headroom,
        target_rate=cfg.target_bracket_rate,
        zero_ltcg_room=taxes.zero_ltcg_headroom(calc.taxable_income, cfg.filing_status, cfg.tax_year),
        irmaa=taxes.irmaa_surcharge(magi, cfg.filing_status),
    )

elif active_tab == "RMD & Estate":
    cfg = settings.rmd
    schedule = retirement_rules.rmd_schedule(
        cfg.balance, cfg.age, cfg.growth_pct, cfg.tax_rate_pct, spouse_age=cfg.spouse_age
    )
    display.render_rmd_results(
        schedule,
        first_rmd=retirement_rules.required_minimum_distribution(cfg.balance, cfg.age, cfg.spouse_age),
        estate_exemption=retirement_rules.estate_exemption(cfg.estate_year, cfg.married),
        estate_tax=retirement_rules.estate_tax(cfg.estate_value, cfg.estate_year, cfg.married),
    )

elif active_tab == "Projection":
    signature = settings.projection_signature()
    last_run_signature = st.session_state.get("last_run_signature")
    dirty = last_run_signature is not None and last_run_signature != signature

    if st.sidebar.button("Run Simulation", help="Run the Monte Carlo projection with the selected parameters."):
        status_ph = st.empty()
        progress = status_ph.progress(0, text="Simulating... 0%")
        state = {"pct": 0, "status": None}

        def render_progress():
            label = f"Simulating... {state['pct']}%"
            if state["status"]:
                label = f"{label} ({state['status']})"
            progress.progress(state["pct"], text=label)

        def on_progress(current, total):
            pct = int(current * 100 / total) if total else 0
            if pct != state["pct"]:
                state["pct"] = pct
                render_progress()

        def on_status(msg):
            state["status"] = msg
            render_progress()

        summary = utils.run_monte_carlo(
            settings.projection,
            verbose=True,
            on_progress=on_progress,
            on_status=on_status,
        )
        guardrails = utils.analyze_guardrails(summary.all_runs, settings.projection.spending_reduction)

        # Cache results in session state for re-render without recomputation
        st.session_state["projection_summary"] = (summary, guardrails)
        st.session_state["last_run_signature"] = signature
        dirty = False
        status_ph.empty()

    cached = st.session_state.get("projection_summary")
    if cached:
        if dirty:
            controls.render_dirty_banner()
        summary, guardrails = cached
        display.render_projection_results(summary, guardrails, retirement_age=settings.projection.retirement_age)
    else:
        st.subheader("Monte Carlo Projection")
        st.markdown("Simulates thousands of market paths from today through retirement. "
                    "All dollar amounts are in real (today's) dollars.")
        st.info("Adjust parameters in the sidebar and click 'Run Simulation' to start.")

st.divider()
st.markdown(f"[Shareable link to these inputs]({share_link_url})")
st.caption("Copy the link to load these settings on any device.")
