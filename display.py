import streamlit as st
import pandas as pd
import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots
import math
from typing import List, Optional

from annuity import ANNUITY_TYPES, AnnuityType, RedFlag, SPIAQuote, Severity, WithdrawalComparison
from fire import FireResult
from mortgage import RefinanceAnalysis
from taxes import IrmaaResult, TaxBracketCalculation

SEVERITY_COLORS = {
    Severity.CRITICAL: "#d62728",
    Severity.WARNING: "#ff7f0e",
    Severity.INFO: "#1f77b4",
}
BAND_COLOR = "31, 119, 180"


def _fmt_currency(value, escape_for_markdown: bool = False) -> str:
    """Format a currency value with optional Markdown escaping."""
    if value is None or (isinstance(value, float) and (pd.isna(value) or not np.isfinite(value))):
        return "N/A"
    prefix = "\\$" if escape_for_markdown else "$"
    if value < 0:
        return f"-{prefix}{abs(value):,.0f}"
    return f"{prefix}{value:,.0f}"


def _fmt_pct(value, decimals: int = 1, fraction: bool = False) -> str:
    """Format a percentage; pass ``fraction=True`` for values like 0.22."""
    if value is None or pd.isna(value) or not np.isfinite(value):
        return "N/A"
    if fraction:
        value = value * 100
    return f"{value:.{decimals}f}%"


def _fmt_years(value, never: str = "Never") -> str:
    """Format a duration in years, treating None and infinity as ``never``."""
    if value is None or (isinstance(value, float) and math.isinf(value)):
        return never
    return f"{value:.1f} years"


def render_annuity_results(quote: SPIAQuote, comparison: WithdrawalComparison, flags: List[RedFlag],
                           annuity_type: str):
    """Compare a SPIA quote with self-managed withdrawals and list red flags in the pitch."""

    info = ANNUITY_TYPES[AnnuityType(annuity_type)]
    st.subheader(info.name)
    st.markdown(f"**Verdict: {info.verdict}.** {info.description}")
    pros_col, cons_col = st.columns(2)
    pros_col.markdown("**Pros**\n\n" + "\n".join(f"- {p}" for p in info.pros))
    cons_col.markdown("**Cons**\n\n" + "\n".join(f"- {c}" for c in info.cons))

    rows = [
        {
            "Metric": "Monthly Income",
            "Annuity": _fmt_currency(quote.monthly_income),
            "Withdrawals": _fmt_currency(comparison.monthly_income),
        },
        {
            "Metric": "Annual Income",
            "Annuity": _fmt_currency(quote.annual_income),
            "Withdrawals": _fmt_currency(comparison.annual_income),
        },
        {
            "Metric": "Payout / Withdrawal Rate",
            "Annuity": _fmt_pct(quote.payout_rate, 2, fraction=True),
            "Withdrawals": _fmt_pct(comparison.withdrawal_rate, 2),
        },
        {
            "Metric": "Value Left at 85",
            "Annuity": _fmt_currency(0),
            "Withdrawals": _fmt_currency(comparison.portfolio_at_85),
        },
        {
            "Metric": "Value Left at 90",
            "Annuity": _fmt_currency(0),
            "Withdrawals": _fmt_currency(comparison.portfolio_at_90),
        },
        {
            "Metric": "Value Left at 95",
            "Annuity": _fmt_currency(0),
            "Withdrawals": _fmt_currency(comparison.portfolio_at_95),
        },
    ]
    st.table(pd.DataFrame(rows).set_index("Metric"))

    depletion = comparison.years_until_depletion
    st.markdown(
        f"Break-even on the annuity at age **{quote.break_even_age:.1f}** "
        f"({_fmt_years(quote.break_even_years)}). "
        + (f"The withdrawal portfolio runs out after **{depletion} years**."
           if depletion is not None else "The withdrawal portfolio never runs out over 50 years.")
    )

    fig = go.Figure()
    ages = [85, 90, 95]
    fig.add_trace(go.Bar(
        x=ages,
        y=[quote.lifetime_value_85, quote.lifetime_value_90, quote.lifetime_value_95],
        name="Cumulative Annuity Income",
        marker_color="#1f77b4",
        hovertemplate='<b>%{fullData.name}</b>: $%{y:,.0f}<extra></extra>',
    ))
    fig.add_trace(go.Bar(
        x=ages,
        y=[comparison.portfolio_at_85, comparison.portfolio_at_90, comparison.portfolio_at_95],
        name="Remaining Portfolio",
        marker_color="#2ca02c",
        hovertemplate='<b>%{fullData.name}</b>: $%{y:,.0f}<extra></extra>',
    ))
    fig.update_layout(
        barmode="group",
        height=380,
        margin=dict(l=10, r=10, t=30, b=40),
        legend=dict(orientation='h', yanchor='top', y=-0.15, xanchor='center', x=0.5),
    )
    fig.update_xaxes(title_text="Age", type="category")
    fig.update_yaxes(tickprefix='$', tickformat=',.0f', rangemode='tozero')
    st.plotly_chart(fig, use_container_width=True, config={'scrollZoom': False})

    st.subheader("Red Flags")
    if not flags:
        st.success("No red flags found in this proposal.")
        return
    for flag in flags:
        color = SEVERITY_COLORS[flag.severity]
        st.markdown(
            f"<div style=\"border-left: 4px solid {color}; padding: 0.25rem 0.75rem; margin-bottom: 0.5rem;\">"
            f"<b>{flag.flag}</b> ({flag.severity.value})<br>{flag.description}</div>",
            unsafe_allow_html=True,
        )


def render_fire_results(result: FireResult):
    """Show the FIRE target, the time to reach it and the projected balance path."""

    cols = st.columns(4)
    cols[0].metric("FIRE Number", _fmt_currency(result.fire_number))
    cols[1].metric("Years to FIRE", _fmt_years(result.years_to_fire))
    cols[2].metric("Savings Rate", _fmt_pct(result.savings_rate))
    cols[3].metric("Progress", _fmt_pct(result.current_progress))

    rows = [
        {"Metric": "Annual Expenses (adjusted)", "Value": _fmt_currency(result.adjusted_expenses)},
        {"Metric": "Monthly Expenses", "Value": _fmt_currency(result.monthly_expenses)},
        {"Metric": "Annual Savings", "Value": _fmt_currency(result.annual_savings)},
        {"Metric": "Real Return", "Value": _fmt_pct(result.real_return)},
        {"Metric": "FIRE Age", "Value": f"{result.fire_age:.1f}" if math.isfinite(result.fire_age) else "Never"},
        {"Metric": "FIRE Year", "Value": str(result.fire_year) if result.fire_year is not None else "Never"},
        {"Metric": "Safe Withdrawal", "Value": f"{_fmt_currency(result.annual_withdrawal)} "
                                              f"({result.safe_withdrawal_rate:.0f}%)"},
    ]
    if result.retirement_fire_number is not None:
        rows.append({"Metric": "Full FIRE Number at Coast Age",
                     "Value": _fmt_currency(result.retirement_fire_number)})
    st.table(pd.DataFrame(rows).set_index("Metric"))

    if result.years_until_medicare > 0:
        st.info(
            f"Retiring at {result.fire_age:.0f} leaves {result.years_until_medicare:.0f} years before Medicare. "
            f"Budget for private health insurance until then."
        )

    df = result.projections
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=df["Age"],
        y=df["Balance"],
        mode="lines",
        name="Projected Balance",
        line=dict(color="#1f77b4"),
        hovertemplate='Age %{x}: $%{y:,.0f}<extra></extra>',
    ))
    fig.add_trace(go.Scatter(
        x=df["Age"],
        y=[result.fire_number] * len(df),
        mode="lines",
        name="FIRE Number",
        line=dict(color="#7f7f7f", dash="dash"),
        hovertemplate='<b>%{fullData.name}</b>: $%{y:,.0f}<extra></extra>',
    ))
    fig.update_layout(
        hovermode='x unified',
        height=420,
        margin=dict(l=10, r=10, t=30, b=40),
        legend=dict(orientation='h', yanchor='top', y=-0.15, xanchor='center', x=0.5),
    )
    fig.update_xaxes(title_text="Age")
    fig.update_yaxes(title_text="Balance (today's $)", tickprefix='$', tickformat=',.0f', rangemode='tozero')
    st.plotly_chart(fig, use_container_width=True, config={'scrollZoom': False})


def render_mortgage_results(analysis: RefinanceAnalysis, current_payment: float):
    """Summarize a refinance decision and its supporting numbers."""

    if analysis.should_refinance:
        st.success(analysis.reason)
    else:
        st.warning(analysis.reason)

    breakeven = analysis.breakeven
    rows = [
        {"Metric": "Monthly Payment", "Current": _fmt_currency(current_payment),
         "Refinance": _fmt_currency(analysis.new_payment)},
        {"Metric": "Total Interest", "Current": _fmt_currency(analysis.current_total_interest),
         "Refinance": _fmt_currency(analysis.new_total_interest)},
        {"Metric": "Interest Rate", "Current": "", "Refinance": _fmt_pct(analysis.effective_rate, 3)},
    ]
    st.table(pd.DataFrame(rows).set_index("Metric"))

    details = [
        {"Metric": "Monthly Savings", "Value": _fmt_currency(analysis.monthly_savings)},
        {"Metric": "Breakeven",
         "Value": f"{breakeven.months} months" if math.isfinite(breakeven.months) else "Never"},
        {"Metric": "Lifetime Interest Savings", "Value": _fmt_currency(analysis.interest_savings)},
        {"Metric": f"Term ({analysis.term_verdict.value})", "Value": analysis.term_message},
    ]
    if analysis.cash_out_benefit is not None:
        details.append({"Metric": "Cash-Out Interest Benefit (10 yrs)",
                        "Value": _fmt_currency(analysis.cash_out_benefit)})
    if analysis.points_breakeven_months is not None:
        points = analysis.points_breakeven_months
        details.append({"Metric": "Points Breakeven",
                        "Value": f"{points:.0f} months" if math.isfinite(points) else "Never"})
    extra = analysis.extra_payment
    details.append({
        "Metric": f"Instead: Extra {_fmt_currency(extra.extra_payment)}/month on Current Loan",
        "Value": f"Saves {extra.months_saved:.0f} months and {_fmt_currency(extra.interest_saved)} interest",
    })
    st.table(pd.DataFrame(details).set_index("Metric"))

    if math.isfinite(breakeven.months):
        months = np.arange(0, int(max(breakeven.months * 2, 24)) + 1)
        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=months,
            y=months * breakeven.monthly_savings - breakeven.total_costs,
            mode="lines",
            name="Net Savings",
            line=dict(color="#2ca02c"),
            hovertemplate='Month %{x}: $%{y:,.0f}<extra></extra>',
        ))
        fig.add_hline(y=0, line=dict(color="#7f7f7f", dash="dot"))
        fig.update_layout(height=320, margin=dict(l=10, r=10, t=30, b=40), showlegend=False)
        fig.update_xaxes(title_text="Months After Refinance")
        fig.update_yaxes(tickprefix='$', tickformat=',.0f')
        st.plotly_chart(fig, use_container_width=True, config={'scrollZoom': False})


def render_tax_results(calc: TaxBracketCalculation, ltcg_tax: float, niit: float, headroom: float,
                       target_rate: float, zero_ltcg_room: float, irmaa: IrmaaResult):
    """Bracket-by-bracket breakdown with the totals and planning headroom."""

    cols = st.columns(4)
    cols[0].metric("Federal Income Tax", _fmt_currency(calc.total_tax))
    cols[1].metric("Effective Rate", _fmt_pct(calc.effective_rate, 2, fraction=True))
    cols[2].metric("Marginal Rate", _fmt_pct(calc.marginal_rate, 0, fraction=True))
    cols[3].metric("Taxable Income", _fmt_currency(calc.taxable_income))

    df = calc.to_frame()
    table = pd.DataFrame({
        "Rate": df["Rate"].map(lambda r: _fmt_pct(r, 0, fraction=True)),
        "Range": [
            f"{_fmt_currency(lo)} - {_fmt_currency(hi) if np.isfinite(hi) else 'and up'}"
            for lo, hi in zip(df["Lower"], df["Upper"])
        ],
        "Income Taxed": df["Amount_In_Bracket"].map(_fmt_currency),
        "Tax": df["Tax_Paid"].map(_fmt_currency),
    })
    st.table(table.set_index("Rate"))

    fig = go.Figure(go.Bar(
        x=[_fmt_pct(r, 0, fraction=True) for r in df["Rate"]],
        y=df["Amount_In_Bracket"],
        marker_color="#1f77b4",
        customdata=df["Tax_Paid"],
        hovertemplate='%{x}: $%{y:,.0f} taxed, $%{customdata:,.0f} tax<extra></extra>',
    ))
    fig.update_layout(height=320, margin=dict(l=10, r=10, t=30, b=40))
    fig.update_yaxes(title_text="Income in Bracket", tickprefix='$', tickformat=',.0f')
    st.plotly_chart(fig, use_container_width=True, config={'scrollZoom': False})

    rows = [
        {"Metric": "Long-Term Capital Gains Tax", "Value": _fmt_currency(ltcg_tax)},
        {"Metric": "Net Investment Income Tax", "Value": _fmt_currency(niit)},
        {"Metric": f"Room Left in {target_rate:.0%} Bracket", "Value": _fmt_currency(headroom)},
        {"Metric": "Room for 0% Capital Gains", "Value": _fmt_currency(zero_ltcg_room)},
        {"Metric": "Medicare IRMAA Surcharge", "Value": f"{_fmt_currency(irmaa.monthly_surcharge)}/month "
                                                      f"(tier {irmaa.tier})"},
    ]
    st.table(pd.DataFrame(rows).set_index("Metric"))


def render_rmd_results(schedule: pd.DataFrame, first_rmd: float, estate_exemption: float, estate_tax: float):
    """RMD schedule chart plus the estate tax summary."""

    cols = st.columns(3)
    cols[0].metric("RMD This Year", _fmt_currency(first_rmd))
    cols[1].metric("Estate Exemption", _fmt_currency(estate_exemption))
    cols[2].metric("Estimated Estate Tax", _fmt_currency(estate_tax))

    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Bar(x=schedule["Age"], y=schedule["RMD"], name="RMD", marker_color="#ff7f0e",
               hovertemplate='Age %{x}: $%{y:,.0f}<extra></extra>'),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(x=schedule["Age"], y=schedule["Ending_Balance"], mode="lines", name="Balance",
                   line=dict(color="#1f77b4"), hovertemplate='Age %{x}: $%{y:,.0f}<extra></extra>'),
        secondary_y=True,
    )
    fig.update_layout(
        height=420,
        margin=dict(l=10, r=10, t=30, b=40),
        legend=dict(orientation='h', yanchor='top', y=-0.15, xanchor='center', x=0.5),
    )
    fig.update_xaxes(title_text="Age")
    fig.update_yaxes(title_text="RMD ($/year)", tickprefix='$', tickformat=',.0f', secondary_y=False)
    fig.update_yaxes(title_text="Account Balance", tickprefix='$', tickformat=',.0f', secondary_y=True)
    st.plotly_chart(fig, use_container_width=True, config={'scrollZoom': False})

    with st.expander("Year-by-year schedule"):
        shown = schedule.copy()
        for col in ("Beginning_Balance", "RMD", "Tax", "Ending_Balance"):
            shown[col] = shown[col].map(_fmt_currency)
        shown["Divisor"] = shown["Divisor"].map(lambda d: "" if d is None or pd.isna(d) else f"{d:.1f}")
        st.dataframe(shown.set_index("Age"), use_container_width=True)


def render_projection_results(summary, guardrails, retirement_age: Optional[int] = None):
    """Fan chart of real balances and the success and guardrail statistics."""

    bands = summary.to_frame()
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=bands["Age"], y=bands["P90"], mode="lines", line=dict(width=0),
                             showlegend=False, hoverinfo="skip"))
    fig.add_trace(go.Scatter(x=bands["Age"], y=bands["P10"], mode="lines", line=dict(width=0),
                             fill="tonexty", fillcolor=f"rgba({BAND_COLOR}, 0.15)", name="10th-90th Percentile",
                             hoverinfo="skip"))
    fig.add_trace(go.Scatter(x=bands["Age"], y=bands["P75"], mode="lines", line=dict(width=0),
                             showlegend=False, hoverinfo="skip"))
    fig.add_trace(go.Scatter(x=bands["Age"], y=bands["P25"], mode="lines", line=dict(width=0),
                             fill="tonexty", fillcolor=f"rgba({BAND_COLOR}, 0.3)", name="25th-75th Percentile",
                             hoverinfo="skip"))
    fig.add_trace(go.Scatter(x=bands["Age"], y=bands["P50"], mode="lines", name="Median",
                             line=dict(color=f"rgb({BAND_COLOR})"),
                             hovertemplate='Age %{x}: $%{y:,.0f}<extra></extra>'))
    if retirement_age is not None:
        fig.add_vline(x=retirement_age, line=dict(color="#7f7f7f", dash="dot"))
    fig.update_layout(
        hovermode='x unified',
        height=480,
        margin=dict(l=10, r=10, t=30, b=40),
        legend=dict(orientation='h', yanchor='top', y=-0.15, xanchor='center', x=0.5),
    )
    fig.update_xaxes(title_text="Age")
    fig.update_yaxes(title_text="Balance (today's $)", tickprefix='$', tickformat=',.0f', rangemode='tozero')
    st.plotly_chart(fig, use_container_width=True, config={'scrollZoom': False})

    rows = [
        {"Metric": "End-of-Life Balance", **{f"P{p}": _fmt_currency(v) for p, v in summary.eol_real_pct.items()}},
        {"Metric": "First-Year After-Tax Income",
         **{f"P{p}": _fmt_currency(v) for p, v in summary.y1_after_tax_real_pct.items()}},
    ]
    st.table(pd.DataFrame(rows).set_index("Metric"))

    cols = st.columns(3)
    cols[0].metric("Success Rate", _fmt_pct(1 - summary.prob_ruin, 1, fraction=True))
    cols[1].metric(
        f"With {guardrails.spending_reduction:.0%} Guardrail",
        _fmt_pct(guardrails.new_success_rate, 1, fraction=True),
        delta=f"{guardrails.improvement * 100:+.1f} pts",
    )
    cols[2].metric("Preventable Failures", f"{guardrails.preventable_failures} of {guardrails.total_failures}")
