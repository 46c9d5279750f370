from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

MAX_PAYOFF_MONTHS = 360
MAX_BREAKEVEN_MONTHS = 60
QUICK_PAYBACK_MONTHS = 24
MIN_RATE_REDUCTION = 0.5
CASH_OUT_HORIZON_YEARS = 10


class TermVerdict(str, Enum):
    SHORTER = "shorter"
    LONGER = "longer"
    SAME = "same"


TERM_MESSAGES = {
    TermVerdict.SHORTER: "Higher payment but significant interest savings. Great if you can afford it!",
    TermVerdict.LONGER: "Lower payment but extends your timeline. Usually not recommended unless you need cash flow relief.",
    TermVerdict.SAME: "Similar timeline with lower payment. Good balance of savings and cash flow.",
}


@dataclass
class RefinanceInputs:
    current_balance: float = 300_000.0
    current_rate: float = 6.5
    current_payment: float = 1_896.0
    years_remaining: float = 25.0
    new_rate: float = 5.5
    new_term_years: int = 30
    closing_costs: float = 6_000.0
    use_cash_out: bool = False
    cash_out_amount: float = 50_000.0
    cash_out_debt_rate: float = 18.0
    use_points: bool = False
    points_cost: float = 3_000.0
    points_rate_reduction: float = 0.25
    extra_monthly_payment: float = 200.0


@dataclass(frozen=True)
class Breakeven:
    monthly_savings: float
    total_costs: float
    months: float
    years: float


@dataclass(frozen=True)
class ExtraPaymentSavings:
    extra_payment: float
    original_payoff_months: float
    new_payoff_months: float
    months_saved: float
    interest_saved: float


@dataclass(frozen=True)
class RefinanceAnalysis:
    effective_rate: float
    new_balance: float
    new_payment: float
    monthly_savings: float
    breakeven: Breakeven
    current_total_interest: float
    new_total_interest: float
    interest_savings: float
    term_verdict: TermVerdict
    term_message: str
    term_difference_months: float
    cash_out_benefit: Optional[float]
    points_breakeven_months: Optional[float]
    extra_payment: ExtraPaymentSavings
    should_refinance: bool
    reason: str


def monthly_payment(principal: float, annual_rate_pct: float, term_years: float) -> float:
    """Level payment that amortizes ``principal`` over ``term_years``."""
    if principal <= 0:
        return 0.0
    months = term_years * 12
    if months <= 0:
        return float(principal)
    if annual_rate_pct <= 0:
        return principal / months
    r = annual_rate_pct / 100 / 12
    growth = (1 + r) ** months
    return principal * r * growth / (growth - 1)


def total_interest(principal: float, annual_rate_pct: float, term_years: float) -> float:
    payment = monthly_payment(principal, annual_rate_pct, term_years)
    return payment * term_years * 12 - principal


def calculate_breakeven(current_payment: float, new_payment: float, closing_costs: float,
                        points_cost: float = 0.0) -> Breakeven:
    """Months until monthly savings repay the up-front costs, rounded up; ``inf`` with no savings."""
    savings = current_payment - new_payment
    costs = closing_costs + points_cost
    if savings <= 0:
        return Breakeven(savings, costs, math.inf, math.inf)
    months = math.ceil(costs / savings)
    return Breakeven(savings, costs, months, months / 12)


def payoff_months_with_extra(balance: float, annual_rate_pct: float, payment: float, extra: float = 0.0) -> float:
    """Months to pay off ``balance`` with ``extra`` added to every payment, capped at 30 years."""
    if balance <= 0:
        return 0
    if payment + extra <= 0:
        return math.inf
    r = annual_rate_pct / 100 / 12
    remaining = float(balance)
    months = 0
    while remaining > 0 and months < MAX_PAYOFF_MONTHS:
        remaining = remaining + remaining * r - (payment + extra)
        months += 1
    return months


def remaining_interest(balance: float, payment: float, months: float) -> float:
    """Interest left on a loan paid at ``payment`` for ``months`` more months."""
    return payment * months - balance


def _interest_paid(balance: float, annual_rate_pct: float, payment: float) -> float:
    r = annual_rate_pct / 100 / 12
    remaining = float(balance)
    interest = 0.0
    months = 0
    while remaining > 0 and months < MAX_PAYOFF_MONTHS:
        month_interest = remaining * r
        interest += month_interest
        remaining -= payment - month_interest
        months += 1
    return interest


def extra_payment_savings(balance: float, annual_rate_pct: float, payment: float, years_remaining: float,
                          extra: float) -> ExtraPaymentSavings:
    """
    Effect of adding ``extra`` to every payment on an existing loan.

    The baseline is the loan as it stands: ``years_remaining`` more years at the
    stated ``payment``.
    """
    base_months = years_remaining * 12
    base_interest = remaining_interest(balance, payment, base_months)
    new_months = payoff_months_with_extra(balance, annual_rate_pct, payment, extra)
    new_interest = _interest_paid(balance, annual_rate_pct, payment + extra)
    return ExtraPaymentSavings(
        extra_payment=extra,
        original_payoff_months=base_months,
        new_payoff_months=new_months,
        months_saved=base_months - new_months,
        interest_saved=base_interest - new_interest,
    )


def term_analysis(new_term_years: float, years_remaining: float):
    diff = new_term_years * 12 - years_remaining * 12
    if diff < -12:
        verdict = TermVerdict.SHORTER
    elif diff > 12:
        verdict = TermVerdict.LONGER
    else:
        verdict = TermVerdict.SAME
    return verdict, TERM_MESSAGES[verdict], diff


def recommend(breakeven: Breakeven, interest_savings: float, verdict: TermVerdict, new_rate: float,
              current_rate: float, use_cash_out: bool):
    """Return ``(should_refinance, reason)``; the first failing rule wins."""
    if math.isinf(breakeven.months):
        return False, "The new payment is higher than your current payment."
    if breakeven.months > MAX_BREAKEVEN_MONTHS:
        return False, (f"It takes {math.ceil(breakeven.years)} years to break even. "
                       f"Consider if you'll stay that long.")
    if interest_savings < 0 and verdict != TermVerdict.SHORTER:
        return False, "You'll pay more total interest with this refinance."
    if new_rate >= current_rate - MIN_RATE_REDUCTION and not use_cash_out:
        return False, "Rate reduction is less than 0.5%. May not be worth the hassle."
    if breakeven.months <= QUICK_PAYBACK_MONTHS:
        return True, f"Quick payback in {breakeven.months} months. Strong candidate for refinancing!"
    return True, f"Break even in {math.ceil(breakeven.years)} years. Good option if you plan to stay."


def analyze_refinance(inputs: RefinanceInputs, verbose=False) -> RefinanceAnalysis:
    """
    Compare keeping the current mortgage with refinancing.

    Points lower the rate by ``points_rate_reduction`` (never below zero) and
    count toward breakeven costs. Cash-out adds to the new balance. Interest left
    on the current loan uses the stated payment over the years remaining, and
    the extra-payment figures apply to the current loan as well.
    """
    effective_rate = inputs.new_rate
    if inputs.use_points:
        effective_rate = max(0.0, inputs.new_rate - inputs.points_rate_reduction)
    new_balance = inputs.current_balance
    if inputs.use_cash_out:
        new_balance += inputs.cash_out_amount

    new_payment = monthly_payment(new_balance, effective_rate, inputs.new_term_years)
    points_cost = inputs.points_cost if inputs.use_points else 0.0
    breakeven = calculate_breakeven(inputs.current_payment, new_payment, inputs.closing_costs, points_cost)

    current_interest = remaining_interest(inputs.current_balance, inputs.current_payment, inputs.years_remaining * 12)
    new_interest = total_interest(new_balance, effective_rate, inputs.new_term_years)
    interest_savings = current_interest - new_interest

    verdict, message, diff = term_analysis(inputs.new_term_years, inputs.years_remaining)

    cash_out_benefit = None
    if inputs.use_cash_out:
        cash_out_benefit = (
            inputs.cash_out_amount * inputs.cash_out_debt_rate / 100
            - inputs.cash_out_amount * effective_rate / 100
        ) * CASH_OUT_HORIZON_YEARS

    points_breakeven = None
    if inputs.use_points:
        without_points = monthly_payment(new_balance, inputs.new_rate, inputs.new_term_years)
        points_savings = without_points - new_payment
        points_breakeven = inputs.points_cost / points_savings if points_savings > 0 else math.inf

    # Extra payments are the alternative to refinancing, so they apply to the current loan
    extra = extra_payment_savings(inputs.current_balance, inputs.current_rate, inputs.current_payment,
                                  inputs.years_remaining, inputs.extra_monthly_payment)

    should, reason = recommend(
        breakeven, interest_savings, verdict, inputs.new_rate, inputs.current_rate, inputs.use_cash_out
    )
    if verbose:
        print(f"Refinance at {effective_rate:.3f}%: payment ${new_payment:,.0f}, "
              f"breakeven {breakeven.months} months, recommended={should}")

    return RefinanceAnalysis(
        effective_rate=effective_rate,
        new_balance=new_balance,
        new_payment=new_payment,
        monthly_savings=breakeven.monthly_savings,
        breakeven=breakeven,
        current_total_interest=current_interest,
        new_total_interest=new_interest,
        interest_savings=interest_savings,
        term_verdict=verdict,
        term_message=message,
        term_difference_months=diff,
        cash_out_benefit=cash_out_benefit,
        points_breakeven_months=points_breakeven,
        extra_payment=extra,
        should_refinance=should,
        reason=reason,
    )
