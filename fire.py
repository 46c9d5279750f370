from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd

from tax_tables import MEDICARE_AGE, PRE_MEDICARE_HEALTHCARE_COST

MAX_FIRE_YEARS = 100.0
SEARCH_PRECISION = 0.1
MAX_PROJECTION_YEARS = 50
PROJECTION_BUFFER_YEARS = 5
DEFAULT_PART_TIME_INCOME = 20_000.0


class FireVariant(str, Enum):
    LEAN = "lean"
    REGULAR = "regular"
    FAT = "fat"
    BARISTA = "barista"
    COAST = "coast"


class WithdrawalRule(str, Enum):
    FOUR_PERCENT = "4percent"
    THREE_PERCENT = "3percent"
    VARIABLE = "variable"


DEFAULT_EXPENSES = {
    FireVariant.LEAN: 40_000.0,
    FireVariant.REGULAR: 60_000.0,
    FireVariant.FAT: 100_000.0,
    FireVariant.BARISTA: 50_000.0,
    FireVariant.COAST: 60_000.0,
}

# Years to financial independence from zero net worth, 5% real return, 4% rule
SAVINGS_RATE_TABLE = (
    (10, 51.4), (20, 36.7), (30, 28.0), (40, 21.6), (50, 16.6),
    (60, 12.4), (70, 8.8), (75, 7.1), (80, 5.6), (90, 2.7),
)


@dataclass
class FireInputs:
    current_age: int = 30
    annual_income: float = 100_000.0
    annual_expenses: float = 60_000.0
    current_savings: float = 100_000.0
    expected_return_pct: float = 7.0
    inflation_pct: float = 3.0
    variant: FireVariant = FireVariant.REGULAR
    withdrawal_rule: WithdrawalRule = WithdrawalRule.FOUR_PERCENT
    include_healthcare: bool = True
    healthcare_cost: float = PRE_MEDICARE_HEALTHCARE_COST
    part_time_income: float = DEFAULT_PART_TIME_INCOME
    coast_target_age: int = 65


@dataclass(frozen=True)
class FireResult:
    fire_number: float
    adjusted_expenses: float
    annual_savings: float
    savings_rate: float
    real_return: float
    years_to_fire: float
    fire_age: float
    fire_year: Optional[int]
    # Undiscounted target at the coast age; set only for Coast FIRE
    retirement_fire_number: Optional[float]
    safe_withdrawal_rate: float
    annual_withdrawal: float
    monthly_expenses: float
    current_progress: float
    years_until_medicare: float
    projections: pd.DataFrame


def rule_multiplier(rule) -> float:
    rule = WithdrawalRule(rule)
    if rule == WithdrawalRule.THREE_PERCENT:
        return 33.33
    return 25.0


def safe_withdrawal_rate(rule) -> float:
    return 3.0 if WithdrawalRule(rule) == WithdrawalRule.THREE_PERCENT else 4.0


def fire_number(annual_expenses: float, rule=WithdrawalRule.FOUR_PERCENT) -> float:
    return annual_expenses * rule_multiplier(rule)


def coast_fire_number(target_fire_number: float, real_return_pct: float, years_to_coast: float) -> float:
    """Amount needed today so that growth alone reaches the target by the coast age."""
    r = real_return_pct / 100
    return target_fire_number / (1 + r) ** years_to_coast


def future_value(current: float, annual_savings: float, real_return_pct: float, years: float) -> float:
    r = real_return_pct / 100
    if r == 0:
        return current + annual_savings * years
    growth = (1 + r) ** years
    return current * growth + annual_savings * (growth - 1) / r


def years_to_fire(current: float, annual_savings: float, target: float, real_return_pct: float,
                  verbose=False) -> float:
    """
    Years until ``current`` plus yearly savings reaches ``target``.

    Binary search over 0-100 years down to a 0.1 year window; the midpoint of
    that window is rounded up to the next tenth. Returns 0 when already funded
    and ``inf`` when nothing is being saved.
    """
    if current >= target:
        return 0.0
    if annual_savings <= 0:
        return math.inf

    low, high = 0.0, MAX_FIRE_YEARS
    iterations = 0
    while high - low > SEARCH_PRECISION:
        mid = (low + high) / 2
        if future_value(current, annual_savings, real_return_pct, mid) < target:
            low = mid
        else:
            high = mid
        iterations += 1

    result = math.ceil((low + high) / 2 * 10) / 10
    if verbose:
        print(f"Solved years to FIRE in {iterations} iterations: {result:.1f} years")
    return result


def years_to_fi_for_savings_rate(savings_rate_pct: float) -> float:
    """Rule-of-thumb years to FI for a savings rate, interpolated from the reference table."""
    rates = [row[0] for row in SAVINGS_RATE_TABLE]
    years = [row[1] for row in SAVINGS_RATE_TABLE]
    # np.interp clamps outside the table
    return float(np.interp(savings_rate_pct, rates, years))


def project_balances(current: float, annual_savings: float, real_return_pct: float,
                     current_age: int, horizon_years: float, start_year: Optional[int] = None) -> pd.DataFrame:
    """Year-by-year balances, starting with today's balance and capped at 50 years."""
    if start_year is None:
        start_year = dt.date.today().year
    r = real_return_pct / 100
    rows = []
    balance = float(current)
    year = 0
    while year <= horizon_years and year <= MAX_PROJECTION_YEARS:
        rows.append({"Year": start_year + year, "Age": current_age + year, "Balance": round(balance)})
        balance = balance * (1 + r) + annual_savings
        year += 1
    return pd.DataFrame(rows, columns=["Year", "Age", "Balance"])


def adjusted_expenses(inputs: FireInputs) -> float:
    expenses = inputs.annual_expenses
    if inputs.include_healthcare and inputs.current_age < MEDICARE_AGE:
        expenses += inputs.healthcare_cost
    if FireVariant(inputs.variant) == FireVariant.BARISTA:
        expenses = max(0.0, expenses - inputs.part_time_income)
    return expenses


def calculate_fire_results(inputs: FireInputs, today: Optional[dt.date] = None, verbose=False) -> FireResult:
    """
    Complete FIRE picture for one set of inputs.

    Parameters
    ----------
    inputs : FireInputs
        Household numbers and the chosen variant and withdrawal rule.
    today : datetime.date, optional
        Anchors the FIRE year and projection years (default today).
    verbose : bool, optional
        Print solver progress (default False).

    Returns
    -------
    FireResult
        ``years_to_fire`` is ``inf`` when nothing is saved; ``fire_year`` is
        then None and the projection covers the 50-year maximum.
    """
    today = today or dt.date.today()
    variant = FireVariant(inputs.variant)

    expenses = adjusted_expenses(inputs)
    real_return = inputs.expected_return_pct - inputs.inflation_pct
    target = fire_number(expenses, inputs.withdrawal_rule)
    full_target = None
    if variant == FireVariant.COAST:
        # Coast FIRE targets what growth alone carries to the full number by the coast age
        full_target = target
        target = coast_fire_number(full_target, real_return, inputs.coast_target_age - inputs.current_age)

    # Savings use the unadjusted budget; healthcare is a retirement cost
    savings = inputs.annual_income - inputs.annual_expenses
    savings_rate = savings / inputs.annual_income * 100 if inputs.annual_income > 0 else 0.0

    years = years_to_fire(inputs.current_savings, savings, target, real_return, verbose=verbose)
    finite = math.isfinite(years)

    horizon = math.ceil(years) + PROJECTION_BUFFER_YEARS if finite else MAX_PROJECTION_YEARS
    projections = project_balances(
        inputs.current_savings, savings, real_return, inputs.current_age, horizon, start_year=today.year
    )

    fire_age = inputs.current_age + years
    swr = safe_withdrawal_rate(inputs.withdrawal_rule)

    return FireResult(
        fire_number=target,
        adjusted_expenses=expenses,
        annual_savings=savings,
        savings_rate=savings_rate,
        real_return=real_return,
        years_to_fire=years,
        fire_age=fire_age,
        fire_year=today.year + math.ceil(years) if finite else None,
        retirement_fire_number=full_target,
        safe_withdrawal_rate=swr,
        annual_withdrawal=target * swr / 100,
        monthly_expenses=expenses / 12,
        current_progress=inputs.current_savings / target * 100 if target > 0 else 100.0,
        years_until_medicare=max(0.0, MEDICARE_AGE - fire_age),
        projections=projections,
    )
