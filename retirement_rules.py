from __future__ import annotations

from typing import Optional

import pandas as pd

from tax_tables import (
    ESTATE_EXEMPTION_BASE_YEAR,
    ESTATE_EXEMPTION_INDEXING,
    ESTATE_EXEMPTION_MARRIED,
    ESTATE_EXEMPTION_SINGLE,
    ESTATE_TAX_RATE,
    JOINT_LIFE_DIVISORS,
    JOINT_LIFE_MIN_AGE_GAP,
    RMD_DIVISORS,
    RMD_MAX_TABLE_AGE,
    RMD_START_AGE,
    SS_BEND_POINTS,
    SS_EARLIEST_CLAIM_AGE,
    SS_FULL_RETIREMENT_AGE,
    SS_LATEST_CLAIM_AGE,
    SS_PIA_FACTORS,
)

RMD_SCHEDULE_END_AGE = 100


def _nearest(keys, value):
    return min(sorted(keys), key=lambda k: abs(k - value))


def rmd_divisor(age: int, spouse_age: Optional[int] = None) -> Optional[float]:
    """
    Life expectancy divisor for ``age``, or None before RMDs begin.

    A sole-beneficiary spouse ten or more years younger switches to the joint
    life table, using the nearest tabulated age and age gap.
    """
    if age < RMD_START_AGE:
        return None
    if spouse_age is not None and age - spouse_age >= JOINT_LIFE_MIN_AGE_GAP:
        row = JOINT_LIFE_DIVISORS[_nearest(JOINT_LIFE_DIVISORS, age)]
        return row[_nearest(row, age - spouse_age)]
    return RMD_DIVISORS[min(int(age), RMD_MAX_TABLE_AGE)]


def required_minimum_distribution(balance: float, age: int, spouse_age: Optional[int] = None) -> float:
    divisor = rmd_divisor(age, spouse_age)
    if divisor is None or balance <= 0:
        return 0.0
    return balance / divisor


def rmd_schedule(balance: float, current_age: int, growth_pct: float = 6.0, tax_rate_pct: float = 22.0,
                 spouse_age: Optional[int] = None, end_age: int = RMD_SCHEDULE_END_AGE) -> pd.DataFrame:
    """
    Project a tax-deferred balance and its RMDs through ``end_age``.

    The balance grows for a year before every age after the first; the RMD is
    then taken and taxed at a flat ``tax_rate_pct``.
    """
    rows = []
    value = float(balance)
    for i, age in enumerate(range(int(current_age), int(end_age) + 1)):
        if i > 0:
            value *= 1 + growth_pct / 100
        spouse = spouse_age + i if spouse_age is not None else None
        divisor = rmd_divisor(age, spouse)
        rmd = required_minimum_distribution(value, age, spouse)
        rows.append({
            "Age": age,
            "Beginning_Balance": value,
            "Divisor": divisor,
            "RMD": rmd,
            "Tax": rmd * tax_rate_pct / 100,
            "Ending_Balance": value - rmd,
        })
        value -= rmd
    return pd.DataFrame(rows)


def primary_insurance_amount(aime: float) -> float:
    """Monthly benefit at full retirement age for a monthly AIME."""
    first, second = SS_BEND_POINTS
    low, mid, high = SS_PIA_FACTORS
    aime = max(0.0, float(aime))
    pia = low * min(aime, first)
    if aime > first:
        pia += mid * (min(aime, second) - first)
    if aime > second:
        pia += high * (aime - second)
    return pia


def claiming_adjustment(claim_age: float, full_retirement_age: float = SS_FULL_RETIREMENT_AGE) -> float:
    """Benefit multiplier for claiming at ``claim_age`` (clamped to 62-70)."""
    claim_age = min(max(claim_age, SS_EARLIEST_CLAIM_AGE), SS_LATEST_CLAIM_AGE)
    months = round((claim_age - full_retirement_age) * 12)
    if months >= 0:
        return 1 + months * (2 / 3) / 100
    early = -months
    reduction = min(early, 36) * (5 / 9) / 100 + max(0, early - 36) * (5 / 12) / 100
    return 1 - reduction


def social_security_benefit(average_annual_earnings: float, claim_age: float = SS_FULL_RETIREMENT_AGE) -> float:
    """Annual benefit from average indexed earnings, adjusted for claiming age."""
    pia = primary_insurance_amount(average_annual_earnings / 12)
    return pia * claiming_adjustment(claim_age) * 12


def estate_exemption(year: int, married: bool = False) -> float:
    base = ESTATE_EXEMPTION_MARRIED if married else ESTATE_EXEMPTION_SINGLE
    if year <= ESTATE_EXEMPTION_BASE_YEAR:
        return base
    return base * (1 + ESTATE_EXEMPTION_INDEXING) ** (year - ESTATE_EXEMPTION_BASE_YEAR)


def estate_tax(estate_value: float, year: int = ESTATE_EXEMPTION_BASE_YEAR, married: bool = False) -> float:
    return max(0.0, estate_value - estate_exemption(year, married)) * ESTATE_TAX_RATE
