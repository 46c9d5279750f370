from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from tax_tables import JOINT_LIFE_REDUCTION, SPIA_PAYOUT_RATES

LIFETIME_VALUE_AGES = (85, 90, 95)
MAX_SIMULATION_YEARS = 50


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AnnuityType(str, Enum):
    SPIA = "spia"
    IMMEDIATE = "immediate"
    DEFERRED = "deferred"
    VARIABLE = "variable"
    FIXED_INDEX = "fixed_index"


@dataclass(frozen=True)
class AnnuityTypeInfo:
    name: str
    verdict: str
    description: str
    pros: Tuple[str, ...]
    cons: Tuple[str, ...]


ANNUITY_TYPES: Dict[AnnuityType, AnnuityTypeInfo] = {
    AnnuityType.SPIA: AnnuityTypeInfo(
        name="Single Premium Immediate Annuity (SPIA)",
        verdict="Sometimes Useful",
        description="Trade a lump sum for guaranteed lifetime income starting right away.",
        pros=("Simple and transparent", "Longevity insurance", "Low or no fees"),
        cons=("Irreversible", "Usually no inflation adjustment", "Nothing left to heirs"),
    ),
    AnnuityType.IMMEDIATE: AnnuityTypeInfo(
        name="Immediate Annuity (period certain)",
        verdict="Compare Carefully",
        description="Income starts right away for a fixed number of years or for life with a guarantee period.",
        pros=("Predictable income", "Guarantee period protects heirs"),
        cons=("Lower payout than a pure SPIA", "Irreversible"),
    ),
    AnnuityType.DEFERRED: AnnuityTypeInfo(
        name="Deferred Annuity",
        verdict="Usually Avoid",
        description="Money grows tax-deferred and converts to income later.",
        pros=("Tax deferral outside retirement accounts",),
        cons=("Surrender charges", "Ordinary income tax on gains", "Often high commissions"),
    ),
    AnnuityType.VARIABLE: AnnuityTypeInfo(
        name="Variable Annuity",
        verdict="Almost Always Avoid",
        description="Invested in sub-accounts with optional riders layered on top.",
        pros=("Market participation", "Optional guarantees"),
        cons=("Total fees often 2-4% per year", "Complex riders", "Long surrender periods"),
    ),
    AnnuityType.FIXED_INDEX: AnnuityTypeInfo(
        name="Fixed Index Annuity",
        verdict="Avoid - Too Complex",
        description="Credits interest based on an index, subject to caps and participation rates.",
        pros=("Principal protection",),
        cons=("Caps limit upside", "Dividends excluded", "Opaque crediting formulas", "High commissions"),
    ),
}


@dataclass(frozen=True)
class SPIAQuote:
    lump_sum: float
    age: int
    gender: str
    joint_life: bool
    payout_rate: float
    annual_income: float
    monthly_income: float
    break_even_years: float
    break_even_age: float
    lifetime_value_85: float
    lifetime_value_90: float
    lifetime_value_95: float


@dataclass(frozen=True)
class WithdrawalComparison:
    withdrawal_rate: float
    monthly_income: float
    annual_income: float
    years_until_depletion: Optional[int]
    portfolio_at_85: float
    portfolio_at_90: float
    portfolio_at_95: float

    @property
    def depletes(self) -> bool:
        return self.years_until_depletion is not None


@dataclass(frozen=True)
class RedFlag:
    flag: str
    severity: Severity
    description: str


def lookup_payout_rate(age: int, gender: str = "male") -> float:
    """Payout rate for the nearest tabulated age; ties go to the younger age."""
    table = SPIA_PAYOUT_RATES[str(gender).lower()]
    ages = sorted(table)
    closest = ages[0]
    for tab_age in ages:
        if abs(tab_age - age) < abs(closest - age):
            closest = tab_age
    return table[closest]


def estimate_spia(lump_sum: float, age: int, gender: str = "male", joint_life: bool = False) -> SPIAQuote:
    rate = lookup_payout_rate(age, gender)
    if joint_life:
        rate *= 1 - JOINT_LIFE_REDUCTION

    annual = lump_sum * rate
    break_even_years = lump_sum / annual if annual > 0 else math.inf
    lifetime = {target: annual * max(0, target - age) for target in LIFETIME_VALUE_AGES}

    return SPIAQuote(
        lump_sum=float(lump_sum),
        age=int(age),
        gender=str(gender).lower(),
        joint_life=bool(joint_life),
        payout_rate=rate,
        annual_income=annual,
        monthly_income=annual / 12,
        break_even_years=break_even_years,
        break_even_age=age + break_even_years,
        lifetime_value_85=lifetime[85],
        lifetime_value_90=lifetime[90],
        lifetime_value_95=lifetime[95],
    )


def simulate_withdrawal(principal: float, withdrawal_rate_pct: float, age: int,
                        expected_return: float = 0.05) -> WithdrawalComparison:
    """
    Fixed-dollar withdrawals from a portfolio earning a constant return.

    Each year the portfolio grows by ``expected_return`` and then pays out
    ``principal * withdrawal_rate_pct / 100``. The run stops at depletion or
    after 50 years. Snapshots at ages 85, 90 and 95 are never negative, and
    stay 0 for ages the run does not reach.
    """
    annual_withdrawal = principal * withdrawal_rate_pct / 100
    portfolio = float(principal)
    years_until_depletion = None
    snapshots = {target: 0.0 for target in LIFETIME_VALUE_AGES}

    year = 0
    while year < MAX_SIMULATION_YEARS and portfolio > 0:
        portfolio = portfolio * (1 + expected_return) - annual_withdrawal
        year += 1

        if portfolio <= 0 and years_until_depletion is None:
            years_until_depletion = year
            portfolio = 0.0

        if age + year in snapshots:
            snapshots[age + year] = max(0.0, portfolio)

    return WithdrawalComparison(
        withdrawal_rate=float(withdrawal_rate_pct),
        monthly_income=annual_withdrawal / 12,
        annual_income=annual_withdrawal,
        years_until_depletion=years_until_depletion,
        portfolio_at_85=snapshots[85],
        portfolio_at_90=snapshots[90],
        portfolio_at_95=snapshots[95],
    )


def check_red_flags(commission_pct: float, surrender_years: float, annual_fees_pct: float,
                    is_in_ira: bool, proposed_amount: float, total_portfolio: float) -> List[RedFlag]:
    """Return every triggered warning about an annuity sales pitch, most important rules first."""
    flags = []

    if commission_pct >= 7:
        flags.append(RedFlag(
            "High Commission", Severity.CRITICAL,
            f"{commission_pct:g}% commission is extremely high. This creates strong incentive for "
            f"salespeople to push products that may not be in your best interest.",
        ))
    elif commission_pct >= 5:
        flags.append(RedFlag(
            "Elevated Commission", Severity.WARNING,
            f"{commission_pct:g}% commission is higher than typical. Compare with other options.",
        ))

    if surrender_years > 7:
        flags.append(RedFlag(
            "Long Surrender Period", Severity.CRITICAL,
            f"{surrender_years:g}-year surrender period locks your money for far too long. "
            f"You may pay heavy penalties if you need access.",
        ))
    elif surrender_years > 5:
        flags.append(RedFlag(
            "Extended Surrender Period", Severity.WARNING,
            f"{surrender_years:g}-year surrender period is longer than recommended. "
            f"Consider if you can commit this long.",
        ))

    if is_in_ira:
        flags.append(RedFlag(
            "Annuity in IRA - Tax Inefficient", Severity.CRITICAL,
            "An annuity inside an IRA provides NO additional tax benefit! IRAs are already "
            "tax-advantaged. This is a common deceptive sales tactic.",
        ))

    if annual_fees_pct >= 3:
        flags.append(RedFlag(
            "Excessive Annual Fees", Severity.CRITICAL,
            f"{annual_fees_pct:g}% annual fees will devastate your returns. "
            f"Low-cost index funds charge 0.03-0.20%.",
        ))
    elif annual_fees_pct >= 2:
        flags.append(RedFlag(
            "High Annual Fees", Severity.WARNING,
            f"{annual_fees_pct:g}% annual fees are well above average and will significantly reduce your returns.",
        ))

    if total_portfolio > 0:
        pct = proposed_amount / total_portfolio * 100
    else:
        # Any premium with nothing else invested is fully concentrated
        pct = math.inf if proposed_amount > 0 else 0.0
    if math.isinf(pct):
        flags.append(RedFlag(
            "Over-Concentration", Severity.CRITICAL,
            "Putting money into an annuity with no other portfolio to fall back on is too risky. "
            "Consider diversifying.",
        ))
    elif pct > 50:
        flags.append(RedFlag(
            "Over-Concentration", Severity.CRITICAL,
            f"Putting {pct:.0f}% of your portfolio in one annuity is too risky. Consider diversifying.",
        ))
    elif pct > 30:
        flags.append(RedFlag(
            "High Concentration", Severity.WARNING,
            f"{pct:.0f}% of portfolio in one product may be excessive.",
        ))

    return flags
