from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

from tax_tables import (
    Brackets,
    DEFAULT_TAX_YEAR,
    FilingStatus,
    IRMAA_SURCHARGES,
    IRMAA_TIERS,
    get_tax_year_table,
)


@dataclass(frozen=True)
class BracketSlice:
    lower: float
    upper: float
    rate: float
    amount_in_bracket: float
    tax_paid: float


@dataclass(frozen=True)
class TaxBracketCalculation:
    gross_income: float
    deduction: float
    taxable_income: float
    total_tax: float
    effective_rate: float
    marginal_rate: float
    slices: List[BracketSlice] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "Rate": s.rate,
                    "Lower": s.lower,
                    "Upper": s.upper,
                    "Amount_In_Bracket": s.amount_in_bracket,
                    "Tax_Paid": s.tax_paid,
                }
                for s in self.slices
            ]
        )


@dataclass(frozen=True)
class IrmaaResult:
    tier: int
    monthly_surcharge: float
    annual_surcharge: float
    next_threshold: Optional[float]


def fill_brackets(taxable_income: float, brackets: Brackets) -> List[BracketSlice]:
    """
    Fill brackets bottom-up with ``taxable_income``.

    Each bracket taxes only the income between the previous limit and its own
    limit. Every bracket gets a row, including empty ones, so the per-row
    ``tax_paid`` values always add up to the total.
    """
    slices = []
    remaining = max(0.0, float(taxable_income))
    lower = 0.0
    for bracket in brackets:
        width = bracket.limit - lower
        amount = max(0.0, min(remaining, width))
        slices.append(BracketSlice(
            lower=lower,
            upper=bracket.limit,
            rate=bracket.rate,
            amount_in_bracket=amount,
            tax_paid=amount * bracket.rate,
        ))
        remaining -= amount
        lower = bracket.limit
    return slices


def calculate_income_tax(gross_income: float, filing_status="single",
                         tax_year: int = DEFAULT_TAX_YEAR,
                         deduction: Optional[float] = None) -> TaxBracketCalculation:
    """
    Federal ordinary income tax after the standard deduction.

    Parameters
    ----------
    gross_income : float
        Income before deductions.
    filing_status : FilingStatus or str
        Filing status, e.g. ``"single"`` or ``"mfj"``.
    tax_year : int, optional
        Which year's tables to use (default 2026).
    deduction : float, optional
        Override the standard deduction, e.g. for itemizers.

    Returns
    -------
    TaxBracketCalculation
        Per-bracket breakdown plus total, effective and marginal rates.
        The effective rate is measured against gross income.
    """
    status = FilingStatus.parse(filing_status)
    table = get_tax_year_table(tax_year)
    brackets = table.ordinary[status]
    if deduction is None:
        deduction = table.standard_deduction[status]

    gross_income = float(gross_income)
    taxable = max(0.0, gross_income - deduction)
    slices = fill_brackets(taxable, brackets)
    total = sum(s.tax_paid for s in slices)

    active = [s for s in slices if s.amount_in_bracket > 0]
    marginal = active[-1].rate if active else brackets[0].rate
    effective = total / gross_income if taxable > 0 and gross_income > 0 else 0.0

    return TaxBracketCalculation(
        gross_income=gross_income,
        deduction=float(deduction),
        taxable_income=taxable,
        total_tax=total,
        effective_rate=effective,
        marginal_rate=marginal,
        slices=slices,
    )


def calculate_ltcg_tax(gains: float, ordinary_taxable_income: float = 0.0, filing_status="single",
                       tax_year: int = DEFAULT_TAX_YEAR) -> float:
    """Long-term gains tax, with the gains stacked on top of ordinary taxable income."""
    status = FilingStatus.parse(filing_status)
    brackets = get_tax_year_table(tax_year).ltcg[status]

    remaining = max(0.0, float(gains))
    cumulative = max(0.0, float(ordinary_taxable_income))
    tax = 0.0
    for bracket in brackets:
        if remaining <= 0:
            break
        room = max(0.0, bracket.limit - cumulative)
        taxed_here = min(remaining, room)
        tax += taxed_here * bracket.rate
        remaining -= taxed_here
        cumulative += taxed_here
    return tax


def calculate_niit(net_investment_income: float, magi: float, filing_status="single",
                   tax_year: int = DEFAULT_TAX_YEAR) -> float:
    """3.8% surtax on the lesser of investment income and MAGI above the threshold."""
    status = FilingStatus.parse(filing_status)
    table = get_tax_year_table(tax_year)
    excess = max(0.0, float(magi) - table.niit_threshold[status])
    base = min(max(0.0, float(net_investment_income)), excess)
    return base * table.niit_rate


def bracket_headroom(taxable_income: float, target_rate: float, filing_status="single",
                     tax_year: int = DEFAULT_TAX_YEAR) -> float:
    """
    How much more ordinary income fits before leaving the ``target_rate`` bracket.

    Used to size Roth conversions ("fill the 22% bracket"). Returns 0 when income
    is already past that bracket, and ``inf`` for the open-ended top bracket.
    """
    status = FilingStatus.parse(filing_status)
    brackets = get_tax_year_table(tax_year).ordinary[status]
    for bracket in brackets:
        if abs(bracket.rate - target_rate) < 1e-9:
            return max(0.0, bracket.limit - max(0.0, float(taxable_income)))
    raise ValueError(f"No {target_rate:.0%} bracket for {status.value}")


def zero_ltcg_headroom(taxable_income: float, filing_status="single",
                       tax_year: int = DEFAULT_TAX_YEAR) -> float:
    """Gains that can still be realized at the 0% long-term rate."""
    status = FilingStatus.parse(filing_status)
    zero_limit = get_tax_year_table(tax_year).ltcg[status][0].limit
    return max(0.0, zero_limit - max(0.0, float(taxable_income)))


def irmaa_surcharge(magi: float, filing_status="single") -> IrmaaResult:
    """Medicare Part B income-related surcharge per person for a given MAGI."""
    status = FilingStatus.parse(filing_status)
    # Married filing separately uses its own schedule; approximated by the single tiers.
    tiers = IRMAA_TIERS["married" if status == FilingStatus.MARRIED_JOINT else "single"]
    for idx, limit in enumerate(tiers):
        if magi <= limit:
            monthly = IRMAA_SURCHARGES[idx]
            next_threshold = limit if idx < len(tiers) - 1 else None
            return IrmaaResult(
                tier=idx,
                monthly_surcharge=monthly,
                annual_surcharge=monthly * 12,
                next_threshold=next_threshold,
            )
    # unreachable: top tier is inf
    raise ValueError(f"MAGI {magi!r} is not comparable")
