"""
Static reference tables used by the calculators.

Everything here is built once at import time and exposed read-only. Tax figures
are versioned by tax year; look them up with ``get_tax_year_table``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED_JOINT = "mfj"
    MARRIED_SEPARATE = "mfs"
    HEAD_OF_HOUSEHOLD = "hoh"

    @classmethod
    def parse(cls, value) -> "FilingStatus":
        """Accept an enum member, its value, or the loose ``married`` alias."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text == "married":
            return cls.MARRIED_JOINT
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown filing status: {value!r}")

    @property
    def is_married(self) -> bool:
        return self in (FilingStatus.MARRIED_JOINT, FilingStatus.MARRIED_SEPARATE)


@dataclass(frozen=True)
class Bracket:
    limit: float
    rate: float


Brackets = Tuple[Bracket, ...]


def _brackets(limits, rates) -> Brackets:
    return tuple(Bracket(float(limit), float(rate)) for limit, rate in zip(limits, rates))


@dataclass(frozen=True)
class TaxYearTable:
    year: int
    ordinary: Mapping[FilingStatus, Brackets]
    standard_deduction: Mapping[FilingStatus, float]
    ltcg: Mapping[FilingStatus, Brackets]
    niit_threshold: Mapping[FilingStatus, float]
    niit_rate: float


ORDINARY_RATES = (0.10, 0.12, 0.22, 0.24, 0.32, 0.35, 0.37)
LTCG_RATES = (0.0, 0.15, 0.20)

_TAX_2026 = TaxYearTable(
    year=2026,
    ordinary=MappingProxyType({
        FilingStatus.SINGLE: _brackets(
            (12_400, 50_400, 105_700, 201_775, 256_225, 640_600, math.inf), ORDINARY_RATES),
        FilingStatus.MARRIED_JOINT: _brackets(
            (24_800, 100_800, 211_400, 403_550, 512_450, 768_700, math.inf), ORDINARY_RATES),
        FilingStatus.MARRIED_SEPARATE: _brackets(
            (12_400, 50_400, 105_700, 201_775, 256_225, 384_350, math.inf), ORDINARY_RATES),
        FilingStatus.HEAD_OF_HOUSEHOLD: _brackets(
            (17_700, 67_450, 105_700, 201_775, 256_200, 640_600, math.inf), ORDINARY_RATES),
    }),
    standard_deduction=MappingProxyType({
        FilingStatus.SINGLE: 16_100.0,
        FilingStatus.MARRIED_JOINT: 32_200.0,
        FilingStatus.MARRIED_SEPARATE: 16_100.0,
        FilingStatus.HEAD_OF_HOUSEHOLD: 24_150.0,
    }),
    ltcg=MappingProxyType({
        FilingStatus.SINGLE: _brackets((49_450, 545_500, math.inf), LTCG_RATES),
        FilingStatus.MARRIED_JOINT: _brackets((98_900, 613_700, math.inf), LTCG_RATES),
        FilingStatus.MARRIED_SEPARATE: _brackets((49_450, 306_850, math.inf), LTCG_RATES),
        FilingStatus.HEAD_OF_HOUSEHOLD: _brackets((66_200, 579_600, math.inf), LTCG_RATES),
    }),
    # Statutory, not inflation indexed
    niit_threshold=MappingProxyType({
        FilingStatus.SINGLE: 200_000.0,
        FilingStatus.MARRIED_JOINT: 250_000.0,
        FilingStatus.MARRIED_SEPARATE: 125_000.0,
        FilingStatus.HEAD_OF_HOUSEHOLD: 200_000.0,
    }),
    niit_rate=0.038,
)

TAX_YEARS: Mapping[int, TaxYearTable] = MappingProxyType({2026: _TAX_2026})
DEFAULT_TAX_YEAR = 2026


def get_tax_year_table(year: int = DEFAULT_TAX_YEAR) -> TaxYearTable:
    try:
        return TAX_YEARS[int(year)]
    except KeyError:
        raise KeyError(f"No tax tables for {year}; available years: {sorted(TAX_YEARS)}")


# Medicare Part B IRMAA, monthly surcharge per person. Tiers are MAGI upper limits.
IRMAA_SURCHARGES = (0.0, 81.20, 202.90, 324.60, 446.30, 487.00)
IRMAA_TIERS: Mapping[str, Tuple[float, ...]] = MappingProxyType({
    "single": (109_000, 137_000, 171_000, 205_000, 500_000, math.inf),
    "married": (218_000, 274_000, 342_000, 410_000, 750_000, math.inf),
})

# IRS Uniform Lifetime Table (SECURE 2.0)
RMD_START_AGE = 73
RMD_DIVISORS: Mapping[int, float] = MappingProxyType({
    73: 26.5, 74: 25.5, 75: 24.6, 76: 23.7, 77: 22.9, 78: 22.0, 79: 21.1, 80: 20.2,
    81: 19.4, 82: 18.5, 83: 17.7, 84: 16.8, 85: 16.0, 86: 15.2, 87: 14.4, 88: 13.7,
    89: 12.9, 90: 12.2, 91: 11.5, 92: 10.8, 93: 10.1, 94: 9.5, 95: 8.9, 96: 8.4,
    97: 7.8, 98: 7.3, 99: 6.8, 100: 6.4, 101: 6.0, 102: 5.6, 103: 5.2, 104: 4.9,
    105: 4.6, 106: 4.3, 107: 4.1, 108: 3.9, 109: 3.7, 110: 3.5, 111: 3.4, 112: 3.3,
    113: 3.1, 114: 3.0, 115: 2.9, 116: 2.8, 117: 2.7, 118: 2.5, 119: 2.3, 120: 2.0,
})
RMD_MAX_TABLE_AGE = 120

# Joint Life and Last Survivor excerpt: owner age -> {years spouse is younger: divisor}
JOINT_LIFE_MIN_AGE_GAP = 10
JOINT_LIFE_DIVISORS: Mapping[int, Mapping[int, float]] = MappingProxyType({
    73: MappingProxyType({10: 28.4, 15: 30.5, 20: 32.3}),
    74: MappingProxyType({10: 27.5, 15: 29.5, 20: 31.3}),
    75: MappingProxyType({10: 26.6, 15: 28.5, 20: 30.3}),
    76: MappingProxyType({10: 25.7, 15: 27.6, 20: 29.3}),
    77: MappingProxyType({10: 24.8, 15: 26.7, 20: 28.3}),
    78: MappingProxyType({10: 23.9, 15: 25.8, 20: 27.4}),
    79: MappingProxyType({10: 23.1, 15: 24.9, 20: 26.5}),
    80: MappingProxyType({10: 22.2, 15: 24.0, 20: 25.6}),
    85: MappingProxyType({10: 18.6, 15: 20.1, 20: 21.5}),
    90: MappingProxyType({10: 15.3, 15: 16.5, 20: 17.7}),
})

# Social Security (2026 bend points apply to monthly AIME)
SS_BEND_POINTS = (1_286.0, 7_749.0)
SS_PIA_FACTORS = (0.90, 0.32, 0.15)
SS_FULL_RETIREMENT_AGE = 67
SS_EARLIEST_CLAIM_AGE = 62
SS_LATEST_CLAIM_AGE = 70

# Federal estate tax (OBBBA permanent exemption, indexed from 2027)
ESTATE_EXEMPTION_SINGLE = 15_000_000.0
ESTATE_EXEMPTION_MARRIED = 30_000_000.0
ESTATE_EXEMPTION_BASE_YEAR = 2026
ESTATE_EXEMPTION_INDEXING = 0.026
ESTATE_TAX_RATE = 0.40

# Pre-Medicare healthcare estimate
MEDICARE_AGE = 65
PRE_MEDICARE_HEALTHCARE_COST = 15_000.0

# SPIA payout rates: gender -> {age: annual payout as a fraction of premium}
SPIA_PAYOUT_RATES: Mapping[str, Mapping[int, float]] = MappingProxyType({
    "male": MappingProxyType({60: 0.058, 62: 0.061, 65: 0.067, 67: 0.071, 70: 0.078, 72: 0.083, 75: 0.092, 80: 0.108}),
    "female": MappingProxyType({60: 0.054, 62: 0.056, 65: 0.061, 67: 0.065, 70: 0.071, 72: 0.076, 75: 0.084, 80: 0.098}),
})
JOINT_LIFE_REDUCTION = 0.15

# S&P 500 total annual returns (%), 1928-2024
SP500_START_YEAR = 1928
SP500_END_YEAR = 2024
SP500_ANNUAL_RETURNS: Tuple[float, ...] = (
    # 1928-1940
    43.81, -8.30, -25.12, -43.84, -8.64, 49.98, -1.19, 46.74, 31.94, 35.34, -35.34, 29.28, -1.10,
    # 1941-1960
    -12.77, 19.17, 25.06, 19.03, 35.82, -8.43, 5.20, 5.70, 18.30, 30.81, 23.68, 14.37, -1.21, 52.56, 31.24, 18.15,
    -0.73, 23.68, 52.40, 31.74,
    # 1961-1980
    26.63, -8.81, 22.61, 16.42, 12.40, -10.06, 23.80, 10.81, -8.24, -14.31, 3.56, 14.22, 18.76, -14.31, -25.90,
    37.00, 23.83, -7.18, 6.56, 18.44,
    # 1981-2000
    -4.70, 20.42, 22.34, 6.15, 31.24, 18.49, 5.81, 16.54, 31.48, -3.06, 30.23, 7.49, 9.97, 1.33, 37.20, 22.68,
    33.10, 28.34, 20.89, -9.03,
    # 2001-2020
    -11.85, -21.97, 28.36, 10.74, 4.83, 15.61, 5.48, -36.55, 25.94, 14.82, 2.10, 15.89, 32.15, 13.52, 1.36,
    11.77, 21.61, -4.23, 31.21, 18.02,
    # 2021-2024
    28.47, -18.04, 26.06, 25.02,
)

# Simulation walk data: returns capped at +/-15%, followed by a half-magnitude copy
WALK_RETURN_CAP = 15.0
_CAPPED = tuple(max(-WALK_RETURN_CAP, min(WALK_RETURN_CAP, r)) for r in SP500_ANNUAL_RETURNS)
WALK_RETURNS: Tuple[float, ...] = _CAPPED + tuple(r / 2 for r in _CAPPED)

