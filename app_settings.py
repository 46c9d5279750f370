from __future__ import annotations

import base64
import gzip
import json
import zlib
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional

from annuity import AnnuityType
from fire import FireInputs, FireVariant, WithdrawalRule
from mortgage import RefinanceInputs
from tax_tables import DEFAULT_TAX_YEAR, FilingStatus, SPIA_PAYOUT_RATES, TAX_YEARS

TABS = ("Annuity", "FIRE", "Mortgage", "Taxes", "RMD & Estate", "Projection")
RETURN_MODES = ("fixed", "historical", "random")
WALK_SERIES = ("nominal", "real")


class _SectionMixin:
    """Dictionary and session-state plumbing shared by the per-calculator settings."""

    section = ""

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = value.value if isinstance(value, Enum) else value
        return out

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        data = data if isinstance(data, dict) else {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def apply_to_session_state(self, session_state: Any) -> None:
        for name, value in self.to_dict().items():
            session_state[f"{self.section}_{name}"] = value

    @classmethod
    def from_session_state(cls, session_state: Any):
        prefix = f"{cls.section}_"
        data = {}
        for f in fields(cls):
            key = prefix + f.name
            if key in session_state:
                data[f.name] = session_state[key]
        return cls.from_dict(data)


@dataclass
class AnnuitySettings(_SectionMixin):
    section = "annuity"

    lump_sum: float = 200_000.0
    age: int = 65
    gender: str = "male"
    joint_life: bool = False
    annuity_type: str = "spia"
    withdrawal_rate_pct: float = 4.0
    expected_return: float = 0.05
    surrender_years: float = 7.0
    annual_fees_pct: float = 2.5
    commission_pct: float = 7.0
    is_in_ira: bool = False
    proposed_amount: float = 200_000.0
    total_portfolio: float = 500_000.0

    def __post_init__(self) -> None:
        self.lump_sum = float(self.lump_sum)
        self.age = int(self.age)
        self.gender = str(self.gender).lower()
        self.joint_life = bool(self.joint_life)
        self.annuity_type = str(self.annuity_type)
        self.withdrawal_rate_pct = float(self.withdrawal_rate_pct)
        self.expected_return = float(self.expected_return)
        self.surrender_years = float(self.surrender_years)
        self.annual_fees_pct = float(self.annual_fees_pct)
        self.commission_pct = float(self.commission_pct)
        self.is_in_ira = bool(self.is_in_ira)
        self.proposed_amount = float(self.proposed_amount)
        self.total_portfolio = float(self.total_portfolio)

        if self.lump_sum <= 0:
            raise ValueError(f"Annuity premium must be positive, got {self.lump_sum:,.0f}")
        if self.gender not in SPIA_PAYOUT_RATES:
            raise ValueError(f"Gender must be one of {sorted(SPIA_PAYOUT_RATES)}, got {self.gender!r}")
        if self.annuity_type not in {t.value for t in AnnuityType}:
            raise ValueError(f"Unknown annuity type: {self.annuity_type!r}")
        if not (0 <= self.age <= 120):
            raise ValueError(f"Age must be between 0 and 120, got {self.age}")
        if self.withdrawal_rate_pct < 0:
            raise ValueError(f"Withdrawal rate cannot be negative, got {self.withdrawal_rate_pct:.1f}%")
        for label, value in (
            ("Surrender period", self.surrender_years),
            ("Annual fees", self.annual_fees_pct),
            ("Commission", self.commission_pct),
            ("Proposed amount", self.proposed_amount),
            ("Total portfolio", self.total_portfolio),
        ):
            if value < 0:
                raise ValueError(f"{label} cannot be negative, got {value:,.2f}")


@dataclass
class FireSettings(FireInputs, _SectionMixin):
    section = "fire"

    def __post_init__(self) -> None:
        self.current_age = int(self.current_age)
        self.annual_income = float(self.annual_income)
        self.annual_expenses = float(self.annual_expenses)
        self.current_savings = float(self.current_savings)
        self.expected_return_pct = float(self.expected_return_pct)
        self.inflation_pct = float(self.inflation_pct)
        self.include_healthcare = bool(self.include_healthcare)
        self.healthcare_cost = float(self.healthcare_cost)
        self.part_time_income = float(self.part_time_income)
        self.coast_target_age = int(self.coast_target_age)
        try:
            self.variant = FireVariant(self.variant)
            self.withdrawal_rule = WithdrawalRule(self.withdrawal_rule)
        except ValueError as exc:
            raise ValueError(f"Invalid FIRE option: {exc}")

        if self.annual_income < 0:
            raise ValueError(f"Annual income cannot be negative, got {self.annual_income:,.0f}")
        if self.annual_expenses < 0:
            raise ValueError(f"Annual expenses cannot be negative, got {self.annual_expenses:,.0f}")
        if self.current_savings < 0:
            raise ValueError(f"Current savings cannot be negative, got {self.current_savings:,.0f}")
        if self.variant == FireVariant.COAST and self.coast_target_age <= self.current_age:
            raise ValueError(
                f"Coast target age ({self.coast_target_age}) must be after current age ({self.current_age})"
            )


@dataclass
class MortgageSettings(RefinanceInputs, _SectionMixin):
    section = "mortgage"

    def __post_init__(self) -> None:
        self.current_balance = float(self.current_balance)
        self.current_rate = float(self.current_rate)
        self.current_payment = float(self.current_payment)
        self.years_remaining = float(self.years_remaining)
        self.new_rate = float(self.new_rate)
        self.new_term_years = int(self.new_term_years)
        self.closing_costs = float(self.closing_costs)
        self.use_cash_out = bool(self.use_cash_out)
        self.cash_out_amount = float(self.cash_out_amount)
        self.cash_out_debt_rate = float(self.cash_out_debt_rate)
        self.use_points = bool(self.use_points)
        self.points_cost = float(self.points_cost)
        self.points_rate_reduction = float(self.points_rate_reduction)
        self.extra_monthly_payment = float(self.extra_monthly_payment)

        if self.current_balance <= 0:
            raise ValueError(f"Loan balance must be positive, got {self.current_balance:,.0f}")
        if self.years_remaining <= 0:
            raise ValueError(f"Years remaining must be positive, got {self.years_remaining:g}")
        if self.new_term_years <= 0:
            raise ValueError(f"New loan term must be positive, got {self.new_term_years} years")
        if self.current_rate < 0 or self.new_rate < 0:
            raise ValueError(
                f"Interest rates cannot be negative, got {self.current_rate:.3f}% and {self.new_rate:.3f}%"
            )
        if self.closing_costs < 0:
            raise ValueError(f"Closing costs cannot be negative, got {self.closing_costs:,.0f}")


@dataclass
class TaxSettings(_SectionMixin):
    section = "tax"

    gross_income: float = 100_000.0
    filing_status: FilingStatus = FilingStatus.SINGLE
    tax_year: int = DEFAULT_TAX_YEAR
    long_term_gains: float = 0.0
    net_investment_income: float = 0.0
    target_bracket_rate: float = 0.22

    def __post_init__(self) -> None:
        self.gross_income = float(self.gross_income)
        self.filing_status = FilingStatus.parse(self.filing_status)
        self.tax_year = int(self.tax_year)
        self.long_term_gains = float(self.long_term_gains)
        self.net_investment_income = float(self.net_investment_income)
        self.target_bracket_rate = float(self.target_bracket_rate)

        if self.gross_income < 0:
            raise ValueError(f"Income cannot be negative, got {self.gross_income:,.0f}")
        if self.tax_year not in TAX_YEARS:
            raise ValueError(f"No tax tables for {self.tax_year}; available years: {sorted(TAX_YEARS)}")
        if self.long_term_gains < 0 or self.net_investment_income < 0:
            raise ValueError("Investment income cannot be negative")


@dataclass
class RmdSettings(_SectionMixin):
    section = "rmd"

    balance: float = 1_000_000.0
    age: int = 73
    spouse_age: Optional[int] = None
    growth_pct: float = 6.0
    tax_rate_pct: float = 22.0
    estate_value: float = 5_000_000.0
    estate_year: int = 2026
    married: bool = False

    def __post_init__(self) -> None:
        self.balance = float(self.balance)
        self.age = int(self.age)
        self.spouse_age = int(self.spouse_age) if self.spouse_age not in (None, "") else None
        self.growth_pct = float(self.growth_pct)
        self.tax_rate_pct = float(self.tax_rate_pct)
        self.estate_value = float(self.estate_value)
        self.estate_year = int(self.estate_year)
        self.married = bool(self.married)

        if self.balance < 0:
            raise ValueError(f"Account balance cannot be negative, got {self.balance:,.0f}")
        if not (0 <= self.age <= 120):
            raise ValueError(f"Age must be between 0 and 120, got {self.age}")
        if not (0.0 <= self.tax_rate_pct <= 100.0):
            raise ValueError(f"Tax rate must be between 0% and 100%, got {self.tax_rate_pct:.1f}%")


@dataclass
class ProjectionSettings(_SectionMixin):
    section = "projection"

    current_age: int = 35
    retirement_age: int = 65
    life_expectancy: int = 95
    starting_balance: float = 500_000.0
    annual_contribution: float = 20_000.0
    contribution_growth_pct: float = 0.0
    withdrawal_rate_pct: float = 4.0
    return_mode: str = "random"
    nominal_return_pct: float = 9.8
    inflation_pct: float = 2.6
    walk_series: str = "nominal"
    historical_start_year: int = 1966
    filing_status: FilingStatus = FilingStatus.SINGLE
    social_security_earnings: float = 0.0
    social_security_claim_age: int = 67
    n_runs: int = 2000
    seed: int = 12345
    spending_reduction: float = 0.10

    def __post_init__(self) -> None:
        self.current_age = int(self.current_age)
        self.retirement_age = int(self.retirement_age)
        self.life_expectancy = int(self.life_expectancy)
        self.starting_balance = float(self.starting_balance)
        self.annual_contribution = float(self.annual_contribution)
        self.contribution_growth_pct = float(self.contribution_growth_pct)
        self.withdrawal_rate_pct = float(self.withdrawal_rate_pct)
        self.return_mode = str(self.return_mode)
        self.nominal_return_pct = float(self.nominal_return_pct)
        self.inflation_pct = float(self.inflation_pct)
        self.walk_series = str(self.walk_series)
        self.historical_start_year = int(self.historical_start_year)
        self.filing_status = FilingStatus.parse(self.filing_status)
        self.social_security_earnings = float(self.social_security_earnings)
        self.social_security_claim_age = int(self.social_security_claim_age)
        self.n_runs = int(self.n_runs)
        self.seed = int(self.seed)
        self.spending_reduction = float(self.spending_reduction)

        if self.retirement_age <= self.current_age:
            raise ValueError(
                f"Retirement age ({self.retirement_age}) must be after current age ({self.current_age})"
            )
        if self.life_expectancy < self.retirement_age:
            raise ValueError(
                f"Life expectancy ({self.life_expectancy}) cannot be before retirement age ({self.retirement_age})"
            )
        if self.starting_balance < 0:
            raise ValueError(f"Starting balance cannot be negative, got {self.starting_balance:,.0f}")
        if self.withdrawal_rate_pct < 0:
            raise ValueError(f"Withdrawal rate cannot be negative, got {self.withdrawal_rate_pct:.1f}%")
        if self.return_mode not in RETURN_MODES:
            raise ValueError(f"Return mode must be one of {RETURN_MODES}, got {self.return_mode!r}")
        if self.walk_series not in WALK_SERIES:
            raise ValueError(f"Return series must be one of {WALK_SERIES}, got {self.walk_series!r}")
        if self.n_runs <= 0:
            raise ValueError(f"Number of simulation runs must be positive, got {self.n_runs}")
        if not (0.0 <= self.spending_reduction <= 1.0):
            raise ValueError(
                f"Spending reduction must be between 0% and 100%, got {self.spending_reduction * 100:.0f}%"
            )

    @property
    def years_to_retirement(self) -> int:
        return self.retirement_age - self.current_age

    @property
    def years_in_retirement(self) -> int:
        return self.life_expectancy - self.retirement_age


SECTIONS = {
    "annuity": AnnuitySettings,
    "fire": FireSettings,
    "mortgage": MortgageSettings,
    "tax": TaxSettings,
    "rmd": RmdSettings,
    "projection": ProjectionSettings,
}


@dataclass
class Settings:
    active_tab: str = TABS[0]
    annuity: AnnuitySettings = field(default_factory=AnnuitySettings)
    fire: FireSettings = field(default_factory=FireSettings)
    mortgage: MortgageSettings = field(default_factory=MortgageSettings)
    tax: TaxSettings = field(default_factory=TaxSettings)
    rmd: RmdSettings = field(default_factory=RmdSettings)
    projection: ProjectionSettings = field(default_factory=ProjectionSettings)

    def __post_init__(self) -> None:
        self.active_tab = str(self.active_tab)
        if self.active_tab not in TABS:
            raise ValueError(f"Unknown tab {self.active_tab!r}; expected one of {TABS}")

    def projection_signature(self) -> Dict[str, Any]:
        return self.projection.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"active_tab": self.active_tab}
        for name in SECTIONS:
            out[name] = getattr(self, name).to_dict()
        return out

    def to_base64(self) -> str:
        payload = json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")
        compressed = gzip.compress(payload)
        encoded = base64.urlsafe_b64encode(compressed).decode("utf-8")
        return encoded.rstrip("=")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        sections = {name: section_cls.from_dict(data.get(name)) for name, section_cls in SECTIONS.items()}
        return cls(active_tab=data.get("active_tab", TABS[0]), **sections)

    @classmethod
    def from_base64(cls, payload: str) -> "Settings":
        padding = "=" * (-len(payload) % 4)
        try:
            decoded = base64.urlsafe_b64decode((payload + padding).encode("utf-8"))
        except ValueError:
            raise ValueError(
                "The shared configuration link is corrupted or invalid. "
                "Please request a new link."
            )
        try:
            decompressed = gzip.decompress(decoded)
        except (OSError, EOFError, zlib.error):
            raise ValueError(
                "The shared configuration data could not be decompressed. "
                "The link may be incomplete or corrupted."
            )
        try:
            data = json.loads(decompressed.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            raise ValueError(
                "The shared configuration contains invalid data. "
                "Please request a new link."
            )
        if not isinstance(data, dict):
            raise ValueError(
                "The shared configuration format is invalid. "
                "Expected a configuration object."
            )
        return cls.from_dict(data)

    def apply_to_session_state(self, session_state: Any) -> None:
        session_state["active_tab"] = self.active_tab
        for name in SECTIONS:
            getattr(self, name).apply_to_session_state(session_state)

    @classmethod
    def from_session_state(cls, session_state: Any) -> "Settings":
        sections = {name: section_cls.from_session_state(session_state) for name, section_cls in SECTIONS.items()}
        return cls(active_tab=session_state.get("active_tab", TABS[0]), **sections)
