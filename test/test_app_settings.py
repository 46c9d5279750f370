"""Tests for app_settings.py settings and share links."""

import base64
import gzip
import pytest

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from app_settings import (
    AnnuitySettings,
    FireSettings,
    MortgageSettings,
    ProjectionSettings,
    RmdSettings,
    Settings,
    TaxSettings,
)
from fire import FireVariant, WithdrawalRule
from tax_tables import FilingStatus


def encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


class TestSectionValidation:
    """Tests for __post_init__ validation of each settings section."""

    def test_defaults_are_valid(self):
        Settings()

    def test_annuity_rejects_bad_values(self):
        with pytest.raises(ValueError) as exc_info:
            AnnuitySettings(lump_sum=0)
        assert "premium must be positive" in str(exc_info.value)
        with pytest.raises(ValueError):
            AnnuitySettings(gender="other")
        with pytest.raises(ValueError):
            AnnuitySettings(annuity_type="whole_life")
        with pytest.raises(ValueError):
            AnnuitySettings(commission_pct=-1)

    def test_annuity_coerces_types(self):
        settings = AnnuitySettings(lump_sum="150000", age="70", gender="Female")
        assert settings.lump_sum == 150_000.0
        assert settings.age == 70
        assert settings.gender == "female"

    def test_fire_enums(self):
        settings = FireSettings(variant="lean", withdrawal_rule="3percent")
        assert settings.variant == FireVariant.LEAN
        assert settings.withdrawal_rule == WithdrawalRule.THREE_PERCENT
        with pytest.raises(ValueError) as exc_info:
            FireSettings(variant="chubby")
        assert "Invalid FIRE option" in str(exc_info.value)

    def test_fire_coast_age_after_current(self):
        with pytest.raises(ValueError):
            FireSettings(variant="coast", current_age=50, coast_target_age=45)
        FireSettings(variant="regular", current_age=50, coast_target_age=45)

    def test_mortgage_rejects_bad_values(self):
        with pytest.raises(ValueError):
            MortgageSettings(current_balance=0)
        with pytest.raises(ValueError):
            MortgageSettings(new_rate=-1)
        with pytest.raises(ValueError):
            MortgageSettings(new_term_years=0)

    def test_tax_settings(self):
        settings = TaxSettings(filing_status="married")
        assert settings.filing_status == FilingStatus.MARRIED_JOINT
        with pytest.raises(ValueError) as exc_info:
            TaxSettings(tax_year=1999)
        assert "1999" in str(exc_info.value)
        with pytest.raises(ValueError):
            TaxSettings(filing_status="widowed")

    def test_rmd_spouse_age(self):
        assert RmdSettings(spouse_age="").spouse_age is None
        assert RmdSettings(spouse_age="60").spouse_age == 60
        with pytest.raises(ValueError):
            RmdSettings(tax_rate_pct=120)

    def test_projection_ages(self):
        with pytest.raises(ValueError) as exc_info:
            ProjectionSettings(current_age=65, retirement_age=65)
        assert "must be after current age" in str(exc_info.value)
        with pytest.raises(ValueError):
            ProjectionSettings(life_expectancy=60)

    def test_projection_options(self):
        with pytest.raises(ValueError):
            ProjectionSettings(return_mode="bootstrap")
        with pytest.raises(ValueError):
            ProjectionSettings(walk_series="inflation")
        with pytest.raises(ValueError):
            ProjectionSettings(n_runs=0)
        with pytest.raises(ValueError):
            ProjectionSettings(spending_reduction=1.5)

    def test_projection_years(self):
        settings = ProjectionSettings(current_age=40, retirement_age=60, life_expectancy=90)
        assert settings.years_to_retirement == 20
        assert settings.years_in_retirement == 30

    def test_unknown_tab(self):
        with pytest.raises(ValueError):
            Settings(active_tab="Crypto")


class TestSettingsSerialization:
    """Tests for Settings dictionary and base64 round trips."""

    def test_to_dict_uses_plain_values(self):
        data = Settings().to_dict()
        assert data["fire"]["variant"] == "regular"
        assert data["tax"]["filing_status"] == "single"
        assert set(data) == {"active_tab", "annuity", "fire", "mortgage", "tax", "rmd", "projection"}

    def test_base64_round_trip(self):
        settings = Settings(active_tab="Taxes")
        settings.tax.gross_income = 250_000.0
        settings.projection = ProjectionSettings(return_mode="historical", n_runs=500)
        encoded = settings.to_base64()
        assert "=" not in encoded
        restored = Settings.from_base64(encoded)
        assert restored == settings

    def test_from_dict_fills_missing_sections(self):
        assert Settings.from_dict({}) == Settings()

    def test_from_dict_ignores_unknown_keys(self):
        settings = Settings.from_dict({"fire": {"current_age": 40, "favorite_color": "blue"}, "extra": 1})
        assert settings.fire.current_age == 40

    def test_corrupted_base64(self):
        with pytest.raises(ValueError):
            Settings.from_base64("@@@@")

    def test_not_gzip(self):
        with pytest.raises(ValueError) as exc_info:
            Settings.from_base64(encode(b"plain text"))
        assert "could not be decompressed" in str(exc_info.value)

    def test_not_json(self):
        with pytest.raises(ValueError) as exc_info:
            Settings.from_base64(encode(gzip.compress(b"{not json")))
        assert "invalid data" in str(exc_info.value)

    def test_not_an_object(self):
        with pytest.raises(ValueError) as exc_info:
            Settings.from_base64(encode(gzip.compress(b"[1, 2, 3]")))
        assert "Expected a configuration object" in str(exc_info.value)

    def test_invalid_values_in_link(self):
        payload = encode(gzip.compress(b'{"projection": {"n_runs": -5}}'))
        with pytest.raises(ValueError):
            Settings.from_base64(payload)


class TestSessionState:
    """Tests for applying settings to and reading them from session state."""

    def test_keys_are_prefixed_by_section(self):
        state = {}
        Settings().apply_to_session_state(state)
        assert state["active_tab"] == "Annuity"
        assert state["fire_current_age"] == 30
        assert state["mortgage_current_rate"] == 6.5
        assert state["projection_return_mode"] == "random"
        assert state["rmd_spouse_age"] is None

    def test_round_trip(self):
        settings = Settings(active_tab="Mortgage")
        settings.rmd = RmdSettings(spouse_age=60)
        state = {}
        settings.apply_to_session_state(state)
        assert Settings.from_session_state(state) == settings

    def test_missing_keys_use_defaults(self):
        state = {"projection_n_runs": 100}
        settings = Settings.from_session_state(state)
        assert settings.projection.n_runs == 100
        assert settings.fire == FireSettings()

    def test_projection_signature_tracks_projection_only(self):
        settings = Settings()
        before = settings.projection_signature()
        settings.tax.gross_income = 1.0
        assert settings.projection_signature() == before
        settings.projection.withdrawal_rate_pct = 5.0
        assert settings.projection_signature() != before
