"""Tests for taxes.py and the tables in tax_tables.py."""

import math
import numpy as np
import pytest

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import taxes
from tax_tables import (
    FilingStatus,
    RMD_DIVISORS,
    SP500_ANNUAL_RETURNS,
    SP500_END_YEAR,
    SP500_START_YEAR,
    WALK_RETURNS,
    get_tax_year_table,
)


class TestTaxTables:
    """Tests for the static reference tables."""

    def test_seven_ordinary_brackets_per_status(self):
        table = get_tax_year_table(2026)
        for status in FilingStatus:
            brackets = table.ordinary[status]
            assert len(brackets) == 7
            assert [b.rate for b in brackets] == [0.10, 0.12, 0.22, 0.24, 0.32, 0.35, 0.37]
            assert math.isinf(brackets[-1].limit)

    def test_limits_strictly_increase(self):
        table = get_tax_year_table(2026)
        for status in FilingStatus:
            for brackets in (table.ordinary[status], table.ltcg[status]):
                limits = [b.limit for b in brackets]
                assert limits == sorted(limits)
                assert len(set(limits)) == len(limits)

    def test_standard_deductions(self):
        table = get_tax_year_table(2026)
        assert table.standard_deduction[FilingStatus.SINGLE] == 16_100
        assert table.standard_deduction[FilingStatus.MARRIED_JOINT] == 32_200
        assert table.standard_deduction[FilingStatus.HEAD_OF_HOUSEHOLD] == 24_150

    def test_unknown_year_raises(self):
        with pytest.raises(KeyError) as exc_info:
            get_tax_year_table(1999)
        assert "1999" in str(exc_info.value)

    def test_tables_are_read_only(self):
        table = get_tax_year_table(2026)
        with pytest.raises(TypeError):
            table.standard_deduction[FilingStatus.SINGLE] = 0
        with pytest.raises(TypeError):
            RMD_DIVISORS[73] = 1.0

    def test_rmd_divisor_range(self):
        assert min(RMD_DIVISORS) == 73
        assert max(RMD_DIVISORS) == 120
        assert RMD_DIVISORS[75] == 24.6
        assert RMD_DIVISORS[120] == 2.0

    def test_return_series_length(self):
        assert len(SP500_ANNUAL_RETURNS) == SP500_END_YEAR - SP500_START_YEAR + 1
        assert len(WALK_RETURNS) == 2 * len(SP500_ANNUAL_RETURNS)
        assert max(WALK_RETURNS) == 15.0
        assert min(WALK_RETURNS) == -15.0

    def test_filing_status_parse(self):
        assert FilingStatus.parse("married") == FilingStatus.MARRIED_JOINT
        assert FilingStatus.parse(" HOH ") == FilingStatus.HEAD_OF_HOUSEHOLD
        assert FilingStatus.parse(FilingStatus.SINGLE) == FilingStatus.SINGLE
        with pytest.raises(ValueError):
            FilingStatus.parse("widowed")


class TestCalculateIncomeTax:
    """Tests for calculate_income_tax function."""

    def test_single_100k_matches_manual_arithmetic(self):
        result = taxes.calculate_income_tax(100_000, "single", 2026)
        assert result.taxable_income == 83_900
        # 10% of 12,400 + 12% of 38,000 + 22% of 33,500
        assert np.isclose(result.total_tax, 1_240 + 4_560 + 7_370)
        assert np.isclose(result.total_tax, 13_170)
        assert result.marginal_rate == 0.22
        assert np.isclose(result.effective_rate, 13_170 / 100_000)

    def test_slices_sum_to_total(self):
        for status in FilingStatus:
            for income in (0, 5_000, 47_250, 250_000, 1_500_000):
                result = taxes.calculate_income_tax(income, status)
                assert np.isclose(sum(s.tax_paid for s in result.slices), result.total_tax)
                assert np.isclose(sum(s.amount_in_bracket for s in result.slices), result.taxable_income)

    def test_monotonic_in_income(self):
        for status in FilingStatus:
            previous = -1.0
            for income in range(0, 1_000_001, 7_500):
                tax = taxes.calculate_income_tax(income, status).total_tax
                assert tax >= previous
                previous = tax

    def test_income_below_deduction(self):
        result = taxes.calculate_income_tax(10_000, "single")
        assert result.taxable_income == 0
        assert result.total_tax == 0
        assert result.effective_rate == 0
        assert result.marginal_rate == 0.10

    def test_zero_income(self):
        result = taxes.calculate_income_tax(0, "mfj")
        assert result.total_tax == 0
        assert result.effective_rate == 0

    def test_brackets_fill_without_gaps(self):
        result = taxes.calculate_income_tax(300_000, "single")
        for prev, cur in zip(result.slices, result.slices[1:]):
            assert prev.upper == cur.lower
        full = [s for s in result.slices if s.amount_in_bracket == s.upper - s.lower]
        assert len(full) == 5

    def test_deduction_override(self):
        result = taxes.calculate_income_tax(100_000, "single", deduction=0)
        assert result.taxable_income == 100_000

    def test_to_frame(self):
        df = taxes.calculate_income_tax(100_000, "single").to_frame()
        assert list(df.columns) == ["Rate", "Lower", "Upper", "Amount_In_Bracket", "Tax_Paid"]
        assert len(df) == 7
        assert np.isclose(df["Tax_Paid"].sum(), 13_170)


class TestFillBrackets:
    """Tests for fill_brackets function."""

    def test_negative_income_fills_nothing(self):
        brackets = get_tax_year_table().ordinary[FilingStatus.SINGLE]
        slices = taxes.fill_brackets(-500, brackets)
        assert all(s.amount_in_bracket == 0 for s in slices)


class TestCapitalGainsAndNiit:
    """Tests for calculate_ltcg_tax and calculate_niit functions."""

    def test_gains_inside_zero_bracket(self):
        assert taxes.calculate_ltcg_tax(20_000, ordinary_taxable_income=20_000) == 0

    def test_gains_stack_on_ordinary_income(self):
        # 9,450 at 0%, remaining 10,550 at 15%
        tax = taxes.calculate_ltcg_tax(20_000, ordinary_taxable_income=40_000)
        assert np.isclose(tax, 10_550 * 0.15)

    def test_gains_above_top_threshold(self):
        tax = taxes.calculate_ltcg_tax(100_000, ordinary_taxable_income=600_000)
        assert np.isclose(tax, 20_000)

    def test_niit_uses_lesser_amount(self):
        assert np.isclose(taxes.calculate_niit(30_000, magi=220_000), 20_000 * 0.038)
        assert np.isclose(taxes.calculate_niit(10_000, magi=300_000), 10_000 * 0.038)

    def test_niit_below_threshold(self):
        assert taxes.calculate_niit(50_000, magi=150_000) == 0
        assert taxes.calculate_niit(50_000, magi=240_000, filing_status="mfj") == 0


class TestHeadroom:
    """Tests for bracket_headroom, zero_ltcg_headroom and irmaa_surcharge."""

    def test_room_in_22_percent_bracket(self):
        assert taxes.bracket_headroom(83_900, 0.22) == 105_700 - 83_900

    def test_no_room_when_past_bracket(self):
        assert taxes.bracket_headroom(150_000, 0.12) == 0

    def test_unknown_rate_raises(self):
        with pytest.raises(ValueError):
            taxes.bracket_headroom(50_000, 0.15)

    def test_zero_ltcg_room(self):
        assert taxes.zero_ltcg_headroom(40_000) == 9_450
        assert taxes.zero_ltcg_headroom(60_000) == 0

    def test_irmaa_tiers(self):
        assert taxes.irmaa_surcharge(100_000).monthly_surcharge == 0
        second = taxes.irmaa_surcharge(120_000)
        assert second.tier == 1
        assert np.isclose(second.annual_surcharge, 81.20 * 12)
        assert taxes.irmaa_surcharge(1_000_000).monthly_surcharge == 487.00
        assert taxes.irmaa_surcharge(1_000_000).next_threshold is None
        assert taxes.irmaa_surcharge(200_000, "mfj").tier == 0
