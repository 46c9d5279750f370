"""Tests for fire.py calculations."""

import datetime
import math
import numpy as np
import pytest

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import fire
from fire import FireInputs, FireVariant, WithdrawalRule


class TestFireNumber:
    """Tests for fire_number and coast_fire_number functions."""

    def test_four_percent_rule(self):
        assert fire.fire_number(60_000, WithdrawalRule.FOUR_PERCENT) == 1_500_000

    def test_three_percent_rule(self):
        assert np.isclose(fire.fire_number(60_000, "3percent"), 60_000 * 33.33)

    def test_variable_rule_uses_25x(self):
        assert fire.fire_number(40_000, "variable") == 1_000_000

    def test_coast_discounting(self):
        assert np.isclose(fire.coast_fire_number(1_000_000, 5, 10), 1_000_000 / 1.05 ** 10)

    def test_coast_with_no_years_left(self):
        assert fire.coast_fire_number(1_000_000, 5, 0) == 1_000_000

    def test_coast_past_target_age_compounds_forward(self):
        assert np.isclose(fire.coast_fire_number(1_000_000, 5, -2), 1_000_000 * 1.05 ** 2)


class TestYearsToFire:
    """Tests for years_to_fire function."""

    def test_already_funded_returns_zero(self):
        assert fire.years_to_fire(2_000_000, 0, 1_500_000, 5) == 0
        assert fire.years_to_fire(1_500_000, -10_000, 1_500_000, 5) == 0

    def test_no_savings_returns_inf(self):
        assert math.isinf(fire.years_to_fire(100_000, 0, 1_500_000, 5))
        assert math.isinf(fire.years_to_fire(100_000, -5_000, 1_500_000, 5))

    def test_matches_closed_form_within_search_precision(self):
        current, savings, target, pct = 100_000, 40_000, 1_875_000, 4
        r = pct / 100
        exact = math.log((target * r + savings) / (current * r + savings)) / math.log(1 + r)
        result = fire.years_to_fire(current, savings, target, pct)
        assert abs(result - exact) <= 0.15

    def test_result_is_tenth_of_a_year(self):
        result = fire.years_to_fire(50_000, 30_000, 1_000_000, 6)
        assert np.isclose(result * 10, round(result * 10))

    def test_zero_return_is_linear(self):
        result = fire.years_to_fire(0, 10_000, 100_000, 0)
        assert 10.0 <= result <= 10.1 + 1e-9

    def test_unreachable_within_search_range(self):
        assert fire.years_to_fire(0, 1, 1_000_000_000, 0) == 100.0


class TestSavingsRateTable:
    """Tests for years_to_fi_for_savings_rate function."""

    def test_table_points(self):
        assert fire.years_to_fi_for_savings_rate(50) == 16.6
        assert fire.years_to_fi_for_savings_rate(10) == 51.4

    def test_interpolates(self):
        assert np.isclose(fire.years_to_fi_for_savings_rate(45), (21.6 + 16.6) / 2)

    def test_clamps_at_ends(self):
        assert fire.years_to_fi_for_savings_rate(5) == 51.4
        assert fire.years_to_fi_for_savings_rate(95) == 2.7


class TestCalculateFireResults:
    """Tests for calculate_fire_results function."""

    @pytest.fixture
    def today(self):
        return datetime.date(2026, 1, 15)

    def test_regular_defaults(self, today):
        result = fire.calculate_fire_results(FireInputs(), today=today)
        # 60k expenses plus 15k pre-Medicare healthcare
        assert result.adjusted_expenses == 75_000
        assert result.fire_number == 1_875_000
        assert result.annual_savings == 40_000
        assert result.savings_rate == 40
        assert result.real_return == 4
        assert result.monthly_expenses == 6_250
        assert np.isclose(result.current_progress, 100_000 / 1_875_000 * 100)
        assert result.safe_withdrawal_rate == 4
        assert np.isclose(result.annual_withdrawal, 75_000)
        assert result.fire_year == 2026 + math.ceil(result.years_to_fire)
        assert result.retirement_fire_number is None

    def test_healthcare_only_before_medicare(self, today):
        result = fire.calculate_fire_results(FireInputs(current_age=66), today=today)
        assert result.adjusted_expenses == 60_000

    def test_barista_subtracts_part_time_income(self, today):
        inputs = FireInputs(variant=FireVariant.BARISTA, annual_expenses=50_000, part_time_income=20_000)
        result = fire.calculate_fire_results(inputs, today=today)
        assert result.adjusted_expenses == 45_000

    def test_barista_floor_at_zero(self, today):
        inputs = FireInputs(variant="barista", annual_expenses=10_000, include_healthcare=False,
                            part_time_income=30_000)
        result = fire.calculate_fire_results(inputs, today=today)
        assert result.adjusted_expenses == 0
        assert result.fire_number == 0
        assert result.years_to_fire == 0

    def test_coast_targets_discounted_number(self, today):
        inputs = FireInputs(variant=FireVariant.COAST, coast_target_age=65)
        result = fire.calculate_fire_results(inputs, today=today)
        coast_target = 75_000 * 25 / 1.04 ** 35
        assert np.isclose(result.fire_number, coast_target)
        assert result.retirement_fire_number == 1_875_000
        assert result.years_to_fire == fire.years_to_fire(100_000, 40_000, coast_target, 4)
        assert result.years_to_fire < fire.calculate_fire_results(FireInputs(), today=today).years_to_fire
        assert np.isclose(result.current_progress, 100_000 / coast_target * 100)
        assert np.isclose(result.annual_withdrawal, coast_target * 0.04)

    def test_no_savings(self, today):
        inputs = FireInputs(annual_income=50_000, annual_expenses=60_000)
        result = fire.calculate_fire_results(inputs, today=today)
        assert math.isinf(result.years_to_fire)
        assert result.fire_year is None
        assert len(result.projections) == fire.MAX_PROJECTION_YEARS + 1

    def test_projection_shape(self, today):
        result = fire.calculate_fire_results(FireInputs(), today=today)
        df = result.projections
        horizon = min(math.ceil(result.years_to_fire) + 5, fire.MAX_PROJECTION_YEARS)
        assert len(df) == horizon + 1
        assert df.iloc[0]["Balance"] == 100_000
        assert df.iloc[0]["Year"] == 2026
        assert df.iloc[0]["Age"] == 30
        assert df["Balance"].is_monotonic_increasing

    def test_medicare_gap(self, today):
        result = fire.calculate_fire_results(FireInputs(), today=today)
        assert np.isclose(result.years_until_medicare, max(0, 65 - result.fire_age))
