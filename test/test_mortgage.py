"""Tests for mortgage.py calculations."""

import math
import numpy as np
import pytest

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import mortgage
from mortgage import RefinanceInputs, TermVerdict


class TestMonthlyPayment:
    """Tests for monthly_payment and total_interest functions."""

    def test_standard_amortization(self):
        assert np.isclose(mortgage.monthly_payment(300_000, 6.5, 30), 1_896.20, atol=0.5)

    def test_zero_rate_is_straight_line(self):
        assert mortgage.monthly_payment(120_000, 0, 10) == 1_000

    def test_no_principal(self):
        assert mortgage.monthly_payment(0, 6, 30) == 0
        assert mortgage.monthly_payment(-5, 6, 30) == 0

    def test_total_interest(self):
        payment = mortgage.monthly_payment(200_000, 5, 15)
        assert np.isclose(mortgage.total_interest(200_000, 5, 15), payment * 180 - 200_000)
        assert mortgage.total_interest(120_000, 0, 10) == 0


class TestBreakeven:
    """Tests for calculate_breakeven function."""

    def test_months_rounded_up(self):
        result = mortgage.calculate_breakeven(2_000, 1_800, 6_000)
        assert result.months == 30
        assert result.years == 2.5

        result = mortgage.calculate_breakeven(2_000, 1_900, 6_050)
        assert result.months == 61

    def test_points_add_to_costs(self):
        result = mortgage.calculate_breakeven(2_000, 1_800, 6_000, points_cost=2_000)
        assert result.total_costs == 8_000
        assert result.months == 40

    def test_no_savings_is_infinite(self):
        for new_payment in (2_000, 2_500):
            result = mortgage.calculate_breakeven(2_000, new_payment, 6_000)
            assert math.isinf(result.months)
            assert math.isinf(result.years)


class TestExtraPayments:
    """Tests for payoff_months_with_extra and extra_payment_savings functions."""

    def test_zero_balance(self):
        assert mortgage.payoff_months_with_extra(0, 5, 1_000) == 0

    def test_no_payment_is_infinite(self):
        assert math.isinf(mortgage.payoff_months_with_extra(10_000, 5, 0, 0))

    def test_zero_rate_payoff(self):
        assert mortgage.payoff_months_with_extra(12_000, 0, 1_000) == 12
        assert mortgage.payoff_months_with_extra(12_000, 0, 1_000, extra=1_000) == 6

    def test_capped_at_360_months(self):
        # Payment barely covers interest
        assert mortgage.payoff_months_with_extra(300_000, 6, 1_500.01) == 360

    def test_extra_saves_time_and_interest(self):
        payment = mortgage.monthly_payment(300_000, 6, 30)
        result = mortgage.extra_payment_savings(300_000, 6, payment, 30, 200)
        assert result.original_payoff_months == 360
        assert result.new_payoff_months < 360
        assert result.months_saved > 0
        assert result.interest_saved > 0

    def test_baseline_uses_stated_payment_and_term(self):
        result = mortgage.extra_payment_savings(120_000, 0, 1_000, 10, 1_000)
        assert result.original_payoff_months == 120
        assert result.new_payoff_months == 60
        assert result.months_saved == 60
        assert result.interest_saved == 0

    def test_remaining_interest(self):
        assert mortgage.remaining_interest(300_000, 2_500, 300) == 450_000


class TestTermAnalysis:
    """Tests for term_analysis function."""

    def test_verdicts(self):
        assert mortgage.term_analysis(15, 25)[0] == TermVerdict.SHORTER
        assert mortgage.term_analysis(30, 25)[0] == TermVerdict.LONGER
        assert mortgage.term_analysis(30, 29.5)[0] == TermVerdict.SAME

    def test_boundary_is_same(self):
        verdict, message, diff = mortgage.term_analysis(30, 29)
        assert diff == 12
        assert verdict == TermVerdict.SAME
        assert message.startswith("Similar timeline")


class TestAnalyzeRefinance:
    """Tests for analyze_refinance function."""

    def test_defaults_extend_the_term(self):
        analysis = mortgage.analyze_refinance(RefinanceInputs())
        assert analysis.term_verdict == TermVerdict.LONGER
        assert analysis.interest_savings < 0
        assert not analysis.should_refinance
        assert analysis.reason == "You'll pay more total interest with this refinance."

    def test_higher_payment_not_recommended(self):
        analysis = mortgage.analyze_refinance(RefinanceInputs(new_term_years=15))
        assert analysis.new_payment > RefinanceInputs().current_payment
        assert analysis.term_verdict == TermVerdict.SHORTER
        assert math.isinf(analysis.breakeven.months)
        assert not analysis.should_refinance
        assert analysis.reason == "The new payment is higher than your current payment."

    def test_quick_payback(self):
        inputs = RefinanceInputs(current_rate=7.5, current_payment=2_097.64, years_remaining=30,
                                 new_rate=6.0, new_term_years=30, closing_costs=3_000)
        analysis = mortgage.analyze_refinance(inputs)
        assert analysis.breakeven.months == math.ceil(3_000 / (2_097.64 - analysis.new_payment))
        assert analysis.should_refinance
        assert analysis.reason.startswith("Quick payback in")

    def test_long_breakeven(self):
        inputs = RefinanceInputs(current_payment=1_896.20, years_remaining=30, new_rate=6.2,
                                 new_term_years=30, closing_costs=6_000)
        analysis = mortgage.analyze_refinance(inputs)
        assert analysis.breakeven.months > 60
        assert not analysis.should_refinance
        assert analysis.reason.startswith("It takes")

    def test_small_rate_reduction(self):
        inputs = RefinanceInputs(current_payment=1_896.20, years_remaining=30, new_rate=6.2,
                                 new_term_years=30, closing_costs=1_000)
        analysis = mortgage.analyze_refinance(inputs)
        assert not analysis.should_refinance
        assert analysis.reason == "Rate reduction is less than 0.5%. May not be worth the hassle."

    def test_cash_out(self):
        analysis = mortgage.analyze_refinance(RefinanceInputs(use_cash_out=True))
        assert analysis.new_balance == 350_000
        assert np.isclose(analysis.cash_out_benefit, (50_000 * 0.18 - 50_000 * 0.055) * 10)

    def test_points(self):
        analysis = mortgage.analyze_refinance(RefinanceInputs(use_points=True))
        assert analysis.effective_rate == 5.25
        assert analysis.points_breakeven_months > 0
        assert analysis.breakeven.total_costs == 9_000

    def test_points_never_push_rate_negative(self):
        analysis = mortgage.analyze_refinance(
            RefinanceInputs(new_rate=0.1, use_points=True, points_rate_reduction=0.25)
        )
        assert analysis.effective_rate == 0.0

    def test_current_interest_uses_stated_payment(self):
        inputs = RefinanceInputs(current_balance=300_000, current_payment=2_500, years_remaining=25)
        analysis = mortgage.analyze_refinance(inputs)
        assert analysis.current_total_interest == 2_500 * 300 - 300_000
        assert np.isclose(analysis.interest_savings, 450_000 - analysis.new_total_interest)

    def test_extra_payments_apply_to_current_loan(self):
        analysis = mortgage.analyze_refinance(RefinanceInputs())
        extra = analysis.extra_payment
        assert extra.original_payoff_months == 300
        assert extra.new_payoff_months == mortgage.payoff_months_with_extra(300_000, 6.5, 1_896, 200)
        assert extra.new_payoff_months == 277
        assert extra.months_saved == 23

    def test_no_optional_figures_by_default(self):
        analysis = mortgage.analyze_refinance(RefinanceInputs())
        assert analysis.cash_out_benefit is None
        assert analysis.points_breakeven_months is None
