import math
from dataclasses import dataclass, field
from typing import List, Optional

import numba as nb
import numpy as np
import pandas as pd

from app_settings import ProjectionSettings
from retirement_rules import rmd_divisor, social_security_benefit
from tax_tables import SP500_START_YEAR, WALK_RETURNS
from taxes import calculate_income_tax

PERCENTILES = (10, 25, 50, 75, 90)
TRIM_FRACTION = 0.025
SEED_CEILING = 2**31 - 1

# Share of a ruined path that a spending cut could have saved, by years survived
PREVENTION_RATES = ((5, 0.75), (10, 0.65), (15, 0.45), (20, 0.30), (25, 0.15))
LATE_FAILURE_PREVENTION_RATE = 0.05
REFERENCE_SPENDING_REDUCTION = 0.10


@dataclass
class CalculationResult:
    """One simulated path from today to the end of the plan."""

    seed: int
    ages: np.ndarray
    balances_nominal: np.ndarray
    balances_real: np.ndarray
    eol_real: float
    y1_after_tax_real: float
    ruined: bool
    surv_yrs: int


@dataclass
class RunSummary:
    eol_real: float
    y1_after_tax_real: float
    ruined: bool
    surv_yrs: int


@dataclass
class BatchSummary:
    ages: np.ndarray
    balances_real_pct: dict
    eol_real_pct: dict
    y1_after_tax_real_pct: dict
    prob_ruin: float
    n_runs: int
    all_runs: List[RunSummary] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        """Percentile bands of the real balance by age, one column per percentile."""
        data = {"Age": self.ages}
        for p in PERCENTILES:
            data[f"P{p}"] = self.balances_real_pct[p]
        return pd.DataFrame(data)


@dataclass
class GuardrailsResult:
    total_failures: int
    preventable_failures: int
    baseline_success_rate: float
    new_success_rate: float
    improvement: float
    spending_reduction: float


def build_return_factors(settings: ProjectionSettings, years: int, rng: np.random.Generator) -> np.ndarray:
    """
    Gross annual return factors (e.g. 1.07 for +7%) for ``years`` years.

    ``fixed`` repeats the nominal assumption. ``historical`` replays the walk data
    sequentially from ``historical_start_year``, wrapping at the end. ``random``
    bootstraps years from the walk data. With a real walk series the historical
    and random factors are deflated by the inflation assumption.
    """
    if years <= 0:
        return np.empty(0, dtype=np.float64)

    if settings.return_mode == "fixed":
        return np.full(years, 1.0 + settings.nominal_return_pct / 100.0, dtype=np.float64)

    data = np.asarray(WALK_RETURNS, dtype=np.float64)
    if settings.return_mode == "historical":
        start = settings.historical_start_year - SP500_START_YEAR
        idx = (start + np.arange(years)) % len(data)
    else:
        idx = rng.integers(0, len(data), size=years)

    factors = 1.0 + data[idx] / 100.0
    if settings.walk_series == "real":
        factors = factors / (1.0 + settings.inflation_pct / 100.0)
    return factors


def effective_inflation(settings: ProjectionSettings) -> float:
    """Inflation used for spending and deflating; a real series is already net of it."""
    if settings.return_mode != "fixed" and settings.walk_series == "real":
        return 0.0
    return settings.inflation_pct / 100.0


@nb.jit(nopython=True)
def simulate_drawdown(growth_factors, start_balance, first_year_spending, inflation_rate,
                      income_offsets, rmd_divisors):
    """
    Withdraw-then-grow loop for the retirement years of one path.

    Spending starts at ``first_year_spending`` and rises with inflation. Outside
    income reduces what the portfolio must pay, and a positive RMD divisor
    forces at least ``balance / divisor`` out. Returns the end-of-year balances,
    the gross draws, and the 1-based year the portfolio ran out (0 if never).
    """
    n = len(growth_factors)
    balances = np.zeros(n)
    draws = np.zeros(n)
    value = start_balance
    spending = first_year_spending
    ruined_year = 0

    for i in range(n):
        draw = spending - income_offsets[i]
        if draw < 0.0:
            draw = 0.0
        if rmd_divisors[i] > 0.0:
            rmd = value / rmd_divisors[i]
            if rmd > draw:
                draw = rmd
        if draw >= value:
            draws[i] = value
            ruined_year = i + 1
            break
        draws[i] = draw
        value = (value - draw) * growth_factors[i]
        balances[i] = value
        spending *= 1.0 + inflation_rate

    return balances, draws, ruined_year


def run_single_simulation(settings: ProjectionSettings, seed: int) -> CalculationResult:
    """Accumulate to retirement, then draw down to life expectancy, for one return path."""
    rng = np.random.default_rng(seed)
    acc_years = settings.years_to_retirement
    ret_years = settings.years_in_retirement
    factors = build_return_factors(settings, acc_years + ret_years, rng)
    inflation = effective_inflation(settings)

    value = settings.starting_balance
    contribution = settings.annual_contribution
    acc_balances = np.zeros(acc_years)
    for i in range(acc_years):
        value = value * factors[i] + contribution
        contribution *= 1.0 + settings.contribution_growth_pct / 100.0
        acc_balances[i] = value

    first_year_spending = value * settings.withdrawal_rate_pct / 100.0
    inflation_at_retirement = (1.0 + inflation) ** acc_years

    ret_ages = settings.retirement_age + np.arange(ret_years)
    income_offsets = np.zeros(ret_years)
    if settings.social_security_earnings > 0:
        benefit_today = social_security_benefit(
            settings.social_security_earnings, settings.social_security_claim_age
        )
        for i, age in enumerate(ret_ages):
            if age >= settings.social_security_claim_age:
                income_offsets[i] = benefit_today * inflation_at_retirement * (1.0 + inflation) ** i
    divisors = np.array([rmd_divisor(int(age)) or 0.0 for age in ret_ages], dtype=np.float64)

    ret_balances, draws, ruined_year = simulate_drawdown(
        factors[acc_years:], float(value), float(first_year_spending), float(inflation),
        income_offsets, divisors,
    )

    nominal = np.concatenate([acc_balances, ret_balances])
    deflators = (1.0 + inflation) ** np.arange(1, acc_years + ret_years + 1)
    real = nominal / deflators
    ages = settings.current_age + np.arange(1, acc_years + ret_years + 1)

    y1_after_tax_real = 0.0
    if ret_years > 0:
        # Taxed in today's dollars so the brackets line up
        draw_real = draws[0] / inflation_at_retirement
        ss_real = income_offsets[0] / inflation_at_retirement
        gross_real = draw_real + ss_real
        # At most 85% of Social Security is taxable
        taxable_real = draw_real + 0.85 * ss_real
        tax_real = calculate_income_tax(taxable_real, settings.filing_status).total_tax
        y1_after_tax_real = gross_real - tax_real

    return CalculationResult(
        seed=int(seed),
        ages=ages,
        balances_nominal=nominal,
        balances_real=real,
        eol_real=float(real[-1]) if len(real) else float(settings.starting_balance),
        y1_after_tax_real=float(y1_after_tax_real),
        ruined=ruined_year > 0,
        surv_yrs=int(ruined_year) if ruined_year > 0 else ret_years,
    )


def trimmed(values: np.ndarray, n_total: int) -> np.ndarray:
    """Sorted copy with the most extreme 2.5% dropped from each end."""
    trim_count = int(math.floor(n_total * TRIM_FRACTION))
    ordered = np.sort(values)
    if trim_count == 0 or len(ordered) <= 2 * trim_count:
        return ordered
    return ordered[trim_count:len(ordered) - trim_count]


def percentile_bands(values: np.ndarray, n_total: int) -> dict:
    kept = trimmed(values, n_total)
    return {p: float(np.percentile(kept, p)) for p in PERCENTILES}


def run_monte_carlo(settings: ProjectionSettings, n_runs: Optional[int] = None, base_seed: Optional[int] = None,
                    verbose=False, on_progress=None, on_status=None) -> BatchSummary:
    """
    Run many independent paths and summarize the spread of outcomes.

    Parameters
    ----------
    settings : ProjectionSettings
        Ages, balances, return and spending assumptions.
    n_runs : int, optional
        Number of paths (defaults to ``settings.n_runs``).
    base_seed : int, optional
        Seeds the generator that hands out per-path seeds (defaults to
        ``settings.seed``), so a batch is reproducible.
    verbose : bool, optional
        Print progress (default False)
    on_progress : callable, optional
        Called as ``on_progress(current, total)`` after each path.
    on_status : callable, optional
        Called with short status messages.

    Returns
    -------
    BatchSummary
        Percentile bands (10/25/50/75/90) of the real balance for every age, of
        the end-of-life balance and of first-year after-tax income, each after
        trimming the outer 2.5% of paths; the probability of ruin; and one
        ``RunSummary`` per path.
    """
    n_runs = int(n_runs if n_runs is not None else settings.n_runs)
    base_seed = int(base_seed if base_seed is not None else settings.seed)
    seeds = np.random.default_rng(base_seed).integers(0, SEED_CEILING, size=n_runs)

    if on_status:
        on_status(f"Simulating {n_runs:,} paths")
    if verbose:
        print(f"Running {n_runs:,} paths ({settings.return_mode} returns, seed {base_seed})...")

    paths = []
    runs = []
    ages = None
    for i, seed in enumerate(seeds):
        result = run_single_simulation(settings, int(seed))
        ages = result.ages
        paths.append(result.balances_real)
        runs.append(RunSummary(
            eol_real=result.eol_real,
            y1_after_tax_real=result.y1_after_tax_real,
            ruined=result.ruined,
            surv_yrs=result.surv_yrs,
        ))
        if on_progress:
            on_progress(i + 1, n_runs)
        if verbose and (i + 1) % 500 == 0:
            print(f"Completed {i + 1:,}/{n_runs:,} paths")

    matrix = np.vstack(paths) if paths else np.zeros((0, 0))
    balances_pct = {p: np.zeros(matrix.shape[1]) for p in PERCENTILES}
    for col in range(matrix.shape[1]):
        bands = percentile_bands(matrix[:, col], n_runs)
        for p in PERCENTILES:
            balances_pct[p][col] = bands[p]

    eol = np.array([r.eol_real for r in runs])
    y1 = np.array([r.y1_after_tax_real for r in runs])
    prob_ruin = sum(r.ruined for r in runs) / n_runs

    if verbose:
        print(f"Probability of ruin: {prob_ruin:.1%}")

    return BatchSummary(
        ages=ages if ages is not None else np.zeros(0),
        balances_real_pct=balances_pct,
        eol_real_pct=percentile_bands(eol, n_runs),
        y1_after_tax_real_pct=percentile_bands(y1, n_runs),
        prob_ruin=prob_ruin,
        n_runs=n_runs,
        all_runs=runs,
    )


def prevention_rate(surv_yrs: int) -> float:
    """Chance that cutting spending would have saved a path that failed after ``surv_yrs`` years."""
    for limit, rate in PREVENTION_RATES:
        if surv_yrs <= limit:
            return rate
    return LATE_FAILURE_PREVENTION_RATE


def analyze_guardrails(runs: List[RunSummary], spending_reduction: float = REFERENCE_SPENDING_REDUCTION) -> GuardrailsResult:
    """
    Estimate how many ruined paths a spending guardrail would have rescued.

    Early failures are the most preventable. The rescue chance scales linearly
    with the size of the cut, reaching the full table rate at a 10% cut.
    """
    total = len(runs)
    failed = [r for r in runs if r.ruined]
    if total == 0 or not failed:
        return GuardrailsResult(
            total_failures=0,
            preventable_failures=0,
            baseline_success_rate=1.0,
            new_success_rate=1.0,
            improvement=0.0,
            spending_reduction=spending_reduction,
        )

    scale = min(1.0, spending_reduction / REFERENCE_SPENDING_REDUCTION)
    preventable = sum(prevention_rate(r.surv_yrs) * scale for r in failed)

    baseline = (total - len(failed)) / total
    new_rate = (total - len(failed) + preventable) / total
    return GuardrailsResult(
        total_failures=len(failed),
        preventable_failures=int(round(preventable)),
        baseline_success_rate=baseline,
        new_success_rate=new_rate,
        improvement=new_rate - baseline,
        spending_reduction=spending_reduction,
    )
