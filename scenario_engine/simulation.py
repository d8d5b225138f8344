"""
PURPOSE: Core Monte Carlo scenario simulation engine for decision options.

For every option the engine samples each scenario variable, optionally
imposes rank-correlation structure, synthesizes one outcome per run and
reduces the run-set to risk metrics.

SINGLE RESPONSIBILITY:
- Validate configuration structure before any sampling
- Drive one seeded generator through sampling, reordering and game draws
- Return one SimulationResult per option, in input order (no I/O, no formatting)

CONSTRAINTS:
- Deterministic: results depend only on the inputs and the seed
- Does NOT modify inputs; reads only
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from .correlation import impose_correlation_matrix, impose_rank_correlation, is_symmetric
from .distributions import sample_variable_series
from .metrics import reduce_outcomes
from .models import (
    BayesianPriorOverride,
    CopulaMatrixConfig,
    DependenceConfig,
    GameInteractionConfig,
    Option,
    OptionGameStrategy,
    OurStrategy,
    ScenarioConfigError,
    ScenarioVariable,
    SimulationRequest,
    TCORParams,
    UtilityParams,
)
from .outcomes import effective_horizon_months, synthesize_outcomes
from .outputs import CopulaSnapshot, SimulationResult
from .prng import Mulberry32

logger = logging.getLogger(__name__)


def validate_configuration(
    variables: List[ScenarioVariable],
    runs: int,
    dependence: DependenceConfig | None = None,
    copula: CopulaMatrixConfig | None = None,
) -> None:
    """
    Structural checks that must pass before any sampling begins.

    Raises:
        ScenarioConfigError: On a non-positive run count, duplicate variable
            ids, a copula matrix whose size differs from the variable count
            or that is not symmetric, or a pairwise dependence naming an
            unknown or repeated variable.
    """
    if runs < 1:
        raise ScenarioConfigError("invalid_runs", f"runs must be at least 1, got {runs}")

    ids = [v.id for v in variables]
    if len(set(ids)) != len(ids):
        raise ScenarioConfigError("duplicate_variable_id", "variable ids must be unique")

    if copula is not None:
        if copula.k != len(variables):
            raise ScenarioConfigError(
                "dimension_mismatch",
                f"copula dimension {copula.k} does not match {len(variables)} variables",
            )
        if not is_symmetric(copula.matrix):
            raise ScenarioConfigError("matrix_not_symmetric", "copula matrix is not symmetric")

    if dependence is not None and copula is None:
        unknown = {dependence.var_a_id, dependence.var_b_id} - set(ids)
        if unknown:
            raise ScenarioConfigError(
                "unknown_variable",
                f"dependence refers to unknown variable(s): {', '.join(sorted(unknown))}",
            )
        if dependence.var_a_id == dependence.var_b_id:
            raise ScenarioConfigError(
                "dependence_same_variable", "dependence needs two different variables"
            )


def simulate_option(
    option: Option,
    variables: List[ScenarioVariable],
    runs: int,
    gen: Mulberry32,
    utility_params: UtilityParams | None = None,
    tcor_params: TCORParams | None = None,
    game_config: GameInteractionConfig | None = None,
    strategy: OurStrategy | None = None,
    dependence: DependenceConfig | None = None,
    bayesian_override: BayesianPriorOverride | None = None,
    copula: CopulaMatrixConfig | None = None,
    global_horizon_months: float | None = None,
) -> SimulationResult:
    """
    Run the full sample/reorder/synthesize/reduce pipeline for one option.

    Draw order on ``gen``: every variable's samples (in variable order), then
    the dependence reordering, then one game draw per run.
    """
    samples: Dict[str, np.ndarray] = {}
    for variable in variables:
        samples[variable.id] = sample_variable_series(variable, gen, runs, bayesian_override)

    copula_snapshot = None
    achieved_spearman = None

    if copula is not None and copula.k == len(variables):
        order = [v.id for v in variables]
        reordered = impose_correlation_matrix(
            samples, order, copula.matrix, copula.use_nearest_pd, gen
        )
        samples = reordered.samples
        copula_snapshot = CopulaSnapshot(
            k=copula.k,
            target=[list(row) for row in copula.matrix],
            achieved=reordered.achieved,
            fro_err=reordered.fro_err,
            feasible=reordered.feasible,
            repaired=reordered.repaired,
        )
        logger.debug(
            f"Option {option.id}: copula k={copula.k} fro_err={reordered.fro_err:.4f}"
        )
    elif dependence is not None:
        a = samples.get(dependence.var_a_id)
        b = samples.get(dependence.var_b_id)
        if a is not None and b is not None and dependence.var_a_id != dependence.var_b_id:
            samples[dependence.var_b_id], achieved_spearman = impose_rank_correlation(
                a, b, dependence.target_rho, gen
            )

    horizon_months = effective_horizon_months(option, global_horizon_months)
    outcomes = synthesize_outcomes(
        option,
        variables,
        samples,
        runs,
        gen,
        game_config=game_config,
        strategy=strategy,
        horizon_months=horizon_months,
    )
    outcomes.setflags(write=False)

    metrics = reduce_outcomes(
        outcomes,
        horizon_months / 12.0,
        option,
        utility_params=utility_params,
        tcor_params=tcor_params,
    )
    logger.debug(
        f"Option {option.id}: ev={metrics.ev:.4f} var95={metrics.var95:.4f} raroc={metrics.raroc:.4f}"
    )

    return SimulationResult(
        option_id=option.id,
        option_label=option.label,
        outcomes=outcomes,
        ev=metrics.ev,
        var95=metrics.var95,
        cvar95=metrics.cvar95,
        economic_capital=metrics.economic_capital,
        raroc=metrics.raroc,
        horizon_months=horizon_months,
        expected_utility=metrics.expected_utility,
        certainty_equivalent=metrics.certainty_equivalent,
        tcor_components=metrics.tcor,
        achieved_spearman=achieved_spearman,
        copula_snapshot=copula_snapshot,
    )


def run_simulation(
    options: List[Option],
    variables: List[ScenarioVariable],
    runs: int,
    seed: int,
    *,
    utility_params: UtilityParams | None = None,
    tcor_params: TCORParams | None = None,
    game_config: GameInteractionConfig | None = None,
    option_strategies: Optional[List[OptionGameStrategy]] = None,
    dependence: DependenceConfig | None = None,
    bayesian_override: BayesianPriorOverride | None = None,
    copula: CopulaMatrixConfig | None = None,
    global_horizon_months: float | None = None,
) -> List[SimulationResult]:
    """
    Simulate every option with one generator seeded from ``seed``.

    The generator advances monotonically across options, so the same inputs
    and seed always reproduce the same results. A copula matrix takes
    precedence over a pairwise dependence.

    Args:
        options: Decision options (one result each, same order)
        variables: Scenario variables shared by all options
        runs: Monte Carlo runs per option
        seed: Generator seed
        utility_params: Optional utility configuration
        tcor_params: Optional TCOR configuration
        game_config: Optional competitor-response game
        option_strategies: Our strategy per option id, for the game
        dependence: Optional pairwise rank-correlation target
        bayesian_override: Optional posterior override for one variable
        copula: Optional full target rank-correlation matrix
        global_horizon_months: Horizon for options without their own

    Returns:
        List of SimulationResult, one per option

    Raises:
        ScenarioConfigError: If the configuration is structurally malformed
    """
    validate_configuration(variables, runs, dependence=dependence, copula=copula)

    strategies = {s.option_id: s.strategy for s in option_strategies or []}
    gen = Mulberry32(seed)
    logger.debug(
        f"Running simulation: {len(options)} options, {len(variables)} variables, "
        f"{runs} runs, seed={seed}"
    )

    return [
        simulate_option(
            option,
            variables,
            runs,
            gen,
            utility_params=utility_params,
            tcor_params=tcor_params,
            game_config=game_config,
            strategy=strategies.get(option.id),
            dependence=dependence,
            bayesian_override=bayesian_override,
            copula=copula,
            global_horizon_months=global_horizon_months,
        )
        for option in options
    ]


class MonteCarloSimulation:
    """
    Scenario simulation for a bundled SimulationRequest.

    Example:
        >>> request = SimulationRequest(options=[...], variables=[...], runs=10000, seed=42)
        >>> results = MonteCarloSimulation(request).run()
    """

    def __init__(self, request: SimulationRequest):
        self.request = request

    def run(self) -> List[SimulationResult]:
        r = self.request
        return run_simulation(
            r.options,
            r.variables,
            r.runs,
            r.seed,
            utility_params=r.utility_params,
            tcor_params=r.tcor_params,
            game_config=r.game_config,
            option_strategies=r.option_strategies,
            dependence=r.dependence,
            bayesian_override=r.bayesian_override,
            copula=r.copula,
            global_horizon_months=r.global_horizon_months,
        )
