"""
PURPOSE: Combine an option's base return/cost with sampled drivers into outcomes.

SINGLE RESPONSIBILITY:
- Apply variable multipliers (1 + weight * sample) to return or cost per run
- Apply the optional 2×2 competitor-response game multipliers
- Scale the annual outcome vector to the effective horizon
- Return raw outcome arrays (no statistics, no formatting)
"""

from typing import Dict, List

import numpy as np

from .config import DEFAULT_HORIZON_MONTHS
from .models import (
    AppliesTo,
    CompetitorMove,
    GameInteractionConfig,
    Option,
    OurStrategy,
    ScenarioVariable,
)
from .prng import Mulberry32


def effective_horizon_months(option: Option, global_horizon_months=None) -> float:
    """Option horizon if set, else the global horizon, else 12 months."""
    if option.horizon_months is not None:
        return option.horizon_months
    if global_horizon_months is not None:
        return global_horizon_months
    return DEFAULT_HORIZON_MONTHS


def scale_to_horizon(outcomes: np.ndarray, horizon_months: float) -> np.ndarray:
    """Scale annual outcomes linearly by h = horizon_months / 12."""
    return outcomes * (horizon_months / 12.0)


def apply_game_interaction(
    ret: np.ndarray,
    cost: np.ndarray,
    game_config: GameInteractionConfig,
    strategy: OurStrategy,
    gen: Mulberry32,
):
    """
    Draw the competitor's response per run and apply the matching multipliers.

    One draw per run: a draw below ``p_undercut`` means Undercut, else Match.

    Returns:
        Tuple of (return array, cost array) after the multipliers
    """
    undercut = gen.random(ret.size) < game_config.p_undercut
    on_undercut = game_config.multipliers[CompetitorMove.UNDERCUT]
    on_match = game_config.multipliers[CompetitorMove.MATCH]

    ret_mult = np.where(undercut, on_undercut.ret_mult[strategy], on_match.ret_mult[strategy])
    cost_mult = np.where(undercut, on_undercut.cost_mult[strategy], on_match.cost_mult[strategy])
    return ret * ret_mult, cost * cost_mult


def synthesize_outcomes(
    option: Option,
    variables: List[ScenarioVariable],
    samples: Dict[str, np.ndarray],
    runs: int,
    gen: Mulberry32,
    game_config: GameInteractionConfig | None = None,
    strategy: OurStrategy | None = None,
    horizon_months: float = DEFAULT_HORIZON_MONTHS,
) -> np.ndarray:
    """
    Build one horizon-scaled outcome per run.

    Per run the base return and cost are multiplied, variable by variable in
    the given order, by ``1 + weight * sample`` and clamped at zero after each
    step. Game multipliers follow when both a config and a strategy are given.
    The run outcome is return minus cost, then scaled to the horizon.

    Args:
        option: Decision option supplying base return and cost
        variables: Scenario variables, applied in order
        samples: Per-variable samples (length ``runs``) keyed by variable id
        runs: Number of runs
        gen: Generator to advance (only used by the game interaction)
        game_config: Optional competitor-response configuration
        strategy: Our strategy for this option
        horizon_months: Effective horizon in months

    Returns:
        numpy array of ``runs`` outcomes
    """
    ret = np.full(runs, float(option.expected_return))
    cost = np.full(runs, float(option.cost))

    for variable in variables:
        x = samples.get(variable.id)
        if x is None:
            continue
        factor = 1.0 + variable.weight * np.asarray(x, dtype=float)
        if variable.applies_to == AppliesTo.RETURN:
            ret = np.maximum(0.0, ret * factor)
        else:
            cost = np.maximum(0.0, cost * factor)

    if game_config is not None and strategy is not None:
        ret, cost = apply_game_interaction(ret, cost, game_config, strategy, gen)

    return scale_to_horizon(ret - cost, horizon_months)
