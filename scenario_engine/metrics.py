"""
PURPOSE: Reduce a run-set of outcomes to risk and performance metrics.

RESPONSIBILITIES:
- EV, VaR95, CVaR95, Economic Capital and RAROC
- Expected utility and certainty equivalent under five utility modes
- Total Cost of Risk (expected loss, insurance, contingency, mitigation)
- Single responsibility: statistics only, no sampling or formatting
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import MIN_ECONOMIC_CAPITAL, RISK_NEUTRAL_EPSILON, VAR_TAIL
from .models import Option, TCORParams, UtilityMode, UtilityParams


@dataclass(frozen=True)
class TCORBreakdown:
    """Components of the Total Cost of Risk."""
    expected_loss: float
    insurance: float
    contingency: float
    mitigation: float

    @property
    def total(self) -> float:
        return self.expected_loss + self.insurance + self.contingency + self.mitigation


@dataclass(frozen=True)
class RiskMetrics:
    ev: float
    var95: float
    cvar95: float
    economic_capital: float
    raroc: float
    expected_utility: Optional[float] = None
    certainty_equivalent: Optional[float] = None
    tcor: Optional[TCORBreakdown] = None


def _positive_only(x: np.ndarray) -> np.ndarray:
    # Placeholder 1.0 keeps log/power finite where the result is replaced by -inf.
    return np.where(x > 0, x, 1.0)


def compute_utility(outcomes, params: UtilityParams) -> np.ndarray:
    """
    Per-run utility for the selected mode.

    CARA and Exponential fall back to risk neutral (U = x/scale) when
    ``a`` is ~0. CRRA and Power are undefined for non-positive outcomes and
    return -inf there.

    Args:
        outcomes: Outcome values
        params: Utility mode, risk aversion ``a`` and scale divisor

    Returns:
        numpy array of utilities
    """
    x = np.asarray(outcomes, dtype=float)
    xs = x / params.scale
    a = params.a

    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        if params.mode == UtilityMode.CARA:
            if a > RISK_NEUTRAL_EPSILON:
                return 1.0 - np.exp(-a * xs)
            return xs

        if params.mode == UtilityMode.EXPONENTIAL:
            if a > RISK_NEUTRAL_EPSILON:
                return -np.exp(-a * xs)
            return xs

        if params.mode == UtilityMode.QUADRATIC:
            return xs - (a / 2.0) * xs * xs

        if params.mode == UtilityMode.CRRA:
            safe = _positive_only(x)
            if abs(a - 1.0) < RISK_NEUTRAL_EPSILON:
                u = np.log(safe)
            else:
                u = np.power(safe, 1.0 - a) / (1.0 - a)
            return np.where(x > 0, u, -np.inf)

        if params.mode == UtilityMode.POWER:
            safe = _positive_only(x)
            alpha = 1.0 - a
            if abs(alpha) < RISK_NEUTRAL_EPSILON:
                u = np.log(safe)
            else:
                u = np.power(safe, alpha)
            return np.where(x > 0, u, -np.inf)

    raise ValueError(f"Unknown utility mode: {params.mode}")


def certainty_equivalent(expected_utility: float, params: UtilityParams) -> float:
    """
    Invert the utility function at the expected utility.

    An undefined expected utility (-inf or NaN, from CRRA/Power on
    non-positive outcomes) gives an undefined certainty equivalent.
    """
    eu = float(expected_utility)
    a = params.a
    scale = params.scale

    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        if params.mode == UtilityMode.CARA:
            if a > RISK_NEUTRAL_EPSILON:
                return float((-1.0 / a) * np.log(1.0 - eu) * scale)
            return eu * scale

        if params.mode == UtilityMode.EXPONENTIAL:
            if a > RISK_NEUTRAL_EPSILON:
                return float((-1.0 / a) * np.log(-eu) * scale)
            return eu * scale

        if params.mode == UtilityMode.QUADRATIC:
            if a > RISK_NEUTRAL_EPSILON:
                discriminant = 1.0 - 2.0 * a * eu
                if discriminant < 0:
                    return 0.0
                return (1.0 - math.sqrt(discriminant)) / a * scale
            return eu * scale

        if params.mode == UtilityMode.CRRA:
            if not math.isfinite(eu):
                return eu
            if abs(a - 1.0) < RISK_NEUTRAL_EPSILON:
                return float(np.exp(eu))
            base = (1.0 - a) * eu
            if base <= 0:
                return 0.0
            return float(np.power(base, 1.0 / (1.0 - a)))

        if params.mode == UtilityMode.POWER:
            if not math.isfinite(eu):
                return eu
            alpha = 1.0 - a
            if abs(alpha) < RISK_NEUTRAL_EPSILON:
                return float(np.exp(eu))
            if eu <= 0:
                return 0.0
            return float(np.power(eu, 1.0 / alpha))

    raise ValueError(f"Unknown utility mode: {params.mode}")


def compute_tcor(
    outcomes: np.ndarray,
    economic_capital: float,
    params: TCORParams,
    option: Option,
) -> TCORBreakdown:
    """Total Cost of Risk components for one option's outcomes."""
    losses = outcomes[outcomes < 0]
    p_loss = losses.size / outcomes.size
    mean_loss_neg = float(np.mean(np.abs(losses))) if losses.size else 0.0

    return TCORBreakdown(
        expected_loss=p_loss * mean_loss_neg,
        insurance=params.insurance_rate * option.cost,
        contingency=params.contingency_rate * economic_capital,
        mitigation=option.mitigation_cost or 0.0,
    )


def tail_index(n: int) -> int:
    """Index of VaR95 in an ascending sort of ``n`` outcomes."""
    return int(math.floor(n * VAR_TAIL))


def reduce_outcomes(
    outcomes,
    horizon_h: float,
    option: Option,
    utility_params: UtilityParams | None = None,
    tcor_params: TCORParams | None = None,
) -> RiskMetrics:
    """
    Compute the risk metrics of one option's horizon-scaled outcomes.

    Args:
        outcomes: Horizon-scaled outcome per run
        horizon_h: Horizon in years (months / 12)
        option: The option the outcomes belong to (cost, mitigation cost)
        utility_params: Optional utility configuration
        tcor_params: Optional TCOR configuration

    Returns:
        RiskMetrics; utility and TCOR fields are None unless configured

    Raises:
        ValueError: If there are no outcomes
    """
    outcomes = np.asarray(outcomes, dtype=float)
    n = outcomes.size
    if n == 0:
        raise ValueError("outcomes must not be empty")

    ordered = np.sort(outcomes)
    ev = float(np.mean(outcomes))
    idx = tail_index(n)
    var95 = float(ordered[idx])
    tail = ordered[: idx + 1]
    cvar95 = float(np.mean(tail)) if tail.size else var95
    # CVaR95 <= VaR95 even when the tail mean rounds up.
    cvar95 = min(cvar95, var95)

    economic_capital = max(MIN_ECONOMIC_CAPITAL, abs(cvar95)) * math.sqrt(horizon_h)
    raroc = ev / economic_capital

    expected_utility = None
    ce = None
    if utility_params is not None:
        with np.errstate(invalid="ignore"):
            expected_utility = float(np.mean(compute_utility(outcomes, utility_params)))
        ce = certainty_equivalent(expected_utility, utility_params)

    tcor = None
    if tcor_params is not None:
        tcor = compute_tcor(outcomes, economic_capital, tcor_params, option)

    return RiskMetrics(
        ev=ev,
        var95=var95,
        cvar95=cvar95,
        economic_capital=economic_capital,
        raroc=raroc,
        expected_utility=expected_utility,
        certainty_equivalent=ce,
        tcor=tcor,
    )
