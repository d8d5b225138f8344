"""
PURPOSE: Distribution samplers driven by the deterministic generator.

RESPONSIBILITIES:
- Turn uniform draws into Normal, Lognormal, Triangular and Uniform samples
- Apply a Bayesian posterior override to one targeted normal/lognormal variable
- Describe distribution parameters for display (labels, short summaries)
- Single responsibility: only sampling, no I/O or aggregation

Every sampler consumes draws from the generator in a fixed order, so the
vectorized ``size=`` path and repeated scalar calls yield the same stream.
"""

import math

import numpy as np
from scipy.stats import triang

from .models import (
    AppliesTo,
    BayesianPriorOverride,
    DistributionKind,
    ScenarioVariable,
)
from .prng import Mulberry32


def _box_muller(u1: np.ndarray, u2: np.ndarray) -> np.ndarray:
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def standard_normal(gen: Mulberry32, size: int) -> np.ndarray:
    """
    Draw ``size`` standard normal samples with the Box-Muller transform.

    Each sample consumes two nonzero uniforms (u1 then u2); a zero draw is
    discarded and redrawn so the logarithm is always finite.

    Args:
        gen: Generator to advance
        size: Number of samples

    Returns:
        numpy array of standard normal samples
    """
    start = gen.snapshot()
    block = gen.random(2 * size)
    if not np.any(block == 0.0):
        return _box_muller(block[0::2], block[1::2])

    # Rare: replay the stream one draw at a time, skipping zeros.
    gen.restore(start)
    u1 = np.empty(size)
    u2 = np.empty(size)
    for i in range(size):
        a = 0.0
        while a == 0.0:
            a = gen.next()
        b = 0.0
        while b == 0.0:
            b = gen.next()
        u1[i] = a
        u2[i] = b
    return _box_muller(u1, u2)


class DistributionSampler:
    """Samplers for the four supported distribution kinds."""

    @staticmethod
    def sample_normal(mean, sd, gen, size=1):
        """Normal(mean, sd). With sd == 0 every sample equals the mean."""
        return mean + sd * standard_normal(gen, size)

    @staticmethod
    def sample_lognormal(mu, sigma, gen, size=1):
        """Lognormal as exp of a Normal(mu, sigma) draw."""
        return np.exp(mu + sigma * standard_normal(gen, size))

    @staticmethod
    def sample_triangular(min_val, mode_val, max_val, gen, size=1):
        """
        Sample from a triangular distribution by inverse CDF.

        Args:
            min_val: Left bound
            mode_val: Peak
            max_val: Right bound
            gen: Generator to advance (one draw per sample)
            size: Number of samples

        Returns:
            numpy array of samples; all equal to min_val when the bounds collapse
        """
        u = gen.random(size)
        if max_val <= min_val:
            return np.full(size, float(min_val))

        # Scipy triangular requires normalized parameters: c = (mode - a) / (b - a)
        c = (mode_val - min_val) / (max_val - min_val)
        c = float(np.clip(c, 0.0, 1.0))
        return triang.ppf(u, c, loc=min_val, scale=max_val - min_val)

    @staticmethod
    def sample_uniform(min_val, max_val, gen, size=1):
        """Uniform(min, max) by linear scaling of one draw per sample."""
        return min_val + (max_val - min_val) * gen.random(size)


def effective_params(
    variable: ScenarioVariable,
    override: BayesianPriorOverride | None = None,
) -> dict[str, float]:
    """Return the variable's parameters with a matching posterior override applied."""
    params = dict(variable.params)
    if override is None or override.target_var_id != variable.id:
        return params

    if variable.dist == DistributionKind.NORMAL:
        params["mean"] = override.posterior_mean
        params["sd"] = override.posterior_sd
    elif variable.dist == DistributionKind.LOGNORMAL:
        params["mu"] = override.posterior_mean
        params["sigma"] = override.posterior_sd
    return params


def sample_variable_series(
    variable: ScenarioVariable,
    gen: Mulberry32,
    size: int,
    override: BayesianPriorOverride | None = None,
) -> np.ndarray:
    """Draw ``size`` independent samples for one scenario variable."""
    p = effective_params(variable, override)

    if variable.dist == DistributionKind.NORMAL:
        return DistributionSampler.sample_normal(
            p.get("mean", 0.0), p.get("sd", 1.0), gen, size=size
        )
    if variable.dist == DistributionKind.LOGNORMAL:
        return DistributionSampler.sample_lognormal(
            p.get("mu", 0.0), p.get("sigma", 1.0), gen, size=size
        )
    if variable.dist == DistributionKind.TRIANGULAR:
        return DistributionSampler.sample_triangular(
            p.get("min", -1.0), p.get("mode", 0.0), p.get("max", 1.0), gen, size=size
        )
    if variable.dist == DistributionKind.UNIFORM:
        return DistributionSampler.sample_uniform(
            p.get("min", 0.0), p.get("max", 1.0), gen, size=size
        )
    raise ValueError(f"Unknown distribution: {variable.dist}")


def sample_variable(
    variable: ScenarioVariable,
    gen: Mulberry32,
    override: BayesianPriorOverride | None = None,
) -> float:
    """Draw a single sample for one scenario variable."""
    return float(sample_variable_series(variable, gen, 1, override)[0])


DEFAULT_SCENARIO_VARIABLES = [
    ScenarioVariable(
        id="var-1",
        name="Demand",
        applies_to=AppliesTo.RETURN,
        dist=DistributionKind.TRIANGULAR,
        params={"min": -0.2, "mode": 0.0, "max": 0.4},
        weight=1.0,
    ),
    ScenarioVariable(
        id="var-2",
        name="CostInflation",
        applies_to=AppliesTo.COST,
        dist=DistributionKind.NORMAL,
        params={"mean": 0.05, "sd": 0.03},
        weight=1.0,
    ),
]

_PARAM_LABELS = {
    DistributionKind.NORMAL: ["mean", "sd"],
    DistributionKind.LOGNORMAL: ["mu", "sigma"],
    DistributionKind.TRIANGULAR: ["min", "mode", "max"],
    DistributionKind.UNIFORM: ["min", "max"],
}


def param_labels(kind: DistributionKind) -> list[str]:
    """Ordered parameter names for a distribution kind."""
    return list(_PARAM_LABELS.get(DistributionKind(kind), []))


def _fmt(value: float) -> str:
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return f"{value:g}"


def format_param_summary(variable: ScenarioVariable) -> str:
    """Short human-readable description, e.g. ``N(μ=0.05, σ=0.03)``."""
    p = variable.params
    if variable.dist == DistributionKind.NORMAL:
        return f"N(μ={_fmt(p.get('mean', 0))}, σ={_fmt(p.get('sd', 1))})"
    if variable.dist == DistributionKind.LOGNORMAL:
        return f"LogN(μ={_fmt(p.get('mu', 0))}, σ={_fmt(p.get('sigma', 1))})"
    if variable.dist == DistributionKind.TRIANGULAR:
        return (
            f"Tri({_fmt(p.get('min', -1))}, {_fmt(p.get('mode', 0))}, "
            f"{_fmt(p.get('max', 1))})"
        )
    if variable.dist == DistributionKind.UNIFORM:
        return f"U({_fmt(p.get('min', 0))}, {_fmt(p.get('max', 1))})"
    return ""
