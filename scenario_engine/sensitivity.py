"""
PURPOSE: One-at-a-time sensitivity (tornado) analysis for a decision option.

Each input (option cost and return, every variable weight, the mean of every
normal / mu of every lognormal variable) is nudged up and down by a fixed
percentage and the option is re-simulated with a reduced run count. The
change in the target metric (RAROC or certainty equivalent) against the
baseline ranks the drivers.

SRP/DRY: Single responsibility = sensitivity analysis only.
         No result formatting, no recommendation logic.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List

from .config import (
    SENSITIVITY_MAX_RUNS,
    SENSITIVITY_SEED_OFFSET_MINUS,
    SENSITIVITY_SEED_OFFSET_PLUS,
    SENSITIVITY_STEP_PERCENT,
    TOP_N_DRIVERS,
)
from .models import DistributionKind, ScenarioConfigError, SimulationRequest
from .outputs import SimulationResult
from .simulation import MonteCarloSimulation

logger = logging.getLogger(__name__)

METRICS = ("RAROC", "CE")


@dataclass
class SensitivityDriver:
    """Represents a single perturbed input and its effect on the target metric.

    Attributes:
        name (str): Display name (e.g., "Demand (weight)").
        param_type (str): "cost", "return", "var_weight" or "var_mean".
        delta_plus (float): Metric change with the input raised by one step.
        delta_minus (float): Metric change with the input lowered by one step.
        percent_plus (float): delta_plus relative to the baseline, in percent.
        percent_minus (float): delta_minus relative to the baseline, in percent.
        max_abs_delta (float): Larger of |delta_plus| and |delta_minus|.
    """
    name: str
    param_type: str
    delta_plus: float
    delta_minus: float
    percent_plus: float
    percent_minus: float
    max_abs_delta: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "param_type": self.param_type,
            "delta_plus": round(self.delta_plus, 6),
            "delta_minus": round(self.delta_minus, 6),
            "percent_plus": round(self.percent_plus, 2),
            "percent_minus": round(self.percent_minus, 2),
            "max_abs_delta": round(self.max_abs_delta, 6),
        }


def _metric_of(result: SimulationResult, metric: str) -> float:
    if metric == "RAROC":
        return result.raroc
    ce = result.certainty_equivalent
    return ce if ce is not None else 0.0


class SensitivityAnalyzer:
    """
    Tornado-style sensitivity of one option's RAROC or certainty equivalent.

    Perturbed runs use ``min(max_runs, request.runs)`` runs and the seeds
    ``seed + 11`` (plus) and ``seed + 13`` (minus), so the analysis is as
    reproducible as the base simulation.
    """

    def __init__(
        self,
        step_percent: float = SENSITIVITY_STEP_PERCENT,
        max_runs: int = SENSITIVITY_MAX_RUNS,
        top_n: int = TOP_N_DRIVERS,
    ):
        """
        Initialize analyzer.

        Args:
            step_percent: Perturbation size in percent (default 10).
            max_runs: Cap on runs per perturbed simulation (default 2000).
            top_n: Number of drivers reported by ``top_drivers`` (default 3).
        """
        self.step_percent = step_percent
        self.max_runs = max_runs
        self.top_n = top_n

    def analyze(
        self,
        request: SimulationRequest,
        option_id: str,
        metric: str = "RAROC",
    ) -> List[SensitivityDriver]:
        """
        Compute the metric swing for every perturbable input of one option.

        Args:
            request: The base simulation request.
            option_id: Option to analyze.
            metric: "RAROC" or "CE" (certainty equivalent).

        Returns:
            List of SensitivityDriver objects, sorted by max |delta| (descending).

        Raises:
            ScenarioConfigError: If the option id is unknown.
            ValueError: If the metric is not supported.
        """
        if metric not in METRICS:
            raise ValueError(f"metric must be one of {METRICS}, got {metric!r}")

        option = next((o for o in request.options if o.id == option_id), None)
        if option is None:
            raise ScenarioConfigError("unknown_option", f"unknown option id: {option_id}")

        baseline_results = MonteCarloSimulation(request).run()
        baseline_result = next(r for r in baseline_results if r.option_id == option_id)
        baseline = _metric_of(baseline_result, metric)

        step = self.step_percent / 100.0
        drivers: List[SensitivityDriver] = []

        def swing(name, param_type, build):
            plus = self._run_single(build(1.0 + step), request, SENSITIVITY_SEED_OFFSET_PLUS, metric)
            minus = self._run_single(build(1.0 - step), request, SENSITIVITY_SEED_OFFSET_MINUS, metric)
            drivers.append(self._make_driver(name, param_type, plus - baseline, minus - baseline, baseline))

        if option.cost > 0:
            swing(
                "Option Cost",
                "cost",
                lambda f: (
                    [option.model_copy(update={"cost": option.cost * f})],
                    request.variables,
                ),
            )

        if option.expected_return > 0:
            swing(
                "Option Return",
                "return",
                lambda f: (
                    [option.model_copy(update={"expected_return": option.expected_return * f})],
                    request.variables,
                ),
            )

        for variable in request.variables:
            swing(
                f"{variable.name} (weight)",
                "var_weight",
                lambda f, v=variable: (
                    [option],
                    self._replace_variable(request, v.id, weight=v.weight * f),
                ),
            )

        for variable in request.variables:
            if variable.dist == DistributionKind.NORMAL and "mean" in variable.params:
                key = "mean"
            elif variable.dist == DistributionKind.LOGNORMAL and "mu" in variable.params:
                key = "mu"
            else:
                continue
            swing(
                f"{variable.name} ({key})",
                "var_mean",
                lambda f, v=variable, k=key: (
                    [option],
                    self._replace_variable(
                        request, v.id, params={**v.params, k: v.params[k] * f}
                    ),
                ),
            )

        drivers.sort(key=lambda d: d.max_abs_delta, reverse=True)
        logger.debug(
            f"Sensitivity for option {option_id} ({metric}): {len(drivers)} inputs tested"
        )
        return drivers

    def top_drivers(self, drivers: List[SensitivityDriver]) -> List[Dict[str, Any]]:
        """Names and impacts of the ``top_n`` most sensitive inputs."""
        return [
            {"name": d.name, "impact": d.max_abs_delta}
            for d in drivers[: self.top_n]
        ]

    def _run_single(self, built, request: SimulationRequest, seed_offset: int, metric: str) -> float:
        options, variables = built
        perturbed = request.model_copy(
            update={
                "options": options,
                "variables": variables,
                "runs": min(self.max_runs, request.runs),
                "seed": request.seed + seed_offset,
            }
        )
        return _metric_of(MonteCarloSimulation(perturbed).run()[0], metric)

    @staticmethod
    def _replace_variable(request: SimulationRequest, var_id: str, **update):
        return [
            v.model_copy(update=update) if v.id == var_id else v
            for v in request.variables
        ]

    @staticmethod
    def _make_driver(name, param_type, delta_plus, delta_minus, baseline) -> SensitivityDriver:
        if baseline == 0:
            percent_plus = percent_minus = math.nan
        else:
            percent_plus = delta_plus / baseline * 100.0
            percent_minus = delta_minus / baseline * 100.0
        return SensitivityDriver(
            name=name,
            param_type=param_type,
            delta_plus=delta_plus,
            delta_minus=delta_minus,
            percent_plus=percent_plus,
            percent_minus=percent_minus,
            max_abs_delta=max(abs(delta_plus), abs(delta_minus)),
        )

    @staticmethod
    def to_dataframe_compatible(drivers: List[SensitivityDriver]) -> Dict[str, List]:
        """
        Convert sensitivity drivers to a column layout compatible with pandas/CSV.

        Args:
            drivers: List of SensitivityDriver objects.

        Returns:
            Dictionary with keys as column names, values as lists (one per row).
        """
        return {
            "rank": list(range(1, len(drivers) + 1)),
            "parameter": [d.name for d in drivers],
            "type": [d.param_type for d in drivers],
            "delta_plus": [round(d.delta_plus, 6) for d in drivers],
            "delta_minus": [round(d.delta_minus, 6) for d in drivers],
            "max_abs_delta": [round(d.max_abs_delta, 6) for d in drivers],
        }
