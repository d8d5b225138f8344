"""
PURPOSE: Stress-test presets that re-run a simulation under adverse shocks.

RESPONSIBILITIES:
- BASE: the request as-is
- COST_SPIKE: every option cost multiplied by 1.15
- DEMAND_SLUMP: every option return cut by 25% (floored at zero)
- VOLATILITY_UP: every variable weight multiplied by 1.5
- Single responsibility: request transformation + delegation to the engine
"""

import logging
from enum import Enum
from typing import Dict, List

from .config import get_stress_factors
from .models import SimulationRequest
from .outputs import SimulationResult
from .simulation import MonteCarloSimulation

logger = logging.getLogger(__name__)


class StressPreset(str, Enum):
    BASE = "Base"
    COST_SPIKE = "Cost Spike"
    DEMAND_SLUMP = "Demand Slump"
    VOLATILITY_UP = "Volatility Up"


RUN_ID_SUFFIX = {
    StressPreset.BASE: "",
    StressPreset.COST_SPIKE: "-CS",
    StressPreset.DEMAND_SLUMP: "-DS",
    StressPreset.VOLATILITY_UP: "-VU",
}


def stressed_request(request: SimulationRequest, preset: StressPreset) -> SimulationRequest:
    """Return a copy of ``request`` with the preset's shock applied (seed unchanged)."""
    preset = StressPreset(preset)
    factors = get_stress_factors()

    if preset == StressPreset.COST_SPIKE:
        options = [o.model_copy(update={"cost": o.cost * factors["cost_spike"]}) for o in request.options]
        return request.model_copy(update={"options": options})

    if preset == StressPreset.DEMAND_SLUMP:
        options = [
            o.model_copy(
                update={"expected_return": max(0.0, o.expected_return * (1 - factors["demand_slump"]))}
            )
            for o in request.options
        ]
        return request.model_copy(update={"options": options})

    if preset == StressPreset.VOLATILITY_UP:
        variables = [
            v.model_copy(update={"weight": v.weight * factors["volatility_up"]})
            for v in request.variables
        ]
        return request.model_copy(update={"variables": variables})

    return request


def run_stress_test(request: SimulationRequest, preset: StressPreset) -> List[SimulationResult]:
    """Simulate ``request`` under one stress preset."""
    preset = StressPreset(preset)
    logger.debug(f"Running stress preset {preset.value} (run id suffix '{RUN_ID_SUFFIX[preset]}')")
    return MonteCarloSimulation(stressed_request(request, preset)).run()


def run_all_stress_tests(request: SimulationRequest) -> Dict[StressPreset, List[SimulationResult]]:
    """Simulate ``request`` under every preset, keyed by preset."""
    return {preset: run_stress_test(request, preset) for preset in StressPreset}
