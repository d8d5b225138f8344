"""
Scenario simulation engine for decision options.

PURPOSE:
    Deterministic Monte Carlo evaluation of decision options: sample uncertain
    business variables, optionally impose rank-correlation structure, and
    reduce each option's run-set to EV, VaR95, CVaR95, Economic Capital,
    RAROC, expected utility / certainty equivalent and Total Cost of Risk.

RESPONSIBILITIES:
    - Seeded mulberry32 generator threaded explicitly through every draw
    - Distribution samplers (normal, lognormal, triangular, uniform)
    - Pairwise and full-matrix rank-correlation reordering
    - Outcome synthesis with game interaction and horizon scaling
    - Risk metric reduction, recommendation, sensitivity and stress testing

SRP/DRY CHECK:
    Each submodule has a single responsibility:
    - prng.py: Uniform draws only
    - distributions.py: Sampling from distributions only
    - correlation.py: Rank-correlation reordering only
    - outcomes.py: Per-run outcome synthesis only
    - metrics.py: Risk statistics only
    - simulation.py: Per-option pipeline orchestration only
    - outputs.py: Result structure, formatting and recommendation only
    - sensitivity.py: Sensitivity analysis only
    - stress.py: Stress presets only
"""

from .models import (
    AppliesTo,
    BayesianPriorOverride,
    CompetitorMove,
    CopulaMatrixConfig,
    DependenceConfig,
    DistributionKind,
    GameInteractionConfig,
    Option,
    OptionGameStrategy,
    OurStrategy,
    ResponseMultipliers,
    ScenarioConfigError,
    ScenarioVariable,
    SimulationRequest,
    TCORParams,
    UtilityMode,
    UtilityParams,
)
from .prng import Mulberry32
from .distributions import (
    DEFAULT_SCENARIO_VARIABLES,
    format_param_summary,
    param_labels,
    sample_variable,
)
from .correlation import impose_correlation_matrix, impose_rank_correlation
from .outcomes import synthesize_outcomes
from .metrics import TCORBreakdown, reduce_outcomes
from .outputs import CopulaSnapshot, OutputFormatter, Recommendation, SimulationResult
from .simulation import MonteCarloSimulation, run_simulation, simulate_option
from .sensitivity import SensitivityAnalyzer, SensitivityDriver
from .stress import StressPreset, run_all_stress_tests, run_stress_test

__version__ = "0.1.0"

__all__ = [
    "AppliesTo",
    "BayesianPriorOverride",
    "CompetitorMove",
    "CopulaMatrixConfig",
    "CopulaSnapshot",
    "DEFAULT_SCENARIO_VARIABLES",
    "DependenceConfig",
    "DistributionKind",
    "GameInteractionConfig",
    "MonteCarloSimulation",
    "Mulberry32",
    "Option",
    "OptionGameStrategy",
    "OurStrategy",
    "OutputFormatter",
    "Recommendation",
    "ResponseMultipliers",
    "ScenarioConfigError",
    "ScenarioVariable",
    "SensitivityAnalyzer",
    "SensitivityDriver",
    "SimulationRequest",
    "SimulationResult",
    "StressPreset",
    "TCORBreakdown",
    "TCORParams",
    "UtilityMode",
    "UtilityParams",
    "format_param_summary",
    "impose_correlation_matrix",
    "impose_rank_correlation",
    "param_labels",
    "reduce_outcomes",
    "run_all_stress_tests",
    "run_simulation",
    "run_stress_test",
    "sample_variable",
    "simulate_option",
    "synthesize_outcomes",
]
