"""
PURPOSE: Input data model for the scenario simulation engine.

RESPONSIBILITIES:
- Define scenario variables, decision options and the optional dependence,
  Bayesian, utility, TCOR and game-interaction configuration blocks
- Field-level validation (ranges, matrix shape)
- Single responsibility: plain data, no sampling or statistics
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import (
    DEFAULT_RUNS,
    DEFAULT_SEED,
    get_default_tcor_settings,
    get_default_utility_settings,
)


class ScenarioConfigError(ValueError):
    """Raised when a simulation configuration is structurally malformed."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class AppliesTo(str, Enum):
    RETURN = "return"
    COST = "cost"


class DistributionKind(str, Enum):
    NORMAL = "normal"
    LOGNORMAL = "lognormal"
    TRIANGULAR = "triangular"
    UNIFORM = "uniform"


class UtilityMode(str, Enum):
    CARA = "CARA"
    CRRA = "CRRA"
    EXPONENTIAL = "Exponential"
    QUADRATIC = "Quadratic"
    POWER = "Power"


class OurStrategy(str, Enum):
    CONSERVATIVE = "Conservative"
    AGGRESSIVE = "Aggressive"


class CompetitorMove(str, Enum):
    MATCH = "Match"
    UNDERCUT = "Undercut"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ScenarioVariable(_Frozen):
    """An uncertain business driver sampled once per run.

    ``params`` holds the distribution parameters by name: ``mean``/``sd``
    (normal), ``mu``/``sigma`` (lognormal), ``min``/``mode``/``max``
    (triangular) or ``min``/``max`` (uniform).
    """
    id: str
    name: str
    applies_to: AppliesTo
    dist: DistributionKind
    params: dict[str, float] = Field(default_factory=dict)
    weight: float = 1.0

    def param(self, key: str, default: float) -> float:
        return self.params.get(key, default)


class Option(_Frozen):
    id: str
    label: str
    expected_return: float = 0.0
    cost: float = 0.0
    mitigation_cost: float | None = None
    horizon_months: float | None = Field(default=None, gt=0)


class DependenceConfig(_Frozen):
    """Pairwise target Spearman correlation between two variables."""
    var_a_id: str
    var_b_id: str
    target_rho: float = Field(ge=-1.0, le=1.0)


class CopulaMatrixConfig(_Frozen):
    """Full k×k target rank-correlation matrix."""
    k: int = Field(ge=1)
    matrix: list[list[float]]
    use_nearest_pd: bool = False

    @model_validator(mode="after")
    def _check_shape(self):
        if len(self.matrix) != self.k or any(len(row) != self.k for row in self.matrix):
            raise ValueError(f"copula matrix must be {self.k}x{self.k}")
        return self


class BayesianPriorOverride(_Frozen):
    """Posterior mean/sd replacing one normal or lognormal variable's parameters."""
    target_var_id: str
    posterior_mean: float
    posterior_sd: float = Field(ge=0.0)


class UtilityParams(_Frozen):
    mode: UtilityMode
    a: float
    scale: float = Field(gt=0.0)

    @classmethod
    def default(cls) -> "UtilityParams":
        """CARA with a=5e-6 on a 100k scale."""
        return cls(**get_default_utility_settings())


class TCORParams(_Frozen):
    insurance_rate: float
    contingency_rate: float

    @classmethod
    def default(cls) -> "TCORParams":
        return cls(**get_default_tcor_settings())


class ResponseMultipliers(_Frozen):
    """Return and cost multipliers for one competitor move, keyed by our strategy."""
    ret_mult: dict[OurStrategy, float]
    cost_mult: dict[OurStrategy, float]

    @model_validator(mode="after")
    def _check_strategies(self):
        for table in (self.ret_mult, self.cost_mult):
            missing = set(OurStrategy) - set(table)
            if missing:
                names = ", ".join(sorted(s.value for s in missing))
                raise ValueError(f"missing multipliers for strategy: {names}")
        return self


class GameInteractionConfig(_Frozen):
    p_undercut: float = Field(ge=0.0, le=1.0)
    multipliers: dict[CompetitorMove, ResponseMultipliers]

    @model_validator(mode="after")
    def _check_moves(self):
        missing = set(CompetitorMove) - set(self.multipliers)
        if missing:
            names = ", ".join(sorted(m.value for m in missing))
            raise ValueError(f"missing multipliers for competitor move: {names}")
        return self


class OptionGameStrategy(_Frozen):
    option_id: str
    strategy: OurStrategy


class SimulationRequest(_Frozen):
    """Everything one simulation call needs, bundled for reuse by sensitivity and stress runs."""
    options: list[Option]
    variables: list[ScenarioVariable] = Field(default_factory=list)
    runs: int = DEFAULT_RUNS
    seed: int = DEFAULT_SEED
    utility_params: UtilityParams | None = None
    tcor_params: TCORParams | None = None
    game_config: GameInteractionConfig | None = None
    option_strategies: list[OptionGameStrategy] | None = None
    dependence: DependenceConfig | None = None
    bayesian_override: BayesianPriorOverride | None = None
    copula: CopulaMatrixConfig | None = None
    global_horizon_months: float | None = Field(default=None, gt=0)
