"""
PURPOSE: Engine constants and default settings for the scenario simulation engine.

RESPONSIBILITIES:
- Define simulation defaults (number of runs, seed, horizon)
- Risk metric constants (VaR tail, capital floor)
- Rank-correlation and matrix repair tolerances
- Recommendation, sensitivity and stress-test parameters
- Single responsibility: configuration only, no simulation logic
"""

# Simulation Parameters
DEFAULT_RUNS = 10000  # Standard Monte Carlo sample size
DEFAULT_SEED = 42
DEFAULT_HORIZON_MONTHS = 12  # Outcomes are treated as an annual baseline

# Risk Metrics
VAR_TAIL = 0.05  # VaR95 / CVaR95 tail fraction
MIN_ECONOMIC_CAPITAL = 1.0  # Floor applied to |CVaR95| before horizon scaling

# Rank Correlation
CORRELATION_SKIP_THRESHOLD = 0.01  # |rho| below this leaves a variable independent
SYMMETRY_TOLERANCE = 1e-6
NEAREST_PD_SHRINK = 0.95  # Off-diagonal shrink factor for matrix repair
NEAREST_PD_EIGEN_FLOOR = 1e-8
NEAREST_PD_MAX_SHRINK_STEPS = 500

# Utility
RISK_NEUTRAL_EPSILON = 1e-10  # a below this is treated as risk neutral
DEFAULT_UTILITY_MODE = "CARA"
DEFAULT_UTILITY_A = 0.000005
DEFAULT_UTILITY_SCALE = 100000

# Total Cost of Risk
DEFAULT_INSURANCE_RATE = 0.01  # 1% of option cost
DEFAULT_CONTINGENCY_RATE = 0.15  # 15% of economic capital

# RAROC bands for recommendations
RAROC_RED = 0.05  # RAROC < 5% → RED
RAROC_AMBER = 0.10  # 5% <= RAROC < 10% → AMBER, otherwise GREEN

# Recommendation tie tolerances
RAROC_TIE_TOLERANCE = 0.0001
EV_TIE_TOLERANCE = 0.01
CE_TIE_TOLERANCE = 0.01

# Sensitivity Analysis (Tornado Chart)
SENSITIVITY_STEP_PERCENT = 10  # +/- 10% perturbation
SENSITIVITY_MAX_RUNS = 2000  # Quick runs per perturbation
SENSITIVITY_SEED_OFFSET_PLUS = 11
SENSITIVITY_SEED_OFFSET_MINUS = 13
TOP_N_DRIVERS = 3

# Stress Testing
STRESS_COST_SPIKE = 1.15  # Multiply option cost
STRESS_DEMAND_SLUMP = 0.25  # Shock applied to option return
STRESS_VOLATILITY_UP = 1.5  # Multiply variable weights

# Output Configuration
ROUND_METRIC = 4  # Decimal places for metrics
ROUND_MATRIX = 4  # Decimal places for correlation matrices


def get_default_utility_settings():
    """Return the default utility configuration."""
    return {
        "mode": DEFAULT_UTILITY_MODE,
        "a": DEFAULT_UTILITY_A,
        "scale": DEFAULT_UTILITY_SCALE,
    }


def get_default_tcor_settings():
    """Return the default Total Cost of Risk rates."""
    return {
        "insurance_rate": DEFAULT_INSURANCE_RATE,
        "contingency_rate": DEFAULT_CONTINGENCY_RATE,
    }


def get_stress_factors():
    """Return multipliers applied by the stress-test presets."""
    return {
        "cost_spike": STRESS_COST_SPIKE,
        "demand_slump": STRESS_DEMAND_SLUMP,
        "volatility_up": STRESS_VOLATILITY_UP,
    }
