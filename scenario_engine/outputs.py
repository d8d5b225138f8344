"""
PURPOSE: Simulation result types, serialization and option recommendation.

This module holds the per-option SimulationResult the engine returns, turns
it into JSON-ready dicts, and picks a recommended option from a result set
with RAROC-band (GREEN/AMBER/RED) risk flags.

SRP/DRY: Single responsibility = result structure, formatting and recommendation.
         No simulation, no sensitivity analysis.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from .config import (
    CE_TIE_TOLERANCE,
    EV_TIE_TOLERANCE,
    RAROC_AMBER,
    RAROC_RED,
    RAROC_TIE_TOLERANCE,
    ROUND_MATRIX,
    ROUND_METRIC,
)
from .metrics import TCORBreakdown


def _round(value: float, places: int = ROUND_METRIC) -> float:
    # round() keeps inf/nan as-is
    return round(float(value), places)


def _round_matrix(matrix, places: int = ROUND_MATRIX) -> List[List[float]]:
    return [[_round(v, places) for v in row] for row in np.asarray(matrix, dtype=float)]


@dataclass(frozen=True, eq=False)
class CopulaSnapshot:
    """Full-matrix dependence diagnostics attached to a result.

    Attributes:
        k (int): Matrix dimension (number of variables).
        target (list): Target matrix as supplied.
        achieved (np.ndarray): Achieved Spearman matrix.
        fro_err (float): Frobenius distance achieved vs. target used.
        feasible (bool): Whether the supplied target passed the Cholesky check.
        repaired (bool): Whether a nearest-PSD repair replaced the target.
    """
    k: int
    target: List[List[float]]
    achieved: np.ndarray
    fro_err: float
    feasible: bool = True
    repaired: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "k": self.k,
            "target": [list(row) for row in self.target],
            "achieved": _round_matrix(self.achieved),
            "fro_err": _round(self.fro_err),
            "feasible": self.feasible,
            "repaired": self.repaired,
        }


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """Metrics for one option from one simulation call.

    Optional fields stay None unless the matching configuration block was
    supplied (utility, TCOR, pairwise dependence, copula matrix).
    """
    option_id: str
    option_label: str
    outcomes: np.ndarray
    ev: float
    var95: float
    cvar95: float
    economic_capital: float
    raroc: float
    horizon_months: float
    expected_utility: Optional[float] = None
    certainty_equivalent: Optional[float] = None
    tcor_components: Optional[TCORBreakdown] = None
    achieved_spearman: Optional[float] = None
    copula_snapshot: Optional[CopulaSnapshot] = None

    @property
    def tcor(self) -> Optional[float]:
        if self.tcor_components is None:
            return None
        return self.tcor_components.total

    def to_dict(self, include_outcomes: bool = False) -> Dict[str, Any]:
        """Convert to a dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "option_id": self.option_id,
            "option_label": self.option_label,
            "ev": _round(self.ev),
            "var95": _round(self.var95),
            "cvar95": _round(self.cvar95),
            "economic_capital": _round(self.economic_capital),
            "raroc": _round(self.raroc),
            "horizon_months": self.horizon_months,
        }
        if include_outcomes:
            data["outcomes"] = [float(v) for v in self.outcomes]
        if self.expected_utility is not None:
            data["expected_utility"] = float(self.expected_utility)
            data["certainty_equivalent"] = _round(self.certainty_equivalent)
        if self.tcor_components is not None:
            data["tcor"] = _round(self.tcor)
            data["tcor_components"] = {
                "expected_loss": _round(self.tcor_components.expected_loss),
                "insurance": _round(self.tcor_components.insurance),
                "contingency": _round(self.tcor_components.contingency),
                "mitigation": _round(self.tcor_components.mitigation),
            }
        if self.achieved_spearman is not None:
            data["achieved_spearman"] = _round(self.achieved_spearman)
        if self.copula_snapshot is not None:
            data["copula_snapshot"] = self.copula_snapshot.to_dict()
        return data


@dataclass
class Recommendation:
    """Recommended option with the reasoning behind the pick.

    Attributes:
        result (SimulationResult): The recommended option's result.
        band (str): "GREEN", "AMBER" or "RED" RAROC band.
        is_safe (bool): RAROC at or above the red threshold.
        used_utility (bool): Ranked by certainty equivalent instead of RAROC.
        ranks (dict): 1-based rank of the pick per metric.
        tie_breakers_used (list): Metrics consulted to break ties.
        summary_narrative (str): Plain English summary.
    """
    result: SimulationResult
    band: str
    is_safe: bool
    used_utility: bool
    ranks: Dict[str, int] = field(default_factory=dict)
    tie_breakers_used: List[str] = field(default_factory=list)
    summary_narrative: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "option_id": self.result.option_id,
            "option_label": self.result.option_label,
            "band": self.band,
            "is_safe": self.is_safe,
            "used_utility": self.used_utility,
            "ranks": dict(self.ranks),
            "tie_breakers_used": list(self.tie_breakers_used),
            "summary_narrative": self.summary_narrative,
        }


class OutputFormatter:
    """
    Formats simulation results and recommends an option.

    RAROC bands:
    - GREEN: raroc >= amber threshold (default 10%)
    - AMBER: red threshold <= raroc < amber threshold
    - RED: raroc < red threshold (default 5%)
    """

    @staticmethod
    def raroc_band(raroc: float, red: float = RAROC_RED, amber: float = RAROC_AMBER) -> str:
        if raroc < red:
            return "RED"
        elif raroc < amber:
            return "AMBER"
        else:
            return "GREEN"

    @staticmethod
    def to_table(results: List[SimulationResult]) -> List[Dict[str, Any]]:
        """One JSON-ready row per option, in input order."""
        return [r.to_dict() for r in results]

    @staticmethod
    def recommend(
        results: List[SimulationResult],
        use_utility: bool = False,
        red: float = RAROC_RED,
        amber: float = RAROC_AMBER,
    ) -> Optional[Recommendation]:
        """
        Pick the best option from a result set.

        Args:
            results: Results from one simulation call.
            use_utility: Rank by certainty equivalent; honoured only when every
                         result carries one.
            red: RAROC below this is RED (and not safe).
            amber: RAROC below this (and >= red) is AMBER.

        Returns:
            Recommendation, or None for an empty result set.
        """
        if not results:
            return None

        use_utility = use_utility and all(
            r.certainty_equivalent is not None for r in results
        )
        tie_breakers: List[str] = []

        if use_utility:
            by_ce = sorted(results, key=lambda r: r.certainty_equivalent, reverse=True)
            best_ce = by_ce[0].certainty_equivalent
            top = [r for r in by_ce if abs(r.certainty_equivalent - best_ce) < CE_TIE_TOLERANCE]
            if len(top) == 1:
                picked = top[0]
            else:
                picked = sorted(top, key=lambda r: r.expected_utility, reverse=True)[0]
                tie_breakers.append("Expected Utility")
        else:
            by_raroc = sorted(results, key=lambda r: r.raroc, reverse=True)
            best_raroc = by_raroc[0].raroc
            top = [r for r in by_raroc if abs(r.raroc - best_raroc) < RAROC_TIE_TOLERANCE]
            if len(top) == 1:
                picked = top[0]
            else:
                by_ev = sorted(top, key=lambda r: r.ev, reverse=True)
                best_ev = by_ev[0].ev
                top_ev = [r for r in by_ev if abs(r.ev - best_ev) < EV_TIE_TOLERANCE]
                if len(top_ev) == 1:
                    picked = top_ev[0]
                    tie_breakers.append("EV")
                else:
                    picked = sorted(top_ev, key=lambda r: r.economic_capital)[0]
                    tie_breakers.extend(["EV", "Economic Capital"])

        ranks = {
            "raroc": OutputFormatter._rank_of(picked, results, lambda r: -r.raroc),
            "ev": OutputFormatter._rank_of(picked, results, lambda r: -r.ev),
            "capital": OutputFormatter._rank_of(picked, results, lambda r: r.economic_capital),
        }
        if use_utility:
            ranks["ce"] = OutputFormatter._rank_of(picked, results, lambda r: -r.certainty_equivalent)
            ranks["utility"] = OutputFormatter._rank_of(picked, results, lambda r: -r.expected_utility)

        band = OutputFormatter.raroc_band(picked.raroc, red, amber)
        return Recommendation(
            result=picked,
            band=band,
            is_safe=picked.raroc >= red,
            used_utility=use_utility,
            ranks=ranks,
            tie_breakers_used=tie_breakers,
            summary_narrative=OutputFormatter._generate_narrative(picked, band, use_utility),
        )

    @staticmethod
    def _rank_of(picked: SimulationResult, results: List[SimulationResult], key) -> int:
        ordered = sorted(results, key=key)
        return next(i for i, r in enumerate(ordered, 1) if r is picked)

    @staticmethod
    def _generate_narrative(result: SimulationResult, band: str, used_utility: bool) -> str:
        """
        Generate a plain English summary of the recommendation.

        Args:
            result: The recommended option's result.
            band: RAROC band.
            used_utility: Whether the certainty equivalent drove the pick.

        Returns:
            Plain English narrative string.
        """
        basis = "certainty equivalent" if used_utility else "risk-adjusted return (RAROC)"
        narrative = f"Recommended option: {result.option_label} (best {basis}). "
        narrative += f"Expected value: {result.ev:.2f}. "
        narrative += f"VaR95: {result.var95:.2f}. "
        narrative += f"CVaR95: {result.cvar95:.2f}. "
        narrative += f"RAROC: {result.raroc * 100:.1f}%. "

        if band == "GREEN":
            narrative += "Returns comfortably cover the capital at risk."
        elif band == "AMBER":
            narrative += (
                "Returns only modestly cover the capital at risk. "
                "Review assumptions and consider mitigation."
            )
        else:  # RED
            narrative += (
                "Returns do not justify the capital at risk. "
                "Consider re-scoping or mitigating the downside before committing."
            )

        return narrative
