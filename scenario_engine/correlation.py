"""
PURPOSE: Impose rank-correlation structure on independently sampled variables.

RESPONSIBILITIES:
- Ascending ordinal ranks and Spearman rank correlation
- Pairwise reordering toward a target Spearman rho
- Full k×k matrix reordering (iterative pairwise, Iman-Conover inspired)
- Symmetry, positive-definiteness checks and nearest-PSD repair

The matrix reordering is a heuristic: each variable is reordered against the
single already-placed variable it is most correlated with. Conflicting
targets in higher dimensions can land materially away from the target; the
Frobenius error reports how far.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
from scipy.stats import rankdata

from .config import (
    CORRELATION_SKIP_THRESHOLD,
    NEAREST_PD_EIGEN_FLOOR,
    NEAREST_PD_MAX_SHRINK_STEPS,
    NEAREST_PD_SHRINK,
    SYMMETRY_TOLERANCE,
)
from .models import ScenarioConfigError
from .prng import Mulberry32

logger = logging.getLogger(__name__)


def ranks(values) -> np.ndarray:
    """Ascending 0-based ranks; ties keep their original index order."""
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        return np.empty(0, dtype=np.int64)
    return rankdata(values, method="ordinal").astype(np.int64) - 1


def spearman_rho(a, b) -> float:
    """Spearman rank correlation as the Pearson correlation of ordinal ranks."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.size != b.size or a.size == 0:
        return 0.0

    da = ranks(a) - (a.size - 1) / 2.0
    db = ranks(b) - (b.size - 1) / 2.0
    denom_a = float(np.dot(da, da))
    denom_b = float(np.dot(db, db))
    if denom_a == 0.0 or denom_b == 0.0:
        return 0.0
    return float(np.dot(da, db) / np.sqrt(denom_a * denom_b))


def blend_weight(target_rho: float) -> float:
    """
    Weight on the reference rank that makes the blended rank correlate with it at |rho|.

    With two independent, equally spread ranks the blend w*R + (1-w)*U has
    correlation w / sqrt(w**2 + (1-w)**2) with R; solving for |rho| gives
    w = |rho| / (|rho| + sqrt(1 - rho**2)).
    """
    r = min(abs(target_rho), 1.0)
    return float(r / (r + np.sqrt(1.0 - r * r)))


def impose_rank_correlation(
    a, b, target_rho: float, gen: Mulberry32
) -> Tuple[np.ndarray, float]:
    """
    Reorder ``b`` so its ranks follow ``a`` with strength ``|target_rho|``.

    For each index a uniformly random rank is blended with the rank of ``a``
    (weight from ``blend_weight``), rounded and clamped, and the value of
    ``b`` at that sorted position is taken. Negative targets mirror the chosen rank.
    Consumes one draw per element.

    Args:
        a: Reference samples (left untouched)
        b: Samples to reorder (same length as ``a``)
        target_rho: Target Spearman rho in [-1, 1]
        gen: Generator to advance

    Returns:
        Tuple of (reordered b, achieved Spearman rho between a and reordered b)
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    n = a.size
    if n == 0:
        return b.copy(), 0.0
    if b.size != n:
        raise ScenarioConfigError(
            "length_mismatch", f"sample lengths differ: {n} vs {b.size}"
        )

    ranks_a = ranks(a)
    b_sorted = np.sort(b, kind="stable")
    w = blend_weight(target_rho)

    r_rand = np.floor(gen.random(n) * n)
    # Round half up, matching the blend's reference rounding.
    r_target = np.floor((1.0 - w) * r_rand + w * ranks_a + 0.5).astype(np.int64)
    r_target = np.clip(r_target, 0, n - 1)

    if target_rho >= 0:
        b_corr = b_sorted[r_target]
    else:
        b_corr = b_sorted[n - 1 - r_target]

    return b_corr, spearman_rho(a, b_corr)


def spearman_matrix(samples: Dict[str, np.ndarray], order: Sequence[str]) -> np.ndarray:
    """Achieved Spearman matrix for the variables in ``order`` (unit diagonal)."""
    k = len(order)
    matrix = np.eye(k)
    for i in range(k):
        for j in range(i + 1, k):
            rho = spearman_rho(samples[order[i]], samples[order[j]])
            matrix[i, j] = rho
            matrix[j, i] = rho
    return matrix


def frobenius_error(achieved, target) -> float:
    return float(np.linalg.norm(np.asarray(achieved) - np.asarray(target), ord="fro"))


def is_symmetric(matrix, tol: float = SYMMETRY_TOLERANCE) -> bool:
    m = np.asarray(matrix, dtype=float)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        return False
    return bool(np.all(np.abs(m - m.T) <= tol))


def is_positive_definite(matrix) -> bool:
    """Cholesky feasibility check: False when any pivot is <= 0."""
    try:
        np.linalg.cholesky(np.asarray(matrix, dtype=float))
    except np.linalg.LinAlgError:
        return False
    return True


def nearest_psd(matrix) -> np.ndarray:
    """
    Repair a target correlation matrix so it passes the Cholesky check.

    Negative eigenvalues are clipped to a small floor and the result is
    rescaled to a unit diagonal. If rounding still leaves it infeasible,
    off-diagonal terms are shrunk toward zero until it passes.

    Returns:
        Symmetric matrix with unit diagonal that is positive definite
    """
    m = np.asarray(matrix, dtype=float)
    m = (m + m.T) / 2.0

    eigvals, eigvecs = np.linalg.eigh(m)
    eigvals = np.maximum(eigvals, NEAREST_PD_EIGEN_FLOOR)
    repaired = (eigvecs * eigvals) @ eigvecs.T
    scale = np.sqrt(np.diag(repaired))
    repaired = repaired / np.outer(scale, scale)
    repaired = (repaired + repaired.T) / 2.0
    np.fill_diagonal(repaired, 1.0)

    steps = 0
    while not is_positive_definite(repaired) and steps < NEAREST_PD_MAX_SHRINK_STEPS:
        repaired = repaired * NEAREST_PD_SHRINK
        np.fill_diagonal(repaired, 1.0)
        steps += 1
    if steps:
        logger.debug(f"nearest_psd needed {steps} shrink steps after eigenvalue clipping")
    return repaired


@dataclass
class MatrixReorderResult:
    """Outcome of a full-matrix reordering.

    Attributes:
        samples: Reordered samples keyed by variable id.
        achieved: Achieved Spearman matrix (k×k).
        working_matrix: Target the reordering used (repaired if a repair ran).
        fro_err: Frobenius distance between achieved and working matrix.
        feasible: Whether the supplied target passed the Cholesky check.
        repaired: Whether the nearest-PSD repair replaced the target.
    """
    samples: Dict[str, np.ndarray]
    achieved: np.ndarray
    working_matrix: np.ndarray
    fro_err: float
    feasible: bool
    repaired: bool


def impose_correlation_matrix(
    samples: Dict[str, np.ndarray],
    order: List[str],
    target_matrix,
    allow_nearest_pd: bool,
    gen: Mulberry32,
) -> MatrixReorderResult:
    """
    Approximate a full target Spearman matrix by iterative pairwise reordering.

    Variables are processed in ``order``. The first is left untouched; each
    later variable is reordered against the already-placed variable with the
    largest absolute target correlation, unless that magnitude is below the
    skip threshold.

    Args:
        samples: Independent samples keyed by variable id
        order: Variable ids matching the matrix rows
        target_matrix: k×k symmetric target matrix
        allow_nearest_pd: Repair an infeasible target before reordering
        gen: Generator to advance

    Returns:
        MatrixReorderResult with reordered samples and diagnostics

    Raises:
        ScenarioConfigError: If the matrix is not k×k or not symmetric
    """
    target = np.asarray(target_matrix, dtype=float)
    k = len(order)
    if target.shape != (k, k):
        raise ScenarioConfigError(
            "dimension_mismatch",
            f"target matrix shape {target.shape} does not match {k} variables",
        )
    if not is_symmetric(target):
        raise ScenarioConfigError("matrix_not_symmetric", "target matrix is not symmetric")

    runs = len(samples[order[0]]) if k else 0
    if k == 0 or runs == 0:
        return MatrixReorderResult(
            samples=dict(samples),
            achieved=target.copy(),
            working_matrix=target.copy(),
            fro_err=0.0,
            feasible=True,
            repaired=False,
        )

    working = target
    feasible = is_positive_definite(target)
    repaired = False
    if not feasible:
        if allow_nearest_pd:
            working = nearest_psd(target)
            repaired = True
            logger.info("Applied nearest PSD projection to target correlation matrix")
        else:
            logger.warning("Target correlation matrix is not positive definite, using as-is")

    reordered = dict(samples)
    for i in range(1, k):
        max_corr = 0.0
        ref_idx = 0
        for j in range(i):
            corr = abs(working[i, j])
            if corr > max_corr:
                max_corr = corr
                ref_idx = j

        if max_corr > CORRELATION_SKIP_THRESHOLD:
            current, _ = impose_rank_correlation(
                reordered[order[ref_idx]],
                reordered[order[i]],
                float(working[i, ref_idx]),
                gen,
            )
            reordered[order[i]] = current

    achieved = spearman_matrix(reordered, order)
    return MatrixReorderResult(
        samples=reordered,
        achieved=achieved,
        working_matrix=working,
        fro_err=frobenius_error(achieved, working),
        feasible=feasible,
        repaired=repaired,
    )
