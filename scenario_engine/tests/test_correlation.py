"""
PURPOSE: Unit tests for rank-correlation reordering.

Tests verify:
- Ordinal ranks and Spearman rho on simple inputs
- Pairwise reordering converges to the target rho
- Full-matrix reordering lands near a feasible target
- Feasibility checks and nearest-PSD repair
"""

import unittest

import numpy as np

from scenario_engine.correlation import (
    blend_weight,
    frobenius_error,
    impose_correlation_matrix,
    impose_rank_correlation,
    is_positive_definite,
    is_symmetric,
    nearest_psd,
    ranks,
    spearman_rho,
)
from scenario_engine.distributions import standard_normal
from scenario_engine.models import ScenarioConfigError
from scenario_engine.prng import Mulberry32

INFEASIBLE = [
    [1.0, 0.9, -0.9],
    [0.9, 1.0, 0.9],
    [-0.9, 0.9, 1.0],
]


def independent_samples(seed, n, k=2):
    gen = Mulberry32(seed)
    return gen, [standard_normal(gen, n) for _ in range(k)]


class TestRanks(unittest.TestCase):
    """Test ranks and Spearman rho."""

    def test_ranks_break_ties_by_index(self):
        np.testing.assert_array_equal(ranks([3, 1, 3, 2]), [2, 0, 3, 1])

    def test_ranks_empty(self):
        self.assertEqual(ranks([]).size, 0)

    def test_spearman_monotone(self):
        x = np.arange(50, dtype=float)
        self.assertAlmostEqual(spearman_rho(x, x ** 3), 1.0)
        self.assertAlmostEqual(spearman_rho(x, -x), -1.0)

    def test_spearman_degenerate_inputs(self):
        self.assertEqual(spearman_rho([], []), 0.0)
        self.assertEqual(spearman_rho([1, 2, 3], [1, 2]), 0.0)
        self.assertEqual(spearman_rho([1, 1, 1], [1, 1, 1]), 0.0)

    def test_blend_weight(self):
        self.assertEqual(blend_weight(0.0), 0.0)
        self.assertAlmostEqual(blend_weight(1.0), 1.0)
        self.assertAlmostEqual(blend_weight(-0.8), 0.8 / 1.4)


class TestPairwiseReordering(unittest.TestCase):
    """Test impose_rank_correlation."""

    def test_converges_to_positive_target(self):
        gen, (a, b) = independent_samples(42, 5000)
        b_corr, achieved = impose_rank_correlation(a, b, 0.8, gen)
        self.assertAlmostEqual(achieved, 0.8, delta=0.1)
        self.assertAlmostEqual(spearman_rho(a, b_corr), achieved)

    def test_converges_to_moderate_target(self):
        gen, (a, b) = independent_samples(9, 5000)
        _, achieved = impose_rank_correlation(a, b, 0.5, gen)
        self.assertAlmostEqual(achieved, 0.5, delta=0.1)

    def test_negative_target(self):
        gen, (a, b) = independent_samples(42, 5000)
        _, achieved = impose_rank_correlation(a, b, -0.6, gen)
        self.assertAlmostEqual(achieved, -0.6, delta=0.1)

    def test_zero_target_stays_independent(self):
        gen, (a, b) = independent_samples(42, 5000)
        _, achieved = impose_rank_correlation(a, b, 0.0, gen)
        self.assertLess(abs(achieved), 0.05)

    def test_perfect_targets(self):
        gen, (a, b) = independent_samples(5, 1000)
        _, plus = impose_rank_correlation(a, b, 1.0, gen)
        _, minus = impose_rank_correlation(a, b, -1.0, gen)
        self.assertAlmostEqual(plus, 1.0)
        self.assertAlmostEqual(minus, -1.0)

    def test_reference_untouched_and_values_drawn_from_b(self):
        gen, (a, b) = independent_samples(42, 1000)
        a_before = a.copy()
        b_corr, _ = impose_rank_correlation(a, b, 0.7, gen)
        np.testing.assert_array_equal(a, a_before)
        self.assertEqual(b_corr.shape, b.shape)
        self.assertTrue(np.all(np.isin(b_corr, b)))

    def test_consumes_one_draw_per_element(self):
        gen, (a, b) = independent_samples(42, 300)
        start = gen.snapshot()
        impose_rank_correlation(a, b, 0.5, gen)
        reference = Mulberry32(0)
        reference.restore(start)
        reference.random(300)
        self.assertEqual(gen.snapshot(), reference.snapshot())

    def test_deterministic(self):
        gen1, (a1, b1) = independent_samples(42, 500)
        gen2, (a2, b2) = independent_samples(42, 500)
        r1, _ = impose_rank_correlation(a1, b1, 0.4, gen1)
        r2, _ = impose_rank_correlation(a2, b2, 0.4, gen2)
        np.testing.assert_array_equal(r1, r2)

    def test_empty_and_mismatched(self):
        gen = Mulberry32(1)
        b_corr, achieved = impose_rank_correlation([], [], 0.5, gen)
        self.assertEqual(b_corr.size, 0)
        self.assertEqual(achieved, 0.0)
        with self.assertRaises(ScenarioConfigError):
            impose_rank_correlation([1.0, 2.0], [1.0], 0.5, gen)


class TestMatrixChecks(unittest.TestCase):
    """Test symmetry, feasibility and repair."""

    def test_is_symmetric(self):
        self.assertTrue(is_symmetric(np.eye(3)))
        self.assertFalse(is_symmetric([[1.0, 0.5], [0.4, 1.0]]))
        self.assertFalse(is_symmetric([[1.0, 0.5, 0.0], [0.5, 1.0, 0.0]]))

    def test_is_positive_definite(self):
        self.assertTrue(is_positive_definite(np.eye(3)))
        self.assertTrue(is_positive_definite([[1.0, 0.5], [0.5, 1.0]]))
        self.assertFalse(is_positive_definite(INFEASIBLE))

    def test_nearest_psd_repairs(self):
        repaired = nearest_psd(INFEASIBLE)
        self.assertTrue(is_symmetric(repaired))
        self.assertTrue(is_positive_definite(repaired))
        np.testing.assert_allclose(np.diag(repaired), 1.0)
        self.assertTrue(np.all(np.abs(repaired) <= 1.0 + 1e-12))

    def test_frobenius_error(self):
        self.assertAlmostEqual(frobenius_error(np.eye(2), [[1.0, 0.3], [0.3, 1.0]]), 0.3 * np.sqrt(2))


class TestMatrixReordering(unittest.TestCase):
    """Test impose_correlation_matrix."""

    def _samples(self, seed, n, k):
        gen, columns = independent_samples(seed, n, k)
        order = [f"v{i}" for i in range(k)]
        return gen, dict(zip(order, columns)), order

    def test_two_by_two_round_trip(self):
        gen, samples, order = self._samples(42, 5000, 2)
        target = [[1.0, 0.5], [0.5, 1.0]]
        result = impose_correlation_matrix(samples, order, target, False, gen)
        self.assertLess(result.fro_err, 0.2)
        self.assertTrue(result.feasible)
        self.assertFalse(result.repaired)
        np.testing.assert_allclose(np.diag(result.achieved), 1.0)
        np.testing.assert_array_equal(result.samples["v0"], samples["v0"])

    def test_reorders_against_strongest_partner(self):
        gen, samples, order = self._samples(7, 5000, 3)
        target = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.7], [0.0, 0.7, 1.0]]
        result = impose_correlation_matrix(samples, order, target, False, gen)
        np.testing.assert_array_equal(result.samples["v1"], samples["v1"])
        self.assertAlmostEqual(result.achieved[1, 2], 0.7, delta=0.1)
        self.assertLess(abs(result.achieved[0, 2]), 0.05)

    def test_small_targets_leave_samples_untouched(self):
        gen, samples, order = self._samples(3, 500, 2)
        start = gen.snapshot()
        target = [[1.0, 0.005], [0.005, 1.0]]
        result = impose_correlation_matrix(samples, order, target, False, gen)
        np.testing.assert_array_equal(result.samples["v1"], samples["v1"])
        self.assertEqual(gen.snapshot(), start)

    def test_infeasible_without_repair_proceeds(self):
        gen, samples, order = self._samples(1, 2000, 3)
        result = impose_correlation_matrix(samples, order, INFEASIBLE, False, gen)
        self.assertFalse(result.feasible)
        self.assertFalse(result.repaired)
        np.testing.assert_array_equal(result.working_matrix, np.asarray(INFEASIBLE))
        self.assertGreater(result.fro_err, 0.0)

    def test_infeasible_with_repair(self):
        gen, samples, order = self._samples(1, 2000, 3)
        result = impose_correlation_matrix(samples, order, INFEASIBLE, True, gen)
        self.assertFalse(result.feasible)
        self.assertTrue(result.repaired)
        self.assertTrue(is_positive_definite(result.working_matrix))

    def test_malformed_matrix_raises(self):
        gen, samples, order = self._samples(1, 100, 2)
        with self.assertRaises(ScenarioConfigError):
            impose_correlation_matrix(samples, order, [[1.0, 0.5], [0.2, 1.0]], False, gen)
        with self.assertRaises(ScenarioConfigError):
            impose_correlation_matrix(samples, order, np.eye(3), False, gen)


if __name__ == "__main__":
    unittest.main()
