"""
PURPOSE: Unit tests for risk metric reduction.

Tests verify:
- EV, VaR95, CVaR95, Economic Capital and RAROC on known vectors
- CVaR95 never exceeds VaR95
- Utility modes and certainty-equivalent inversion
- Total Cost of Risk components
"""

import math
import unittest

import numpy as np

from scenario_engine.metrics import (
    certainty_equivalent,
    compute_tcor,
    compute_utility,
    reduce_outcomes,
    tail_index,
)
from scenario_engine.models import Option, TCORParams, UtilityMode, UtilityParams


class TestRiskMetrics(unittest.TestCase):
    """Test EV/VaR/CVaR/EC/RAROC."""

    def setUp(self):
        self.option = Option(id="a", label="A", expected_return=100.0, cost=50.0)

    def test_known_vector(self):
        outcomes = np.random.default_rng(0).permutation(np.arange(100, dtype=float))
        m = reduce_outcomes(outcomes, 1.0, self.option)
        self.assertAlmostEqual(m.ev, 49.5)
        self.assertEqual(m.var95, 5.0)
        self.assertAlmostEqual(m.cvar95, 2.5)
        self.assertAlmostEqual(m.economic_capital, 2.5)
        self.assertAlmostEqual(m.raroc, 49.5 / 2.5)
        self.assertIsNone(m.expected_utility)
        self.assertIsNone(m.certainty_equivalent)
        self.assertIsNone(m.tcor)

    def test_small_sample_tail_is_minimum(self):
        outcomes = np.array([3.0, -4.0, 10.0, 7.0, 1.0, 2.0, 9.0, 8.0, 6.0, 5.0])
        self.assertEqual(tail_index(10), 0)
        m = reduce_outcomes(outcomes, 1.0, self.option)
        self.assertEqual(m.var95, -4.0)
        self.assertEqual(m.cvar95, -4.0)

    def test_cvar_not_above_var(self):
        rng = np.random.default_rng(1)
        for _ in range(20):
            outcomes = rng.normal(10.0, 30.0, size=int(rng.integers(1, 3000)))
            m = reduce_outcomes(outcomes, 1.0, self.option)
            self.assertLessEqual(m.cvar95, m.var95)
            self.assertLessEqual(m.var95, float(np.max(outcomes)))

    def test_capital_floor(self):
        m = reduce_outcomes(np.full(50, 0.5), 1.0, self.option)
        self.assertEqual(m.economic_capital, 1.0)
        self.assertAlmostEqual(m.raroc, 0.5)

    def test_capital_scales_with_sqrt_horizon(self):
        outcomes = np.linspace(-100.0, 100.0, 201)
        one_year = reduce_outcomes(outcomes, 1.0, self.option)
        four_years = reduce_outcomes(outcomes, 4.0, self.option)
        self.assertAlmostEqual(four_years.economic_capital, 2.0 * one_year.economic_capital)

    def test_constant_outcomes(self):
        m = reduce_outcomes(np.full(100, 20.0), 1.0, self.option)
        self.assertEqual(m.ev, 20.0)
        self.assertEqual(m.var95, 20.0)
        self.assertEqual(m.cvar95, 20.0)

    def test_empty_outcomes_raise(self):
        with self.assertRaises(ValueError):
            reduce_outcomes(np.array([]), 1.0, self.option)


class TestUtility(unittest.TestCase):
    """Test utility modes and certainty equivalents."""

    def _ce(self, outcomes, mode, a, scale=1000.0):
        params = UtilityParams(mode=mode, a=a, scale=scale)
        eu = float(np.mean(compute_utility(outcomes, params)))
        return eu, certainty_equivalent(eu, params)

    def test_ce_of_constant_outcomes(self):
        """The certainty equivalent of a sure amount is that amount."""
        outcomes = np.full(10, 100.0)
        cases = [
            (UtilityMode.CARA, 2.0),
            (UtilityMode.EXPONENTIAL, 2.0),
            (UtilityMode.QUADRATIC, 0.5),
            (UtilityMode.CRRA, 2.0),
            (UtilityMode.CRRA, 1.0),
            (UtilityMode.POWER, 0.5),
            (UtilityMode.POWER, 1.0),
        ]
        for mode, a in cases:
            with self.subTest(mode=mode, a=a):
                _, ce = self._ce(outcomes, mode, a)
                self.assertAlmostEqual(ce, 100.0, places=6)

    def test_risk_neutral_cara(self):
        outcomes = np.array([-50.0, 0.0, 50.0, 200.0])
        eu, ce = self._ce(outcomes, UtilityMode.CARA, 0.0)
        self.assertAlmostEqual(eu, float(np.mean(outcomes)) / 1000.0)
        self.assertAlmostEqual(ce, float(np.mean(outcomes)))

    def test_risk_averse_ce_below_ev(self):
        outcomes = np.random.default_rng(2).normal(100.0, 40.0, size=5000)
        for mode in (UtilityMode.CARA, UtilityMode.EXPONENTIAL):
            with self.subTest(mode=mode):
                _, ce = self._ce(outcomes, mode, 3.0)
                self.assertLess(ce, float(np.mean(outcomes)))

    def test_crra_undefined_for_non_positive(self):
        outcomes = np.array([10.0, 0.0, 20.0])
        utilities = compute_utility(outcomes, UtilityParams(mode=UtilityMode.CRRA, a=2.0, scale=1.0))
        self.assertEqual(utilities[1], -np.inf)
        self.assertTrue(np.isfinite(utilities[0]))

        eu, ce = self._ce(outcomes, UtilityMode.CRRA, 2.0)
        self.assertEqual(eu, -math.inf)
        self.assertEqual(ce, -math.inf)

    def test_power_undefined_for_negative(self):
        eu, ce = self._ce(np.array([-5.0, 5.0]), UtilityMode.POWER, 0.5)
        self.assertEqual(eu, -math.inf)
        self.assertEqual(ce, -math.inf)

    def test_quadratic_negative_discriminant(self):
        params = UtilityParams(mode=UtilityMode.QUADRATIC, a=1.0, scale=1.0)
        self.assertEqual(certainty_equivalent(1.0, params), 0.0)

    def test_reduce_attaches_utility(self):
        params = UtilityParams(mode=UtilityMode.CARA, a=1.0, scale=100.0)
        m = reduce_outcomes(np.full(10, 50.0), 1.0, Option(id="a", label="A"), utility_params=params)
        self.assertAlmostEqual(m.expected_utility, 1.0 - math.exp(-0.5))
        self.assertAlmostEqual(m.certainty_equivalent, 50.0)


class TestTCOR(unittest.TestCase):
    """Test Total Cost of Risk."""

    def setUp(self):
        self.params = TCORParams(insurance_rate=0.01, contingency_rate=0.15)

    def test_known_components(self):
        option = Option(id="a", label="A", cost=50.0, mitigation_cost=5.0)
        outcomes = np.array([-10.0, -30.0, 20.0, 40.0])
        m = reduce_outcomes(outcomes, 1.0, option, tcor_params=self.params)
        self.assertEqual(m.economic_capital, 30.0)
        self.assertAlmostEqual(m.tcor.expected_loss, 10.0)
        self.assertAlmostEqual(m.tcor.insurance, 0.5)
        self.assertAlmostEqual(m.tcor.contingency, 4.5)
        self.assertAlmostEqual(m.tcor.mitigation, 5.0)
        self.assertAlmostEqual(m.tcor.total, 20.0)

    def test_no_losses_no_mitigation(self):
        option = Option(id="a", label="A", cost=0.0)
        tcor = compute_tcor(np.array([1.0, 2.0]), 1.0, self.params, option)
        self.assertEqual(tcor.expected_loss, 0.0)
        self.assertEqual(tcor.mitigation, 0.0)

    def test_components_non_negative(self):
        option = Option(id="a", label="A", cost=80.0, mitigation_cost=2.0)
        rng = np.random.default_rng(3)
        for _ in range(10):
            outcomes = rng.normal(0.0, 50.0, size=1000)
            m = reduce_outcomes(outcomes, 1.0, option, tcor_params=self.params)
            for value in (m.tcor.expected_loss, m.tcor.insurance, m.tcor.contingency, m.tcor.mitigation):
                self.assertGreaterEqual(value, 0.0)


if __name__ == "__main__":
    unittest.main()
