# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
Tests for the KMeans engine and the Lloyd iteration.
"""

import unittest
from unittest import mock

import numpy as np

from lloyd.clusterer import (
    ConfigurationError,
    ConvergenceTimeout,
    EngineState,
    KMeans,
    NumericalError,
    UnfittedModelError,
    assign_clusters,
    lloyd,
)

POINTS = np.array([[0.0, 0.0], [0.0, 2.0], [10.0, 0.0], [10.0, 2.0]])


def make_blobs(seed=0, n_per_blob=60):
    rng = np.random.default_rng(seed)
    centers = np.array([[-5.0, 0.0], [5.0, 0.0], [0.0, 6.0], [0.0, -6.0]])
    return np.vstack([rng.normal(c, 0.7, size=(n_per_blob, 2)) for c in centers])


class LloydTest(unittest.TestCase):
    """Test cases for the Lloyd loop with fixed initial centroids."""

    def test_concrete_scenario(self):
        """Two vertical pairs settle on their midpoints after one moving pass."""
        result = lloyd(POINTS, np.array([[0.0, 0.0], [10.0, 0.0]]))

        np.testing.assert_allclose(result.centroids, [[0.0, 1.0], [10.0, 1.0]])
        self.assertTrue(result.converged)
        self.assertEqual(result.iterations, 1)
        self.assertEqual(result.objective_history, (8.0, 4.0))
        self.assertAlmostEqual(result.inertia, 4.0)

    def test_initial_centroids_not_mutated(self):
        initial = np.array([[0.0, 0.0], [10.0, 0.0]])
        lloyd(POINTS, initial)
        np.testing.assert_array_equal(initial, [[0.0, 0.0], [10.0, 0.0]])

    def test_timeout_carries_last_centroids(self):
        """Hitting the cap raises with the best-so-far centroids."""
        X = np.array([[0.0], [1.0], [2.0], [3.0], [10.0]])
        with self.assertLogs("lloyd.clusterer.engine", level="WARNING"):
            with self.assertRaises(ConvergenceTimeout) as ctx:
                lloyd(X, np.array([[0.0]]), max_iter=1)

        error = ctx.exception
        np.testing.assert_allclose(error.centroids, [[3.2]])
        self.assertEqual(error.iterations, 1)
        self.assertAlmostEqual(error.displacement, 3.2 ** 2)

    def test_non_finite_centroids(self):
        """An infinite centroid that never gains members is reported."""
        X = np.array([[0.0], [1.0]])
        with self.assertRaises(NumericalError):
            lloyd(X, np.array([[0.0], [np.inf]]))

    def test_more_centroids_than_points(self):
        with self.assertRaises(ConfigurationError):
            lloyd(POINTS[:1], POINTS[:2])


class KMeansTest(unittest.TestCase):
    """Test cases for KMeans."""

    def test_new_engine_is_uninitialized(self):
        """Construction never validates or raises."""
        engine = KMeans(0)
        self.assertIs(engine.state, EngineState.UNINITIALIZED)
        self.assertIsNone(engine.centroids)

    def test_single_cluster_is_mean(self):
        """k = 1 converges to the mean of all points after at most one move."""
        X = np.random.default_rng(1).normal(loc=3.0, size=(40, 3))
        for seed in range(5):
            engine = KMeans(1, seed=seed)
            result = engine.fit(X)

            self.assertLessEqual(result.iterations, 1)
            np.testing.assert_allclose(result.centroids[0], X.mean(axis=0), atol=1e-9)
            self.assertIs(engine.state, EngineState.CONVERGED)

    def test_k_equals_n_samples(self):
        """Every point becomes its own centroid with no moving iterations."""
        X = np.array([[0.0, 0.0], [1.0, 5.0], [-2.0, 3.0], [7.0, -1.0], [4.0, 4.0]])
        result = KMeans(5, seed=3).fit(X)

        self.assertEqual(result.iterations, 0)
        self.assertEqual(sorted(map(tuple, result.centroids)), sorted(map(tuple, X)))
        self.assertEqual(result.inertia, 0.0)

    def test_monotone_objective(self):
        """The clustering objective never increases between passes."""
        X = make_blobs(seed=2)
        for seed in range(6):
            for k in (2, 3, 4, 7):
                result = KMeans(k, seed=seed, tol=1e-10).fit(X)
                history = np.array(result.objective_history + (result.inertia,))
                increases = np.diff(history)
                self.assertTrue(
                    np.all(increases <= 1e-9 * history[0]),
                    "objective increased for k=%d seed=%d: %s" % (k, seed, history),
                )

    def test_partition_property(self):
        """After fitting, each point is closest to its own centroid."""
        X = make_blobs(seed=4)
        engine = KMeans(4, seed=0)
        engine.fit(X)

        labels = engine.predict(X)
        distances = ((X[:, None, :] - engine.centroids[None, :, :]) ** 2).sum(axis=2)
        own = distances[np.arange(len(X)), labels]
        self.assertTrue(np.all(own <= distances.min(axis=1)))
        self.assertTrue(np.all((labels >= 0) & (labels < 4)))

    def test_configuration_error_before_iterating(self):
        """k > n_samples fails without running the loop."""
        engine = KMeans(5, seed=0)
        with mock.patch("lloyd.clusterer.engine.lloyd") as loop:
            with self.assertRaises(ConfigurationError):
                engine.fit(np.zeros((3, 2)))
            loop.assert_not_called()

        self.assertIs(engine.state, EngineState.FAILED)
        self.assertIsInstance(engine.error, ConfigurationError)
        self.assertIsNone(engine.centroids)

    def test_invalid_parameters(self):
        X = np.zeros((3, 2))
        for kwargs in (
            {"k": 0},
            {"k": -1},
            {"k": 1.5},
            {"k": 2, "tol": -1.0},
            {"k": 2, "max_iter": 0},
            {"k": 2, "n_jobs": 0},
        ):
            with self.assertRaises(ConfigurationError, msg=str(kwargs)):
                KMeans(**kwargs).fit(X)

    def test_configuration_error_is_value_error(self):
        with self.assertRaises(ValueError):
            KMeans(0).fit(np.zeros((3, 2)))

    def test_non_finite_input(self):
        engine = KMeans(1)
        with self.assertRaises(NumericalError):
            engine.fit([[0.0, 1.0], [np.nan, 2.0]])
        self.assertIs(engine.state, EngineState.FAILED)

    def test_timeout_moves_to_failed(self):
        X = np.array([[0.0], [1.0], [2.0], [3.0], [10.0]])
        engine = KMeans(1, max_iter=1, seed=0)
        with self.assertRaises(ConvergenceTimeout) as ctx:
            engine.fit(X)

        self.assertIs(engine.state, EngineState.FAILED)
        self.assertIs(engine.error, ctx.exception)
        self.assertIsNone(engine.centroids)
        np.testing.assert_allclose(ctx.exception.centroids, [[3.2]])
        with self.assertRaises(UnfittedModelError):
            engine.predict(X)

    def test_predict_before_fit(self):
        with self.assertRaises(UnfittedModelError):
            KMeans(2).predict(POINTS)
        with self.assertRaises(UnfittedModelError):
            KMeans(2).cost(POINTS)

    def test_predict_dimension_mismatch(self):
        engine = KMeans(2, seed=0)
        engine.fit(POINTS)
        with self.assertRaises(ConfigurationError):
            engine.predict(np.zeros((2, 3)))

    def test_predict_new_data(self):
        engine = KMeans(4, seed=1)
        engine.fit(make_blobs(seed=5))

        new_points = np.array([[0.1, 0.2], [-4.0, 1.0], [20.0, 20.0]])
        labels = engine.predict(new_points)
        self.assertEqual(labels.shape, (3,))
        np.testing.assert_array_equal(labels, assign_clusters(new_points, engine.centroids))
        self.assertEqual(engine.predict(np.empty((0, 2))).shape, (0,))

    def test_cost_matches_inertia(self):
        X = make_blobs(seed=6)
        engine = KMeans(4, seed=2)
        result = engine.fit(X)
        self.assertAlmostEqual(engine.cost(X), result.inertia)

    def test_reproducible_with_seed(self):
        X = make_blobs(seed=7)
        first = KMeans(4, seed=123).fit(X)
        second = KMeans(4, seed=123).fit(X)
        np.testing.assert_array_equal(first.centroids, second.centroids)
        self.assertEqual(first.iterations, second.iterations)

    def test_threads_match_serial(self):
        X = make_blobs(seed=8)
        serial = KMeans(4, seed=9, n_jobs=1).fit(X)
        threaded = KMeans(4, seed=9, n_jobs=4).fit(X)
        np.testing.assert_allclose(serial.centroids, threaded.centroids, atol=1e-9)
        self.assertEqual(serial.iterations, threaded.iterations)

    def test_refit_restarts(self):
        """A second fit discards the state of the first one."""
        engine = KMeans(2, seed=0)
        with self.assertRaises(ConfigurationError):
            engine.fit(np.zeros((1, 2)))
        engine.fit(POINTS)
        self.assertIs(engine.state, EngineState.CONVERGED)
        self.assertIsNone(engine.error)
        self.assertEqual(engine.centroids.shape, (2, 2))

    def test_refit_with_malformed_input(self):
        """Ragged or non-numeric data after a good fit leaves the engine FAILED."""
        for bad in ([[0.0, 0.0], [1.0]], [["a", "b"], ["c", "d"]]):
            engine = KMeans(2, seed=0)
            engine.fit(POINTS)
            with self.assertRaises(ConfigurationError):
                engine.fit(bad)

            self.assertIs(engine.state, EngineState.FAILED)
            self.assertIsInstance(engine.error, ConfigurationError)
            self.assertIsNone(engine.centroids)
            with self.assertRaises(UnfittedModelError):
                engine.predict(POINTS)

    def test_unexpected_error_leaves_failed_state(self):
        engine = KMeans(2, seed=0)
        engine.fit(POINTS)
        with mock.patch("lloyd.clusterer.engine.lloyd", side_effect=MemoryError):
            with self.assertRaises(MemoryError):
                engine.fit(POINTS)
        self.assertIs(engine.state, EngineState.FAILED)
        self.assertIsNone(engine.centroids)

    def test_predict_ragged_input(self):
        engine = KMeans(2, seed=0)
        engine.fit(POINTS)
        with self.assertRaises(ConfigurationError):
            engine.predict([[0.0, 1.0], [2.0]])

    def test_generator_seed(self):
        engine = KMeans(2, seed=np.random.default_rng(0))
        result = engine.fit(POINTS)
        self.assertEqual(result.centroids.shape, (2, 2))

    def test_convergence_is_logged(self):
        with self.assertLogs("lloyd.clusterer.engine", level="INFO") as logs:
            KMeans(2, seed=0).fit(POINTS)
        self.assertTrue(any("converged" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
