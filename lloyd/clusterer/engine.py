# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
K-means engine.

:class:`KMeans` owns the only mutable state of the algorithm: the current
centroid set and the lifecycle state. The iteration itself lives in
:func:`lloyd`, a pure function of the data and a starting centroid set.
"""

import enum
import logging
import numbers
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .errors import (
    ClusteringError,
    ConfigurationError,
    ConvergenceTimeout,
    UnfittedModelError,
)
from .steps import (
    SeedLike,
    as_point_set,
    assign_clusters,
    centroid_displacement,
    check_finite,
    compute_centroids,
    compute_cost,
    nearest_centroids,
    sample_initial_centroids,
)

logger = logging.getLogger(__name__)

DEFAULT_TOL = 1e-3
DEFAULT_MAX_ITER = 300


class EngineState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    FITTING = "fitting"
    CONVERGED = "converged"
    FAILED = "failed"


@dataclass(frozen=True)
class FitResult:
    """
    Outcome of a converged fit.

    Attributes
    ----------
    centroids : np.ndarray
        Final centroid set, shape (k, n_features).
    iterations : int
        Number of passes that moved the centroids. The final pass, which
        confirms convergence, is not counted.
    converged : bool
        Always True; a run that hits the iteration cap raises instead.
    objective_history : tuple of float
        Within-cluster sum of squares of the centroid set entering each pass.
    inertia : float
        Within-cluster sum of squares of the final centroid set.
    """

    centroids: np.ndarray
    iterations: int
    converged: bool
    objective_history: Tuple[float, ...]
    inertia: float


def lloyd(
    X: np.ndarray,
    initial_centroids: np.ndarray,
    tol: float = DEFAULT_TOL,
    max_iter: int = DEFAULT_MAX_ITER,
    n_jobs: int = 1,
) -> FitResult:
    """
    Run assign/update passes from ``initial_centroids`` until the centroids settle.

    Parameters
    ----------
    X : np.ndarray
        Point set of shape (n_samples, n_features).
    initial_centroids : np.ndarray
        Starting centroid set of shape (k, n_features). It is copied.
    tol : float, default=1e-3
        Convergence threshold on the total squared centroid displacement.
    max_iter : int, default=300
        Maximum number of passes.
    n_jobs : int, default=1
        Worker threads for the assignment and update steps.

    Returns
    -------
    FitResult

    Raises
    ------
    ConvergenceTimeout
        If ``max_iter`` passes run without the displacement dropping below ``tol``.
    NumericalError
        If a centroid set ever contains NaN or infinite values.
    """
    centroids = np.array(initial_centroids, dtype=np.float64)
    if centroids.ndim != 2 or centroids.shape[0] == 0:
        raise ConfigurationError("No centroids - degenerate case")
    if centroids.shape[0] > X.shape[0]:
        raise ConfigurationError(
            "We need at least as many samples as clusters: k=%d, n_samples=%d"
            % (centroids.shape[0], X.shape[0])
        )

    history = []
    displacement = float("inf")
    for n_pass in range(1, max_iter + 1):
        labels, distances = nearest_centroids(X, centroids, n_jobs=n_jobs)
        history.append(float(distances.sum()))

        new_centroids = compute_centroids(X, labels, centroids, n_jobs=n_jobs)
        check_finite(new_centroids, where="pass %d" % n_pass)

        displacement = centroid_displacement(centroids, new_centroids)
        logger.debug(
            "Pass %d: objective=%.6g, displacement=%.6g", n_pass, history[-1], displacement
        )

        centroids = new_centroids
        if displacement < tol:
            return FitResult(
                centroids=centroids,
                iterations=n_pass - 1,
                converged=True,
                objective_history=tuple(history),
                inertia=compute_cost(X, centroids, n_jobs=n_jobs),
            )

    logger.warning(
        "No convergence after %d passes (displacement %.6g >= tol %.6g)",
        max_iter,
        displacement,
        tol,
    )
    raise ConvergenceTimeout(
        "K-means did not converge within %d iterations" % max_iter,
        centroids=centroids,
        iterations=max_iter,
        displacement=displacement,
    )


def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


class KMeans(object):
    """
    K-means clustering with Lloyd's algorithm.

    Parameters
    ----------
    k : int
        Number of clusters. Must satisfy ``1 <= k <= n_samples`` at fit time.
    tol : float, default=1e-3
        Convergence threshold on the sum of squared centroid displacements.
    max_iter : int, default=300
        Maximum number of assign/update passes.
    seed : int, np.random.Generator or None
        Source of randomness for the initial centroids.
    n_jobs : int, default=1
        Worker threads used for the assignment and update steps.

    Attributes
    ----------
    centroids : np.ndarray or None
        Fitted centroid set of shape (k, n_features); None until a fit converges.
    state : EngineState
        Lifecycle state of the engine.
    error : ClusteringError or None
        The error that moved the engine to ``FAILED``.
    result : FitResult or None
        The result of the last successful fit.

    Examples
    --------
    >>> engine = KMeans(2, seed=0)
    >>> result = engine.fit([[0.0, 0.0], [0.0, 2.0], [10.0, 0.0], [10.0, 2.0]])
    >>> engine.predict([[1.0, 1.0], [9.0, 1.0]]).tolist()  # doctest: +SKIP
    [0, 1]
    """

    def __init__(
        self,
        k: int,
        tol: float = DEFAULT_TOL,
        max_iter: int = DEFAULT_MAX_ITER,
        seed: SeedLike = None,
        n_jobs: int = 1,
    ):
        self.k = k
        self.tol = tol
        self.max_iter = max_iter
        self.seed = seed
        self.n_jobs = n_jobs

        self.centroids: Optional[np.ndarray] = None
        self.state = EngineState.UNINITIALIZED
        self.error: Optional[ClusteringError] = None
        self.result: Optional[FitResult] = None

    def _check_params(self, n_samples: int) -> None:
        if not _is_int(self.k) or self.k < 1:
            raise ConfigurationError("k must be a positive integer, got %r" % (self.k,))
        if self.k > n_samples:
            raise ConfigurationError(
                "We need at least as many samples as clusters: k=%d, n_samples=%d"
                % (self.k, n_samples)
            )
        if not isinstance(self.tol, numbers.Real) or not self.tol >= 0:
            raise ConfigurationError("tol must be a non-negative number, got %r" % (self.tol,))
        if not _is_int(self.max_iter) or self.max_iter < 1:
            raise ConfigurationError("max_iter must be at least 1, got %r" % (self.max_iter,))
        if not _is_int(self.n_jobs) or self.n_jobs < 1:
            raise ConfigurationError("n_jobs must be at least 1, got %r" % (self.n_jobs,))

    def _fail(self, error: ClusteringError) -> None:
        if not isinstance(error, ConvergenceTimeout):
            logger.error("KMeans fit failed: %s", error)
        self.state = EngineState.FAILED
        self.error = error

    def fit(self, data) -> FitResult:
        """
        Compute k centroids for ``data``.

        Any previous fit is discarded. On success the engine is ``CONVERGED``
        and ``centroids`` holds the result.

        Parameters
        ----------
        data : array-like
            Training data of shape (n_samples, n_features). Not modified.

        Returns
        -------
        FitResult

        Raises
        ------
        ConfigurationError
            Invalid parameters or input; no iteration is run.
        ConvergenceTimeout
            ``max_iter`` passes ran without convergence. The exception carries
            the last computed centroids.
        NumericalError
            Non-finite input or centroid values.
        """
        self.centroids = None
        self.result = None
        self.error = None
        self.state = EngineState.UNINITIALIZED

        try:
            X = as_point_set(data)
            self._check_params(X.shape[0])
        except ClusteringError as error:
            self._fail(error)
            raise

        self.state = EngineState.FITTING
        logger.debug(
            "Fitting k=%d on %d samples with %d features", self.k, X.shape[0], X.shape[1]
        )
        try:
            initial_centroids = sample_initial_centroids(X, self.k, seed=self.seed)
            result = lloyd(
                X,
                initial_centroids,
                tol=self.tol,
                max_iter=self.max_iter,
                n_jobs=self.n_jobs,
            )
        except ClusteringError as error:
            self._fail(error)
            raise
        except Exception:
            self.state = EngineState.FAILED
            raise

        self.centroids = result.centroids
        self.result = result
        self.state = EngineState.CONVERGED
        logger.info(
            "KMeans converged after %d iterations (inertia=%.6g)", result.iterations, result.inertia
        )
        return result

    def _fitted_input(self, data) -> np.ndarray:
        if self.state is not EngineState.CONVERGED or self.centroids is None:
            raise UnfittedModelError("This KMeans engine has not been fitted yet; call fit() first")
        X = as_point_set(data, min_samples=0)
        if X.shape[1] != self.centroids.shape[1]:
            raise ConfigurationError(
                "Feature dimension mismatch: fitted on %d features, got %d"
                % (self.centroids.shape[1], X.shape[1])
            )
        return X

    def predict(self, data) -> np.ndarray:
        """
        Index of the nearest fitted centroid for every row of ``data``.

        Parameters
        ----------
        data : array-like
            Data of shape (m, n_features).

        Returns
        -------
        np.ndarray
            Integer array of shape (m,) with values in [0, k).
        """
        X = self._fitted_input(data)
        return assign_clusters(X, self.centroids, n_jobs=self.n_jobs)

    def cost(self, data) -> float:
        """Within-cluster sum of squares of ``data`` against the fitted centroids."""
        X = self._fitted_input(data)
        return compute_cost(X, self.centroids, n_jobs=self.n_jobs)

    def __repr__(self):
        return "KMeans(k=%r, tol=%r, max_iter=%r, seed=%r, n_jobs=%r, state=%s)" % (
            self.k,
            self.tol,
            self.max_iter,
            self.seed,
            self.n_jobs,
            self.state.value,
        )
