# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
Building blocks of Lloyd's algorithm.

Every function in this module is pure: inputs are never mutated and each call
returns freshly allocated arrays. The engine in :mod:`lloyd.clusterer.engine`
strings them together as

    sample_initial_centroids -> (assign_clusters -> compute_centroids
                                 -> has_converged)*

Row-parallel work (assignment and the centroid fold) can be split into
contiguous shards and run on a thread pool by passing ``n_jobs > 1``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from .errors import ConfigurationError, NumericalError

logger = logging.getLogger(__name__)

SeedLike = Union[None, int, np.random.Generator]

# Upper bound on the elements of one distance-difference block
_BLOCK_ELEMENTS = 1 << 22


def as_point_set(data, min_samples: int = 1) -> np.ndarray:
    """
    Convert array-like input to a 2-D float64 matrix without copying when possible.

    Parameters
    ----------
    data : array-like
        Input of shape (n_samples, n_features).
    min_samples : int, default=1
        Minimum number of rows required.

    Returns
    -------
    np.ndarray
        The input as a float64 array of shape (n_samples, n_features).
    """
    try:
        X = np.asarray(data, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            "Input must be a rectangular array of real numbers: %s" % exc
        ) from exc
    if X.ndim != 2:
        raise ConfigurationError(
            "Expected a 2-D array of shape (n_samples, n_features), got %d-D input" % X.ndim
        )
    n_samples, n_features = X.shape
    if n_samples < min_samples:
        raise ConfigurationError(
            "Expected at least %d sample(s), got %d" % (min_samples, n_samples)
        )
    if n_features == 0:
        raise ConfigurationError("Input has no features")
    if not np.all(np.isfinite(X)):
        raise NumericalError("Input contains NaN or infinite values")
    return X


def sample_initial_centroids(X: np.ndarray, k: int, seed: SeedLike = None) -> np.ndarray:
    """
    Forgy initialization: pick k distinct rows of X uniformly at random.

    Parameters
    ----------
    X : np.ndarray
        Point set of shape (n_samples, n_features).
    k : int
        Number of centroids to draw.
    seed : int, np.random.Generator or None
        Seed or generator. ``None`` draws fresh OS entropy.

    Returns
    -------
    np.ndarray
        Initial centroid set of shape (k, n_features), a copy of the chosen rows.
    """
    n_samples = X.shape[0]
    if k < 1:
        raise ConfigurationError("k must be at least 1, got %d" % k)
    if k > n_samples:
        raise ConfigurationError(
            "We need at least as many samples as clusters: k=%d, n_samples=%d" % (k, n_samples)
        )

    rng = np.random.default_rng(seed)
    indices = rng.choice(n_samples, size=k, replace=False)
    logger.debug("Seeding %d centroids from rows %s", k, indices.tolist())
    return X[indices].copy()


def _shard_bounds(n_rows: int, n_jobs: int) -> List[Tuple[int, int]]:
    """Split [0, n_rows) into at most n_jobs contiguous, non-empty ranges."""
    n_shards = max(1, min(n_jobs, n_rows))
    edges = np.linspace(0, n_rows, n_shards + 1).astype(int)
    return [(int(lo), int(hi)) for lo, hi in zip(edges[:-1], edges[1:]) if hi > lo]


def _check_centroids(centroids: np.ndarray, n_features: int) -> None:
    if centroids.ndim != 2 or centroids.shape[0] == 0:
        raise ConfigurationError("No centroids - degenerate case")
    if centroids.shape[1] != n_features:
        raise ConfigurationError(
            "Feature dimension mismatch: data has %d features, centroids have %d"
            % (n_features, centroids.shape[1])
        )


def _nearest(X: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    n_samples = X.shape[0]
    k, n_features = centroids.shape
    labels = np.empty(n_samples, dtype=np.intp)
    best = np.empty(n_samples, dtype=np.float64)

    # rows per block so the (rows, k, d) difference tensor stays bounded
    block = max(1, _BLOCK_ELEMENTS // max(1, k * n_features))
    for lo in range(0, n_samples, block):
        hi = min(lo + block, n_samples)
        diff = X[lo:hi, np.newaxis, :] - centroids[np.newaxis, :, :]
        distances = np.einsum("ijk,ijk->ij", diff, diff)
        # argmin returns the first minimum, so ties go to the lowest centroid index
        block_labels = np.argmin(distances, axis=1)
        labels[lo:hi] = block_labels
        best[lo:hi] = distances[np.arange(hi - lo), block_labels]
    return labels, best


def nearest_centroids(
    X: np.ndarray, centroids: np.ndarray, n_jobs: int = 1
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Assign every row of X to its closest centroid.

    Parameters
    ----------
    X : np.ndarray
        Point set of shape (n_samples, n_features).
    centroids : np.ndarray
        Centroid set of shape (k, n_features).
    n_jobs : int, default=1
        Number of worker threads. Rows are split into contiguous shards.

    Returns
    -------
    labels : np.ndarray
        Cluster id per row, shape (n_samples,).
    distances : np.ndarray
        Squared Euclidean distance of each row to its centroid.
    """
    centroids = np.asarray(centroids, dtype=np.float64)
    _check_centroids(centroids, X.shape[1])

    bounds = _shard_bounds(X.shape[0], n_jobs)
    if len(bounds) <= 1:
        return _nearest(X, centroids)

    with ThreadPoolExecutor(max_workers=len(bounds)) as executor:
        parts = list(executor.map(lambda b: _nearest(X[b[0]:b[1]], centroids), bounds))
    labels = np.concatenate([p[0] for p in parts])
    distances = np.concatenate([p[1] for p in parts])
    return labels, distances


def assign_clusters(X: np.ndarray, centroids: np.ndarray, n_jobs: int = 1) -> np.ndarray:
    """Cluster membership of every row of X, ties broken towards the lowest index."""
    labels, _ = nearest_centroids(X, centroids, n_jobs=n_jobs)
    return labels


def find_closest_centroid(centroids: np.ndarray, sample) -> int:
    """
    Index of the centroid closest to a single sample.

    Equidistant centroids resolve to the lowest index.
    """
    centroids = np.asarray(centroids, dtype=np.float64)
    sample = np.asarray(sample, dtype=np.float64).reshape(1, -1)
    _check_centroids(centroids, sample.shape[1])
    labels, _ = _nearest(sample, centroids)
    return int(labels[0])


class RollingMean(object):
    """
    Streaming arithmetic mean of a sequence of points.

    The accumulator only keeps the current mean and the number of samples seen,
    so folding a cluster never materializes its member list. Starting from the
    first sample, each ``accumulate`` applies

        mean <- mean - (mean - sample) / (count + 1)

    which yields the arithmetic mean of all samples regardless of their order.

    Parameters
    ----------
    first_sample : array-like
        The first point of the sequence. It is copied.

    Examples
    --------
    >>> rm = RollingMean([0.0, 0.0])
    >>> rm.accumulate(np.array([2.0, 4.0]))
    >>> rm.current_mean
    array([1., 2.])
    """

    def __init__(self, first_sample):
        self.current_mean = np.array(first_sample, dtype=np.float64)
        self.n_samples = 1

    @classmethod
    def from_summary(cls, mean, n_samples: int) -> "RollingMean":
        """An accumulator that has already seen ``n_samples`` points with the given mean."""
        rolling_mean = cls(mean)
        rolling_mean.n_samples = int(n_samples)
        return rolling_mean

    def accumulate(self, new_sample) -> None:
        """Fold one more point into the mean."""
        increment = (self.current_mean - new_sample) / (self.n_samples + 1)
        self.current_mean = self.current_mean - increment
        self.n_samples += 1

    def merge(self, other: "RollingMean") -> "RollingMean":
        """
        Combine with another accumulator, weighting each mean by its count.

        The result equals the mean of both underlying sequences, so partial
        accumulators built on separate shards reduce to the single-pass value.
        """
        total = self.n_samples + other.n_samples
        weight = other.n_samples / total
        self.current_mean = self.current_mean - (self.current_mean - other.current_mean) * weight
        self.n_samples = total
        return self

    def __repr__(self):
        return "RollingMean(current_mean=%r, n_samples=%d)" % (self.current_mean, self.n_samples)


def _fold(X: np.ndarray, labels: np.ndarray, lo: int, hi: int) -> Dict[int, RollingMean]:
    means: Dict[int, RollingMean] = {}
    for row, cluster in zip(X[lo:hi], labels[lo:hi]):
        cluster = int(cluster)
        rolling_mean = means.get(cluster)
        if rolling_mean is None:
            means[cluster] = RollingMean(row)
        else:
            rolling_mean.accumulate(row)
    return means


def _fold_block(
    X: np.ndarray, labels: np.ndarray, k: int, lo: int, hi: int
) -> Dict[int, RollingMean]:
    # Vectorized per-label sums; numpy releases the GIL so shards overlap
    counts = np.bincount(labels[lo:hi], minlength=k)
    sums = np.zeros((k, X.shape[1]), dtype=np.float64)
    np.add.at(sums, labels[lo:hi], X[lo:hi])
    return {
        int(cluster): RollingMean.from_summary(sums[cluster] / counts[cluster], counts[cluster])
        for cluster in np.flatnonzero(counts)
    }


def compute_centroids(
    X: np.ndarray,
    labels: np.ndarray,
    previous_centroids: np.ndarray,
    n_jobs: int = 1,
) -> np.ndarray:
    """
    Update step: the mean of the members of each cluster.

    A cluster that received no members keeps its row from
    ``previous_centroids``, so the result always has k rows.

    Parameters
    ----------
    X : np.ndarray
        Point set of shape (n_samples, n_features).
    labels : np.ndarray
        Cluster id per row of X, values in [0, k).
    previous_centroids : np.ndarray
        Centroid set of the previous iteration, shape (k, n_features).
    n_jobs : int, default=1
        Number of worker threads. Each shard is summed per cluster with
        vectorized numpy calls and the partial means are merged by count.
        With a single shard rows are folded one by one into ``RollingMean``.

    Returns
    -------
    np.ndarray
        New centroid set of shape (k, n_features).
    """
    labels = np.asarray(labels)
    previous_centroids = np.asarray(previous_centroids, dtype=np.float64)
    n_samples = X.shape[0]
    k = previous_centroids.shape[0]

    if labels.shape != (n_samples,):
        raise ConfigurationError(
            "Expected %d cluster labels, got shape %s" % (n_samples, labels.shape)
        )
    if n_samples and (labels.min() < 0 or labels.max() >= k):
        raise ConfigurationError("Cluster labels must lie in [0, %d)" % k)

    bounds = _shard_bounds(n_samples, n_jobs)
    if len(bounds) <= 1:
        means = _fold(X, labels, 0, n_samples)
    else:
        with ThreadPoolExecutor(max_workers=len(bounds)) as executor:
            partials = list(executor.map(lambda b: _fold_block(X, labels, k, b[0], b[1]), bounds))
        means = {}
        for partial in partials:
            for cluster, rolling_mean in partial.items():
                if cluster in means:
                    means[cluster].merge(rolling_mean)
                else:
                    means[cluster] = rolling_mean

    new_centroids = previous_centroids.copy()
    for cluster, rolling_mean in means.items():
        new_centroids[cluster] = rolling_mean.current_mean

    empty = [cluster for cluster in range(k) if cluster not in means]
    if empty:
        logger.warning("Clusters %s received no points; keeping their previous centroids", empty)
    return new_centroids


def centroid_displacement(old_centroids: np.ndarray, new_centroids: np.ndarray) -> float:
    """Sum over all centroids of the squared distance each one moved."""
    old_centroids = np.asarray(old_centroids, dtype=np.float64)
    new_centroids = np.asarray(new_centroids, dtype=np.float64)
    if old_centroids.shape != new_centroids.shape:
        raise ConfigurationError(
            "Centroid sets differ in shape: %s vs %s" % (old_centroids.shape, new_centroids.shape)
        )
    diff = old_centroids - new_centroids
    return float(np.sum(diff * diff))


def has_converged(old_centroids: np.ndarray, new_centroids: np.ndarray, tol: float) -> bool:
    """True when the total squared displacement is strictly below ``tol``."""
    return centroid_displacement(old_centroids, new_centroids) < tol


def compute_cost(X: np.ndarray, centroids: np.ndarray, n_jobs: int = 1) -> float:
    """
    Within-cluster sum of squares of X against its nearest centroids.

    Returns
    -------
    float
        Sum over rows of the squared distance to the closest centroid.
    """
    _, distances = nearest_centroids(X, centroids, n_jobs=n_jobs)
    return float(distances.sum())


def check_finite(centroids: np.ndarray, where: Optional[str] = None) -> None:
    """Raise NumericalError if a centroid set holds NaN or infinite values."""
    if not np.all(np.isfinite(centroids)):
        raise NumericalError(
            "Non-finite centroid values%s" % ("" if where is None else " after " + where)
        )
