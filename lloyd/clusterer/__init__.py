# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
K-Means Clustering
==================

Lloyd's algorithm with Forgy initialization, streaming (rolling-mean) center
updates and a fixed-size center set: a cluster that loses all of its members
keeps its previous center.

Classes:
    KMeans: In-memory engine working on NumPy arrays
    FitResult: Outcome of a converged fit
    RollingMean: Streaming mean accumulator used by the update step
    LloydKMeans: PySpark ML estimator built on the engine
    LloydKMeansModel: Fitted PySpark model
    TrainingSummary: Training summary with convergence metrics

Example:
    >>> import numpy as np
    >>> from lloyd.clusterer import KMeans
    >>>
    >>> X = np.array([[0.0, 0.0], [0.0, 2.0], [10.0, 0.0], [10.0, 2.0]])
    >>> engine = KMeans(2, seed=42)
    >>> result = engine.fit(X)
    >>> labels = engine.predict(X)
"""

from .engine import EngineState, FitResult, KMeans, lloyd
from .errors import (
    ClusteringError,
    ConfigurationError,
    ConvergenceTimeout,
    NumericalError,
    UnfittedModelError,
)
from .kmeans import LloydKMeans, LloydKMeansModel, TrainingSummary
from .steps import (
    RollingMean,
    assign_clusters,
    centroid_displacement,
    compute_centroids,
    compute_cost,
    find_closest_centroid,
    has_converged,
    sample_initial_centroids,
)

__all__ = [
    "KMeans",
    "FitResult",
    "EngineState",
    "lloyd",
    "RollingMean",
    "assign_clusters",
    "centroid_displacement",
    "compute_centroids",
    "compute_cost",
    "find_closest_centroid",
    "has_converged",
    "sample_initial_centroids",
    "ClusteringError",
    "ConfigurationError",
    "ConvergenceTimeout",
    "NumericalError",
    "UnfittedModelError",
    "LloydKMeans",
    "LloydKMeansModel",
    "TrainingSummary",
]
