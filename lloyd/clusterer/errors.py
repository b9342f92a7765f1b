# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
Exceptions raised by the k-means engine.
"""

from typing import Optional

import numpy as np


class ClusteringError(Exception):
    """Base class for all clustering errors."""


class ConfigurationError(ClusteringError, ValueError):
    """
    Invalid parameters or input shape.

    Raised before any iteration runs: k < 1, k larger than the number of
    samples, a non 2-D input, or a feature dimension that does not match the
    fitted centroids.
    """


class ConvergenceTimeout(ClusteringError):
    """
    The iteration cap was reached before centroid displacement fell below tol.

    Attributes
    ----------
    centroids : np.ndarray
        The last centroid set computed before giving up, shape (k, d).
    iterations : int
        Number of passes that were run.
    displacement : float
        Total squared centroid displacement of the last pass.
    """

    def __init__(
        self,
        message: str,
        centroids: Optional[np.ndarray] = None,
        iterations: int = 0,
        displacement: float = float("inf"),
    ):
        super(ConvergenceTimeout, self).__init__(message)
        self.centroids = centroids
        self.iterations = iterations
        self.displacement = displacement


class NumericalError(ClusteringError, ArithmeticError):
    """NaN or infinite values in the input data or in a centroid set."""


class UnfittedModelError(ClusteringError, RuntimeError):
    """The engine was used for prediction before a successful fit."""
