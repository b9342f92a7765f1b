# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
PySpark ML front end for the k-means engine.

The estimator collects the features column to the driver and fits a
:class:`~lloyd.clusterer.engine.KMeans` engine on it. The fitted model
appends predictions to a DataFrame through a UDF.
"""

import time
from typing import List, Optional

import numpy as np

from pyspark import keyword_only
from pyspark.ml import Estimator, Model
from pyspark.ml.linalg import Vector
from pyspark.ml.param import Param, Params, TypeConverters
from pyspark.ml.param.shared import (
    HasFeaturesCol,
    HasMaxIter,
    HasPredictionCol,
    HasSeed,
    HasTol,
)
from pyspark.sql import DataFrame
from pyspark.sql import functions as F
from pyspark.sql.types import DoubleType, IntegerType

from .engine import KMeans
from .steps import compute_cost, find_closest_centroid

_SEED_MASK = (1 << 63) - 1


def _collect_features(dataset: DataFrame, features_col: str) -> np.ndarray:
    rows = dataset.select(features_col).collect()
    return np.array([row[0].toArray() for row in rows], dtype=np.float64)


class LloydKMeansParams(
    HasFeaturesCol,
    HasPredictionCol,
    HasMaxIter,
    HasSeed,
    HasTol,
):
    """
    Params for LloydKMeans and LloydKMeansModel.

    Parameters
    ----------
    k : int, default=2
        Number of clusters to create (k >= 1, at most the number of rows).

    numThreads : int, default=1
        Driver-side worker threads for the assignment and update steps.

    distanceCol : str, optional
        Column name for the squared distance to the assigned center.

    featuresCol : str, default="features"
        Features column name.

    predictionCol : str, default="prediction"
        Prediction column name.

    maxIter : int, default=100
        Maximum number of assign/update passes (>= 1).

    seed : int, optional
        Random seed for the initial centers.

    tol : float, default=1e-3
        Convergence tolerance on the total squared center movement.
    """

    k = Param(
        Params._dummy(),
        "k",
        "Number of clusters to create (must be >= 1).",
        typeConverter=TypeConverters.toInt,
    )

    numThreads = Param(
        Params._dummy(),
        "numThreads",
        "Number of driver threads used for assignment and update",
        typeConverter=TypeConverters.toInt,
    )

    distanceCol = Param(
        Params._dummy(),
        "distanceCol",
        "Column name for squared distance to cluster center",
        typeConverter=TypeConverters.toString,
    )

    def __init__(self, *args):
        super(LloydKMeansParams, self).__init__(*args)
        self._setDefault(
            k=2,
            numThreads=1,
            featuresCol="features",
            predictionCol="prediction",
            maxIter=100,
            tol=1e-3,
        )

    def getK(self) -> int:
        """Gets the value of k or its default value."""
        return self.getOrDefault(self.k)

    def getNumThreads(self) -> int:
        """Gets the value of numThreads or its default value."""
        return self.getOrDefault(self.numThreads)

    def getDistanceCol(self) -> Optional[str]:
        """Gets the value of distanceCol."""
        return self.getOrDefault(self.distanceCol)


class LloydKMeans(Estimator, LloydKMeansParams):
    """
    K-means clustering with Lloyd's algorithm and streaming center updates.

    Initial centers are ``k`` distinct rows drawn at random. Each pass assigns
    every row to its nearest center and recomputes the centers as running
    means of their members; a center that loses all of its members keeps its
    previous position. Training stops once the summed squared center movement
    drops below ``tol``, or fails with
    :class:`~lloyd.clusterer.errors.ConvergenceTimeout` after ``maxIter`` passes.

    Parameters
    ----------
    k : int, default=2
        Number of clusters to create.

    maxIter : int, default=100
        Maximum number of iterations.

    tol : float, default=1e-3
        Convergence tolerance (summed squared center movement).

    seed : int, optional
        Random seed for reproducibility.

    Examples
    --------
    >>> from lloyd.clusterer import LloydKMeans
    >>> from pyspark.ml.linalg import Vectors
    >>>
    >>> data = spark.createDataFrame([
    ...     (Vectors.dense([0.0, 0.0]),),
    ...     (Vectors.dense([0.0, 2.0]),),
    ...     (Vectors.dense([10.0, 0.0]),),
    ...     (Vectors.dense([10.0, 2.0]),)
    ... ], ["features"])
    >>>
    >>> kmeans = LloydKMeans(k=2, maxIter=20, seed=42)
    >>> model = kmeans.fit(data)
    >>> model.transform(data).select("features", "prediction").show()

    Notes
    -----
    - The whole features column is collected to the driver; this estimator is
      meant for data that fits in driver memory.

    See Also
    --------
    LloydKMeansModel : The fitted model
    """

    @keyword_only
    def __init__(
        self,
        *,
        k: int = 2,
        numThreads: int = 1,
        distanceCol: Optional[str] = None,
        featuresCol: str = "features",
        predictionCol: str = "prediction",
        maxIter: int = 100,
        seed: Optional[int] = None,
        tol: float = 1e-3,
    ):
        """
        Initialize LloydKMeans estimator.
        """
        super(LloydKMeans, self).__init__()
        kwargs = self._input_kwargs
        self.setParams(**kwargs)

    @keyword_only
    def setParams(
        self,
        *,
        k: int = 2,
        numThreads: int = 1,
        distanceCol: Optional[str] = None,
        featuresCol: str = "features",
        predictionCol: str = "prediction",
        maxIter: int = 100,
        seed: Optional[int] = None,
        tol: float = 1e-3,
    ):
        """
        Set parameters for LloydKMeans.
        """
        kwargs = self._input_kwargs
        return self._set(**kwargs)

    def setK(self, value: int):
        """Sets the value of k."""
        return self._set(k=value)

    def setNumThreads(self, value: int):
        """Sets the value of numThreads."""
        return self._set(numThreads=value)

    def setDistanceCol(self, value: str):
        """Sets the value of distanceCol."""
        return self._set(distanceCol=value)

    def setMaxIter(self, value: int):
        """Sets the value of maxIter."""
        return self._set(maxIter=value)

    def setSeed(self, value: int):
        """Sets the value of seed."""
        return self._set(seed=value)

    def setTol(self, value: float):
        """Sets the value of tol."""
        return self._set(tol=value)

    def setFeaturesCol(self, value: str):
        """Sets the value of featuresCol."""
        return self._set(featuresCol=value)

    def setPredictionCol(self, value: str):
        """Sets the value of predictionCol."""
        return self._set(predictionCol=value)

    def _fit(self, dataset: DataFrame) -> "LloydKMeansModel":
        X = _collect_features(dataset, self.getFeaturesCol())

        engine = KMeans(
            self.getK(),
            tol=self.getTol(),
            max_iter=self.getMaxIter(),
            # HasSeed defaults to a (possibly negative) class-name hash
            seed=self.getSeed() & _SEED_MASK,
            n_jobs=self.getNumThreads(),
        )
        start = time.perf_counter()
        result = engine.fit(X)
        elapsed_millis = int(round((time.perf_counter() - start) * 1000))

        summary = TrainingSummary(
            k=self.getK(),
            dim=X.shape[1],
            numPoints=X.shape[0],
            iterations=result.iterations,
            converged=result.converged,
            finalDistortion=result.inertia,
            objectiveHistory=list(result.objective_history),
            elapsedMillis=elapsed_millis,
        )
        model = LloydKMeansModel(result.centroids, summary)
        return self._copyValues(model)


class LloydKMeansModel(Model, LloydKMeansParams):
    """
    Model fitted by LloydKMeans.

    This model can transform data to add cluster predictions and optionally
    squared distances to cluster centers.

    Attributes
    ----------
    clusterCenters : np.ndarray
        Array of cluster centers (k x d matrix where k = number of clusters,
        d = feature dimension).

    numClusters : int
        Number of clusters.

    numFeatures : int
        Number of features (dimension).

    Examples
    --------
    >>> centers = model.clusterCenters()
    >>> predictions = model.transform(test_data)
    >>> cluster = model.predict(Vectors.dense([2.0, 3.0]))
    >>> cost = model.computeCost(data)
    """

    def __init__(self, centers: Optional[np.ndarray] = None, summary: Optional["TrainingSummary"] = None):
        super(LloydKMeansModel, self).__init__()
        self._centers = None if centers is None else np.array(centers, dtype=np.float64)
        self._summary = summary

    def clusterCenters(self) -> np.ndarray:
        """
        Get the cluster centers as a NumPy array.

        Returns
        -------
        np.ndarray
            Array of shape (k, d) where k is the number of clusters and
            d is the feature dimension.
        """
        return self._centers.copy()

    @property
    def numClusters(self) -> int:
        """Number of clusters."""
        return int(self._centers.shape[0])

    @property
    def numFeatures(self) -> int:
        """Number of features (dimension)."""
        return int(self._centers.shape[1])

    def predict(self, value: Vector) -> int:
        """
        Predict the cluster for a single data point.

        Parameters
        ----------
        value : Vector
            Feature vector to predict.

        Returns
        -------
        int
            The predicted cluster ID (0 to k-1).
        """
        return find_closest_centroid(self._centers, value.toArray())

    def computeCost(self, dataset: DataFrame) -> float:
        """
        Compute the within-cluster sum of squares (WCSS).

        Parameters
        ----------
        dataset : DataFrame
            Dataset to evaluate (must have features column).

        Returns
        -------
        float
            Sum of squared distances from each point to its nearest center.
        """
        X = _collect_features(dataset, self.getFeaturesCol())
        if X.shape[0] == 0:
            return 0.0
        return compute_cost(X, self._centers, n_jobs=self.getNumThreads())

    def hasSummary(self) -> bool:
        """True if the model was trained in this session and carries a summary."""
        return self._summary is not None

    @property
    def summary(self) -> "TrainingSummary":
        """
        Get the training summary.

        Raises
        ------
        RuntimeError
            If the model has no summary.
        """
        if self._summary is None:
            raise RuntimeError("No training summary available for this %s" % type(self).__name__)
        return self._summary

    def _transform(self, dataset: DataFrame) -> DataFrame:
        centers = self._centers

        def _predict(vector):
            return find_closest_centroid(centers, vector.toArray())

        features = F.col(self.getFeaturesCol())
        predict_udf = F.udf(_predict, IntegerType())
        result = dataset.withColumn(self.getPredictionCol(), predict_udf(features))

        distance_col = self.getDistanceCol() if self.isDefined(self.distanceCol) else None
        if distance_col:

            def _distance(vector):
                diff = centers - vector.toArray()
                return float(np.min(np.einsum("ij,ij->i", diff, diff)))

            distance_udf = F.udf(_distance, DoubleType())
            result = result.withColumn(distance_col, distance_udf(features))
        return result


class TrainingSummary(object):
    """
    Training summary with metrics about the clustering run.

    Attributes
    ----------
    algorithm : str
        Algorithm name.

    k : int
        Number of clusters.

    dim : int
        Feature dimensionality.

    numPoints : int
        Number of training points.

    iterations : int
        Number of passes that moved the centers.

    converged : bool
        Whether the algorithm converged.

    finalDistortion : float
        Final within-cluster sum of squares.

    objectiveHistory : List[float]
        Within-cluster sum of squares entering each pass.

    elapsedMillis : int
        Training time in milliseconds.
    """

    algorithm = "LloydKMeans"

    def __init__(
        self,
        k: int,
        dim: int,
        numPoints: int,
        iterations: int,
        converged: bool,
        finalDistortion: float,
        objectiveHistory: List[float],
        elapsedMillis: int,
    ):
        self.k = k
        self.dim = dim
        self.numPoints = numPoints
        self.iterations = iterations
        self.converged = converged
        self.finalDistortion = finalDistortion
        self.objectiveHistory = objectiveHistory
        self.elapsedMillis = elapsedMillis

    @property
    def avgIterationMillis(self) -> float:
        """Average time per pass in milliseconds."""
        passes = max(1, len(self.objectiveHistory))
        return self.elapsedMillis / passes

    def convergenceReport(self) -> str:
        """Get a convergence report as a string."""
        lines = [
            "%s: k=%d, dim=%d, points=%d" % (self.algorithm, self.k, self.dim, self.numPoints),
            "converged=%s after %d iterations in %d ms"
            % (self.converged, self.iterations, self.elapsedMillis),
        ]
        for i, objective in enumerate(self.objectiveHistory):
            lines.append("  pass %d: objective=%.6f" % (i + 1, objective))
        lines.append("final distortion=%.6f" % self.finalDistortion)
        return "\n".join(lines)

    def __repr__(self):
        return "TrainingSummary(k=%d, iterations=%d, converged=%s, finalDistortion=%.6g)" % (
            self.k,
            self.iterations,
            self.converged,
            self.finalDistortion,
        )
