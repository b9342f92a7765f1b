#!/usr/bin/env python
# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
LloydKMeans on a Spark DataFrame: squared distances, objective history and
what happens when the iteration cap is too tight.
"""

from pyspark.sql import SparkSession
from pyspark.ml.linalg import Vectors

from lloyd.clusterer import ConvergenceTimeout, LloydKMeans


def main():
    spark = (
        SparkSession.builder.appName("LloydKMeansBasics")
        .config("spark.ui.enabled", "false")
        .getOrCreate()
    )
    spark.sparkContext.setLogLevel("WARN")

    # Two separated pairs: every random start ends on their midpoints
    data = spark.createDataFrame(
        [(Vectors.dense(point),) for point in ([0.0, 0.0], [1.0, 1.0], [9.0, 8.0], [8.0, 9.0])],
        ["features"],
    )

    kmeans = LloydKMeans(k=2, seed=7, numThreads=2, distanceCol="sqDistance")
    model = kmeans.fit(data)

    # Each row next to its cluster and squared distance to the center
    model.transform(data).select("features", "prediction", "sqDistance").show()

    summary = model.summary
    print("Objective per pass (never increases):")
    for n_pass, objective in enumerate(summary.objectiveHistory, start=1):
        print(f"  pass {n_pass}: {objective:.4f}")
    print(f"Centers moved on {summary.iterations} pass(es); final WCSS {summary.finalDistortion:.4f}")
    print(f"Centers:\n{model.clusterCenters()}")

    # A single pass is not enough to confirm convergence from a random start.
    # The error still carries the centers it had reached.
    skewed = spark.createDataFrame(
        [(Vectors.dense([v]),) for v in (0.0, 1.0, 2.0, 3.0, 10.0)], ["features"]
    )
    try:
        LloydKMeans(k=1, maxIter=1, seed=7).fit(skewed)
    except ConvergenceTimeout as timeout:
        print(
            f"\nNo convergence within {timeout.iterations} pass(es); "
            f"displacement {timeout.displacement:.3f}, last centers {timeout.centroids.ravel()}"
        )

    spark.stop()


if __name__ == "__main__":
    main()
