#!/usr/bin/env python
# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
Fit the KMeans engine on standard-normal data and print the centroids.
"""

import logging

import numpy as np

from lloyd.clusterer import ConvergenceTimeout, KMeans


def get_data(n_samples, n_features, seed=None):
    rng = np.random.default_rng(seed)
    return rng.standard_normal((n_samples, n_features))


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    n_samples = 5000
    n_features = 3
    n_clusters = 2

    X = get_data(n_samples, n_features, seed=0)

    engine = KMeans(n_clusters, seed=0, n_jobs=4)
    try:
        result = engine.fit(X)
    except ConvergenceTimeout as timeout:
        print(f"No convergence after {timeout.iterations} passes; last centroids:")
        print(np.round(timeout.centroids, 3))
        return

    print(f"The centroids are\n{np.round(result.centroids, 3)}")
    print(f"Iterations: {result.iterations}, inertia: {result.inertia:.3f}")


if __name__ == "__main__":
    main()
