#!/usr/bin/env python
# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
Finding the number of clusters with the Elbow method on the KMeans engine.
"""

import numpy as np
import matplotlib.pyplot as plt

from lloyd.clusterer import KMeans


def main():
    # Data with 3 natural clusters
    data = np.array(
        [
            # Cluster 1: around (0, 0)
            [0.0, 0.0],
            [0.5, 0.5],
            [0.5, -0.5],
            [-0.5, 0.5],
            # Cluster 2: around (5, 5)
            [5.0, 5.0],
            [5.5, 5.0],
            [5.0, 5.5],
            [5.5, 5.5],
            # Cluster 3: around (10, 0)
            [10.0, 0.0],
            [10.5, 0.0],
            [10.0, 0.5],
            [10.5, 0.5],
        ]
    )

    print("Testing k from 1 to 7...\n")

    results = []

    for k in range(1, 8):
        # Lloyd's algorithm only finds a local optimum: keep the best of a few seeds
        best = min(
            (KMeans(k, seed=seed).fit(data) for seed in range(10)),
            key=lambda result: result.inertia,
        )
        results.append({"k": k, "wcss": best.inertia, "iterations": best.iterations})
        print(f"k={k}: WCSS={best.inertia:.4f} ({best.iterations} iterations)")

    k_values = [r["k"] for r in results]
    wcss_values = [r["wcss"] for r in results]

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.plot(k_values, wcss_values, "bo-")
    ax.set_xlabel("Number of Clusters (k)")
    ax.set_ylabel("WCSS")
    ax.set_title("Elbow Method")
    ax.grid(True)

    plt.tight_layout()
    output_path = "/tmp/optimal_k_analysis.png"
    plt.savefig(output_path, dpi=100, bbox_inches="tight")
    print(f"\nVisualization saved to: {output_path}")

    # Elbow: first k after which adding a cluster removes less than half the WCSS
    drops = -np.diff(wcss_values) / np.maximum(wcss_values[:-1], 1e-12)
    elbow = next((k for k, drop in zip(k_values, drops) if drop < 0.5), k_values[-1])
    print(f"Elbow at k={elbow} (expected 3 for this data)")


if __name__ == "__main__":
    main()
