#!/usr/bin/env python
# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
Setup configuration for the lloyd-kmeans package.
"""

from setuptools import setup, find_packages
import os

# Read version from package
with open(os.path.join("lloyd", "__init__.py")) as f:
    for line in f:
        if line.startswith("__version__"):
            version = line.split("=")[1].strip().strip('"').strip("'")
            break

# Read long description from README
long_description = """
# Lloyd K-Means

K-means clustering (Lloyd's algorithm) with streaming centroid updates, a
NumPy engine and a PySpark ML estimator.

## Features

- **Streaming Update Step**: Centroids are rolling means; member lists are never stored
- **Fixed-Size Centroid Set**: Empty clusters keep their previous centroid
- **Reproducible**: Explicit seed for the random (Forgy) initialization
- **Bounded Iteration**: Typed `ConvergenceTimeout` carrying the last centroids
- **Threaded Assignment**: Optional row-sharded assignment and update steps
- **Spark ML Integration**: Estimator/Model pattern with Pipeline support

## Installation

```bash
pip install lloyd-kmeans
```

## Quick Start

```python
import numpy as np
from lloyd.clusterer import KMeans

X = np.array([[0.0, 0.0], [0.0, 2.0], [10.0, 0.0], [10.0, 2.0]])

engine = KMeans(2, seed=42)
result = engine.fit(X)
print(result.centroids, result.iterations)
print(engine.predict([[1.0, 1.0], [9.0, 1.0]]))
```

```python
from pyspark.ml.linalg import Vectors
from lloyd.clusterer import LloydKMeans

data = spark.createDataFrame([
    (Vectors.dense([0.0, 0.0]),),
    (Vectors.dense([1.0, 1.0]),),
    (Vectors.dense([9.0, 8.0]),),
    (Vectors.dense([8.0, 9.0]),)
], ["features"])

model = LloydKMeans(k=2, maxIter=20, seed=42).fit(data)
model.transform(data).select("features", "prediction").show()
print(f"Within-cluster sum of squares: {model.computeCost(data)}")
```
"""

setup(
    name="lloyd-kmeans",
    version=version,
    description="K-means clustering with streaming centroid updates and a PySpark ML estimator",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="MassiveDataScience",
    author_email="support@massivedatascience.com",
    license="Apache License 2.0",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "examples.*"]),
    python_requires=">=3.8",
    install_requires=[
        "pyspark>=3.4.0",
        "numpy>=1.20.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=3.0.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=0.950",
        ],
        "examples": [
            "matplotlib>=3.5.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering",
        "Topic :: Software Development :: Libraries",
    ],
    keywords="kmeans clustering lloyd machine-learning pyspark",
)
