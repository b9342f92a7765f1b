# Copyright (c) 2025 massivedatascience
# Licensed under the Apache License, Version 2.0

"""
Lloyd K-Means
=============

K-means clustering with streaming centroid updates and a PySpark ML front end.
"""

__version__ = "0.1.0"
__all__ = ["clusterer"]
