# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Elementwise operations on fixed-dimension positions and velocities.
All vectors are 1-dimensional float numpy arrays.
"""

import numpy as np
from scipy.spatial import distance as _distance
import multiswarm.common.typing as tp
from multiswarm.common import errors


def as_vector(values: tp.ArrayLike) -> np.ndarray:
    """Converts to a new 1-dimensional float array
    """
    vector = np.array(values, dtype=float)
    if vector.ndim != 1:
        raise errors.MultiswarmValueError(f"Expected a 1-dimensional vector but got shape {vector.shape}")
    return vector


def check_dimension(vector: np.ndarray, dimension: int) -> None:
    if vector.shape != (dimension,):
        raise errors.MultiswarmValueError(f"Expected a vector of dimension {dimension} but got shape {vector.shape}")


def _check_same(*vectors: np.ndarray) -> None:
    shapes = {v.shape for v in vectors}
    if len(shapes) > 1:
        raise errors.MultiswarmValueError(f"Vectors have mismatching dimensions: {sorted(shapes)}")


def add(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    _check_same(x, y)
    return x + y


def subtract(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    _check_same(x, y)
    return x - y


def scale(x: np.ndarray, factor: float) -> np.ndarray:
    return float(factor) * x


def clip(x: np.ndarray, lower: np.ndarray, upper: np.ndarray) -> np.ndarray:
    """Per-dimension clamping within [lower, upper]
    """
    _check_same(x, lower, upper)
    return np.clip(x, lower, upper)


def distance(x: np.ndarray, y: np.ndarray) -> float:
    """Euclidean distance"""
    _check_same(x, y)
    return float(np.linalg.norm(x - y))


def pairwise_distances(vectors: tp.Sequence[np.ndarray]) -> np.ndarray:
    """Condensed Euclidean distance matrix (see scipy.spatial.distance.pdist),
    ordered as (0, 1), (0, 2), ..., (1, 2), ...
    """
    if len(vectors) < 2:
        return np.zeros((0,))
    _check_same(*vectors)
    return _distance.pdist(np.stack(vectors), metric="euclidean")  # type: ignore


def diameter(vectors: tp.Sequence[np.ndarray]) -> float:
    """Maximum pairwise Euclidean distance (0 with less than 2 vectors)
    """
    distances = pairwise_distances(vectors)
    return float(distances.max()) if distances.size else 0.0


def centroid(vectors: tp.Sequence[np.ndarray]) -> np.ndarray:
    if not vectors:
        raise errors.MultiswarmValueError("Cannot compute the centroid of an empty set of vectors")
    _check_same(*vectors)
    return np.mean(np.stack(vectors), axis=0)  # type: ignore
