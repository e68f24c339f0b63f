# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common import errors
from . import vectors


class Constraints:
    """Box constraints of the search space, with one (min, max) pair per dimension.
    They are used both for sampling random initial positions/velocities and for
    confining particles within the search space.

    Parameters
    ----------
    min: sequence of float
        lower bound of each dimension
    max: sequence of float
        upper bound of each dimension
    """

    # pylint: disable=redefined-builtin
    def __init__(self, min: tp.ArrayLike, max: tp.ArrayLike) -> None:
        try:
            self.min = vectors.as_vector(min)
            self.max = vectors.as_vector(max)
        except errors.MultiswarmValueError as e:
            raise errors.ConfigurationError(f"Invalid constraints: {e}") from e
        if self.min.shape != self.max.shape:
            raise errors.ConfigurationError(
                f"Constraints have {self.min.size} lower bounds but {self.max.size} upper bounds"
            )
        if not self.min.size:
            raise errors.ConfigurationError("Constraints must have at least one dimension")
        if np.any(self.min > self.max):
            raise errors.ConfigurationError(f"Lower bounds {self.min} must not exceed upper bounds {self.max}")
        self.min.setflags(write=False)
        self.max.setflags(write=False)

    @classmethod
    def from_bounds(cls, lower: float, upper: float, dimension: int) -> "Constraints":
        """Cubic box [lower, upper]^dimension
        """
        if dimension < 1:
            raise errors.ConfigurationError(f"Dimension must be at least 1 (got {dimension})")
        return cls(min=[lower] * dimension, max=[upper] * dimension)

    @classmethod
    def convert(cls, constraints: tp.Union["Constraints", tp.Mapping[str, tp.ArrayLike]]) -> "Constraints":
        """Accepts either a Constraints instance or a {"min": ..., "max": ...} mapping
        """
        if isinstance(constraints, cls):
            return constraints
        if isinstance(constraints, tp.Mapping) and set(constraints) == {"min", "max"}:
            return cls(min=constraints["min"], max=constraints["max"])
        raise errors.ConfigurationError(
            f'Constraints must be a Constraints instance or a {{"min": ..., "max": ...}} mapping, got {constraints!r}'
        )

    @property
    def dimension(self) -> int:
        return self.min.size

    @property
    def extent(self) -> float:
        """Largest width among all dimensions
        """
        return float(np.max(self.max - self.min))

    def check_dimension(self, dimension: int) -> None:
        if dimension != self.dimension:
            raise errors.ConfigurationError(
                f"Constraints have dimension {self.dimension} but the problem has dimension {dimension}"
            )

    def sample(self, random_state: np.random.RandomState) -> np.ndarray:
        """Uniform sample within the box: min + U(0,1) * (max - min) for each dimension
        """
        return self.min + random_state.uniform(0.0, 1.0, size=self.dimension) * (self.max - self.min)  # type: ignore

    def clip(self, position: np.ndarray) -> np.ndarray:
        return vectors.clip(position, self.min, self.max)

    def contains(self, position: np.ndarray) -> bool:
        vectors.check_dimension(position, self.dimension)
        return bool(np.all(position >= self.min) and np.all(position <= self.max))

    def __repr__(self) -> str:
        return f"Constraints(min={self.min.tolist()}, max={self.max.tolist()})"
