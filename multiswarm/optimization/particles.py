# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import enum
import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common import errors
from . import vectors
from .constraints import Constraints


class Attractor(tp.NamedTuple):
    """Best (height, position) pair observed by a particle or a swarm.
    Heights are maximized.
    """

    height: float
    position: np.ndarray

    def __repr__(self) -> str:
        return f"Attractor(height={self.height}, position={self.position.tolist()})"


def best_of(attractors: tp.Iterable[tp.Optional[Attractor]]) -> tp.Optional[Attractor]:
    """Highest attractor, ignoring missing ones.
    Ties are resolved in favor of the first one, so that an attractor is only replaced
    by a strictly greater height.
    """
    best: tp.Optional[Attractor] = None
    for attractor in attractors:
        if attractor is not None and (best is None or attractor.height > best.height):
            best = attractor
    return best


class ParticleKind(enum.Enum):
    CLASSICAL = "classical"  # PSO with constriction/inertia, has a velocity
    QUANTUM = "quantum"  # QPSO type II, no velocity


class Particle:
    """Candidate solution moving in the search space.

    Both kinds of particles share this class, the kind decides how the
    particle moves:

    - classical (constricted PSO, see equation 4.30 of [SUN11]):
      :code:`v' = chi * (v + c1 * r1 * (p - x) + c2 * r2 * (g - x))` and :code:`x' = x + v'`
    - quantum (QPSO type II, see formulae 4.82 and 4.83 of [SUN11]):
      :code:`x' = phi * p + (1 - phi) * g +/- alpha * |x - c| * ln(1 / u)`

    where p is the particle attractor, g the swarm attractor and c the centroid
    of the swarm attractors.

    Parameters
    ----------
    position: array-like
        initial position
    velocity: array-like or None
        initial velocity, required for classical particles and forbidden for quantum ones
    kind: ParticleKind
        defaults to classical if a velocity is provided, quantum otherwise

    Note
    ----
    [SUN11] J. Sun, C.-H. Lai and X.-J. Wu, Particle Swarm Optimisation: Classical and
    Quantum Perspectives, CRC Press, 2011.
    """

    def __init__(
        self,
        position: tp.ArrayLike,
        velocity: tp.Optional[tp.ArrayLike] = None,
        kind: tp.Optional[ParticleKind] = None,
    ) -> None:
        if kind is None:
            kind = ParticleKind.QUANTUM if velocity is None else ParticleKind.CLASSICAL
        self.kind = kind
        self.position = vectors.as_vector(position)
        self.velocity: tp.Optional[np.ndarray] = None
        if kind is ParticleKind.CLASSICAL:
            if velocity is None:
                raise errors.ConfigurationError("Classical particles require an initial velocity")
            self.velocity = vectors.as_vector(velocity)
            if self.velocity.shape != self.position.shape:
                raise errors.ConfigurationError(
                    f"Velocity dimension {self.velocity.size} does not match position dimension {self.position.size}"
                )
        elif velocity is not None:
            raise errors.ConfigurationError("Quantum particles do not have a velocity")
        self.height: tp.Optional[float] = None
        self.attractor: tp.Optional[Attractor] = None
        self._evaluated = False

    @property
    def dimension(self) -> int:
        return self.position.size

    @property
    def needs_evaluation(self) -> bool:
        """Whether the current position was not evaluated yet"""
        return not self._evaluated

    def evaluate(self, objective: tp.Objective) -> float:
        """Computes the height of the current position, and updates the attractor
        if it is the first evaluation or if the height is strictly greater.
        Exceptions of the objective function are propagated.
        """
        position = self.position.copy()  # the objective must not alter the particle
        height = float(objective(position))
        self.height = height
        if self.attractor is None or height > self.attractor.height:
            self.attractor = Attractor(height, self.position.copy())
        self._evaluated = True
        return height

    def move(
        self,
        swarm_attractor: tp.Optional[Attractor],
        random_state: np.random.RandomState,
        *,
        chi: tp.Optional[float] = None,
        c1: tp.Optional[float] = None,
        c2: tp.Optional[float] = None,
        alpha: tp.Optional[float] = None,
        centroid: tp.Optional[np.ndarray] = None,
    ) -> None:
        """Moves the particle according to its kind.
        Classical particles require chi, c1 and c2, quantum particles require alpha and centroid.

        Raises
        ------
        PreconditionError
            if the particle (or swarm) attractor is not available yet, i.e. evaluate
            was not called before the first move
        """
        if self.attractor is None:
            raise errors.PreconditionError("Particle attractor is not set, evaluate the particle before moving it")
        if swarm_attractor is None:
            raise errors.PreconditionError("Swarm attractor is not set, update it before moving particles")
        if self.kind is ParticleKind.CLASSICAL:
            if chi is None or c1 is None or c2 is None:
                raise errors.MultiswarmValueError("Classical particles require chi, c1 and c2 to move")
            self._move_classical(swarm_attractor, random_state, chi, c1, c2)
        else:
            if alpha is None or centroid is None:
                raise errors.MultiswarmValueError("Quantum particles require alpha and centroid to move")
            self._move_quantum(swarm_attractor, random_state, alpha, centroid)
        self._evaluated = False

    def _move_classical(
        self, swarm_attractor: Attractor, random_state: np.random.RandomState, chi: float, c1: float, c2: float
    ) -> None:
        assert self.attractor is not None and self.velocity is not None
        x = self.position
        r1 = random_state.uniform(0.0, 1.0, size=self.dimension)
        r2 = random_state.uniform(0.0, 1.0, size=self.dimension)
        # previous velocity, "memory" towards the particle attractor, "social" towards the swarm attractor
        memory = c1 * r1 * vectors.subtract(self.attractor.position, x)
        social = c2 * r2 * vectors.subtract(swarm_attractor.position, x)
        self.velocity = vectors.scale(self.velocity + memory + social, chi)
        self.position = vectors.add(x, self.velocity)

    def _move_quantum(
        self, swarm_attractor: Attractor, random_state: np.random.RandomState, alpha: float, centroid: np.ndarray
    ) -> None:
        assert self.attractor is not None
        phi = random_state.uniform(0.0, 1.0, size=self.dimension)
        local = phi * self.attractor.position + (1.0 - phi) * swarm_attractor.position
        # 1 - U[0, 1) lies in (0, 1], which avoids log(1 / 0)
        u = 1.0 - random_state.uniform(0.0, 1.0, size=self.dimension)
        delta = alpha * np.abs(vectors.subtract(self.position, centroid)) * np.log(1.0 / u)
        # a single coin flip for the whole particle
        if random_state.uniform(0.0, 1.0) < 0.5:
            self.position = local + delta
        else:
            self.position = local - delta

    def remain_within(self, constraints: Constraints) -> int:
        """Clamps the position within the constraints. For classical particles, the
        velocity of each clamped dimension is reversed and halved (reflecting wall),
        see equations 3.14 and 3.15 of [CLERC12].

        Returns
        -------
        int
            the number of clamped dimensions

        Note
        ----
        [CLERC12] M. Clerc, Standard Particle Swarm Optimisation, 2012.
        """
        constraints.check_dimension(self.dimension)
        outside = (self.position < constraints.min) | (self.position > constraints.max)
        if not np.any(outside):
            return 0
        self.position = constraints.clip(self.position)
        if self.velocity is not None:
            self.velocity = np.where(outside, -0.5 * self.velocity, self.velocity)
        return int(np.sum(outside))

    def __repr__(self) -> str:
        return f"Particle<{self.kind.value}, position: {self.position.tolist()}, attractor: {self.attractor}>"
