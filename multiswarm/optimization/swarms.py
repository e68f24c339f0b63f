# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common import errors
from multiswarm.common.tools import round_half_up
from . import vectors
from . import coefficients as coefs
from .constraints import Constraints
from .particles import Attractor
from .particles import Particle
from .particles import ParticleKind
from .particles import best_of


logger = logging.getLogger(__name__)
CoefficientLike = tp.Union[float, coefs.Coefficient]


class Swarm:
    """Ordered collection of particles sharing a swarm attractor.

    Subclasses implement :code:`mutate`, which moves all particles once and
    advances the iteration counter.

    Parameters
    ----------
    particles: list of Particle
        the particles, all of the same dimension
    constraints: Constraints (optional)
        if provided, particles are confined within the constraints after each move
    random_state: np.random.RandomState (optional)
        random state the particles pull from when moving
    """

    def __init__(
        self,
        particles: tp.List[Particle],
        constraints: tp.Optional[Constraints] = None,
        random_state: tp.Optional[np.random.RandomState] = None,
    ) -> None:
        self._particles: tp.List[Particle] = []
        self.constraints = constraints
        self.random_state = np.random.RandomState() if random_state is None else random_state
        self.swarm_attractor: tp.Optional[Attractor] = None
        self.bestfit: tp.Optional[float] = None
        self.iteration = 1
        self._set_particles(particles)

    def _set_particles(self, particles: tp.List[Particle]) -> None:
        if not particles:
            raise errors.ConfigurationError("A swarm requires at least one particle")
        dimensions = {p.dimension for p in particles}
        if len(dimensions) > 1:
            raise errors.ConfigurationError(f"Particles have mismatching dimensions {sorted(dimensions)}")
        if self.constraints is not None:
            self.constraints.check_dimension(particles[0].dimension)
        self._particles = list(particles)

    @property
    def dimension(self) -> int:
        return self._particles[0].dimension

    @property
    def particles(self) -> tp.List[Particle]:
        return list(self._particles)

    def __iter__(self) -> tp.Iterator[Particle]:
        return iter(self._particles)

    def __len__(self) -> int:
        return len(self._particles)

    def update_attractor(self) -> Attractor:
        """Updates the swarm attractor with the highest of the previous swarm attractor
        and of all particle attractors, and returns it.
        """
        attractor = best_of([self.swarm_attractor] + [p.attractor for p in self._particles])
        if attractor is None:
            raise errors.PreconditionError("No particle of the swarm was evaluated yet")
        self.swarm_attractor = attractor
        self.bestfit = attractor.height
        return attractor

    def diameter(self) -> float:
        """Maximum distance between two particles of the swarm
        """
        return vectors.diameter([p.position for p in self._particles])

    def centroid(self) -> np.ndarray:
        """Mean of all particle attractor positions (C_n in [SUN11], formulae 4.81 and 4.82)
        """
        positions = []
        for particle in self._particles:
            if particle.attractor is None:
                raise errors.PreconditionError("Cannot compute the centroid of a swarm with unevaluated particles")
            positions.append(particle.attractor.position)
        return vectors.centroid(positions)

    def mutate(self) -> None:
        raise NotImplementedError

    def _confine(self) -> None:
        if self.constraints is None:
            return
        clamped = sum(p.remain_within(self.constraints) for p in self._particles)
        if clamped:
            logger.debug("Confined %s particle component(s) within constraints", clamped)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(size={len(self)}, iteration={self.iteration}, "
            f"attractor={self.swarm_attractor})"
        )


def _make_particles(
    positions: tp.Sequence[tp.ArrayLike],
    velocities: tp.Sequence[tp.ArrayLike],
    num_neutral: int,
) -> tp.List[Particle]:
    """Neutral (classical) particles first, charged (quantum) particles last
    """
    if len(velocities) != num_neutral:
        raise errors.ConfigurationError(
            f"Expected {num_neutral} initial velocities (one per classical particle) but got {len(velocities)}"
        )
    particles = []
    for index, position in enumerate(positions):
        if index < num_neutral:
            particles.append(Particle(position, velocities[index], kind=ParticleKind.CLASSICAL))
        else:
            particles.append(Particle(position, kind=ParticleKind.QUANTUM))
    return particles


class PSOSwarm(Swarm):
    """Swarm of classical particles (constricted PSO, or inertia PSO if chi is
    provided as an inertia weight schedule)

    Parameters
    ----------
    positions: list of array-like
        initial positions
    velocities: list of array-like
        initial velocities
    chi: float or Coefficient
        constriction coefficient (or inertia weight)
    c1: float
        cognitive acceleration coefficient
    c2: float
        social acceleration coefficient
    """

    def __init__(
        self,
        positions: tp.Sequence[tp.ArrayLike],
        velocities: tp.Sequence[tp.ArrayLike],
        *,
        chi: CoefficientLike = coefs.DEFAULT_CHI,
        c1: float = coefs.DEFAULT_C1,
        c2: float = coefs.DEFAULT_C2,
        constraints: tp.Optional[Constraints] = None,
        random_state: tp.Optional[np.random.RandomState] = None,
    ) -> None:
        super().__init__(_make_particles(positions, velocities, len(positions)), constraints, random_state)
        self._chi = coefs.as_coefficient(chi)
        self.c1 = float(c1)
        self.c2 = float(c2)

    def mutate(self) -> None:
        chi = self._chi(self.iteration)
        for particle in self._particles:
            particle.move(self.swarm_attractor, self.random_state, chi=chi, c1=self.c1, c2=self.c2)
        self._confine()
        self.iteration += 1


class QPSOSwarm(Swarm):
    """Swarm of quantum particles (QPSO type II)

    Parameters
    ----------
    positions: list of array-like
        initial positions
    alpha: float or Coefficient
        contraction-expansion coefficient
    """

    def __init__(
        self,
        positions: tp.Sequence[tp.ArrayLike],
        *,
        alpha: CoefficientLike = coefs.DEFAULT_ALPHA,
        constraints: tp.Optional[Constraints] = None,
        random_state: tp.Optional[np.random.RandomState] = None,
    ) -> None:
        super().__init__(_make_particles(positions, [], 0), constraints, random_state)
        self._alpha = coefs.as_coefficient(alpha)

    def mutate(self) -> None:
        alpha = self._alpha(self.iteration)
        centroid = self.centroid()
        for particle in self._particles:
            particle.move(self.swarm_attractor, self.random_state, alpha=alpha, centroid=centroid)
        self._confine()
        self.iteration += 1


class ChargedSwarm(Swarm):
    """Swarm mixing neutral (classical PSO) and charged (QPSO) particles, as used
    by multi-swarm optimization [BLACKWELLBRANKE04]. Both kinds share the swarm
    attractor, and neutral particles also contribute to the centroid driving the
    charged particles.

    Parameters
    ----------
    positions: list of array-like
        initial positions (neutral particles first)
    velocities: list of array-like
        initial velocities of the neutral particles
    charged_to_neutral_ratio: float
        ratio between the number of charged and neutral particles (1 means half of each)
    chi: float or Coefficient
        constriction coefficient of neutral particles
    alpha: float or Coefficient
        contraction-expansion coefficient of charged particles
    c1: float
        cognitive acceleration coefficient
    c2: float
        social acceleration coefficient

    Note
    ----
    [BLACKWELLBRANKE04] T. Blackwell and J. Branke, Multi-swarm Optimization in Dynamic
    Environments, Applications of Evolutionary Computing, pp. 489-500, Springer, 2004.
    """

    DEFAULT_CHARGED_TO_NEUTRAL_RATIO = 1.0

    def __init__(
        self,
        positions: tp.Sequence[tp.ArrayLike],
        velocities: tp.Sequence[tp.ArrayLike],
        *,
        charged_to_neutral_ratio: float = DEFAULT_CHARGED_TO_NEUTRAL_RATIO,
        chi: CoefficientLike = coefs.DEFAULT_CHI,
        alpha: CoefficientLike = coefs.DEFAULT_ALPHA,
        c1: float = coefs.DEFAULT_C1,
        c2: float = coefs.DEFAULT_C2,
        constraints: tp.Optional[Constraints] = None,
        random_state: tp.Optional[np.random.RandomState] = None,
    ) -> None:
        self.num_charged, self.num_neutral = self.composition(len(positions), charged_to_neutral_ratio)
        super().__init__(_make_particles(positions, velocities, self.num_neutral), constraints, random_state)
        self._chi = coefs.as_coefficient(chi)
        self._alpha = coefs.as_coefficient(alpha)
        self.c1 = float(c1)
        self.c2 = float(c2)

    @staticmethod
    def composition(size: int, charged_to_neutral_ratio: float) -> tp.Tuple[int, int]:
        """Returns the number of charged and neutral particles for a swarm of the given size
        """
        ratio = float(charged_to_neutral_ratio)
        if not ratio > 0.0:
            raise errors.ConfigurationError(f"charged_to_neutral_ratio must be strictly positive (got {ratio})")
        if size < 1:
            raise errors.ConfigurationError(f"Swarm size must be at least 1 (got {size})")
        num_charged = min(size, round_half_up(size * ratio / (1.0 + ratio)))
        return num_charged, size - num_charged

    @classmethod
    def sample(
        cls,
        size: int,
        constraints: Constraints,
        random_state: np.random.RandomState,
        **params: tp.Any,
    ) -> "ChargedSwarm":
        """Creates a swarm with positions and velocities sampled uniformly within the constraints
        """
        ratio = params.get("charged_to_neutral_ratio", cls.DEFAULT_CHARGED_TO_NEUTRAL_RATIO)
        _, num_neutral = cls.composition(size, ratio)
        positions = [constraints.sample(random_state) for _ in range(size)]
        velocities = [constraints.sample(random_state) for _ in range(num_neutral)]
        return cls(positions, velocities, constraints=constraints, random_state=random_state, **params)

    def reinitialize(self, positions: tp.Sequence[tp.ArrayLike], velocities: tp.Sequence[tp.ArrayLike]) -> None:
        """Replaces every particle in place, with the same composition.
        The swarm attractor is forgotten and must be recomputed after evaluation,
        and iteration-dependent coefficients start over from the first iteration.
        """
        if len(positions) != len(self):
            raise errors.ConfigurationError(f"Expected {len(self)} positions but got {len(positions)}")
        particles = _make_particles(positions, velocities, self.num_neutral)
        if particles[0].dimension != self.dimension:
            raise errors.ConfigurationError(
                f"Expected positions of dimension {self.dimension} but got {particles[0].dimension}"
            )
        self._set_particles(particles)
        self.swarm_attractor = None
        self.bestfit = None
        self.iteration = 1

    def mutate(self) -> None:
        chi = self._chi(self.iteration)
        alpha = self._alpha(self.iteration)
        centroid = self.centroid()
        # neutral particles come first, charged ones last
        for index, particle in enumerate(self._particles):
            if index < self.num_neutral:
                particle.move(self.swarm_attractor, self.random_state, chi=chi, c1=self.c1, c2=self.c2)
            else:
                particle.move(self.swarm_attractor, self.random_state, alpha=alpha, centroid=centroid)
        self._confine()
        self.iteration += 1
