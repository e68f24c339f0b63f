# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import multiswarm.common.typing as tp
from multiswarm.common import errors
from . import base
from . import coefficients as coefs
from .evaluation import CancellationToken
from .swarms import CoefficientLike
from .swarms import PSOSwarm
from .swarms import QPSOSwarm
from .swarms import Swarm
from .base import registry


class _SingleSwarmSolver(base.Solver):
    """Solver moving a single swarm: at each iteration, all particles are evaluated,
    then the swarm attractor and the overall best are updated before the swarm mutates.
    """

    def __init__(self, **kwargs: tp.Any) -> None:
        super().__init__(**kwargs)
        self._swarm: tp.Optional[Swarm] = None

    @property
    def swarm(self) -> Swarm:
        if self._swarm is None:
            raise errors.PreconditionError(f"{self.name} has not started solving yet")
        return self._swarm

    def _iterate(self, objective: tp.Objective, cancellation: tp.Optional[CancellationToken]) -> None:
        swarm = self.swarm
        self._evaluate(swarm, objective, cancellation)
        attractor = swarm.update_attractor()
        self._update_best([attractor])
        swarm.mutate()


@registry.register
class PSOSolver(_SingleSwarmSolver):
    """`Particle Swarm Optimization <https://en.wikipedia.org/wiki/Particle_swarm_optimization>`_
    with constriction factor (or with inertia weight, using a coefficient schedule for chi).

    Parameters
    ----------
    chi: float or Coefficient
        constriction factor, defaults to constriction(2.05, 2.05), about 0.7298, whatever c1 and c2
    c1: float
        cognitive acceleration coefficient (towards the particle attractor)
    c2: float
        social acceleration coefficient (towards the swarm attractor)
    **kwargs:
        see Solver

    Note
    ----
    Reference: M. Clerc and J. Kennedy, The particle swarm - explosion, stability, and
    convergence in a multidimensional complex space, IEEE Transactions on Evolutionary
    Computation, 2002.
    """

    short_name = "PSO"

    def __init__(
        self,
        *,
        chi: CoefficientLike = coefs.DEFAULT_CHI,
        c1: float = coefs.DEFAULT_C1,
        c2: float = coefs.DEFAULT_C2,
        **kwargs: tp.Any,
    ) -> None:
        super().__init__(**kwargs)
        if self.random_velocity_func is None and self.constraints is None:
            raise errors.ConfigurationError(f"{self.name} requires either random_velocity_func or constraints")
        self.chi = coefs.as_coefficient(chi)
        self.c1 = c1
        self.c2 = c2

    def _initialize(self) -> None:
        positions = self._initial_positions()
        velocities = [self._random_velocity() for _ in positions]
        self._swarm = PSOSwarm(
            positions,
            velocities,
            chi=self.chi,
            c1=self.c1,
            c2=self.c2,
            constraints=self.constraints,
            random_state=self.random_state,
        )


@registry.register
class QPSOSolver(_SingleSwarmSolver):
    """Quantum-behaved Particle Swarm Optimization (type II).

    Parameters
    ----------
    alpha: float or Coefficient
        contraction-expansion coefficient, must remain below 1.781 for convergence
    **kwargs:
        see Solver

    Note
    ----
    Reference: J. Sun, C.-H. Lai and X.-J. Wu, Particle Swarm Optimisation: Classical and
    Quantum Perspectives, CRC Press, 2011.
    """

    short_name = "QPSO"

    def __init__(self, *, alpha: CoefficientLike = coefs.DEFAULT_ALPHA, **kwargs: tp.Any) -> None:
        super().__init__(**kwargs)
        self.alpha = coefs.as_coefficient(alpha)

    def _initialize(self) -> None:
        self._swarm = QPSOSwarm(
            self._initial_positions(),
            alpha=self.alpha,
            constraints=self.constraints,
            random_state=self.random_state,
        )
