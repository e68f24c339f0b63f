# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Multi-swarm QPSO: a dynamic population of charged swarms kept apart from each
other (exclusion) and spread enough to follow moving optima (anti-convergence).

Reference: T. Blackwell and J. Branke, Multi-swarm Optimization in Dynamic Environments,
Applications of Evolutionary Computing, pp. 489-500, Springer, 2004.
"""

import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common import errors
from multiswarm.common.tools import OrderedSet
from multiswarm.common.tools import unordered_pairs
from . import base
from . import vectors
from . import coefficients as coefs
from .evaluation import CancellationToken
from .swarms import ChargedSwarm
from .swarms import CoefficientLike
from .base import registry


def exclusion_radius(extent: float, num_swarms: int, dimension: int) -> float:
    """Minimum distance between two swarm attractors: r_excl = extent / (2 * num_swarms)^(1 / dimension)

    Parameters
    ----------
    extent: float
        largest width of the search space among all dimensions
    num_swarms: int
        number of swarms
    dimension: int
        dimension of the search space
    """
    if num_swarms < 1:
        raise errors.ConfigurationError(f"num_swarms must be at least 1 (got {num_swarms})")
    if dimension < 1:
        raise errors.ConfigurationError(f"dimension must be at least 1 (got {dimension})")
    return float(extent) / (2.0 * num_swarms) ** (1.0 / dimension)


@registry.register
class MultiSwarmQPSOSolver(base.Solver):
    """Multi-swarm optimization with charged swarms, mixing classical (neutral)
    and quantum (charged) particles.

    Each iteration:

    1. evaluates every particle of every live swarm;
    2. updates the swarm attractors and the overall best;
    3. anti-convergence: a swarm is not converged if its diameter exceeds twice the exclusion radius.
       If all swarms are converged, a new swarm is spawned (up to :code:`max_swarms`), otherwise if more than
       :code:`max_not_converged` swarms are not converged, the worst of them is retired;
    4. re-evaluates each swarm attractor (to detect landscape changes), then moves, evaluates
       and updates each swarm;
    5. exclusion: of two swarms with attractors closer than the exclusion radius, the lowest one
       is reinitialized at random;
    6. updates the overall best.

    Parameters
    ----------
    num_swarms: int
        initial number of swarms
    swarm_size: int
        number of particles in each swarm
    constraints: Constraints or dict
        box constraints, required since the exclusion radius derives from their extent
    max_swarms: int (optional)
        maximum number of swarms (defaults to num_swarms)
    max_not_converged: int
        number of not converged swarms above which the worst of them is retired
    charged_to_neutral_ratio: float
        ratio between the number of charged and neutral particles of each swarm
    adaptive_exclusion_radius: bool
        if True, the exclusion radius is recomputed at each iteration from the current number of swarms,
        otherwise it is computed once from num_swarms
    chi: float or Coefficient
        constriction coefficient of the neutral particles
    alpha: float or Coefficient
        contraction-expansion coefficient of the charged particles
    c1: float
        cognitive acceleration coefficient
    c2: float
        social acceleration coefficient
    **kwargs:
        see Solver. If provided, start_positions are the positions of the first swarm.
    """

    short_name = "MultiSwarmQPSO"

    # pylint: disable=too-many-arguments,too-many-instance-attributes
    def __init__(
        self,
        *,
        num_swarms: int,
        swarm_size: int,
        constraints: base.ConstraintsLike,
        max_swarms: tp.Optional[int] = None,
        max_not_converged: int = 3,
        charged_to_neutral_ratio: float = ChargedSwarm.DEFAULT_CHARGED_TO_NEUTRAL_RATIO,
        adaptive_exclusion_radius: bool = False,
        chi: CoefficientLike = coefs.DEFAULT_CHI,
        alpha: CoefficientLike = coefs.DEFAULT_ALPHA,
        c1: float = coefs.DEFAULT_C1,
        c2: float = coefs.DEFAULT_C2,
        **kwargs: tp.Any,
    ) -> None:
        if constraints is None:
            raise errors.ConfigurationError(f"{self.__class__.__name__} requires constraints")
        super().__init__(swarm_size=swarm_size, constraints=constraints, **kwargs)
        assert self.constraints is not None
        if num_swarms < 1:
            raise errors.ConfigurationError(f"num_swarms must be at least 1 (got {num_swarms})")
        max_swarms = num_swarms if max_swarms is None else max_swarms
        if max_swarms < num_swarms:
            raise errors.ConfigurationError(
                f"max_swarms ({max_swarms}) must not be lower than num_swarms ({num_swarms})"
            )
        if max_not_converged < 0:
            raise errors.ConfigurationError(f"max_not_converged must be non-negative (got {max_not_converged})")
        self.initial_num_swarms = int(num_swarms)
        self.max_swarms = int(max_swarms)
        self.max_not_converged = int(max_not_converged)
        self.adaptive_exclusion_radius = bool(adaptive_exclusion_radius)
        _, self._num_neutral = ChargedSwarm.composition(self.swarm_size, charged_to_neutral_ratio)
        self._swarm_params: tp.Dict[str, tp.Any] = dict(
            charged_to_neutral_ratio=charged_to_neutral_ratio,
            chi=coefs.as_coefficient(chi),
            alpha=coefs.as_coefficient(alpha),
            c1=c1,
            c2=c2,
        )
        # arena of swarms, keyed by a stable identifier
        self._swarms: tp.Dict[int, ChargedSwarm] = {}
        self._next_uid = 0
        self._exclusion_radius = exclusion_radius(
            self.constraints.extent, self.initial_num_swarms, self.constraints.dimension
        )
        self.num_landscape_changes = 0

    @property
    def num_swarms(self) -> int:
        """int: current number of live swarms"""
        return len(self._swarms)

    @property
    def swarms(self) -> tp.List[ChargedSwarm]:
        """list: snapshot of the live swarms"""
        return list(self._swarms.values())

    @property
    def exclusion_radius(self) -> float:
        """float: current exclusion radius"""
        return self._exclusion_radius

    def __repr__(self) -> str:
        return (
            f"Instance of {self.name}(num_swarms={self.initial_num_swarms}, swarm_size={self.swarm_size}, "
            f"max_swarms={self.max_swarms}, constraints={self.constraints})"
        )

    def _sample_swarm(
        self, positions: tp.Optional[tp.List[np.ndarray]] = None
    ) -> tp.Tuple[tp.List[np.ndarray], tp.List[np.ndarray]]:
        if positions is None:
            positions = [self._random_position() for _ in range(self.swarm_size)]
        velocities = [self._random_velocity() for _ in range(self._num_neutral)]
        return positions, velocities

    def _spawn(self, positions: tp.Optional[tp.List[np.ndarray]] = None) -> int:
        positions, velocities = self._sample_swarm(positions)
        swarm = ChargedSwarm(
            positions,
            velocities,
            constraints=self.constraints,
            random_state=self.random_state,
            **self._swarm_params,
        )
        uid = self._next_uid
        self._next_uid += 1
        self._swarms[uid] = swarm
        return uid

    def _initialize(self) -> None:
        self._swarms = {}
        self._next_uid = 0
        self.num_landscape_changes = 0
        assert self.constraints is not None
        self._exclusion_radius = exclusion_radius(
            self.constraints.extent, self.initial_num_swarms, self.constraints.dimension
        )
        for k in range(self.initial_num_swarms):
            self._spawn(self._initial_positions() if k == 0 and self.start_positions is not None else None)

    def _refresh(self, uids: tp.Iterable[int]) -> None:
        """Updates the attractors of the given swarms, then the overall best
        """
        self._update_best([self._swarms[uid].update_attractor() for uid in uids])

    def _iterate(self, objective: tp.Objective, cancellation: tp.Optional[CancellationToken]) -> None:
        if self.adaptive_exclusion_radius:
            assert self.constraints is not None
            self._exclusion_radius = exclusion_radius(
                self.constraints.extent, self.num_swarms, self.constraints.dimension
            )
        # every particle of every live swarm, including positions evaluated in the previous iteration
        self._evaluate([p for swarm in self._swarms.values() for p in swarm], objective, cancellation)
        self._refresh(self._swarms)
        self._anti_convergence(objective, cancellation)
        self._move(objective, cancellation)
        self._exclusion(objective, cancellation)
        self._refresh(self._swarms)
        self.logger.debug(
            "Iteration %s: %s swarm(s), exclusion radius %s, best %s",
            self.num_iterations + 1,
            self.num_swarms,
            self._exclusion_radius,
            self._best,
        )

    def _anti_convergence(self, objective: tp.Objective, cancellation: tp.Optional[CancellationToken]) -> None:
        not_converged = [
            uid for uid, swarm in self._swarms.items() if swarm.diameter() > 2 * self._exclusion_radius
        ]
        if not not_converged:
            if self.num_swarms < self.max_swarms:
                uid = self._spawn()
                self._evaluate(self._swarms[uid], objective, cancellation)
                self._refresh([uid])
                self.logger.info("All swarms converged, spawned swarm #%s (%s swarms)", uid, self.num_swarms)
        elif len(not_converged) > self.max_not_converged and self.num_swarms > 1:
            worst = min(not_converged, key=lambda uid: self._swarms[uid].bestfit)  # type: ignore
            del self._swarms[worst]
            self.logger.info(
                "%s swarms not converged, retired the worst one #%s (%s swarms)",
                len(not_converged),
                worst,
                self.num_swarms,
            )

    def _move(self, objective: tp.Objective, cancellation: tp.Optional[CancellationToken]) -> None:
        uids = list(self._swarms)
        attractors = [self._swarms[uid].swarm_attractor for uid in uids]
        heights = self.evaluator.evaluate_positions(
            [a.position for a in attractors], objective, cancellation  # type: ignore
        )
        self._num_evaluations += len(heights)
        for uid, attractor, height in zip(uids, attractors, heights):
            assert attractor is not None
            if height != attractor.height:
                self.num_landscape_changes += 1
                self.logger.info(
                    "Landscape change detected by swarm #%s: attractor height went from %s to %s",
                    uid,
                    attractor.height,
                    height,
                )
        for uid in uids:
            self._swarms[uid].mutate()
        self._evaluate([p for uid in uids for p in self._swarms[uid]], objective, cancellation)
        self._refresh(uids)

    def _exclusion(self, objective: tp.Objective, cancellation: tp.Optional[CancellationToken]) -> None:
        uids = list(self._swarms)
        attractors = [self._swarms[uid].swarm_attractor for uid in uids]
        distances = vectors.pairwise_distances([a.position for a in attractors])  # type: ignore
        marked: OrderedSet[int] = OrderedSet()
        for (i, j), distance in zip(unordered_pairs(range(len(uids))), distances):
            if uids[i] in marked or uids[j] in marked or distance >= self._exclusion_radius:
                continue
            # the lowest swarm is reinitialized (the second one on ties)
            loser = uids[i] if attractors[i].height < attractors[j].height else uids[j]  # type: ignore
            marked.add(loser)
            self.logger.info(
                "Swarms #%s and #%s collided (distance %s < %s), reinitializing swarm #%s",
                uids[i],
                uids[j],
                distance,
                self._exclusion_radius,
                loser,
            )
        if not marked:
            return
        for uid in marked:
            self._swarms[uid].reinitialize(*self._sample_swarm())
        self._evaluate([p for uid in marked for p in self._swarms[uid]], objective, cancellation)
        self._refresh(marked)
