# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common.decorators import Registry
from multiswarm.common import errors
from . import vectors
from .constraints import Constraints
from .particles import Attractor
from .particles import Particle
from .particles import best_of
from .evaluation import CancellationToken
from .evaluation import Evaluator


global_logger = logging.getLogger(__name__)
registry: Registry[tp.Type["Solver"]] = Registry()
_SolverCallBack = tp.Callable[["Solver", int, Attractor], None]
ConstraintsLike = tp.Union[Constraints, tp.Mapping[str, tp.ArrayLike]]


class Solver:
    """Algorithm framework with a population of particles, to be run through the :code:`solve` method.
    Heights (the values of the objective function) are maximized.

    This class is abstract, subclasses build the population in :code:`_initialize` and
    run one iteration in :code:`_iterate`.

    Parameters
    ----------
    swarm_size: int
        number of particles in each swarm
    constraints: Constraints or dict
        box constraints, either as a Constraints instance or as a {"min": [...], "max": [...]} mapping.
        They are used for sampling random positions and velocities, and for confining particles.
    random_position_func: callable (optional)
        function without argument returning a random initial position
    random_velocity_func: callable (optional)
        function without argument returning a random initial velocity
    start_positions: list of array-like (optional)
        initial positions of the particles (one per particle)
    exit_condition: callable (optional)
        function :code:`(iteration, best_attractor) -> bool` called after each iteration,
        the solver stops when it returns True. Without exit condition, the solver runs until
        it is stopped early (through a callback or a cancellation token).
    concurrent: bool
        whether the objective function is thread-safe and can be evaluated concurrently
    num_workers: int (optional)
        number of threads for concurrent evaluations (defaults to 4 per CPU core)
    executor: ExecutorLike (optional)
        custom executor for concurrent evaluations
    logger: logging.Logger (optional)
        logger for the progress of the solver (defaults to this module logger)
    log_level: int
        level of the progress messages
    verbosity: int
        prints the best attractor at each iteration if positive
    random_state: int or np.random.RandomState (optional)
        seed or random state the solver pulls from

    Note
    ----
    Initial positions are taken from :code:`start_positions` if provided, otherwise from
    :code:`random_position_func`, otherwise they are sampled within the constraints.
    Likewise, initial velocities are drawn from :code:`random_velocity_func` if provided,
    otherwise sampled within the constraints.
    """

    short_name = ""

    def __init__(
        self,
        *,
        swarm_size: int = 40,
        constraints: tp.Optional[ConstraintsLike] = None,
        random_position_func: tp.Optional[tp.Callable[[], tp.ArrayLike]] = None,
        random_velocity_func: tp.Optional[tp.Callable[[], tp.ArrayLike]] = None,
        start_positions: tp.Optional[tp.Sequence[tp.ArrayLike]] = None,
        exit_condition: tp.Optional[tp.ExitCondition] = None,
        concurrent: bool = False,
        num_workers: tp.Optional[int] = None,
        executor: tp.Optional[tp.ExecutorLike] = None,
        logger: tp.Optional[logging.Logger] = None,
        log_level: int = logging.INFO,
        verbosity: int = 0,
        random_state: tp.Seed = None,
    ) -> None:
        if swarm_size < 1:
            raise errors.ConfigurationError(f"swarm_size must be at least 1 (got {swarm_size})")
        self.swarm_size = int(swarm_size)
        self.constraints = None if constraints is None else Constraints.convert(constraints)
        for name, func in [
            ("random_position_func", random_position_func),
            ("random_velocity_func", random_velocity_func),
            ("exit_condition", exit_condition),
        ]:
            if func is not None and not callable(func):
                raise errors.ConfigurationError(f"{name} must be callable (got {func!r})")
        self.random_position_func = random_position_func
        self.random_velocity_func = random_velocity_func
        self.start_positions: tp.Optional[tp.List[np.ndarray]] = None
        if start_positions is not None:
            if len(start_positions) != self.swarm_size:
                raise errors.ConfigurationError(
                    f"Expected {self.swarm_size} start positions (one per particle) but got {len(start_positions)}"
                )
            self.start_positions = [vectors.as_vector(x) for x in start_positions]
            if self.constraints is not None:
                self.constraints.check_dimension(self.start_positions[0].size)
        self.exit_condition = exit_condition
        self.evaluator = Evaluator(concurrent=concurrent, num_workers=num_workers, executor=executor)
        self.logger = global_logger if logger is None else logger
        self.log_level = log_level
        self.verbosity = verbosity
        self.name = self.__class__.__name__  # printed name in repr
        if self.start_positions is None and self.random_position_func is None and self.constraints is None:
            raise errors.ConfigurationError(
                f"{self.name} requires either start_positions, random_position_func or constraints"
            )
        # "seedable" random state: externally setting the seed will provide deterministic behavior
        self._random_state: tp.Optional[np.random.RandomState] = None
        if isinstance(random_state, np.random.RandomState):
            self._random_state = random_state
        elif random_state is not None:
            self._random_state = np.random.RandomState(random_state)
        # instance state
        self._callbacks: tp.Dict[str, tp.List[_SolverCallBack]] = {}
        self._best: tp.Optional[Attractor] = None
        self._num_iterations = 0
        self._num_evaluations = 0

    @property
    def random_state(self) -> np.random.RandomState:
        """np.random.RandomState: random state the solver and its swarms pull from.
        It can be seeded or replaced before solving.
        """
        if self._random_state is None:
            seed = np.random.randint(2 ** 32, dtype=np.uint32)
            self._random_state = np.random.RandomState(seed)
        return self._random_state

    @random_state.setter
    def random_state(self, random_state: np.random.RandomState) -> None:
        self._random_state = random_state

    @property
    def num_iterations(self) -> int:
        """int: number of completed iterations"""
        return self._num_iterations

    @property
    def num_evaluations(self) -> int:
        """int: number of calls to the objective function"""
        return self._num_evaluations

    def __repr__(self) -> str:
        return f"Instance of {self.name}(swarm_size={self.swarm_size}, constraints={self.constraints})"

    def register_callback(self, name: str, callback: _SolverCallBack) -> None:
        """Add a callback method called at the end of each iteration, with the solver,
        the iteration number and the best attractor so far.
        This can be useful for custom logging, or for early stopping (raising MultiswarmEarlyStopping).

        Parameters
        ----------
        name: str
            name of the event to register the callback for (only :code:`iteration` is available)
        callback: callable
            a callable taking the solver, the iteration number and the best attractor
        """
        if name != "iteration":
            raise errors.MultiswarmValueError(f'Only "iteration" callbacks are available (not "{name}")')
        self._callbacks.setdefault(name, []).append(callback)

    def remove_all_callbacks(self) -> None:
        """Removes all registered callables"""
        self._callbacks = {}

    def provide_recommendation(self) -> Attractor:
        """Provides the best attractor found so far (highest height).
        """
        if self._best is None:
            raise errors.PreconditionError("No evaluation was performed yet, there is nothing to recommend")
        return self._best

    # population helpers

    def _random_position(self) -> np.ndarray:
        if self.random_position_func is not None:
            return vectors.as_vector(self.random_position_func())
        if self.constraints is not None:
            return self.constraints.sample(self.random_state)
        raise errors.ConfigurationError(
            f"{self.name} requires either start_positions, random_position_func or constraints"
        )

    def _random_velocity(self) -> np.ndarray:
        if self.random_velocity_func is not None:
            return vectors.as_vector(self.random_velocity_func())
        if self.constraints is not None:
            return self.constraints.sample(self.random_state)
        raise errors.ConfigurationError(f"{self.name} requires either random_velocity_func or constraints")

    def _initial_positions(self) -> tp.List[np.ndarray]:
        if self.start_positions is not None:
            return [x.copy() for x in self.start_positions]
        return [self._random_position() for _ in range(self.swarm_size)]

    def _evaluate(
        self,
        particles: tp.Iterable[Particle],
        objective: tp.Objective,
        cancellation: tp.Optional[CancellationToken],
    ) -> None:
        self._num_evaluations += self.evaluator.evaluate(particles, objective, cancellation)

    def _update_best(self, attractors: tp.Iterable[tp.Optional[Attractor]]) -> Attractor:
        best = best_of([self._best] + list(attractors))
        if best is None:
            raise errors.PreconditionError("Cannot update the best attractor before any evaluation")
        self._best = best
        return best

    # algorithm

    def _initialize(self) -> None:
        """Creates the population
        """
        raise NotImplementedError

    def _iterate(self, objective: tp.Objective, cancellation: tp.Optional[CancellationToken]) -> None:
        """Runs one iteration, evaluating the particles and updating the best attractor
        """
        raise NotImplementedError

    def solve(self, objective: tp.Objective, cancellation: tp.Optional[CancellationToken] = None) -> Attractor:
        """Maximizes the objective function

        Parameters
        ----------
        objective: callable
            function taking a position (1-D numpy array) as input and returning its height (a float).
            It is only called concurrently if the solver was created with :code:`concurrent=True`.
        cancellation: CancellationToken (optional)
            token which stops the solver at the next evaluation phase once cancelled

        Returns
        -------
        Attractor
            the best (height, position) pair found

        Note
        ----
        The solver returns the best attractor found so far if it is stopped early
        (through a MultiswarmEarlyStopping raised by a callback, or a cancellation).
        Exceptions raised by the objective function are propagated.
        """
        self._best = None
        self._num_iterations = 0
        self._num_evaluations = 0
        self._initialize()
        with self.evaluator:
            try:
                while True:
                    iteration = self._num_iterations + 1
                    self.logger.log(self.log_level, "%s - Starting iteration %s", self.name, iteration)
                    self._iterate(objective, cancellation)
                    self._num_iterations = iteration
                    best = self.provide_recommendation()
                    if self.verbosity:
                        print(f"> iteration {iteration}, best: {best.position.tolist()}, {best.height}")
                    for callback in self._callbacks.get("iteration", []):
                        callback(self, iteration, best)
                    if self.exit_condition is not None and self.exit_condition(iteration, best):
                        break
            except errors.MultiswarmEarlyStopping as e:
                if self._best is None:
                    raise
                self.logger.info("%s - Stopping early after %s iteration(s): %s", self.name, self._num_iterations, e)
        return self.provide_recommendation()
