# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import time
import logging
import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common import errors
from . import base
from .particles import Attractor

global_logger = logging.getLogger(__name__)


class OptimizationPrinter:
    """Printer to register as callback in a solver, for printing
    best point regularly.

    Parameters
    ----------
    print_interval_iterations: int
        max number of iterations before performing another print
    print_interval_seconds: float
        max number of seconds before performing another print
    """

    def __init__(self, print_interval_iterations: int = 1, print_interval_seconds: float = 60.0) -> None:
        assert print_interval_iterations > 0
        assert print_interval_seconds > 0
        self._print_interval_iterations = int(print_interval_iterations)
        self._print_interval_seconds = print_interval_seconds
        self._next_iteration = self._print_interval_iterations
        self._next_time = time.time() + print_interval_seconds

    def __call__(self, solver: base.Solver, iteration: int, best: Attractor) -> None:
        if time.time() >= self._next_time or iteration >= self._next_iteration:
            self._next_time = time.time() + self._print_interval_seconds
            self._next_iteration = iteration + self._print_interval_iterations
            print(f"After {iteration} iteration(s) and {solver.num_evaluations} evaluation(s), best is {best}")


class OptimizationLogger:
    """Logger to register as callback in a solver, for logging
    best point regularly.

    Parameters
    ----------
    logger:
        given logger that callback will use to log
    log_level:
        log level that logger will write to
    log_interval_iterations: int
        max number of iterations before performing another log
    log_interval_seconds:
        max number of seconds before performing another log
    """

    def __init__(
        self,
        *,
        logger: logging.Logger = global_logger,
        log_level: int = logging.INFO,
        log_interval_iterations: int = 1,
        log_interval_seconds: float = 60.0,
    ) -> None:
        assert log_interval_iterations > 0
        assert log_interval_seconds > 0
        self._logger = logger
        self._log_level = log_level
        self._log_interval_iterations = int(log_interval_iterations)
        self._log_interval_seconds = log_interval_seconds
        self._next_iteration = self._log_interval_iterations
        self._next_time = time.time() + log_interval_seconds

    def __call__(self, solver: base.Solver, iteration: int, best: Attractor) -> None:
        if time.time() >= self._next_time or iteration >= self._next_iteration:
            self._next_time = time.time() + self._log_interval_seconds
            self._next_iteration = iteration + self._log_interval_iterations
            self._logger.log(
                self._log_level,
                "After %s iteration(s) and %s evaluation(s), best is %s",
                iteration,
                solver.num_evaluations,
                best,
            )


class BestHistory:
    """Records the height of the best attractor after each iteration

    Example
    -------

    .. code-block:: python

        history = BestHistory()
        solver.register_callback("iteration", history)
        solver.solve(func)
        iterations, heights = zip(*history.records)
    """

    def __init__(self) -> None:
        self.records: tp.List[tp.Tuple[int, float]] = []

    def __call__(self, solver: base.Solver, iteration: int, best: Attractor) -> None:
        self.records.append((iteration, best.height))

    @property
    def heights(self) -> np.ndarray:
        return np.array([h for _, h in self.records], dtype=float)


class EarlyStopping:
    """Callback for stopping the :code:`solve` method before the exit condition is met.

    Parameters
    ----------
    stopping_criterion: func(solver) -> bool
        function that takes the current solver as input and returns True
        if the solving must be stopped

    Example
    -------
    In the following code, the :code:`solve` method will be stopped after the 4th iteration

    >>> early_stopping = multiswarm.callbacks.EarlyStopping(lambda solver: solver.num_iterations > 3)
    >>> solver.register_callback("iteration", early_stopping)
    >>> solver.solve(func)

    Stopping once the height is above -12:

    >>> early_stopping = multiswarm.callbacks.EarlyStopping(lambda solver: solver.provide_recommendation().height > -12)
    """

    def __init__(self, stopping_criterion: tp.Callable[[base.Solver], bool]) -> None:
        self.stopping_criterion = stopping_criterion

    def __call__(self, solver: base.Solver, *args: tp.Any, **kwargs: tp.Any) -> None:
        if self.stopping_criterion(solver):
            raise errors.MultiswarmEarlyStopping("Early stopping criterion is reached")

    @classmethod
    def timer(cls, max_duration: float) -> "EarlyStopping":
        """Early stop when max_duration seconds has been reached (from the first iteration)"""
        return cls(_DurationCriterion(max_duration))

    @classmethod
    def no_improvement_stopper(cls, tolerance_window: int) -> "EarlyStopping":
        """Early stop when the best height didn't increase during tolerance_window iterations"""
        return cls(_HeightImprovementToleranceCriterion(tolerance_window))


class _DurationCriterion:
    def __init__(self, max_duration: float) -> None:
        self._start = float("inf")
        self._max_duration = max_duration

    def __call__(self, solver: base.Solver) -> bool:
        if np.isinf(self._start):
            self._start = time.time()
        return time.time() > self._start + self._max_duration


class _HeightImprovementToleranceCriterion:
    def __init__(self, tolerance_window: int) -> None:
        self._tolerance_window: int = tolerance_window
        self._best_height: tp.Optional[float] = None
        self._tolerance_count: int = 0

    def __call__(self, solver: base.Solver) -> bool:
        height = solver.provide_recommendation().height
        if self._best_height is None:
            self._best_height = height
            return False
        if height <= self._best_height:
            self._tolerance_count += 1
        else:
            self._tolerance_count = 0
            self._best_height = height
        return self._tolerance_count > self._tolerance_window
