# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Evaluation of the objective function on many particles at once.

Each evaluation phase fans out the objective calls, then blocks until all of
them have completed (wait-for-all barrier). Calls are either sequential, on
the calling thread, or dispatched to a pool of workers, which is only
allowed if the caller declares the objective function thread-safe.
"""

import os
import logging
import threading
import warnings
from concurrent import futures
import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common import errors
from .particles import Particle


logger = logging.getLogger(__name__)
X = tp.TypeVar("X")


class DelayedJob:
    """Future-like object which delays computation
    """

    def __init__(self, func: tp.Callable[..., tp.Any], *args: tp.Any, **kwargs: tp.Any) -> None:
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self._result: tp.Optional[tp.Any] = None
        self._computed = False

    def done(self) -> bool:
        return True

    def result(self) -> tp.Any:
        if not self._computed:
            self._result = self.func(*self.args, **self.kwargs)
            self._computed = True
        return self._result


class SequentialExecutor:
    """Executor which run sequentially and locally
    (the function is only called when the result of the job is requested)
    """

    def submit(self, fn: tp.Callable[..., tp.Any], *args: tp.Any, **kwargs: tp.Any) -> DelayedJob:
        return DelayedJob(fn, *args, **kwargs)


class CancellationToken:
    """Thread-safe flag which aborts evaluation phases once set.
    It is checked before dispatching the calls, between the collection of two results
    and after the barrier.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise errors.EvaluationCancelled("Evaluation was cancelled")


def default_num_workers() -> int:
    """4 workers per available CPU core
    """
    return 4 * (os.cpu_count() or 1)


class Evaluator:
    """Runs evaluation phases, either sequentially or concurrently.

    Parameters
    ----------
    concurrent: bool
        whether the objective function can be called concurrently. The objective function
        must then be thread-safe. This is never inferred.
    num_workers: int (optional)
        size of the thread pool in concurrent mode (defaults to 4 times the number of CPU cores)
    executor: ExecutorLike (optional)
        executor to use in concurrent mode instead of the internal thread pool, with method
        :code:`submit(callable, *args, **kwargs)` returning a Future-like object with methods
        :code:`done() -> bool` and :code:`result() -> Any`. It is never shut down by the evaluator.

    Usage
    -----
    Use as a context manager so that the thread pool is shut down at the end:

    .. code-block:: python

        with Evaluator(concurrent=True) as evaluator:
            evaluator.evaluate(particles, objective)
    """

    def __init__(
        self,
        concurrent: bool = False,
        num_workers: tp.Optional[int] = None,
        executor: tp.Optional[tp.ExecutorLike] = None,
    ) -> None:
        if executor is not None and not concurrent:
            raise errors.ConfigurationError("A custom executor can only be used with concurrent=True")
        if num_workers is not None and num_workers < 1:
            raise errors.ConfigurationError(f"num_workers must be at least 1 (got {num_workers})")
        self.concurrent = bool(concurrent)
        self.num_workers = default_num_workers() if num_workers is None else int(num_workers)
        if self.concurrent and executor is None and self.num_workers == 1:
            warnings.warn(
                "Concurrent evaluation with a single worker is slower than sequential evaluation",
                errors.InefficientSettingsWarning,
            )
        self._custom_executor = executor
        self._pool: tp.Optional[futures.ThreadPoolExecutor] = None

    @property
    def executor(self) -> tp.ExecutorLike:
        if not self.concurrent:
            return SequentialExecutor()
        if self._custom_executor is not None:
            return self._custom_executor
        if self._pool is None:
            self._pool = futures.ThreadPoolExecutor(max_workers=self.num_workers)
        return self._pool

    def close(self) -> None:
        """Shuts down the internal thread pool (if any), waiting for running calls
        """
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self) -> "Evaluator":
        return self

    def __exit__(self, *exc: tp.Any) -> None:
        self.close()

    def _run(
        self,
        func: tp.Callable[..., X],
        arguments: tp.Sequence[tp.Tuple[tp.Any, ...]],
        cancellation: tp.Optional["CancellationToken"],
    ) -> tp.List[X]:
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        executor = self.executor
        jobs = [executor.submit(func, *args) for args in arguments]
        results: tp.List[X] = []
        try:
            for job in jobs:  # barrier: wait for all jobs
                if cancellation is not None:
                    cancellation.raise_if_cancelled()
                results.append(job.result())
        except BaseException:
            # abort the phase: pending jobs are dropped, running ones cannot be interrupted
            for job in jobs:
                cancel = getattr(job, "cancel", None)
                if cancel is not None:
                    cancel()
            raise
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        return results

    def evaluate(
        self,
        particles: tp.Iterable[Particle],
        objective: tp.Objective,
        cancellation: tp.Optional[CancellationToken] = None,
    ) -> int:
        """Evaluates all particles and updates their attractors, then returns the number
        of evaluations. Each particle is only written by the job evaluating it.
        """
        particles = list(particles)
        self._run(Particle.evaluate, [(p, objective) for p in particles], cancellation)
        logger.debug("Evaluated %s particle(s)", len(particles))
        return len(particles)

    def evaluate_positions(
        self,
        positions: tp.Iterable[np.ndarray],
        objective: tp.Objective,
        cancellation: tp.Optional[CancellationToken] = None,
    ) -> tp.List[float]:
        """Evaluates bare positions and returns the heights, in order
        """
        heights = self._run(objective, [(np.array(x, copy=True),) for x in positions], cancellation)
        return [float(h) for h in heights]

    def __repr__(self) -> str:
        mode = f"concurrent, num_workers={self.num_workers}" if self.concurrent else "sequential"
        return f"Evaluator({mode})"
