# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Swarm coefficients, either constant or depending on the iteration number.

The default values follow the usual recommendations for constricted PSO and
for QPSO:

- M. Clerc and J. Kennedy, The particle swarm - explosion, stability, and convergence
  in a multidimensional complex space, IEEE Transactions on Evolutionary Computation, 2002.
- J. Sun, C.-H. Lai and X.-J. Wu, Particle Swarm Optimisation: Classical and Quantum
  Perspectives, CRC Press, 2011.
- T. Blackwell and J. Branke, Multi-swarm Optimization in Dynamic Environments,
  Applications of Evolutionary Computing, 2004.
"""

import math
from numbers import Real
import multiswarm.common.typing as tp
from multiswarm.common import errors


def constriction(c1: float, c2: float) -> float:
    """Constriction coefficient chi for acceleration coefficients c1 and c2,
    with phi = c1 + c2 > 4
    """
    phi = c1 + c2
    if phi <= 4:
        raise errors.ConfigurationError(f"Constriction requires c1 + c2 > 4 (got {phi})")
    return 2.0 / abs(2.0 - phi - math.sqrt(phi ** 2 - 4.0 * phi))


# cognitive acceleration coefficient
DEFAULT_C1 = 2.05
# social acceleration coefficient
DEFAULT_C2 = 2.05
PHI = DEFAULT_C1 + DEFAULT_C2
DEFAULT_CHI = constriction(DEFAULT_C1, DEFAULT_C2)
# contraction-expansion coefficient of quantum particles, QPSO converges for
# alpha < e^gamma ~ 1.781 (gamma being the Euler constant)
DEFAULT_ALPHA = 0.75


class Coefficient:
    """Strategy providing the value of a coefficient at a given iteration
    (iterations start at 1)
    """

    def __call__(self, iteration: int) -> float:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Constant(Coefficient):

    def __init__(self, value: float) -> None:
        self.value = float(value)

    def __call__(self, iteration: int) -> float:
        return self.value

    def __repr__(self) -> str:
        return f"Constant({self.value})"


class Schedule(Coefficient):
    """Wraps a user function (iteration) -> value
    """

    def __init__(self, func: tp.Callable[[int], float]) -> None:
        if not callable(func):
            raise errors.MultiswarmTypeError(f"Schedule requires a callable, got {func!r}")
        self.func = func

    def __call__(self, iteration: int) -> float:
        return float(self.func(iteration))

    def __repr__(self) -> str:
        return f"Schedule({self.func!r})"


class LinearDecay(Coefficient):
    """Linearly interpolates from start (iteration 1) to end (iteration num_iterations),
    then stays at end. Typically used for an inertia weight decreasing from 0.9 to 0.4.
    """

    def __init__(self, start: float, end: float, num_iterations: int) -> None:
        if num_iterations < 1:
            raise errors.ConfigurationError(f"num_iterations must be at least 1 (got {num_iterations})")
        self.start = float(start)
        self.end = float(end)
        self.num_iterations = int(num_iterations)

    def __call__(self, iteration: int) -> float:
        if self.num_iterations == 1:
            return self.end
        progress = min(1.0, max(0.0, (iteration - 1) / (self.num_iterations - 1)))
        return self.start + progress * (self.end - self.start)

    def __repr__(self) -> str:
        return f"LinearDecay(start={self.start}, end={self.end}, num_iterations={self.num_iterations})"


def as_coefficient(value: tp.Union[float, int, Coefficient]) -> Coefficient:
    """Converts a number to a Constant, and leaves Coefficient instances untouched.
    Functions must be explicitly wrapped into a Schedule.
    """
    if isinstance(value, Coefficient):
        return value
    if isinstance(value, bool) or not isinstance(value, Real):
        raise errors.MultiswarmTypeError(
            f"Expected a number or a Coefficient instance but got {value!r} "
            "(wrap functions of the iteration into multiswarm.optimization.coefficients.Schedule)"
        )
    return Constant(value)
