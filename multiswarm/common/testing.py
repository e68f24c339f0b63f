# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import time
import inspect
import threading
import typing as tp
import pytest
import numpy as np


def assert_set_equal(estimate: tp.Iterable[tp.Any], reference: tp.Iterable[tp.Any], err_msg: str = "") -> None:
    """Asserts that both sets are equals, with comprehensive error message.
    This function should only be used in tests.
    Parameters
    ----------
    estimate: iterable
        sequence of elements to compare with the reference set of elements
    reference: iterable
        reference sequence of elements
    """
    estimate, reference = (set(x) for x in [estimate, reference])
    elements = [("additional", estimate - reference), ("missing", reference - estimate)]
    messages = ["  - {} element(s): {}.".format(name, s) for (name, s) in elements if s]
    if messages:
        messages = ([err_msg] if err_msg else []) + ["Sets are not equal:"] + messages
        raise AssertionError("\n".join(messages))


def printed_assert_equal(actual: tp.Any, desired: tp.Any, err_msg: str = '') -> None:
    try:
        np.testing.assert_equal(actual, desired, err_msg=err_msg)
    except AssertionError as e:
        print("\n" + "# " * 12 + "DEBUG MESSAGE " + "# " * 12)
        print(f"Expected: {desired}\nbut got:  {actual}")
        raise e


class parametrized:
    """Simplified decorator API for specifying named parametrized test with pytests
    (like with old "genty" package)
    See example of use in test_testing

    Parameters
    ----------
    **kwargs:
        name of the argument is converted as id of the experiments, and the provided tuple
        contains a value for each of the arguments of the underlying function (in the definition order).
    """

    def __init__(self, **kwargs: tp.Tuple[tp.Any, ...]):
        self.ids = sorted(kwargs)
        self.params = tuple(kwargs[name] for name in self.ids)
        assert self.params
        self.num_params = len(self.params[0])
        assert all(isinstance(p, (tuple, list)) for p in self.params)
        assert all(self.num_params == len(p) for p in self.params[1:])

    def __call__(self, func: tp.Callable[..., None]) -> tp.Any:  # type is lost here :(
        names = list(inspect.signature(func).parameters.keys())
        assert len(names) == self.num_params, f"Parameter names: {names}"
        return pytest.mark.parametrize(
            ",".join(names), self.params if self.num_params > 1 else [p[0] for p in self.params], ids=self.ids)(func)


def parabola(position: tp.Any) -> float:
    """Concave paraboloid with its maximum 0 at the origin
    """
    x = np.asarray(position, dtype=float)
    return -float(np.dot(x, x))


class CountingFunction:
    """Wraps an objective and counts its calls (thread-safe)
    """

    def __init__(self, func: tp.Callable[[tp.Any], float] = parabola) -> None:
        self.func = func
        self.count = 0
        self._lock = threading.Lock()

    def __call__(self, position: tp.Any) -> float:
        with self._lock:
            self.count += 1
        return self.func(position)


class NonReentrantFunction:
    """Objective which raises if it is ever called while another call is running,
    for asserting that evaluations are sequential.
    """

    def __init__(self, func: tp.Callable[[tp.Any], float] = parabola, delay: float = 0.0) -> None:
        self.func = func
        self.delay = delay
        self.count = 0
        self._lock = threading.Lock()

    def __call__(self, position: tp.Any) -> float:
        if not self._lock.acquire(blocking=False):
            raise RuntimeError("Objective function was called concurrently")
        try:
            self.count += 1
            if self.delay:
                time.sleep(self.delay)
            return self.func(position)
        finally:
            self._lock.release()
