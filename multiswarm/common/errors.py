# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# base classes


class MultiswarmError(Exception):
    """Base class for error raised by multiswarm"""


class MultiswarmWarning(Warning):
    pass


# errors
# pylint: disable=too-many-ancestors


class MultiswarmEarlyStopping(StopIteration, MultiswarmError):
    """Stops the solving loop if raised"""


class EvaluationCancelled(MultiswarmEarlyStopping):
    """Raised by the evaluation barrier when its cancellation token was set"""


class MultiswarmRuntimeError(RuntimeError, MultiswarmError):
    """Runtime error raised by multiswarm"""


class MultiswarmTypeError(TypeError, MultiswarmError):
    """Runtime error raised by multiswarm"""


class MultiswarmValueError(ValueError, MultiswarmError):
    """Runtime error raised by multiswarm"""


class ConfigurationError(MultiswarmValueError):
    """Invalid sizes, ratios or dimensions provided at construction time"""


class PreconditionError(MultiswarmRuntimeError):
    """The engine was used out of order (eg: moving a particle which was never evaluated).
    This is a protocol violation and aborts the run.
    """


# warnings


class MultiswarmRuntimeWarning(RuntimeWarning, MultiswarmWarning):
    """Runtime warning raise by multiswarm"""


class InefficientSettingsWarning(MultiswarmRuntimeWarning):
    """Solver settings are not optimal"""
