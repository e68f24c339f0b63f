# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .common import typing as typing
from .common import errors as errors
from .optimization import solvers as solvers
from .optimization import callbacks as callbacks
from .optimization import coefficients as coefficients
from .optimization import registry as registry
from .optimization import Attractor as Attractor
from .optimization import CancellationToken as CancellationToken
from .optimization import Constraints as Constraints
from .optimization.solvers import PSOSolver as PSOSolver
from .optimization.solvers import QPSOSolver as QPSOSolver
from .optimization.multiswarm import MultiSwarmQPSOSolver as MultiSwarmQPSOSolver


__all__ = [
    "solvers",
    "callbacks",
    "coefficients",
    "registry",
    "errors",
    "typing",
    "Attractor",
    "CancellationToken",
    "Constraints",
    "PSOSolver",
    "QPSOSolver",
    "MultiSwarmQPSOSolver",
]


__version__ = "0.1.0"
