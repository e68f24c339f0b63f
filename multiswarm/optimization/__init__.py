# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .base import Solver  # abstract class, for type checking
from .base import registry
from .particles import Attractor
from .constraints import Constraints
from .evaluation import CancellationToken
from .evaluation import Evaluator
from . import solvers
from . import multiswarm
