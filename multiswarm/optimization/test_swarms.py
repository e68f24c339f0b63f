# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
from multiswarm.common import errors
from multiswarm.common import testing
from . import coefficients as coefs
from .constraints import Constraints
from .evaluation import Evaluator
from .particles import ParticleKind
from .swarms import ChargedSwarm
from .swarms import PSOSwarm
from .swarms import QPSOSwarm


def _evaluate(swarm: object) -> None:
    for particle in swarm:  # type: ignore
        particle.evaluate(testing.parabola)


def test_swarm_configuration_errors() -> None:
    with pytest.raises(errors.ConfigurationError):
        QPSOSwarm([])
    with pytest.raises(errors.ConfigurationError, match="mismatching dimensions"):
        QPSOSwarm([[0.0, 0.0], [0.0]])
    with pytest.raises(errors.ConfigurationError, match="velocities"):
        PSOSwarm([[0.0, 0.0], [1.0, 1.0]], [[0.0, 0.0]])
    with pytest.raises(errors.ConfigurationError):
        QPSOSwarm([[0.0, 0.0]], constraints=Constraints.from_bounds(0, 1, dimension=3))


def test_update_attractor() -> None:
    swarm = QPSOSwarm([[1.0, 1.0], [0.5, 0.0], [2.0, 2.0]])
    with pytest.raises(errors.PreconditionError):
        swarm.update_attractor()
    _evaluate(swarm)
    attractor = swarm.update_attractor()
    assert attractor.height == -0.25
    assert swarm.bestfit == -0.25
    np.testing.assert_array_equal(attractor.position, [0.5, 0.0])
    # the swarm attractor never regresses
    for particle in swarm:
        particle.position = np.array([3.0, 3.0])
        particle.evaluate(testing.parabola)
    assert swarm.update_attractor() is attractor


def test_centroid_and_diameter() -> None:
    swarm = QPSOSwarm([[0.0, 0.0], [2.0, 0.0], [0.0, 4.0]])
    np.testing.assert_almost_equal(swarm.diameter(), np.sqrt(20))
    with pytest.raises(errors.PreconditionError):
        swarm.centroid()
    _evaluate(swarm)
    np.testing.assert_almost_equal(swarm.centroid(), [2.0 / 3, 4.0 / 3])


def test_mutate_before_evaluation() -> None:
    swarm = PSOSwarm([[1.0, 1.0]], [[0.0, 0.0]])
    with pytest.raises(errors.PreconditionError):
        swarm.mutate()


@testing.parametrized(
    half=(10, 1.0, 5, 5),
    mostly_charged=(10, 3.0, 8, 2),
    mostly_neutral=(10, 0.25, 2, 8),
    rounding_half_up=(5, 1.0, 3, 2),
    single=(1, 1.0, 1, 0),
)
def test_charged_swarm_composition(size: int, ratio: float, num_charged: int, num_neutral: int) -> None:
    assert ChargedSwarm.composition(size, ratio) == (num_charged, num_neutral)


def test_charged_swarm_composition_errors() -> None:
    with pytest.raises(errors.ConfigurationError):
        ChargedSwarm.composition(10, 0.0)
    with pytest.raises(errors.ConfigurationError):
        ChargedSwarm.composition(0, 1.0)


def test_charged_swarm_layout() -> None:
    constraints = Constraints.from_bounds(-10, 10, dimension=2)
    rng = np.random.RandomState(0)
    swarm = ChargedSwarm.sample(8, constraints, rng, charged_to_neutral_ratio=3.0)
    kinds = [p.kind for p in swarm]
    assert kinds == [ParticleKind.CLASSICAL] * 2 + [ParticleKind.QUANTUM] * 6
    assert (swarm.num_charged, swarm.num_neutral) == (6, 2)
    assert all(constraints.contains(p.position) for p in swarm)


def test_charged_swarm_reinitialize() -> None:
    constraints = Constraints.from_bounds(-10, 10, dimension=2)
    rng = np.random.RandomState(1)
    swarm = ChargedSwarm.sample(4, constraints, rng)
    _evaluate(swarm)
    swarm.update_attractor()
    swarm.mutate()
    assert swarm.iteration == 2
    swarm.reinitialize([[1.0, 1.0]] * 4, [[0.0, 0.0]] * 2)
    assert swarm.iteration == 1
    assert swarm.swarm_attractor is None
    assert swarm.bestfit is None
    assert all(p.needs_evaluation for p in swarm)
    np.testing.assert_array_equal(swarm.particles[3].position, [1.0, 1.0])
    with pytest.raises(errors.ConfigurationError):
        swarm.reinitialize([[1.0, 1.0]] * 3, [[0.0, 0.0]] * 2)
    with pytest.raises(errors.ConfigurationError):
        swarm.reinitialize([[1.0, 1.0, 1.0]] * 4, [[0.0, 0.0, 0.0]] * 2)


def test_mutate_confines_and_counts_iterations() -> None:
    constraints = Constraints.from_bounds(-1, 1, dimension=3)
    rng = np.random.RandomState(2)
    swarm = ChargedSwarm.sample(10, constraints, rng, chi=coefs.LinearDecay(0.9, 0.4, 20))
    assert swarm.iteration == 1
    for _ in range(20):
        _evaluate(swarm)
        swarm.update_attractor()
        swarm.mutate()
        assert all(constraints.contains(p.position) for p in swarm)
    assert swarm.iteration == 21


def test_charged_swarm_parabola() -> None:
    # single charged swarm of 20 particles in [-100, 100]^2 maximizing -||x||^2
    constraints = Constraints(min=[-100, -100], max=[100, 100])
    swarm = ChargedSwarm.sample(20, constraints, np.random.RandomState(42))
    heights = []
    with Evaluator() as evaluator:
        for _ in range(3000):
            evaluator.evaluate(swarm, testing.parabola)
            attractor = swarm.update_attractor()
            heights.append(attractor.height)
            if abs(attractor.height) < 1e-3:
                break
            swarm.mutate()
    assert abs(heights[-1]) < 1e-3, f"Did not converge: {heights[-1]}"
    assert np.linalg.norm(attractor.position) < 0.032
    # monotonicity of the swarm attractor
    assert all(h2 >= h1 for h1, h2 in zip(heights, heights[1:]))
