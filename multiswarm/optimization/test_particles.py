# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
from multiswarm.common import errors
from multiswarm.common import testing
from .constraints import Constraints
from .particles import Attractor
from .particles import Particle
from .particles import ParticleKind
from .particles import best_of


def test_particle_kind() -> None:
    assert Particle([0, 0], [1, 1]).kind is ParticleKind.CLASSICAL
    particle = Particle([0, 0])
    assert particle.kind is ParticleKind.QUANTUM
    assert particle.velocity is None
    assert particle.needs_evaluation
    assert particle.attractor is None


@testing.parametrized(
    classical_without_velocity=([0.0, 0.0], None, ParticleKind.CLASSICAL),
    quantum_with_velocity=([0.0, 0.0], [1.0, 1.0], ParticleKind.QUANTUM),
    mismatching_velocity=([0.0, 0.0], [1.0], None),
)
def test_particle_configuration_errors(position: list, velocity: list, kind: ParticleKind) -> None:
    with pytest.raises(errors.ConfigurationError):
        Particle(position, velocity, kind=kind)


def test_evaluate_updates_attractor_on_strict_improvement() -> None:
    heights = iter([1.0, 3.0, 3.0, 2.0])
    particle = Particle([0.0, 0.0])
    positions = [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]]
    attractor_positions = []
    for position in positions:
        particle.position = np.array(position)
        particle.evaluate(lambda x: next(heights))
        assert particle.attractor is not None
        attractor_positions.append(particle.attractor.position[0])
    assert particle.height == 2.0
    assert particle.attractor.height == 3.0
    # tie at 3.0 does not replace the attractor
    assert attractor_positions == [0.0, 1.0, 1.0, 1.0]


def test_evaluate_does_not_expose_position() -> None:

    def vandal(x: np.ndarray) -> float:
        x[:] = 12
        return 0.0

    particle = Particle([1.0, 2.0])
    particle.evaluate(vandal)
    np.testing.assert_array_equal(particle.position, [1.0, 2.0])
    assert particle.attractor is not None
    np.testing.assert_array_equal(particle.attractor.position, [1.0, 2.0])
    assert not particle.needs_evaluation


def test_objective_error_propagates() -> None:

    def failing(x: np.ndarray) -> float:
        raise ZeroDivisionError("Oops")

    particle = Particle([1.0, 2.0])
    with pytest.raises(ZeroDivisionError, match="Oops"):
        particle.evaluate(failing)
    assert particle.attractor is None


def test_move_before_evaluate() -> None:
    particle = Particle([0.0, 0.0], [1.0, 1.0])
    swarm_attractor = Attractor(0.0, np.zeros(2))
    with pytest.raises(errors.PreconditionError):
        particle.move(swarm_attractor, np.random.RandomState(0), chi=0.7, c1=2.0, c2=2.0)
    particle.evaluate(testing.parabola)
    with pytest.raises(errors.PreconditionError):
        particle.move(None, np.random.RandomState(0), chi=0.7, c1=2.0, c2=2.0)
    with pytest.raises(errors.MultiswarmValueError):
        particle.move(swarm_attractor, np.random.RandomState(0), alpha=0.75, centroid=np.zeros(2))


def test_classical_move() -> None:
    particle = Particle([1.0, 2.0], [0.5, -0.5])
    particle.evaluate(testing.parabola)
    particle.attractor = Attractor(0.0, np.array([0.0, 1.0]))
    swarm_attractor = Attractor(1.0, np.array([-1.0, 3.0]))
    particle.move(swarm_attractor, np.random.RandomState(12), chi=0.7, c1=2.0, c2=1.5)
    rng = np.random.RandomState(12)
    r1, r2 = rng.uniform(0, 1, size=2), rng.uniform(0, 1, size=2)
    x, v = np.array([1.0, 2.0]), np.array([0.5, -0.5])
    expected_velocity = 0.7 * (v + 2.0 * r1 * (np.array([0.0, 1.0]) - x) + 1.5 * r2 * (np.array([-1.0, 3.0]) - x))
    np.testing.assert_almost_equal(particle.velocity, expected_velocity)  # type: ignore
    np.testing.assert_almost_equal(particle.position, x + expected_velocity)
    assert particle.needs_evaluation


def test_quantum_move() -> None:
    particle = Particle([1.0, 2.0, 3.0])
    particle.evaluate(testing.parabola)
    particle.attractor = Attractor(0.0, np.array([0.0, 1.0, 2.0]))
    swarm_attractor = Attractor(1.0, np.array([-1.0, 3.0, 0.0]))
    centroid = np.array([0.5, 0.5, 0.5])
    particle.move(swarm_attractor, np.random.RandomState(24), alpha=0.75, centroid=centroid)
    rng = np.random.RandomState(24)
    phi = rng.uniform(0, 1, size=3)
    local = phi * np.array([0.0, 1.0, 2.0]) + (1 - phi) * np.array([-1.0, 3.0, 0.0])
    u = 1 - rng.uniform(0, 1, size=3)
    delta = 0.75 * np.abs(np.array([1.0, 2.0, 3.0]) - centroid) * np.log(1 / u)
    sign = 1 if rng.uniform(0, 1) < 0.5 else -1
    np.testing.assert_almost_equal(particle.position, local + sign * delta)
    # a single coin flip for all dimensions
    np.testing.assert_almost_equal(np.abs(particle.position - local), delta)
    assert particle.velocity is None


def test_remain_within() -> None:
    constraints = Constraints(min=[-1, -1, -1], max=[1, 1, 1])
    particle = Particle([-3.0, 0.5, 2.0], [-2.0, 1.0, 4.0])
    assert particle.remain_within(constraints) == 2
    np.testing.assert_array_equal(particle.position, [-1.0, 0.5, 1.0])
    np.testing.assert_array_equal(particle.velocity, [1.0, 1.0, -2.0])  # type: ignore
    assert particle.remain_within(constraints) == 0
    quantum = Particle([0.0, 5.0, 0.0])
    assert quantum.remain_within(constraints) == 1
    np.testing.assert_array_equal(quantum.position, [0.0, 1.0, 0.0])
    with pytest.raises(errors.ConfigurationError):
        Particle([0.0, 0.0]).remain_within(constraints)


def test_best_of() -> None:
    first = Attractor(1.0, np.zeros(1))
    second = Attractor(1.0, np.ones(1))
    third = Attractor(0.5, np.ones(1))
    assert best_of([None, first, second, third]) is first
    assert best_of([third, None]) is third
    assert best_of([None]) is None
