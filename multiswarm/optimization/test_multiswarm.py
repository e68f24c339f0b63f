# Copyright (c) Facebook, Inc. and its affiliates. All Rights Reserved.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import pytest
import numpy as np
import multiswarm.common.typing as tp
from multiswarm.common import errors
from multiswarm.common import testing
from . import callbacks
from . import multiswarm as msqpso
from .constraints import Constraints
from .particles import Attractor


def _solver(**kwargs: tp.Any) -> msqpso.MultiSwarmQPSOSolver:
    params: tp.Dict[str, tp.Any] = dict(
        num_swarms=4,
        swarm_size=10,
        constraints=Constraints.from_bounds(-5, 5, dimension=2),
        random_state=12,
    )
    params.update(kwargs)
    return msqpso.MultiSwarmQPSOSolver(**params)


@testing.parametrized(
    one_dimension=(10.0, 4, 1, 1.25),
    two_dimensions=(10.0, 2, 2, 5.0),
    three_dimensions=(8.0, 4, 3, 4.0),
)
def test_exclusion_radius(extent: float, num_swarms: int, dimension: int, expected: float) -> None:
    np.testing.assert_almost_equal(msqpso.exclusion_radius(extent, num_swarms, dimension), expected)


def test_exclusion_radius_errors() -> None:
    with pytest.raises(errors.ConfigurationError):
        msqpso.exclusion_radius(1.0, 0, 2)
    with pytest.raises(errors.ConfigurationError):
        msqpso.exclusion_radius(1.0, 2, 0)


def test_configuration() -> None:
    solver = _solver()
    assert solver.max_swarms == 4
    assert solver.max_not_converged == 3
    np.testing.assert_almost_equal(solver.exclusion_radius, 10.0 / np.sqrt(8))
    assert not solver.num_swarms  # created when solving
    with pytest.raises(errors.ConfigurationError, match="constraints"):
        _solver(constraints=None)
    with pytest.raises(errors.ConfigurationError):
        _solver(num_swarms=0)
    with pytest.raises(errors.ConfigurationError, match="max_swarms"):
        _solver(max_swarms=3)
    with pytest.raises(errors.ConfigurationError):
        _solver(max_not_converged=-1)
    with pytest.raises(errors.ConfigurationError):
        _solver(charged_to_neutral_ratio=0)
    assert "MultiSwarmQPSOSolver(num_swarms=4" in repr(solver)


def test_parabola() -> None:
    # 4 swarms of 10 particles in [-5, 5]^2, maximizing -||x||^2
    counts: tp.List[int] = []
    history = callbacks.BestHistory()
    solver = _solver(
        max_swarms=6,
        exit_condition=lambda iteration, best: abs(best.height) < 1e-3 or iteration >= 2000,
    )
    solver.register_callback("iteration", lambda s, *args: counts.append(s.num_swarms))
    solver.register_callback("iteration", history)
    best = solver.solve(testing.parabola)
    assert abs(best.height) < 1e-3, f"Did not converge: {best}"
    assert np.linalg.norm(best.position) < 0.032
    # population size stays within bounds
    assert counts
    assert min(counts) >= 1
    assert max(counts) <= 6
    # the overall best never regresses
    heights = history.heights
    assert np.all(np.diff(heights) >= 0)
    assert not solver.num_landscape_changes
    assert all(len(swarm) == 10 for swarm in solver.swarms)


def test_parabola_within_configured_swarm_count() -> None:
    # 4 swarms of 10 particles in [-100, 100]^2, the number of swarms is capped by num_swarms
    counts: tp.List[int] = []
    solver = _solver(
        constraints={"min": [-100, -100], "max": [100, 100]},
        exit_condition=lambda iteration, best: abs(best.height) < 1e-3 or iteration >= 2000,
    )
    solver.register_callback("iteration", lambda s, *args: counts.append(s.num_swarms))
    best = solver.solve(testing.parabola)
    assert abs(best.height) < 1e-3, f"Did not converge: {best}"
    assert np.linalg.norm(best.position) < 0.032
    assert counts
    assert 1 <= min(counts) <= max(counts) <= 4


def test_every_particle_is_evaluated_at_each_iteration() -> None:
    # a single swarm which can neither spawn, retire nor collide
    func = testing.CountingFunction()
    solver = _solver(num_swarms=1, swarm_size=5, exit_condition=lambda iteration, best: iteration >= 3)
    counts: tp.List[int] = []
    solver.register_callback("iteration", lambda s, *args: counts.append(s.num_evaluations))
    solver.solve(func)
    # all particles, the swarm attractor, then all particles after the move
    assert counts == [11, 22, 33]
    assert func.count == 33


def test_swarms_stay_confined() -> None:
    constraints = Constraints(min=[-1, 0, 2], max=[1, 4, 3])
    solver = _solver(constraints=constraints, exit_condition=lambda iteration, best: iteration >= 20)

    def check(s: msqpso.MultiSwarmQPSOSolver, iteration: int, best: Attractor) -> None:
        for swarm in s.swarms:
            assert all(constraints.contains(p.position) for p in swarm)

    solver.register_callback("iteration", check)
    solver.solve(lambda x: -float(np.sum((x - 0.5) ** 2)))
    assert solver.num_iterations == 20


@testing.parametrized(
    constant=(False, [1000.0, 1000.0]),
    adaptive=(True, [1000.0, 500.0]),
)
def test_spawn_when_all_converged(adaptive: bool, expected_radii: tp.List[float]) -> None:
    # all particles start at the same position, so the only swarm is converged
    solver = _solver(
        num_swarms=1,
        max_swarms=3,
        constraints=Constraints.from_bounds(-1000, 1000, dimension=1),
        random_position_func=lambda: np.array([0.5]),
        adaptive_exclusion_radius=adaptive,
        exit_condition=lambda iteration, best: iteration >= 5,
    )
    counts: tp.List[int] = []
    radii: tp.List[float] = []
    solver.register_callback("iteration", lambda s, *args: counts.append(s.num_swarms))
    solver.register_callback("iteration", lambda s, *args: radii.append(s.exclusion_radius))
    solver.solve(testing.parabola)
    assert counts[0] == 2
    assert max(counts) <= 3
    np.testing.assert_almost_equal(radii[:2], expected_radii)


def test_retire_when_too_many_not_converged() -> None:
    # particles on the corners of a 10-dimensional box are far apart, so no swarm is converged
    rng = np.random.RandomState(1)
    solver = _solver(
        num_swarms=5,
        max_not_converged=2,
        constraints=Constraints.from_bounds(-10, 10, dimension=10),
        random_position_func=lambda: rng.choice([-10.0, 10.0], size=10),
        exit_condition=lambda iteration, best: iteration >= 3,
    )
    counts: tp.List[int] = []
    solver.register_callback("iteration", lambda s, *args: counts.append(s.num_swarms))
    solver.solve(testing.parabola)
    assert counts[0] == 4
    assert min(counts) >= 1


def test_exclusion_reinitializes_colliding_swarm(caplog: tp.Any) -> None:
    # both swarms start around the same point, so their attractors collide
    rng = np.random.RandomState(2)
    solver = _solver(
        num_swarms=2,
        swarm_size=4,
        random_position_func=lambda: np.array([0.1, 0.1]) + rng.uniform(-1e-3, 1e-3, size=2),
        exit_condition=lambda iteration, best: True,
    )
    with caplog.at_level(logging.INFO):
        solver.solve(testing.parabola)
    assert "collided" in caplog.text
    assert solver.num_swarms == 2
    # evaluation of all particles, attractor checks, evaluation after the moves and reinitialization
    assert solver.num_evaluations == 8 + 2 + 8 + 4


def test_landscape_change_is_counted(caplog: tp.Any) -> None:
    state = {"offset": 0.0}

    def func(x: np.ndarray) -> float:
        return testing.parabola(x) + state["offset"]

    def shift(s: msqpso.MultiSwarmQPSOSolver, iteration: int, best: Attractor) -> None:
        # lowering the landscape keeps the stale attractors above every new height
        state["offset"] -= 1000.0

    solver = _solver(exit_condition=lambda iteration, best: iteration >= 3)
    solver.register_callback("iteration", shift)
    with caplog.at_level(logging.INFO):
        solver.solve(func)
    assert solver.num_landscape_changes >= 4
    assert "Landscape change" in caplog.text


def test_early_stopping() -> None:
    solver = _solver()
    solver.register_callback("iteration", callbacks.EarlyStopping(lambda s: s.num_iterations >= 4))
    best = solver.solve(testing.parabola)
    assert solver.num_iterations == 4
    assert best is solver.provide_recommendation()


def test_concurrent_matches_sequential() -> None:
    results = []
    for concurrent in [False, True]:
        solver = _solver(concurrent=concurrent, num_workers=4, exit_condition=lambda iteration, best: iteration >= 10)
        results.append(solver.solve(testing.parabola))
    assert results[0].height == results[1].height
    np.testing.assert_array_equal(results[0].position, results[1].position)
