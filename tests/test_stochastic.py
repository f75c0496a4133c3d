import numpy as np
import pytest
import sympy as sp

from reaction_systems import (
    JumpOptions,
    JumpProblem,
    NonAutonomousError,
    ODEProblem,
    ReactionSystemError,
    SDEOptions,
    SDEProblem,
    brusselator_network,
    parameters,
    reaction_network,
    species,
)


# -----------------------------
# SDEs
# -----------------------------


def test_sde_paths_are_reproducible_with_a_seed():
    rn = reaction_network("(p, d), 0 <--> X")
    prob = SDEProblem(rn, {"X": 10.0}, 1.0, {"p": 10.0, "d": 1.0})
    a = prob.solve(SDEOptions(dt=1e-2, seed=42))
    b = prob.solve(dt=1e-2, seed=42)
    c = prob.solve(dt=1e-2, seed=7)
    assert a.kind == "sde"
    assert a.u.shape == (1, 101)
    assert a.t[-1] == pytest.approx(1.0)
    assert np.array_equal(a.u, b.u)
    assert not np.array_equal(a.u, c.u)


def test_sde_without_noise_follows_the_ode():
    rn = reaction_network("d, X --> 0")
    u0, p = {"X": 5.0}, {"d": 1.0}
    sde = SDEProblem(rn, u0, 1.0, p, noise_scaling=0.0).solve(dt=1e-4, seed=1)
    ode = ODEProblem(rn, u0, 1.0, p).solve()
    assert sde["X"][-1] == pytest.approx(ode["X"][-1], rel=1e-3)


def test_sde_noise_matrix():
    rn = reaction_network("(p, d), 0 <--> X")
    prob = SDEProblem(rn, {"X": 4.0}, 1.0, {"p": 2.0, "d": 0.5})
    G = prob.noise_at(0.0, [4.0])
    assert G.shape == (1, 2)
    assert np.allclose(G, [[np.sqrt(2.0), -np.sqrt(0.5 * 4.0)]])
    assert np.allclose(prob.noise_at(0.0, [4.0], noise_scaling=0.5), 0.5 * G)
    assert np.allclose(prob.drift_at(0.0, [4.0]), [2.0 - 2.0])


def test_sde_rejects_nonpositive_step():
    rn = reaction_network("d, X --> 0")
    prob = SDEProblem(rn, {"X": 1.0}, 1.0, {"d": 1.0})
    with pytest.raises(ValueError):
        prob.solve(dt=0.0)


# -----------------------------
# Jumps
# -----------------------------


def test_jump_propensities_use_falling_factorials():
    rn = brusselator_network()
    X, Y = species("X Y")
    props = rn.propensities()
    assert sp.expand(props[1] - X * (X - 1) * Y / 2) == 0


def test_jump_paths_are_integer_and_reproducible():
    rn = reaction_network("(p, d), 0 <--> X")
    prob = JumpProblem(rn, {"X": 5}, 10.0, {"p": 3.0, "d": 0.5})
    a = prob.solve(seed=3)
    b = prob.solve(JumpOptions(seed=3))
    assert a.kind == "jump"
    assert np.array_equal(a.u, b.u)
    assert np.array_equal(a.t, b.t)
    assert np.all(a.u >= 0)
    assert np.all(a.u == np.round(a.u))
    assert np.all(np.diff(a.t) >= 0)
    assert a.t[0] == 0.0
    assert a.t[-1] == 10.0


def test_pure_decay_never_increases():
    rn = reaction_network("d, X --> 0")
    sol = JumpProblem(rn, {"X": 20}, 5.0, {"d": 1.0}).solve(seed=11)
    X = sol["X"]
    assert X[0] == 20
    assert np.all(np.diff(X) <= 0)
    assert np.all(np.isin(np.diff(X), [0, -1]))


def test_jump_solution_on_a_grid():
    rn = reaction_network("(p, d), 0 <--> X")
    grid = np.linspace(0.0, 10.0, 11)
    sol = JumpProblem(rn, {"X": 0}, 10.0, {"p": 5.0, "d": 1.0}).solve(seed=0, saveat=grid)
    assert np.array_equal(sol.t, grid)
    assert sol.u.shape == (1, 11)
    assert sol["X"][0] == 0


def test_jump_max_steps():
    rn = reaction_network("k, 0 --> X")
    sol = JumpProblem(rn, {"X": 0}, 10.0, {"k": 1000.0}).solve(seed=1, max_steps=5)
    assert not sol.success
    assert sol["X"][-1] == 5
    assert "max_steps" in sol.message


def test_jump_requires_autonomous_rates():
    rn = reaction_network("k*t, 0 --> X")
    with pytest.raises(NonAutonomousError):
        JumpProblem(rn, {"X": 0}, 1.0, {"k": 1.0})


def test_jump_requires_integer_counts_and_stoichiometry():
    rn = reaction_network("d, X --> 0")
    with pytest.raises(ReactionSystemError):
        JumpProblem(rn, {"X": 1.5}, 1.0, {"d": 1.0})

    rn = reaction_network("k, 2.5A --> B")
    with pytest.raises(ReactionSystemError):
        JumpProblem(rn, {"A": 10, "B": 0}, 1.0, {"k": 1.0})


def test_jump_accepts_float_valued_integer_stoichiometry():
    rn = reaction_network("k, 2.0X --> X")
    assert all(rx.has_integer_stoichiometry() for rx in rn.reactions)
    X, = species("X")
    k, = parameters("k")
    assert sp.expand(rn.propensities()[0] - k * X * (X - 1) / 2) == 0

    prob = JumpProblem(rn, {"X": 10}, 100.0, {"k": 1.0})
    assert prob.net.tolist() == [[-1]]
    sol = prob.solve(seed=5)
    assert sol["X"][0] == 10
    assert sol["X"][-1] == 1
    assert np.all(np.isin(np.diff(sol["X"]), [0, -1]))
