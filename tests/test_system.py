import pytest
import sympy as sp

from reaction_systems import (
    ObservableError,
    Reaction,
    ReactionSystem,
    ReactionSystemError,
    UnknownSymbolError,
    michaelis_menten_network,
    parameters,
    reaction_network,
    species,
    t,
    variables,
)
from reaction_systems.varmap import symmap_to_varmap


def test_reaction_merges_repeated_species():
    X, Y = species("X Y")
    k, = parameters("k")
    rx = Reaction(k, [X, X], [Y])
    assert rx.substrates == (X,)
    assert rx.substoich == (2,)
    assert rx.net_stoichiometry() == {X: -2, Y: 1}


def test_reaction_rejects_invalid_complexes():
    X, = species("X")
    with pytest.raises(ReactionSystemError):
        Reaction(1, None, None)
    with pytest.raises(ReactionSystemError):
        Reaction(1, [X], None, [-1])
    with pytest.raises(ReactionSystemError):
        Reaction(1, [X], None, [1, 2])


def test_mass_action_rate_laws():
    X, Y = species("X Y")
    k, = parameters("k")
    rx = Reaction(k, [X, Y], [Y], [2, 1], [1])
    assert sp.simplify(rx.ode_ratelaw() - k * X**2 * Y / 2) == 0
    assert sp.simplify(rx.ode_ratelaw(combinatoric=False) - k * X**2 * Y) == 0
    assert sp.simplify(rx.jump_ratelaw() - k * X * (X - 1) * Y / 2) == 0


def test_only_use_rate_uses_the_rate_verbatim():
    X, Y = species("X Y")
    k, = parameters("k")
    rx = Reaction(k * X, [X], [Y], only_use_rate=True)
    assert rx.ode_ratelaw() == k * X
    assert rx.jump_ratelaw() == k * X
    assert "=>" in rx.to_string()


def test_michaelis_menten_stoichiometry_and_rhs():
    rn = michaelis_menten_network()
    S, E, C, P = rn.species
    k1, km1, k2, km2 = rn.parameters

    N = rn.netstoichmat()
    assert N == sp.Matrix(
        [
            [-1, 1, 0, 0],
            [-1, 1, 1, -1],
            [1, -1, -1, 1],
            [0, 0, 1, -1],
        ]
    )
    assert rn.substoichmat() - rn.prodstoichmat() == -N

    F = rn.ode_rhs()
    expected_C = k1 * S * E - km1 * C - k2 * C + km2 * E * P
    assert sp.simplify(F[2] - expected_C) == 0
    assert rn.jacobian().shape == (4, 4)


def test_species_and_parameters_from_reactions():
    X, Y = species("X Y")
    k, d = parameters("k d")
    rn = ReactionSystem([Reaction(k, None, [X]), Reaction(d * t, [X], [Y])])
    assert rn.species == [X, Y]
    assert rn.parameters == [k, d]
    assert not rn.is_autonomous()


def test_symbol_lookup():
    rn = reaction_network(
        """
        @observables Total ~ A + B
        (k1, k2), A <--> B
        """
    )
    A, = species("A")
    k1, = parameters("k1")
    Total, = variables("Total")
    assert rn.symbol("A") == A
    assert rn.symbol(k1) == k1
    assert rn.symbol("Total") == Total
    assert rn.is_species("A")
    assert not rn.is_species("k1")
    with pytest.raises(UnknownSymbolError):
        rn.symbol("Q")


def test_symbol_maps():
    rn = reaction_network("(k1, k2), A <--> B")
    A, B = species("A B")
    k1, k2 = parameters("k1 k2")
    assert symmap_to_varmap(rn, {"A": 1.0, B: 2.0}) == {A: 1.0, B: 2.0}
    assert symmap_to_varmap(rn, [("k1", 3.0), ("k2", 4.0)]) == {k1: 3.0, k2: 4.0}
    assert symmap_to_varmap(rn, [5.0, 6.0], order=rn.species) == {A: 5.0, B: 6.0}
    assert symmap_to_varmap(rn, []) == {}
    with pytest.raises(UnknownSymbolError):
        symmap_to_varmap(rn, {"C": 1.0})


def test_observables_cannot_be_assigned_values():
    rn = reaction_network(
        """
        @observables Total ~ A + B
        (k1, k2), A <--> B
        """
    )
    with pytest.raises(UnknownSymbolError):
        symmap_to_varmap(rn, {"Total": 1.0})


def test_programmatic_observable_validation():
    X, Y = species("X Y")
    k, = parameters("k")
    Z, W = variables("Z W")
    reactions = [Reaction(k, [X], [Y])]
    with pytest.raises(ObservableError):
        ReactionSystem(reactions, observables=[(Z, X + W)])
    with pytest.raises(ObservableError):
        ReactionSystem(reactions, observables=[(Z, X), (W, 2 * Z)])
    with pytest.raises(ObservableError):
        ReactionSystem(reactions, observables=[(X, Y)])


def test_species_and_parameters_must_be_disjoint():
    X, = species("X")
    k, = parameters("k")
    with pytest.raises(ReactionSystemError):
        ReactionSystem([Reaction(k, [X], None)], species=[X], parameters=[X])


def test_diffusion_matrix_uses_square_root_of_rates():
    rn = reaction_network("d, X --> 0")
    X, = species("X")
    d, = parameters("d")
    G = rn.diffusion_matrix()
    assert G.shape == (1, 1)
    assert sp.simplify(G[0, 0] + sp.sqrt(sp.Abs(d * X))) == 0


def test_drift_and_diffusion_pair():
    rn = reaction_network("(p, d), 0 <--> X")
    drift, noise = rn.drift_and_diffusion(noise_scaling=2)
    assert drift == rn.ode_rhs()
    assert noise.shape == (1, 2)
    assert sp.simplify(noise - rn.diffusion_matrix(noise_scaling=2)) == sp.zeros(1, 2)


def test_observable_expressions():
    rn = reaction_network(
        """
        @observables Total ~ A + B
        (k1, k2), A <--> B
        """
    )
    A, B = species("A B")
    exprs = rn.observable_expressions()
    assert list(exprs) == [rn.symbol("Total")]
    assert exprs[rn.symbol("Total")] == A + B


def test_latex_and_summary():
    rn = reaction_network("(k1, k2), A <--> B", name="iso")
    tex = rn.to_latex()
    assert tex.startswith("\\begin{align}")
    assert "\\frac" in tex
    assert "xrightarrow" in rn.reactions_to_latex()
    summary = rn.summary()
    assert "iso" in summary
    assert "Species: A, B" in summary
