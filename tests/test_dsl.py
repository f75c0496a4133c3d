import pytest
import sympy as sp

from reaction_systems import (
    DSLError,
    ObservableError,
    Reaction,
    ReactionSystem,
    parameters,
    reaction_network,
    species,
    variables,
)
from reaction_systems.varmap import resolve_problem_values


def _names(symbols):
    return {str(s) for s in symbols}


def test_declaration_options_do_not_change_the_network():
    variants = [
        "(k1, k2), A <--> B",
        """
        @parameters k1 k2
        (k1, k2), A <--> B
        """,
        """
        @species A(t) B(t)
        (k1, k2), A <--> B
        """,
        """
        @parameters k1 k2
        @species A(t) B(t)
        (k1, k2), A <--> B
        """,
        """
        (k1, k2), A <--> B
        @parameters k1 k2
        @species A(t) B(t)
        """,
        """
        @parameters begin
            k1
            k2
        end
        @species begin
            A(t)
            B(t)
        end
        (k1, k2), A <--> B
        """,
    ]
    networks = [reaction_network(text, name="rnname") for text in variants]
    assert all(rn == networks[0] for rn in networks[1:])
    assert networks[0].n_reactions == 2


def test_species_and_parameters_are_inferred():
    rn = reaction_network("k*X, A + B --> 0")
    assert _names(rn.species) == {"A", "B"}
    assert _names(rn.parameters) == {"k", "X"}

    rn = reaction_network(
        """
        @species A(t) B(t) X(t)
        k*X, A + B --> 0
        """
    )
    assert _names(rn.species) == {"A", "B", "X"}
    assert _names(rn.parameters) == {"k"}

    rn = reaction_network(
        """
        @species A(t)
        k*X, A + B --> 0
        """
    )
    assert _names(rn.species) == {"A", "B"}
    assert _names(rn.parameters) == {"k", "X"}


def test_constant_species_are_parameters():
    rn = reaction_network(
        """
        @parameters k B [isconstantspecies=true]
        k*X, A + B --> 0
        """
    )
    assert _names(rn.species) == {"A"}
    assert _names(rn.parameters) == {"k", "B", "X"}
    assert _names(rn.constant_species) == {"B"}

    A, = species("A")
    k, B, X = parameters("k B X")
    assert sp.simplify(rn.ode_rhs()[0] + k * X * A * B) == 0


def test_inference_over_several_reactions():
    rn = reaction_network(
        """
        @parameters k1 X2 B2 [isconstantspecies=true]
        @species A1(t) X1(t)
        k1*X1, A1 + B1 --> 0
        k2*X2, A2 + B2 --> 0
        """
    )
    assert _names(rn.species) == {"A1", "X1", "B1", "A2"}
    assert _names(rn.parameters) == {"k1", "X2", "B2", "k2"}
    assert rn.species_names[:2] == ["A1", "X1"]

    rn = reaction_network(
        """
        @parameters k1 k2
        @species X1(t)
        k1*X1, A1 + B1 --> 0
        k2*X2, A2 + B2 --> 0
        """
    )
    assert _names(rn.species) == {"X1", "A1", "A2", "B1", "B2"}
    assert _names(rn.parameters) == {"k1", "k2", "X2"}


def test_symbolic_stoichiometry_is_inferred_as_parameters():
    rn = reaction_network(
        """
        @parameters y [isconstantspecies=true]
        k*X, y + g*A + h*gg*B --> k*C
        """
    )
    assert _names(rn.species) == {"A", "B", "C"}
    assert _names(rn.parameters) == {"y", "k", "X", "g", "h", "gg"}

    rx = rn.reactions[0]
    g, h, gg, k = parameters("g h gg k")
    subs = {str(s): c for s, c in rx.substrate_dict().items()}
    assert subs["A"] == g
    assert sp.simplify(subs["B"] - h * gg) == 0
    assert subs["y"] == 1
    assert {str(s): c for s, c in rx.product_dict().items()} == {"C": k}


def test_bundled_reactions_expand_in_order():
    rn18 = reaction_network(
        """
        @parameters p d1 d2
        @species A(t) B(t)
        p, 0 --> A
        1, A --> B
        (d1, d2), (A, B) --> 0
        """,
        name="rnname",
    )
    rn19 = reaction_network(
        """
        p, 0 --> A
        1, A --> B
        (d1, d2), (A, B) --> 0
        """,
        name="rnname",
    )
    assert rn18 == rn19
    assert rn18.parameter_names == ["p", "d1", "d2"]
    assert rn18.species_names == ["A", "B"]
    assert rn18.n_reactions == 4


def test_mismatched_bundles_raise():
    with pytest.raises(DSLError):
        reaction_network("(k1, k2), (A, B, C) --> 0")


def test_distributed_coefficients_and_rate_functions():
    texts = [
        """
        @species X(t)
        @parameters S
        mm(X,v,K), 0 --> Y
        (k1,k2), 2Y <--> Y2
        d*Y, S*(Y2+Y) --> 0
        """,
        """
        @species X(t) Y(t) Y2(t)
        @parameters v K k1 k2 d S
        mm(X,v,K), 0 --> Y
        (k1,k2), 2Y <--> Y2
        d*Y, S*(Y2+Y) --> 0
        """,
        """
        @species X(t) Y2(t)
        @parameters d k1
        mm(X,v,K), 0 --> Y
        (k1,k2), 2Y <--> Y2
        d*Y, S*(Y2+Y) --> 0
        """,
    ]
    rn20, rn21, rn22 = [reaction_network(text, name="rnname") for text in texts]
    assert rn20 == rn21
    assert rn20 == rn22
    assert _names(rn22.parameters) == {"v", "K", "k1", "k2", "d", "S"}
    assert _names(rn22.species) == {"X", "Y", "Y2"}

    X, Y = species("X Y")
    v, K = parameters("v K")
    assert sp.simplify(rn20.reactions[0].rate - v * X / (K + X)) == 0


def test_arrow_variants():
    rn = reaction_network(
        """
        k1, A --> B
        k2, A → B
        k3, B <-- A
        k4, A => B
        """
    )
    A, B = species("A B")
    for rx in rn.reactions:
        assert rx.substrates == (A,)
        assert rx.products == (B,)
    assert [rx.only_use_rate for rx in rn.reactions] == [False, False, False, True]


def test_reversible_reaction_needs_two_rates():
    with pytest.raises(DSLError):
        reaction_network("k, A <--> B")


def test_missing_arrow_raises():
    with pytest.raises(DSLError):
        reaction_network("k, A + B")


def test_unknown_option_raises():
    with pytest.raises(DSLError):
        reaction_network(
            """
            @compounds X ~ A
            k, A --> 0
            """
        )


def test_combinatoric_ratelaws_option():
    rn = reaction_network(
        """
        @combinatoric_ratelaws false
        k, 2X --> 0
        """
    )
    X, = species("X")
    k, = parameters("k")
    assert rn.combinatoric_ratelaws is False
    assert sp.simplify(rn.ode_ratelaws()[0] - k * X**2) == 0


def test_defaults_are_stored_and_merged():
    rn27 = reaction_network(
        """
        @parameters p1=1.0 p2=2.0 k1=4.0 k2=5.0 v=8.0 K=9.0 n=3 d=10.0
        @species X(t)=4.0 Y(t)=3.0 X2Y(t)=2.0 Z(t)=1.0
        (p1,p2), 0 --> (X,Y)
        (k1,k2), 2X + Y --> X2Y
        hill(X2Y,v,K,n), 0 --> Z
        d, (X,Y,X2Y,Z) --> 0
        """
    )
    rn28 = reaction_network(
        """
        @parameters p1=1.0 p2 k1=4.0 k2 v=8.0 K n=3 d
        @species X(t)=4.0 Y(t) X2Y(t) Z(t)=1.0
        (p1,p2), 0 --> (X,Y)
        (k1,k2), 2X + Y --> X2Y
        hill(X2Y,v,K,n), 0 --> Z
        d, (X,Y,X2Y,Z) --> 0
        """
    )
    defaults = {str(k): v for k, v in rn27.defaults.items()}
    assert defaults["p1"] == 1.0
    assert defaults["n"] == 3
    assert defaults["X2Y"] == 2.0
    assert len(defaults) == 12

    full = resolve_problem_values(rn27, None, None)
    merged = resolve_problem_values(
        rn28,
        {"Y": 3.0, "X2Y": 2.0},
        {"p2": 2.0, "k2": 5.0, "K": 9.0, "d": 10.0},
    )
    assert merged == full


def test_default_expressions_refer_to_other_parameters():
    rn = reaction_network(
        """
        @parameters k1=2.0 k2=2*k1
        (k1, k2), A <--> B
        """
    )
    _, p = resolve_problem_values(rn, {"A": 1.0, "B": 0.0}, None)
    assert p[rn.symbol("k2")] == pytest.approx(4.0)


def test_variables_cannot_have_defaults():
    with pytest.raises(DSLError):
        reaction_network(
            """
            @variables X(t)=1.0
            k, A --> 0
            """
        )


def test_variables_cannot_enter_reactions():
    with pytest.raises(DSLError):
        reaction_network(
            """
            @variables V
            V*k, X --> 0
            """
        )
    with pytest.raises(DSLError):
        reaction_network(
            """
            @variables V
            k, V --> 0
            """
        )
    with pytest.raises(DSLError):
        reaction_network(
            """
            @observables Total ~ A + B
            Total, A --> B
            """
        )

    X, = species("X")
    k, = parameters("k")
    V, = variables("V")
    with pytest.raises(ObservableError):
        ReactionSystem([Reaction(V * k, [X], None)], observables=[(V, X)])


def test_reserved_names_are_rejected():
    with pytest.raises(DSLError):
        reaction_network("k, t --> 0")
    with pytest.raises(DSLError):
        reaction_network("pi, A --> 0")


def test_comments_are_ignored():
    rn = reaction_network(
        """
        # production
        p, 0 --> X  # constant source
        d, X --> 0
        """
    )
    assert rn.n_reactions == 2
    assert rn.species_names == ["X"]


# -----------------------------
# Observables
# -----------------------------


def test_observables_are_parsed():
    rn = reaction_network(
        """
        @observables begin
            X ~ Xi + Xa
            Y ~ Y1 + Y2
        end
        (p,d), 0 <--> Xi
        (k1,k2), Xi <--> Xa
        (k3,k4), Y1 <--> Y2
        """
    )
    assert rn.n_species == 4
    assert len(rn.observables) == 2
    assert rn.n_reactions == 6

    Xi, Xa = species("Xi Xa")
    X, = variables("X")
    assert rn.observables[0].name == X
    assert sp.simplify(rn.observables[0].expression - (Xi + Xa)) == 0


def test_dsl_matches_programmatic_system():
    rn_dsl = reaction_network(
        """
        @observables begin
            X ~ x + 2x2y
            Y ~ y + x2y
        end
        k, 0 --> (x, y)
        (kB, kD), 2x + y <--> x2y
        d, (x,y,x2y) --> 0
        """
    )

    x, y, x2y = species("x y x2y")
    k, kB, kD, d = parameters("k kB kD d")
    X, Y = variables("X Y")
    reactions = [
        Reaction(k, None, [x], None, [1]),
        Reaction(k, None, [y], None, [1]),
        Reaction(kB, [x, y], [x2y], [2, 1], [1]),
        Reaction(kD, [x2y], [x, y], [1], [2, 1]),
        Reaction(d, [x], None, [1], None),
        Reaction(d, [y], None, [1], None),
        Reaction(d, [x2y], None, [1], None),
    ]
    rn_prog = ReactionSystem(
        reactions,
        species=[x, y, x2y],
        parameters=[k, kB, kD, d],
        observables=[sp.Eq(X, x + 2 * x2y), sp.Eq(Y, y + x2y)],
    )
    assert rn_dsl == rn_prog


def test_observable_with_parameters_and_unreacting_species():
    rn = reaction_network(
        """
        @parameters op_1 op_2
        @species X4(t)
        @observables X ~ X1^2 + op_1*(X2 + 2X3) + X1*X4/op_2 + p
        (p,d), 0 <--> X1
        (k1,k2), X1 <--> X2
        (k3,k4), X2 <--> X3
        """
    )
    X1, X2, X3, X4 = species("X1 X2 X3 X4")
    op_1, op_2, p = parameters("op_1 op_2 p")
    expected = X1**2 + op_1 * (X2 + 2 * X3) + X1 * X4 / op_2 + p
    assert sp.simplify(rn.observable("X").expression - expected) == 0
    assert "X4" in rn.species_names


def test_observable_metadata_form():
    rn3 = reaction_network(
        """
        @observables (X,  [bounds=(0.0, 10.0)]) ~ X1 + X2
        k, 0 --> X1 + X2
        """,
        name="rn_observed",
    )
    rn4 = reaction_network(
        """
        @variables X(t) [bounds=(0.0, 10.0)]
        @observables X ~ X1 + X2
        k, 0 --> X1 + X2
        """,
        name="rn_observed",
    )
    assert rn3 == rn4


@pytest.mark.parametrize(
    "text",
    [
        # Arguments on the observable name.
        """
        @observables X(t) ~ X1 + X2
        k, 0 --> X1 + X2
        """,
        # Observable name clashes with a species.
        """
        @observables begin
            X ~ X1 + X2
            X2 ~ 2X
        end
        (p,d), 0 <--> X1 + X2
        """,
        # Two @observables options.
        """
        @observables X ~ X1 + X2
        @observables Y ~ Y1 + Y2
        k, 0 --> X1 + X2
        k, 0 --> Y1 + Y2
        """,
        # Default value for an observable.
        """
        @observables (X = 1.0) ~ X1 + X2
        k, 0 --> X1 + X2
        """,
        # Reserved names.
        """
        @observables t ~ t1 + t2
        k, 0 --> t1 + t2
        """,
        """
        @observables im ~ i + m
        k, 0 --> i + m
        """,
        # Left-hand side is not a single name.
        """
        @observables X - X1 ~ X2
        k, 0 --> X1 + X2
        """,
        # Formula uses an undeclared symbol.
        """
        @observables X ~ X1 + X2
        k, 0 --> X1
        """,
    ],
)
def test_invalid_observables_raise(text):
    with pytest.raises(ObservableError):
        reaction_network(text, name="rn_observed")
