from __future__ import annotations

from typing import Dict

from .dsl import reaction_network
from .reaction import Reaction
from .symbols import parameters, species
from .system import ReactionSystem


def exponential_decay_network() -> ReactionSystem:
    """Single species decaying at rate d: X(t) = X0 exp(-d t).

    Defaults: d = 0.5, X(0) = 10.
    """
    return reaction_network(
        """
        @species X(t)=10.0
        @parameters d=0.5
        d, X --> 0
        """,
        name="exponential_decay",
    )


def known_equilibrium_network() -> ReactionSystem:
    """Three independent reversible reactions with closed-form equilibria.

    Reaction scheme:
        X1 <-> X2
        Z + V <-> Y
        2Q <-> S

    At equilibrium k1*X1 = k2*X2, k3*Z*V = k4*Y and k5*Q^2/2 = k6*S.
    """
    return reaction_network(
        """
        (k1, k2), X1 <--> X2
        (k3, k4), Z + V <--> Y
        (k5, k6), 2Q <--> S
        """,
        name="known_equilibrium",
    )


def michaelis_menten_network() -> ReactionSystem:
    """Reversible Michaelis--Menten system.

    Reaction scheme:
        S + E <-> C <-> E + P

    Species order: [S, E, C, P]
    Rate constants: k1, km1, k2, km2
    """
    S, E, C, P = species("S E C P")
    k1, km1, k2, km2 = parameters("k1 km1 k2 km2")

    reactions = [
        # S + E -> C
        Reaction(k1, [S, E], [C]),
        # C -> S + E
        Reaction(km1, [C], [S, E]),
        # C -> E + P
        Reaction(k2, [C], [E, P]),
        # E + P -> C
        Reaction(km2, [E, P], [C]),
    ]
    return ReactionSystem(
        reactions,
        species=[S, E, C, P],
        parameters=[k1, km1, k2, km2],
        name="michaelis_menten",
    )


def brusselator_network() -> ReactionSystem:
    """The Brusselator; oscillates when B > 1 + A^2."""
    return reaction_network(
        """
        A, 0 --> X
        1, 2X + Y --> 3X
        B, X --> Y
        1, X --> 0
        """,
        name="brusselator",
    )


def repressilator_network() -> ReactionSystem:
    """Three genes repressing each other in a cycle (Elowitz & Leibler)."""
    return reaction_network(
        """
        hillr(P3, alpha, K, n), 0 --> m1
        hillr(P1, alpha, K, n), 0 --> m2
        hillr(P2, alpha, K, n), 0 --> m3
        (delta, gamma), m1 <--> 0
        (delta, gamma), m2 <--> 0
        (delta, gamma), m3 <--> 0
        beta, m1 --> m1 + P1
        beta, m2 --> m2 + P2
        beta, m3 --> m3 + P3
        mu, P1 --> 0
        mu, P2 --> 0
        mu, P3 --> 0
        """,
        name="repressilator",
    )


def conserved_cycle_network() -> ReactionSystem:
    """A <-> B <-> C, with total A + B + C conserved."""
    return reaction_network(
        """
        @observables Total ~ A + B + C
        (k1, k2), A <--> B
        (k3, k4), B <--> C
        """,
        name="conserved_cycle",
    )


def steady_state_example_network() -> ReactionSystem:
    """Four reactions with up to three nonnegative steady states.

    With k1 = 1, k2 = 2, k3 = 1 the nonzero steady states satisfy
    X^2 - X + k4 = 0 and Y = X^2.
    """
    return reaction_network(
        """
        k1, Y --> 2X
        k2, 2X --> X + Y
        k3, X + Y --> Y
        k4, X --> 0
        """,
        name="steady_state_example",
    )


def list_available_networks() -> Dict[str, str]:
    """Map network factory function names to short descriptions."""
    return {
        "exponential_decay_network": "Exponential decay X --> 0",
        "known_equilibrium_network": "Reversible reactions with closed-form equilibria",
        "michaelis_menten_network": "Reversible Michaelis-Menten",
        "brusselator_network": "Brusselator oscillator",
        "repressilator_network": "Hill-function repressilator",
        "conserved_cycle_network": "A <-> B <-> C with a conserved total",
        "steady_state_example_network": "Four-reaction network with several steady states",
    }
