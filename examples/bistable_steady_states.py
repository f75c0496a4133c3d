"""Steady states of a self-activating gene and of a four-reaction network.

The polynomial steady state system is printed before solving, so the
exponent and denominator clean-up can be inspected.

Run:
    python examples/bistable_steady_states.py
"""

from __future__ import annotations

import sympy as sp

from reaction_systems import (
    format_steady_states,
    reaction_network,
    steady_state_example_network,
    steady_state_polynomials,
    steady_state_stability,
    steady_states,
)


def report(net, p) -> None:
    print(net.summary())

    print("\nSteady state polynomials:")
    for poly in steady_state_polynomials(net, p):
        print("  ", sp.factor(poly), "= 0")

    sols = steady_states(net, p)
    stable = [steady_state_stability(s, net, p) for s in sols]
    print()
    print(format_steady_states(net, sols, stability=stable))


def main() -> None:
    switch = reaction_network(
        """
        hill(X, v, K, n), 0 --> X
        d, X --> 0
        """,
        name="self_activation",
    )
    report(switch, {"v": 3.0, "K": 1.0, "n": 2, "d": 1.0})

    report(steady_state_example_network(), {"k1": 1.0, "k2": 2.0, "k3": 1.0, "k4": 0.16})


if __name__ == "__main__":
    main()
