#!/usr/bin/env python3
"""
Basic Usage Examples for the reaction_systems package

This script demonstrates the core features of the package with simple,
self-contained examples.
"""

import numpy as np

from reaction_systems import (
    JumpProblem,
    ODEProblem,
    SDEProblem,
    format_steady_states,
    format_system_report,
    list_available_networks,
    michaelis_menten_network,
    reaction_network,
    steady_state_stability,
    steady_states,
)


def example_1_reaction_notation():
    """Demonstrate the reaction notation parser."""
    print("\n" + "=" * 50)
    print("Example 1: Creating Networks from the Reaction Notation")
    print("=" * 50)

    # Reversible reaction with a rate pair
    network = reaction_network("(k1, k2), A + B <--> C")
    print("\nFrom '(k1, k2), A + B <--> C':")
    print(f"  Species: {network.species_names}")
    print(f"  Parameters: {network.parameter_names}")
    print(f"  Reactions: {network.n_reactions}")

    # Options, bundled reactions and an observable
    network = reaction_network("""
        @parameters p=1.0 d1 d2
        @observables Total ~ A + B
        p, 0 --> A
        1, A --> B
        (d1, d2), (A, B) --> 0
    """)
    print("\nWith options and bundles:")
    for i, rxn in enumerate(network.reactions):
        print(f"    {i+1}. {rxn}")


def example_2_built_in_networks():
    """Demonstrate built-in network factory functions."""
    print("\n" + "=" * 50)
    print("Example 2: Built-in Networks")
    print("=" * 50)

    print("\nAvailable networks:")
    for name, desc in list_available_networks().items():
        print(f"  {name}(): {desc}")

    network = michaelis_menten_network()
    print("\n" + format_system_report(network))


def example_3_simulation():
    """Simulate the same network deterministically and stochastically."""
    print("\n" + "=" * 50)
    print("Example 3: ODE, SDE and Jump Simulations")
    print("=" * 50)

    network = reaction_network("(p, d), 0 <--> X")
    u0 = {"X": 0}
    p = {"p": 50.0, "d": 1.0}

    ode = ODEProblem(network, u0, 10.0, p).solve()
    sde = SDEProblem(network, u0, 10.0, p).solve(dt=1e-2, seed=1)
    jump = JumpProblem(network, u0, 10.0, p).solve(seed=1, saveat=np.linspace(0, 10, 11))

    print(f"\n  ODE  X(10) = {ode['X'][-1]:.3f}")
    print(f"  SDE  X(10) = {sde['X'][-1]:.3f}")
    print(f"  Jump X(10) = {jump['X'][-1]:.0f}")


def example_4_steady_states():
    """Find all steady states of a bistable switch and their stability."""
    print("\n" + "=" * 50)
    print("Example 4: Steady States")
    print("=" * 50)

    network = reaction_network("""
        hill(X, v, K, n), 0 --> X
        d, X --> 0
    """)
    p = {"v": 3.0, "K": 1.0, "n": 2, "d": 1.0}

    sols = steady_states(network, p)
    stable = [steady_state_stability(s, network, p) for s in sols]
    print()
    print(format_steady_states(network, sols, stability=stable))


def main():
    """Run all examples."""
    print("\n" + "=" * 60)
    print("REACTION SYSTEMS - BASIC USAGE EXAMPLES")
    print("=" * 60)

    example_1_reaction_notation()
    example_2_built_in_networks()
    example_3_simulation()
    example_4_steady_states()

    print("\n" + "=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
