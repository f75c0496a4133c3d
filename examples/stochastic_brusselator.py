"""Brusselator: deterministic, chemical Langevin and Gillespie simulations.

With B > 1 + A^2 the deterministic model has a stable limit cycle; the
stochastic models fluctuate around it.

Run:
    python examples/stochastic_brusselator.py
"""

from __future__ import annotations

import numpy as np

from reaction_systems import (
    JumpProblem,
    ODEProblem,
    SDEProblem,
    brusselator_network,
    setup_logging,
)


def main() -> None:
    setup_logging()
    net = brusselator_network()
    print(net.summary())

    p = {"A": 1.0, "B": 3.0}
    u0 = {"X": 1.0, "Y": 1.0}
    grid = np.linspace(0.0, 20.0, 11)

    ode = ODEProblem(net, u0, 20.0, p).solve(t_eval=grid)
    sde = SDEProblem(net, u0, 20.0, p, noise_scaling=0.1).solve(dt=1e-3, seed=0)

    # The jump model reads the same rates with X, Y as molecule counts.
    jump = JumpProblem(net, {"X": 1, "Y": 1}, 20.0, p).solve(seed=0, saveat=grid)

    print("\n   t      X(ode)   X(sde)   X(jump)")
    sde_idx = np.searchsorted(sde.t, grid)
    for i, ti in enumerate(grid):
        j = min(sde_idx[i], len(sde) - 1)
        print(f"{ti:5.1f}  {ode['X'][i]:8.3f} {sde['X'][j]:8.3f} {jump['X'][i]:8.0f}")


if __name__ == "__main__":
    main()
