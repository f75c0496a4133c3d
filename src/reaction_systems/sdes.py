"""Chemical Langevin equation models.

The SDE for a system with net stoichiometry N and rate laws a_j is

    dX = N a(X) dt + sum_j N_j sqrt(|a_j(X)|) dW_j

integrated here with the Euler-Maruyama scheme.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np
import sympy as sp

from .config import SDEOptions, with_overrides
from .odes import compile_vector_field, normalize_tspan
from .solution import Trajectory
from .system import ReactionSystem
from .varmap import ValueMap, resolve_problem_values

logger = logging.getLogger(__name__)


class SDEProblem:
    """Chemical Langevin model of a reaction system.

    Parameters
    ----------
    system:
        The `ReactionSystem`.
    u0, tspan, p:
        As for `ODEProblem`.
    noise_scaling:
        Factor applied to every noise column. Overrides ``SDEOptions.noise_scaling``.
    """

    def __init__(
        self,
        system: ReactionSystem,
        u0: ValueMap,
        tspan: Union[float, Sequence[float]],
        p: ValueMap = None,
        *,
        noise_scaling: Optional[float] = None,
        combinatoric_ratelaws: Optional[bool] = None,
    ) -> None:
        self.system = system
        self.tspan = normalize_tspan(tspan)
        self.noise_scaling = noise_scaling
        self.combinatoric_ratelaws = combinatoric_ratelaws

        species_values, parameter_values = resolve_problem_values(system, u0, p)
        self.u0_map: Dict[sp.Symbol, float] = species_values
        self.p: Dict[sp.Symbol, float] = parameter_values
        self.u0 = np.array([species_values[s] for s in system.species], dtype=float)

        self.drift, noise = system.drift_and_diffusion(combinatoric_ratelaws)
        self._f = compile_vector_field(system, self.drift, system.species, parameter_values)
        # noise columns are linear in the scaling factor
        self._g = compile_vector_field(system, noise, system.species, parameter_values) if system.n_reactions else None

    def diffusion(self, noise_scaling: float = 1.0) -> sp.Matrix:
        """Symbolic noise matrix (n_species x n_reactions)."""
        return self.system.diffusion_matrix(self.combinatoric_ratelaws, noise_scaling=noise_scaling)

    def drift_at(self, t: float, u: Sequence[float]) -> np.ndarray:
        return np.array(self._f(t, list(u)), dtype=float).reshape((self.system.n_species,))

    def noise_at(self, t: float, u: Sequence[float], noise_scaling: float = 1.0) -> np.ndarray:
        n, m = self.system.n_species, self.system.n_reactions
        if m == 0:
            return np.zeros((n, 0))
        return float(noise_scaling) * np.array(self._g(t, list(u)), dtype=float).reshape((n, m))

    def solve(self, options: Optional[SDEOptions] = None, **overrides: Any) -> Trajectory:
        """Simulate one sample path with Euler-Maruyama.

        The path is recorded at every step; the last step is shortened to end
        exactly at ``tspan[1]``.
        """
        opts = with_overrides(options or SDEOptions(), **overrides)
        if opts.dt <= 0:
            raise ValueError(f"dt must be positive, got {opts.dt}")
        scaling = float(self.noise_scaling if self.noise_scaling is not None else opts.noise_scaling)
        rng = np.random.default_rng(opts.seed)

        t0, t1 = self.tspan
        n_steps = int(np.ceil((t1 - t0) / opts.dt - 1e-12)) if t1 > t0 else 0
        times = np.minimum(t0 + opts.dt * np.arange(n_steps + 1), t1)
        m = self.system.n_reactions

        u = np.empty((self.system.n_species, n_steps + 1))
        u[:, 0] = self.u0
        for k in range(n_steps):
            tk = times[k]
            h = times[k + 1] - tk
            x = u[:, k]
            dW = rng.normal(0.0, np.sqrt(h), size=m)
            u[:, k + 1] = x + self.drift_at(tk, x) * h + self.noise_at(tk, x, scaling) @ dW

        finite = bool(np.all(np.isfinite(u)))
        if not finite:
            logger.warning("SDE path of %s diverged", self.system.name)
        logger.info("SDE solve of %s finished: %d steps of size %g", self.system.name, n_steps, opts.dt)
        return Trajectory(
            t=times,
            u=u,
            system=self.system,
            parameter_values=dict(self.p),
            kind="sde",
            success=finite,
            message="" if finite else "non-finite values in sample path",
        )
