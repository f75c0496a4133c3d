"""Stochastic chemical kinetics on molecule counts (Gillespie direct method)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np
import sympy as sp

from .config import JumpOptions, with_overrides
from .exceptions import NonAutonomousError, ReactionSystemError, SolverError
from .odes import compile_vector_field, normalize_tspan
from .solution import Trajectory
from .system import ReactionSystem
from .varmap import ValueMap, resolve_problem_values

logger = logging.getLogger(__name__)


class JumpProblem:
    """Continuous-time Markov chain model of a reaction system.

    Propensities use falling factorials of the substrate counts, i.e. for
    ``k, 2X --> Y`` the propensity is ``k*X*(X - 1)/2`` with combinatoric
    rate laws enabled.

    Raises
    ------
    NonAutonomousError
        If a rate depends on the independent variable.
    ReactionSystemError
        For non-integer stoichiometry or non-integer initial counts.
    """

    def __init__(
        self,
        system: ReactionSystem,
        u0: ValueMap,
        tspan: Union[float, Sequence[float]],
        p: ValueMap = None,
        *,
        combinatoric_ratelaws: Optional[bool] = None,
    ) -> None:
        if not system.is_autonomous():
            raise NonAutonomousError(
                f"jump simulation needs rates independent of {system.iv}; "
                f"{system.name or 'the system'} has time-dependent rates"
            )
        bad = [rx.to_string() for rx in system.reactions if not rx.has_integer_stoichiometry()]
        if bad:
            raise ReactionSystemError("jump simulation needs integer stoichiometry: " + "; ".join(bad))

        self.system = system
        self.tspan = normalize_tspan(tspan)
        self.combinatoric_ratelaws = combinatoric_ratelaws

        species_values, parameter_values = resolve_problem_values(system, u0, p)
        counts = []
        for s in system.species:
            v = species_values[s]
            if not float(v).is_integer() or v < 0:
                raise ReactionSystemError(f"initial count of {s} must be a nonnegative integer, got {v}")
            counts.append(int(v))
        self.u0_map: Dict[sp.Symbol, float] = species_values
        self.p: Dict[sp.Symbol, float] = parameter_values
        self.u0 = np.array(counts, dtype=np.int64)

        self.propensities = sp.Matrix(system.propensities(combinatoric_ratelaws))
        net_rows = [[int(c) for c in row] for row in system.netstoichmat().tolist()]
        self.net = np.array(net_rows, dtype=np.int64).reshape((system.n_species, system.n_reactions))
        if system.n_reactions:
            self._a = compile_vector_field(system, self.propensities, system.species, parameter_values)
        else:
            self._a = None

    def propensities_at(self, u: Sequence[float]) -> np.ndarray:
        if self._a is None:
            return np.zeros(0)
        a = np.array(self._a(self.tspan[0], list(u)), dtype=float).reshape((self.system.n_reactions,))
        if np.any(a < 0):
            raise SolverError(f"negative propensity {a.min()} at state {list(u)}")
        return a

    def solve(
        self,
        options: Optional[JumpOptions] = None,
        saveat: Optional[Sequence[float]] = None,
        **overrides: Any,
    ) -> Trajectory:
        """Simulate one realisation.

        Without `saveat`, the trajectory holds the initial state, the state
        after every event and the final state at ``tspan[1]``. With `saveat`,
        the piecewise-constant path is sampled at those times.
        """
        opts = with_overrides(options or JumpOptions(), **overrides)
        rng = np.random.default_rng(opts.seed)
        t0, t1 = self.tspan

        times = [t0]
        states = [self.u0.copy()]
        x = self.u0.copy()
        t_now = t0
        steps = 0
        success, message = True, ""
        while True:
            a = self.propensities_at(x)
            a0 = float(a.sum())
            if a0 <= 0.0:
                break
            t_next = t_now + rng.exponential(1.0 / a0)
            if t_next > t1:
                break
            if steps >= opts.max_steps:
                success, message = False, f"stopped after max_steps={opts.max_steps} events"
                logger.warning("Jump simulation of %s %s", self.system.name, message)
                break
            j = int(np.searchsorted(np.cumsum(a), rng.uniform(0.0, a0), side="right"))
            j = min(j, a.size - 1)
            x = x + self.net[:, j]
            t_now = t_next
            steps += 1
            times.append(t_now)
            states.append(x.copy())

        if times[-1] < t1:
            times.append(t1)
            states.append(x.copy())

        t_arr = np.array(times, dtype=float)
        u_arr = np.array(states, dtype=float).T.reshape((self.system.n_species, len(times)))
        if saveat is not None:
            grid = np.asarray(saveat, dtype=float)
            idx = np.searchsorted(t_arr, grid, side="right") - 1
            idx = np.clip(idx, 0, t_arr.size - 1)
            t_arr, u_arr = grid, u_arr[:, idx]

        logger.info("Jump simulation of %s finished: %d events", self.system.name, steps)
        return Trajectory(
            t=t_arr,
            u=u_arr,
            system=self.system,
            parameter_values=dict(self.p),
            kind="jump",
            success=success,
            message=message,
        )
