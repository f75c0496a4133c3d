from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import sympy as sp
from scipy.integrate import solve_ivp

from .config import ODEOptions, with_overrides
from .exceptions import MissingValueError, SolverError
from .solution import Trajectory
from .system import ReactionSystem
from .varmap import ValueMap, resolve_problem_values, symmap_to_varmap

logger = logging.getLogger(__name__)

_IMPLICIT_METHODS = {"Radau", "BDF", "LSODA"}


def normalize_tspan(tspan: Union[float, Sequence[float]]) -> Tuple[float, float]:
    """Accept ``T`` (meaning ``(0, T)``) or ``(t0, T)``."""
    if isinstance(tspan, (int, float, np.integer, np.floating)):
        span = (0.0, float(tspan))
    else:
        seq = list(tspan)
        if len(seq) != 2:
            raise ValueError(f"tspan must be a number or a (t0, t_end) pair, got {tspan!r}")
        span = (float(seq[0]), float(seq[1]))
    if span[1] < span[0]:
        raise ValueError(f"tspan end must not precede its start: {span}")
    return span


def compile_vector_field(
    system: ReactionSystem,
    expr: sp.Matrix,
    state: Sequence[sp.Symbol],
    parameter_values: Dict[sp.Symbol, float],
):
    """Substitute parameters and lambdify `expr` as f(t, u)."""
    numeric = expr.subs(parameter_values)
    extra = numeric.free_symbols - set(state) - {system.iv}
    if extra:
        names = ", ".join(sorted(str(s) for s in extra))
        raise MissingValueError(f"no value given for: {names}")
    return sp.lambdify([system.iv, list(state)], numeric, modules="numpy")


class ODEProblem:
    """Deterministic (reaction rate equation) model of a reaction system.

    Parameters
    ----------
    system:
        The `ReactionSystem`.
    u0:
        Initial species values (mapping or pairs keyed by name/symbol, or a
        sequence in species order). Defaults of the system fill in gaps.
    tspan:
        End time, or ``(t0, t_end)``.
    p:
        Parameter values.
    combinatoric_ratelaws:
        Override the system's combinatoric rate law setting.
    remove_conserved:
        Integrate only the independent species; dependent species are
        reconstructed from the conserved quantities.
    """

    def __init__(
        self,
        system: ReactionSystem,
        u0: ValueMap,
        tspan: Union[float, Sequence[float]],
        p: ValueMap = None,
        *,
        combinatoric_ratelaws: Optional[bool] = None,
        remove_conserved: bool = False,
    ) -> None:
        self.system = system
        self.tspan = normalize_tspan(tspan)
        self.combinatoric_ratelaws = combinatoric_ratelaws
        self.remove_conserved = bool(remove_conserved)

        species_values, parameter_values = resolve_problem_values(system, u0, p)
        self.u0_map: Dict[sp.Symbol, float] = species_values
        self.p: Dict[sp.Symbol, float] = parameter_values
        self.u0 = np.array([species_values[s] for s in system.species], dtype=float)

        self._reconstruct = None
        if self.remove_conserved:
            laws = system.conservation_laws()
            gammas = laws.conserved_quantities(species_values)
            F = laws.reduced_rhs(combinatoric_ratelaws).subs(gammas)
            self.state: List[sp.Symbol] = laws.independent_species
            elim = laws.elimination()
            self._laws = laws
            self._reconstruct = [
                sp.lambdify(list(self.state), elim[s].subs(gammas).subs(parameter_values), modules="numpy")
                for s in laws.dependent_species
            ]
            self.conserved_quantities = gammas
        else:
            F = system.ode_rhs(combinatoric_ratelaws)
            self.state = list(system.species)
            self.conserved_quantities = {}

        self.drift = F
        self._f = compile_vector_field(system, F, self.state, parameter_values)
        self._jac = compile_vector_field(system, F.jacobian(self.state), self.state, parameter_values)
        logger.debug(
            "ODEProblem for %s: %d state variables, tspan=%s", system.name, len(self.state), self.tspan
        )

    @property
    def state_u0(self) -> np.ndarray:
        return np.array([self.u0_map[s] for s in self.state], dtype=float)

    def rhs(self, t: float, u: Sequence[float]) -> np.ndarray:
        """Evaluate the drift at time `t` and state `u` (in `self.state` order)."""
        return np.array(self._f(t, list(u)), dtype=float).reshape((len(self.state),))

    def jacobian(self, t: float, u: Sequence[float]) -> np.ndarray:
        n = len(self.state)
        return np.array(self._jac(t, list(u)), dtype=float).reshape((n, n))

    def _full_state(self, y: np.ndarray) -> np.ndarray:
        if self._reconstruct is None:
            return y
        n_t = y.shape[1]
        full = np.zeros((self.system.n_species, n_t))
        for row, idx in enumerate(self._laws.independent_indices):
            full[idx] = y[row]
        for f, idx in zip(self._reconstruct, self._laws.dependent_indices):
            full[idx] = np.broadcast_to(np.asarray(f(*y), dtype=float), (n_t,))
        return full

    def solve(
        self,
        options: Optional[ODEOptions] = None,
        t_eval: Optional[Sequence[float]] = None,
        **overrides: Any,
    ) -> Trajectory:
        """Integrate the ODEs with `scipy.integrate.solve_ivp`."""
        opts = with_overrides(options or ODEOptions(), **overrides)
        t0, t1 = self.tspan
        if t_eval is None:
            t_eval = np.linspace(t0, t1, int(opts.n_eval))
        t_eval = np.asarray(t_eval, dtype=float)

        kwargs: Dict[str, Any] = {"rtol": opts.rtol, "atol": opts.atol, "t_eval": t_eval}
        if opts.method in _IMPLICIT_METHODS:
            kwargs["jac"] = self.jacobian

        sol = solve_ivp(self.rhs, (t0, t1), self.state_u0, method=opts.method, **kwargs)
        if not sol.success:
            logger.warning("ODE integration of %s failed: %s", self.system.name, sol.message)
            raise SolverError(f"ODE integration failed: {sol.message}")
        logger.info("ODE solve of %s finished: %d time points, %d rhs evaluations", self.system.name, sol.t.size, sol.nfev)

        return Trajectory(
            t=sol.t,
            u=self._full_state(np.asarray(sol.y, dtype=float)),
            system=self.system,
            parameter_values=dict(self.p),
            kind="ode",
            success=True,
            message=str(sol.message),
        )

    def remake(self, u0: ValueMap = None, tspan=None, p: ValueMap = None) -> "ODEProblem":
        """Return a new problem with some values replaced."""
        new_u0 = dict(self.u0_map)
        new_p = dict(self.p)
        new_u0.update(symmap_to_varmap(self.system, u0, order=self.system.species))
        new_p.update(symmap_to_varmap(self.system, p, order=self.system.parameters))
        return ODEProblem(
            self.system,
            new_u0,
            self.tspan if tspan is None else tspan,
            new_p,
            combinatoric_ratelaws=self.combinatoric_ratelaws,
            remove_conserved=self.remove_conserved,
        )
