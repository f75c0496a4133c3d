"""Steady states of mass action systems by polynomial system solving.

For an autonomous system the steady states solve

    F_i(x) = 0      for every independent species i,
    L x - Γ = 0     for every conservation law,

where Γ is fixed by the initial condition. After substituting the parameter
values and clearing denominators these are polynomial equations in the species,
which are handed to SymPy's Groebner-basis based solver.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import sympy as sp

from .config import SteadyStateOptions, with_overrides
from .exceptions import NonAutonomousError, NonPolynomialError, SolverError
from .system import ReactionSystem
from .varmap import ValueMap, resolve_problem_values, symmap_to_varmap

logger = logging.getLogger(__name__)


def _check_autonomous(system: ReactionSystem) -> None:
    if not system.is_autonomous():
        raise NonAutonomousError(
            "cannot compute steady states of a non-autonomous system "
            f"(some rates depend on {system.iv})"
        )


def _integer_exponents(expr: sp.Expr) -> sp.Expr:
    """Turn float exponents such as ``2.0`` into integers.

    Raises `NonPolynomialError` for non-integer or symbolic exponents.
    """
    replacements = {}
    for pw in expr.atoms(sp.Pow):
        base, exp = pw.as_base_exp()
        if exp.is_Integer or not base.free_symbols:
            continue
        if exp.is_number and exp.is_real and float(exp).is_integer():
            replacements[pw] = base ** sp.Integer(int(float(exp)))
            continue
        raise NonPolynomialError(
            f"non-integer exponent {exp} in {pw}; steady states need polynomial rate laws"
        )
    return expr.xreplace(replacements) if replacements else expr


def _clear_denominators(expr: sp.Expr) -> sp.Expr:
    num, _ = sp.fraction(sp.together(expr))
    return sp.expand(num)


def steady_state_polynomials(
    system: ReactionSystem,
    p: ValueMap,
    u0: ValueMap = None,
) -> List[sp.Expr]:
    """Polynomials in the species whose common roots are the steady states.

    The list holds the numerators of the independent species' right-hand
    sides followed by the conservation constraints.
    """
    _check_autonomous(system)
    species_values, parameter_values = resolve_problem_values(system, u0, p, require_species=False)

    laws = system.conservation_laws()
    F = system.ode_rhs()
    eqs: List[sp.Expr] = [F[i, 0] for i in laws.independent_indices]
    if laws.n_laws:
        gammas = laws.conserved_quantities(species_values)
        eqs.extend(c.subs(gammas) for c in laws.constraints())

    gens = list(system.species)
    polys: List[sp.Expr] = []
    for eq in eqs:
        expr = eq.subs(parameter_values)
        expr = _integer_exponents(expr)
        expr = sp.nsimplify(expr, rational=True)
        expr = _clear_denominators(expr)
        if expr == 0:
            continue
        try:
            sp.Poly(expr, *gens)
        except sp.PolynomialError as exc:
            raise NonPolynomialError(f"steady state equation is not polynomial: {expr}") from exc
        polys.append(expr)
    logger.debug("Steady state polynomials of %s: %s", system.name, polys)
    return polys


def _real_solution(values: Sequence[sp.Expr], imag_tol: float) -> Optional[List[float]]:
    out = []
    for v in values:
        z = complex(sp.N(v))
        if abs(z.imag) > imag_tol:
            return None
        out.append(z.real)
    return out


def filter_negative(solutions: List[List[float]], neg_thres: float = -1e-20) -> List[List[float]]:
    """Zero out entries in ``(neg_thres, 0)`` then drop solutions with a negative entry."""
    kept = []
    for sol in solutions:
        sol = [0.0 if neg_thres < v < 0 else v for v in sol]
        if all(v >= 0 for v in sol):
            kept.append(sol)
    return kept


def steady_states(
    system: ReactionSystem,
    p: ValueMap,
    u0: ValueMap = None,
    options: Optional[SteadyStateOptions] = None,
    **overrides: Any,
) -> List[List[float]]:
    """All real (by default nonnegative) steady states of `system`.

    Parameters
    ----------
    system:
        An autonomous `ReactionSystem` with polynomial rate laws (after
        parameter substitution).
    p:
        Parameter values.
    u0:
        Initial condition; needed for every species appearing in a
        conservation law.

    Returns
    -------
    List of solutions, each a list of species values in `system.species` order.
    """
    opts = with_overrides(options or SteadyStateOptions(), **overrides)
    polys = steady_state_polynomials(system, p, u0)
    gens = list(system.species)
    if not polys:
        raise SolverError("steady state equations are trivially satisfied; the solution set is not finite")

    try:
        raw = sp.solve_poly_system(polys, *gens)
    except NotImplementedError as exc:
        raise SolverError(f"could not solve the steady state system: {exc}") from exc
    if raw is None:
        raw = []

    solutions = []
    for values in raw:
        sol = _real_solution(values, opts.imag_tol)
        if sol is not None:
            solutions.append(sol)
    logger.info("%s: %d solution(s), %d real", system.name, len(raw), len(solutions))

    if opts.filter_negative:
        kept = filter_negative(solutions, opts.neg_thres)
        if len(kept) < len(solutions):
            logger.warning(
                "%s: dropped %d steady state(s) with negative entries", system.name, len(solutions) - len(kept)
            )
        solutions = kept
    return solutions


def _state_map(system: ReactionSystem, state: Union[Mapping[Any, Any], Sequence[float]]) -> Dict[sp.Symbol, float]:
    values = symmap_to_varmap(system, state, order=system.species)
    return {s: float(values[s]) for s in system.species}


def steady_state_jacobian(
    state: Union[Mapping[Any, Any], Sequence[float]],
    system: ReactionSystem,
    p: ValueMap,
) -> np.ndarray:
    """Numeric Jacobian at `state`.

    With conservation laws, the Jacobian of the reduced system (dependent
    species eliminated) is returned, so it has no structural zero eigenvalues.
    """
    _check_autonomous(system)
    x = _state_map(system, state)
    _, parameter_values = resolve_problem_values(system, None, p, require_species=False)

    laws = system.conservation_laws()
    if laws.n_laws:
        gammas = laws.conserved_quantities(x)
        F = laws.reduced_rhs().subs(gammas)
        J = F.jacobian(laws.independent_species)
    else:
        J = system.jacobian()
    J = J.subs(parameter_values).subs(x)
    return np.array(J.evalf().tolist(), dtype=complex).reshape(J.shape)


def steady_state_stability(
    state: Union[Mapping[Any, Any], Sequence[float]],
    system: ReactionSystem,
    p: ValueMap,
    tol: float = 0.0,
) -> bool:
    """True iff every Jacobian eigenvalue at `state` has real part below ``-tol``."""
    J = steady_state_jacobian(state, system, p)
    if J.size == 0:
        return True
    eig = np.linalg.eigvals(J)
    stable = bool(np.all(eig.real < -tol))
    logger.debug("Eigenvalues at steady state of %s: %s (stable=%s)", system.name, eig, stable)
    return stable
