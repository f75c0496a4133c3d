from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

import sympy as sp

from .exceptions import ConservationLawError
from .system import ReactionSystem

logger = logging.getLogger(__name__)


def _make_integer_row(row: sp.Matrix) -> sp.Matrix:
    """Scale a rational row vector to a primitive integer row vector."""
    if row.shape[0] != 1:
        raise ValueError("row must be 1×n")
    entries = [sp.nsimplify(e, rational=True) for e in row.tolist()[0]]
    if any(not e.is_Rational for e in entries):
        # Symbolic stoichiometry: leave as is.
        return sp.Matrix([entries])

    dens = [int(sp.fraction(e)[1]) for e in entries]
    lcm = sp.ilcm(*dens) if len(dens) > 1 else dens[0]
    ints = [int(e * lcm) for e in entries]
    if all(v == 0 for v in ints):
        return sp.Matrix([entries])
    g = 0
    for v in ints:
        g = sp.igcd(g, abs(v))
    prim = [sp.Integer(v // int(g)) for v in ints]

    # Canonical sign: make first nonzero entry positive.
    for v in prim:
        if v != 0:
            if v < 0:
                prim = [-vv for vv in prim]
            break

    return sp.Matrix([prim])


@dataclass
class ConservationLaws:
    """Linear conservation laws L x = Γ of a reaction system.

    Rows of `matrix` span the left null space of the net stoichiometry matrix
    and are in reduced row echelon form, so each law has a pivot species that
    appears in no other law. Pivot species are the *dependent* species that can
    be eliminated using the conserved constants Γ.
    """

    system: ReactionSystem
    matrix: sp.Matrix
    dependent_indices: List[int]

    @property
    def n_laws(self) -> int:
        return self.matrix.rows

    @property
    def dependent_species(self) -> List[sp.Symbol]:
        return [self.system.species[i] for i in self.dependent_indices]

    @property
    def independent_indices(self) -> List[int]:
        dep = set(self.dependent_indices)
        return [i for i in range(self.system.n_species) if i not in dep]

    @property
    def independent_species(self) -> List[sp.Symbol]:
        return [self.system.species[i] for i in self.independent_indices]

    @property
    def constants(self) -> List[sp.Symbol]:
        """Symbols Γ1, Γ2, ... for the conserved quantities."""
        return [sp.Symbol(f"Γ{i + 1}", real=True) for i in range(self.n_laws)]

    def involved_species(self, law: int) -> List[sp.Symbol]:
        row = self.matrix.row(law)
        return [s for j, s in enumerate(self.system.species) if row[j] != 0]

    def conserved_quantities(self, u0: Mapping[Any, Any]) -> Dict[sp.Symbol, float]:
        """Return {Γi: L_i · u0}.

        `u0` needs values only for species that appear in some law.
        """
        values: Dict[sp.Symbol, Any] = {}
        for key, v in dict(u0).items():
            values[self.system.symbol(key)] = v

        out: Dict[sp.Symbol, float] = {}
        for i, gamma in enumerate(self.constants):
            missing = [s for s in self.involved_species(i) if s not in values]
            if missing:
                names = ", ".join(str(s) for s in missing)
                raise ConservationLawError(
                    f"conserved quantity {gamma} needs initial conditions for: {names}"
                )
            total = sum(self.matrix[i, j] * sp.sympify(values.get(s, 0)) for j, s in enumerate(self.system.species))
            out[gamma] = float(sp.N(total))
        return out

    def constraints(self) -> List[sp.Expr]:
        """Expressions L_i x - Γi, which vanish along every trajectory."""
        x = sp.Matrix(self.system.species)
        Lx = self.matrix * x
        return [sp.expand(Lx[i, 0] - g) for i, g in enumerate(self.constants)]

    def elimination(self) -> Dict[sp.Symbol, sp.Expr]:
        """Dependent species expressed through Γ and the independent species."""
        out: Dict[sp.Symbol, sp.Expr] = {}
        for i, (p, gamma) in enumerate(zip(self.dependent_indices, self.constants)):
            rest = sum(
                (self.matrix[i, j] * s for j, s in enumerate(self.system.species) if j != p),
                sp.Integer(0),
            )
            out[self.system.species[p]] = sp.expand((gamma - rest) / self.matrix[i, p])
        return out

    def conserved_equations(self) -> List[sp.Eq]:
        return [sp.Eq(s, expr) for s, expr in self.elimination().items()]

    def reduced_rhs(self, combinatoric=None) -> sp.Matrix:
        """Drift of the independent species with dependent species eliminated."""
        F = self.system.ode_rhs(combinatoric)
        elim = self.elimination()
        rows = [F[i, 0].subs(elim) for i in self.independent_indices]
        return sp.Matrix(rows) if rows else sp.zeros(0, 1)


def conservation_laws(system: ReactionSystem) -> ConservationLaws:
    """Compute the conservation laws of `system`."""
    n = system.n_species
    N = system.netstoichmat()
    if N.cols == 0:
        basis = [sp.Matrix([[1 if i == j else 0 for j in range(n)]]) for i in range(n)]
    else:
        # Left null space of N is the right null space of N^T.
        basis = [sp.Matrix(v).T for v in N.T.nullspace()]

    if not basis:
        logger.debug("No conservation laws for %s", system.name)
        return ConservationLaws(system, sp.zeros(0, n), [])

    R, pivots = sp.Matrix.vstack(*basis).rref()
    rows = [_make_integer_row(R.row(i)) for i in range(len(pivots))]
    L = sp.Matrix.vstack(*rows)
    logger.debug("Found %d conservation law(s) for %s", L.rows, system.name)
    return ConservationLaws(system, L, list(pivots))
