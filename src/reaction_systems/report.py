"""Human-readable reporting utilities.

Plain-text / Markdown summaries of a reaction system:

- reactions and the derived rate equations,
- conservation laws and the eliminated species, and
- steady states together with their stability.

Nothing here is required for modelling or simulation; it is strictly presentation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import sympy as sp

from .system import ReactionSystem


def _expr_to_str(e: sp.Expr) -> str:
    """Stable string for SymPy expressions in reports."""
    return sp.sstr(e)


def format_reactions(system: ReactionSystem, *, max_items: int = 50) -> List[str]:
    out: List[str] = []
    for i, rx in enumerate(system.reactions[: int(max_items)]):
        out.append(f"{i + 1}. {rx.to_string()}")
    if system.n_reactions > max_items:
        out.append(f"... ({system.n_reactions - max_items} more)")
    return out


def format_rate_equations(system: ReactionSystem) -> List[str]:
    """Format dX/dt = ... for every species."""
    F = system.ode_rhs()
    return [f"d{s}/d{system.iv} = {_expr_to_str(F[i, 0])}" for i, s in enumerate(system.species)]


def format_conservation_laws(system: ReactionSystem) -> List[str]:
    laws = system.conservation_laws()
    x = sp.Matrix(system.species)
    Lx = laws.matrix * x
    out: List[str] = []
    for i, gamma in enumerate(laws.constants):
        out.append(f"{gamma} = {_expr_to_str(Lx[i, 0])}")
    for eq in laws.conserved_equations():
        out.append(f"{eq.lhs} = {_expr_to_str(eq.rhs)}")
    return out


@dataclass
class ReportOptions:
    """Tunable knobs for report verbosity."""

    max_reactions: int = 50
    include_rate_equations: bool = True
    include_conservation_laws: bool = True
    include_latex: bool = False
    digits: int = 6


def format_system_report(system: ReactionSystem, *, options: Optional[ReportOptions] = None) -> str:
    """Format a Markdown report of a reaction system."""
    opt = options or ReportOptions()
    lines: List[str] = []

    lines.append(f"### {system.name or 'reaction system'}")
    lines.append(f"Species ({system.n_species}): " + ", ".join(system.species_names))
    lines.append(f"Parameters ({len(system.parameters)}): " + ", ".join(system.parameter_names))
    if system.observables:
        lines.append("Observables:")
        lines.extend("  " + str(o) for o in system.observables)

    lines.append(f"Reactions ({system.n_reactions}):")
    lines.extend("  " + s for s in format_reactions(system, max_items=opt.max_reactions))

    if opt.include_rate_equations:
        lines.append("Rate equations:")
        lines.extend("  " + s for s in format_rate_equations(system))

    if opt.include_conservation_laws:
        law_lines = format_conservation_laws(system)
        if law_lines:
            lines.append("Conservation laws:")
            lines.extend("  " + s for s in law_lines)

    if opt.include_latex:
        lines.append(system.to_latex())

    return "\n".join(lines) + "\n"


def format_steady_states(
    system: ReactionSystem,
    solutions: Sequence[Sequence[float]],
    *,
    stability: Optional[Sequence[bool]] = None,
    options: Optional[ReportOptions] = None,
) -> str:
    """Format steady states as a table, one row per solution."""
    opt = options or ReportOptions()
    if not solutions:
        return "No steady states found.\n"

    header = ["#"] + system.species_names
    if stability is not None:
        header.append("stable")
    rows = [header]
    for i, sol in enumerate(solutions):
        row = [str(i + 1)] + [f"{float(v):.{opt.digits}g}" for v in sol]
        if stability is not None:
            row.append("yes" if stability[i] else "no")
        rows.append(row)

    widths = [max(len(r[j]) for r in rows) for j in range(len(header))]
    out = []
    for r in rows:
        out.append("  ".join(cell.rjust(w) for cell, w in zip(r, widths)))
    return "\n".join(out) + "\n"
