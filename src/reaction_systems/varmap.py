"""Conversion of user-supplied value maps into numeric symbol maps.

Values may be given as dicts or as sequences of ``(key, value)`` pairs, keyed
by names or symbols. Sequences of plain numbers are matched positionally
against an explicit symbol order (e.g. the species of a system).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import sympy as sp

from .exceptions import MissingValueError, UnknownSymbolError

logger = logging.getLogger(__name__)

ValueMap = Union[None, Mapping[Any, Any], Sequence[Tuple[Any, Any]], Sequence[float], np.ndarray]


def _is_pair(item: Any) -> bool:
    return isinstance(item, (tuple, list)) and len(item) == 2 and isinstance(item[0], (str, sp.Symbol))


def symmap_to_varmap(system, values: ValueMap, order: Optional[Sequence[sp.Symbol]] = None) -> Dict[sp.Symbol, Any]:
    """Return `values` keyed by the symbols of `system`.

    Raises `UnknownSymbolError` for keys that are not species or parameters.
    """
    if values is None:
        return {}
    if isinstance(values, Mapping):
        items: Iterable[Tuple[Any, Any]] = values.items()
    else:
        seq = list(values)
        if not seq:
            return {}
        if all(_is_pair(v) for v in seq):
            items = [tuple(v) for v in seq]
        elif order is not None:
            if len(seq) != len(order):
                raise MissingValueError(f"expected {len(order)} values, got {len(seq)}")
            items = list(zip(order, seq))
        else:
            raise UnknownSymbolError("values must be a mapping or a sequence of (key, value) pairs")

    out: Dict[sp.Symbol, Any] = {}
    for key, value in items:
        try:
            sym = system.symbol(key)
        except UnknownSymbolError:
            raise UnknownSymbolError(
                f"'{key}' is not a species or parameter of {system.name or 'the reaction system'}"
            ) from None
        if sym not in system.species and sym not in system.parameters:
            raise UnknownSymbolError(f"'{key}' is an observable; observables cannot be assigned values")
        out[sym] = value
    return out


def merge_with_defaults(system, *maps: Mapping[sp.Symbol, Any]) -> Dict[sp.Symbol, Any]:
    """System defaults overridden by `maps` (later maps win)."""
    merged: Dict[sp.Symbol, Any] = dict(system.defaults)
    for m in maps:
        merged.update(m)
    return merged


def evaluate_values(
    merged: Mapping[sp.Symbol, Any],
    required: Sequence[sp.Symbol],
) -> Dict[sp.Symbol, float]:
    """Evaluate (possibly symbolic) values to floats.

    Values may refer to other symbols in `merged` (e.g. a default ``k2 = 2*k1``).
    Every symbol in `required` must end up numeric.
    """
    numeric: Dict[sp.Symbol, float] = {}
    pending: Dict[sp.Symbol, sp.Expr] = {}
    for sym, value in merged.items():
        if isinstance(value, (int, float, np.integer, np.floating)):
            numeric[sym] = float(value)
        else:
            pending[sym] = sp.sympify(value)

    progress = True
    while pending and progress:
        progress = False
        for sym in list(pending):
            expr = pending[sym].subs(numeric)
            if expr.free_symbols:
                pending[sym] = expr
                continue
            numeric[sym] = float(sp.N(expr))
            del pending[sym]
            progress = True

    missing = [s for s in required if s not in numeric]
    if missing:
        names = ", ".join(str(s) for s in missing)
        raise MissingValueError(f"no value given for: {names}")
    if pending:
        logger.debug("Unresolved values left over: %s", ", ".join(str(s) for s in pending))
    return numeric


def resolve_problem_values(
    system,
    u0: ValueMap,
    p: ValueMap,
    *,
    require_species: bool = True,
) -> Tuple[Dict[sp.Symbol, float], Dict[sp.Symbol, float]]:
    """Resolve initial conditions and parameters of `system` into two numeric maps."""
    u0_map = symmap_to_varmap(system, u0, order=system.species)
    p_map = symmap_to_varmap(system, p, order=system.parameters)
    merged = merge_with_defaults(system, u0_map, p_map)
    required = list(system.parameters)
    if require_species:
        required = list(system.species) + required
    values = evaluate_values(merged, required)
    species_values = {s: values[s] for s in system.species if s in values}
    parameter_values = {q: values[q] for q in system.parameters if q in values}
    return species_values, parameter_values
