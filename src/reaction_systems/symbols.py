"""Symbol factories, registered rate functions and expression parsing.

Species, parameters and observable variables are plain SymPy symbols. The
factories here create them with the same assumptions the reaction notation
uses, so that programmatically built systems compare equal to parsed ones.
"""

from __future__ import annotations

import keyword
import re
from tokenize import TokenError
from typing import Callable, Dict, List, Sequence, Tuple, Union

import sympy as sp
from sympy.parsing.sympy_parser import convert_xor, parse_expr, standard_transformations

from .exceptions import DSLError

# Independent variable (time).
t = sp.Symbol("t", real=True)

# Names which clash with the independent variable or with SymPy constants.
RESERVED_NAMES = frozenset({"t", "im", "pi", "oo", "zoo", "nan"})

_NAME_RE = re.compile(r"(?<![\w.])([^\W\d]\w*)")

# A number directly followed by a name or a parenthesis, e.g. "2X3", "1e-3k", "2(A + B)".
_IMPLICIT_PRODUCT_RE = re.compile(r"(?<![\w.])(\d+(?:\.\d*)?(?:[eE][+-]?\d+)?)\s*(?=[^\W\d]|\()")

_TRANSFORMATIONS = standard_transformations + (convert_xor,)


def _split_names(names: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(names, str):
        return [n for n in re.split(r"[\s,]+", names.strip()) if n]
    return [str(n) for n in names]


def check_name(name: str, kind: str = "symbol") -> str:
    """Return `name` if it may be used for a species, parameter or observable."""
    if name in RESERVED_NAMES:
        raise DSLError(f"'{name}' is a reserved name and cannot be used as a {kind}")
    if keyword.iskeyword(name) or not re.fullmatch(r"[^\W\d]\w*", name):
        raise DSLError(f"'{name}' is not a valid {kind} name")
    return name


def species_symbol(name: str) -> sp.Symbol:
    return sp.Symbol(check_name(name, "species"), real=True)


def parameter_symbol(name: str) -> sp.Symbol:
    return sp.Symbol(check_name(name, "parameter"), positive=True)


def variable_symbol(name: str) -> sp.Symbol:
    return sp.Symbol(check_name(name, "variable"), real=True)


def species(names: Union[str, Sequence[str]]) -> Tuple[sp.Symbol, ...]:
    """Create species symbols, e.g. ``x, y = species("x y")``."""
    return tuple(species_symbol(n) for n in _split_names(names))


def parameters(names: Union[str, Sequence[str]]) -> Tuple[sp.Symbol, ...]:
    """Create parameter symbols, e.g. ``k1, k2 = parameters("k1 k2")``."""
    return tuple(parameter_symbol(n) for n in _split_names(names))


def variables(names: Union[str, Sequence[str]]) -> Tuple[sp.Symbol, ...]:
    """Create observable variable symbols."""
    return tuple(variable_symbol(n) for n in _split_names(names))


# -----------------------------
# Registered rate functions
# -----------------------------


def mm(X, v, K) -> sp.Expr:
    """Michaelis-Menten rate v*X/(K + X)."""
    return v * X / (K + X)


def mmr(X, v, K) -> sp.Expr:
    """Repressive Michaelis-Menten rate v*K/(K + X)."""
    return v * K / (K + X)


def hill(X, v, K, n) -> sp.Expr:
    """Hill function v*X^n/(K^n + X^n)."""
    return v * X**n / (K**n + X**n)


def hillr(X, v, K, n) -> sp.Expr:
    """Repressive Hill function v*K^n/(K^n + X^n)."""
    return v * K**n / (K**n + X**n)


def hillar(X, Y, v, K, n) -> sp.Expr:
    """Activation/repression Hill function v*X^n/(X^n + Y^n + K^n)."""
    return v * X**n / (X**n + Y**n + K**n)


FUNCTIONS: Dict[str, Callable[..., sp.Expr]] = {
    "mm": mm,
    "mmr": mmr,
    "hill": hill,
    "hillr": hillr,
    "hillar": hillar,
    "exp": sp.exp,
    "log": sp.log,
    "sqrt": sp.sqrt,
    "sin": sp.sin,
    "cos": sp.cos,
    "tanh": sp.tanh,
    "abs": sp.Abs,
}


def expression_names(text: str) -> List[str]:
    """Return identifiers appearing in `text` (excluding registered functions), in order."""
    out: List[str] = []
    for m in _NAME_RE.finditer(text):
        name = m.group(1)
        if name in FUNCTIONS or name in out:
            continue
        out.append(name)
    return out


def parse_expression(text: str, resolve: Callable[[str], sp.Basic]) -> sp.Expr:
    """Parse `text` into a SymPy expression.

    Every identifier except registered functions is passed to `resolve`, which
    returns the symbol it stands for. ``^`` is read as a power and a number
    directly followed by a name is a product (``2X`` is ``2*X``).
    """
    src = _IMPLICIT_PRODUCT_RE.sub(r"\1*", text.strip())
    if not src:
        raise DSLError("empty expression")
    local_dict: Dict[str, object] = dict(FUNCTIONS)
    for name in expression_names(src):
        local_dict[name] = resolve(name)
    try:
        expr = parse_expr(src, local_dict=local_dict, transformations=_TRANSFORMATIONS)
    except (SyntaxError, TypeError, TokenError) as exc:
        raise DSLError(f"could not parse expression '{text}': {exc}") from exc
    return sp.sympify(expr)
