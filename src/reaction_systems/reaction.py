from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import sympy as sp

from .exceptions import ReactionSystemError


def _as_expr(value) -> sp.Expr:
    return sp.sympify(value)


def _merge_complex(
    members: Optional[Iterable[sp.Symbol]],
    stoich: Optional[Iterable],
) -> Tuple[Tuple[sp.Symbol, ...], Tuple[sp.Expr, ...]]:
    """Normalize a complex: default stoichiometry 1 and merge repeated species."""
    syms = list(members) if members is not None else []
    coeffs = [sp.Integer(1)] * len(syms) if stoich is None else [_as_expr(c) for c in stoich]
    if len(coeffs) != len(syms):
        raise ReactionSystemError("species and stoichiometry lists must have the same length")

    merged: Dict[sp.Symbol, sp.Expr] = {}
    for s, c in zip(syms, coeffs):
        if not isinstance(s, sp.Symbol):
            raise ReactionSystemError(f"complex members must be symbols, got {s!r}")
        if c.is_number and c < 0:
            raise ReactionSystemError(f"stoichiometry of {s} must be nonnegative, got {c}")
        merged[s] = merged.get(s, sp.Integer(0)) + c
    pairs = [(s, c) for s, c in merged.items() if not c.is_zero]
    return tuple(s for s, _ in pairs), tuple(c for _, c in pairs)


def _is_integer_coefficient(c: sp.Expr) -> bool:
    # Float(2.0) != 2 in recent SymPy, so compare as Python floats
    return bool(c.is_number and (c.is_integer or float(c).is_integer()))


def _falling_factorial(x: sp.Expr, n: int) -> sp.Expr:
    out = sp.Integer(1)
    for i in range(n):
        out *= x - i
    return out


@dataclass(frozen=True, init=False)
class Reaction:
    """A single reaction  substrates --rate--> products.

    Parameters
    ----------
    rate:
        Rate constant or rate expression (anything `sympy.sympify` accepts).
    substrates, products:
        Sequences of symbols; ``None`` is the empty complex.
    substoich, prodstoich:
        Stoichiometric coefficients (numbers or SymPy expressions). Default 1.
    only_use_rate:
        If True, `rate` is used verbatim as the rate law (no mass action).

    Notes
    -----
    With combinatoric scaling, mass action kinetics yields the ODE rate law

        rate * prod_i X_i**n_i / n_i!

    and the jump propensity rate * prod_i binomial(X_i, n_i).
    """

    rate: sp.Expr
    substrates: Tuple[sp.Symbol, ...]
    products: Tuple[sp.Symbol, ...]
    substoich: Tuple[sp.Expr, ...]
    prodstoich: Tuple[sp.Expr, ...]
    only_use_rate: bool

    def __init__(
        self,
        rate,
        substrates: Optional[Sequence[sp.Symbol]] = None,
        products: Optional[Sequence[sp.Symbol]] = None,
        substoich: Optional[Sequence] = None,
        prodstoich: Optional[Sequence] = None,
        only_use_rate: bool = False,
    ) -> None:
        subs, subst = _merge_complex(substrates, substoich)
        prods, prodst = _merge_complex(products, prodstoich)
        if not subs and not prods:
            raise ReactionSystemError("a reaction needs at least one substrate or product")
        object.__setattr__(self, "rate", _as_expr(rate))
        object.__setattr__(self, "substrates", subs)
        object.__setattr__(self, "products", prods)
        object.__setattr__(self, "substoich", subst)
        object.__setattr__(self, "prodstoich", prodst)
        object.__setattr__(self, "only_use_rate", bool(only_use_rate))

    @property
    def is_mass_action(self) -> bool:
        return not self.only_use_rate

    def substrate_dict(self) -> Dict[sp.Symbol, sp.Expr]:
        return dict(zip(self.substrates, self.substoich))

    def product_dict(self) -> Dict[sp.Symbol, sp.Expr]:
        return dict(zip(self.products, self.prodstoich))

    def net_stoichiometry(self) -> Dict[sp.Symbol, sp.Expr]:
        """Return {symbol: products - substrates}, omitting symbols with zero net change."""
        net: Dict[sp.Symbol, sp.Expr] = {}
        for s, c in zip(self.substrates, self.substoich):
            net[s] = net.get(s, sp.Integer(0)) - c
        for s, c in zip(self.products, self.prodstoich):
            net[s] = net.get(s, sp.Integer(0)) + c
        return {s: sp.simplify(c) for s, c in net.items() if not sp.simplify(c).is_zero}

    def has_integer_stoichiometry(self) -> bool:
        coeffs = list(self.substoich) + list(self.prodstoich)
        return all(_is_integer_coefficient(c) for c in coeffs)

    def ode_ratelaw(self, combinatoric: bool = True) -> sp.Expr:
        """Return the deterministic (concentration) rate law."""
        if self.only_use_rate:
            return self.rate
        law = self.rate
        for s, n in zip(self.substrates, self.substoich):
            law *= s**n
            if combinatoric:
                law /= sp.factorial(n)
        return law

    def jump_ratelaw(self, combinatoric: bool = True) -> sp.Expr:
        """Return the propensity for discrete molecule counts."""
        if self.only_use_rate:
            return self.rate
        if not self.has_integer_stoichiometry():
            raise ReactionSystemError(
                f"jump propensities need integer stoichiometry; got {self.to_string()}"
            )
        law = self.rate
        for s, n in zip(self.substrates, self.substoich):
            n_int = int(n)
            law *= _falling_factorial(s, n_int)
            if combinatoric:
                law /= sp.factorial(n_int)
        return law

    def symbols_in_rate(self) -> List[sp.Symbol]:
        return sorted(self.rate.free_symbols, key=lambda z: str(z))

    def to_string(self) -> str:
        def side(members, coeffs) -> str:
            terms = []
            for s, c in zip(members, coeffs):
                terms.append(str(s) if c == 1 else f"{c}*{s}")
            return " + ".join(terms) if terms else "0"

        arrow = "=>" if self.only_use_rate else "-->"
        return f"{self.rate}, {side(self.substrates, self.substoich)} {arrow} {side(self.products, self.prodstoich)}"

    def __str__(self) -> str:
        return self.to_string()
