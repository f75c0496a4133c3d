"""Parser for the declarative reaction notation.

A network is a block of lines. Reaction lines have the form

    rate, substrates ARROW products

for example

    (k1, k2), A + B <--> C
    d, (A, B) --> 0
    mm(X, v, K), 0 --> Y

Option lines start with ``@`` and may appear anywhere in the block, either on
a single line or as a ``begin ... end`` block::

    @species A(t) B=4
    @parameters p=1.0 B [isconstantspecies=true]
    @observables begin
        Xtot ~ X + 2X2
    end
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import sympy as sp

from .exceptions import DSLError, ObservableError
from .reaction import Reaction
from .symbols import (
    check_name,
    parameter_symbol,
    parse_expression,
    species_symbol,
    t,
    variable_symbol,
)
from .system import Observable, ReactionSystem

logger = logging.getLogger(__name__)

# Arrow token -> (direction, only_use_rate). Longest tokens first.
_ARROWS: Dict[str, Tuple[str, bool]] = {
    "<-->": ("both", False),
    "<=>": ("both", True),
    "<->": ("both", False),
    "-->": ("forward", False),
    "<--": ("backward", False),
    "->": ("forward", False),
    "=>": ("forward", True),
    "<=": ("backward", True),
    "↔": ("both", False),
    "⇄": ("both", False),
    "⇔": ("both", True),
    "→": ("forward", False),
    "↣": ("forward", False),
    "⇒": ("forward", True),
    "←": ("backward", False),
    "⇐": ("backward", True),
}
_ARROW_RE = re.compile("|".join(re.escape(a) for a in _ARROWS))

_EMPTY_COMPLEX = {"", "0", "∅"}

_OPTIONS = {"species", "parameters", "variables", "observables", "combinatoric_ratelaws"}

# One declaration: name, optional "(t)", optional "=value", optional "[metadata]".
_DECL_RE = re.compile(
    r"\s*,?\s*([^\W\d]\w*)(\([^)]*\))?\s*(?:=\s*([^\s\[,]+))?\s*(?:\[([^\]]*)\])?\s*,?"
)

_NUMERIC_TERM_RE = re.compile(r"^(\d+(?:\.\d*)?(?:[eE][+-]?\d+)?)\s*\*?\s*(.+)$")
_NAME_ONLY_RE = re.compile(r"^[^\W\d]\w*$")

# A rate, a complex, or a (possibly nested) tuple of either.
Bundle = Union[str, List["Bundle"]]


def _split_top_level(s: str, sep: str) -> List[str]:
    """Split `s` on `sep` where it is not nested inside brackets."""
    parts: List[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(s):
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth < 0:
                raise DSLError(f"unbalanced brackets in '{s}'")
        elif ch == sep and depth == 0:
            parts.append(s[start:i])
            start = i + 1
    if depth != 0:
        raise DSLError(f"unbalanced brackets in '{s}'")
    parts.append(s[start:])
    return parts


def _is_wrapped(s: str) -> bool:
    """True iff `s` is a single parenthesized group, e.g. '(A, B)' but not '(A)+(B)'."""
    s = s.strip()
    if not (s.startswith("(") and s.endswith(")")):
        return False
    depth = 0
    for i, ch in enumerate(s):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and i != len(s) - 1:
                return False
    return True


def _parse_bundle(s: str) -> Bundle:
    """Parse '(a, b)' into ['a', 'b'] (recursively); anything else is returned stripped."""
    s = s.strip()
    if _is_wrapped(s):
        inner = _split_top_level(s[1:-1], ",")
        if len(inner) > 1:
            return [_parse_bundle(p) for p in inner]
    return s


def _expand_bundles(*items: Bundle) -> List[Tuple[Bundle, ...]]:
    """Broadcast single items against tuples of a common length."""
    lengths = {len(x) for x in items if isinstance(x, list)}
    if len(lengths) > 1:
        raise DSLError(f"bundled reactions have mismatched tuple lengths {sorted(lengths)}")
    if not lengths:
        return [tuple(items)]
    n = lengths.pop()
    return [tuple(x[i] if isinstance(x, list) else x for x in items) for i in range(n)]


def _strip_comment(line: str) -> str:
    idx = line.find("#")
    return line if idx == -1 else line[:idx]


@dataclass
class _Declarations:
    species: List[str] = field(default_factory=list)
    parameters: List[str] = field(default_factory=list)
    variables: List[str] = field(default_factory=list)
    constant_species: List[str] = field(default_factory=list)
    defaults: Dict[str, str] = field(default_factory=dict)
    observables: List[Tuple[str, str]] = field(default_factory=list)
    combinatoric_ratelaws: bool = True


@dataclass
class ReactionParser:
    """Parse reaction notation into a `ReactionSystem`.

    Supported arrows
    ----------------
    - forward: '-->', '->', '→', '↣'; backward: '<--', '←'
    - reversible: '<-->', '<->', '↔', '⇄' (rates given as '(kf, kb)')
    - rate used verbatim (no mass action): '=>', '⇒', '<=', '⇐', '<=>', '⇔'

    Empty complexes are written '0' or '∅'. Rates and complexes may be bundled
    into tuples, e.g. '(d1, d2), (A, B) --> 0' declares two degradation reactions.

    Options
    -------
    '@species', '@parameters', '@variables', '@observables' and
    '@combinatoric_ratelaws'. Undeclared symbols in rates are parameters;
    undeclared symbols in complexes are species. Variables only name
    observables and may not appear in rates or complexes.
    """

    def parse_network(self, text: str, name: Optional[str] = None) -> ReactionSystem:
        decl, reaction_lines = self._collect(text)

        # First pass: complexes, to know which names are species.
        parsed_lines = []
        species_order: List[str] = list(decl.species)
        for ln in reaction_lines:
            rate_part, direction, only_use_rate, lhs_part, rhs_part = self._split_reaction_line(ln)
            parsed_lines.append((ln, rate_part, direction, only_use_rate, lhs_part, rhs_part))
            for part in (lhs_part, rhs_part):
                for cplx in self._flatten(_parse_bundle(part)):
                    for term_name, _coef in self._complex_terms(cplx):
                        if term_name in decl.parameters:
                            continue
                        if term_name in decl.variables:
                            raise DSLError(f"variable '{term_name}' cannot appear in a reaction complex: '{ln}'")
                        if term_name not in species_order:
                            species_order.append(term_name)

        obs_names = [o for o, _ in decl.observables]
        for o in obs_names:
            if o in species_order or o in decl.parameters:
                raise ObservableError(f"observable '{o}' is already declared as a species or parameter")
        parameter_order: List[str] = list(decl.parameters)

        def resolve(sym_name: str) -> sp.Symbol:
            if sym_name == str(t):
                return t
            if sym_name in species_order:
                return species_symbol(sym_name)
            if sym_name in obs_names or sym_name in decl.variables:
                raise DSLError(
                    f"'{sym_name}' is an observable variable and cannot appear in rates, coefficients or defaults"
                )
            if sym_name not in parameter_order:
                parameter_order.append(check_name(sym_name, "parameter"))
            return parameter_symbol(sym_name)

        def term_symbol(sym_name: str) -> sp.Symbol:
            if sym_name in decl.parameters:
                return parameter_symbol(sym_name)
            return species_symbol(sym_name)

        reactions: List[Reaction] = []
        for ln, rate_part, direction, only_use_rate, lhs_part, rhs_part in parsed_lines:
            rates = _parse_bundle(rate_part)
            lhs = _parse_bundle(lhs_part)
            rhs = _parse_bundle(rhs_part)

            if direction == "both":
                if not (isinstance(rates, list) and len(rates) == 2):
                    raise DSLError(f"reversible reaction needs a (forward, backward) rate pair: '{ln}'")
                legs = [(rates[0], lhs, rhs), (rates[1], rhs, lhs)]
            elif direction == "backward":
                legs = [(rates, rhs, lhs)]
            else:
                legs = [(rates, lhs, rhs)]

            for leg_rate, leg_sub, leg_prod in legs:
                for rate_str, sub_str, prod_str in _expand_bundles(leg_rate, leg_sub, leg_prod):
                    if isinstance(rate_str, list) or isinstance(sub_str, list) or isinstance(prod_str, list):
                        raise DSLError(f"nested tuples are not supported in '{ln}'")
                    rate = parse_expression(rate_str, resolve)
                    subs, substoich = self._complex(sub_str, resolve, term_symbol)
                    prods, prodstoich = self._complex(prod_str, resolve, term_symbol)
                    reactions.append(Reaction(rate, subs, prods, substoich, prodstoich, only_use_rate))

        def resolve_observed(sym_name: str) -> sp.Symbol:
            if sym_name in species_order:
                return species_symbol(sym_name)
            if sym_name in parameter_order:
                return parameter_symbol(sym_name)
            if sym_name in obs_names:
                return variable_symbol(sym_name)
            raise ObservableError(f"observable formula refers to undeclared symbol '{sym_name}'")

        observables = []
        for obs_name, formula in decl.observables:
            expr = parse_expression(formula, resolve_observed)
            observables.append(Observable(variable_symbol(obs_name), expr))

        all_names = set(species_order) | set(parameter_order)
        defaults = {}
        for key, value in decl.defaults.items():
            if key not in all_names:
                raise DSLError(f"default value given for unknown symbol '{key}'")
            defaults[key] = parse_expression(value, resolve)

        logger.debug(
            "Parsed network %s: species=%s parameters=%s reactions=%d",
            name,
            species_order,
            parameter_order,
            len(reactions),
        )

        return ReactionSystem(
            reactions=reactions,
            species=[species_symbol(s) for s in species_order],
            parameters=[parameter_symbol(p) for p in parameter_order],
            observables=observables,
            defaults=defaults,
            name=name,
            constant_species=[parameter_symbol(p) for p in decl.constant_species],
            combinatoric_ratelaws=decl.combinatoric_ratelaws,
        )

    # -----------------------------
    # Lines and options
    # -----------------------------

    def _collect(self, text: str) -> Tuple[_Declarations, List[str]]:
        """Split the block into option declarations and reaction lines."""
        lines = [_strip_comment(ln).strip() for ln in text.splitlines()]
        lines = [ln for ln in lines if ln]

        decl = _Declarations()
        reaction_lines: List[str] = []
        seen_observables = False
        i = 0
        while i < len(lines):
            ln = lines[i]
            if not ln.startswith("@"):
                reaction_lines.append(ln)
                i += 1
                continue

            m = re.match(r"@(\w+)\s*(.*)$", ln)
            if not m:
                raise DSLError(f"malformed option line: '{ln}'")
            option, body = m.group(1), m.group(2).strip()
            if option not in _OPTIONS:
                raise DSLError(f"unknown option '@{option}'")

            if body == "begin":
                block: List[str] = []
                i += 1
                while i < len(lines) and lines[i] != "end":
                    block.append(lines[i])
                    i += 1
                if i == len(lines):
                    raise DSLError(f"'@{option} begin' block is missing its 'end'")
                body_lines = block
            else:
                body_lines = [body]
            i += 1

            if option == "observables":
                if seen_observables:
                    raise ObservableError("only one @observables option may be given")
                seen_observables = True
                for obs_line in body_lines:
                    decl.observables.append(self._parse_observable(obs_line))
            elif option == "combinatoric_ratelaws":
                value = " ".join(body_lines).strip().lower()
                if value not in {"true", "false"}:
                    raise DSLError(f"@combinatoric_ratelaws expects true or false, got '{value}'")
                decl.combinatoric_ratelaws = value == "true"
            else:
                self._parse_declarations(option, " ".join(body_lines), decl)

        return decl, reaction_lines

    def _parse_declarations(self, option: str, body: str, decl: _Declarations) -> None:
        pos = 0
        body = body.strip()
        while pos < len(body):
            m = _DECL_RE.match(body, pos)
            if not m or m.end() == pos:
                raise DSLError(f"could not parse @{option} declaration: '{body[pos:]}'")
            sym_name, call, value, metadata = m.groups()
            pos = m.end()
            if call is not None and call.replace(" ", "") != "(t)":
                raise DSLError(f"only the independent variable t is supported, got '{sym_name}{call}'")
            check_name(sym_name, {"species": "species", "parameters": "parameter", "variables": "variable"}[option])

            target = getattr(decl, option)
            if sym_name not in target:
                target.append(sym_name)
            if value is not None:
                if option == "variables":
                    raise DSLError(f"variables cannot have default values: '{sym_name}'")
                decl.defaults[sym_name] = value
            if metadata:
                for item in _split_top_level(metadata, ","):
                    key, _, meta_value = item.partition("=")
                    key = key.strip()
                    if key == "isconstantspecies":
                        if option != "parameters":
                            raise DSLError("isconstantspecies metadata is only valid for parameters")
                        if meta_value.strip().lower() == "true" and sym_name not in decl.constant_species:
                            decl.constant_species.append(sym_name)
                    else:
                        logger.debug("Ignoring metadata '%s' on %s", key, sym_name)

    def _parse_observable(self, line: str) -> Tuple[str, str]:
        if "~" not in line:
            raise ObservableError(f"observables are written 'name ~ expression', got '{line}'")
        lhs, rhs = line.split("~", 1)
        lhs = lhs.strip()

        # "(X, [metadata])" form
        m = re.match(r"^\(\s*([^\W\d]\w*)\s*,\s*\[.*\]\s*\)$", lhs)
        if m:
            lhs = m.group(1)
        if "=" in lhs:
            raise ObservableError(f"observables cannot have default values: '{line}'")
        if "(" in lhs:
            raise ObservableError(f"observable names may not carry arguments: '{lhs}'")
        if not _NAME_ONLY_RE.match(lhs):
            raise ObservableError(f"the left-hand side of an observable must be a single name: '{lhs}'")
        try:
            check_name(lhs, "observable")
        except DSLError as exc:
            raise ObservableError(str(exc)) from exc
        if not rhs.strip():
            raise ObservableError(f"observable '{lhs}' has an empty formula")
        return lhs, rhs.strip()

    # -----------------------------
    # Reaction lines
    # -----------------------------

    @staticmethod
    def _split_reaction_line(line: str) -> Tuple[str, str, bool, str, str]:
        """Split a reaction line into (rate, direction, only_use_rate, lhs, rhs)."""
        parts = _split_top_level(line, ",")
        if len(parts) < 2:
            raise DSLError(f"expected 'rate, reaction' in line: '{line}'")
        rate_part = parts[0].strip()
        rest = ",".join(parts[1:])

        m = _ARROW_RE.search(rest)
        if not m:
            raise DSLError(f"No supported arrow found in line: '{line}'")
        direction, only_use_rate = _ARROWS[m.group(0)]
        lhs = rest[: m.start()].strip()
        rhs = rest[m.end() :].strip()
        if not rate_part:
            raise DSLError(f"missing rate in line: '{line}'")
        return rate_part, direction, only_use_rate, lhs, rhs

    @staticmethod
    def _flatten(bundle: Bundle) -> List[str]:
        if isinstance(bundle, list):
            out: List[str] = []
            for b in bundle:
                out.extend(ReactionParser._flatten(b))
            return out
        return [bundle]

    def _complex_terms(self, text: str) -> List[Tuple[str, str]]:
        """Split a complex into (species name, coefficient text) pairs."""
        s = text.strip()
        if s in _EMPTY_COMPLEX:
            return []
        out: List[Tuple[str, str]] = []
        for raw in _split_top_level(s, "+"):
            term = raw.strip()
            if not term:
                raise DSLError(f"empty term in complex '{text}'")
            out.extend(self._term(term, text))
        return out

    def _term(self, term: str, context: str) -> List[Tuple[str, str]]:
        if _is_wrapped(term):
            return self._complex_terms(term[1:-1])
        if _NAME_ONLY_RE.match(term):
            return [(term, "1")]

        m = _NUMERIC_TERM_RE.match(term)
        if m:
            coef, rest = m.group(1), m.group(2).strip()
        else:
            pieces = _split_top_level(term, "*")
            if len(pieces) < 2:
                raise DSLError(f"Could not parse complex term: '{term}' in '{context}'")
            coef, rest = "*".join(pieces[:-1]).strip(), pieces[-1].strip()

        inner = self._term(rest, context)
        return [(nm, f"({coef})*({c})" if c != "1" else coef) for nm, c in inner]

    def _complex(self, text: str, resolve, term_symbol) -> Tuple[List[sp.Symbol], List[sp.Expr]]:
        members: List[sp.Symbol] = []
        coeffs: List[sp.Expr] = []
        for term_name, coef in self._complex_terms(text):
            members.append(term_symbol(term_name))
            coeffs.append(parse_expression(coef, resolve))
        return members, coeffs


def reaction_network(text: str, name: Optional[str] = None) -> ReactionSystem:
    """Build a `ReactionSystem` from a block of reaction notation.

    Example
    -------
    >>> rs = reaction_network('''
    ...     @parameters k1 k2
    ...     (k1, k2), A <--> B
    ... ''', name="isomerization")
    """
    return ReactionParser().parse_network(text, name=name)
