from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import sympy as sp

from .exceptions import ObservableError, ReactionSystemError, UnknownSymbolError
from .reaction import Reaction
from .symbols import t as default_iv

logger = logging.getLogger(__name__)


def _ordered_free_symbols(expr: sp.Expr) -> List[sp.Symbol]:
    return sorted(sp.sympify(expr).free_symbols, key=lambda z: str(z))


@dataclass(frozen=True)
class Observable:
    """A named algebraic quantity computed from species and parameters."""

    name: sp.Symbol
    expression: sp.Expr

    @classmethod
    def coerce(cls, item: Union["Observable", sp.Eq, Sequence]) -> "Observable":
        if isinstance(item, Observable):
            return item
        if isinstance(item, sp.Eq):
            lhs, rhs = item.lhs, item.rhs
        else:
            lhs, rhs = item
        if not isinstance(lhs, sp.Symbol):
            raise ObservableError(f"observable name must be a single symbol, got '{lhs}'")
        return cls(lhs, sp.sympify(rhs))

    def __str__(self) -> str:
        return f"{self.name} ~ {self.expression}"


@dataclass(eq=False)
class ReactionSystem:
    """A reaction network together with its species, parameters and observables.

    Parameters
    ----------
    reactions:
        List of `Reaction` objects.
    species:
        Optional declared species (in order). Undeclared substrates/products are
        appended in order of appearance.
    parameters:
        Optional declared parameters (in order). Remaining free symbols of rates
        and stoichiometries are appended in order of appearance.
    observables:
        `Observable` objects, ``sp.Eq(name, expr)`` or ``(name, expr)`` pairs.
    defaults:
        Default values keyed by symbol or name.
    constant_species:
        Parameters that may appear in reaction complexes without being dynamic.

    Notes
    -----
    The deterministic model is
        dX/dt = N a(X)
    with net stoichiometry matrix N and rate laws a_j.
    """

    reactions: List[Reaction]
    species: Optional[Sequence[sp.Symbol]] = None
    parameters: Optional[Sequence[sp.Symbol]] = None
    observables: Optional[Sequence[Any]] = None
    defaults: Optional[Mapping[Any, Any]] = None
    name: Optional[str] = None
    constant_species: Optional[Sequence[sp.Symbol]] = None
    combinatoric_ratelaws: bool = True
    iv: sp.Symbol = field(default=default_iv)

    def __post_init__(self) -> None:
        self.reactions = list(self.reactions)
        constant = list(dict.fromkeys(self.constant_species or []))
        params: List[sp.Symbol] = list(dict.fromkeys(self.parameters or []))
        for c in constant:
            if c not in params:
                params.append(c)
        specs: List[sp.Symbol] = list(dict.fromkeys(self.species or []))

        overlap = set(specs) & set(params)
        if overlap:
            names = ", ".join(sorted(str(s) for s in overlap))
            raise ReactionSystemError(f"symbols declared both as species and parameters: {names}")

        param_set = set(params)
        for rx in self.reactions:
            for s in list(rx.substrates) + list(rx.products):
                if s == self.iv:
                    raise ReactionSystemError(f"the independent variable {self.iv} cannot be a reactant")
                if s not in param_set and s not in specs:
                    specs.append(s)
        spec_set = set(specs)
        for p in params:
            if p not in constant and any(p in rx.substrates or p in rx.products for rx in self.reactions):
                constant.append(p)

        obs = [Observable.coerce(o) for o in (self.observables or [])]
        obs_names = {o.name for o in obs}
        for rx in self.reactions:
            candidates = _ordered_free_symbols(rx.rate)
            for c in list(rx.substoich) + list(rx.prodstoich):
                candidates.extend(_ordered_free_symbols(c))
            for sym in candidates:
                if sym == self.iv or sym in spec_set or sym in param_set:
                    continue
                if sym in obs_names:
                    raise ObservableError(
                        f"observable {sym} cannot appear in the rate or stoichiometry of {rx.to_string()}"
                    )
                params.append(sym)
                param_set.add(sym)

        self.species = specs
        self.parameters = params
        self.constant_species = constant

        self.observables = obs
        self._validate_observables()

        defaults: Dict[sp.Symbol, sp.Expr] = {}
        for key, value in dict(self.defaults or {}).items():
            defaults[self._resolve_symbol(key, allow_observables=False)] = sp.sympify(value)
        self.defaults = defaults

        logger.debug(
            "Built reaction system %s: %d species, %d parameters, %d reactions",
            self.name,
            len(specs),
            len(params),
            len(self.reactions),
        )

    def _validate_observables(self) -> None:
        known = set(self.species) | set(self.parameters)
        obs_names = [o.name for o in self.observables]
        if len(set(obs_names)) != len(obs_names):
            raise ObservableError("observable names must be unique")
        for o in self.observables:
            if o.name in known:
                raise ObservableError(f"observable '{o.name}' clashes with a species or parameter")
            for sym in o.expression.free_symbols:
                if sym in obs_names:
                    raise ObservableError(f"observable '{o.name}' refers to observable '{sym}'")
                if sym not in known:
                    raise ObservableError(
                        f"observable '{o.name}' refers to '{sym}', which is not a species or parameter"
                    )

    # -----------------------------
    # Lookup
    # -----------------------------

    @property
    def n_species(self) -> int:
        return len(self.species)

    @property
    def n_reactions(self) -> int:
        return len(self.reactions)

    @property
    def species_names(self) -> List[str]:
        return [str(s) for s in self.species]

    @property
    def parameter_names(self) -> List[str]:
        return [str(p) for p in self.parameters]

    def _resolve_symbol(self, key: Any, *, allow_observables: bool = True) -> sp.Symbol:
        pool = list(self.species) + list(self.parameters)
        if allow_observables:
            pool += [o.name for o in self.observables]
        if isinstance(key, sp.Symbol):
            if key in pool:
                return key
            key = str(key)
        for sym in pool:
            if str(sym) == str(key):
                return sym
        raise UnknownSymbolError(f"'{key}' is not a species, parameter or observable of {self.name or 'this system'}")

    def symbol(self, key: Any) -> sp.Symbol:
        """Return the species, parameter or observable symbol with this name."""
        return self._resolve_symbol(key)

    def observable(self, key: Any) -> Observable:
        sym = self._resolve_symbol(key)
        for o in self.observables:
            if o.name == sym:
                return o
        raise ObservableError(f"'{key}' is not an observable")

    def is_species(self, key: Any) -> bool:
        return any(str(s) == str(key) for s in self.species)

    def is_autonomous(self) -> bool:
        """True iff no rate expression depends on the independent variable."""
        return all(self.iv not in rx.rate.free_symbols for rx in self.reactions)

    # -----------------------------
    # Stoichiometry
    # -----------------------------

    def _stoichmat(self, which: str) -> sp.Matrix:
        M = sp.zeros(self.n_species, self.n_reactions)
        index = {s: i for i, s in enumerate(self.species)}
        for j, rx in enumerate(self.reactions):
            if which == "sub":
                items = rx.substrate_dict()
            elif which == "prod":
                items = rx.product_dict()
            else:
                items = rx.net_stoichiometry()
            for s, c in items.items():
                if s in index:
                    M[index[s], j] = c
        return M

    def substoichmat(self) -> sp.Matrix:
        """Substrate stoichiometry matrix (species × reactions)."""
        return self._stoichmat("sub")

    def prodstoichmat(self) -> sp.Matrix:
        """Product stoichiometry matrix (species × reactions)."""
        return self._stoichmat("prod")

    def netstoichmat(self) -> sp.Matrix:
        """Net stoichiometry matrix N = products - substrates (species × reactions)."""
        return self._stoichmat("net")

    # -----------------------------
    # Model derivation
    # -----------------------------

    def _combinatoric(self, combinatoric: Optional[bool]) -> bool:
        return self.combinatoric_ratelaws if combinatoric is None else bool(combinatoric)

    def ode_ratelaws(self, combinatoric: Optional[bool] = None) -> List[sp.Expr]:
        comb = self._combinatoric(combinatoric)
        return [rx.ode_ratelaw(comb) for rx in self.reactions]

    def ode_rhs(self, combinatoric: Optional[bool] = None) -> sp.Matrix:
        """Return the drift dX/dt as an n×1 SymPy Matrix."""
        if self.n_reactions == 0:
            return sp.zeros(self.n_species, 1)
        rates = sp.Matrix(self.ode_ratelaws(combinatoric))
        return self.netstoichmat() * rates

    def ode_equations(self, combinatoric: Optional[bool] = None) -> List[sp.Eq]:
        F = self.ode_rhs(combinatoric)
        return [
            sp.Eq(sp.Derivative(s, self.iv, evaluate=False), F[i, 0])
            for i, s in enumerate(self.species)
        ]

    def jacobian(self, combinatoric: Optional[bool] = None) -> sp.Matrix:
        """Return the Jacobian of the drift with respect to the species."""
        return self.ode_rhs(combinatoric).jacobian(self.species)

    def diffusion_matrix(self, combinatoric: Optional[bool] = None, noise_scaling: Any = 1) -> sp.Matrix:
        """Chemical Langevin noise matrix, column j is N_j * sqrt(|a_j|)."""
        N = self.netstoichmat()
        G = sp.zeros(self.n_species, self.n_reactions)
        for j, a in enumerate(self.ode_ratelaws(combinatoric)):
            amp = sp.sympify(noise_scaling) * sp.sqrt(sp.Abs(a))
            for i in range(self.n_species):
                if N[i, j] != 0:
                    G[i, j] = N[i, j] * amp
        return G

    def drift_and_diffusion(
        self, combinatoric: Optional[bool] = None, noise_scaling: Any = 1
    ) -> Tuple[sp.Matrix, sp.Matrix]:
        """Chemical Langevin drift N a(X) and noise matrix."""
        return self.ode_rhs(combinatoric), self.diffusion_matrix(combinatoric, noise_scaling)

    def propensities(self, combinatoric: Optional[bool] = None) -> List[sp.Expr]:
        comb = self._combinatoric(combinatoric)
        return [rx.jump_ratelaw(comb) for rx in self.reactions]

    def observable_expressions(self) -> Dict[sp.Symbol, sp.Expr]:
        return {o.name: o.expression for o in self.observables}

    def conservation_laws(self):
        """Return the `ConservationLaws` of this system."""
        from .conservation import conservation_laws

        return conservation_laws(self)

    # -----------------------------
    # Presentation
    # -----------------------------

    def summary(self) -> str:
        """Human-readable summary."""
        lines = []
        lines.append(
            f"ReactionSystem(name={self.name}, n_species={self.n_species}, n_reactions={self.n_reactions})"
        )
        lines.append("Species: " + ", ".join(self.species_names))
        lines.append("Parameters: " + ", ".join(self.parameter_names))
        if self.observables:
            lines.append("Observables: " + "; ".join(str(o) for o in self.observables))
        return "\n".join(lines)

    def to_latex(self) -> str:
        """Export the ODE system to a LaTeX ``align`` environment."""
        F = self.ode_rhs()
        lines = []
        for i, s in enumerate(self.species):
            lhs = f"\\frac{{\\mathrm{{d}}{sp.latex(s)}}}{{\\mathrm{{d}}{sp.latex(self.iv)}}}"
            lines.append(f"{lhs} &= {sp.latex(F[i, 0])}")
        body = " \\\\\n".join(lines)
        return "\\begin{align}\n" + body + "\n\\end{align}"

    def reactions_to_latex(self) -> str:
        """Export the reactions to LaTeX, one directed reaction per line."""

        def complex_to_latex(members, coeffs) -> str:
            terms = []
            for s, c in zip(members, coeffs):
                terms.append(sp.latex(s) if c == 1 else f"{sp.latex(c)} {sp.latex(s)}")
            return " + ".join(terms) if terms else "\\varnothing"

        lines = []
        for rx in self.reactions:
            lhs = complex_to_latex(rx.substrates, rx.substoich)
            rhs = complex_to_latex(rx.products, rx.prodstoich)
            arrow = "\\xRightarrow" if rx.only_use_rate else "\\xrightarrow"
            lines.append(f"{lhs} &{arrow}{{{sp.latex(rx.rate)}}} {rhs}")
        body = " \\\\\n".join(lines)
        return "\\begin{align}\n" + body + "\n\\end{align}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReactionSystem):
            return NotImplemented
        return (
            self.name == other.name
            and self.iv == other.iv
            and set(self.species) == set(other.species)
            and set(self.parameters) == set(other.parameters)
            and set(self.constant_species) == set(other.constant_species)
            and self.reactions == other.reactions
            and self.observables == other.observables
            and self.defaults == other.defaults
            and self.combinatoric_ratelaws == other.combinatoric_ratelaws
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"ReactionSystem(name={self.name!r}, species={self.species_names}, "
            f"parameters={self.parameter_names}, n_reactions={self.n_reactions})"
        )

    # -----------------------------
    # Constructors
    # -----------------------------

    @classmethod
    def from_string(cls, text: str, name: Optional[str] = None) -> "ReactionSystem":
        """Parse a reaction system from the reaction notation.

        Example
        -------
        >>> rs = ReactionSystem.from_string('''
        ...     (k1, k2), A <--> B
        ...     d, B --> 0
        ... ''')
        """
        from .dsl import reaction_network  # local import to avoid circular import

        return reaction_network(text, name=name)
