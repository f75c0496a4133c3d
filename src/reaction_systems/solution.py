from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Union

import numpy as np
import sympy as sp

from .exceptions import UnknownSymbolError
from .system import ReactionSystem


@dataclass
class Trajectory:
    """Time course produced by an ODE, SDE or jump simulation.

    Parameters
    ----------
    t:
        Time points, shape (n_t,).
    u:
        Species values, shape (n_species, n_t), rows in `system.species` order.
    system:
        The simulated `ReactionSystem`.
    parameter_values:
        Numeric parameter values used in the simulation.

    Indexing with a species or observable (name or symbol) returns its time
    course; indexing with a list returns a stacked array.
    """

    t: np.ndarray
    u: np.ndarray
    system: ReactionSystem
    parameter_values: Dict[sp.Symbol, float]
    kind: str = "ode"
    success: bool = True
    message: str = ""

    def __len__(self) -> int:
        return int(self.t.shape[0])

    def __getitem__(self, key: Union[Any, Sequence[Any]]) -> np.ndarray:
        if isinstance(key, (list, tuple)):
            return np.vstack([self[k] for k in key])
        sym = self.system.symbol(key)
        if sym in self.system.species:
            return self.u[self.system.species.index(sym)]
        if sym in self.system.parameters:
            raise UnknownSymbolError(f"'{key}' is a parameter, not a time-dependent quantity")
        return self.observable(sym)

    def observable(self, key: Any) -> np.ndarray:
        """Evaluate an observable along the trajectory."""
        obs = self.system.observable(key)
        expr = obs.expression.subs(self.parameter_values)
        f = sp.lambdify(self.system.species, expr, modules="numpy")
        values = np.asarray(f(*self.u), dtype=float)
        return np.broadcast_to(values, self.t.shape).copy()

    def final_state(self) -> Dict[str, float]:
        """Species values at the last time point, keyed by name."""
        return {name: float(self.u[i, -1]) for i, name in enumerate(self.system.species_names)}

    def species_names(self) -> List[str]:
        return self.system.species_names
