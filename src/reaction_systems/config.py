"""Solver and analysis options.

Every solve/steady-state call accepts an ``options=`` instance; keyword
arguments passed alongside override individual fields.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ODEOptions:
    """Options forwarded to `scipy.integrate.solve_ivp`."""

    method: str = "LSODA"
    rtol: float = 1e-8
    atol: float = 1e-10
    n_eval: int = 200


@dataclass(frozen=True)
class SDEOptions:
    """Options for the Euler-Maruyama integrator."""

    dt: float = 1e-3
    seed: Optional[int] = None
    noise_scaling: float = 1.0


@dataclass(frozen=True)
class JumpOptions:
    """Options for the Gillespie direct method."""

    seed: Optional[int] = None
    max_steps: int = 1_000_000


@dataclass(frozen=True)
class SteadyStateOptions:
    """Options for steady-state computation.

    filter_negative:
        Drop solutions with a negative component.
    neg_thres:
        Components in (neg_thres, 0) are treated as numerical noise and set to 0.
    imag_tol:
        Solutions whose imaginary parts exceed this are not real.
    """

    filter_negative: bool = True
    neg_thres: float = -1e-20
    imag_tol: float = 1e-8


def with_overrides(options: T, **overrides: Any) -> T:
    """Return `options` with the non-None `overrides` applied."""
    fields = {k: v for k, v in overrides.items() if v is not None}
    unknown = set(fields) - set(options.__dataclass_fields__)  # type: ignore[attr-defined]
    if unknown:
        raise TypeError(f"unknown option(s) for {type(options).__name__}: {', '.join(sorted(unknown))}")
    return replace(options, **fields)
