from __future__ import annotations


class ReactionSystemError(ValueError):
    """Base class for all validation errors raised by this package."""


class DSLError(ReactionSystemError):
    """Raised when reaction notation or an option block cannot be parsed."""


class ObservableError(DSLError):
    """Raised for invalid observable declarations."""


class UnknownSymbolError(ReactionSystemError):
    """Raised when a value map names something that is neither a species nor a parameter."""


class MissingValueError(ReactionSystemError):
    """Raised when species or parameter values required for a problem are missing."""


class ConservationLawError(ReactionSystemError):
    """Raised when conserved quantities cannot be computed from the given values."""


class NonAutonomousError(ReactionSystemError):
    """Raised when time-dependent rates are used where they are not supported."""


class NonPolynomialError(ReactionSystemError):
    """Raised when a steady-state system cannot be written as a polynomial system."""


class SolverError(RuntimeError):
    """Raised when a numerical or symbolic backend fails."""
