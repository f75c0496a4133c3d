"""Top-level package API for reaction_systems.

This package implements symbolic modelling of chemical reaction networks:
reactions are declared in a compact notation (or built from `Reaction`
objects) and turned into deterministic (ODE), chemical Langevin (SDE) and
stochastic jump models, with conservation law and steady state analysis.

Public API:
- Reaction, ReactionSystem, Observable, reaction_network
- ODEProblem, SDEProblem, JumpProblem, Trajectory
- conservation_laws, steady_states, steady_state_stability
- Built-in example networks
"""

import logging

from .exceptions import (
    ReactionSystemError,
    DSLError,
    ObservableError,
    UnknownSymbolError,
    MissingValueError,
    ConservationLawError,
    NonAutonomousError,
    NonPolynomialError,
    SolverError,
)
from .symbols import t, species, parameters, variables, mm, mmr, hill, hillr, hillar
from .reaction import Reaction
from .system import Observable, ReactionSystem
from .dsl import ReactionParser, reaction_network
from .config import ODEOptions, SDEOptions, JumpOptions, SteadyStateOptions
from .conservation import ConservationLaws, conservation_laws
from .solution import Trajectory
from .odes import ODEProblem
from .sdes import SDEProblem
from .jumps import JumpProblem
from .steady_state import (
    steady_states,
    steady_state_polynomials,
    steady_state_jacobian,
    steady_state_stability,
)
from .report import ReportOptions, format_system_report, format_steady_states
from .logging_config import setup_logging
from .examples import (
    exponential_decay_network,
    known_equilibrium_network,
    michaelis_menten_network,
    brusselator_network,
    repressilator_network,
    conserved_cycle_network,
    steady_state_example_network,
    list_available_networks,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ReactionSystemError",
    "DSLError",
    "ObservableError",
    "UnknownSymbolError",
    "MissingValueError",
    "ConservationLawError",
    "NonAutonomousError",
    "NonPolynomialError",
    "SolverError",
    "t",
    "species",
    "parameters",
    "variables",
    "mm",
    "mmr",
    "hill",
    "hillr",
    "hillar",
    "Reaction",
    "Observable",
    "ReactionSystem",
    "ReactionParser",
    "reaction_network",
    "ODEOptions",
    "SDEOptions",
    "JumpOptions",
    "SteadyStateOptions",
    "ConservationLaws",
    "conservation_laws",
    "Trajectory",
    "ODEProblem",
    "SDEProblem",
    "JumpProblem",
    "steady_states",
    "steady_state_polynomials",
    "steady_state_jacobian",
    "steady_state_stability",
    "ReportOptions",
    "format_system_report",
    "format_steady_states",
    "setup_logging",
    "exponential_decay_network",
    "known_equilibrium_network",
    "michaelis_menten_network",
    "brusselator_network",
    "repressilator_network",
    "conserved_cycle_network",
    "steady_state_example_network",
    "list_available_networks",
]
