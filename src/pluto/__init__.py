"""Pluto - toggleable floating terminal with a compile-and-run command"""

from .config import DEFAULTS, TerminalConfig, deep_merge, resolve
from .exception import (
    ConfigurationError,
    EnvironmentError,
    PlutoException,
    SpawnFailure,
    StaleHandleError,
)
from .geometry import Geometry, Viewport, calculate_geometry
from .plugin import compile_and_run, get_session, setup
from .session import TerminalSession

__all__ = [
    'DEFAULTS',
    'TerminalConfig',
    'deep_merge',
    'resolve',
    'ConfigurationError',
    'EnvironmentError',
    'PlutoException',
    'SpawnFailure',
    'StaleHandleError',
    'Geometry',
    'Viewport',
    'calculate_geometry',
    'compile_and_run',
    'get_session',
    'setup',
    'TerminalSession',
]
