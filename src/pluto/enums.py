"""Enumeration types for Pluto"""
from enum import Enum


class SessionState(str, Enum):
    """Terminal session state

    CLOSED: No surface is shown. Buffer and process may still be retained
            after a plain close so the terminal can be toggled back quickly.
    OPEN: Surface and buffer exist, no live process.
    RUNNING: Surface, buffer and process all exist.
    """
    CLOSED = "closed"
    OPEN = "open"
    RUNNING = "running"


class HostEventType(str, Enum):
    """Events a host delivers back to the process owner"""
    STDOUT = "stdout"
    STDERR = "stderr"
    EXIT = "exit"
