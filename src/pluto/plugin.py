"""Application-facing entry points.

Keeps one default TerminalSession for the embedding application and
registers the compile-and-run command with its host.
"""

import logging
from typing import Any, Mapping, Optional

from . import pipeline
from .config import deep_merge
from .host.protocol import Host
from .session import TerminalSession

logger = logging.getLogger(__name__)

COMMAND_NAME = "Cmpi"

_session: Optional[TerminalSession] = None


def get_session() -> TerminalSession:
    """Default session, created on a headless PtyHost if setup() was never called"""
    global _session
    if _session is None:
        from .host.pty_host import PtyHost

        _session = TerminalSession(PtyHost())
    return _session


def setup(config: Optional[Mapping[str, Any]] = None, host: Optional[Host] = None) -> TerminalSession:
    """
    Configure the default session and register the compile-and-run command.

    Args:
        config: Overrides merged onto the current configuration (last write wins)
        host: Host to attach to; a different host than the current one
            force-closes the old session and starts a new one

    Returns:
        The default TerminalSession
    """
    global _session
    if host is not None and (_session is None or _session.host is not host):
        old = _session
        # Overrides from earlier setup calls carry over to the new host
        merged = deep_merge(old._raw_config, config or {}) if old is not None else config
        _session = TerminalSession(host, merged)
        if old is not None:
            old.close(force=True)
    else:
        get_session().setup(config)

    _session.host.register_command(COMMAND_NAME, compile_and_run)
    logger.info(f"Pluto setup complete: command={COMMAND_NAME}")
    return _session


def compile_and_run() -> None:
    """Compile the host's current file and run it in the default session"""
    pipeline.compile_and_run(get_session())


def reset() -> None:
    """Force-close and forget the default session"""
    global _session
    if _session is not None:
        _session.close(force=True)
    _session = None
