"""Toggleable terminal session.

This module coordinates the three host resources behind one floating
terminal, handling:
- Session lifecycle (open, toggle, close, force-close)
- Reuse of a live buffer/process pair across toggles
- Command injection into the running shell
- Process exit notifications delivered asynchronously by the host
"""

import logging
from typing import Any, Callable, Mapping, Optional

from .config import (
    DEFAULTS,
    TerminalConfig,
    deep_merge,
    evaluate_command,
    resolve,
    resolve_shell_command,
)
from .enums import SessionState
from .exception import StaleHandleError
from .geometry import calculate_geometry
from .host.protocol import Host, SpawnOptions, SurfaceOptions

logger = logging.getLogger(__name__)

CLOSE_KEY = "q"
CARRIAGE_RETURN = "\r"


class TerminalSession:
    """
    One surface/buffer/process triple and its state machine.

    Lifecycle:
    1. open() - Create (or reattach) buffer and surface, spawn the shell once
    2. run() - Inject a command line into the shell
    3. close() - Hide the surface, keeping buffer and process for re-toggle
    4. close(force=True) - Tear everything down

    Invariants:
    - A process handle is only ever held together with its buffer handle
    - At most one live process per session; reattaching never spawns
    - Surface handles are re-validated against the host before every use

    Thread Safety:
    - open/close/run run on the host's main loop
    - handle_exit may arrive at any later point and re-checks liveness
      before touching state

    Attributes:
        host: Host providing surfaces, buffers and processes
        config: Resolved TerminalConfig
        surface: Surface handle (or None)
        buffer: Buffer handle (or None)
        process: Process handle (or None)
    """

    def __init__(self, host: Host, config: Optional[Mapping[str, Any]] = None):
        """
        Initialize terminal session.

        Args:
            host: Host implementation
            config: Optional overrides merged onto DEFAULTS
        """
        self.host = host
        self._raw_config = deep_merge(DEFAULTS, config or {})
        self.config: TerminalConfig = resolve(self._raw_config)

        self.surface: Any = None
        self.buffer: Any = None
        self.process: Any = None

        logger.debug(f"TerminalSession initialized: ft={self.config.ft}")

    def setup(self, overrides: Optional[Mapping[str, Any]] = None) -> "TerminalSession":
        """Merge overrides onto the current configuration (last write wins)"""
        if not overrides:
            return self

        raw = deep_merge(self._raw_config, overrides)
        self.config = resolve(raw)
        self._raw_config = raw

        logger.info(f"[TerminalSession] Config merged: keys={sorted(overrides)}")
        return self

    # ==================== State ====================

    @property
    def state(self) -> SessionState:
        if not self._surface_valid():
            return SessionState.CLOSED
        if self.process is not None:
            return SessionState.RUNNING
        return SessionState.OPEN

    def is_open(self) -> bool:
        return self._surface_valid()

    def _surface_valid(self) -> bool:
        if self.surface is None:
            return False
        if self.host.surface_is_valid(self.surface):
            return True
        logger.debug(f"[TerminalSession] Dropping stale surface: surface={self.surface}")
        self.surface = None
        return False

    def _buffer_valid(self) -> bool:
        if self.buffer is None:
            return False
        if self.host.buffer_is_loaded(self.buffer):
            return True
        logger.debug(f"[TerminalSession] Dropping stale buffer: buffer={self.buffer}")
        if self.process is not None:
            self._release(self.host.terminate, self.process)
        self.buffer = None
        self.process = None
        return False

    # ==================== Lifecycle ====================

    def open(self, cmd: Any = None) -> "TerminalSession":
        """
        Show the terminal, spawning the shell on first use.

        Steps:
        1. Valid surface: focus it and return
        2. Live buffer/process pair: reattach a new surface to it
        3. Otherwise: evaluate the shell command, create buffer and surface,
           spawn the process and bind the close key

        Args:
            cmd: Shell command overriding config.cmd for a fresh spawn

        Raises:
            ConfigurationError: If the shell command evaluates to nothing
            EnvironmentError: If no shell is configured and $SHELL is unset
            SpawnFailure: If the host refuses to spawn

        Note:
            Nothing is left behind when any step fails.
        """
        if self._surface_valid():
            self.host.focus_surface(self.surface)
            return self

        if self._buffer_valid() and self.process is not None:
            self.surface = self._create_surface(self.buffer)
            logger.info(
                f"[TerminalSession] Reattached: buffer={self.buffer}, process={self.process}"
            )
            return self._prompt()

        # Command is evaluated before any resource exists so errors leave no orphans
        command = resolve_shell_command(cmd if cmd is not None else self.config.cmd)

        self._release_dead_buffer()
        buffer = self.host.create_buffer(scratch=True)
        try:
            self.host.set_buffer_tag(buffer, self.config.ft)
            surface = self._create_surface(buffer)
        except Exception:
            self._discard(buffer=buffer)
            raise

        try:
            process = self._open_term(buffer, command)
        except Exception:
            self._discard(surface=surface, buffer=buffer)
            raise

        self.surface, self.buffer, self.process = surface, buffer, process
        logger.info(
            f"[TerminalSession] Opened: surface={surface}, buffer={buffer}, process={process}"
        )
        return self._prompt()

    def close(self, force: bool = False) -> "TerminalSession":
        """
        Hide the terminal surface.

        Args:
            force: Also destroy the buffer and terminate the process

        Note:
            - No-op when the surface is already gone
            - Each release re-checks liveness, so racing handle_exit is safe
        """
        if not self._surface_valid():
            return self

        self._release(self.host.close_surface, self.surface)
        self.surface = None

        if force:
            process, buffer = self.process, self.buffer
            self.process = None
            self.buffer = None
            self._discard(process=process, buffer=buffer)
            logger.info(f"[TerminalSession] Force closed: buffer={buffer}, process={process}")
        else:
            logger.debug(f"[TerminalSession] Hidden: buffer={self.buffer}, process={self.process}")

        return self

    def toggle(self) -> "TerminalSession":
        if self._surface_valid():
            return self.close()
        return self.open()

    def run(self, command: Any) -> "TerminalSession":
        """
        Send a command line to the shell.

        Args:
            command: String, sequence of strings (joined with spaces), or a
                zero-argument producer of either

        Note:
            Fire-and-forget. Failures only show up as terminal output or the
            exit callback firing.
        """
        self.open()

        exec_ = evaluate_command(command)
        line = " ".join(exec_) if isinstance(exec_, list) else str(exec_)

        if self.process is None:
            logger.warning(f"[TerminalSession] No running process, dropped command: {line!r}")
            return self

        try:
            self.host.write(self.process, (line + CARRIAGE_RETURN).encode('utf-8'))
        except StaleHandleError:
            logger.warning(f"[TerminalSession] Process gone, dropped command: {line!r}")
            self.process = None
            return self

        logger.debug(f"[TerminalSession] Sent command: {line!r}")
        return self

    def handle_exit(self, process: Any, exit_code: int, *args) -> None:
        """
        Host callback for process termination.

        Args:
            process: Handle of the process that exited
            exit_code: Exit status reported by the host

        Note:
            - Ignored unless process is the session's current process, so the
              user on_exit hook only hears about this terminal's own shell
            - With auto_close the surface is closed and the dead buffer released
        """
        if process is None or process != self.process:
            logger.debug(f"[TerminalSession] Ignoring exit of stale process: process={process}")
            return

        logger.info(f"[TerminalSession] Process exited: process={process}, code={exit_code}")
        self.process = None
        if self.config.auto_close:
            self._close_dead_terminal()

        if self.config.on_exit:
            self.config.on_exit(process, exit_code, *args)

    # ==================== Internals ====================

    def _create_surface(self, buffer: Any) -> Any:
        cfg = self.config
        geometry = calculate_geometry(cfg.dimensions, self.host.viewport())
        surface = self.host.create_surface(buffer, SurfaceOptions(geometry=geometry, border=cfg.border))
        self.host.set_display_options(surface, cfg.hl, cfg.blend)
        return surface

    def _open_term(self, buffer: Any, command: Any) -> Any:
        cfg = self.config
        process = self.host.spawn(
            buffer,
            command,
            SpawnOptions(
                clear_env=cfg.clear_env,
                env=cfg.env,
                on_stdout=cfg.on_stdout,
                on_stderr=cfg.on_stderr,
                on_exit=self.handle_exit,
            ),
        )
        # Hosts may retag terminal buffers on spawn
        self.host.set_buffer_tag(buffer, cfg.ft)
        return process

    def _prompt(self) -> "TerminalSession":
        self.host.bind_key(CLOSE_KEY, self.buffer, self.close)
        return self

    def _close_dead_terminal(self) -> None:
        self.close()
        self._release_dead_buffer()

    def _release_dead_buffer(self) -> None:
        """Destroy a retained buffer whose process has already exited"""
        if self.process is not None or self.buffer is None:
            return
        buffer = self.buffer
        self.buffer = None
        self._discard(buffer=buffer)

    def _discard(self, surface: Any = None, buffer: Any = None, process: Any = None) -> None:
        """Release handles that are still live, ignoring ones the host already dropped"""
        if surface is not None and self.host.surface_is_valid(surface):
            self._release(self.host.close_surface, surface)
        if process is not None:
            self._release(self.host.terminate, process)
        if buffer is not None and self.host.buffer_is_loaded(buffer):
            self._release(self.host.destroy_buffer, buffer, force=True)

    @staticmethod
    def _release(release: Callable[..., Any], *args, **kwargs) -> None:
        try:
            release(*args, **kwargs)
        except StaleHandleError as e:
            logger.debug(f"[TerminalSession] Already released: {e}")
