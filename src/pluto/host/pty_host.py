"""Headless PTY-backed host.

This module implements the Host protocol without an editor, handling:
- Surface and buffer handle tables (opaque integer handles, never reused)
- Pseudo-terminal process lifecycle (openpty, spawn, terminate)
- Output pumping from the PTY into buffers
- Terminal sizing (TIOCSWINSZ ioctl) from the surface geometry
- Callback delivery on the owner's thread via poll()
"""

import fcntl
import itertools
import logging
import os
import pty
import queue
import select
import shlex
import shutil
import signal
import struct
import subprocess
import termios
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..enums import HostEventType
from ..exception import HostException, SpawnFailure, StaleHandleError
from ..geometry import Viewport
from .protocol import SpawnOptions, SurfaceOptions

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096
SELECT_TIMEOUT = 0.1


@dataclass
class SurfaceRecord:
    surface_id: int
    buffer_id: int
    options: SurfaceOptions
    highlight: str = "Normal"
    opacity: int = 0


@dataclass
class BufferRecord:
    buffer_id: int
    scratch: bool
    tag: str = ""
    text: str = ""
    process_id: Optional[int] = None
    lock: threading.Lock = field(default_factory=threading.Lock)


@dataclass
class ProcessRecord:
    process_id: int
    buffer_id: int
    proc: subprocess.Popen
    master_fd: int
    options: SpawnOptions
    reader: Optional[threading.Thread] = None
    exited: bool = False
    # Guards master_fd; -1 once the reader thread has closed it
    lock: threading.Lock = field(default_factory=threading.Lock)


class PtyHost:
    """
    Host implementation backed by real pseudo-terminal processes.

    Architecture:
    - Surfaces and buffers live in in-memory handle tables
    - Each spawned process gets a reader thread that appends output to its
      buffer and posts events to a queue
    - poll() drains the queue and runs callbacks on the calling thread, the
      way an editor delivers job callbacks on its main loop

    Thread Safety:
    - Handle tables are only mutated on the owner's thread
    - Reader threads touch buffer text (under the buffer lock) and the queue

    Attributes:
        viewport_size: Fixed viewport, or None to follow the real terminal
        current_file_path: Value returned by current_file()
        scrollback: Maximum characters retained per buffer
    """

    def __init__(
        self,
        viewport_size: Optional[Viewport] = None,
        current_file_path: str = "",
        scrollback: int = 1024 * 1024
    ):
        self.viewport_size = viewport_size
        self.current_file_path = current_file_path
        self.scrollback = scrollback

        self._ids = itertools.count(1)
        self._surfaces: Dict[int, SurfaceRecord] = {}
        self._buffers: Dict[int, BufferRecord] = {}
        self._processes: Dict[int, ProcessRecord] = {}
        self._bindings: Dict[int, Dict[str, Callable]] = {}
        self._commands: Dict[str, Callable] = {}
        self._events: "queue.Queue[Tuple[HostEventType, int, object]]" = queue.Queue()
        self.current_surface: Optional[int] = None

        logger.debug("PtyHost initialized")

    # ==================== Surfaces ====================

    def create_surface(self, buffer: int, options: SurfaceOptions) -> int:
        record = self._buffer(buffer)
        surface_id = next(self._ids)
        self._surfaces[surface_id] = SurfaceRecord(surface_id, record.buffer_id, options)
        self.current_surface = surface_id

        if record.process_id is not None:
            self._resize(self._processes[record.process_id], options)

        logger.debug(
            f"[PtyHost] Surface created: surface={surface_id}, buffer={buffer}, "
            f"geometry={options.geometry}"
        )
        return surface_id

    def surface_is_valid(self, surface: Optional[int]) -> bool:
        return surface is not None and surface in self._surfaces

    def close_surface(self, surface: int) -> None:
        self._surface(surface)
        del self._surfaces[surface]
        if self.current_surface == surface:
            self.current_surface = None
        logger.debug(f"[PtyHost] Surface closed: surface={surface}")

    def focus_surface(self, surface: int) -> None:
        self._surface(surface)
        self.current_surface = surface

    def set_display_options(self, surface: int, highlight: str, opacity: int) -> None:
        record = self._surface(surface)
        record.highlight = highlight
        record.opacity = opacity

    def surface_options(self, surface: int) -> SurfaceOptions:
        return self._surface(surface).options

    # ==================== Buffers ====================

    def create_buffer(self, scratch: bool = True) -> int:
        buffer_id = next(self._ids)
        self._buffers[buffer_id] = BufferRecord(buffer_id, scratch)
        logger.debug(f"[PtyHost] Buffer created: buffer={buffer_id}")
        return buffer_id

    def buffer_is_loaded(self, buffer: Optional[int]) -> bool:
        return buffer is not None and buffer in self._buffers

    def set_buffer_tag(self, buffer: int, tag: str) -> None:
        self._buffer(buffer).tag = tag

    def buffer_tag(self, buffer: int) -> str:
        return self._buffer(buffer).tag

    def buffer_text(self, buffer: int) -> str:
        record = self._buffer(buffer)
        with record.lock:
            return record.text

    def destroy_buffer(self, buffer: int, force: bool = True) -> None:
        """Delete a buffer, closing every surface that shows it

        Raises:
            StaleHandleError: If the buffer is unknown
            HostException: If not forced and a process is still attached
        """
        record = self._buffer(buffer)
        if record.process_id is not None:
            if not force:
                raise HostException(
                    f"Buffer {buffer} has a running job, use force to delete",
                    "BUFFER_BUSY"
                )
            self.terminate(record.process_id)

        for surface_id in [s.surface_id for s in self._surfaces.values() if s.buffer_id == buffer]:
            self.close_surface(surface_id)

        del self._buffers[buffer]
        self._bindings.pop(buffer, None)
        logger.debug(f"[PtyHost] Buffer destroyed: buffer={buffer}")

    # ==================== Processes ====================

    def spawn(self, buffer: int, command: Union[str, List[str]], options: SpawnOptions) -> int:
        """
        Start a pseudo-terminal process rendering into buffer.

        Args:
            buffer: Target buffer handle (must not already host a terminal)
            command: Command line (split with shlex) or argv list
            options: Environment and callbacks

        Returns:
            Process handle

        Raises:
            StaleHandleError: If the buffer is unknown
            SpawnFailure: If the buffer already hosts a terminal or exec fails
        """
        record = self._buffer(buffer)
        if record.process_id is not None:
            raise SpawnFailure(f"Buffer {buffer} already hosts a terminal")

        argv = shlex.split(command) if isinstance(command, str) else list(command)
        if not argv:
            raise SpawnFailure("Cannot spawn an empty command")

        env = {} if options.clear_env else dict(os.environ)
        if options.env:
            env.update({str(k): str(v) for k, v in options.env.items()})

        master_fd, slave_fd = pty.openpty()
        try:
            proc = subprocess.Popen(  # noqa: S603
                argv,
                env=env,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                close_fds=True,
                start_new_session=True,
            )
        except OSError as e:
            os.close(master_fd)
            raise SpawnFailure(f"Failed to spawn {argv[0]!r}: {e}") from e
        finally:
            os.close(slave_fd)

        process_id = next(self._ids)
        process = ProcessRecord(process_id, buffer, proc, master_fd, options)
        self._processes[process_id] = process
        record.process_id = process_id

        for surface in self._surfaces.values():
            if surface.buffer_id == buffer:
                self._resize(process, surface.options)
                break

        process.reader = threading.Thread(
            target=self._pump_output,
            args=(process, record),
            name=f"pluto-pty-{process_id}",
            daemon=True,
        )
        process.reader.start()

        logger.info(
            f"[PtyHost] Spawned: process={process_id}, pid={proc.pid}, argv={argv}"
        )
        return process_id

    def write(self, process: int, data: bytes) -> None:
        record = self._process(process)
        with record.lock:
            if record.exited or record.master_fd < 0:
                raise StaleHandleError(f"Process {process} has exited")
            try:
                os.write(record.master_fd, data)
            except OSError as e:
                raise StaleHandleError(f"Process {process} is not writable: {e}") from e

        logger.debug(f"[PtyHost] Wrote input: process={process}, data_length={len(data)}")

    def terminate(self, process: int) -> None:
        """Terminate the process group (no-op once the process has exited)

        Sends SIGHUP first, as a closing terminal would, since interactive
        shells ignore SIGTERM.
        """
        record = self._process(process)
        if record.exited:
            return

        logger.info(f"[PtyHost] Terminating: process={process}, pid={record.proc.pid}")
        for sig in (signal.SIGHUP, signal.SIGTERM):
            try:
                os.killpg(record.proc.pid, sig)
            except ProcessLookupError:
                break  # Process already exited

    def is_running(self, process: Optional[int]) -> bool:
        record = self._processes.get(process) if process is not None else None
        return record is not None and not record.exited

    # ==================== Input, viewport, context ====================

    def bind_key(self, key: str, buffer: int, callback: Callable) -> None:
        self._buffer(buffer)
        self._bindings.setdefault(buffer, {})[key] = callback

    def press_key(self, key: str) -> bool:
        """Dispatch key to the binding of the focused surface's buffer

        Returns:
            True if a binding handled the key
        """
        if self.current_surface is None:
            return False
        buffer_id = self._surfaces[self.current_surface].buffer_id
        callback = self._bindings.get(buffer_id, {}).get(key)
        if callback is None:
            return False
        callback()
        return True

    def viewport(self) -> Viewport:
        if self.viewport_size is not None:
            return self.viewport_size
        size = shutil.get_terminal_size()
        return Viewport(columns=size.columns, lines=size.lines)

    def current_file(self) -> str:
        return self.current_file_path

    def register_command(self, name: str, callback: Callable) -> None:
        self._commands[name] = callback
        logger.debug(f"[PtyHost] Command registered: {name}")

    def execute_command(self, name: str):
        if name not in self._commands:
            raise KeyError(f"Command not found: {name}")
        return self._commands[name]()

    # ==================== Event loop ====================

    def poll(self, timeout: float = 0.0) -> int:
        """
        Deliver pending process events on the calling thread.

        Args:
            timeout: Seconds to wait for the first event

        Returns:
            Number of events dispatched
        """
        dispatched = 0
        try:
            event = self._events.get(timeout=timeout) if timeout > 0 else self._events.get_nowait()
        except queue.Empty:
            return 0

        while True:
            self._dispatch(*event)
            dispatched += 1
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return dispatched

    def shutdown(self) -> None:
        """Kill every live process and drop all handles"""
        for record in list(self._processes.values()):
            if record.exited:
                continue
            try:
                os.killpg(record.proc.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
        for record in list(self._processes.values()):
            if record.reader is not None:
                record.reader.join(timeout=1.0)

        self._surfaces.clear()
        self._buffers.clear()
        self._processes.clear()
        self._bindings.clear()
        self.current_surface = None
        logger.info("[PtyHost] Shut down")

    # ==================== Internals ====================

    def _dispatch(self, kind: HostEventType, process_id: int, payload) -> None:
        record = self._processes.get(process_id)
        if record is None:
            return

        if kind == HostEventType.EXIT:
            del self._processes[process_id]
            buffer = self._buffers.get(record.buffer_id)
            if buffer is not None and buffer.process_id == process_id:
                buffer.process_id = None
            logger.info(f"[PtyHost] Process exited: process={process_id}, code={payload}")
            if record.options.on_exit:
                record.options.on_exit(process_id, payload)
        elif kind == HostEventType.STDOUT and record.options.on_stdout:
            record.options.on_stdout(process_id, payload)

    def _pump_output(self, process: ProcessRecord, buffer: BufferRecord) -> None:
        """Read PTY output until EOF (runs in the reader thread)"""
        while True:
            try:
                r, _, _ = select.select([process.master_fd], [], [], SELECT_TIMEOUT)
                if not r:
                    if process.proc.poll() is not None and not self._has_pending(process.master_fd):
                        break
                    continue
                data = os.read(process.master_fd, READ_CHUNK_SIZE)
            except OSError:
                break  # EIO once the child side is closed
            if not data:
                break

            text = data.decode('utf-8', errors='replace')
            with buffer.lock:
                buffer.text = (buffer.text + text)[-self.scrollback:]
            self._events.put((HostEventType.STDOUT, process.process_id, text))

        with process.lock:
            try:
                os.close(process.master_fd)
            except OSError:
                pass
            process.master_fd = -1

        exit_code = process.proc.wait()
        process.exited = True
        self._events.put((HostEventType.EXIT, process.process_id, exit_code))

    @staticmethod
    def _has_pending(fd: int) -> bool:
        try:
            r, _, _ = select.select([fd], [], [], 0)
        except OSError:
            return False
        return bool(r)

    @staticmethod
    def _resize(process: ProcessRecord, options: SurfaceOptions) -> None:
        geometry = options.geometry
        rows = max(geometry.height, 1)
        cols = max(geometry.width, 1)
        # Pack window size: (rows, cols, xpixel, ypixel)
        winsize = struct.pack("HHHH", rows, cols, 0, 0)
        with process.lock:
            if process.master_fd < 0:
                return
            try:
                fcntl.ioctl(process.master_fd, termios.TIOCSWINSZ, winsize)
            except OSError as e:
                logger.debug(f"[PtyHost] Resize skipped: process={process.process_id}, error={e}")

    def _surface(self, surface: int) -> SurfaceRecord:
        try:
            return self._surfaces[surface]
        except KeyError:
            raise StaleHandleError(f"Unknown surface: {surface}") from None

    def _buffer(self, buffer: int) -> BufferRecord:
        try:
            return self._buffers[buffer]
        except KeyError:
            raise StaleHandleError(f"Unknown buffer: {buffer}") from None

    def _process(self, process: int) -> ProcessRecord:
        try:
            return self._processes[process]
        except KeyError:
            raise StaleHandleError(f"Unknown process: {process}") from None
