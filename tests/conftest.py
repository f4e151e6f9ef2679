import itertools
import logging

import pytest

from pluto.exception import SpawnFailure, StaleHandleError
from pluto.geometry import Viewport
from pluto.session import TerminalSession


class FakeHost:
    """In-memory host that records every call and lets tests fire process exits."""

    def __init__(self, columns: int = 100, lines: int = 50, current_file: str = "./main.c"):
        self._ids = itertools.count(1)
        self.size = Viewport(columns=columns, lines=lines)
        self.current_file_path = current_file

        self.surfaces = {}
        self.buffers = {}
        self.processes = {}
        self.bindings = {}
        self.commands = {}
        self.spawned = []
        self.focused = None

        self.fail_spawn = False
        self.fail_surface = False

    # surfaces
    def create_surface(self, buffer, options):
        if self.fail_surface:
            raise RuntimeError("no room for a surface")
        if buffer not in self.buffers:
            raise StaleHandleError(f"Unknown buffer: {buffer}")
        surface = next(self._ids)
        self.surfaces[surface] = {"buffer": buffer, "options": options, "hl": None, "blend": None}
        self.focused = surface
        return surface

    def surface_is_valid(self, surface):
        return surface in self.surfaces

    def close_surface(self, surface):
        if surface not in self.surfaces:
            raise StaleHandleError(f"Unknown surface: {surface}")
        del self.surfaces[surface]
        if self.focused == surface:
            self.focused = None

    def focus_surface(self, surface):
        if surface not in self.surfaces:
            raise StaleHandleError(f"Unknown surface: {surface}")
        self.focused = surface

    def set_display_options(self, surface, highlight, opacity):
        self.surfaces[surface]["hl"] = highlight
        self.surfaces[surface]["blend"] = opacity

    # buffers
    def create_buffer(self, scratch=True):
        buffer = next(self._ids)
        self.buffers[buffer] = {"tag": None, "process": None, "scratch": scratch}
        return buffer

    def buffer_is_loaded(self, buffer):
        return buffer in self.buffers

    def set_buffer_tag(self, buffer, tag):
        self.buffers[buffer]["tag"] = tag

    def destroy_buffer(self, buffer, force=True):
        if buffer not in self.buffers:
            raise StaleHandleError(f"Unknown buffer: {buffer}")
        for surface in [s for s, rec in self.surfaces.items() if rec["buffer"] == buffer]:
            self.close_surface(surface)
        process = self.buffers.pop(buffer)["process"]
        if process is not None and self.processes[process]["alive"]:
            self.processes[process]["alive"] = False
        self.bindings.pop(buffer, None)

    # processes
    def spawn(self, buffer, command, options):
        if self.fail_spawn:
            raise SpawnFailure("buffer is modified")
        if self.buffers[buffer]["process"] is not None:
            raise SpawnFailure("buffer already hosts a terminal")
        process = next(self._ids)
        self.processes[process] = {
            "buffer": buffer,
            "command": command,
            "options": options,
            "writes": [],
            "alive": True,
        }
        self.buffers[buffer]["process"] = process
        self.spawned.append(process)
        return process

    def write(self, process, data):
        record = self.processes.get(process)
        if record is None or not record["alive"]:
            raise StaleHandleError(f"Process {process} is gone")
        record["writes"].append(data)

    def terminate(self, process):
        if process not in self.processes:
            raise StaleHandleError(f"Unknown process: {process}")
        self.processes[process]["alive"] = False

    # input, viewport, context
    def bind_key(self, key, buffer, callback):
        self.bindings.setdefault(buffer, {})[key] = callback

    def viewport(self):
        return self.size

    def current_file(self):
        return self.current_file_path

    def register_command(self, name, callback):
        self.commands[name] = callback

    # test helpers
    def exit(self, process, code=0):
        """Simulate the process terminating and the host delivering on_exit."""
        record = self.processes[process]
        record["alive"] = False
        buffer = self.buffers.get(record["buffer"])
        if buffer is not None and buffer["process"] == process:
            buffer["process"] = None
        record["options"].on_exit(process, code)

    def press_key(self, key):
        buffer = self.surfaces[self.focused]["buffer"]
        self.bindings[buffer][key]()

    def invalidate_surface(self, surface):
        del self.surfaces[surface]

    def live_processes(self):
        return [p for p, rec in self.processes.items() if rec["alive"]]


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def make_session(host):
    def _make(**overrides):
        overrides.setdefault("cmd", "/bin/bash")
        return TerminalSession(host, overrides)

    return _make


@pytest.fixture
def session(make_session):
    return make_session()


@pytest.fixture
def host_factory():
    return FakeHost


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
