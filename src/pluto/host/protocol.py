"""Host capabilities consumed by TerminalSession.

A host owns every surface, buffer and process handle. Handles are opaque to
Pluto and may be invalidated by the host at any time (for example when the
user closes a window by hand), so callers re-validate before each use.
Hosts raise StaleHandleError for handles they no longer know and
SpawnFailure when a process cannot be started.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Protocol, Union, runtime_checkable

from ..geometry import Geometry, Viewport

# on_stdout/on_stderr(process, data), on_exit(process, exit_code)
OutputCallback = Callable[[Any, str], None]
ExitCallback = Callable[[Any, int], None]


@dataclass(frozen=True)
class SurfaceOptions:
    """Placement and decoration of a new surface

    Attributes:
        geometry: Absolute rectangle in host cells
        border: Border style name (e.g. "single", "double", "rounded")
    """
    geometry: Geometry
    border: str = "single"


@dataclass
class SpawnOptions:
    """Options for spawning the terminal process

    Attributes:
        clear_env: Start from an empty environment instead of inheriting
        env: Extra environment variables (applied on top)
        on_stdout: Called with (process, text) for each output chunk
        on_stderr: Called with (process, text); PTY hosts merge stderr into stdout
        on_exit: Called with (process, exit_code) once the process terminates
    """
    clear_env: bool = False
    env: Optional[Mapping[str, str]] = None
    on_stdout: Optional[OutputCallback] = None
    on_stderr: Optional[OutputCallback] = None
    on_exit: Optional[ExitCallback] = None


@runtime_checkable
class Host(Protocol):
    """Window, buffer and process primitives of the embedding application"""

    # ==================== Surfaces ====================

    def create_surface(self, buffer: Any, options: SurfaceOptions) -> Any:
        """Show buffer in a new surface, focus it and return its handle"""
        ...

    def surface_is_valid(self, surface: Any) -> bool:
        ...

    def close_surface(self, surface: Any) -> None:
        ...

    def focus_surface(self, surface: Any) -> None:
        ...

    def set_display_options(self, surface: Any, highlight: str, opacity: int) -> None:
        ...

    # ==================== Buffers ====================

    def create_buffer(self, scratch: bool = True) -> Any:
        ...

    def buffer_is_loaded(self, buffer: Any) -> bool:
        ...

    def set_buffer_tag(self, buffer: Any, tag: str) -> None:
        ...

    def destroy_buffer(self, buffer: Any, force: bool = True) -> None:
        ...

    # ==================== Processes ====================

    def spawn(self, buffer: Any, command: Union[str, List[str]], options: SpawnOptions) -> Any:
        """Start a pseudo-terminal process rendering into buffer"""
        ...

    def write(self, process: Any, data: bytes) -> None:
        ...

    def terminate(self, process: Any) -> None:
        ...

    # ==================== Input, viewport, context ====================

    def bind_key(self, key: str, buffer: Any, callback: Callable[[], Any]) -> None:
        """Bind key to callback while buffer is focused"""
        ...

    def viewport(self) -> Viewport:
        ...

    def current_file(self) -> str:
        """Name of the source file currently being edited"""
        ...

    def register_command(self, name: str, callback: Callable[[], Any]) -> None:
        ...
