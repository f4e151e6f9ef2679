"""Host implementations for Pluto.

Components:
- Host: Protocol of window, buffer and process primitives
- PtyHost: Headless host backed by real pseudo-terminal processes
"""

from .protocol import Host, SpawnOptions, SurfaceOptions
from .pty_host import PtyHost

__all__ = ['Host', 'PtyHost', 'SpawnOptions', 'SurfaceOptions']
