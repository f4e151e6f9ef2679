"""CLI command package"""

from .cmpi import cmpi
from .geometry import geometry
from .show_config import show_config

__all__ = ["cmpi", "geometry", "show_config"]
