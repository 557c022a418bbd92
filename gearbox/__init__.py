"""gearbox — install, track, and safely remove developer tools."""

__version__ = "0.1.0"
