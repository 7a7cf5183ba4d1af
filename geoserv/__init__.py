"""Building blocks of an Endless Online game server."""

__version__ = "0.1.0"