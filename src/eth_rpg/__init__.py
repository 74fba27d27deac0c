"""eth-rpg: wallet RPG battles, caching and seasonal rankings."""

__version__ = "0.1.0"
