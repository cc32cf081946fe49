"""Feature builders, one module per curve family."""

from . import conics, functions, polar, trig

__all__ = ["conics", "functions", "polar", "trig"]
