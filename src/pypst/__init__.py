"""pypst - print the process tree branches matching a pattern."""

__version__ = "0.1.0"
