"""Event-driven, phased time engine with watchers, lifecycle loops, typed event streams and buffer simulations."""

__version__ = "0.3.1"