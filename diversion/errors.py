"""Exception types raised by the engine.

Only contract violations raise. Data that merely looks unusual (small
samples, unbalanced graphs, unknown materials) is reported as warnings.
"""


class EngineError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(EngineError, ValueError):
    """A caller passed a negative or non-finite weight, or an unknown disposition class."""


class StructuralGraphError(EngineError, KeyError):
    """A node id was looked up directly on a graph that does not contain it."""

    def __str__(self):
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class ConfigError(EngineError, ValueError):
    """A configuration value is outside its allowed range."""
