"""
Exceptions for programmer errors in the simulation core.

Missing nations and unaffordable actions are not errors: those paths return
False/None or an unsuccessful InstrumentResult. These exceptions signal a caller
bug such as an action that does not exist in the current crisis phase.
"""


class SimulationError(Exception):
    """Base class for simulation core errors."""


class InvalidCommandError(SimulationError):
    """A command was invoked with malformed arguments."""


class UnknownActionError(SimulationError):
    """An action is not available in the current state."""

    def __init__(self, action, available):
        self.action = action
        self.available = list(available)
        names = ", ".join(getattr(a, "name", str(a)) for a in self.available) or "none"
        super().__init__(f"Action {getattr(action, 'name', action)} not available (allowed: {names})")


class GeometryError(SimulationError):
    """The geometry service could not compute a territory change."""
