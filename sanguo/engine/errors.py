"""
Engine exceptions.
"""


class NotFoundError(LookupError):
    """An id passed to a manager mutator does not exist in the current state."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class ActionsExhaustedError(RuntimeError):
    """No actions left this turn."""


class SnapshotError(ValueError):
    """A persisted snapshot could not be decoded into a GameState."""


class BattleError(ValueError):
    """Invalid battle command (battle already over, unknown tactic)."""
