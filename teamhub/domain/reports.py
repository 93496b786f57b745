"""Report lifecycle rules."""
from __future__ import annotations

PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
FAILED = "failed"

TERMINAL_STATUSES = frozenset({COMPLETED, FAILED})

# Transitions the generation worker may apply on its own.
AUTOMATIC_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({IN_PROGRESS, COMPLETED, FAILED}),
    IN_PROGRESS: frozenset({IN_PROGRESS, COMPLETED, FAILED}),
    COMPLETED: frozenset(),
    FAILED: frozenset(),
}


class InvalidTransition(Exception):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"cannot move report from {current} to {target}")
        self.current = current
        self.target = target


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def check_automatic(current: str, target: str) -> None:
    """Validate a worker-driven transition."""
    if target not in AUTOMATIC_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(current, target)


def check_override(current: str, target: str) -> None:
    """Validate an administrative status update.

    Overrides may jump between any states except back into ``pending``, or
    from a terminal state to ``in_progress``: no job is left to finish it.
    """
    if target == PENDING and current != PENDING:
        raise InvalidTransition(current, target)
    if target == IN_PROGRESS and is_terminal(current):
        raise InvalidTransition(current, target)


def resolve_progress(target: str, requested: int | None, current: int) -> int:
    """Progress value that accompanies a move to ``target``."""
    if target == COMPLETED:
        return 100
    if requested is None:
        return current
    return max(0, min(100, int(requested)))
