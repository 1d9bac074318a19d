"""Job lifecycle transition rules."""

from scribeline.errors import ApiError
from scribeline.schemas.job import JobStatus

TERMINAL_STATES: frozenset[JobStatus] = frozenset({JobStatus.SUCCESS, JobStatus.FAILED})

_ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.QUEUED: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.WAITING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.SUCCESS, JobStatus.FAILED},
    JobStatus.SUCCESS: set(),
    JobStatus.FAILED: set(),
}

# The explicit retry signal is the only way out of a terminal state.
_RETRY_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.FAILED: {JobStatus.WAITING},
}


def is_terminal(status: JobStatus) -> bool:
    return status in TERMINAL_STATES


def allowed_next_statuses(status: JobStatus, *, retry: bool = False) -> list[JobStatus]:
    """Return deterministically ordered allowed successors for a status."""
    allowed = set(_ALLOWED_TRANSITIONS.get(status, set()))
    if retry:
        allowed |= _RETRY_TRANSITIONS.get(status, set())
    return sorted(allowed, key=lambda s: s.value)


def ensure_transition(old_status: JobStatus, new_status: JobStatus, *, retry: bool = False) -> None:
    """Validate transition according to lifecycle rules."""
    retry_allowed = retry and new_status in _RETRY_TRANSITIONS.get(old_status, set())
    if old_status in TERMINAL_STATES and not retry_allowed:
        raise ApiError(
            status_code=409,
            code="FSM_TERMINAL_IMMUTABLE",
            message="Terminal state cannot be mutated",
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": allowed_next_statuses(old_status, retry=retry),
            },
        )

    if retry_allowed:
        return

    if new_status not in _ALLOWED_TRANSITIONS.get(old_status, set()):
        raise ApiError(
            status_code=409,
            code="FSM_TRANSITION_INVALID",
            message="Invalid status transition",
            details={
                "current_status": old_status,
                "attempted_status": new_status,
                "allowed_next_statuses": allowed_next_statuses(old_status, retry=retry),
            },
        )
