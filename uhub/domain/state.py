from uhub.domain.entities import InvitationStatus
from uhub.domain.errors import InvalidStateError

_TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    InvitationStatus.PENDING: frozenset(
        {InvitationStatus.ACCEPTED, InvitationStatus.REVOKED, InvitationStatus.EXPIRED}
    ),
    # Terminal
    InvitationStatus.ACCEPTED: frozenset(),
    InvitationStatus.REVOKED: frozenset(),
    InvitationStatus.EXPIRED: frozenset(),
}


def can_transition(current: InvitationStatus, new: InvitationStatus) -> bool:
    """Only pending invitations move, and only once."""
    return new in _TRANSITIONS[current]


def is_terminal(status: InvitationStatus) -> bool:
    return not _TRANSITIONS[status]


def ensure_transition(current: InvitationStatus, new: InvitationStatus) -> None:
    if not can_transition(current, new):
        raise InvalidStateError(current.value, new.value)
