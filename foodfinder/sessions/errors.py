from __future__ import annotations


class SessionError(Exception):
    """Base class for rejected session operations."""

    status_code = 400


class RoomNotFoundError(SessionError):
    status_code = 404

    def __init__(self, room_code: str) -> None:
        super().__init__(f"Room {room_code} not found")
        self.room_code = room_code


class InvalidGroupSizeError(SessionError):
    status_code = 400


class RoomStateError(SessionError):
    status_code = 409


class UnknownParticipantError(SessionError):
    status_code = 404


class UnknownCandidateError(SessionError):
    status_code = 404


class InvalidSwipeActionError(SessionError):
    status_code = 400


class SwipeConflictError(SessionError):
    status_code = 409
