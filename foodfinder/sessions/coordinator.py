"""Group swipe sessions.

A room moves ``waiting -> swiping -> completed``; ``retry`` sends it back to
``waiting`` with a larger pool. Every operation on a room runs under that
room's lock, so unrelated rooms never contend.
"""
from __future__ import annotations

import asyncio
import logging
import random
import secrets
import string
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ..analytics.store import EventStore
from ..recommendations.models import Coordinates, RankedCandidate, SearchIntent
from .config import DEFAULT_SESSION_CONFIG, SessionConfig
from .errors import (
    InvalidGroupSizeError,
    InvalidSwipeActionError,
    RoomNotFoundError,
    RoomStateError,
    SwipeConflictError,
    UnknownCandidateError,
    UnknownParticipantError,
)
from .models import (
    MatchResult,
    ParticipantProgress,
    SessionStatus,
    SwipeRecord,
    SwipeSession,
)

logger = logging.getLogger(__name__)

PoolBuilder = Callable[
    [SearchIntent, Coordinates | None, str, int, float], Awaitable[list[RankedCandidate]]
]

SWIPE_ACTIONS = ("like", "pass")
_CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class _Room:
    session: SwipeSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def shuffled_for(pool: list[RankedCandidate], room_code: str, participant_id: str, attempts: int) -> list[RankedCandidate]:
    """Per-participant order that is stable across reconnects."""
    order = list(pool)
    random.Random(f"{room_code}:{participant_id}:{attempts}").shuffle(order)
    return order


def is_finished(session: SwipeSession, record: SwipeRecord) -> bool:
    if record.total >= session.pool_size:
        return True
    # A pool smaller than pool_size is exhausted once every member is swiped.
    return bool(session.pool) and all(record.has_swiped(c.identity_key) for c in session.pool)


class SessionCoordinator:
    def __init__(
        self,
        pool_builder: PoolBuilder,
        events: EventStore | None = None,
        config: SessionConfig = DEFAULT_SESSION_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.pool_builder = pool_builder
        self.events = events
        self.config = config
        self._clock = clock
        self._rooms: dict[str, _Room] = {}

    # ── Registry ────────────────────────────────────────────────────────

    def _new_code(self) -> str:
        while True:
            code = "".join(
                secrets.choice(_CODE_ALPHABET) for _ in range(self.config.room_code_length)
            )
            if code not in self._rooms:
                return code

    def _room(self, room_code: str) -> _Room:
        code = room_code.upper()
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFoundError(room_code)
        if self._clock() - room.session.last_active >= self.config.idle_ttl:
            del self._rooms[code]
            raise RoomNotFoundError(room_code)
        return room

    def _touch(self, session: SwipeSession) -> None:
        session.last_active = self._clock()

    def _record(self, action: str, session: SwipeSession, **data) -> None:
        if self.events is not None:
            self.events.record("session", {"action": action, "room_code": session.room_code, **data})

    def sweep_expired(self) -> int:
        now = self._clock()
        expired = [
            code
            for code, room in self._rooms.items()
            if now - room.session.last_active >= self.config.idle_ttl and not room.lock.locked()
        ]
        for code in expired:
            del self._rooms[code]
        if expired:
            logger.info("Expired %d idle swipe rooms", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._rooms)

    # ── Operations ──────────────────────────────────────────────────────

    def create(
        self, group_size: int, filters: SearchIntent, origin: Coordinates | None = None
    ) -> SwipeSession:
        cfg = self.config
        if not cfg.min_group_size <= group_size <= cfg.max_group_size:
            raise InvalidGroupSizeError(
                f"group_size must be between {cfg.min_group_size} and {cfg.max_group_size}"
            )
        now = self._clock()
        session = SwipeSession(
            room_code=self._new_code(),
            group_size=group_size,
            filters=filters,
            origin=origin,
            pool_size=cfg.base_pool_size + group_size * cfg.per_participant_pool,
            created_at=now,
            last_active=now,
        )
        self._rooms[session.room_code] = _Room(session)
        self._record("created", session, group_size=group_size)
        logger.info("Created room %s for %d people", session.room_code, group_size)
        return session

    async def join(self, room_code: str, participant_id: str) -> SwipeSession:
        room = self._room(room_code)
        async with room.lock:
            session = room.session
            self._touch(session)
            if participant_id in session.participants:
                return session
            if session.status is not SessionStatus.waiting:
                raise RoomStateError(f"Room {session.room_code} is no longer accepting participants")
            if len(session.participants) >= session.group_size:
                raise RoomStateError(f"Room {session.room_code} is full")
            session.participants.append(participant_id)
            session.swipes[participant_id] = SwipeRecord()
            return session

    def _participant(self, session: SwipeSession, participant_id: str) -> SwipeRecord:
        record = session.swipes.get(participant_id)
        if record is None:
            raise UnknownParticipantError(
                f"{participant_id} is not a participant of room {session.room_code}"
            )
        return record

    async def get_pool(
        self, room_code: str, participant_id: str
    ) -> tuple[list[RankedCandidate], int]:
        room = self._room(room_code)
        async with room.lock:
            session = room.session
            self._touch(session)
            record = self._participant(session, participant_id)

            if not session.pool:
                pool = await self.pool_builder(
                    session.filters,
                    session.origin,
                    f"{session.room_code}:{session.attempts}",
                    session.pool_size,
                    self.config.rating_floor,
                )
                session.pool = list(pool)
                for candidate in session.pool:
                    session.catalog.setdefault(candidate.identity_key, candidate)
                logger.info(
                    "Room %s pool loaded with %d candidates (attempt %d)",
                    session.room_code,
                    len(session.pool),
                    session.attempts,
                )
            if session.status is SessionStatus.waiting:
                session.status = SessionStatus.swiping

            order = shuffled_for(session.pool, session.room_code, participant_id, session.attempts)
            remaining = [c for c in order if not record.has_swiped(c.identity_key)]
            return remaining, len(remaining)

    async def record_swipe(
        self, room_code: str, participant_id: str, candidate_id: str, action: str
    ) -> bool:
        if action not in SWIPE_ACTIONS:
            raise InvalidSwipeActionError(f"action must be one of {', '.join(SWIPE_ACTIONS)}")
        room = self._room(room_code)
        async with room.lock:
            session = room.session
            self._touch(session)
            record = self._participant(session, participant_id)
            if candidate_id not in session.catalog:
                raise UnknownCandidateError(
                    f"{candidate_id} is not in the pool of room {session.room_code}"
                )

            target, other = (
                (record.liked, record.passed) if action == "like" else (record.passed, record.liked)
            )
            if candidate_id in target:
                return True
            if candidate_id in other:
                raise SwipeConflictError(f"{participant_id} already swiped {candidate_id}")
            target.append(candidate_id)
            return True

    async def check_matches(self, room_code: str) -> MatchResult:
        room = self._room(room_code)
        async with room.lock:
            session = room.session
            self._touch(session)

            records = [session.swipes[p] for p in session.participants]
            matches: list[RankedCandidate] = []
            if records:
                common = set(records[0].liked)
                for record in records[1:]:
                    common &= set(record.liked)
                matches = [c for cid, c in session.catalog.items() if cid in common]

            progress = [
                ParticipantProgress(
                    participant_id=p,
                    swiped_count=session.swipes[p].total,
                    liked_count=len(session.swipes[p].liked),
                    finished=is_finished(session, session.swipes[p]),
                )
                for p in session.participants
            ]
            if progress and all(p.finished for p in progress):
                if session.status is not SessionStatus.completed:
                    self._record("matched" if matches else "exhausted", session, matches=len(matches))
                session.status = SessionStatus.completed

            return MatchResult(status=session.status, matches=matches, participants=progress)

    async def retry(self, room_code: str) -> SwipeSession:
        room = self._room(room_code)
        async with room.lock:
            session = room.session
            self._touch(session)
            if session.status is SessionStatus.waiting:
                raise RoomStateError(
                    f"Room {session.room_code} has no pool to retry yet"
                )
            session.attempts += 1
            session.pool_size += self.config.retry_increment
            session.pool = []
            session.status = SessionStatus.waiting
            self._record("retried", session, attempts=session.attempts, pool_size=session.pool_size)
            logger.info(
                "Room %s retry %d, pool grows to %d",
                session.room_code,
                session.attempts,
                session.pool_size,
            )
            return session

    def get(self, room_code: str) -> SwipeSession:
        return self._room(room_code).session
