from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from ..recommendations.models import Coordinates, PriceRange, RankedCandidate, SearchIntent


class SessionStatus(str, Enum):
    waiting = "waiting"
    swiping = "swiping"
    completed = "completed"


class SwipeRecord(BaseModel):
    liked: list[str] = Field(default_factory=list)
    passed: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.liked) + len(self.passed)

    def has_swiped(self, candidate_id: str) -> bool:
        return candidate_id in self.liked or candidate_id in self.passed


class SwipeSession(BaseModel):
    room_code: str
    group_size: int
    filters: SearchIntent
    origin: Coordinates | None = None
    participants: list[str] = Field(default_factory=list)
    swipes: dict[str, SwipeRecord] = Field(default_factory=dict)
    pool: list[RankedCandidate] = Field(default_factory=list)
    # Every candidate ever pooled, so swipes from earlier attempts still resolve.
    catalog: dict[str, RankedCandidate] = Field(default_factory=dict)
    pool_size: int
    attempts: int = 0
    status: SessionStatus = SessionStatus.waiting
    created_at: float = 0.0
    last_active: float = 0.0


class ParticipantProgress(BaseModel):
    participant_id: str
    swiped_count: int
    liked_count: int
    finished: bool


class MatchResult(BaseModel):
    status: SessionStatus
    matches: list[RankedCandidate]
    participants: list[ParticipantProgress]


# ── API payloads ─────────────────────────────────────────────────────────


class RoomFilters(BaseModel):
    search_term: str = "restaurant"
    cuisine_type: str | None = None
    price_range: PriceRange | None = None
    radius_km: float = Field(default=5.0, gt=0.0, le=50.0)
    dietary_restrictions: list[str] = Field(default_factory=list)
    min_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    mood: str | None = None
    special_occasions: list[str] = Field(default_factory=list)


class CreateRoomRequest(BaseModel):
    group_size: int
    filters: RoomFilters = Field(default_factory=RoomFilters)
    location: str = ""
    coordinates: Coordinates | None = None


class CreateRoomResponse(BaseModel):
    room_code: str
    pool_size: int


class JoinRoomRequest(BaseModel):
    participant_id: str = Field(..., min_length=1, max_length=100)


class JoinRoomResponse(BaseModel):
    current_participants: list[str]
    status: SessionStatus


class PoolResponse(BaseModel):
    restaurants: list[RankedCandidate]
    remaining: int


class SwipeRequest(BaseModel):
    participant_id: str = Field(..., min_length=1)
    candidate_id: str = Field(..., min_length=1)
    action: str


class SwipeResponse(BaseModel):
    success: bool


class RetryResponse(BaseModel):
    pool_size: int
    attempts: int
