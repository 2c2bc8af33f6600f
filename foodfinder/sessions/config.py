from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class SessionConfig:
    base_pool_size: int = int(os.getenv("SESSION_BASE_POOL_SIZE", 10))
    per_participant_pool: int = int(os.getenv("SESSION_PER_PARTICIPANT_POOL", 5))
    retry_increment: int = int(os.getenv("SESSION_RETRY_INCREMENT", 10))
    min_group_size: int = 2
    max_group_size: int = 20
    idle_ttl: float = float(os.getenv("SESSION_IDLE_TTL", 2 * 3600))
    room_code_length: int = 6
    # Pools favour breadth over the single-user quality bar.
    rating_floor: float = 0.0


DEFAULT_SESSION_CONFIG = SessionConfig()
