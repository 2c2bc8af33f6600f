from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class CacheConfig:
    description_ttl: float = float(os.getenv("DESCRIPTION_CACHE_TTL", 24 * 3600))
    description_capacity: int = int(os.getenv("DESCRIPTION_CACHE_CAPACITY", 2000))
    profile_ttl: float = float(os.getenv("PROFILE_CACHE_TTL", 7 * 24 * 3600))
    profile_capacity: int = int(os.getenv("PROFILE_CACHE_CAPACITY", 10000))
    conversation_ttl: float = float(os.getenv("CONVERSATION_CACHE_TTL", 30 * 60))
    conversation_capacity: int = int(os.getenv("CONVERSATION_CACHE_CAPACITY", 5000))
    sweep_interval: float = float(os.getenv("CACHE_SWEEP_INTERVAL", 60))


DEFAULT_CACHE_CONFIG = CacheConfig()
