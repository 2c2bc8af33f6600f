"""
Time-to-live caches for derived artifacts.

Responsibilities:
- Hold AI-generated descriptions, personalization profiles and
  conversation context in bounded, expiring in-process stores.
- Expire entries passively on read and actively via a periodic sweep.
- Report hit/miss statistics per store.
"""
