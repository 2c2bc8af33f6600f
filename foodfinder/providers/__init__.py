"""
Place-search provider adapters.

Responsibilities:
- Define the adapter contract every provider implements.
- Translate each provider's wire format into canonical Candidates.
- Surface transport and payload problems as ``ProviderError``.
"""
