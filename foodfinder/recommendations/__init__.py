"""
Recommendation pipeline.

Responsibilities:
- Fan a search intent out to every configured place provider concurrently.
- Merge provider results that describe the same venue.
- Filter and score candidates against the intent and the user's profile.
- Return the top picks with explanations ready for API serialisation.
"""
