"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Turn free-text dining queries into structured search intents.
- Write short venue descriptions for the top recommendations.
- Fall back gracefully when the LLM is unavailable, slow or returns invalid output.
"""
