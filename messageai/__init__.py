"""
MessageAI scheduling assistant backend.

Conflict detection, alternative time search and a tool-calling
orchestration loop over a user's Google Calendar.
"""

__version__ = "0.1.0"
