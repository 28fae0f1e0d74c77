"""HTTP API for the MessageAI scheduling assistant."""
