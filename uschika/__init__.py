"""
USChika chat server.

Anonymous one-on-one text chat: a FastAPI/WebSocket front end around an
in-memory matchmaking and session coordinator.
"""

__version__ = "0.1.0"
