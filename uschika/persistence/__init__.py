"""Optional storage of chat users and relayed messages."""

from .message_sink import NullPersistenceSink, PersistenceSink, SqlAlchemyPersistenceSink

__all__ = ["NullPersistenceSink", "PersistenceSink", "SqlAlchemyPersistenceSink"]
