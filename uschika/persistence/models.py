"""
SQLAlchemy models for persisted chat data.

Both tables are write-mostly: the live chat never reads them back.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Shared declarative base for USChika models."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ChatUser(Base):
    """A user who has logged in at least once, keyed by their public user_ref."""

    __tablename__ = "chat_users"

    user_ref: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    last_login_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<ChatUser(user_ref='{self.user_ref}', display_name='{self.display_name}')>"


class ChatMessage(Base):
    """A relayed message, kept until the retention purge removes it."""

    __tablename__ = "chat_messages"
    __table_args__ = (Index("ix_chat_messages_sent_at", "sent_at"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    room_id: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    sender_ref: Mapped[str] = mapped_column(String(36), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<ChatMessage(id={self.id}, room_id='{self.room_id}')>"
