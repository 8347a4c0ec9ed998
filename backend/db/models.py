"""SQLAlchemy models for chat threads and the documents generated from them. Use Alembic for migrations."""
from __future__ import annotations

from datetime import datetime
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from .session import Base


class Thread(Base):
    __tablename__ = "threads"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=True)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)
    updated_at = Column("updated_at", DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    outputs = relationship("ThreadOutput", back_populates="thread", cascade="all, delete-orphan", passive_deletes=True)


class ThreadOutput(Base):
    __tablename__ = "thread_outputs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    thread_id = Column("thread_id", String, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False)
    message_id = Column("message_id", String, nullable=True)
    filename = Column(String, nullable=False)
    filepath = Column(String, nullable=False)
    file_type = Column("file_type", String, nullable=False)  # DocumentFormat value
    file_size = Column("file_size", Integer, nullable=False)
    generation_config = Column("generation_config", JSON, nullable=True)
    expires_at = Column("expires_at", DateTime, nullable=True)
    download_count = Column("download_count", Integer, nullable=False, default=0)
    created_at = Column("created_at", DateTime, default=datetime.utcnow)

    thread = relationship("Thread", back_populates="outputs")

    __table_args__ = (
        Index("ix_thread_outputs_thread_id", "thread_id"),
        Index("ix_thread_outputs_expires_at", "expires_at"),
    )
