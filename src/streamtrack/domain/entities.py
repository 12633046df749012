"""
Persisted tables for StreamTrack.

All timestamps are stored as INTEGER Unix seconds (UTC) and all broadcaster
ids as INTEGER. Conversion to aware datetimes happens in the store.
"""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy import BigInteger, Boolean, Index, PrimaryKeyConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..infra.db import Base


class StreamHistory(Base):
    """One observed "broadcaster went live at started_at" fact. Append-only."""

    __tablename__ = "stream_history"

    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    started_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        # Repeated observations of the same broadcast start collapse onto this key.
        PrimaryKeyConstraint("user_id", "started_at", name="pk_stream_history"),
        Index("idx_stream_history_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<StreamHistory(user_id={self.user_id}, started_at={self.started_at})>"


class Followed(Base):
    """Current roster snapshot. Replaced wholesale on every sync."""

    __tablename__ = "followed"

    broadcaster_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    broadcaster_login: Mapped[str] = mapped_column(Text, nullable=False)
    broadcaster_name: Mapped[str] = mapped_column(Text, nullable=False)
    followed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Followed(broadcaster_id={self.broadcaster_id}, login={self.broadcaster_login})>"


class ScheduleLastChecked(Base):
    """Stale-queue freshness per broadcaster. 0 means never checked."""

    __tablename__ = "schedule_last_checked"

    broadcaster_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    last_checked_at: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default=sa.text("0")
    )


class ScheduledStream(Base):
    """An officially published segment.

    Rows with start_time in the past are never deleted: they double as history.
    """

    __tablename__ = "scheduled_streams"

    id: Mapped[str] = mapped_column(String, nullable=False)
    broadcaster_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default=sa.text("''"))
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    category_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_recurring: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("0")
    )

    __table_args__ = (
        PrimaryKeyConstraint("id", "broadcaster_id", name="pk_scheduled_streams"),
        Index("idx_scheduled_streams_start", "start_time"),
        Index("idx_scheduled_streams_broadcaster", "broadcaster_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ScheduledStream(id={self.id}, broadcaster_id={self.broadcaster_id}, "
            f"start_time={self.start_time})>"
        )
