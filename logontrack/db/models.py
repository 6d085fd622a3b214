# logontrack/db/models.py
from datetime import date, datetime
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("action IN ('C', 'D', 'M')", name="ck_events_action"),
    )

    # BIGINT on PostgreSQL, INTEGER PRIMARY KEY (rowid) on SQLite
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(1), nullable=False)
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)  # UTC day of ts
    hostname: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    source_ip: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    os_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    os_version: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    kernel_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    hardware_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    session_id: Mapped[str] = mapped_column(String(200), nullable=False)


# open-session lookups: equality on the pair/action/day, then newest ts
Index("ix_events_pair_open", Event.username, Event.hostname, Event.action, Event.event_date, Event.ts)
# anti-join probe: "is there a D for this session_id?"
Index("ix_events_session_action", Event.session_id, Event.action)
Index("ix_events_ts", Event.ts)
