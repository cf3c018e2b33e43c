"""
StudyGenie Backend — History SQLAlchemy Model
===============================================

What:  ORM model representing the `history` table.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by HistoryService (record / recent queries) and by Alembic.
When:  One row per completed feature call, written after the response is built.

Table Design:
    - id: BIGINT identity (INTEGER on SQLite so autoincrement works in tests)
    - user_id: opaque identifier handed over by the external auth layer
    - feature_name: the feature's URL segment, e.g. "study-style", "chat"
    - prompt / response: JSON documents (request payload and structured response)
    - created_at: UTC with timezone

    Indexes on user_id and created_at DESC serve the only query pattern:
    "this user's most recent N entries".
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class HistoryEntry(Base):
    """
    One stored feature interaction.

    Rows are append-only; nothing updates or deletes them.
    """

    __tablename__ = "history"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Identifier supplied by the authentication layer",
    )

    feature_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Feature that produced this entry (study-style, stress, genieguide, ...)",
    )

    prompt: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Validated request payload",
    )

    response: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Structured response returned to the user",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_history_user_id", "user_id"),
        Index("idx_history_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<HistoryEntry(id={self.id}, user_id='{self.user_id}', "
            f"feature='{self.feature_name}')>"
        )
