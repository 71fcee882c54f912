# backend/redline/models.py
from datetime import datetime

from sqlalchemy import (JSON, DateTime, ForeignKey, Integer, MetaData, String,
                        CheckConstraint)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


class Credential(Base):
    """Hashed credentials and lockout counters, one row per agent."""
    __tablename__ = "credentials"

    username: Mapped[str] = mapped_column(String(20), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    # Naive UTC timestamps
    locked_until: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class AgentProfileRow(Base):
    """
    Persisted progression state for an agent.

    Level is not stored; it is derived from reputation on every read.
    Sets (missions, achievements, inventory) are stored as sorted JSON arrays.
    """
    __tablename__ = "agent_profiles"
    __table_args__ = (
        CheckConstraint("heat >= 0 AND heat <= 100", name="heat_range"),
        CheckConstraint("reputation >= 0", name="reputation_non_negative"),
        CheckConstraint("credits >= 0", name="credits_non_negative"),
    )

    username: Mapped[str] = mapped_column(
        String(20), ForeignKey("credentials.username"), primary_key=True
    )
    reputation: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    heat: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    credits: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    # Session metadata
    login_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_heat_update: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    completed_missions: Mapped[list] = mapped_column(JSON, default=list)
    unlocked_achievements: Mapped[list] = mapped_column(JSON, default=list)
    inventory: Mapped[list] = mapped_column(JSON, default=list)

    # Counters (see AgentStats)
    stats: Mapped[dict] = mapped_column(JSON, default=dict)
