"""Read-only mappings of the operational replica tables.

Only the columns the queue core reads are mapped. These tables belong to the
operational application; this package never creates or writes them outside tests.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER primary keys.
ReplicaId = BigInteger().with_variant(Integer, "sqlite")


class ReplicaBase(DeclarativeBase):
    """Declarative base for replica tables, kept apart from the score store metadata."""


class User(ReplicaBase):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(ReplicaId, primary_key=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    current_signature_file_id: Mapped[int | None] = mapped_column(BigInteger)
    first_name: Mapped[str | None] = mapped_column(String(255))
    last_name: Mapped[str | None] = mapped_column(String(255))
    phone_number: Mapped[str | None] = mapped_column(String(50))
    status: Mapped[str | None] = mapped_column(String(50))


class Claim(ReplicaBase):
    __tablename__ = "claims"

    id: Mapped[int] = mapped_column(ReplicaId, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str | None] = mapped_column(String(50))


class ClaimRequirement(ReplicaBase):
    __tablename__ = "claim_requirements"

    id: Mapped[int] = mapped_column(ReplicaId, primary_key=True)
    claim_id: Mapped[int] = mapped_column(ForeignKey("claims.id"), nullable=False, index=True)
    type: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str | None] = mapped_column(String(50))
    claim_requirement_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime | None] = mapped_column(DateTime)
