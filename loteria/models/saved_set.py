"""Saved set rows.

The history store is a key-value table: `id` is the key and `payload` holds
the serialized SavedSet document. `variant_id`, `kind` and `created_at` are
copied out of the payload for listing and ordering.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from loteria.models.base import Base


class SavedSetRow(Base):
    """One saved set (plain or teimosinha)."""

    __tablename__ = "saved_sets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    variant_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
