from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from farmers_market.database import Base


def generate_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentMixin:
    """Columns every stored document carries: a generated id and timestamps."""

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------
class Location(DocumentMixin, Base):
    __tablename__ = "locations"

    city: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    slug: Mapped[Optional[str]] = mapped_column(String(200), unique=True, nullable=True, index=True)


# ---------------------------------------------------------------------------
# Member
# ---------------------------------------------------------------------------
class Member(DocumentMixin, Base):
    __tablename__ = "members"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    # Location id, city or slug; advisory only, not a foreign key.
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)


# ---------------------------------------------------------------------------
# Farm
# ---------------------------------------------------------------------------
class Farm(DocumentMixin, Base):
    __tablename__ = "farms"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    member: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------
class Product(DocumentMixin, Base):
    __tablename__ = "products"

    __table_args__ = (
        # Sold-out lookups for webhook notification
        Index("ix_products_soldout", "soldout"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    producer: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    soldout: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


# ---------------------------------------------------------------------------
# WebHook
# ---------------------------------------------------------------------------
class WebHook(DocumentMixin, Base):
    __tablename__ = "webhooks"

    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    event: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
