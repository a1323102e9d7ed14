"""
Database Models

Source documents (orders and user profiles share one table, told apart by
``type``) and the denormalized analytics table derived from them.

Source Tables:
- AposDoc: orders (type "order") and user profiles (type "apostrophe-user")

Derived Tables:
- AnalyticsOrder: one row per successful order, joined with its buyer profile
- AnalyticsMeta: rebuild watermarks, one row per pipeline name
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class DocType(str, Enum):
    """Source document discriminator"""
    ORDER = "order"
    USER = "apostrophe-user"


class OrderStatus(str, Enum):
    """Order status values relevant to analytics"""
    SUCCESS = "success"
    PENDING = "pending"
    CANCELLED = "cancelled"


# =============================================================================
# SOURCE TABLES
# =============================================================================

class AposDoc(Base):
    """
    Source Document Table

    Owned by the upstream order-taking system. Orders and user profiles live
    side by side; columns that do not apply to a document type stay null.
    The birth date arrives either as a real timestamp (``birth_date``) or as
    free text in the legacy ``birthdate`` field.
    """
    __tablename__ = "apos_docs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Order fields
    status: Mapped[Optional[str]] = mapped_column(String(30))
    buyer_id: Mapped[Optional[str]] = mapped_column(String(64))
    products_id: Mapped[Optional[str]] = mapped_column(String(64))
    reservation_date: Mapped[Optional[str]] = mapped_column(String(10))

    # Profile fields
    title: Mapped[Optional[str]] = mapped_column(String(200))
    username: Mapped[Optional[str]] = mapped_column(String(200))
    email: Mapped[Optional[str]] = mapped_column(String(200))
    phone_number: Mapped[Optional[str]] = mapped_column(String(50))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    city: Mapped[Optional[str]] = mapped_column(String(120))
    state: Mapped[Optional[str]] = mapped_column(String(120))
    birth_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    birthdate: Mapped[Optional[str]] = mapped_column(String(40))

    __table_args__ = (
        Index("ix_apos_docs_type_status_created", "type", "status", "created_at"),
        Index("ix_apos_docs_reservation", "reservation_date", "products_id", "status", "type"),
    )


# =============================================================================
# DERIVED TABLES
# =============================================================================

class AnalyticsOrder(Base):
    """
    Denormalized Analytics Table

    One row per successful order, keyed by the order id. Rows are fully
    replaced on every rebuild that selects the order.
    """
    __tablename__ = "analytics_orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    buyer_id: Mapped[Optional[str]] = mapped_column(String(64))
    products_id: Mapped[Optional[str]] = mapped_column(String(64))
    reservation_date: Mapped[Optional[str]] = mapped_column(String(10))
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    user_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    birth_date_normalized: Mapped[Optional[datetime]] = mapped_column(DateTime)

    user_city: Mapped[Optional[str]] = mapped_column(String(120))
    user_state: Mapped[Optional[str]] = mapped_column(String(120))
    user_city_norm: Mapped[str] = mapped_column(String(120), nullable=False)
    user_state_norm: Mapped[str] = mapped_column(String(120), nullable=False)

    user_name: Mapped[Optional[str]] = mapped_column(String(200))
    user_email: Mapped[Optional[str]] = mapped_column(String(200))
    user_phone: Mapped[Optional[str]] = mapped_column(String(50))

    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index(
            "ix_analytics_orders_created_filters",
            "created_at", "products_id", "user_state_norm", "user_city_norm",
        ),
        Index("ix_analytics_orders_reservation", "reservation_date", "products_id"),
        Index("ix_analytics_orders_user_created", "user_created_at"),
        Index("ix_analytics_orders_buyer", "buyer_id"),
    )


class AnalyticsMeta(Base):
    """Rebuild bookkeeping, keyed by pipeline name"""
    __tablename__ = "analytics_meta"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_run: Mapped[Optional[datetime]] = mapped_column(DateTime)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
