"""SQLAlchemy models backing the account document store."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .session import Base


class Account(Base):
    __tablename__ = "accounts"

    email = Column(String(255), primary_key=True)
    password_hash = Column(Text, nullable=False)
    location = Column(String(255), nullable=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    phone_number = Column(String(40), nullable=True)
    profile_image = Column(Text, nullable=True)
    favorite_barber_email = Column(String(255), nullable=True)
    is_service_provider = Column(Boolean, default=False, nullable=False)
    payment_provider_account_id = Column(String(255), nullable=True)
    payment_provider_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    items = relationship("AccountArrayItem", back_populates="account", cascade="all,delete-orphan")


class AccountArrayItem(Base):
    """One element of a multi-valued account attribute."""

    __tablename__ = "account_array_items"
    __table_args__ = (UniqueConstraint("account_email", "field", "item_key", name="uq_account_field_item"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_email = Column(String(255), ForeignKey("accounts.email", ondelete="CASCADE"), nullable=False, index=True)
    field = Column(String(64), nullable=False)
    item_key = Column(String(512), nullable=False)
    value = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    account = relationship("Account", back_populates="items")


class UserSession(Base):
    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    account_email = Column(String(255), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
