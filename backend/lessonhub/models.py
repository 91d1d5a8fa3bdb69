from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .database import Base
from .services.collation import collation_key

BUSINESS_STATUSES = ("pending", "approved", "rejected")
MODERATION_STATUSES = ("pending", "approved", "rejected")
USER_ROLES = ("user", "businessMan", "admin")
PRICING_TYPES = ("exact", "range")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# SQLite only autoincrements an INTEGER PRIMARY KEY.
Identifier = BigInteger().with_variant(Integer(), "sqlite")


def _in_clause(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    user_type: Mapped[str] = mapped_column(String(32), nullable=False, default="user")
    profile_photo: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(_in_clause("user_type", USER_ROLES), name="users_user_type_valid"),
        CheckConstraint(_in_clause("status", MODERATION_STATUSES), name="users_status_valid"),
    )


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Base-strength folded name; lets the store order A-Z/Z-A without a collation.
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    admin_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )

    owner: Mapped[User | None] = relationship("User", foreign_keys=[user_id])
    admin_owner: Mapped[User | None] = relationship("User", foreign_keys=[admin_id])
    services: Mapped[list[BusinessService]] = relationship(
        "BusinessService",
        back_populates="business",
        cascade="all, delete-orphan",
        order_by="BusinessService.position",
    )
    hours: Mapped[list[BusinessHour]] = relationship(
        "BusinessHour",
        back_populates="business",
        cascade="all, delete-orphan",
        order_by="BusinessHour.id",
    )

    __table_args__ = (
        CheckConstraint(_in_clause("status", BUSINESS_STATUSES), name="businesses_status_valid"),
        CheckConstraint("(user_id IS NULL) <> (admin_id IS NULL)", name="businesses_single_owner"),
    )

    @validates("name")
    def _sync_name_key(self, _key: str, value: str) -> str:
        self.name_key = collation_key(value)
        return value

    @validates("user_id", "admin_id")
    def _owner_assigned_once(self, key: str, value: int | None) -> int | None:
        current = getattr(self, key)
        if current is not None and current != value:
            raise ValueError(f"Business owner reference {key} cannot be reassigned")
        return value


class BusinessService(Base):
    __tablename__ = "business_services"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    instrument_family: Mapped[str | None] = mapped_column(String(64), nullable=True)
    instrument_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    pricing_type: Mapped[str] = mapped_column(String(8), nullable=False)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_max: Mapped[float | None] = mapped_column(Float, nullable=True)

    business: Mapped[Business] = relationship("Business", back_populates="services")

    __table_args__ = (
        CheckConstraint(
            "(pricing_type = 'exact' AND price IS NOT NULL AND price_min IS NULL AND price_max IS NULL)"
            " OR (pricing_type = 'range' AND price IS NULL"
            " AND (price_min IS NULL OR price_max IS NULL OR price_min <= price_max))",
            name="business_services_pricing_shape",
        ),
    )


class BusinessHour(Base):
    __tablename__ = "business_hours"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    day: Mapped[str] = mapped_column(String(16), nullable=False)
    # Zero-padded "HH:MM" so string comparison orders like time of day.
    open: Mapped[str | None] = mapped_column(String(5), nullable=True)
    close: Mapped[str | None] = mapped_column(String(5), nullable=True)
    closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    business: Mapped[Business] = relationship("Business", back_populates="hours")

    __table_args__ = (
        UniqueConstraint("business_id", "day", name="business_hours_one_per_day"),
        CheckConstraint(_in_clause("day", WEEKDAYS), name="business_hours_day_valid"),
    )


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )

    user: Mapped[User | None] = relationship("User")
    business: Mapped[Business] = relationship("Business")
    images: Mapped[list[ReviewImage]] = relationship(
        "ReviewImage", back_populates="review", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="reviews_rating_range"),
        CheckConstraint(_in_clause("status", MODERATION_STATUSES), name="reviews_status_valid"),
    )


class ReviewImage(Base):
    __tablename__ = "review_images"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    review_id: Mapped[int] = mapped_column(ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)

    review: Mapped[Review] = relationship("Review", back_populates="images")


class Photo(Base):
    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (CheckConstraint(_in_clause("status", MODERATION_STATUSES), name="photos_status_valid"),)


class BusinessClaim(Base):
    __tablename__ = "business_claims"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    business_id: Mapped[int] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(_in_clause("status", MODERATION_STATUSES), name="business_claims_status_valid"),
    )


class SavedBusiness(Base):
    __tablename__ = "saved_businesses"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    business_id: Mapped[int] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (UniqueConstraint("user_id", "business_id", name="saved_businesses_unique_pair"),)
