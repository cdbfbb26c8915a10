"""Balance-holding profiles: models, fans and brands.

Each profile shares its primary key with the owning actor, so an actor holds
exactly one balance. ``coin_balance`` is only written by the ledger service.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.database import Base


class ModelProfile(Base):
    __tablename__ = "models"

    id = Column(String(36), ForeignKey("actors.id"), primary_key=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    instagram_handle = Column(String(100), nullable=True, index=True)
    is_approved = Column(Boolean, nullable=False, default=False)
    coin_balance = Column(Integer, nullable=False, default=0)

    # Rate card, in coins
    photoshoot_hourly_rate = Column(Integer, nullable=True)
    photoshoot_half_day_rate = Column(Integer, nullable=True)
    photoshoot_full_day_rate = Column(Integer, nullable=True)
    promo_hourly_rate = Column(Integer, nullable=True)
    brand_ambassador_daily_rate = Column(Integer, nullable=True)
    private_event_hourly_rate = Column(Integer, nullable=True)
    social_companion_hourly_rate = Column(Integer, nullable=True)
    meet_greet_rate = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("coin_balance >= 0", name="ck_models_balance_non_negative"),
    )

    actor = relationship("Actor", back_populates="model_profile")


class Fan(Base):
    __tablename__ = "fans"

    id = Column(String(36), ForeignKey("actors.id"), primary_key=True)
    display_name = Column(String(255), nullable=False)
    coin_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("coin_balance >= 0", name="ck_fans_balance_non_negative"),
    )

    actor = relationship("Actor", back_populates="fan_profile")


class Brand(Base):
    __tablename__ = "brands"

    id = Column(String(36), ForeignKey("actors.id"), primary_key=True)
    company_name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    coin_balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("coin_balance >= 0", name="ck_brands_balance_non_negative"),
    )

    actor = relationship("Actor", back_populates="brand_profile")
