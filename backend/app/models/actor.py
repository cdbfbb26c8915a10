"""Actor model — one identity row per authenticated user."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from app.database import Base


class Actor(Base):
    __tablename__ = "actors"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="fan")  # model | fan | brand | admin
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships (at most one of these is set, matching ``type``)
    model_profile = relationship("ModelProfile", back_populates="actor", uselist=False)
    fan_profile = relationship("Fan", back_populates="actor", uselist=False)
    brand_profile = relationship("Brand", back_populates="actor", uselist=False)
    transactions = relationship("CoinTransaction", back_populates="actor")

    @property
    def profile(self):
        """The balance-holding profile for this actor, if any."""
        return {
            "model": self.model_profile,
            "fan": self.fan_profile,
            "brand": self.brand_profile,
        }.get(self.type)

    @property
    def display_name(self) -> str:
        profile = self.profile
        if self.type == "model" and profile:
            full = f"{profile.first_name or ''} {profile.last_name or ''}".strip()
            return full or profile.username
        if self.type == "fan" and profile:
            return profile.display_name
        if self.type == "brand" and profile:
            return profile.company_name
        return self.email
