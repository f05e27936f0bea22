from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from .database import Base


class User(Base):
    """A person whose presence is derived from their registered devices."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    display_name = Column(String(255))
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    devices = relationship("Device", back_populates="user", cascade="all, delete-orphan")

    @property
    def shown_name(self) -> str:
        return self.display_name or self.username

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"


class Device(Base):
    """
    A registered device, stored only as a salted hash of its MAC address.
    """

    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    salted_hash = Column(String(64), unique=True, nullable=False)
    salt = Column(String(64), nullable=False)
    name = Column(String(255))
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="devices")

    def __repr__(self):
        return f"<Device(id={self.id}, user_id={self.user_id}, name={self.name})>"
