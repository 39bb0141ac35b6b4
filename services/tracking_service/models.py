"""Database models for Tracking Service."""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from shared.database import Base


class Tracking(Base):
    """Shipment tracking record, owner of its stopovers."""

    __tablename__ = "trackings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tracking_id = Column(String(32), nullable=False, unique=True, index=True)

    from_address = Column(String(255), nullable=False)
    delivery_address = Column(String(255), nullable=True)
    from_date = Column(DateTime, nullable=False)
    delivery_date = Column(DateTime, nullable=True)

    # Free text, no enumerated states
    tracking_status = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    stopovers = relationship(
        "Stopover",
        back_populates="tracking",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Stopover.id",
    )

    __table_args__ = (
        Index("ix_trackings_status_created", "tracking_status", "created_at"),
    )


class Stopover(Base):
    """Intermediate stop of a shipment."""

    __tablename__ = "stopovers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tracking_pk = Column(
        Integer,
        ForeignKey("trackings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    stopover_address = Column(String(255), nullable=False)
    stopover_date = Column(DateTime, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tracking = relationship("Tracking", back_populates="stopovers")
