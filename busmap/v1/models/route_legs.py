from ...database import Base
from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import Mapped, relationship

class RouteLeg(Base):
    """One row per stop position of a route; owns that position's StopTime."""
    __tablename__ = "route_legs"

    leg_id: Mapped[str] = Column(String(80), primary_key=True)
    route_id: Mapped[str] = Column(
        String(50), ForeignKey("routes.route_id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships
    route = relationship("Route", back_populates="legs")
    stop_times = relationship(
        "StopTime", back_populates="leg", cascade="all, delete-orphan", passive_deletes=True
    )
