from ...database import Base
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, relationship

class StopTime(Base):
    __tablename__ = "stop_times"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    leg_id: Mapped[str] = Column(
        String(80), ForeignKey("route_legs.leg_id", ondelete="CASCADE"), nullable=False, index=True
    )
    stop_id: Mapped[int] = Column(Integer, ForeignKey("stops.id"), nullable=False, index=True)
    stop_sequence: Mapped[int] = Column(Integer, nullable=False)

    # Relationships
    leg = relationship("RouteLeg", back_populates="stop_times")
    stop = relationship("Stop", back_populates="stop_times")
