from ...database import Base
from .baseModel import TimestampedModel
from sqlalchemy import Column, Index, Integer, String
from sqlalchemy.orm import Mapped, relationship

class Route(TimestampedModel, Base):
    __tablename__ = "routes"
    __table_args__ = (
        Index("idx_route_direction", "direction"),
        Index("idx_route_short_name", "route_short_name"),
    )

    route_id: Mapped[str] = Column(String(50), primary_key=True)
    bus_number: Mapped[str] = Column(String(40), nullable=False)
    direction: Mapped[int] = Column(Integer, nullable=False)
    route_short_name: Mapped[str] = Column(String(100), nullable=False)
    route_long_name: Mapped[str] = Column(String(255), nullable=True)
    description: Mapped[str] = Column(String(500), nullable=True)

    # Relationships
    legs = relationship(
        "RouteLeg",
        back_populates="route",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
