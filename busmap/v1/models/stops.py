from ...database import Base
from sqlalchemy import Boolean, Column, Float, Integer, String
from sqlalchemy.orm import Mapped, relationship

class Stop(Base):
    __tablename__ = "stops"

    # Ids come from the source dataset, never generated here
    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=False)
    latitude: Mapped[float] = Column(Float, nullable=False)
    longitude: Mapped[float] = Column(Float, nullable=False)
    name: Mapped[str] = Column(String(255), nullable=False)
    bench: Mapped[str] = Column(String(50), nullable=True)
    shelter: Mapped[str] = Column(String(50), nullable=True)
    wheelchair_access: Mapped[bool] = Column(Boolean, nullable=True)

    # Relationships
    stop_times = relationship("StopTime", back_populates="stop")
