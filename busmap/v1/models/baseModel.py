from sqlalchemy import Column, DateTime
from datetime import datetime
from sqlalchemy.orm import Mapped

class TimestampedModel:
    __abstract__ = True
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.now, nullable=False)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.now, onupdate=datetime.now)
