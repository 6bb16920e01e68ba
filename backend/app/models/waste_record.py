"""
Waste Record database model.

One submission of sorted waste volumes (multiple per day allowed).
"""

from sqlalchemy import Column, Integer, Float, Date, DateTime
from backend.app.db.session import Base, utcnow


class WasteRecord(Base):
    """
    Waste Record model.
    
    Records are immutable once created.
    """
    __tablename__ = "waste_records"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    recyclable = Column(Float, nullable=False, default=0)
    biodegradable = Column(Float, nullable=False, default=0)
    non_biodegradable = Column(Float, nullable=False, default=0)
    
    date = Column(Date, nullable=False, index=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False)
    
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    
    @property
    def total(self) -> float:
        return (self.recyclable or 0) + (self.biodegradable or 0) + (self.non_biodegradable or 0)
    
    def __repr__(self):
        return f"<WasteRecord(id={self.id}, date={self.date}, total={self.total})>"
