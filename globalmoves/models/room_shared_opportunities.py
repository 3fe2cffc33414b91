from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from globalmoves.database.mysql import Base


class RoomSharedOpportunity(Base):
    __tablename__ = "room_shared_opportunities"
    __table_args__ = (
        UniqueConstraint("room_id", "opportunity_id", name="uq_room_shared_opportunities_room_opportunity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("breakout_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    opportunity_id = Column(Integer, ForeignKey("opportunities.id"), nullable=False)
    shared_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    opportunity = relationship("Opportunity")
    sharer = relationship("User")

    def __repr__(self):
        return f"<RoomSharedOpportunity(id={self.id}, room_id={self.room_id}, opportunity_id={self.opportunity_id})>"
