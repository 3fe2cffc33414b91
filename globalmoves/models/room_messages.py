from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from globalmoves.database.mysql import Base


class RoomMessage(Base):
    __tablename__ = "room_messages"
    __table_args__ = (
        Index("ix_room_messages_room_created", "room_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("breakout_rooms.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    author = relationship("User")

    def __repr__(self):
        return f"<RoomMessage(id={self.id}, room_id={self.room_id}, user_id={self.user_id})>"
