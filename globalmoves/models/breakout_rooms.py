from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from globalmoves.database.mysql import Base


class BreakoutRoom(Base):
    __tablename__ = "breakout_rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    field = Column(String(100), nullable=False, index=True)  # 분야 태그 (프로필 field_of_work 와 매칭)
    description = Column(Text, nullable=True)
    is_private = Column(Boolean, default=False, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)  # 시드된 공개 룸은 NULL
    max_members = Column(Integer, nullable=True)  # 비공개 룸만 사용
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    creator = relationship("User")
    members = relationship("RoomMember", back_populates="room")

    def is_owned_by(self, user_id: int) -> bool:
        return self.created_by is not None and self.created_by == user_id

    def __repr__(self):
        return f"<BreakoutRoom(id={self.id}, name={self.name}, is_private={self.is_private})>"
