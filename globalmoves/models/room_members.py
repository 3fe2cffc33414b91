from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from globalmoves.database.mysql import Base

ROLE_OWNER = "owner"
ROLE_MEMBER = "member"


class RoomMember(Base):
    __tablename__ = "room_members"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_room_members_room_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("breakout_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(20), default=ROLE_MEMBER, nullable=False)  # owner, member
    joined_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="room_memberships")
    room = relationship("BreakoutRoom", back_populates="members")

    @property
    def is_owner(self) -> bool:
        return self.role == ROLE_OWNER

    def __repr__(self):
        return f"<RoomMember(user_id={self.user_id}, room_id={self.room_id}, role={self.role})>"
