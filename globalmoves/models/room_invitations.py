from datetime import datetime
from sqlalchemy import Column, Integer, DateTime, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from globalmoves.database.mysql import Base

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_DECLINED = "declined"


class RoomInvitation(Base):
    __tablename__ = "room_invitations"
    # 상태와 무관하게 (룸, 초대 대상) 당 하나의 초대만 존재
    __table_args__ = (
        UniqueConstraint("room_id", "invited_user_id", name="uq_room_invitations_room_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("breakout_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    invited_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), default=STATUS_PENDING, nullable=False)  # pending, accepted, declined
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    responded_at = Column(DateTime, nullable=True)

    # Relationships
    room = relationship("BreakoutRoom")
    inviter = relationship("User", foreign_keys=[invited_by])
    invited_user = relationship("User", foreign_keys=[invited_user_id])

    def __repr__(self):
        return f"<RoomInvitation(id={self.id}, room_id={self.room_id}, invited_user_id={self.invited_user_id}, status={self.status})>"
