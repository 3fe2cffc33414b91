from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from globalmoves.database.mysql import Base

ANONYMOUS = "Anonymous"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(100), nullable=True)
    field_of_work = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    room_memberships = relationship("RoomMember", back_populates="user")

    @property
    def public_name(self) -> str:
        """
        다른 참가자에게 보이는 이름: 표시명 -> 이메일 로컬 파트 -> "Anonymous"

        전체 이메일 주소는 노출하지 않습니다.
        """
        if self.display_name:
            return self.display_name
        local_part = (self.email or "").split("@")[0]
        return local_part or ANONYMOUS

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
