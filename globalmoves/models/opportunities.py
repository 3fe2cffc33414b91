from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Boolean
from globalmoves.database.mysql import Base


class Opportunity(Base):
    """외부 카탈로그(Airtable 동기화)에서 들어오는 기회 정보. 이 서비스에서는 읽기 전용."""
    __tablename__ = "opportunities"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    about = Column(Text, nullable=False, default="")
    deadline = Column(Date, nullable=True)
    location = Column(String(255), nullable=True)
    link = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Opportunity(id={self.id}, title={self.title}, is_active={self.is_active})>"
