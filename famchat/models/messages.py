from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from . import Base, utcnow

class Message(Base):
    __tablename__ = 'messages'
    id = Column(Integer, primary_key=True)
    sender_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    receiver_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    encrypted_content = Column(Text, nullable=False)
    iv = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
