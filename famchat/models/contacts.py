from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from . import Base, utcnow

PENDING = 'pending'
ACCEPTED = 'accepted'

class Contact(Base):
    __tablename__ = 'contacts'
    id = Column(Integer, primary_key=True)
    # user_id requested, contact_id must accept
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    contact_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), index=True, nullable=False)
    # ordered copy of the pair so the store rejects a second edge in either direction
    pair_low = Column(Integer, nullable=False)
    pair_high = Column(Integer, nullable=False)
    status = Column(String(20), default=PENDING, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    __table_args__ = (
        UniqueConstraint('user_id', 'contact_id', name='uix_contact_edge'),
        UniqueConstraint('pair_low', 'pair_high', name='uix_contact_pair'),
        CheckConstraint('user_id <> contact_id', name='ck_contact_not_self'),
    )
