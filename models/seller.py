# models/seller.py
"""
Seller model - a person in the distribution hierarchy.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from datetime import datetime, timezone
from models.base import Base


class Seller(Base):
    __tablename__ = 'sellers'

    # Primary identification
    sellerID = Column(Integer, primary_key=True, autoincrement=True)
    sellerCode = Column(String, unique=True, nullable=False, index=True)
    sponsorCode = Column(String, nullable=True, index=True)  # sellerCode of the recruiter
    createdAt = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Personal information
    firstname = Column(String, nullable=True)
    surname = Column(String, nullable=True)
    email = Column(String, nullable=True)

    isActive = Column(Boolean, default=True, index=True)

    def __repr__(self):
        return f"<Seller(sellerID={self.sellerID}, code={self.sellerCode}, sponsor={self.sponsorCode})>"
