# models/sale.py
"""
SaleRecord model - one sold unit (a client line in the CRM).
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, AuditMixin


class SaleRecord(Base, AuditMixin):
    __tablename__ = 'clients'

    # Primary key
    clientID = Column(Integer, primary_key=True, autoincrement=True)

    # Owning seller
    sellerID = Column(Integer, ForeignKey('sellers.sellerID'), nullable=False, index=True)

    # Client
    prenom = Column(String, nullable=True)
    nom = Column(String, nullable=True)

    # Free text as typed in the CRM, normalised only by the valuation table
    produit = Column(String, nullable=True)

    # Only installed sales count
    dateInstallation = Column(DateTime, nullable=True, index=True)

    # Soft delete
    deletedAt = Column(DateTime, nullable=True)

    # Relationships
    seller = relationship('Seller', backref='sales')

    def __repr__(self):
        return f"<SaleRecord(clientID={self.clientID}, seller={self.sellerID}, produit={self.produit})>"
