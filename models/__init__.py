# models/__init__.py
"""
Database models for the sales CRM.
Import all models here for easy access.
"""

# Base and mixins
from models.base import Base, AuditMixin

# Core models
from models.seller import Seller
from models.sale import SaleRecord

__all__ = [
    # Base
    'Base',
    'AuditMixin',

    # Core
    'Seller',
    'SaleRecord',
]
