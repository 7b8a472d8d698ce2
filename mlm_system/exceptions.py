# mlm_system/exceptions.py
"""
Errors raised by the MLM core.
"""
from typing import List, Optional


class MLMError(Exception):
    """Base class for MLM core errors"""
    pass


class SellerNotFoundError(MLMError):
    """Unknown seller id or seller code"""

    def __init__(self, reference):
        self.reference = reference
        super().__init__(f"Seller {reference} not found")


class InvalidHierarchyError(MLMError):
    """Sponsor codes form a cycle"""

    def __init__(self, cycle: Optional[List[str]] = None):
        self.cycle = cycle or []
        super().__init__(f"Invalid hierarchy: sponsor cycle {' -> '.join(self.cycle)}")
