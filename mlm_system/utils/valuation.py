# mlm_system/utils/valuation.py
"""
Point valuation and commission schedule lookups.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional
import logging

from mlm_system.config.products import (
    Product, POINTS_PRODUIT, BAREME_CVD, LIMITES_TRANCHES,
    UNKNOWN_PRODUCT_POINTS, FIRST_PALIER_MINIMUM, normalizeProduct
)

logger = logging.getLogger(__name__)


class PointValuation:
    """Product -> points. Unknown products get the policy default."""

    def __init__(self, points: Dict[Product, int], unknownProductPoints: int = UNKNOWN_PRODUCT_POINTS):
        if unknownProductPoints < 0 or any(value < 0 for value in points.values()):
            raise ValueError("Point values must be non-negative")
        self.points = dict(points)
        self.unknownProductPoints = unknownProductPoints

    def pointsFor(self, product) -> int:
        productEnum = normalizeProduct(product)
        if productEnum is None or productEnum not in self.points:
            logger.debug(f"Unknown product {product!r}, counting {self.unknownProductPoints} point(s)")
            return self.unknownProductPoints
        return self.points[productEnum]


class CommissionSchedule:
    """Tier breakpoints and per-tier commission amounts."""

    def __init__(
            self,
            rates: Dict[int, Dict[Product, Decimal]],
            tierLimits: Dict[int, int],
            firstPalierMinimum: Decimal = FIRST_PALIER_MINIMUM
    ):
        self.rates = {tier: dict(table) for tier, table in rates.items()}
        # Highest threshold first so the first match wins
        self.tierLimits = sorted(tierLimits.items(), key=lambda item: item[1], reverse=True)
        self.firstPalierMinimum = Decimal(str(firstPalierMinimum))

    def tierFor(self, cumulativePoints: int) -> int:
        for tier, minimum in self.tierLimits:
            if cumulativePoints >= minimum:
                return tier
        return self.tierLimits[-1][0]

    def commissionFor(self, tier: int, product) -> Decimal:
        """Unknown products pay nothing."""
        productEnum = normalizeProduct(product)
        if productEnum is None:
            return Decimal("0")
        return self.rates.get(tier, {}).get(productEnum, Decimal("0"))


@dataclass
class MLMConfiguration:
    """Everything the engines need, passed in explicitly."""

    pointValuation: PointValuation = field(
        default_factory=lambda: PointValuation(POINTS_PRODUIT)
    )
    commissionSchedule: CommissionSchedule = field(
        default_factory=lambda: CommissionSchedule(BAREME_CVD, LIMITES_TRANCHES)
    )

    @classmethod
    def fromDefaults(
            cls,
            unknownProductPoints: int = UNKNOWN_PRODUCT_POINTS,
            firstPalierMinimum: Optional[Decimal] = None
    ) -> "MLMConfiguration":
        if firstPalierMinimum is None:
            firstPalierMinimum = FIRST_PALIER_MINIMUM
        return cls(
            pointValuation=PointValuation(POINTS_PRODUIT, unknownProductPoints),
            commissionSchedule=CommissionSchedule(BAREME_CVD, LIMITES_TRANCHES, firstPalierMinimum)
        )

    def pointsFor(self, product) -> int:
        return self.pointValuation.pointsFor(product)

    def tierFor(self, cumulativePoints: int) -> int:
        return self.commissionSchedule.tierFor(cumulativePoints)

    def commissionFor(self, tier: int, product) -> Decimal:
        return self.commissionSchedule.commissionFor(tier, product)
