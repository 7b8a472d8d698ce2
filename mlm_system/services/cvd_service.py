# mlm_system/services/cvd_service.py
"""
CVD (Commission sur Ventes Directes) - progressive monthly commission.

Every time cumulative points cross a multiple of 5 (a palier), the sale that
pushed them over pays the commission of the tranche reached at that palier.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Iterable, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from models import Seller, SaleRecord
from mlm_system.config.products import PALIER_SIZE, normalizeProduct
from mlm_system.utils.valuation import MLMConfiguration
from mlm_system.utils.time_machine import timeMachine
from mlm_system.events.event_bus import EventBus, CVDCalculated, CVDMonthClosed, publish
from mlm_system.exceptions import SellerNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CommissionLedgerEntry:
    palier: int            # Threshold value (5, 10, 15...)
    pointsCumules: int     # Cumulative points after the triggering sale
    tranche: int           # Tranche at the threshold
    produit: str
    commission: Decimal
    saleId: Optional[int] = None
    sellerId: Optional[int] = None
    client: str = ""

    def toDict(self) -> Dict:
        return {
            "palier": self.palier,
            "pointsCumules": self.pointsCumules,
            "tranche": self.tranche,
            "produit": self.produit,
            "commission": float(self.commission),
            "saleId": self.saleId,
            "sellerId": self.sellerId,
            "client": self.client
        }


@dataclass
class CVDResult:
    totalCommission: Decimal = Decimal("0")
    totalPoints: int = 0
    finalTier: int = 1
    ledger: List[CommissionLedgerEntry] = field(default_factory=list)
    installations: List[Dict] = field(default_factory=list)
    commissionsByTier: Dict[int, Decimal] = field(default_factory=dict)
    paliersReached: List[int] = field(default_factory=list)

    def toDict(self) -> Dict:
        return {
            "totalCommission": float(self.totalCommission),
            "totalPoints": self.totalPoints,
            "installations": [
                {
                    **installation,
                    "dateInstallation": installation["dateInstallation"].isoformat()
                    if installation["dateInstallation"] else None
                }
                for installation in self.installations
            ],
            "palier": self.finalTier,
            "commissionDetails": [entry.toDict() for entry in self.ledger],
            "commissionsByTier": {
                str(tier): float(amount) for tier, amount in self.commissionsByTier.items()
            },
            "paliersReached": list(self.paliersReached)
        }


def isQualifyingSale(sale) -> bool:
    """Installed and not soft-deleted."""
    return sale.dateInstallation is not None and getattr(sale, "deletedAt", None) is None


def orderSales(sales: Iterable) -> List:
    """Qualifying sales by installation date, then by record id."""
    qualifying = [sale for sale in sales if isQualifyingSale(sale)]
    return sorted(qualifying, key=lambda sale: (sale.dateInstallation, sale.clientID))


class CVDCalculator:
    """Pure progressive commission engine for one seller and one month."""

    def __init__(self, configuration: MLMConfiguration):
        self.configuration = configuration

    def calculate(self, sales: Iterable) -> CVDResult:
        orderedSales = orderSales(sales)
        result = CVDResult()
        pointsCumules = 0

        for sale in orderedSales:
            points = self.configuration.pointsFor(sale.produit)
            pointsAvant = pointsCumules
            pointsCumules += points

            result.installations.append({
                "id": sale.clientID,
                "nom": sale.nom or "",
                "prenom": sale.prenom or "",
                "produit": sale.produit or "",
                "points": points,
                "dateInstallation": sale.dateInstallation
            })

            palierAvant = pointsAvant // PALIER_SIZE
            palierApres = pointsCumules // PALIER_SIZE

            # A sale worth 10+ points crosses several paliers and pays each one
            for palier in range(palierAvant + 1, palierApres + 1):
                entry = self._commissionForPalier(palier, pointsCumules, sale)
                result.ledger.append(entry)
                result.totalCommission += entry.commission
                result.commissionsByTier[entry.tranche] = (
                    result.commissionsByTier.get(entry.tranche, Decimal("0")) + entry.commission
                )
                result.paliersReached.append(entry.palier)

                logger.debug(
                    f"Palier {entry.palier} crossed by sale {entry.saleId} "
                    f"({entry.produit}, tranche {entry.tranche}): {entry.commission}"
                )

        result.totalPoints = pointsCumules
        result.finalTier = self.configuration.tierFor(pointsCumules)
        return result

    def _commissionForPalier(self, palier: int, pointsCumules: int, sale) -> CommissionLedgerEntry:
        palierPoints = palier * PALIER_SIZE
        tranche = self.configuration.tierFor(palierPoints)
        commission = self.configuration.commissionFor(tranche, sale.produit)

        # Starter bonus on the first palier of the month
        if palier == 1:
            commission = max(commission, self.configuration.commissionSchedule.firstPalierMinimum)

        client = " ".join(part for part in (sale.prenom, sale.nom) if part)
        return CommissionLedgerEntry(
            palier=palierPoints,
            pointsCumules=pointsCumules,
            tranche=tranche,
            produit=sale.produit or "",
            commission=commission,
            saleId=sale.clientID,
            sellerId=getattr(sale, "sellerID", None),
            client=client
        )


class CVDService:
    """Reads a seller's monthly installations and runs the CVD engine."""

    def __init__(self, session: Session, configuration: MLMConfiguration, eventBus: Optional[EventBus] = None):
        self.session = session
        self.configuration = configuration
        self.eventBus = eventBus
        self.calculator = CVDCalculator(self.configuration)

    async def calculateMonthlyCVD(
            self,
            sellerId: int,
            month: Optional[int] = None,
            year: Optional[int] = None
    ) -> CVDResult:
        """
        CVD for one seller over one calendar month (current month by default).
        No installations is a zero result, an unknown seller is an error.
        """
        seller = self.session.query(Seller).filter_by(sellerID=sellerId).first()
        if not seller:
            raise SellerNotFoundError(sellerId)

        start, end = timeMachine.monthBounds(month, year)
        sales = self._fetchMonthlySales(sellerId, start, end)
        self._warnUnknownProducts(sales, seller.sellerCode)

        result = self.calculator.calculate(sales)

        logger.info(
            f"CVD for seller {seller.sellerCode} {start:%Y-%m}: "
            f"{len(result.installations)} installations, {result.totalPoints} points, "
            f"{len(result.ledger)} paliers, total {result.totalCommission}"
        )

        await publish(self.eventBus, CVDCalculated(
            sellerId=sellerId,
            month=f"{start:%Y-%m}",
            totalCommission=result.totalCommission,
            totalPoints=result.totalPoints
        ))

        return result

    async def getCalculationDetail(
            self,
            sellerId: int,
            month: Optional[int] = None,
            year: Optional[int] = None
    ) -> Dict:
        """Summary, per-tranche totals and chronology for display."""
        result = await self.calculateMonthlyCVD(sellerId, month, year)

        return {
            "resume": {
                "pointsTotal": result.totalPoints,
                "trancheActuelle": result.finalTier,
                "commissionsTotal": float(result.totalCommission),
                "paliersAtteints": len(result.paliersReached)
            },
            "detailParTranche": [
                {
                    "tranche": tranche,
                    "montant": float(amount),
                    "description": f"Tranche {tranche}: {amount}€"
                }
                for tranche, amount in sorted(result.commissionsByTier.items())
            ],
            "chronologieCommissions": [entry.toDict() for entry in result.ledger]
        }

    async def calculateMonthlyCVDForAll(
            self,
            month: Optional[int] = None,
            year: Optional[int] = None
    ) -> Dict:
        """
        Run the engine separately for every active seller with installations
        in the month.
        """
        start, end = timeMachine.monthBounds(month, year)

        try:
            sellers = self.session.query(Seller).join(
                SaleRecord, SaleRecord.sellerID == Seller.sellerID
            ).filter(
                Seller.isActive == True,
                SaleRecord.dateInstallation.isnot(None),
                SaleRecord.dateInstallation >= start,
                SaleRecord.dateInstallation < end,
                SaleRecord.deletedAt.is_(None)
            ).distinct().order_by(Seller.sellerID).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list sellers for CVD {start:%Y-%m}: {e}")
            raise

        results = {
            "month": f"{start:%Y-%m}",
            "sellers": [],
            "totalCommission": Decimal("0"),
            "totalPoints": 0
        }

        for seller in sellers:
            sales = self._fetchMonthlySales(seller.sellerID, start, end)
            result = self.calculator.calculate(sales)

            results["sellers"].append({
                "sellerId": seller.sellerID,
                "sellerCode": seller.sellerCode,
                "result": result
            })
            results["totalCommission"] += result.totalCommission
            results["totalPoints"] += result.totalPoints

        logger.info(
            f"CVD month {results['month']}: {len(sellers)} sellers, "
            f"total {results['totalCommission']}"
        )

        await publish(self.eventBus, CVDMonthClosed(
            month=results["month"],
            sellersCount=len(sellers),
            totalCommission=results["totalCommission"]
        ))

        return results

    def _fetchMonthlySales(self, sellerId: int, start: datetime, end: datetime) -> List[SaleRecord]:
        try:
            return self.session.query(SaleRecord).filter(
                SaleRecord.sellerID == sellerId,
                SaleRecord.dateInstallation.isnot(None),
                SaleRecord.dateInstallation >= start,
                SaleRecord.dateInstallation < end,
                SaleRecord.deletedAt.is_(None)
            ).order_by(SaleRecord.dateInstallation, SaleRecord.clientID).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load installations for seller {sellerId}: {e}")
            raise

    def _warnUnknownProducts(self, sales: List[SaleRecord], sellerCode: str):
        unknown = sorted({sale.produit or "" for sale in sales if normalizeProduct(sale.produit) is None})
        if unknown:
            logger.warning(
                f"Seller {sellerCode}: unrecognised products {unknown} "
                f"count as {self.configuration.pointValuation.unknownProductPoints} point(s) "
                f"and earn no commission"
            )
