# mlm_system/services/team_service.py
"""
Lifetime points for a seller and for each of the teams under them.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Iterable, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from models import Seller, SaleRecord
from mlm_system.config.products import normalizeProduct
from mlm_system.utils.valuation import MLMConfiguration
from mlm_system.utils.hierarchy import SellerHierarchy
from mlm_system.services.qualification_service import TeamPointSummary
from mlm_system.services.cvd_service import isQualifyingSale
from mlm_system.events.event_bus import EventBus, TeamAggregated, publish
from mlm_system.exceptions import SellerNotFoundError

logger = logging.getLogger(__name__)


class RollupDepth(Enum):
    """
    How far a team's points reach below the direct recruit.

    DIRECT is the business rule: a team is worth the recruit's own sales
    only. FULL_SUBTREE changes RC arithmetic and exists for reporting.
    """
    DIRECT = "direct"
    FULL_SUBTREE = "full-subtree"


@dataclass
class TeamAggregate:
    sellerCode: str
    personalPoints: int = 0
    teams: List[TeamPointSummary] = field(default_factory=list)
    rollupDepth: RollupDepth = RollupDepth.DIRECT

    @property
    def teamPoints(self) -> Dict[str, int]:
        return {team.teamId: team.rawPoints for team in self.teams}

    @property
    def groupPoints(self) -> int:
        return sum(team.rawPoints for team in self.teams)

    @property
    def recruitsCount(self) -> int:
        return len(self.teams)

    def toDict(self) -> Dict:
        return {
            "sellerCode": self.sellerCode,
            "personalPoints": self.personalPoints,
            "teamPoints": self.teamPoints,
            "groupPoints": self.groupPoints,
            "recruitsCount": self.recruitsCount,
            "rollupDepth": self.rollupDepth.value,
            "teams": [team.toDict() for team in self.teams]
        }


class SalesTreeAggregator:
    """Pure aggregation over already-loaded sellers and sales."""

    def __init__(self, configuration: MLMConfiguration, rollupDepth: RollupDepth = RollupDepth.DIRECT):
        self.configuration = configuration
        self.rollupDepth = rollupDepth

    def aggregate(
            self,
            rootCode: str,
            sellers: Iterable,
            salesBySeller: Dict[int, List]
    ) -> TeamAggregate:
        """
        sellers must contain the root and its recruits (the whole subtree for
        FULL_SUBTREE); salesBySeller maps sellerID to that seller's sales.
        Inactive direct recruits do not open a team.
        """
        hierarchy = SellerHierarchy(sellers)
        hierarchy.checkAcyclic()
        rootIndex = hierarchy.indexOf(rootCode)
        root = hierarchy.nodes[rootIndex]

        result = TeamAggregate(sellerCode=rootCode, rollupDepth=self.rollupDepth)
        result.personalPoints = self.salesPoints(salesBySeller.get(root.sellerID, []))

        for recruitIndex in hierarchy.directRecruits(rootIndex):
            recruit = hierarchy.nodes[recruitIndex]
            if not getattr(recruit, "isActive", True):
                continue

            if self.rollupDepth == RollupDepth.FULL_SUBTREE:
                members = [hierarchy.nodes[i] for i in hierarchy.subtree(recruitIndex)]
            else:
                members = [recruit]

            points = sum(self.salesPoints(salesBySeller.get(member.sellerID, [])) for member in members)

            result.teams.append(TeamPointSummary(
                teamId=f"team_{recruit.sellerID}",
                rawPoints=points,
                recruitId=recruit.sellerID,
                recruitName=" ".join(
                    part for part in (getattr(recruit, "firstname", None), getattr(recruit, "surname", None))
                    if part
                )
            ))

        return result

    def salesPoints(self, sales: Iterable) -> int:
        return sum(self.configuration.pointsFor(sale.produit) for sale in sales if isQualifyingSale(sale))


class TeamService:
    """Loads a seller's hierarchy and sales, then aggregates lifetime points."""

    def __init__(
            self,
            session: Session,
            configuration: MLMConfiguration,
            rollupDepth: RollupDepth,
            eventBus: Optional[EventBus] = None
    ):
        self.session = session
        self.configuration = configuration
        self.aggregator = SalesTreeAggregator(configuration, rollupDepth)
        self.eventBus = eventBus

    async def getTeamPoints(self, sellerCode: str) -> TeamAggregate:
        """Personal points, per-team points and group points for a seller."""
        root = self.session.query(Seller).filter_by(sellerCode=sellerCode).first()
        if not root:
            raise SellerNotFoundError(sellerCode)

        sellers = self._loadHierarchy(root)
        salesBySeller = self._loadSales([seller.sellerID for seller in sellers])

        result = self.aggregator.aggregate(sellerCode, sellers, salesBySeller)

        logger.info(
            f"Team points for {sellerCode}: personal={result.personalPoints}, "
            f"teams={result.recruitsCount}, group={result.groupPoints} "
            f"({result.rollupDepth.value})"
        )

        await publish(self.eventBus, TeamAggregated(
            sellerCode=sellerCode,
            personalPoints=result.personalPoints,
            groupPoints=result.groupPoints,
            recruitsCount=result.recruitsCount
        ))

        return result

    async def getPersonalPoints(self, sellerCode: str) -> int:
        """Lifetime points of the seller's own installed sales."""
        seller = self.session.query(Seller).filter_by(sellerCode=sellerCode).first()
        if not seller:
            raise SellerNotFoundError(sellerCode)

        sales = self._loadSales([seller.sellerID]).get(seller.sellerID, [])
        return self.aggregator.salesPoints(sales)

    def _loadHierarchy(self, root: Seller) -> List[Seller]:
        """
        Root plus direct recruits, or the whole subtree level by level.
        Each code is expanded once, so a sponsor cycle cannot loop here.
        """
        sellers = [root]
        seenCodes = {root.sellerCode}
        frontier = [root.sellerCode]

        try:
            while frontier:
                recruits = self.session.query(Seller).filter(
                    Seller.sponsorCode.in_(frontier)
                ).order_by(Seller.sellerID).all()

                frontier = []
                for recruit in recruits:
                    if recruit.sellerCode in seenCodes:
                        continue
                    seenCodes.add(recruit.sellerCode)
                    sellers.append(recruit)
                    frontier.append(recruit.sellerCode)

                if self.aggregator.rollupDepth == RollupDepth.DIRECT:
                    break
        except SQLAlchemyError as e:
            logger.error(f"Failed to load recruits of {root.sellerCode}: {e}")
            raise

        return sellers

    def _loadSales(self, sellerIds: List[int]) -> Dict[int, List[SaleRecord]]:
        """All qualifying sales of the given sellers in one query."""
        salesBySeller: Dict[int, List[SaleRecord]] = {sellerId: [] for sellerId in sellerIds}
        if not sellerIds:
            return salesBySeller

        try:
            sales = self.session.query(SaleRecord).filter(
                SaleRecord.sellerID.in_(sellerIds),
                SaleRecord.dateInstallation.isnot(None),
                SaleRecord.deletedAt.is_(None)
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load sales for {len(sellerIds)} sellers: {e}")
            raise

        unknownCount = 0
        for sale in sales:
            salesBySeller.setdefault(sale.sellerID, []).append(sale)
            if normalizeProduct(sale.produit) is None:
                unknownCount += 1

        if unknownCount:
            logger.warning(
                f"{unknownCount} installed sale(s) with unrecognised product counted at "
                f"{self.configuration.pointValuation.unknownProductPoints} point(s)"
            )

        return salesBySeller
