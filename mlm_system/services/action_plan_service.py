# mlm_system/services/action_plan_service.py
"""
Personalised action plan towards Regional Coordinator (RC).

Gaps to each RC criterion are turned into ranked objectives the seller
can act on, plus a short list of global priorities.
"""
from dataclasses import dataclass, field
from typing import List, Dict, Optional
from sqlalchemy.orm import Session
import logging

from models import Seller
from mlm_system.config.products import POINTS_PRODUIT, PRODUCT_DISPLAY_NAMES
from mlm_system.config.qualifications import (
    Qualification, RC_TEAM_CAP, RC_TEAMS_REQUIRED, RC_TOTAL_REQUIRED, RC_WINDOW_DAYS,
    RC_PERSONAL_POINTS, TEAM_CLOSE_THRESHOLD, TEAM_STRENGTHEN_THRESHOLD,
    TEAM_CALLOUT_THRESHOLD, URGENT_DAYS_REMAINING, URGENT_RECRUITMENT_DAYS
)
from mlm_system.services.qualification_service import (
    computeRCQualification, determineQualification, RCQualification
)
from mlm_system.services.team_service import TeamService, RollupDepth
from mlm_system.utils.valuation import MLMConfiguration
from mlm_system.utils.time_machine import timeMachine
from mlm_system.events.event_bus import EventBus, RCEvaluated, ActionPlanGenerated, publish
from mlm_system.exceptions import SellerNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class MLMMetrics:
    personalPoints: int
    groupPoints: int
    teamPoints: Dict[str, int]
    daysSinceStart: int
    recruitsCount: int


@dataclass
class ActionObjective:
    id: str
    title: str
    description: str
    target: int
    current: int
    delta: int
    priority: int  # 1 = most urgent
    suggestedActions: List[str]
    metricKey: str
    link: Optional[str] = None

    def toDict(self) -> Dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "target": self.target,
            "current": self.current,
            "delta": self.delta,
            "priority": self.priority,
            "suggestedActions": list(self.suggestedActions),
            "metricKey": self.metricKey,
            "link": self.link
        }


@dataclass
class TeamGap:
    teamId: str
    current: int
    deltaTo4k: int


@dataclass
class RCGaps:
    personalDelta: int
    deltaTo16000: int
    missingTeams: int
    perTeam: List[TeamGap] = field(default_factory=list)

    def toDict(self) -> Dict:
        return {
            "personalDelta": self.personalDelta,
            "deltaTo16000": self.deltaTo16000,
            "missingTeams": self.missingTeams,
            "perTeam": [
                {"teamId": team.teamId, "current": team.current, "deltaTo4k": team.deltaTo4k}
                for team in self.perTeam
            ]
        }


@dataclass
class ActionPlanResult:
    positionActuelle: str
    daysRemaining: int
    personalPoints: int
    groupPoints: int
    teamCount: int
    rcDetails: RCQualification
    gaps: RCGaps
    objectives: List[ActionObjective]
    priorities: List[str]

    def toDict(self) -> Dict:
        return {
            "positionActuelle": self.positionActuelle,
            "joursRestants": self.daysRemaining,
            "personalPoints": self.personalPoints,
            "groupPoints": self.groupPoints,
            "teamCount": self.teamCount,
            "rcDetails": self.rcDetails.toDict(),
            "gaps": self.gaps.toDict(),
            "objectives": [objective.toDict() for objective in self.objectives],
            "priorities": list(self.priorities)
        }


def buildRCActionPlan(metrics: MLMMetrics) -> ActionPlanResult:
    """Analyse RC gaps and build the ranked objective list."""
    teamPointsList = list(metrics.teamPoints.values())

    # Position is derived on its own, the RC check below drives the gaps
    qualification = determineQualification(
        metrics.personalPoints,
        metrics.recruitsCount,
        metrics.groupPoints,
        metrics.daysSinceStart,
        teamPointsList
    )
    rcDetails = computeRCQualification(metrics.teamPoints)

    daysLeft = max(0, RC_WINDOW_DAYS - metrics.daysSinceStart)
    gaps = calculateRCGaps(metrics, rcDetails)
    objectives = generateRCObjectives(metrics, gaps, rcDetails, daysLeft)
    priorities = determinePriorities(gaps, daysLeft, qualification["positionActuelle"])

    return ActionPlanResult(
        positionActuelle=qualification["positionActuelle"],
        daysRemaining=daysLeft,
        personalPoints=metrics.personalPoints,
        groupPoints=metrics.groupPoints,
        teamCount=len(metrics.teamPoints),
        rcDetails=rcDetails,
        gaps=gaps,
        objectives=objectives,
        priorities=priorities
    )


def calculateRCGaps(metrics: MLMMetrics, rcDetails: RCQualification) -> RCGaps:
    return RCGaps(
        personalDelta=max(0, RC_PERSONAL_POINTS - metrics.personalPoints),
        deltaTo16000=max(0, RC_TOTAL_REQUIRED - rcDetails.totalEffective),
        missingTeams=max(0, RC_TEAMS_REQUIRED - rcDetails.qualifiedTeams),
        perTeam=[
            TeamGap(teamId=teamId, current=points, deltaTo4k=max(0, RC_TEAM_CAP - points))
            for teamId, points in metrics.teamPoints.items()
        ]
    )


def generateRCObjectives(
        metrics: MLMMetrics,
        gaps: RCGaps,
        rcDetails: RCQualification,
        daysLeft: int
) -> List[ActionObjective]:
    """
    Build objectives with relative priorities, sort them, then renumber
    priorities 1..N.
    """
    objectives: List[ActionObjective] = []

    def nextId() -> str:
        return f"rc-obj-{len(objectives) + 1}"

    # Personal points: always shown, pushed down once completed
    personalCompleted = gaps.personalDelta == 0
    bestProduct = max(POINTS_PRODUIT, key=POINTS_PRODUIT.get)
    objectives.append(ActionObjective(
        id=nextId(),
        title="Points personnels atteints" if personalCompleted
        else f"Atteindre {RC_PERSONAL_POINTS} points personnels",
        description=(
            f"Vous avez {metrics.personalPoints} points personnels "
            f"(objectif: {RC_PERSONAL_POINTS} points) - Condition remplie !"
            if personalCompleted else
            f"Vous devez obtenir {gaps.personalDelta} points personnels "
            f"supplémentaires pour la qualification RC"
        ),
        target=RC_PERSONAL_POINTS,
        current=metrics.personalPoints,
        delta=gaps.personalDelta,
        priority=5 if personalCompleted else 2,
        suggestedActions=["Maintenir votre niveau de performance actuel"] if personalCompleted else [
            "Finaliser les installations en attente",
            "Prospecter de nouveaux clients qualifiés",
            f"Cibler les forfaits à fort points "
            f"({PRODUCT_DISPLAY_NAMES[bestProduct]} = {POINTS_PRODUIT[bestProduct]} pts)"
        ],
        metricKey="personalPoints",
        link="/clients?filter=installations-pending"
    ))

    # Teams close to the threshold
    for team in gaps.perTeam:
        if TEAM_CLOSE_THRESHOLD <= team.current < RC_TEAM_CAP:
            objectives.append(ActionObjective(
                id=nextId(),
                title=f"Pousser l'équipe {team.teamId} vers {RC_TEAM_CAP} points",
                description=(
                    f"Cette équipe a {team.current} points et peut rapidement "
                    f"atteindre le seuil de qualification"
                ),
                target=RC_TEAM_CAP,
                current=team.current,
                delta=team.deltaTo4k,
                priority=1,
                suggestedActions=[
                    "Accompagner les vendeurs de cette équipe",
                    "Organiser des formations ciblées",
                    "Aider à finaliser les installations en cours"
                ],
                metricKey=f"teamPoints.{team.teamId}",
                link=f"/equipe/{team.teamId}"
            ))

    # Missing qualified teams: recruit, develop, or both
    if gaps.missingTeams > 0:
        existingTeams = len(metrics.teamPoints)
        needsNewTeams = max(0, RC_TEAMS_REQUIRED - existingTeams)
        needsToQualify = existingTeams - rcDetails.qualifiedTeams

        if needsNewTeams > 0 and needsToQualify > 0:
            title = f"Développer {needsToQualify} équipe(s) + recruter {needsNewTeams} nouvelle(s)"
            description = (
                f"Vous avez {existingTeams} équipes. Il faut qualifier les {needsToQualify} "
                f"existantes et recruter {needsNewTeams} équipe(s) supplémentaire(s)"
            )
        elif needsNewTeams > 0:
            title = f"Recruter {needsNewTeams} équipe(s) supplémentaire(s)"
            description = (
                f"Vous avez {existingTeams} équipes sur {RC_TEAMS_REQUIRED} requises. "
                f"Il faut recruter {needsNewTeams} équipe(s) supplémentaire(s) puis les qualifier"
            )
        else:
            title = f"Qualifier vos {needsToQualify} équipes non qualifiées"
            description = (
                f"Vous avez {existingTeams} équipes dont {rcDetails.qualifiedTeams} qualifiée(s) "
                f"(≥{RC_TEAM_CAP} points). Concentrez-vous sur leur développement"
            )

        objectives.append(ActionObjective(
            id=nextId(),
            title=title,
            description=description,
            target=RC_TEAMS_REQUIRED,
            current=rcDetails.qualifiedTeams,
            delta=gaps.missingTeams,
            priority=1 if daysLeft < URGENT_RECRUITMENT_DAYS else 2,
            suggestedActions=[
                "Recruter de nouveaux vendeurs talentueux",
                "Former et accompagner les nouvelles recrues",
                f"Développer les équipes existantes vers {RC_TEAM_CAP} points",
                "Mettre en place un système de mentorat"
            ] if needsNewTeams > 0 else [
                "Accompagner intensivement vos équipes actuelles",
                "Organiser des formations commerciales ciblées",
                "Aider à finaliser les installations en cours",
                "Fixer des objectifs de points clairs par équipe"
            ],
            metricKey="qualifiedTeams",
            link="/recruitment"
        ))

    # Intermediate teams
    teamsToStrengthen = [
        team for team in gaps.perTeam
        if TEAM_STRENGTHEN_THRESHOLD <= team.current < TEAM_CLOSE_THRESHOLD
    ]
    if teamsToStrengthen:
        objectives.append(ActionObjective(
            id=nextId(),
            title="Renforcer les équipes intermédiaires",
            description=f"{len(teamsToStrengthen)} équipe(s) ont un potentiel de croissance significatif",
            target=TEAM_CLOSE_THRESHOLD,
            current=max(team.current for team in teamsToStrengthen),
            delta=min(TEAM_CLOSE_THRESHOLD - team.current for team in teamsToStrengthen),
            priority=3,
            suggestedActions=[
                "Intensifier le coaching des équipes",
                "Mettre en place des challenges d'équipe",
                "Organiser des formations commerciales avancées"
            ],
            metricKey="teamDevelopment",
            link="/mlm/teams"
        ))

    # Leadership readiness once RC is within reach
    if rcDetails.qualifiedTeams >= RC_TEAMS_REQUIRED - 1 or gaps.deltaTo16000 < RC_TEAM_CAP:
        objectives.append(ActionObjective(
            id=nextId(),
            title="Formation leadership RC",
            description="Préparez-vous aux responsabilités de Regional Coordinator",
            target=RC_TEAMS_REQUIRED,
            current=rcDetails.qualifiedTeams,
            delta=gaps.missingTeams,
            priority=4,
            suggestedActions=[
                "Suivre une formation en management d'équipes",
                "Développer vos compétences de mentorat",
                "Apprendre la gestion de région commerciale",
                "Participer aux sessions de leadership avancé"
            ],
            metricKey="leadershipTraining",
            link="/formation/leadership"
        ))

    # Final push on the aggregate
    if 0 < gaps.deltaTo16000 < 2 * RC_TEAM_CAP:
        objectives.append(ActionObjective(
            id=nextId(),
            title=f"Atteindre {RC_TOTAL_REQUIRED} points effectifs totaux",
            description=f"Il vous reste {gaps.deltaTo16000} points pour atteindre l'objectif global RC",
            target=RC_TOTAL_REQUIRED,
            current=rcDetails.totalEffective,
            delta=gaps.deltaTo16000,
            priority=2,
            suggestedActions=[
                "Optimiser la répartition des efforts entre équipes",
                "Maximiser les points de chaque équipe qualifiée",
                "Accompagner les équipes les plus proches des seuils"
            ],
            metricKey="totalEffectivePoints",
            link="/mlm/rc-progress"
        ))

    # Stable sort keeps insertion order among equal priorities
    objectives.sort(key=lambda objective: objective.priority)
    for rank, objective in enumerate(objectives, start=1):
        objective.priority = rank

    return objectives


def determinePriorities(gaps: RCGaps, daysLeft: int, positionActuelle: str) -> List[str]:
    priorities = []

    if daysLeft < URGENT_DAYS_REMAINING:
        priorities.append("URGENT : Temps limité pour qualification RC")

    teamsClose = [
        team for team in gaps.perTeam
        if TEAM_CALLOUT_THRESHOLD <= team.current < RC_TEAM_CAP
    ]
    if teamsClose:
        priorities.append(f"PRIORITÉ 1 : {len(teamsClose)} équipe(s) proche(s) de qualification")

    if gaps.missingTeams > 0:
        priorities.append(f"PRIORITÉ 2 : Recruter {gaps.missingTeams} équipe(s) supplémentaire(s)")

    if gaps.personalDelta > 0:
        priorities.append(f"PRIORITÉ 3 : {gaps.personalDelta} points personnels manquants")

    if positionActuelle == Qualification.MANAGER.value:
        priorities.append("PRIORITÉ 4 : Formation leadership RC avancée")

    return priorities


def calculateRCProgressPercentage(metrics: MLMMetrics) -> int:
    """Composite progress: 40% teams, 40% effective points, 20% personal points."""
    rcDetails = computeRCQualification(metrics.teamPoints)

    # Only the points shares are capped, extra qualified teams push past 100
    teamsProgress = rcDetails.qualifiedTeams / RC_TEAMS_REQUIRED * 40
    pointsProgress = min(rcDetails.totalEffective / RC_TOTAL_REQUIRED, 1) * 40
    personalProgress = min(metrics.personalPoints / RC_PERSONAL_POINTS, 1) * 20

    return round(teamsProgress + pointsProgress + personalProgress)


def estimateTimeToRC(metrics: MLMMetrics) -> Dict:
    """Rough estimate of the days still needed to reach RC."""
    gaps = calculateRCGaps(metrics, computeRCQualification(metrics.teamPoints))
    factors = []

    estimatedDays = 90
    confidence = "medium"

    if gaps.missingTeams > 0:
        estimatedDays += gaps.missingTeams * 60
        factors.append(f"+{gaps.missingTeams * 2} mois pour nouvelles équipes")

    if gaps.deltaTo16000 > 2 * RC_TEAM_CAP:
        estimatedDays += 120
        factors.append("+4 mois pour rattrapage points")
        confidence = "low"

    if metrics.personalPoints < 75:
        estimatedDays += 60
        factors.append("+2 mois pour progression personnelle")

    # Qualified teams outweigh the points gap
    if gaps.missingTeams == 0:
        confidence = "high"
    elif gaps.missingTeams <= 1:
        confidence = "medium"

    return {
        "estimatedDays": min(estimatedDays, RC_WINDOW_DAYS),
        "confidence": confidence,
        "factors": factors
    }


class ActionPlanService:
    """Loads a seller's metrics and builds the RC action plan."""

    def __init__(
            self,
            session: Session,
            configuration: MLMConfiguration,
            rollupDepth: RollupDepth,
            eventBus: Optional[EventBus] = None
    ):
        self.session = session
        self.eventBus = eventBus
        self.teamService = TeamService(session, configuration, rollupDepth, eventBus)

    async def generateActionPlan(self, sellerId: int) -> ActionPlanResult:
        """Main entry point for the action plan endpoint."""
        metrics = await self.fetchMetrics(sellerId)
        plan = buildRCActionPlan(metrics)

        logger.info(
            f"Action plan for seller {sellerId}: position={plan.positionActuelle}, "
            f"{len(plan.objectives)} objectives, {plan.daysRemaining} days left"
        )

        await publish(self.eventBus, RCEvaluated(
            sellerId=sellerId,
            qualified=plan.rcDetails.qualified,
            qualifiedTeams=plan.rcDetails.qualifiedTeams,
            totalEffective=plan.rcDetails.totalEffective
        ))
        await publish(self.eventBus, ActionPlanGenerated(
            sellerId=sellerId,
            positionActuelle=plan.positionActuelle,
            objectivesCount=len(plan.objectives)
        ))

        return plan

    async def fetchMetrics(self, sellerId: int) -> MLMMetrics:
        seller = self._getSeller(sellerId)
        aggregate = await self.teamService.getTeamPoints(seller.sellerCode)

        return MLMMetrics(
            personalPoints=aggregate.personalPoints,
            groupPoints=aggregate.groupPoints,
            teamPoints=aggregate.teamPoints,
            daysSinceStart=timeMachine.daysSince(seller.createdAt),
            recruitsCount=aggregate.recruitsCount
        )

    async def getQuickMetrics(self, sellerId: int) -> Dict:
        """Summary without building the objectives."""
        metrics = await self.fetchMetrics(sellerId)
        qualification = determineQualification(
            metrics.personalPoints,
            metrics.recruitsCount,
            metrics.groupPoints,
            metrics.daysSinceStart,
            list(metrics.teamPoints.values())
        )

        return {
            "personalPoints": metrics.personalPoints,
            "teamCount": len(metrics.teamPoints),
            "totalGroupPoints": metrics.groupPoints,
            "currentLevel": qualification["positionActuelle"],
            "progressPercentage": calculateRCProgressPercentage(metrics)
        }

    def validateSellerExists(self, sellerId: int) -> bool:
        seller = self.session.query(Seller).filter_by(sellerID=sellerId).first()
        return bool(seller and seller.sellerCode)

    def _getSeller(self, sellerId: int) -> Seller:
        seller = self.session.query(Seller).filter_by(sellerID=sellerId).first()
        if not seller or not seller.sellerCode:
            raise SellerNotFoundError(sellerId)
        return seller
