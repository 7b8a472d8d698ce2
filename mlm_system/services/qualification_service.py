# mlm_system/services/qualification_service.py
"""
RC qualification and qualification ladder.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Optional, Union
import logging

from mlm_system.config.qualifications import (
    Qualification, QUALIFICATION_CONFIG, QUALIFICATION_LADDER, ACTION_PERMISSIONS,
    RC_TEAM_CAP, RC_TEAMS_REQUIRED, RC_TOTAL_REQUIRED
)
from mlm_system.utils.time_machine import timeMachine

logger = logging.getLogger(__name__)


@dataclass
class TeamPointSummary:
    """Lifetime points of one direct-recruit team."""

    teamId: str
    rawPoints: int
    recruitId: Optional[int] = None
    recruitName: str = ""

    @property
    def cappedPoints(self) -> int:
        return min(self.rawPoints, RC_TEAM_CAP)

    @property
    def qualified(self) -> bool:
        return self.rawPoints >= RC_TEAM_CAP

    @property
    def effectivePoints(self) -> int:
        """Unqualified teams count for nothing, never partially."""
        return self.cappedPoints if self.qualified else 0

    @property
    def deltaTo4k(self) -> int:
        return max(0, RC_TEAM_CAP - self.rawPoints)

    def toDict(self) -> Dict:
        return {
            "teamId": self.teamId,
            "recruitId": self.recruitId,
            "recruitName": self.recruitName,
            "originalPoints": self.rawPoints,
            "cappedPoints": self.cappedPoints,
            "effectivePoints": self.effectivePoints,
            "qualified": self.qualified
        }


@dataclass
class RCQualification:
    qualified: bool
    totalEffective: int
    qualifiedTeams: int
    details: str
    breakdown: List[TeamPointSummary] = field(default_factory=list)

    def toDict(self) -> Dict:
        return {
            "qualified": self.qualified,
            "totalEffective": self.totalEffective,
            "qualifiedTeams": self.qualifiedTeams,
            "details": self.details,
            "breakdown": [team.toDict() for team in self.breakdown]
        }


def computeRCQualification(teamPoints: Union[List[int], Dict[str, int]]) -> RCQualification:
    """
    Regional Coordinator check.

    A team qualifies at 4000 raw points and then counts for exactly 4000.
    RC needs at least 4 qualified teams AND 16000 effective points; the two
    gates are checked independently.
    """
    if isinstance(teamPoints, dict):
        items = list(teamPoints.items())
    else:
        items = [(str(index), points) for index, points in enumerate(teamPoints)]

    breakdown = [TeamPointSummary(teamId=teamId, rawPoints=points) for teamId, points in items]

    qualifiedTeams = sum(1 for team in breakdown if team.qualified)
    totalEffective = sum(team.effectivePoints for team in breakdown)

    hasMinimumTeams = qualifiedTeams >= RC_TEAMS_REQUIRED
    hasMinimumPoints = totalEffective >= RC_TOTAL_REQUIRED
    qualified = hasMinimumTeams and hasMinimumPoints

    details = (
        f"RC Qualification Check: {qualifiedTeams}/{RC_TEAMS_REQUIRED} équipes qualifiées "
        f"(≥{RC_TEAM_CAP} pts), {totalEffective}/{RC_TOTAL_REQUIRED} points effectifs."
    )
    if not hasMinimumTeams:
        details += f" Il manque {RC_TEAMS_REQUIRED - qualifiedTeams} équipe(s) qualifiée(s)."
    if not hasMinimumPoints:
        details += f" Il manque {RC_TOTAL_REQUIRED - totalEffective} points effectifs."
    if qualified:
        details += " Qualification RC atteinte !"

    logger.debug(
        f"RC check: teams={len(breakdown)}, qualifiedTeams={qualifiedTeams}, "
        f"totalEffective={totalEffective}, qualified={qualified}"
    )

    return RCQualification(
        qualified=qualified,
        totalEffective=totalEffective,
        qualifiedTeams=qualifiedTeams,
        details=details,
        breakdown=breakdown
    )


def determineQualification(
        personalPoints: int,
        recruitsCount: int = 0,
        groupPoints: int = 0,
        daysSinceStart: int = 0,
        teamPoints: Optional[List[int]] = None
) -> Dict:
    """
    Walk the ladder from CQ upwards and stop at the first unmet level.

    RC is the only level whose team criteria go through the capped team
    computation; every other level compares plain counts.
    """
    currentPosition = Qualification.NOUVEAU
    nextPosition: Optional[Qualification] = None
    rcDetails: Optional[RCQualification] = None

    for qualification in QUALIFICATION_LADDER:
        requirements = QUALIFICATION_CONFIG[qualification]
        meetsPoints = personalPoints >= requirements["personalPointsRequired"]

        if qualification == Qualification.RC and teamPoints is not None:
            rcDetails = computeRCQualification(teamPoints)
            meetsTeam = rcDetails.qualifiedTeams >= RC_TEAMS_REQUIRED
            meetsGroup = rcDetails.qualified
        else:
            meetsTeam = recruitsCount >= requirements["teamSizeRequired"]
            meetsGroup = groupPoints >= requirements["groupPointsRequired"]

        if meetsPoints and meetsTeam and meetsGroup:
            currentPosition = qualification
        else:
            nextPosition = qualification
            break

    missingCriteria = _missingCriteria(
        nextPosition, personalPoints, recruitsCount, groupPoints, teamPoints
    )

    logger.debug(
        f"Qualification: {currentPosition.value} -> "
        f"{nextPosition.value if nextPosition else None}, missing={missingCriteria}"
    )

    return {
        "positionActuelle": currentPosition.value,
        "prochainePossible": nextPosition.value if nextPosition else None,
        "criteresSatisfaits": len(missingCriteria) == 0,
        "criteresManquants": missingCriteria,
        "daysSinceStart": daysSinceStart,
        "rcDetails": rcDetails.details if rcDetails else None
    }


def _missingCriteria(
        nextPosition: Optional[Qualification],
        personalPoints: int,
        recruitsCount: int,
        groupPoints: int,
        teamPoints: Optional[List[int]]
) -> List[str]:
    if nextPosition is None:
        return []

    requirements = QUALIFICATION_CONFIG[nextPosition]
    missing = []

    if personalPoints < requirements["personalPointsRequired"]:
        missing.append(
            f"{requirements['personalPointsRequired'] - personalPoints} points personnels manquants"
        )

    if nextPosition == Qualification.RC and teamPoints is not None:
        rcResult = computeRCQualification(teamPoints)
        if rcResult.qualifiedTeams < RC_TEAMS_REQUIRED:
            missing.append(
                f"{RC_TEAMS_REQUIRED - rcResult.qualifiedTeams} équipe(s) qualifiée(s) "
                f"manquante(s) (≥{RC_TEAM_CAP} pts chacune)"
            )
        if rcResult.totalEffective < RC_TOTAL_REQUIRED:
            missing.append(
                f"{RC_TOTAL_REQUIRED - rcResult.totalEffective} points effectifs manquants "
                f"(plafonné à {RC_TEAM_CAP}/équipe)"
            )
    else:
        if recruitsCount < requirements["teamSizeRequired"]:
            missing.append(
                f"{requirements['teamSizeRequired'] - recruitsCount} vendeurs d'équipe manquants"
            )
        if groupPoints < requirements["groupPointsRequired"]:
            missing.append(
                f"{requirements['groupPointsRequired'] - groupPoints} points de groupe manquants"
            )

    return missing


def getNextLevel(position: str) -> Optional[str]:
    """Next rung of the ladder, None at the top or for unknown positions."""
    try:
        qualification = Qualification(position)
    except ValueError:
        return None

    if qualification == Qualification.NOUVEAU:
        return QUALIFICATION_LADDER[0].value

    index = QUALIFICATION_LADDER.index(qualification)
    if index < len(QUALIFICATION_LADDER) - 1:
        return QUALIFICATION_LADDER[index + 1].value
    return None


def isActionAuthorized(position: str, action: str) -> bool:
    """Check if a ladder position grants an action."""
    requiredLevel = ACTION_PERMISSIONS.get(action)
    if requiredLevel is None:
        return False

    try:
        qualification = Qualification(position)
    except ValueError:
        return False

    if qualification not in QUALIFICATION_LADDER:
        return False

    return QUALIFICATION_LADDER.index(qualification) >= requiredLevel


def daysRemaining(startDate: datetime, delayDays: int) -> int:
    """Days left in a qualification window opened at startDate."""
    return max(0, delayDays - timeMachine.daysSince(startDate))
