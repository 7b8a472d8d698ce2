"""RC action plan: gaps, ranked objectives, priorities and the service."""
import asyncio
import json
from datetime import datetime

import pytest

from mlm_system.events.event_bus import RCEvaluated, ActionPlanGenerated
from mlm_system.exceptions import SellerNotFoundError
from mlm_system.services.action_plan_service import (
    ActionPlanService, MLMMetrics, buildRCActionPlan,
    calculateRCProgressPercentage, estimateTimeToRC
)
from mlm_system.services.team_service import RollupDepth
from mlm_system.utils.time_machine import timeMachine


def metrics(personalPoints, teamPoints, daysSinceStart=30, recruitsCount=None):
    return MLMMetrics(
        personalPoints=personalPoints,
        groupPoints=sum(teamPoints.values()),
        teamPoints=teamPoints,
        daysSinceStart=daysSinceStart,
        recruitsCount=len(teamPoints) if recruitsCount is None else recruitsCount,
    )


@pytest.fixture
def threeStrongTeams():
    return metrics(120, {"t1": 5000, "t2": 5000, "t3": 5000})


@pytest.fixture
def earlyNetwork():
    return metrics(40, {"a": 3500, "b": 2500, "c": 1500, "d": 500}, daysSinceStart=300)


class TestPlan:
    def test_one_team_missing(self, threeStrongTeams):
        plan = buildRCActionPlan(threeStrongTeams)

        assert plan.gaps.missingTeams == 1
        assert plan.gaps.deltaTo16000 == 4000
        assert plan.gaps.personalDelta == 0
        assert plan.rcDetails.qualified is False
        assert plan.positionActuelle == "ETL"
        assert plan.daysRemaining == 330
        assert plan.teamCount == 3

    def test_objectives_ranked_and_renumbered(self, threeStrongTeams):
        plan = buildRCActionPlan(threeStrongTeams)

        assert [objective.priority for objective in plan.objectives] == [1, 2, 3, 4]
        assert [objective.metricKey for objective in plan.objectives] == [
            "qualifiedTeams", "totalEffectivePoints", "leadershipTraining", "personalPoints"
        ]
        assert plan.objectives[0].title == "Recruter 1 équipe(s) supplémentaire(s)"
        assert plan.objectives[0].delta == 1

    def test_completed_personal_objective_kept_last(self, threeStrongTeams):
        plan = buildRCActionPlan(threeStrongTeams)

        personal = plan.objectives[-1]
        assert personal.title == "Points personnels atteints"
        assert personal.delta == 0
        assert personal.current == 120

    def test_leadership_objective_counts_teams(self, threeStrongTeams):
        plan = buildRCActionPlan(threeStrongTeams)

        leadership = next(o for o in plan.objectives if o.metricKey == "leadershipTraining")
        assert (leadership.target, leadership.current, leadership.delta) == (4, 3, 1)

    def test_early_network(self, earlyNetwork):
        plan = buildRCActionPlan(earlyNetwork)

        assert [objective.metricKey for objective in plan.objectives] == [
            "teamPoints.a", "teamPoints.b", "qualifiedTeams", "personalPoints", "teamDevelopment"
        ]
        assert [objective.priority for objective in plan.objectives] == [1, 2, 3, 4, 5]
        assert plan.objectives[2].title == "Qualifier vos 4 équipes non qualifiées"
        strengthen = plan.objectives[4]
        assert (strengthen.current, strengthen.delta) == (1500, 500)
        personal = plan.objectives[3]
        assert personal.delta == 60
        assert "Freebox Ultra = 6 pts" in personal.suggestedActions[-1]

    def test_close_team_objective(self, earlyNetwork):
        plan = buildRCActionPlan(earlyNetwork)

        close = plan.objectives[0]
        assert close.target == 4000
        assert close.current == 3500
        assert close.delta == 500
        assert close.link == "/equipe/a"

    def test_recruit_and_develop_wording(self):
        plan = buildRCActionPlan(metrics(100, {"a": 4200, "b": 100}))

        teams = next(o for o in plan.objectives if o.metricKey == "qualifiedTeams")
        assert teams.title == "Développer 1 équipe(s) + recruter 2 nouvelle(s)"
        assert teams.delta == 3

    def test_recruitment_urgent_near_deadline(self):
        relaxed = buildRCActionPlan(metrics(50, {"a": 4200}, daysSinceStart=10))
        urgent = buildRCActionPlan(metrics(50, {"a": 4200}, daysSinceStart=300))

        assert [o.metricKey for o in relaxed.objectives] == ["personalPoints", "qualifiedTeams"]
        assert [o.metricKey for o in urgent.objectives] == ["qualifiedTeams", "personalPoints"]

    def test_qualified_seller(self):
        plan = buildRCActionPlan(metrics(150, {"a": 4000, "b": 4000, "c": 4000, "d": 4000}, daysSinceStart=10))

        assert plan.rcDetails.qualified is True
        assert plan.gaps.missingTeams == 0
        assert plan.gaps.deltaTo16000 == 0
        assert [objective.metricKey for objective in plan.objectives] == ["leadershipTraining", "personalPoints"]
        assert plan.priorities == []

    def test_no_teams(self):
        plan = buildRCActionPlan(metrics(0, {}, daysSinceStart=0))

        assert plan.gaps.missingTeams == 4
        assert [o.metricKey for o in plan.objectives] == ["personalPoints", "qualifiedTeams"]
        assert [o.priority for o in plan.objectives] == [1, 2]
        assert plan.objectives[1].title == "Recruter 4 équipe(s) supplémentaire(s)"

    def test_window_exhausted(self):
        plan = buildRCActionPlan(metrics(0, {}, daysSinceStart=500))

        assert plan.daysRemaining == 0

    def test_json_ready(self, earlyNetwork):
        payload = buildRCActionPlan(earlyNetwork).toDict()

        assert payload["joursRestants"] == 60
        assert payload["gaps"]["perTeam"][0] == {"teamId": "a", "current": 3500, "deltaTo4k": 500}
        json.dumps(payload)


class TestPriorities:
    def test_one_team_missing(self, threeStrongTeams):
        assert buildRCActionPlan(threeStrongTeams).priorities == [
            "PRIORITÉ 2 : Recruter 1 équipe(s) supplémentaire(s)"
        ]

    def test_early_network(self, earlyNetwork):
        assert buildRCActionPlan(earlyNetwork).priorities == [
            "URGENT : Temps limité pour qualification RC",
            "PRIORITÉ 1 : 1 équipe(s) proche(s) de qualification",
            "PRIORITÉ 2 : Recruter 4 équipe(s) supplémentaire(s)",
            "PRIORITÉ 3 : 60 points personnels manquants",
        ]

    def test_qualified_teams_are_not_called_close(self):
        plan = buildRCActionPlan(metrics(100, {"a": 4000, "b": 3000}))

        assert "PRIORITÉ 1 : 1 équipe(s) proche(s) de qualification" in plan.priorities

    def test_manager_gets_leadership_priority(self):
        plan = buildRCActionPlan(metrics(100, {f"t{i}": 100 for i in range(5)}))

        assert plan.positionActuelle == "Manager"
        assert plan.priorities[-1] == "PRIORITÉ 4 : Formation leadership RC avancée"


class TestEstimates:
    def test_progress_percentage(self, threeStrongTeams, earlyNetwork):
        assert calculateRCProgressPercentage(threeStrongTeams) == 80
        assert calculateRCProgressPercentage(earlyNetwork) == 8
        assert calculateRCProgressPercentage(metrics(150, {k: 9000 for k in "abcd"})) == 100

    def test_progress_counts_every_qualified_team(self):
        assert calculateRCProgressPercentage(metrics(100, {k: 4000 for k in "abcde"})) == 110

    def test_time_to_rc_two_teams_missing_stays_medium(self):
        assert estimateTimeToRC(metrics(100, {"a": 4000, "b": 4000, "c": 1000})) == {
            "estimatedDays": 210,
            "confidence": "medium",
            "factors": ["+4 mois pour nouvelles équipes"],
        }

    def test_time_to_rc_large_points_gap_is_low(self):
        estimate = estimateTimeToRC(metrics(100, {"a": 4000}))

        assert estimate["estimatedDays"] == 360
        assert estimate["confidence"] == "low"

    def test_time_to_rc_one_team_missing(self, threeStrongTeams):
        assert estimateTimeToRC(threeStrongTeams) == {
            "estimatedDays": 150,
            "confidence": "medium",
            "factors": ["+2 mois pour nouvelles équipes"],
        }

    def test_time_to_rc_far_away(self, earlyNetwork):
        estimate = estimateTimeToRC(earlyNetwork)

        assert estimate["estimatedDays"] == 360
        assert estimate["confidence"] == "low"
        assert len(estimate["factors"]) == 3

    def test_time_to_rc_when_qualified(self):
        assert estimateTimeToRC(metrics(150, {k: 4000 for k in "abcd"})) == {
            "estimatedDays": 90,
            "confidence": "high",
            "factors": [],
        }


class TestService:
    @pytest.fixture
    def network(self, make_seller, make_sale):
        root = make_seller("ROOT", createdAt=datetime(2026, 1, 1))
        alpha = make_seller("ALPHA", sponsorCode="ROOT")
        make_sale(root, "Freebox Ultra", datetime(2026, 1, 15))
        make_sale(alpha, "Freebox Pop", datetime(2026, 2, 1))
        timeMachine.setTime(datetime(2026, 3, 2))
        return root

    def test_generate_plan(self, session, configuration, network):
        plan = asyncio.run(ActionPlanService(session, configuration, RollupDepth.DIRECT).generateActionPlan(network.sellerID))

        assert plan.personalPoints == 6
        assert plan.groupPoints == 4
        assert plan.teamCount == 1
        assert plan.daysRemaining == 300
        assert plan.positionActuelle == "Nouveau"
        assert [objective.priority for objective in plan.objectives] == list(range(1, len(plan.objectives) + 1))
        json.dumps(plan.toDict())

    def test_generate_plan_publishes_notices(self, session, configuration, bus, network):
        received = []
        bus.subscribe(RCEvaluated, received.append)
        bus.subscribe(ActionPlanGenerated, received.append)

        service = ActionPlanService(session, configuration, RollupDepth.DIRECT, bus)
        plan = asyncio.run(service.generateActionPlan(network.sellerID))

        assert [type(event) for event in received] == [RCEvaluated, ActionPlanGenerated]
        assert received[0].qualified is False
        assert received[1].objectivesCount == len(plan.objectives)

    def test_quick_metrics(self, session, configuration, network):
        assert asyncio.run(ActionPlanService(session, configuration, RollupDepth.DIRECT).getQuickMetrics(network.sellerID)) == {
            "personalPoints": 6,
            "teamCount": 1,
            "totalGroupPoints": 4,
            "currentLevel": "Nouveau",
            "progressPercentage": 1,
        }

    def test_validate_seller(self, session, configuration, network):
        service = ActionPlanService(session, configuration, RollupDepth.DIRECT)

        assert service.validateSellerExists(network.sellerID) is True
        assert service.validateSellerExists(999) is False

    def test_configuration_and_depth_are_required(self, session, configuration):
        with pytest.raises(TypeError):
            ActionPlanService(session)
        with pytest.raises(TypeError):
            ActionPlanService(session, configuration)

    def test_unknown_seller(self, session, configuration):
        with pytest.raises(SellerNotFoundError):
            asyncio.run(ActionPlanService(session, configuration, RollupDepth.DIRECT).generateActionPlan(999))
