"""RC qualification with capped teams, and the qualification ladder."""
from datetime import datetime

import pytest

from mlm_system.services.qualification_service import (
    TeamPointSummary, computeRCQualification, determineQualification,
    getNextLevel, isActionAuthorized, daysRemaining
)
from mlm_system.utils.time_machine import timeMachine


class TestRCQualification:
    def test_four_teams_at_cap_qualify(self):
        result = computeRCQualification([4000, 4000, 4000, 4000])

        assert result.qualifiedTeams == 4
        assert result.totalEffective == 16000
        assert result.qualified is True
        assert result.details.endswith("Qualification RC atteinte !")

    def test_three_strong_teams_are_not_enough(self):
        result = computeRCQualification([5000, 5000, 5000])

        assert result.qualifiedTeams == 3
        assert result.totalEffective == 12000
        assert result.qualified is False
        assert "Il manque 1 équipe(s) qualifiée(s)." in result.details
        assert "Il manque 4000 points effectifs." in result.details

    def test_team_points_are_capped(self):
        result = computeRCQualification([10000])

        team = result.breakdown[0]
        assert team.cappedPoints == 4000
        assert team.effectivePoints == 4000
        assert result.totalEffective == 4000

    def test_unqualified_teams_count_nothing(self):
        # 16000 raw points spread over five teams below the cap
        result = computeRCQualification([3200] * 5)

        assert result.qualifiedTeams == 0
        assert result.totalEffective == 0
        assert result.qualified is False

    def test_just_below_cap_everywhere(self):
        result = computeRCQualification([3999] * 4)

        assert result.qualifiedTeams == 0
        assert result.qualified is False

    def test_extra_teams_beyond_four(self):
        result = computeRCQualification([4000, 9000, 4100, 4000, 100])

        assert result.qualifiedTeams == 4
        assert result.totalEffective == 16000
        assert result.qualified is True

    def test_no_teams(self):
        result = computeRCQualification([])

        assert result.qualifiedTeams == 0
        assert result.totalEffective == 0
        assert result.qualified is False

    def test_dict_input_keeps_team_ids(self):
        result = computeRCQualification({"team_7": 4500, "team_9": 100})

        assert [team.teamId for team in result.breakdown] == ["team_7", "team_9"]
        assert result.toDict()["breakdown"][0] == {
            "teamId": "team_7",
            "recruitId": None,
            "recruitName": "",
            "originalPoints": 4500,
            "cappedPoints": 4000,
            "effectivePoints": 4000,
            "qualified": True,
        }

    def test_list_input_numbers_teams(self):
        result = computeRCQualification([1, 2])

        assert [team.teamId for team in result.breakdown] == ["0", "1"]

    @pytest.mark.parametrize("points, delta", [(0, 4000), (3999, 1), (4000, 0), (7000, 0)])
    def test_delta_to_cap(self, points, delta):
        assert TeamPointSummary(teamId="t", rawPoints=points).deltaTo4k == delta


class TestLadder:
    def test_newcomer(self):
        result = determineQualification(0)

        assert result["positionActuelle"] == "Nouveau"
        assert result["prochainePossible"] == "CQ"
        assert result["criteresManquants"] == ["25 points personnels manquants"]
        assert result["criteresSatisfaits"] is False

    def test_cq_missing_team_criteria(self):
        result = determineQualification(30, recruitsCount=0, groupPoints=0)

        assert result["positionActuelle"] == "CQ"
        assert result["prochainePossible"] == "ETT"
        assert result["criteresManquants"] == [
            "20 points personnels manquants",
            "2 vendeurs d'équipe manquants",
            "150 points de groupe manquants",
        ]

    def test_stops_at_first_unmet_level(self):
        result = determineQualification(60, recruitsCount=10, groupPoints=100000)

        assert result["positionActuelle"] == "ETT"
        assert result["prochainePossible"] == "ETL"
        assert result["criteresManquants"] == ["15 points personnels manquants"]

    def test_manager_without_team_breakdown(self):
        result = determineQualification(120, recruitsCount=5, groupPoints=500, daysSinceStart=40)

        assert result["positionActuelle"] == "Manager"
        assert result["prochainePossible"] == "RC"
        assert result["criteresManquants"] == ["15500 points de groupe manquants"]
        assert result["rcDetails"] is None
        assert result["daysSinceStart"] == 40

    def test_rc_uses_capped_teams(self):
        result = determineQualification(
            120, recruitsCount=5, groupPoints=15000, teamPoints=[5000, 5000, 5000]
        )

        assert result["positionActuelle"] == "Manager"
        assert result["prochainePossible"] == "RC"
        assert result["criteresManquants"] == [
            "1 équipe(s) qualifiée(s) manquante(s) (≥4000 pts chacune)",
            "4000 points effectifs manquants (plafonné à 4000/équipe)",
        ]
        assert result["rcDetails"].startswith("RC Qualification Check: 3/4")

    def test_raw_group_points_do_not_make_rc(self):
        result = determineQualification(
            120, recruitsCount=5, groupPoints=16000, teamPoints=[3200] * 5
        )

        assert result["positionActuelle"] == "Manager"

    def test_rc_reached(self):
        result = determineQualification(
            120, recruitsCount=5, groupPoints=16000, teamPoints=[4000] * 4
        )

        assert result["positionActuelle"] == "RC"
        assert result["prochainePossible"] == "RVP"
        assert result["criteresManquants"] == [
            "30 points personnels manquants",
            "20 vendeurs d'équipe manquants",
        ]


@pytest.mark.parametrize("position, expected", [
    ("Nouveau", "CQ"),
    ("CQ", "ETT"),
    ("Manager", "RC"),
    ("RVP", "SVP"),
    ("SVP", None),
    ("Inconnu", None),
])
def test_next_level(position, expected):
    assert getNextLevel(position) == expected


@pytest.mark.parametrize("position, action, allowed", [
    ("CQ", "creer_prospect", True),
    ("CQ", "voir_equipe", False),
    ("ETT", "voir_equipe", True),
    ("RC", "acceder_gestion_avancee", True),
    ("Manager", "acceder_gestion_avancee", False),
    ("SVP", "gestion_executive", True),
    ("Nouveau", "creer_prospect", False),
    ("SVP", "action_inconnue", False),
])
def test_action_authorization(position, action, allowed):
    assert isActionAuthorized(position, action) is allowed


def test_days_remaining():
    timeMachine.setTime(datetime(2026, 3, 1))

    assert daysRemaining(datetime(2026, 1, 1), 120) == 61
    assert daysRemaining(datetime(2025, 1, 1), 120) == 0
    assert daysRemaining(datetime(2026, 6, 1), 30) == 30

    timeMachine.advanceTime(days=10)

    assert daysRemaining(datetime(2026, 1, 1), 120) == 51
