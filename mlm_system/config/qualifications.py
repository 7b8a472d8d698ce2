# mlm_system/config/qualifications.py
"""
MLM qualification ladder configuration and constants.
"""
from enum import Enum


class Qualification(Enum):
    NOUVEAU = "Nouveau"
    CQ = "CQ"
    ETT = "ETT"
    ETL = "ETL"
    MANAGER = "Manager"
    RC = "RC"
    RVP = "RVP"
    SVP = "SVP"


# Ladder order, lowest first. NOUVEAU has no criteria.
QUALIFICATION_LADDER = [
    Qualification.CQ,
    Qualification.ETT,
    Qualification.ETL,
    Qualification.MANAGER,
    Qualification.RC,
    Qualification.RVP,
    Qualification.SVP,
]

QUALIFICATION_CONFIG = {
    Qualification.CQ: {
        "personalPointsRequired": 25,
        "teamSizeRequired": 0,
        "groupPointsRequired": 0,
        "delayDays": 30,
        "bonusAmount": 300,
        "description": "Conseiller Qualifié - Démarrage du parcours MLM"
    },
    Qualification.ETT: {
        "personalPointsRequired": 50,
        "teamSizeRequired": 2,
        "groupPointsRequired": 150,
        "delayDays": 30,
        "bonusAmount": 800,
        "description": "Executive Team Trainer - Développement de votre équipe"
    },
    Qualification.ETL: {
        "personalPointsRequired": 75,
        "teamSizeRequired": 2,
        "groupPointsRequired": 0,
        "delayDays": 120,
        "bonusAmount": 2000,
        "description": "Expert Terrain Leader - Management avec développement de leaders ETT"
    },
    Qualification.MANAGER: {
        "personalPointsRequired": 100,
        "teamSizeRequired": 5,
        "groupPointsRequired": 0,
        "delayDays": 180,
        "bonusAmount": 5000,
        "description": "Manager - Direction d'organisation commerciale"
    },
    Qualification.RC: {
        "personalPointsRequired": 100,
        "teamSizeRequired": 4,
        "groupPointsRequired": 16000,
        "delayDays": 360,
        "bonusAmount": 16000,
        "description": "Regional Coordinator - Coordination régionale avec répartition équilibrée"
    },
    Qualification.RVP: {
        "personalPointsRequired": 150,
        "teamSizeRequired": 25,
        "groupPointsRequired": 0,
        "delayDays": 540,
        "bonusAmount": 30000,
        "description": "Responsable Vice-Président - Direction nationale"
    },
    Qualification.SVP: {
        "personalPointsRequired": 200,
        "teamSizeRequired": 50,
        "groupPointsRequired": 0,
        "delayDays": 720,
        "bonusAmount": 50000,
        "description": "Senior Vice-Président - Direction exécutive"
    }
}

# RC rules
RC_TEAM_CAP = 4000  # Points per team, also the qualifying threshold
RC_TEAMS_REQUIRED = 4
RC_TOTAL_REQUIRED = 16000
RC_WINDOW_DAYS = 360
RC_PERSONAL_POINTS = 100

# Action plan thresholds
TEAM_CLOSE_THRESHOLD = 2000
TEAM_STRENGTHEN_THRESHOLD = 1000
TEAM_CALLOUT_THRESHOLD = 3000
URGENT_DAYS_REMAINING = 180
URGENT_RECRUITMENT_DAYS = 90

# Minimum ladder level (index in QUALIFICATION_LADDER) for each action
ACTION_PERMISSIONS = {
    "creer_prospect": 0,             # CQ and above
    "modifier_client": 0,
    "voir_equipe": 1,                # ETT and above
    "creer_tache_equipe": 1,
    "voir_commissions_equipe": 2,    # ETL and above
    "modifier_parametre_groupe": 3,  # Manager and above
    "acceder_gestion_avancee": 4,    # RC and above
    "administration_complete": 5,    # RVP and above
    "gestion_executive": 6,          # SVP only
}
