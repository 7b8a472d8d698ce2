import os
from dotenv import load_dotenv

# .env
load_dotenv()

# Base de données CRM (lecture seule)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///crm.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Points policy: unrecognised products still count, with this many points
UNKNOWN_PRODUCT_POINTS = int(os.getenv("UNKNOWN_PRODUCT_POINTS", "1"))

# Guaranteed commission for the first palier (5 points) of the month
FIRST_PALIER_MINIMUM = int(os.getenv("FIRST_PALIER_MINIMUM", "60"))

# "direct" or "full-subtree"
TEAM_ROLLUP_DEPTH = os.getenv("TEAM_ROLLUP_DEPTH", "direct")
