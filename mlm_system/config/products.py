# mlm_system/config/products.py
"""
Product catalogue, point values and CVD commission schedule.
"""
from enum import Enum
from decimal import Decimal
from typing import Optional


class Product(Enum):
    FREEBOX_ULTRA = "freebox ultra"
    FREEBOX_ESSENTIEL = "freebox essentiel"
    FREEBOX_POP = "freebox pop"
    FORFAIT_5G = "forfait 5g"


# Spellings seen in the CRM that do not match a canonical value
PRODUCT_ALIASES = {
    "5g": Product.FORFAIT_5G,
    "forfait5g": Product.FORFAIT_5G,
    "freeboxultra": Product.FREEBOX_ULTRA,
    "freeboxessentiel": Product.FREEBOX_ESSENTIEL,
    "freeboxpop": Product.FREEBOX_POP,
}

PRODUCT_DISPLAY_NAMES = {
    Product.FREEBOX_ULTRA: "Freebox Ultra",
    Product.FREEBOX_ESSENTIEL: "Freebox Essentiel",
    Product.FREEBOX_POP: "Freebox Pop",
    Product.FORFAIT_5G: "Forfait 5G",
}

POINTS_PRODUIT = {
    Product.FREEBOX_ULTRA: 6,
    Product.FREEBOX_ESSENTIEL: 5,
    Product.FREEBOX_POP: 4,
    Product.FORFAIT_5G: 1,
}

# Barème CVD: tranche -> product -> commission (EUR)
BAREME_CVD = {
    1: {
        Product.FREEBOX_ULTRA: Decimal("50"),
        Product.FREEBOX_ESSENTIEL: Decimal("50"),
        Product.FREEBOX_POP: Decimal("50"),
        Product.FORFAIT_5G: Decimal("10"),
    },
    2: {
        Product.FREEBOX_ULTRA: Decimal("80"),
        Product.FREEBOX_ESSENTIEL: Decimal("70"),
        Product.FREEBOX_POP: Decimal("60"),
        Product.FORFAIT_5G: Decimal("10"),
    },
    3: {
        Product.FREEBOX_ULTRA: Decimal("100"),
        Product.FREEBOX_ESSENTIEL: Decimal("90"),
        Product.FREEBOX_POP: Decimal("70"),
        Product.FORFAIT_5G: Decimal("10"),
    },
    4: {
        Product.FREEBOX_ULTRA: Decimal("120"),
        Product.FREEBOX_ESSENTIEL: Decimal("100"),
        Product.FREEBOX_POP: Decimal("90"),
        Product.FORFAIT_5G: Decimal("10"),
    },
}

# Minimum cumulative points to enter each tranche
LIMITES_TRANCHES = {
    1: 0,    # 0-25 points
    2: 26,   # 26-50 points
    3: 51,   # 51-100 points
    4: 101,  # 101+ points
}

# Constants
PALIER_SIZE = 5
UNKNOWN_PRODUCT_POINTS = 1
FIRST_PALIER_MINIMUM = Decimal("60")


def normalizeProduct(raw: Optional[str]) -> Optional[Product]:
    """
    Map a free-text product label to a Product.
    Trim, lowercase, treat '_' and '-' as spaces, collapse whitespace.
    Returns None when the label is not recognised.
    """
    if raw is None:
        return None
    if isinstance(raw, Product):
        return raw

    key = " ".join(str(raw).strip().lower().replace("_", " ").replace("-", " ").split())
    if not key:
        return None

    try:
        return Product(key)
    except ValueError:
        return PRODUCT_ALIASES.get(key.replace(" ", ""), None)
