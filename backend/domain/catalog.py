"""
Static merchant catalog.
"""
from decimal import Decimal

from models import CatalogItem

NIGHTHAWK_MODEL = CatalogItem(
    id="nighthawk-001",
    name="F-117 Nighthawk Model",
    description="Precision-crafted stealth fighter model for aviation enthusiasts!",
    price=Decimal("0.3"),
    label="Nighthawk Model Shop",
    memo="NIGHTHAWK#001",
)

CATALOG: dict[str, CatalogItem] = {
    NIGHTHAWK_MODEL.id: NIGHTHAWK_MODEL,
}


def get_item(item_id: str) -> CatalogItem | None:
    return CATALOG.get(item_id)


def list_items() -> list[CatalogItem]:
    return list(CATALOG.values())
