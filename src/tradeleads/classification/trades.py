"""
Trade and Product Catalogs

Static reference data. Trade ids are stable: rules and persisted matches refer
to them by id.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Trade:
    id: int
    slug: str
    name: str
    sort_order: int


@dataclass(frozen=True)
class ProductGroup:
    id: int
    slug: str
    name: str
    sort_order: int


TRADES: Tuple[Trade, ...] = (
    Trade(1, "excavation", "Excavation", 1),
    Trade(2, "shoring", "Shoring", 2),
    Trade(3, "concrete", "Concrete", 3),
    Trade(4, "structural-steel", "Structural Steel", 4),
    Trade(5, "framing", "Framing", 5),
    Trade(6, "masonry", "Masonry", 6),
    Trade(7, "roofing", "Roofing", 7),
    Trade(8, "plumbing", "Plumbing", 8),
    Trade(9, "hvac", "HVAC", 9),
    Trade(10, "electrical", "Electrical", 10),
    Trade(11, "fire-protection", "Fire Protection", 11),
    Trade(12, "insulation", "Insulation", 12),
    Trade(13, "drywall", "Drywall", 13),
    Trade(14, "painting", "Painting", 14),
    Trade(15, "flooring", "Flooring", 15),
    Trade(16, "glazing", "Glazing", 16),
    Trade(17, "elevator", "Elevator", 17),
    Trade(18, "demolition", "Demolition", 18),
    Trade(19, "landscaping", "Landscaping", 19),
    Trade(20, "waterproofing", "Waterproofing", 20),
    # Finishing and specialty trades
    Trade(21, "tiling", "Tiling", 21),
    Trade(22, "millwork-cabinetry", "Millwork & Cabinetry", 22),
    Trade(23, "stone-countertops", "Stone Countertops", 23),
    Trade(24, "trim-work", "Trim Work", 24),
    Trade(25, "caulking", "Caulking", 25),
    Trade(26, "security", "Security", 26),
    Trade(27, "solar", "Solar", 27),
    Trade(28, "eavestrough-siding", "Eavestrough & Siding", 28),
    Trade(29, "decking-fences", "Decking & Fences", 29),
    Trade(30, "pool-installation", "Pool Installation", 30),
    Trade(31, "temporary-fencing", "Temporary Fencing", 31),
)

PRODUCT_GROUPS: Tuple[ProductGroup, ...] = (
    ProductGroup(1, "kitchen-cabinets", "Kitchen Cabinets", 1),
    ProductGroup(2, "appliances", "Appliances", 2),
    ProductGroup(3, "countertops", "Countertops", 3),
    ProductGroup(4, "plumbing-fixtures", "Plumbing Fixtures", 4),
    ProductGroup(5, "tiling", "Tiling", 5),
    ProductGroup(6, "windows", "Windows", 6),
    ProductGroup(7, "doors", "Doors", 7),
    ProductGroup(8, "flooring", "Flooring", 8),
    ProductGroup(9, "paint", "Paint", 9),
    ProductGroup(10, "lighting", "Lighting", 10),
    ProductGroup(11, "lumber-drywall", "Lumber & Drywall", 11),
    ProductGroup(12, "roofing-materials", "Roofing Materials", 12),
    ProductGroup(13, "eavestroughs", "Eavestroughs", 13),
    ProductGroup(14, "staircases", "Staircases", 14),
    ProductGroup(15, "mirrors-glass", "Mirrors & Glass", 15),
    ProductGroup(16, "garage-doors", "Garage Doors", 16),
)

_TRADES_BY_ID: Dict[int, Trade] = {t.id: t for t in TRADES}
_TRADES_BY_SLUG: Dict[str, Trade] = {t.slug: t for t in TRADES}
_PRODUCTS_BY_SLUG: Dict[str, ProductGroup] = {p.slug: p for p in PRODUCT_GROUPS}


def get_trade_by_id(trade_id: int) -> Optional[Trade]:
    return _TRADES_BY_ID.get(trade_id)


def get_trade_by_slug(slug: str) -> Optional[Trade]:
    return _TRADES_BY_SLUG.get(slug)


def get_product_group_by_slug(slug: str) -> Optional[ProductGroup]:
    return _PRODUCTS_BY_SLUG.get(slug)
