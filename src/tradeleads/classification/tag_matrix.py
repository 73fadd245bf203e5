"""
Scope Tag Matrices

Maps scope tag components to trades (with confidence) and to product groups.
Tags are looked up by component: the "new:"/"alter:" action prefix is
stripped, "houseplex-N-unit" folds to "houseplex", and "N-storey-addition"
and the rear, side and front additions fold to "addition".
"""
import re
from typing import Dict, Iterable, List, Tuple

_HOUSEPLEX_RE = re.compile(r"^houseplex-\d+-unit$")
_STOREY_ADDITION_RE = re.compile(r"^\d+-storey-addition$")
_LOCATED_ADDITION_RE = re.compile(r"^(rear|side|front)-addition$")

BUILDING_TYPE_COMPONENTS = frozenset({
    "sfd", "semi-detached", "townhouse", "stacked-townhouse", "houseplex",
})

_RESIDENTIAL_BUILD = [
    ("excavation", 0.80), ("concrete", 0.80), ("framing", 0.85), ("roofing", 0.80),
    ("plumbing", 0.80), ("hvac", 0.80), ("electrical", 0.80), ("insulation", 0.75),
    ("drywall", 0.75), ("painting", 0.70), ("flooring", 0.70), ("masonry", 0.65),
    ("tiling", 0.65), ("trim-work", 0.65), ("millwork-cabinetry", 0.65),
    ("eavestrough-siding", 0.65), ("landscaping", 0.60), ("glazing", 0.60),
    ("waterproofing", 0.55), ("temporary-fencing", 0.60),
]

_ATTACHED_BUILD = [
    ("excavation", 0.75), ("concrete", 0.75), ("framing", 0.80), ("roofing", 0.75),
    ("plumbing", 0.75), ("hvac", 0.75), ("electrical", 0.75), ("insulation", 0.70),
    ("drywall", 0.70), ("painting", 0.65), ("flooring", 0.65), ("masonry", 0.70),
    ("fire-protection", 0.55), ("tiling", 0.60), ("trim-work", 0.60),
    ("eavestrough-siding", 0.60), ("landscaping", 0.55),
]

_ACCESSORY_SUITE = [
    ("framing", 0.80), ("concrete", 0.75), ("excavation", 0.70), ("plumbing", 0.75),
    ("electrical", 0.75), ("hvac", 0.70), ("insulation", 0.65), ("drywall", 0.65),
    ("roofing", 0.65),
]

_INTERIOR = [
    ("drywall", 0.70), ("painting", 0.65), ("flooring", 0.60),
    ("trim-work", 0.55), ("electrical", 0.55),
]

TAG_TRADE_MATRIX: Dict[str, List[Tuple[str, float]]] = {
    # Residential interior
    "kitchen": [
        ("plumbing", 0.80), ("electrical", 0.80), ("tiling", 0.70),
        ("millwork-cabinetry", 0.80), ("stone-countertops", 0.70),
        ("flooring", 0.65), ("drywall", 0.60), ("painting", 0.55),
    ],
    "bathroom": [
        ("plumbing", 0.85), ("tiling", 0.80), ("drywall", 0.70), ("glazing", 0.60),
        ("electrical", 0.65), ("waterproofing", 0.60), ("painting", 0.55),
    ],
    "laundry": [("plumbing", 0.75), ("electrical", 0.60)],
    "basement": [
        ("framing", 0.75), ("drywall", 0.75), ("plumbing", 0.70), ("electrical", 0.75),
        ("insulation", 0.70), ("flooring", 0.65), ("waterproofing", 0.65), ("painting", 0.55),
    ],
    "finished-basement": [
        ("framing", 0.75), ("drywall", 0.75), ("electrical", 0.70),
        ("insulation", 0.70), ("flooring", 0.65), ("painting", 0.55),
    ],
    "second-suite": [
        ("framing", 0.75), ("drywall", 0.75), ("plumbing", 0.80), ("electrical", 0.80),
        ("hvac", 0.65), ("fire-protection", 0.65), ("insulation", 0.65), ("flooring", 0.60),
    ],
    "interior-alterations": _INTERIOR,
    "unit-conversion": _INTERIOR + [("plumbing", 0.60), ("fire-protection", 0.55)],
    "tenant-fitout": _INTERIOR + [("hvac", 0.55), ("fire-protection", 0.55)],
    "open-concept": [("framing", 0.75), ("structural-steel", 0.60), ("drywall", 0.65)],
    "structural-beam": [("framing", 0.70), ("structural-steel", 0.70)],
    "fireplace": [("hvac", 0.65), ("masonry", 0.55)],
    "fire-damage": [
        ("demolition", 0.60), ("framing", 0.65), ("drywall", 0.70),
        ("electrical", 0.65), ("painting", 0.60), ("insulation", 0.60),
    ],
    "stair": [("framing", 0.60), ("trim-work", 0.60)],
    "door": [("trim-work", 0.55)],
    "window": [("glazing", 0.85), ("caulking", 0.55)],
    # Residential exterior and features
    "pool": [
        ("pool-installation", 0.90), ("excavation", 0.75), ("concrete", 0.80),
        ("plumbing", 0.75), ("electrical", 0.65), ("landscaping", 0.60),
        ("temporary-fencing", 0.70),
    ],
    "deck": [("decking-fences", 0.85), ("framing", 0.65), ("concrete", 0.55)],
    "porch": [("framing", 0.70), ("concrete", 0.65), ("roofing", 0.55), ("masonry", 0.55)],
    "garage": [
        ("framing", 0.70), ("concrete", 0.70), ("roofing", 0.65),
        ("electrical", 0.60), ("drywall", 0.55),
    ],
    "carport": [("framing", 0.65), ("concrete", 0.60), ("roofing", 0.55)],
    "canopy": [("framing", 0.60), ("roofing", 0.55)],
    "fence": [("decking-fences", 0.85)],
    "walkout": [("excavation", 0.75), ("concrete", 0.75), ("waterproofing", 0.65)],
    "balcony": [("concrete", 0.60), ("framing", 0.60), ("glazing", 0.55)],
    "dormer": [("framing", 0.75), ("roofing", 0.75), ("insulation", 0.55)],
    "accessory-building": [("framing", 0.70), ("concrete", 0.60), ("roofing", 0.60)],
    "laneway-suite": _ACCESSORY_SUITE,
    "roofing": [("roofing", 0.85), ("eavestrough-siding", 0.55)],
    "cladding": [
        ("masonry", 0.70), ("eavestrough-siding", 0.70),
        ("insulation", 0.60), ("caulking", 0.55),
    ],
    # Building types
    "sfd": _RESIDENTIAL_BUILD,
    "semi-detached": _ATTACHED_BUILD,
    "townhouse": _ATTACHED_BUILD,
    "stacked-townhouse": _ATTACHED_BUILD,
    "houseplex": [
        ("excavation", 0.75), ("concrete", 0.75), ("framing", 0.80), ("roofing", 0.75),
        ("plumbing", 0.80), ("hvac", 0.80), ("electrical", 0.80), ("insulation", 0.70),
        ("drywall", 0.70), ("painting", 0.65), ("flooring", 0.65),
        ("fire-protection", 0.60), ("tiling", 0.60), ("masonry", 0.65),
    ],
    # Systems
    "hvac": [("hvac", 0.85)],
    "plumbing": [("plumbing", 0.85)],
    "drain": [("plumbing", 0.75)],
    "backflow-preventer": [("plumbing", 0.70)],
    "electrical": [("electrical", 0.85)],
    "fire-alarm": [("fire-protection", 0.85), ("electrical", 0.55)],
    "sprinkler": [("fire-protection", 0.85), ("plumbing", 0.55)],
    "access-control": [("security", 0.85), ("electrical", 0.55)],
    "elevator": [("elevator", 0.85), ("electrical", 0.55)],
    "solar": [("solar", 0.90), ("electrical", 0.75), ("roofing", 0.55)],
    # Structural
    "underpinning": [
        ("shoring", 0.85), ("concrete", 0.75), ("waterproofing", 0.65), ("excavation", 0.70),
    ],
    "foundation": [("concrete", 0.85), ("excavation", 0.75), ("waterproofing", 0.70)],
    "shoring": [("shoring", 0.80), ("excavation", 0.60)],
    "addition": [
        ("framing", 0.75), ("concrete", 0.65), ("roofing", 0.60), ("plumbing", 0.55),
        ("electrical", 0.60), ("insulation", 0.55), ("drywall", 0.55),
    ],
    "demolition": [("demolition", 0.85), ("temporary-fencing", 0.60), ("excavation", 0.50)],
    # Scale
    "high-rise": [
        ("elevator", 0.65), ("concrete", 0.65), ("structural-steel", 0.60),
        ("fire-protection", 0.60), ("glazing", 0.55),
    ],
    "mid-rise": [("concrete", 0.60), ("fire-protection", 0.55), ("elevator", 0.55)],
    # Non-residential building types
    "condo": [("fire-protection", 0.60), ("elevator", 0.55), ("drywall", 0.55)],
    "apartment": [("fire-protection", 0.60), ("drywall", 0.55), ("plumbing", 0.55)],
    "retail": [("drywall", 0.55), ("electrical", 0.55), ("glazing", 0.55)],
    "office": [("drywall", 0.55), ("electrical", 0.55), ("hvac", 0.55)],
    "restaurant": [("plumbing", 0.65), ("hvac", 0.65), ("fire-protection", 0.60), ("tiling", 0.55)],
    "warehouse": [("concrete", 0.60), ("structural-steel", 0.60), ("fire-protection", 0.55)],
    "school": [("fire-protection", 0.60), ("hvac", 0.55), ("electrical", 0.55)],
    "hospital": [("fire-protection", 0.65), ("hvac", 0.65), ("plumbing", 0.60), ("electrical", 0.60)],
}

TAG_PRODUCT_MATRIX: Dict[str, List[str]] = {
    "kitchen": [
        "kitchen-cabinets", "appliances", "countertops", "plumbing-fixtures",
        "tiling", "lighting", "flooring",
    ],
    "bathroom": ["plumbing-fixtures", "tiling", "mirrors-glass", "lighting", "paint"],
    "laundry": ["appliances", "plumbing-fixtures"],
    "basement": ["lumber-drywall", "flooring", "paint", "lighting", "doors", "staircases"],
    "finished-basement": ["lumber-drywall", "flooring", "paint", "lighting", "doors"],
    "second-suite": [
        "kitchen-cabinets", "appliances", "plumbing-fixtures", "lumber-drywall",
        "flooring", "doors", "lighting",
    ],
    "interior-alterations": ["paint", "flooring", "doors", "lighting"],
    "unit-conversion": ["paint", "flooring", "doors", "lighting", "lumber-drywall"],
    "deck": ["lumber-drywall"],
    "porch": ["lumber-drywall", "paint"],
    "garage": ["lumber-drywall", "garage-doors", "lighting"],
    "stair": ["staircases"],
    "door": ["doors"],
    "window": ["windows", "mirrors-glass"],
    "laneway-suite": [
        "windows", "doors", "flooring", "lighting", "plumbing-fixtures",
        "lumber-drywall", "roofing-materials", "paint",
    ],
    "roofing": ["roofing-materials", "eavestroughs"],
    "cladding": ["eavestroughs"],
    "dormer": ["windows", "roofing-materials", "lumber-drywall"],
    "addition": [
        "windows", "doors", "flooring", "lumber-drywall",
        "roofing-materials", "paint", "lighting",
    ],
    "sfd": [
        "kitchen-cabinets", "appliances", "countertops", "plumbing-fixtures", "tiling",
        "windows", "doors", "flooring", "paint", "lighting", "lumber-drywall",
        "roofing-materials", "eavestroughs", "staircases", "mirrors-glass", "garage-doors",
    ],
    "semi-detached": [
        "kitchen-cabinets", "appliances", "countertops", "plumbing-fixtures", "tiling",
        "windows", "doors", "flooring", "paint", "lighting", "lumber-drywall",
        "roofing-materials", "eavestroughs", "staircases",
    ],
    "townhouse": [
        "kitchen-cabinets", "appliances", "countertops", "plumbing-fixtures", "tiling",
        "windows", "doors", "flooring", "paint", "lighting", "lumber-drywall",
        "roofing-materials", "eavestroughs", "staircases",
    ],
    "stacked-townhouse": [
        "kitchen-cabinets", "appliances", "countertops", "plumbing-fixtures", "tiling",
        "windows", "doors", "flooring", "paint", "lighting", "lumber-drywall", "staircases",
    ],
    "houseplex": [
        "kitchen-cabinets", "appliances", "countertops", "plumbing-fixtures", "tiling",
        "windows", "doors", "flooring", "paint", "lighting", "lumber-drywall",
        "roofing-materials", "staircases",
    ],
}

BUILDING_TYPE_PRODUCT_CONFIDENCE = 0.80
FEATURE_PRODUCT_CONFIDENCE = 0.75


def split_tag(tag: str) -> Tuple[str, str]:
    """
    Split a scope tag into (action, component).

    "new:deck" -> ("new", "deck"); an unprefixed tag is treated as "new".
    """
    action, sep, component = tag.partition(":")
    if not sep:
        return "new", tag
    return action, component


def tag_component(tag: str) -> str:
    """Return the matrix lookup key for a scope tag."""
    _, component = split_tag(tag)
    if _HOUSEPLEX_RE.match(component):
        return "houseplex"
    if _STOREY_ADDITION_RE.match(component) or _LOCATED_ADDITION_RE.match(component):
        return "addition"
    return component


def lookup_products_for_tags(tags: Iterable[str]) -> Dict[str, float]:
    """
    Product group slugs for a tag set, each with the best contributing confidence.
    """
    best: Dict[str, float] = {}
    for tag in tags:
        component = tag_component(tag)
        confidence = (
            BUILDING_TYPE_PRODUCT_CONFIDENCE
            if component in BUILDING_TYPE_COMPONENTS
            else FEATURE_PRODUCT_CONFIDENCE
        )
        for slug in TAG_PRODUCT_MATRIX.get(component, ()):
            if confidence > best.get(slug, 0.0):
                best[slug] = confidence
    return best
