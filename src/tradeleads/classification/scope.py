"""
Permit Scope Classifier

Derives a coarse project_type and a set of "<action>:<component>" scope tags
from a permit's work, description, permit_type and structure fields.

Branches:
    Small Residential                          -> residential detectors
    New House*                                 -> building type + features
    Building Additions/Alterations, residential -> residential detectors
    everything else                            -> general detectors

Residential and general branches share one detector library; they differ in
whether systems tags (hvac, plumbing, ...) are gated on the absence of
architectural work. The general branch reads every free-text field, runs the
building-type and addition-location detectors, and adds a scale tag
(high-rise, mid-rise, low-rise) from the storey count.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Set, Tuple

from src.tradeleads.classification.tag_matrix import split_tag
from src.tradeleads.models.permit import PermitRecord, ScopeResult

NEW = "new"
ALTER = "alter"

# Characters either side of a keyword searched for action cues
CUE_WINDOW = 60

NEW_CUE_RE = re.compile(
    r"(?<![\w-])(construct\w*|add|adding|added|addition|new|build|building|built|"
    r"erect\w*|install\w*)\b",
    re.IGNORECASE,
)
ALTER_CUE_RE = re.compile(
    r"(?<![\w-])(replac\w*|repair\w*|alter|altering|altered|renovat\w*|reconstruct\w*|"
    r"refinish\w*|restor\w*|re-?build\w*|remodel\w*)\b",
    re.IGNORECASE,
)

PARTY_WALL_WORK = "Party Wall Admin Permits"
INTERIOR_ALTERATIONS_WORK = "Interior Alterations"
MULTIPLE_PROJECTS_WORK = "Multiple Projects"

_NEW_BUILD_WORK_RE = re.compile(
    r"^(New Building|Addition|Second Suite \(New\)|New Laneway)", re.IGNORECASE
)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(value: Optional[str]) -> str:
    """Upper-case, trimmed, single-spaced text; empty for None."""
    if not value:
        return ""
    return _WHITESPACE_RE.sub(" ", value.strip()).upper()


# =============================================================================
# Detectors
# =============================================================================

@dataclass(frozen=True)
class Detector:
    """
    Named predicate for one scope component.

    Fires when any pattern matches the description or work_re matches the
    work field. fixed_action pins the action; otherwise it is inferred from
    nearby verbs. Systems detectors are suppressed on residential permits
    that describe architectural work. general_only detectors (building
    types, addition locations) run on the general branch only.
    """

    component: str
    patterns: Tuple[Pattern, ...]
    work_re: Optional[Pattern] = None
    fixed_action: Optional[str] = None
    systems: bool = False
    general_only: bool = False

    def spans(self, text: str) -> List[Tuple[int, int]]:
        found = []
        for pattern in self.patterns:
            found.extend(m.span() for m in pattern.finditer(text))
        return sorted(found)

    def fires_on_work(self, work: str) -> bool:
        return bool(work) and self.work_re is not None and self.work_re.search(work) is not None


def _detector(
    component: str,
    *patterns: str,
    work: Optional[str] = None,
    action: Optional[str] = None,
    systems: bool = False,
    general_only: bool = False,
) -> Detector:
    return Detector(
        component=component,
        patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
        work_re=re.compile(work, re.IGNORECASE) if work else None,
        fixed_action=action,
        systems=systems,
        general_only=general_only,
    )


DETECTORS: Tuple[Detector, ...] = (
    # Exterior
    _detector("deck", r"\bdeck\b", work=r"^Deck$"),
    _detector("garage", r"\bgarage\b", work=r"^Garage"),
    _detector("porch", r"\bporch\b", work=r"^Porch$"),
    _detector("walkout", r"\bwalk[\s-]?out\b"),
    _detector("balcony", r"\bbalcon(y|ies)\b", work=r"^Balcony"),
    _detector("dormer", r"\bdormer\b"),
    _detector("carport", r"\bcarport\b"),
    _detector("canopy", r"\bcanopy\b"),
    _detector("fence", r"\bfenc(e|ing)\b"),
    _detector("pool", r"\bpool\b", work=r"^Pool$"),
    _detector("roofing", r"\broof(ing)?\b", r"\bre-?roof(ing)?\b", work=r"^Re-Roofing"),
    _detector("cladding", r"\b(re-?)?clad(ding)?\b", work=r"Re-Cladding"),
    _detector("solar", r"\bsolar\b"),
    _detector(
        "laneway-suite",
        r"\blaneway\b", r"\bgarden\s*suite\b", r"\brear\s*yard\s*suite\b",
        work=r"^New Laneway",
    ),
    _detector(
        "accessory-building",
        r"\bshed\b", r"\bcabana\b", r"\bancillary\b", r"\baccessory\s*(building|structure)\b",
        work=r"^Accessory (Building|Structure)",
    ),
    # Foundation and structure
    _detector("basement", r"\bbasement\b"),
    _detector(
        "finished-basement",
        r"\bbasement\s*(finish\w*|reno\w*|completion|convert\w*|apartment)\b",
        r"\bfinish(ed|ing)?\s*(the\s*)?basement\b",
    ),
    _detector("underpinning", r"\bunderpinn?(ing)?\b", work=r"^Underpinning"),
    _detector("foundation", r"\bfoundation\b"),
    _detector("shoring", r"\bshor(ing|e)\b", work=r"^Shoring"),
    _detector(
        "open-concept",
        r"\bopen\s*concept\b", r"\bremov(e|al|ing)\s*(of\s*)?(a\s*)?(load[\s-]*)?(bearing|interior)\s*wall",
    ),
    _detector("structural-beam", r"\b(beam|lvl|steel\s*beam)s?\b"),
    # Interior
    _detector(
        "second-suite",
        r"\b(2nd|second(ary)?)\s*(suite|unit|dwelling\s*unit)\b",
        work=r"^Second Suite",
    ),
    _detector("kitchen", r"\bkitchen\b"),
    _detector(
        "bathroom",
        r"\bbath(room)?s?\b", r"\bwashrooms?\b", r"\bpowder\s*room\b", r"\ben-?suite\b",
        r"\blavatory\b",
    ),
    _detector("laundry", r"\blaundry\b"),
    _detector("fireplace", r"\bfireplace\b", r"\bwood\s*stove\b", work=r"^Fireplace"),
    _detector("stair", r"\bstair(s|case|way|\s*well)?\b", r"\bsteps?\b"),
    _detector("window", r"\bwindows?\b", r"\bfenestration\b"),
    _detector("door", r"\bdoors?\b"),
    # Always alterations
    _detector(
        "interior-alterations",
        r"\binterior\s*alter\w*", r"\brenovati?ons?\b", r"\bremodel\w*",
        work=r"^Interior Alterations$",
        action=ALTER,
    ),
    _detector(
        "fire-damage",
        r"\bfire\s*(damage|restoration)\b", r"\bvehicle\s*impact\b",
        work=r"^Fire Damage",
        action=ALTER,
    ),
    _detector(
        "unit-conversion",
        r"\bconvert\w*\b", r"\bconversion\b",
        work=r"^Change of Use",
        action=ALTER,
    ),
    _detector(
        "demolition",
        r"\bdemol(ish\w*|ition)\b", r"\btear[\s-]?down\b",
        work=r"^Demolition",
        action=ALTER,
    ),
    # Building systems
    _detector("hvac", r"\bhvac\b", r"\b(furnace|air\s*condition\w*|heat\s*pump|duct(work)?)\b",
              work=r"^HVAC", systems=True),
    _detector("plumbing", r"\bplumb(ing|er)\b", work=r"^Plumbing", systems=True),
    _detector("electrical", r"\belectrical\b", work=r"^Electrical", systems=True),
    _detector("sprinkler", r"\bsprinklers?\b", work=r"^Sprinklers?", systems=True),
    _detector("fire-alarm", r"\bfire\s*alarm\b", work=r"^Fire Alarm", systems=True),
    _detector("elevator", r"\belevators?\b", r"\blift\b", work=r"^Elevator", systems=True),
    _detector("drain", r"\bdrains?\b", r"\bsewer\b", r"\bstorm\s*water\b", systems=True),
    _detector("backflow-preventer", r"\bbackflow\b", systems=True),
    _detector(
        "access-control",
        r"\bmaglocks?\b", r"\baccess\s*control\b", r"\bcard\s*readers?\b",
        r"\bsecurity\s*(lock|access)\b",
        work=r"^Electromagnetic Locks",
        systems=True,
    ),
    _detector(
        "tenant-fitout",
        r"\btenant\b", r"\bfit[\s-]?out\b", r"\bleasehold\s*improv\w*",
        systems=True,
    ),
    # Addition location
    _detector("rear-addition", r"\brear\s*(addition|ext(ension)?)\b", general_only=True),
    _detector("side-addition", r"\bside\s*(addition|ext(ension)?)\b", general_only=True),
    _detector("front-addition", r"\bfront\s*(addition|ext(ension)?)\b", general_only=True),
    # Building types
    _detector("condo", r"\bcondo(minium)?s?\b", general_only=True),
    _detector("apartment", r"\bapartments?\b", general_only=True),
    _detector("retail", r"\bretail\b", general_only=True),
    _detector("office", r"\boffices?\b", general_only=True),
    _detector("restaurant", r"\brestaurants?\b", general_only=True),
    _detector("warehouse", r"\bwarehouses?\b", general_only=True),
    _detector("school", r"\bschools?\b", general_only=True),
    _detector("hospital", r"\bhospitals?\b", general_only=True),
)

ARCHITECTURE_RE = re.compile(
    r"\b(addition|deck|garage|porch|underpinn\w*|walkout|balcony|dormer|second suite|kitchen|"
    r"bath\w*|washroom|roof\w*|doors?|windows?|alter\w*|reno\w*|basement)\b",
    re.IGNORECASE,
)

# Structural addition; "addition of a washroom" style features are excluded
ADDITION_RE = re.compile(
    r"\badd(i)?tion\b(?!\s+(of\s+)?(an?\s+)?(new\s+)?"
    r"(washroom|bathroom|laundry|closet|window|door|powder|shower|fireplace|skylight)s?\b)",
    re.IGNORECASE,
)
STOREY_ADDITION_RE = re.compile(
    r"\b(storey|story)\s*addition\b|\badd\s*(a|one|1|two|2|three|3)?\s*(storey|story|stories)\b",
    re.IGNORECASE,
)

_NUMERIC_STOREY_RE = re.compile(r"\b(\d+)\s*-?\s*(storey|story|stories|storeys)\b", re.IGNORECASE)
_CARDINAL_STOREY_RE = re.compile(
    r"\b(one|two|three|four|five)\s*-?\s*(storey|story|stories|storeys)\b", re.IGNORECASE
)
_SINGLE_STOREY_RE = re.compile(r"\bsingle\s*-?\s*(storey|story)\b", re.IGNORECASE)
_ORDINAL_FLOOR_RE = re.compile(
    r"\b(2nd|second|3rd|third)\s*(floor|storey|story|flr)\b", re.IGNORECASE
)
_CARDINALS = {"ONE": 1, "TWO": 2, "THREE": 3, "FOUR": 4, "FIVE": 5}
_ORDINALS = {"2ND": 2, "SECOND": 2, "3RD": 3, "THIRD": 3}

MAX_STOREY_ADDITION = 3

_RESIDENTIAL_STRUCTURE_RE = re.compile(r"\b(Detached|Semi|Townhouse|Row\s*House|Stacked)\b", re.IGNORECASE)
_RESIDENTIAL_USE_RE = re.compile(r"\b(residential|dwelling|house|duplex|triplex)\b", re.IGNORECASE)


def extract_storey_count(description: str) -> int:
    """
    Number of storeys mentioned in a description, 0 when none.

    Digits win over cardinal words, which win over "single storey" and
    "2nd floor" style ordinals.
    """
    match = _NUMERIC_STOREY_RE.search(description)
    if match:
        return int(match.group(1))
    match = _CARDINAL_STOREY_RE.search(description)
    if match:
        return _CARDINALS[match.group(1).upper()]
    if _SINGLE_STOREY_RE.search(description):
        return 1
    match = _ORDINAL_FLOOR_RE.search(description)
    if match:
        return _ORDINALS[match.group(1).upper()]
    return 0


def is_residential_structure(structure_type: Optional[str], proposed_use: Optional[str]) -> bool:
    st = (structure_type or "").strip()
    pu = (proposed_use or "").strip()
    if re.match(r"SFD\b", st, re.IGNORECASE):
        return True
    if _RESIDENTIAL_STRUCTURE_RE.search(st):
        return True
    return bool(_RESIDENTIAL_USE_RE.search(pu))


HIGH_RISE_STOREYS = 10
MID_RISE_STOREYS = 5
LOW_RISE_STOREYS = 2


def scale_component(storeys: Optional[int]) -> Optional[str]:
    """Building scale from the storey count: high-rise, mid-rise, low-rise or None."""
    storeys = storeys or 0
    if storeys >= HIGH_RISE_STOREYS:
        return "high-rise"
    if storeys >= MID_RISE_STOREYS:
        return "mid-rise"
    if storeys >= LOW_RISE_STOREYS:
        return "low-rise"
    return None


RESIDENTIAL_USE = "residential"
COMMERCIAL_USE = "commercial"
MIXED_USE = "mixed-use"

_RESIDENTIAL_PERMIT_TYPE_RE = re.compile(r"^(Small Residential|New House|Residential)", re.IGNORECASE)
_RESIDENTIAL_STRUCTURE_SIGNAL_RE = re.compile(
    r"\b(SFD|Detached|Semi|Townhouse|Row\s*House|Stacked|Duplex|Triplex)\b", re.IGNORECASE
)
_RESIDENTIAL_USE_SIGNAL_RE = re.compile(
    r"\b(residential|dwelling|house|duplex|triplex|apartment)\b", re.IGNORECASE
)
_COMMERCIAL_PERMIT_TYPE_RE = re.compile(r"^Non-Residential", re.IGNORECASE)
_COMMERCIAL_STRUCTURE_SIGNAL_RE = re.compile(r"\b(commercial|industrial|mercantile)\b", re.IGNORECASE)
_COMMERCIAL_USE_SIGNAL_RE = re.compile(
    r"\b(commercial|industrial|retail|office|mercantile|warehouse)\b", re.IGNORECASE
)


def classify_use_type(permit: PermitRecord) -> str:
    """
    Primary use of the building: residential, commercial or mixed-use.

    Every permit gets exactly one. Residential and commercial signals together
    make mixed-use; no residential signal means commercial.
    """
    permit_type = (permit.permit_type or "").strip()
    structure = (permit.structure_type or "").strip()
    proposed_use = (permit.proposed_use or "").strip()

    residential = bool(
        _RESIDENTIAL_PERMIT_TYPE_RE.match(permit_type)
        or _RESIDENTIAL_STRUCTURE_SIGNAL_RE.search(structure)
        or _RESIDENTIAL_USE_SIGNAL_RE.search(proposed_use)
    )
    commercial = bool(
        _COMMERCIAL_PERMIT_TYPE_RE.match(permit_type)
        or _COMMERCIAL_STRUCTURE_SIGNAL_RE.search(structure)
        or _COMMERCIAL_USE_SIGNAL_RE.search(proposed_use)
    )

    if residential and commercial:
        return MIXED_USE
    if residential:
        return RESIDENTIAL_USE
    return COMMERCIAL_USE


def _cue_distance(text: str, start: int, end: int, cue_re: Pattern) -> Optional[int]:
    """Distance in characters from a keyword span to the closest cue within the window."""
    lo = max(0, start - CUE_WINDOW)
    hi = min(len(text), end + CUE_WINDOW)
    best = None
    for m in cue_re.finditer(text, lo, hi):
        if m.end() <= start:
            distance = start - m.end()
        elif m.start() >= end:
            distance = m.start() - end
        else:
            distance = 0
        if best is None or distance < best:
            best = distance
    return best


def infer_action(
    text: str,
    spans: Iterable[Tuple[int, int]],
    prefer_new: bool,
    work: str = "",
) -> str:
    """
    Pick new or alter for a component from the verbs around its mentions.

    The closest cue across every mention wins; equal distances fall back to
    prefer_new. A component detected only from the work field takes alter
    when the work value itself reads like a repair.
    """
    spans = list(spans)
    if not spans:
        if ALTER_CUE_RE.search(work) and not NEW_CUE_RE.search(work):
            return ALTER
        return NEW

    new_distances = [d for d in (_cue_distance(text, s, e, NEW_CUE_RE) for s, e in spans) if d is not None]
    alter_distances = [d for d in (_cue_distance(text, s, e, ALTER_CUE_RE) for s, e in spans) if d is not None]

    if not alter_distances:
        return NEW
    if not new_distances:
        return ALTER

    closest_new = min(new_distances)
    closest_alter = min(alter_distances)
    if closest_new < closest_alter:
        return NEW
    if closest_alter < closest_new:
        return ALTER
    return NEW if prefer_new else ALTER


# =============================================================================
# Project type
# =============================================================================

_BUILDING_TYPE_COMPONENTS = ("sfd", "semi-detached", "townhouse", "stacked-townhouse")


def classify_project_type(permit: PermitRecord, scope_tags: Iterable[str]) -> Optional[str]:
    """
    Coarse project type from a fixed table keyed by work.

    "Multiple Projects" is settled by the scope tags. Permits with no usable
    work value fall back to permit_type, then to description keywords, and
    finally None.
    """
    work = (permit.work or "").strip()
    permit_type = (permit.permit_type or "").strip()
    description = (permit.description or "").strip()
    components = {split_tag(tag)[1] for tag in scope_tags}

    if work == "New Building":
        return "new-construction"
    if work == "Demolition":
        return "demolition"
    if work == INTERIOR_ALTERATIONS_WORK:
        return "interior-alteration"
    if re.match(r"^Second Suite", work, re.IGNORECASE):
        return "second-suite"
    if re.match(r"^Addition", work, re.IGNORECASE) or re.match(r"^(Deck|Porch|Garage|Pool)$", work, re.IGNORECASE):
        return "addition"
    if re.search(r"repair|fire damage|balcony/guard", work, re.IGNORECASE):
        return "repair"

    if work == MULTIPLE_PROJECTS_WORK:
        if "second-suite" in components:
            return "second-suite"
        if any(c.endswith("storey-addition") for c in components):
            return "addition"
        if any(c in _BUILDING_TYPE_COMPONENTS or c.startswith("houseplex-") for c in components):
            return "new-construction"
        if "interior-alterations" in components:
            return "interior-alteration"
        return "multiple-projects"

    if re.search(r"new\s*(house|building)", permit_type, re.IGNORECASE):
        return "new-construction"
    if re.search(r"demolition\s*folder", permit_type, re.IGNORECASE):
        return "demolition"
    if re.match(r"^(Plumbing|Mechanical|Drain|Electrical)", permit_type, re.IGNORECASE):
        if not re.search(r"addition|alteration|new\s*building|renovation|construct", work, re.IGNORECASE):
            return "mechanical"

    if re.search(r"\bnew\s*(build|construct|erect)", description, re.IGNORECASE):
        return "new-construction"
    if re.search(r"\bdemolish|demolition|tear\s*down", description, re.IGNORECASE):
        return "demolition"
    if re.search(r"\badd(i)?tion\b", description, re.IGNORECASE):
        return "addition"
    if re.search(r"\brenovati?on|interior\s*alter|remodel", description, re.IGNORECASE):
        return "interior-alteration"
    if re.search(r"\brepair\b", description, re.IGNORECASE):
        return "repair"
    return None


# =============================================================================
# Classifier
# =============================================================================

class ScopeClassifier:
    """
    Pure scope classification for a single permit.

    Usage:
        result = ScopeClassifier().classify(permit)
        result.project_type, result.scope_tags
    """

    def __init__(self, detectors: Tuple[Detector, ...] = DETECTORS):
        self.detectors = detectors

    def classify(self, permit: PermitRecord) -> ScopeResult:
        permit_type = (permit.permit_type or "").strip()
        work = (permit.work or "").strip()

        if work == PARTY_WALL_WORK:
            tags: Set[str] = set()
        elif permit_type.startswith("Small Residential"):
            tags = self._residential_tags(permit)
        elif permit_type.startswith("New House"):
            tags = self._new_house_tags(permit)
        elif permit_type.startswith("Building Additions") and is_residential_structure(
            permit.structure_type, permit.proposed_use
        ):
            tags = self._residential_tags(permit)
        else:
            tags = self._general_tags(permit)

        project_type = classify_project_type(permit, tags)

        if work != PARTY_WALL_WORK and (
            project_type == "demolition"
            or re.search(r"demolition\s*folder", permit_type, re.IGNORECASE)
        ):
            tags.add(f"{ALTER}:demolition")

        return ScopeResult(
            project_type=project_type,
            scope_tags=sorted(tags),
            use_type=classify_use_type(permit),
        )

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def _residential_tags(self, permit: PermitRecord) -> Set[str]:
        text = normalize_text(permit.description)
        gate_systems = ARCHITECTURE_RE.search(text) is not None
        tags = self._detect(permit, text, skip_systems=gate_systems)
        tags |= self._storey_addition_tags(permit, text)
        return self._dedup(tags)

    def _general_tags(self, permit: PermitRecord) -> Set[str]:
        text = normalize_text(
            " ".join(
                value
                for value in (
                    permit.description,
                    permit.work,
                    permit.structure_type,
                    permit.proposed_use,
                    permit.current_use,
                )
                if value
            )
        )
        tags = self._detect(permit, text, skip_systems=False, include_general=True)
        tags |= self._storey_addition_tags(permit, text)

        scale = scale_component(permit.storeys)
        if scale:
            action = NEW if self._prefers_new(permit) else ALTER
            tags.add(f"{action}:{scale}")
        return self._dedup(tags)

    def _new_house_tags(self, permit: PermitRecord) -> Set[str]:
        """Exactly one building type tag plus new-build feature tags."""
        text = normalize_text(permit.description)
        structure = (permit.structure_type or "").strip()
        proposed_use = (permit.proposed_use or "").strip()
        units = permit.housing_units or 0

        def houseplex(count: int) -> str:
            return f"{NEW}:houseplex-{max(2, min(6, count))}-unit"

        if re.search(r"houseplex", proposed_use, re.IGNORECASE):
            match = re.search(r"\((\d+)\s*Units?\)", proposed_use, re.IGNORECASE)
            building_type = houseplex(int(match.group(1)) if match else (units if units > 1 else 3))
        elif re.search(r"3\+\s*Unit", structure, re.IGNORECASE):
            building_type = houseplex(units if units > 1 else 3)
        elif units > 1 and re.search(r"houseplex", text, re.IGNORECASE):
            building_type = houseplex(units)
        elif re.search(r"stacked", structure, re.IGNORECASE):
            building_type = f"{NEW}:stacked-townhouse"
        elif re.search(r"townhouse|row\s*house", structure, re.IGNORECASE):
            building_type = f"{NEW}:townhouse"
        elif re.search(r"semi", structure, re.IGNORECASE):
            building_type = f"{NEW}:semi-detached"
        else:
            building_type = f"{NEW}:sfd"

        tags = {building_type}
        features = ("garage", "deck", "porch", "walkout", "balcony", "laneway-suite")
        for detector in self.detectors:
            if detector.component in features and detector.spans(text):
                tags.add(f"{NEW}:{detector.component}")
        if re.search(r"\bfinish(ed)?\s*basement\b", text, re.IGNORECASE):
            tags.add(f"{NEW}:finished-basement")
        return tags

    # -------------------------------------------------------------------------
    # Detection helpers
    # -------------------------------------------------------------------------

    def _prefers_new(self, permit: PermitRecord) -> bool:
        work = (permit.work or "").strip()
        if work == MULTIPLE_PROJECTS_WORK or _NEW_BUILD_WORK_RE.match(work):
            return True
        return (permit.permit_type or "").startswith("New House")

    def _detect(
        self,
        permit: PermitRecord,
        text: str,
        skip_systems: bool,
        include_general: bool = False,
    ) -> Set[str]:
        work = (permit.work or "").strip()
        prefer_new = self._prefers_new(permit)
        tags: Set[str] = set()

        for detector in self.detectors:
            if detector.general_only and not include_general:
                continue
            if detector.systems and skip_systems and not detector.fires_on_work(work):
                continue
            spans = detector.spans(text)
            if not spans and not detector.fires_on_work(work):
                continue
            action = detector.fixed_action or infer_action(text, spans, prefer_new, work)
            tags.add(f"{action}:{detector.component}")
        return tags

    def _storey_addition_tags(self, permit: PermitRecord, text: str) -> Set[str]:
        work = (permit.work or "").strip()
        # Interior alteration permits never carry a structural addition
        if work == INTERIOR_ALTERATIONS_WORK:
            return set()

        is_addition = (
            re.match(r"^Addition", work, re.IGNORECASE) is not None
            or ADDITION_RE.search(text) is not None
            or STOREY_ADDITION_RE.search(text) is not None
        )
        if not is_addition:
            return set()

        storeys = extract_storey_count(text)
        storeys = min(max(storeys, 1), MAX_STOREY_ADDITION)
        return {f"{NEW}:{storeys}-storey-addition"}

    def _dedup(self, tags: Set[str]) -> Set[str]:
        by_component: Dict[str, str] = {}
        for tag in tags:
            action, component = split_tag(tag)
            by_component[component] = action

        def drop(component: str) -> None:
            by_component.pop(component, None)

        # Underpinning implies basement work unless the basement is being finished
        if "basement" in by_component and "underpinning" in by_component:
            if "finished-basement" in by_component:
                drop("underpinning")
            else:
                drop("basement")
        if "finished-basement" in by_component:
            drop("basement")

        if by_component.get("second-suite") == NEW:
            if by_component.get("interior-alterations") == ALTER:
                drop("interior-alterations")
            if by_component.get("unit-conversion") == ALTER:
                drop("unit-conversion")
            drop("basement")

        if "accessory-building" in by_component and (
            "garage" in by_component or "pool" in by_component
        ):
            drop("accessory-building")

        return {f"{action}:{component}" for component, action in by_component.items()}


def find_tag_violations(work: Optional[str], scope_tags: Iterable[str]) -> List[str]:
    """
    Names of the scope-tag invariants a tag set breaks; empty when clean.

    Used by the quality report over stored permits.
    """
    violations = []
    tags = list(scope_tags)
    actions_by_component: Dict[str, Set[str]] = {}
    for tag in tags:
        action, component = split_tag(tag)
        actions_by_component.setdefault(component, set()).add(action)

    if any(len(actions) > 1 for actions in actions_by_component.values()):
        violations.append("new_alter_conflict")
    if f"{NEW}:basement" in tags and f"{NEW}:underpinning" in tags:
        violations.append("basement_with_underpinning")
    if (work or "").strip() == INTERIOR_ALTERATIONS_WORK and any(
        split_tag(tag)[1].endswith("storey-addition") for tag in tags
    ):
        violations.append("storey_addition_on_interior_alterations")
    return violations
