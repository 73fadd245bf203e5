"""
Scope Propagation

Companion permits (plumbing, mechanical, drain, demolition folders) carry
little descriptive text of their own. They take their scope from the primary
building permit that shares their base permit number.
"""
import re
from typing import Iterable, List, Optional

from src.tradeleads.classification.matcher import extract_permit_code
from src.tradeleads.classification.scope import (
    INTERIOR_ALTERATIONS_WORK,
    ScopeClassifier,
    classify_use_type,
)
from src.tradeleads.classification.tag_matrix import split_tag
from src.tradeleads.models.permit import PermitRecord, ScopeResult
from src.tradeleads.utils.logger import get_logger

logger = get_logger(__name__)

PROPAGATED_SOURCE = "propagated"

COMPANION_CODES = frozenset({
    "PLB", "PSA", "PS", "HVA", "MSA", "MS", "MH", "DRN", "STS", "DM", "DEM",
})
_COMPANION_TYPE_RE = re.compile(r"^(Plumbing|Mechanical|Drain|Demolition Folder)", re.IGNORECASE)
_NUMERIC_TOKEN_RE = re.compile(r"^\d+$")

PRIMARY_CODE = "BLD"


def base_permit_num(permit_num: Optional[str]) -> str:
    """
    Project identifier shared by a building permit and its companions.

    "24 055123 DM 00" -> "24 055123", "24 055123 BLD 00" -> "24 055123".
    Leading numeric tokens are kept (at most two); anything from the type
    code on is dropped.
    """
    if not permit_num:
        return ""
    base = []
    for token in permit_num.split():
        if not _NUMERIC_TOKEN_RE.match(token) or len(base) == 2:
            break
        base.append(token)
    return " ".join(base) if base else permit_num.strip()


def is_companion(permit: PermitRecord) -> bool:
    code = extract_permit_code(permit.permit_num)
    if code in COMPANION_CODES:
        return True
    return bool(permit.permit_type and _COMPANION_TYPE_RE.match(permit.permit_type))


def _primary_sort_key(permit: PermitRecord):
    code = extract_permit_code(permit.permit_num)
    return (0 if code == PRIMARY_CODE else 1, permit.permit_num, permit.revision_num)


class ScopePropagator:
    """
    Copies scope from a primary sibling onto a companion permit.

    A sibling's stored scope_tags and project_type are copied as they are.
    Only a sibling with no stored tags is classified from its own fields.
    The companion keeps its own use_type, and an Interior Alterations
    companion never takes a storey addition.
    """

    def __init__(self, scope_classifier: Optional[ScopeClassifier] = None):
        self.scope_classifier = scope_classifier or ScopeClassifier()

    def _candidates(self, permit: PermitRecord, siblings: Iterable[PermitRecord]) -> List[PermitRecord]:
        base = base_permit_num(permit.permit_num)
        return sorted(
            (
                s for s in siblings
                if s.identity != permit.identity
                and base_permit_num(s.permit_num) == base
                and not is_companion(s)
            ),
            key=_primary_sort_key,
        )

    def select_primary(self, permit: PermitRecord, siblings: Iterable[PermitRecord]) -> Optional[PermitRecord]:
        """BLD permits first, then the lowest permit number, among non-companion siblings."""
        candidates = self._candidates(permit, siblings)
        return candidates[0] if candidates else None

    def propagate(self, permit: PermitRecord, siblings: Iterable[PermitRecord]) -> ScopeResult:
        """
        Scope for a companion permit.

        Tries each non-companion sibling in priority order and takes the first
        one with scope tags, stored tags before tags derived from its fields.
        With none, the companion stays unclassified.
        """
        use_type = classify_use_type(permit)
        for sibling in self._candidates(permit, siblings):
            if sibling.scope_tags:
                scope = ScopeResult(project_type=sibling.project_type, scope_tags=sibling.scope_tags)
            else:
                scope = self.scope_classifier.classify(sibling)
            tags = self._tags_for_companion(permit, scope.scope_tags)
            if not tags:
                continue

            logger.debug(
                "permit_scope_propagated",
                permit_num=permit.permit_num,
                revision_num=permit.revision_num,
                source_permit_num=sibling.permit_num,
                tag_count=len(tags),
            )
            return ScopeResult(
                project_type=scope.project_type,
                scope_tags=tags,
                scope_source=PROPAGATED_SOURCE,
                use_type=use_type,
            )

        return ScopeResult(project_type=None, scope_tags=[], scope_source=None, use_type=use_type)

    @staticmethod
    def _tags_for_companion(permit: PermitRecord, scope_tags: Iterable[str]) -> List[str]:
        tags = sorted(set(scope_tags))
        if (permit.work or "").strip() == INTERIOR_ALTERATIONS_WORK:
            tags = [t for t in tags if not split_tag(t)[1].endswith("storey-addition")]
        return tags
