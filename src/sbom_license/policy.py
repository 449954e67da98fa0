from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

POLICY_ALLOW = "allow"
POLICY_DENY = "deny"
POLICY_UNMATCHED = "UNMATCHED"

VALID_USAGE_POLICIES = (POLICY_ALLOW, POLICY_DENY)

# SPDX ABNF: idstring = 1*(ALPHA / DIGIT / "-" / "." )
_SPDX_ID_PATTERN = re.compile(r"[A-Za-z0-9.-]+")

# Markers upstream license feeds use for unresolved entries
_RESERVED_FAMILY_KEYWORDS = ("conflict", "unknown")

_PLACEHOLDER_FAMILY = "?"


class PolicyConflictError(RuntimeError):
    """Raised when the policy configuration cannot produce a single answer."""

    def __init__(self, message: str, policy: Optional["LicensePolicy"] = None):
        super().__init__(message)
        self.policy = policy


@dataclass(slots=True)
class LicensePolicy:
    family: str
    usage_policy: str
    id: str = ""
    name: str = ""
    children: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)
    annotation_refs: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "LicensePolicy":
        return cls(
            id=str(entry.get("id") or ""),
            family=str(entry.get("family") or ""),
            name=str(entry.get("name") or ""),
            usage_policy=str(entry.get("usagePolicy") or entry.get("usage_policy") or ""),
            children=[str(child) for child in entry.get("children") or []],
            notes=[str(note) for note in entry.get("notes") or []],
            urls=[str(url) for url in entry.get("urls") or []],
            annotation_refs=[
                str(ref) for ref in entry.get("annotationRefs") or entry.get("annotation_refs") or []
            ],
        )


def is_valid_spdx_id(value: str) -> bool:
    return bool(value) and _SPDX_ID_PATTERN.fullmatch(value) is not None


def is_valid_family_key(key: str) -> bool:
    if not is_valid_spdx_id(key):
        return False
    lowered = key.lower()
    return not any(keyword in lowered for keyword in _RESERVED_FAMILY_KEYWORDS)


def is_valid_usage_policy(value: str) -> bool:
    return value in VALID_USAGE_POLICIES


def is_valid_policy_entry(policy: LicensePolicy) -> bool:
    """Check a configured policy before it is indexed.

    An empty ``id`` is allowed; it marks a family record whose ``children``
    must then all be valid SPDX identifiers.
    """
    if policy.id and not is_valid_spdx_id(policy.id):
        logger.warning("invalid SPDX ID: `%s` (Name=`%s`). Skipping...", policy.id, policy.name)
        return False

    if not policy.name.strip():
        logger.warning("invalid Name: `%s` (Id=`%s`).", policy.name, policy.id)

    if not is_valid_usage_policy(policy.usage_policy):
        logger.warning(
            "invalid Usage Policy: `%s` (Id=`%s`, Name=`%s`). Skipping...",
            policy.usage_policy,
            policy.id,
            policy.name,
        )
        return False

    if not is_valid_family_key(policy.family):
        logger.warning(
            "invalid Family: `%s` (Id=`%s`, Name=`%s`). Skipping...",
            policy.family,
            policy.id,
            policy.name,
        )
        return False

    if not policy.id:
        if not policy.children:
            logger.debug("Family (policy): `%s` has no children (SPDX IDs) listed.", policy.family)
        for child_id in policy.children:
            if not is_valid_spdx_id(child_id):
                logger.warning(
                    "invalid Id: `%s` for Family: `%s`. Skipping...", child_id, policy.family
                )
                return False

    return True


class PolicyIndex:
    """Lookup tables over a policy list, by SPDX ID and by family key.

    Instances are built once with :meth:`build` and are read-only afterwards.
    """

    def __init__(
        self,
        by_id: Dict[str, LicensePolicy],
        by_family: Dict[str, List[LicensePolicy]],
        policies: List[LicensePolicy],
    ):
        self._by_id: Mapping[str, LicensePolicy] = MappingProxyType(dict(by_id))
        self._by_family: Mapping[str, Tuple[LicensePolicy, ...]] = MappingProxyType(
            {key: tuple(members) for key, members in by_family.items()}
        )
        self._policies: Tuple[LicensePolicy, ...] = tuple(policies)

    @classmethod
    def build(cls, policies: Iterable[LicensePolicy]) -> "PolicyIndex":
        by_id: Dict[str, LicensePolicy] = {}
        by_family: Dict[str, List[LicensePolicy]] = {}
        accepted: List[LicensePolicy] = []

        for policy in policies:
            if not is_valid_policy_entry(policy):
                continue

            if policy.id:
                if policy.id in by_id:
                    raise PolicyConflictError(
                        f"Multiple (possibly conflicting) policies declared for SPDX ID=`{policy.id}`",
                        policy,
                    )
                logger.debug(
                    "ID index: adding policy Id=`%s`, Name=`%s`, Family=`%s`",
                    policy.id,
                    policy.name,
                    policy.family,
                )
                by_id[policy.id] = policy

            members = by_family.setdefault(policy.family, [])
            for existing in members:
                if existing.usage_policy != policy.usage_policy:
                    raise PolicyConflictError(
                        f"Policy (Id=`{policy.id}`, Family=`{policy.family}`, Policy=`{policy.usage_policy}`)"
                        f" conflicts with policy `{existing.usage_policy}` (Id=`{existing.id}`)"
                        " declared in the same family",
                        policy,
                    )
            members.append(policy)
            accepted.append(policy)

        logger.debug("Indexed %d policies (%d ids, %d families)", len(accepted), len(by_id), len(by_family))
        return cls(by_id, by_family, accepted)

    @property
    def by_id(self) -> Mapping[str, LicensePolicy]:
        return self._by_id

    @property
    def by_family(self) -> Mapping[str, Tuple[LicensePolicy, ...]]:
        return self._by_family

    @property
    def policies(self) -> Tuple[LicensePolicy, ...]:
        return self._policies

    def __len__(self) -> int:
        return len(self._policies)

    def find_by_id(self, spdx_id: str) -> Optional[LicensePolicy]:
        return self._by_id.get(spdx_id)

    def usage_policy_by_id(self, spdx_id: str) -> str:
        policy = self.find_by_id(spdx_id)
        if policy is None:
            logger.debug("No policy match found for SPDX ID=`%s`", spdx_id)
            return POLICY_UNMATCHED
        return policy.usage_policy

    def find_family_key(self, license_name: str) -> Optional[str]:
        """Return the longest family key contained in ``license_name``.

        Matching is case-sensitive. On equal lengths the family registered
        first wins.
        """
        best: Optional[str] = None
        for family in self._by_family:
            if family == _PLACEHOLDER_FAMILY:
                continue
            if family in license_name and (best is None or len(family) > len(best)):
                best = family
        if best is not None:
            logger.debug("Match found: family `%s` in license name `%s`", best, license_name)
        return best

    def find_by_family_name(self, license_name: str) -> Optional[LicensePolicy]:
        family = self.find_family_key(license_name)
        if family is None:
            return None
        # members share one usage policy, enforced by build()
        return self._by_family[family][0]

    def usage_policy_by_family_name(self, license_name: str) -> str:
        policy = self.find_by_family_name(license_name)
        if policy is None:
            logger.debug("No policy match found for license family name=`%s`", license_name)
            return POLICY_UNMATCHED
        return policy.usage_policy
