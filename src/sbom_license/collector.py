from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .policy import PolicyIndex
from .resolver import InvalidLicenseChoiceError, LicenseChoice, resolve_policy
from .sbom_loader import ParsedComponent

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LicenseInfo:
    choice_type: str
    choice: LicenseChoice
    component_name: str
    component_purl: Optional[str]
    key: str


@dataclass(slots=True)
class LicenseCollection:
    groups: Dict[str, List[LicenseInfo]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return sum(len(records) for records in self.groups.values())

    def records(self) -> Iterable[LicenseInfo]:
        for records in self.groups.values():
            yield from records


@dataclass(slots=True)
class LicenseSummaryRow:
    policy: str
    type: str
    key: str
    component: str
    purl: str


def _component_records(component: ParsedComponent) -> List[LicenseInfo]:
    records: List[LicenseInfo] = []
    for choice in component.licenses:
        try:
            kind = choice.kind
        except InvalidLicenseChoiceError as exc:
            raise InvalidLicenseChoiceError(f"{exc} (component: `{component.name}`)") from exc
        records.append(
            LicenseInfo(
                choice_type=kind,
                choice=choice,
                component_name=component.name,
                component_purl=component.purl,
                key=choice.key,
            )
        )
    return records


def collect_licenses(components: Iterable[ParsedComponent]) -> LicenseCollection:
    """Group component license declarations by their textual key.

    Keys keep first-seen order. A component carrying a malformed declaration
    is reported in ``errors`` and contributes no records.
    """
    collection = LicenseCollection()
    for component in components:
        try:
            records = _component_records(component)
        except InvalidLicenseChoiceError as exc:
            logger.error("%s", exc)
            collection.errors.append(str(exc))
            continue
        for record in records:
            collection.groups.setdefault(record.key, []).append(record)
    return collection


def summarize_licenses(collection: LicenseCollection, index: PolicyIndex) -> List[LicenseSummaryRow]:
    rows: List[LicenseSummaryRow] = []
    for key, records in collection.groups.items():
        for record in records:
            policy = resolve_policy(record.choice, index)
            logger.debug(
                "%s\t%s\t%s\t%s\t%s",
                policy,
                record.choice_type,
                key,
                record.component_name,
                record.component_purl,
            )
            rows.append(
                LicenseSummaryRow(
                    policy=policy,
                    type=record.choice_type,
                    key=key,
                    component=record.component_name,
                    purl=record.component_purl or "",
                )
            )
    return rows
