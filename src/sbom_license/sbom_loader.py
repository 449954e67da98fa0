from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .resolver import LicenseChoice

KEY_COMPONENTS = "components"
KEY_LICENSES = "licenses"


class SbomError(RuntimeError):
    pass


@dataclass(slots=True)
class ParsedComponent:
    name: str
    version: Optional[str]
    purl: Optional[str]
    bom_ref: Optional[str] = None
    licenses: List[LicenseChoice] = field(default_factory=list)


def load_sbom(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise SbomError(f"unable to load SBOM `{path}`: {exc}") from exc
    if not isinstance(document, dict):
        raise SbomError(f"SBOM `{path}` is not a JSON object")
    return document


def parse_license_choice(entry: Dict[str, Any]) -> LicenseChoice:
    license_obj = entry.get("license") or {}
    return LicenseChoice(
        id=license_obj.get("id"),
        name=license_obj.get("name"),
        expression=entry.get("expression"),
    )


def iter_components(sbom: Dict[str, Any]) -> Iterable[ParsedComponent]:
    components = sbom.get(KEY_COMPONENTS)
    if not components:
        raise SbomError(f"no components found in document at path: `{KEY_COMPONENTS}`")
    for component in components:
        yield ParsedComponent(
            name=component.get("name", "unknown"),
            version=component.get("version"),
            purl=component.get("purl"),
            bom_ref=component.get("bom-ref"),
            licenses=[parse_license_choice(entry) for entry in component.get(KEY_LICENSES, [])],
        )


def load_components(path: Path) -> List[ParsedComponent]:
    sbom = load_sbom(path)
    return list(iter_components(sbom))
