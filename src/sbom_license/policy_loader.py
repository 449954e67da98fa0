from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from .policy import LicensePolicy, PolicyIndex

logger = logging.getLogger(__name__)


class PolicyConfigError(RuntimeError):
    pass


@dataclass(slots=True)
class LicenseComplianceConfig:
    policies: List[LicensePolicy]
    annotations: Dict[str, str] = field(default_factory=dict)


def load_policy_config(path: Path) -> LicenseComplianceConfig:
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except OSError as exc:
        raise PolicyConfigError(f"config: unable to read `{path}`: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PolicyConfigError(f"config: cannot decode `{path}`: {exc}") from exc

    entries = payload.get("policies") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise PolicyConfigError(f"config: `{path}` has no `policies` list")

    annotations = payload.get("annotations") or {}
    if not isinstance(annotations, dict):
        raise PolicyConfigError(f"config: `annotations` in `{path}` must be an object")

    policies: List[LicensePolicy] = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("config: policies[%d] in `%s` is not an object. Skipping...", position, path)
            continue
        policies.append(LicensePolicy.from_dict(entry))

    return LicenseComplianceConfig(
        policies=policies,
        annotations={str(key): str(value) for key, value in annotations.items()},
    )


def load_policy_index(path: Path) -> PolicyIndex:
    return PolicyIndex.build(load_policy_config(path).policies)
