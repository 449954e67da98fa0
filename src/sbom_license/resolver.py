from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .expression import parse_expression
from .policy import LicensePolicy, PolicyIndex

logger = logging.getLogger(__name__)

LC_TYPE_ID = "id"
LC_TYPE_NAME = "name"
LC_TYPE_EXPRESSION = "expression"


class InvalidLicenseChoiceError(ValueError):
    pass


@dataclass(slots=True, frozen=True)
class LicenseChoice:
    """A declared license: an SPDX ID, a free-text name or an expression.

    Only one variant is meaningful; when several are set the first non-empty
    one of id, name, expression wins. A choice with all three unset is invalid.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    expression: Optional[str] = None

    @property
    def kind(self) -> str:
        if self.id:
            return LC_TYPE_ID
        if self.name:
            return LC_TYPE_NAME
        if self.expression:
            return LC_TYPE_EXPRESSION
        # declared but empty, e.g. {"id": ""}; it resolves as unmatched
        if self.id is not None:
            return LC_TYPE_ID
        if self.name is not None:
            return LC_TYPE_NAME
        if self.expression is not None:
            return LC_TYPE_EXPRESSION
        raise InvalidLicenseChoiceError(
            "invalid license choice: one of `id`, `name` or `expression` is required"
        )

    @property
    def key(self) -> str:
        kind = self.kind
        if kind == LC_TYPE_ID:
            return str(self.id)
        if kind == LC_TYPE_NAME:
            return str(self.name)
        return str(self.expression)


def find_policy(choice: LicenseChoice, index: PolicyIndex) -> Tuple[str, Optional[LicensePolicy]]:
    kind = choice.kind
    if kind == LC_TYPE_ID:
        return index.usage_policy_by_id(str(choice.id)), index.find_by_id(str(choice.id))
    if kind == LC_TYPE_NAME:
        name = str(choice.name)
        return index.usage_policy_by_family_name(name), index.find_by_family_name(name)

    tree = parse_expression(str(choice.expression), index)
    logger.debug("Parsed expression: %s", tree)
    return tree.resolved_policy, None


def resolve_policy(choice: LicenseChoice, index: PolicyIndex) -> str:
    usage_policy, _ = find_policy(choice, index)
    return usage_policy
