"""Policy evaluation of SPDX license expressions.

The parser models one conjunction per nesting level. An expression such as
``A AND B OR C`` keeps only the last conjunction seen (``OR``); parenthesize
to combine mixed conjunctions. ``WITH`` clauses are recorded on the node but
do not change the resolved policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .policy import POLICY_ALLOW, POLICY_DENY, POLICY_UNMATCHED, LicensePolicy, PolicyIndex

logger = logging.getLogger(__name__)

AND = "AND"
OR = "OR"
WITH = "WITH"

CONJUNCTIONS = (AND, OR)

LEFT_PARENS = "("
RIGHT_PARENS = ")"
PLUS_OPERATOR = "+"


@dataclass(slots=True)
class ExpressionNode:
    simple_left: str = ""
    simple_left_has_plus: bool = False
    left_policy: Optional[LicensePolicy] = None
    left_usage: str = POLICY_UNMATCHED
    simple_right: str = ""
    simple_right_has_plus: bool = False
    right_policy: Optional[LicensePolicy] = None
    right_usage: str = POLICY_UNMATCHED
    conjunction: Optional[str] = None
    preposition_left: str = ""
    preposition_right: str = ""
    exception_left: str = ""
    exception_right: str = ""
    child_left: Optional["ExpressionNode"] = None
    child_right: Optional["ExpressionNode"] = None
    resolved_policy: str = POLICY_UNMATCHED

    def __str__(self) -> str:
        left = str(self.child_left) if self.child_left is not None else self.simple_left
        if self.child_left is not None:
            left = f"({left})"
        if self.conjunction is None:
            return left
        right = str(self.child_right) if self.child_right is not None else self.simple_right
        if self.child_right is not None:
            right = f"({right})"
        return f"{left} {self.conjunction} {right}"


def tokenize(expression: str) -> List[str]:
    padded = expression.replace(LEFT_PARENS, f" {LEFT_PARENS} ").replace(
        RIGHT_PARENS, f" {RIGHT_PARENS} "
    )
    return padded.split()


def join_tokens(tokens: List[str]) -> str:
    text = " ".join(tokens)
    return text.replace(f"{LEFT_PARENS} ", LEFT_PARENS).replace(f" {RIGHT_PARENS}", RIGHT_PARENS)


def has_unary_plus_operator(token: str) -> bool:
    return token.endswith(PLUS_OPERATOR)


def parse_expression(expression: str, index: PolicyIndex) -> ExpressionNode:
    root = ExpressionNode()
    tokens = tokenize(expression)
    logger.debug("Tokens: %s", tokens)

    final_position = _parse_compound(root, tokens, 0, index)
    logger.debug("Parsed expression `%s` (%d tokens): %s", join_tokens(tokens), final_position, root)
    return root


def _parse_compound(
    node: ExpressionNode, tokens: List[str], position: int, index: PolicyIndex
) -> int:
    while position < len(tokens):
        token = tokens[position]

        if token == LEFT_PARENS:
            child = ExpressionNode()
            position = _parse_compound(child, tokens, position + 1, index)
            if node.conjunction is None:
                node.child_left = child
                node.simple_left, node.simple_left_has_plus, node.left_policy = "", False, None
                node.left_usage = child.resolved_policy
            else:
                node.child_right = child
                node.simple_right, node.simple_right_has_plus, node.right_policy = "", False, None
                node.right_usage = child.resolved_policy
            continue

        if token == RIGHT_PARENS:
            finalize(node)
            return position + 1

        if token in CONJUNCTIONS:
            logger.debug("[%d] conjunction: `%s`", position, token)
            node.conjunction = token
        elif token == WITH:
            logger.debug("[%d] preposition: `%s`", position, token)
            if node.conjunction is None:
                node.preposition_left = token
            else:
                node.preposition_right = token
        else:
            logger.debug("[%d] simple expression: `%s`", position, token)
            _assign_simple(node, token, index)

        position += 1

    finalize(node)
    return position


def _assign_simple(node: ExpressionNode, token: str, index: PolicyIndex) -> None:
    has_plus = has_unary_plus_operator(token)
    spdx_id = token[: -len(PLUS_OPERATOR)] if has_plus else token

    if node.conjunction is None:
        if node.preposition_left and not node.exception_left:
            node.exception_left = token
            return
        node.child_left = None
        node.simple_left = spdx_id
        node.simple_left_has_plus = has_plus
        node.left_policy = index.find_by_id(spdx_id)
        node.left_usage = index.usage_policy_by_id(spdx_id)
    else:
        if node.preposition_right and not node.exception_right:
            node.exception_right = token
            return
        node.child_right = None
        node.simple_right = spdx_id
        node.simple_right_has_plus = has_plus
        node.right_policy = index.find_by_id(spdx_id)
        node.right_usage = index.usage_policy_by_id(spdx_id)


def finalize(node: ExpressionNode) -> str:
    """Compute ``node.resolved_policy`` from its operands and return it.

    Anything other than ``allow`` counts as a denial when combined, so an
    unmatched operand never makes an AND pass.
    """
    left_allowed = node.left_usage == POLICY_ALLOW
    right_allowed = node.right_usage == POLICY_ALLOW

    if node.conjunction == AND:
        node.resolved_policy = POLICY_ALLOW if left_allowed and right_allowed else POLICY_DENY
    elif node.conjunction == OR:
        node.resolved_policy = POLICY_ALLOW if left_allowed or right_allowed else POLICY_DENY
    else:
        node.resolved_policy = node.left_usage

    logger.debug(
        "(%s (%s) %s %s (%s)) == %s",
        node.simple_left,
        node.left_usage,
        node.conjunction or "",
        node.simple_right,
        node.right_usage,
        node.resolved_policy,
    )
    return node.resolved_policy
