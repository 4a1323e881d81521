# accounting/codes.py
"""
Account code grammar.

    1            level 1  (ASSET)
    1-01         level 2
    1-01-02      level 3
    1-01-02-03   level 4

The leading digit (1-5) is the account type. ``order`` is the code's
digits padded on the right to a fixed width, so every level sorts
depth-first under its parent.
"""

import re
from dataclasses import dataclass
from typing import Optional

from accounting.models import AccountCode

CODE_PATTERN = re.compile(r"^[1-5](-\d{2}){0,3}$")
MAX_LEVEL = 4
ORDER_WIDTH = 1 + 2 * (MAX_LEVEL - 1)


@dataclass(frozen=True)
class ParsedCode:
    code: str
    level: int
    order: int
    account_type: str
    parent_code: Optional[str]


def is_well_formed(code: str) -> bool:
    return bool(code) and CODE_PATTERN.match(code) is not None


def derive_level(code: str) -> int:
    return len(code.split("-"))


def derive_order(code: str) -> int:
    return int(code.replace("-", "").ljust(ORDER_WIDTH, "0"))


def parent_code_of(code: str) -> Optional[str]:
    segments = code.split("-")
    if len(segments) == 1:
        return None
    return "-".join(segments[:-1])


def ancestor_code_at(code: str, level: int) -> str:
    """Prefix of ``code`` at ``level``; the code itself if it is shallower."""
    return "-".join(code.split("-")[:level])


def parse_code(code: str) -> ParsedCode:
    """
    Parse a well-formed code.

    Raises:
        ValueError: If the code does not match the grammar
    """
    code = (code or "").strip()
    if not is_well_formed(code):
        raise ValueError(f"Invalid account code format: {code!r}")
    return ParsedCode(
        code=code,
        level=derive_level(code),
        order=derive_order(code),
        account_type=AccountCode.TYPE_BY_LEADING_DIGIT[code[0]],
        parent_code=parent_code_of(code),
    )
