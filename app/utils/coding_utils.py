"""
Chart-of-accounts code rules.

Levels and their own code widths:
  group     1 digit  (1-9)
  class     1 digit  (1-9)
  subclass  2 digits (01-99)
  detail    2 digits (01-99)

Full codes are the concatenation down the tree, so their lengths are
1, 2, 4 and 6 characters.
"""
from typing import Iterable, Optional, Dict

LEVELS = ("group", "class", "subclass", "detail")

CODE_WIDTH = {"group": 1, "class": 1, "subclass": 2, "detail": 2}
CODE_MAX = {"group": 9, "class": 9, "subclass": 99, "detail": 99}

FULL_CODE_LEVEL = {1: "group", 2: "class", 4: "subclass", 6: "detail"}

NATURES = ("DEBIT", "CREDIT", "DEBIT_CREDIT")


def validate_code(level: str, code) -> str:
    """Return the normalized (zero padded) code or raise ValueError."""
    if level not in CODE_WIDTH:
        raise ValueError(f"Unknown coding level: {level}")

    raw = str(code if code is not None else "").strip()
    if not raw.isdigit():
        raise ValueError(f"{level} code must be numeric")

    width = CODE_WIDTH[level]
    if len(raw) > width:
        raise ValueError(f"{level} code must be {width} digit(s)")

    value = int(raw)
    if value < 1 or value > CODE_MAX[level]:
        raise ValueError(f"{level} code must be between {1:0{width}d} and {CODE_MAX[level]}")

    return f"{value:0{width}d}"


def validate_nature(nature: str) -> str:
    value = (nature or "").strip().upper()
    if value not in NATURES:
        raise ValueError(f"nature must be one of {', '.join(NATURES)}")
    return value


def next_code(level: str, existing: Iterable[str]) -> Optional[str]:
    """
    Suggest the next free code among siblings: max + 1, or the first gap when
    the max is already at the level limit. None when the level is full.
    """
    width = CODE_WIDTH[level]
    limit = CODE_MAX[level]

    used = set()
    for c in existing:
        c = str(c).strip()
        if c.isdigit():
            used.add(int(c))

    if not used:
        return f"{1:0{width}d}"

    candidate = max(used) + 1
    if candidate <= limit:
        return f"{candidate:0{width}d}"

    for value in range(1, limit + 1):
        if value not in used:
            return f"{value:0{width}d}"
    return None


def split_full_code(full_code: str) -> Dict[str, str]:
    code = str(full_code or "").strip()
    if not code.isdigit() or len(code) not in FULL_CODE_LEVEL:
        raise ValueError("Full code must be 1, 2, 4 or 6 digits")

    parts = {"level": FULL_CODE_LEVEL[len(code)], "group": code[0]}
    if len(code) >= 2:
        parts["class"] = code[1]
    if len(code) >= 4:
        parts["subclass"] = code[2:4]
    if len(code) >= 6:
        parts["detail"] = code[4:6]
    return parts


def level_of(full_code: str) -> str:
    return split_full_code(full_code)["level"]


def matches_prefix(account_code: str, prefixes: Iterable[str]) -> bool:
    code = str(account_code or "")
    return any(code.startswith(p) for p in prefixes)
