"""Person-name heuristics used to validate team member matches."""

import re
from typing import Optional

from ..patterns import FIRST_NAMES, NAME_BLACKLIST

_NAME_PART_RE = re.compile(r"^[A-Z][a-zA-Z'\-]+$")


def normalize_name(name: str) -> str:
    """Title-case a name, keeping initials and O'/Mc/Mac prefixes intact."""
    parts = []
    for part in name.strip().split():
        if len(part) <= 2:
            parts.append(part.upper())
        elif "'" in part:
            before, _, after = part.partition("'")
            parts.append(before.capitalize() + "'" + after.capitalize())
        elif part.lower().startswith("mc") and len(part) > 3:
            parts.append("Mc" + part[2].upper() + part[3:].lower())
        elif part.lower().startswith("mac") and len(part) > 4:
            parts.append("Mac" + part[3].upper() + part[4:].lower())
        else:
            parts.append(part.capitalize())
    return " ".join(parts)


def is_valid_person_name(name: str) -> bool:
    """
    Check whether a string looks like a real person's name.

    Rules: 2 to 4 parts, the first part is a known first name, no part is a
    blacklisted noise word, every part is capitalized (apostrophes, hyphens and
    internal capitals allowed) and the last part has at least two characters.
    """
    parts = name.strip().split()
    if len(parts) < 2 or len(parts) > 4:
        return False

    if parts[0].lower() not in FIRST_NAMES:
        return False

    for part in parts:
        if part.lower().rstrip(".") in NAME_BLACKLIST:
            return False

    for part in parts:
        if len(part) <= 2:
            # Initials like "J." or short names like "Al"
            if not part[0].isupper():
                return False
            continue
        if not _NAME_PART_RE.match(part):
            return False

    return len(parts[-1]) >= 2


def resolve_person_name(candidate: str) -> Optional[str]:
    """
    Find the person name inside a capitalized run of words.

    Leading words that are not part of the name ("Meet Jane Doe") are
    dropped one at a time until a valid name remains.
    """
    tokens = candidate.split()
    for start in range(0, max(len(tokens) - 1, 0)):
        name = " ".join(tokens[start:])
        if is_valid_person_name(name):
            return name
    return None
