"""
Company name validation and formatting.

Validation runs before any network call; a rejected name never
reaches the orchestrator.
"""

import re

MIN_LENGTH = 2
MAX_LENGTH = 50

_ALLOWED   = re.compile(r"^[a-zA-Z0-9\s\-&'.(),]+$")
_DENYLIST  = ["badword", "inappropriate", "offensive"]


class InvalidCompanyName(ValueError):
    """Raised with the user-facing reason a company name was rejected."""


def validate_company_name(name: str) -> str:
    """Trimmed name, or InvalidCompanyName with the first rule it breaks."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise InvalidCompanyName("Please enter a company name")
    if len(trimmed) < MIN_LENGTH:
        raise InvalidCompanyName("Company name must be at least 2 characters long")
    if len(trimmed) > MAX_LENGTH:
        raise InvalidCompanyName("Company name must be less than 50 characters long")
    if not ("a" <= trimmed[0].lower() <= "z"):
        raise InvalidCompanyName("Company name must start with a letter")
    if not _ALLOWED.match(trimmed):
        raise InvalidCompanyName("Company name contains invalid characters")
    lower = trimmed.lower()
    if any(word in lower for word in _DENYLIST):
        raise InvalidCompanyName("Please enter an appropriate company name")
    return trimmed


def format_company_name(name: str) -> str:
    """Title-case each word, keeping all-caps words (IBM, AT&T) as they are."""
    words = []
    for word in name.strip().split():
        if len(word) > 1 and word.upper() == word:
            words.append(word)
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)
