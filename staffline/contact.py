"""Contact-information detection for expert-authored text.

Experts may not publish ways to reach them outside the platform. Draft names,
bios and portfolio titles are scanned for:
- Email addresses
- Phone-number-shaped digit runs
- Messaging handles (@name)
- Messaging-app keywords and short links (whatsapp, t.me, ...)

Usage:
    from staffline.contact import contains_contact_info, detect_contact_info

    if contains_contact_info("ping me on telegram"):
        ...
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence

from staffline.config import DEFAULT_CONTACT_KEYWORDS


class ContactType(Enum):
    """Kinds of contact information that can be detected."""

    EMAIL = "email"
    PHONE = "phone"
    HANDLE = "handle"
    MESSAGING_APP = "messaging_app"


@dataclass
class ContactFinding:
    """A detected contact-info occurrence."""

    contact_type: ContactType
    value: str
    start: int
    end: int


EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z0-9._-]+")

# Digits separated by spaces or dashes, optional leading +
PHONE_PATTERN = re.compile(r"\+?\d[\d\s-]{6,}\d")
MIN_PHONE_DIGITS = 7

# @handle not preceded by a word char (so the local part of an email is skipped)
HANDLE_PATTERN = re.compile(r"(?<![\w.@])@[A-Za-z0-9_]{3,}")


@lru_cache(maxsize=16)
def _keyword_pattern(keywords: tuple) -> Optional[re.Pattern]:
    if not keywords:
        return None
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(f"(?<![A-Za-z0-9])(?:{alternatives})", re.IGNORECASE)


def detect_contact_info(
    text: str,
    keywords: Iterable[str] = DEFAULT_CONTACT_KEYWORDS,
    types: Optional[Sequence[ContactType]] = None,
) -> List[ContactFinding]:
    """Detect contact information in text.

    Args:
        text: Text to scan
        keywords: Messaging-app markers, matched case-insensitively
        types: Specific contact types to detect (default: all)

    Returns:
        Findings sorted by position in text
    """
    if not text:
        return []
    if types is None:
        types = list(ContactType)

    findings: List[ContactFinding] = []

    if ContactType.EMAIL in types:
        for match in EMAIL_PATTERN.finditer(text):
            findings.append(
                ContactFinding(ContactType.EMAIL, match.group(), match.start(), match.end())
            )

    if ContactType.PHONE in types:
        for match in PHONE_PATTERN.finditer(text):
            digits = re.sub(r"\D", "", match.group())
            if len(digits) >= MIN_PHONE_DIGITS:
                findings.append(
                    ContactFinding(ContactType.PHONE, match.group(), match.start(), match.end())
                )

    if ContactType.HANDLE in types:
        for match in HANDLE_PATTERN.finditer(text):
            findings.append(
                ContactFinding(ContactType.HANDLE, match.group(), match.start(), match.end())
            )

    if ContactType.MESSAGING_APP in types:
        pattern = _keyword_pattern(tuple(k.lower() for k in keywords))
        if pattern is not None:
            for match in pattern.finditer(text):
                findings.append(
                    ContactFinding(
                        ContactType.MESSAGING_APP, match.group(), match.start(), match.end()
                    )
                )

    findings.sort(key=lambda f: f.start)
    return findings


def contains_contact_info(
    text: str,
    keywords: Iterable[str] = DEFAULT_CONTACT_KEYWORDS,
) -> bool:
    """Check if text contains any contact information."""
    return len(detect_contact_info(text, keywords)) > 0
