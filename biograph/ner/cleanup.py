"""Remove spurious fragments from a set of detected entity names.

Subword taggers over-segment unfamiliar proper names in archival text, so one
person routinely shows up as "Gau", "Gauguin" and "Paul Gauguin". Each rule
below is a plain function on strings so it can be tested with literal pairs.
"""

import re
from typing import Iterable

from biograph.entity import EntityCategory, unique_names

STUCK_NAME_MIN_LENGTH = 10
STUCK_PART_MIN_LENGTH = 3
MAX_CHAR_DIFFERENCES = 2

_STUCK_PATTERN = re.compile(r"([A-Z][a-z]+)([A-Z][a-z]*)")
_TWO_CHAR_NAME = re.compile(r"^[A-Z][a-z]$")

BLACKLIST = frozenset(
    {
        "your honour", "your honor", "revue ine", "independent",
        "dr", "mr", "mrs", "ms", "sir", "madam",
        "the", "a", "an", "and", "or", "of", "to", "in",
        "v", "van", "de", "du", "la", "le",
    }
)


def _positional_differences(a: str, b: str) -> int:
    """Mismatches over the common prefix length plus the length difference."""
    differences = sum(1 for x, y in zip(a, b) if x != y)
    return differences + abs(len(a) - len(b))


def is_fragment_of(short: str, long: str) -> bool:
    """Whether ``short`` looks like a partial or misspelt detection of ``long``.

    Comparison is case-insensitive and a name is never a fragment of itself.
    Any one of these is enough:

    * one contains the other;
    * one is a prefix of the other;
    * lengths within two characters and at most two positional differences
      ("Gache" vs "Gachet");
    * the first ``max(3, len(short) - 2)`` characters of ``short`` occur in
      ``long`` ("Paul Gau" vs "Paul Gauguin").
    """
    short_norm = short.lower().strip()
    long_norm = long.lower().strip()
    if short_norm == long_norm:
        return False

    if short_norm in long_norm or long_norm in short_norm:
        return True
    if long_norm.startswith(short_norm) or short_norm.startswith(long_norm):
        return True
    if abs(len(short_norm) - len(long_norm)) <= MAX_CHAR_DIFFERENCES:
        if _positional_differences(short_norm, long_norm) <= MAX_CHAR_DIFFERENCES:
            return True
    head = short_norm[: max(3, len(short_norm) - 2)]
    return head in long_norm


def split_stuck_names(names: Iterable[str]) -> list[str]:
    """Split names that were glued together without a space ("PaulGauguinTheo").

    Only names longer than ten characters containing a CamelCase run are
    split; each captured part of at least three characters replaces the
    original entry.
    """
    out: list[str] = []
    for name in names:
        matches = list(_STUCK_PATTERN.finditer(name))
        if matches and len(name) > STUCK_NAME_MIN_LENGTH:
            for match in matches:
                for part in match.groups():
                    if part and len(part) >= STUCK_PART_MIN_LENGTH:
                        out.append(part)
        else:
            out.append(name)
    return unique_names(out)


def is_noise_name(name: str) -> bool:
    """Single characters, and two characters unless shaped like "Jo"."""
    if len(name) <= 1:
        return True
    if len(name) == 2 and not _TWO_CHAR_NAME.match(name):
        return True
    return False


def clean_fragments(names: Iterable[str]) -> list[str]:
    """Reduce a set of names in one category to its longest, non-fragment forms.

    Running it on its own output returns the same list.
    """
    candidates = split_stuck_names(names)
    cleaned: list[str] = []
    for name in candidates:
        if is_noise_name(name):
            continue
        if any(len(other) > len(name) and is_fragment_of(name, other) for other in candidates):
            continue
        cleaned.append(name)
    return cleaned


def drop_blacklisted(names: Iterable[str], category: EntityCategory) -> list[str]:
    """Remove titles, particles and other words the tagger mistakes for names."""
    out: list[str] = []
    for name in names:
        if name.lower() in BLACKLIST:
            continue
        if category == EntityCategory.ORGANIZATION and len(name) < 3:
            continue
        out.append(name)
    return out
