"""Map spelling and title variants of correspondents onto one canonical name.

Archives spell the same person many ways ("Theo", "Theo van Gogh",
"T. van Gogh"). The alias map is per corpus and comes from configuration;
it must be applied before node ids are computed or the person splits into
several nodes.
"""

import unicodedata
from collections import Counter
from typing import Iterable, Sequence

from biograph.config import BiographConfig
from biograph.graph.models import node_key
from biograph.letter import UNKNOWN, Letter
from biograph.logging import setup_logging

logger = setup_logging(name="biograph.graph.aliases")

DEFAULT_UNKNOWN_NAMES = ("Unknown", "Desconocido")


def alias_key(name: str) -> str:
    """Comparison form: casefolded, accents stripped, whitespace collapsed."""
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.split()).casefold()


class AliasMap:
    """Variant -> canonical name lookup.

    A variant listed under two different canonical names is ambiguous and
    is left unmapped, so the person stays split rather than merged with the
    wrong one.
    """

    def __init__(self, aliases: dict[str, Sequence[str]] | None = None):
        self._canonical: dict[str, str] = {}
        self.ambiguous: set[str] = set()
        for canonical, variants in (aliases or {}).items():
            for variant in [canonical, *variants]:
                self._add(alias_key(variant), canonical.strip())
        for key in self.ambiguous:
            self._canonical.pop(key, None)

    def _add(self, key: str, canonical: str) -> None:
        if not key or key in self.ambiguous:
            return
        existing = self._canonical.get(key)
        if existing is None:
            self._canonical[key] = canonical
        elif existing != canonical:
            logger.warning(
                {"message": "Ambiguous alias left unmapped", "variant": key, "canonicals": [existing, canonical]},
                pprint=True,
            )
            self.ambiguous.add(key)

    @classmethod
    def empty(cls) -> "AliasMap":
        """A map that passes every name through unchanged."""
        return cls()

    @classmethod
    def from_config(cls, config: BiographConfig) -> "AliasMap":
        """Build from the ``[aliases]`` table of a loaded config."""
        return cls(config.aliases)

    def __len__(self) -> int:
        return len(self._canonical)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and alias_key(name) in self._canonical

    def normalize(self, name: str) -> str:
        """Canonical form of ``name``, or the stripped input when it is not a known variant."""
        cleaned = " ".join(name.split())
        return self._canonical.get(alias_key(cleaned), cleaned)


def is_unknown(name: str | None, unknown_names: Iterable[str] = DEFAULT_UNKNOWN_NAMES) -> bool:
    """True for missing names and the archive's placeholders for 'nobody'.

    Letters store a blank sender or recipient as ``"Unknown"``; that
    placeholder always counts, whatever ``unknown_names`` lists.
    """
    if name is None or not name.strip():
        return True
    key = alias_key(name)
    return key == alias_key(UNKNOWN) or any(key == alias_key(u) for u in unknown_names)


def detect_central_person(
    letters: Sequence[Letter],
    aliases: AliasMap | None = None,
    unknown_names: Iterable[str] = DEFAULT_UNKNOWN_NAMES,
    fallback: str | None = None,
) -> str | None:
    """The person who appears most often as sender or recipient.

    Names are counted by node identity, so spellings that differ only in
    case or spacing count as one person; the first spelling seen is
    returned. Ties go to whoever was encountered first. Returns
    ``fallback`` when no letter names anybody.
    """
    aliases = aliases or AliasMap.empty()
    unknown = tuple(unknown_names)
    counts: Counter[str] = Counter()
    first_seen: dict[str, int] = {}
    labels: dict[str, str] = {}
    for letter in letters:
        for name in (letter.sender, letter.recipient):
            if is_unknown(name, unknown):
                continue
            canonical = aliases.normalize(name)
            key = node_key(canonical)
            counts[key] += 1
            first_seen.setdefault(key, len(first_seen))
            labels.setdefault(key, canonical)
    if not counts:
        return fallback
    return labels[min(counts, key=lambda k: (-counts[k], first_seen[k]))]
