"""Entity types shared by the extraction pipeline and the graph builder."""

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, Field, field_validator

SUBWORD_MARKER = "##"


class EntityCategory(str, Enum):
    """Category of a detected named entity."""

    PERSON = "person"
    PLACE = "place"
    ORGANIZATION = "organization"
    MISC = "misc"

    @classmethod
    def from_label(cls, label: str) -> "EntityCategory | None":
        """Map a classifier label (``B-PER``, ``LOC``, ``I-ORG``...) to a category.

        Returns None for labels outside the known scheme, including ``O``.
        """
        base = strip_bio_prefix(label).upper()
        return _LABEL_TO_CATEGORY.get(base)


_LABEL_TO_CATEGORY: dict[str, EntityCategory] = {
    "PER": EntityCategory.PERSON,
    "PERSON": EntityCategory.PERSON,
    "LOC": EntityCategory.PLACE,
    "LOCATION": EntityCategory.PLACE,
    "ORG": EntityCategory.ORGANIZATION,
    "ORGANIZATION": EntityCategory.ORGANIZATION,
    "MISC": EntityCategory.MISC,
}


def strip_bio_prefix(label: str) -> str:
    """Return the base type of a BIO label: ``B-PER`` and ``I-PER`` become ``PER``."""
    s = (label or "").strip()
    if len(s) > 2 and s[0] in "BIbi" and s[1] == "-":
        return s[2:]
    return s


def unique_names(names: Iterable[str]) -> list[str]:
    """Strip names and drop empties and duplicates, keeping first occurrences in order."""
    seen: set[str] = set()
    out: list[str] = []
    for name in names:
        if name is None:
            continue
        cleaned = str(name).strip()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        out.append(cleaned)
    return out


class TaggedToken(BaseModel, frozen=True):
    """One token emitted by a token-classification model."""

    word: str = Field(description="Token text; subword pieces carry a leading '##'.")
    label: str = Field(description="BIO-style label such as 'B-PER', 'I-LOC' or plain 'ORG'.")
    score: float = Field(ge=0.0, le=1.0, description="Classifier confidence for the label.")

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "TaggedToken":
        """Build a token from a raw classifier dict.

        Hugging Face pipelines emit ``entity``/``word``; other taggers use
        ``label``/``text``. Scores may be numpy floats.
        """
        score = float(raw.get("score") or 0.0)
        return cls(
            word=str(raw.get("word") or raw.get("text") or ""),
            label=str(raw.get("entity") or raw.get("entity_group") or raw.get("label") or ""),
            score=max(0.0, min(1.0, score)),
        )

    @property
    def base_label(self) -> str:
        return strip_bio_prefix(self.label)

    @property
    def is_continuation(self) -> bool:
        label = self.label.strip()
        return len(label) > 2 and label[0] in "Ii" and label[1] == "-"

    @property
    def is_subword(self) -> bool:
        return self.word.startswith(SUBWORD_MARKER)

    @property
    def clean_word(self) -> str:
        if self.is_subword:
            return self.word[len(SUBWORD_MARKER):]
        return self.word


class EntityMention(BaseModel, frozen=True):
    """A reassembled entity span, before cleanup and deduplication."""

    text: str = Field(description="The reassembled span text.")
    category: EntityCategory = Field(description="Detected entity category.")
    confidence: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Highest token score that contributed to the span.",
    )


class ExtractedEntities(BaseModel, frozen=True):
    """Deduplicated entity names found in one text."""

    people: list[str] = Field(default_factory=list)
    places: list[str] = Field(default_factory=list)
    organizations: list[str] = Field(default_factory=list)

    @field_validator("people", "places", "organizations", mode="before")
    @classmethod
    def _dedupe(cls, value: Any) -> list[str]:
        if value is None:
            return []
        return unique_names(value)

    @classmethod
    def empty(cls) -> "ExtractedEntities":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.people or self.places or self.organizations)

    def for_category(self, category: EntityCategory) -> list[str]:
        if category == EntityCategory.PERSON:
            return list(self.people)
        if category == EntityCategory.PLACE:
            return list(self.places)
        if category == EntityCategory.ORGANIZATION:
            return list(self.organizations)
        return []

    def merge(self, other: "ExtractedEntities") -> "ExtractedEntities":
        """Ordered union of both results; entries from ``self`` come first."""
        return ExtractedEntities(
            people=[*self.people, *other.people],
            places=[*self.places, *other.places],
            organizations=[*self.organizations, *other.organizations],
        )
