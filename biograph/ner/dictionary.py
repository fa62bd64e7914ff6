"""Known-entity dictionaries for corpus-specific correction of tagger output.

A dictionary lists the canonical people, places and organizations of one
corpus. It is used two ways: to snap partial detections onto their canonical
form ("Gau" -> "Paul Gauguin"), and to re-scan the letter text for entries the
tagger missed altogether. Dictionaries are optional; any failure to load one
falls back to tagger-only output.
"""

import logging
import re
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from biograph.entity import EntityCategory, ExtractedEntities, unique_names

logger = logging.getLogger(__name__)

BUILTIN_PACKAGE = "biograph.ner.dictionaries"
MIN_VARIANT_LENGTH = 3
MIN_NORMALIZE_LENGTH = 2


@lru_cache(maxsize=1024)
def _word_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


def person_variants(full_name: str) -> list[str]:
    """Full name plus first and last token, each at least three characters long."""
    variants = [full_name]
    parts = full_name.split()
    if len(parts) > 1:
        variants.append(parts[-1])
        variants.append(parts[0])
    return [v for v in unique_names(variants) if len(v) >= MIN_VARIANT_LENGTH]


class KnownEntityDictionary(BaseModel, frozen=True):
    """Canonical entity names for one corpus."""

    name: str = Field(description="Dictionary name used to select it at extraction time.")
    people: tuple[str, ...] = Field(default=())
    places: tuple[str, ...] = Field(default=())
    organizations: tuple[str, ...] = Field(default=())

    @field_validator("people", "places", "organizations", mode="before")
    @classmethod
    def _dedupe(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        return tuple(unique_names(value))

    def entries(self, category: EntityCategory) -> tuple[str, ...]:
        if category == EntityCategory.PERSON:
            return self.people
        if category == EntityCategory.PLACE:
            return self.places
        if category == EntityCategory.ORGANIZATION:
            return self.organizations
        return ()

    def normalize(self, entity: str, category: EntityCategory) -> str:
        """Replace a detected name with its canonical dictionary form.

        An exact case-insensitive match wins; otherwise the first entry that
        contains, or is contained in, the detected name. Unmatched and very
        short names come back unchanged.
        """
        needle = entity.lower().strip()
        if len(needle) < MIN_NORMALIZE_LENGTH:
            return entity
        entries = self.entries(category)
        for item in entries:
            if item.lower() == needle:
                return item
        for item in entries:
            item_lower = item.lower()
            if needle in item_lower or item_lower in needle:
                return item
        return entity

    def find_in_text(self, text: str) -> ExtractedEntities:
        """Find dictionary entries mentioned anywhere in ``text``.

        People match on any of their variants and places on the whole name,
        both at word boundaries. Organizations match as plain substrings since
        they are often inflected or abbreviated in running text.
        """
        if not text or not text.strip():
            return ExtractedEntities.empty()

        people = [
            person
            for person in self.people
            if any(_word_pattern(variant).search(text) for variant in person_variants(person))
        ]
        places = [place for place in self.places if _word_pattern(place).search(text)]
        lowered = text.lower()
        organizations = [org for org in self.organizations if org.lower() in lowered]
        return ExtractedEntities(people=people, places=places, organizations=organizations)

    def augment(self, entities: ExtractedEntities, text: str) -> ExtractedEntities:
        """Normalize detected entities, then union them with dictionary recall."""
        normalized = ExtractedEntities(
            people=[self.normalize(p, EntityCategory.PERSON) for p in entities.people],
            places=[self.normalize(p, EntityCategory.PLACE) for p in entities.places],
            organizations=[self.normalize(o, EntityCategory.ORGANIZATION) for o in entities.organizations],
        )
        return normalized.merge(self.find_in_text(text))


def load_dictionary(path: Path) -> KnownEntityDictionary:
    """Load a dictionary from a YAML file with people/places/organizations lists.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not a YAML mapping or fails validation.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Dictionary file {path} must contain a mapping")
    data.setdefault("name", path.stem)
    return KnownEntityDictionary.model_validate(data)


def builtin_dictionary_path(name: str) -> Path | None:
    """Path of a dictionary shipped with the package, or None."""
    candidate = resources.files(BUILTIN_PACKAGE).joinpath(f"{name}.yaml")
    if candidate.is_file():
        return Path(str(candidate))
    return None


class DictionaryRegistry:
    """Resolves dictionary names to loaded dictionaries, caching each load.

    Names configured in ``paths`` take precedence over the built-in ones.
    """

    def __init__(self, paths: dict[str, Path] | None = None):
        self._paths = dict(paths or {})
        self._loaded: dict[str, KnownEntityDictionary] = {}

    def register(self, dictionary: KnownEntityDictionary) -> None:
        """Make an in-memory dictionary available under its own name."""
        self._loaded[dictionary.name] = dictionary

    def path_for(self, name: str) -> Path | None:
        if name in self._paths:
            return self._paths[name]
        return builtin_dictionary_path(name)

    def get(self, name: str) -> KnownEntityDictionary | None:
        """Return the named dictionary, or None when it is unknown or fails to load."""
        if name in self._loaded:
            return self._loaded[name]
        path = self.path_for(name)
        if path is None:
            logger.warning("Unknown entity dictionary %r; using tagger output only", name)
            return None
        try:
            dictionary = load_dictionary(path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("Failed to load entity dictionary %r from %s: %s", name, path, e)
            return None
        self._loaded[name] = dictionary
        return dictionary
