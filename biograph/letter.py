"""Correspondence records consumed by the extraction pipeline and graph builder.

Letters arrive already validated from the archive's CSV import. Field names
follow Python conventions, but the archive's camelCase keys (``placeFrom``,
``mentionedPeople``, ``personFrom``...) are accepted on input so stored
records can be passed straight through.
"""

import datetime as dt
import json
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from biograph.entity import ExtractedEntities, unique_names

UNKNOWN = "Unknown"
SENTINEL_DATE = dt.date(1900, 1, 1)

_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m", "%Y", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def parse_letter_date(value: Any, sentinel: dt.date = SENTINEL_DATE) -> dt.date:
    """Resolve a letter's date field to a calendar date.

    Accepts ``date``/``datetime`` objects and ISO-like strings (``1888``,
    ``1888-05``, ``1888-05-01``, full ISO timestamps, ``01/05/1888``).
    Anything else resolves to ``sentinel`` so a bad date never reaches node
    or edge construction.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        return sentinel
    text = value.strip()
    if not text:
        return sentinel
    try:
        return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return sentinel


def is_valid_letter_date(value: Any) -> bool:
    """True when ``value`` parses to a real date rather than the sentinel fallback."""
    marker = dt.date.min
    return parse_letter_date(value, sentinel=marker) != marker


class Letter(BaseModel):
    """A single piece of correspondence."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    letter_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("letter_id", "letterId", "id", "filename"),
        description="Stable identifier; letter nodes fall back to their sequence number.",
    )
    date: str = Field(default="", description="ISO-like date string as stored in the archive.")
    sender: str = Field(
        default=UNKNOWN,
        validation_alias=AliasChoices("sender", "personFrom", "person_from"),
    )
    recipient: str = Field(
        default=UNKNOWN,
        validation_alias=AliasChoices("recipient", "personTo", "person_to"),
    )
    place_from: str | None = Field(default=None, validation_alias=AliasChoices("place_from", "placeFrom"))
    place_to: str | None = Field(default=None, validation_alias=AliasChoices("place_to", "placeTo"))
    content: str = Field(default="")
    title: str | None = Field(default=None)
    language: str | None = Field(default=None)
    mentioned_people: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("mentioned_people", "mentionedPeople"),
    )
    mentioned_places: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("mentioned_places", "mentionedPlaces"),
    )
    mentioned_organizations: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("mentioned_organizations", "mentionedOrganizations"),
    )
    mentioned_events: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("mentioned_events", "mentionedEvents"),
    )

    @field_validator(
        "mentioned_people",
        "mentioned_places",
        "mentioned_organizations",
        "mentioned_events",
        mode="before",
    )
    @classmethod
    def _clean_mentions(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(";")
        return unique_names(value)

    @field_validator("sender", "recipient", mode="before")
    @classmethod
    def _clean_person(cls, value: Any) -> str:
        if value is None:
            return UNKNOWN
        text = str(value).strip()
        return text or UNKNOWN

    @field_validator("place_from", "place_to", mode="before")
    @classmethod
    def _clean_place(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("date", mode="before")
    @classmethod
    def _date_to_str(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (dt.date, dt.datetime)):
            return value.isoformat()
        return str(value)

    def resolved_date(self, sentinel: dt.date = SENTINEL_DATE) -> dt.date:
        return parse_letter_date(self.date, sentinel=sentinel)

    def with_entities(self, extracted: ExtractedEntities) -> "Letter":
        """Return a copy with newly extracted entities appended to the mention lists."""
        return self.model_copy(
            update={
                "mentioned_people": unique_names([*self.mentioned_people, *extracted.people]),
                "mentioned_places": unique_names([*self.mentioned_places, *extracted.places]),
                "mentioned_organizations": unique_names(
                    [*self.mentioned_organizations, *extracted.organizations]
                ),
            }
        )


class BiographyRecord(BaseModel, frozen=True):
    """The per-biography aggregate handed to the graph builder.

    Photos and trips belong to other views and are carried through untouched.
    """

    biography_id: str
    subject_name: str | None = None
    letters: list[Letter] = Field(default_factory=list)
    photos: list[dict[str, Any]] = Field(default_factory=list)
    trips: list[dict[str, Any]] = Field(default_factory=list)


def load_letters(path: Path) -> list[Letter]:
    """Read letters from a JSON file.

    The file holds either an array of letter objects or a biography record
    (an object with a ``letters`` array).

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the JSON is malformed or a letter fails validation.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("letters", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of letters")
    return [Letter.model_validate(item) for item in data]
