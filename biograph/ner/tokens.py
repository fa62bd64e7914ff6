"""Reassemble subword classifier tokens into whole entity spans.

A BERT-style tagger emits one label per wordpiece, so a surname such as
"Rappard" arrives as ``Rap`` (``B-PER``) followed by ``##pard`` (``I-PER``).
This module walks the token stream once, keeping a single open span, and
commits each span to its category bucket when a token cannot extend it.

Fragments that slip through are removed by ``biograph.ner.cleanup``.
"""

import re
from typing import Any, Iterable

from biograph.entity import EntityCategory, EntityMention, ExtractedEntities, TaggedToken

DEFAULT_SCORE_THRESHOLD = 0.5

COMMON_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "of", "to", "in", "for", "on", "at", "by",
        "with", "is", "was", "are", "be", "been", "as", "it", "from",
    }
)

_NO_LETTERS = re.compile(r"^[^a-zA-Z]+$")
_ODD_SYMBOLS = re.compile(r"[#@$%^&*()]")
_UPPER_INITIAL = re.compile(r"^[A-Z]")


def accept_entity(text: str, category: EntityCategory) -> str | None:
    """Return the cleaned span text if it is plausible for ``category``, else None.

    Short person names are kept when capitalised ("Jo", "Al"); places need a
    capital initial; organisations only need two characters.
    """
    clean = text.strip()
    while clean.startswith("##"):
        clean = clean[2:]
    clean = clean.strip()
    if not clean:
        return None
    if clean.lower() in COMMON_WORDS:
        return None
    if _NO_LETTERS.match(clean) or _ODD_SYMBOLS.search(clean):
        return None

    if category == EntityCategory.PERSON:
        if len(clean) < 3 and not _UPPER_INITIAL.match(clean):
            return None
    elif category == EntityCategory.PLACE:
        if len(clean) < 2 or not _UPPER_INITIAL.match(clean):
            return None
    elif category == EntityCategory.ORGANIZATION:
        if len(clean) < 2:
            return None
    else:
        return None
    return clean


class _Span:
    __slots__ = ("text", "label", "score")

    def __init__(self, token: TaggedToken):
        self.text = token.clean_word
        self.label = token.base_label
        self.score = token.score

    def accepts(self, token: TaggedToken) -> bool:
        return self.label == token.base_label and (token.is_continuation or token.is_subword)

    def extend(self, token: TaggedToken) -> None:
        if token.is_subword:
            self.text += token.clean_word
        else:
            self.text += " " + token.clean_word
        self.score = max(self.score, token.score)

    def to_mention(self) -> EntityMention | None:
        category = EntityCategory.from_label(self.label)
        if category is None or category == EntityCategory.MISC:
            return None
        text = accept_entity(self.text, category)
        if text is None:
            return None
        return EntityMention(text=text, category=category, confidence=self.score)


def _as_tokens(tokens: Iterable[TaggedToken | dict[str, Any]]) -> Iterable[TaggedToken]:
    for token in tokens:
        yield token if isinstance(token, TaggedToken) else TaggedToken.from_raw(token)


def iter_mentions(
    tokens: Iterable[TaggedToken | dict[str, Any]],
    threshold: float = DEFAULT_SCORE_THRESHOLD,
) -> list[EntityMention]:
    """Merge tokens into entity mentions, in order of appearance.

    A token extends the open span only when its base type matches and it is
    either an explicit ``I-`` continuation or a ``##`` subword. Subwords are
    glued on directly; whole-word continuations are joined with one space.
    Tokens scoring below ``threshold`` are skipped without closing the span.
    """
    mentions: list[EntityMention] = []
    current: _Span | None = None

    def flush() -> None:
        if current is not None and current.text.strip():
            mention = current.to_mention()
            if mention is not None:
                mentions.append(mention)

    for token in _as_tokens(tokens):
        if token.score < threshold:
            continue
        if current is not None and current.accepts(token):
            current.extend(token)
            continue
        flush()
        current = _Span(token)

    flush()
    return mentions


def reassemble_tokens(
    tokens: Iterable[TaggedToken | dict[str, Any]],
    threshold: float = DEFAULT_SCORE_THRESHOLD,
) -> ExtractedEntities:
    """Reassemble classifier tokens into deduplicated people/places/organizations."""
    buckets: dict[EntityCategory, list[str]] = {
        EntityCategory.PERSON: [],
        EntityCategory.PLACE: [],
        EntityCategory.ORGANIZATION: [],
    }
    for mention in iter_mentions(tokens, threshold=threshold):
        buckets[mention.category].append(mention.text)
    return ExtractedEntities(
        people=buckets[EntityCategory.PERSON],
        places=buckets[EntityCategory.PLACE],
        organizations=buckets[EntityCategory.ORGANIZATION],
    )
