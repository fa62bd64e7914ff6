"""Shared fixtures: sample letters and a scripted token-classification pipeline.

The scripted pipeline stands in for a Hugging Face model. It returns raw
token dicts in the shape ``pipeline("token-classification")`` produces, keyed
on words it finds in the text, so extraction can be tested without loading
any model.
"""

from typing import Any

import pytest

from biograph.graph.aliases import AliasMap
from biograph.letter import Letter

# word in text -> tokens the scripted model emits for it
SCRIPTED_TOKENS: dict[str, list[dict[str, Any]]] = {
    "Rappard": [
        {"word": "Rap", "entity": "B-PER", "score": 0.9},
        {"word": "##pard", "entity": "I-PER", "score": 0.85},
    ],
    "Gauguin": [
        {"word": "Paul", "entity": "B-PER", "score": 0.97},
        {"word": "Gau", "entity": "I-PER", "score": 0.93},
        {"word": "##guin", "entity": "I-PER", "score": 0.91},
    ],
    "Arles": [{"word": "Arles", "entity": "B-LOC", "score": 0.99}],
    "Goupil": [
        {"word": "Go", "entity": "B-ORG", "score": 0.8},
        {"word": "##upil", "entity": "I-ORG", "score": 0.78},
    ],
}


class ScriptedPipeline:
    """Callable ``text -> tokens`` that records every call."""

    def __init__(self, script: dict[str, list[dict[str, Any]]] | None = None):
        self.script = script if script is not None else SCRIPTED_TOKENS
        self.calls: list[str] = []

    def __call__(self, text: str) -> list[dict[str, Any]]:
        self.calls.append(text)
        tokens: list[dict[str, Any]] = []
        for word, emitted in self.script.items():
            if word in text:
                tokens.extend(emitted)
                # an "O" token keeps spans from different words apart
                tokens.append({"word": ".", "entity": "O", "score": 0.99})
        return tokens


@pytest.fixture
def scripted_pipeline() -> ScriptedPipeline:
    return ScriptedPipeline()


@pytest.fixture
def sample_letters() -> list[Letter]:
    """A small Van Gogh correspondence with aliases, mentions and a bad date."""
    return [
        Letter(
            letter_id="L1",
            date="1888-05-01",
            sender="Vincent van Gogh",
            recipient="Theo van Gogh",
            mentioned_people=["Paul Gauguin"],
            mentioned_places=["Arles", "Paris"],
        ),
        Letter(
            letter_id="L2",
            date="1888-10-20",
            sender="Theo",
            recipient="Vincent van Gogh",
            mentioned_organizations=["Goupil & Cie"],
        ),
        Letter(
            letter_id="L3",
            date="not a date",
            sender="Vincent van Gogh",
            recipient="Paul Gauguin",
            mentioned_places=["Arles"],
        ),
        Letter(
            letter_id="L4",
            date="1890-07-01",
            sender="Unknown",
            recipient="Vincent van Gogh",
            mentioned_people=["Theo van Gogh"],
        ),
    ]


@pytest.fixture
def van_gogh_aliases() -> AliasMap:
    return AliasMap(
        {
            "Theo van Gogh": ["Theo", "T. van Gogh"],
            "Vincent van Gogh": ["Vincent", "V. van Gogh"],
        }
    )


@pytest.fixture
def pipeline_factory():
    """Build a ScriptedPipeline with a custom script."""
    return ScriptedPipeline
