"""NER-based entity extraction for letter text.

Uses a Hugging Face token-classification model (default:
dslim/bert-base-NER, CoNLL-03 PER/LOC/ORG/MISC labels) run locally. Install
with: pip install -e ".[ner]"

The model is owned by an explicitly constructed ``NERService`` rather than a
module-level singleton. The service loads the model once, on first use or
through ``initialize()``, and every extraction call degrades to "no
entities" instead of raising, so enrichment never blocks the rest of the
application.

Pipeline per text:
    classify -> reassemble tokens -> clean fragments -> drop blacklisted
    -> (optional) dictionary normalization + recall
"""

import asyncio
from typing import Any, Callable, Sequence

from pydantic import BaseModel, Field

from biograph.config import NERConfig
from biograph.entity import EntityCategory, ExtractedEntities
from biograph.letter import Letter
from biograph.logging import setup_logging
from biograph.ner.cleanup import clean_fragments, drop_blacklisted
from biograph.ner.dictionary import DictionaryRegistry
from biograph.ner.tokens import reassemble_tokens

TokenPipeline = Callable[[str], list[dict[str, Any]]]
ProgressCallback = Callable[[int, int], None]


class ModelNotReadyError(RuntimeError):
    """The token-classification model has not finished loading.

    This is a retryable state, not a failure: call ``initialize()`` again or
    retry the extraction later.
    """


def _load_hf_pipeline(model_name: str, device: str | None) -> TokenPipeline:
    """Build a raw (non-aggregated) token-classification pipeline."""
    try:
        from transformers import pipeline as hf_pipeline
    except ImportError as e:
        raise ImportError('NER entity extraction requires the "ner" extra. Install with: pip install -e ".[ner]"') from e

    if device == "cpu":
        pipeline_device = -1
    elif device == "cuda":
        pipeline_device = 0
    else:
        try:
            import torch

            pipeline_device = 0 if torch.cuda.is_available() else -1
        except ImportError:
            pipeline_device = -1

    # No aggregation: subword reassembly is done by biograph.ner.tokens
    return hf_pipeline("token-classification", model=model_name, device=pipeline_device)


class NERService:
    """Owns the token-classification model and runs entity extraction.

    Args:
        config: Model settings; defaults to ``NERConfig()``.
        pipeline: Optional pre-built callable ``text -> list[token dict]``
            (for testing or for a model loaded elsewhere). When given, the
            service is ready immediately and no model is loaded.
        dictionaries: Registry used when extraction asks for a dictionary.
        loader: Optional zero-argument callable that builds the pipeline;
            defaults to loading ``config.model_name`` with transformers.
    """

    def __init__(
        self,
        config: NERConfig | None = None,
        pipeline: TokenPipeline | None = None,
        dictionaries: DictionaryRegistry | None = None,
        loader: Callable[[], TokenPipeline] | None = None,
    ):
        self.config = config or NERConfig()
        self.dictionaries = dictionaries or DictionaryRegistry()
        self._pipeline: TokenPipeline | None = pipeline
        self._loader: Callable[[], TokenPipeline] = loader or (
            lambda: _load_hf_pipeline(self.config.model_name, self.config.device)
        )
        self._init_task: asyncio.Task | None = None
        self.last_error: BaseException | None = None
        self.logger = setup_logging(name="biograph.ner")

    def is_ready(self) -> bool:
        return self._pipeline is not None

    def require_ready(self) -> TokenPipeline:
        """Return the loaded pipeline or raise ModelNotReadyError."""
        if self._pipeline is None:
            raise ModelNotReadyError(f"NER model {self.config.model_name!r} is not loaded yet")
        return self._pipeline

    async def initialize(self) -> None:
        """Load the model once. Concurrent callers wait on the same load.

        Raises:
            ImportError: If the "ner" extra is not installed.
            asyncio.TimeoutError: If loading exceeds ``config.load_timeout``.
            Exception: Whatever the model loader raised.
        """
        if self._pipeline is not None:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._load())
            self._init_task.add_done_callback(self._forget_failed_load)
        await asyncio.shield(self._init_task)

    def _forget_failed_load(self, task: asyncio.Future) -> None:
        # also fires when no caller is left awaiting the load
        if task.cancelled() or task.exception() is not None:
            if self._init_task is task:
                self._init_task = None

    async def _load(self) -> None:
        self.logger.info(
            {"message": "Loading NER model", "model": self.config.model_name},
            pprint=True,
        )
        loop = asyncio.get_running_loop()
        try:
            pipeline = await asyncio.wait_for(
                loop.run_in_executor(None, self._loader),
                timeout=self.config.load_timeout,
            )
        except Exception as e:
            self.last_error = e
            self.logger.error(
                {"message": "NER model failed to load", "model": self.config.model_name, "error": repr(e)},
                pprint=True,
            )
            raise
        self._pipeline = pipeline
        self.last_error = None
        self.logger.info({"message": "NER model ready", "model": self.config.model_name}, pprint=True)

    def reset(self) -> None:
        """Drop the loaded model; the next extraction loads it again."""
        self._pipeline = None
        self._init_task = None

    def _classify_and_clean(self, pipeline: TokenPipeline, text: str) -> ExtractedEntities:
        raw = pipeline(text)
        tokens = raw if isinstance(raw, list) else []
        found = reassemble_tokens(tokens, threshold=self.config.score_threshold)
        self.logger.debug(
            {"message": "Reassembled entities", "tokens": len(tokens), "entities": found.model_dump()},
            pprint=True,
        )
        return ExtractedEntities(
            people=drop_blacklisted(clean_fragments(found.people), EntityCategory.PERSON),
            places=drop_blacklisted(clean_fragments(found.places), EntityCategory.PLACE),
            organizations=drop_blacklisted(clean_fragments(found.organizations), EntityCategory.ORGANIZATION),
        )

    async def extract_entities(
        self,
        text: str,
        use_dictionary: bool = False,
        dictionary_name: str | None = None,
    ) -> ExtractedEntities:
        """Extract people, places and organizations from one text.

        Never raises: empty text, a model that cannot be loaded and inference
        errors all produce an empty result (logged).
        """
        if not text or not text.strip():
            return ExtractedEntities.empty()

        if self._pipeline is None:
            try:
                await self.initialize()
            except Exception as e:  # load failures are reported via last_error
                self.logger.warning(
                    {"message": "NER unavailable, returning no entities", "error": repr(e)},
                    pprint=True,
                )
                return ExtractedEntities.empty()
        pipeline = self.require_ready()

        truncated = text[: self.config.max_chars]
        loop = asyncio.get_running_loop()
        try:
            entities = await loop.run_in_executor(None, self._classify_and_clean, pipeline, truncated)
        except Exception as e:
            self.logger.error({"message": "Entity extraction failed", "error": repr(e)}, pprint=True)
            return ExtractedEntities.empty()

        if use_dictionary and dictionary_name:
            dictionary = self.dictionaries.get(dictionary_name)
            if dictionary is not None:
                entities = dictionary.augment(entities, truncated)
        return entities

    async def extract_entities_batch(
        self,
        texts: Sequence[str],
        on_progress: ProgressCallback | None = None,
        use_dictionary: bool = False,
        dictionary_name: str | None = None,
    ) -> list[ExtractedEntities]:
        """Extract from each text in turn, reporting ``(done, total)`` after each."""
        results: list[ExtractedEntities] = []
        for i, text in enumerate(texts):
            results.append(await self.extract_entities(text, use_dictionary, dictionary_name))
            if on_progress is not None:
                on_progress(i + 1, len(texts))
        return results


class EnrichmentResult(BaseModel):
    """Outcome of enriching a batch of letters."""

    letters: list[Letter] = Field(default_factory=list)
    processed: int = Field(default=0, description="Letters passed through extraction.")
    enriched: int = Field(default=0, description="Letters that gained at least one entity.")
    cancelled: bool = Field(default=False, description="True if should_cancel() stopped the loop.")


async def enrich_letters(
    letters: Sequence[Letter],
    service: NERService,
    use_dictionary: bool = False,
    dictionary_name: str | None = None,
    on_progress: ProgressCallback | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> EnrichmentResult:
    """Run extraction over letters one at a time, appending detected entities.

    ``should_cancel`` is checked before each letter; when it returns True the
    loop stops and the remaining letters are returned unchanged.
    """
    result = EnrichmentResult()
    total = len(letters)
    for i, letter in enumerate(letters):
        if should_cancel is not None and should_cancel():
            result.cancelled = True
            result.letters.extend(letters[i:])
            break
        found = await service.extract_entities(letter.content, use_dictionary, dictionary_name)
        result.processed += 1
        if found.is_empty:
            result.letters.append(letter)
        else:
            result.letters.append(letter.with_entities(found))
            result.enriched += 1
        if on_progress is not None:
            on_progress(i + 1, total)
    return result
