"""Named-entity extraction for letters: token reassembly, cleanup, dictionaries.

``NERService`` is the entry point; the string heuristics in ``tokens``,
``cleanup`` and ``dictionary`` are importable on their own and do not need
a model.
"""

from biograph.ner.cleanup import clean_fragments, drop_blacklisted, is_fragment_of, split_stuck_names
from biograph.ner.dictionary import DictionaryRegistry, KnownEntityDictionary, load_dictionary
from biograph.ner.extractor import EnrichmentResult, ModelNotReadyError, NERService, enrich_letters
from biograph.ner.tokens import iter_mentions, reassemble_tokens

__all__ = [
    "DictionaryRegistry",
    "EnrichmentResult",
    "KnownEntityDictionary",
    "ModelNotReadyError",
    "NERService",
    "clean_fragments",
    "drop_blacklisted",
    "enrich_letters",
    "is_fragment_of",
    "iter_mentions",
    "load_dictionary",
    "reassemble_tokens",
    "split_stuck_names",
]
