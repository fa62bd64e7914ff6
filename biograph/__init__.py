"""
biograph - correspondence networks for biographical letter archives.

Two halves:

* entity extraction: a locally run token-classification model finds people,
  places and organizations in letter text, with fragment cleanup and optional
  corpus dictionaries;
* graph synthesis: letters become a four-tier network (central person,
  correspondents, letters, mentions) with metrics, ego networks, layouts and
  JSON/CSV/GEXF export.

The NER service pulls in transformers and torch only when a model is
actually loaded, so graph-only use stays light:

    # This does NOT import transformers:
    from biograph import transform_to_graph, Letter

    # The model loads on NERService.initialize() or first extraction:
    from biograph import NERService
"""

from typing import TYPE_CHECKING

from biograph.config import BiographConfig, ConfigError, load_config
from biograph.entity import EntityCategory, ExtractedEntities, TaggedToken
from biograph.graph import (
    AliasMap,
    BiographyGraph,
    GraphFilters,
    GraphOptions,
    compute_metrics,
    detect_central_person,
    ego_network,
    transform_to_graph,
)
from biograph.letter import BiographyRecord, Letter, load_letters

if TYPE_CHECKING:
    from biograph.ner.extractor import ModelNotReadyError, NERService, enrich_letters

__all__ = [
    "AliasMap",
    "BiographConfig",
    "BiographyGraph",
    "BiographyRecord",
    "ConfigError",
    "EntityCategory",
    "ExtractedEntities",
    "GraphFilters",
    "GraphOptions",
    "Letter",
    "ModelNotReadyError",
    "NERService",
    "TaggedToken",
    "compute_metrics",
    "detect_central_person",
    "ego_network",
    "enrich_letters",
    "load_config",
    "load_letters",
    "transform_to_graph",
]

__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy import of the extraction service."""
    if name in ("NERService", "ModelNotReadyError", "enrich_letters"):
        from biograph.ner.extractor import ModelNotReadyError, NERService, enrich_letters
        return {"NERService": NERService, "ModelNotReadyError": ModelNotReadyError, "enrich_letters": enrich_letters}[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
