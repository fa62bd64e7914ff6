"""Node, edge and graph records for the correspondence network."""

import datetime as dt
from enum import Enum, IntEnum
from typing import Iterable

from pydantic import BaseModel, Field

from biograph.entity import EntityCategory


class NodeGroup(str, Enum):
    """What a node stands for."""

    PERSON = "person"
    PLACE = "place"
    ORGANIZATION = "organization"
    LETTER = "letter"

    @classmethod
    def for_category(cls, category: EntityCategory) -> "NodeGroup":
        """Node group for a mention category. MISC has none and raises ValueError."""
        if category == EntityCategory.PERSON:
            return cls.PERSON
        if category == EntityCategory.PLACE:
            return cls.PLACE
        if category == EntityCategory.ORGANIZATION:
            return cls.ORGANIZATION
        raise ValueError(f"No node group for entity category {category!r}")


class Tier(IntEnum):
    """Structural layer of a node; also its level in the hierarchical layout."""

    CENTRAL = 1
    CORRESPONDENT = 2
    LETTER = 3
    MENTION = 4


class EdgeKind(str, Enum):
    SENT = "sent"
    """Sender -> letter."""

    RECEIVED = "received"
    """Letter -> recipient."""

    MENTIONS = "mentions"
    """Letter -> mentioned person, place or organization."""


def node_key(name: str) -> str:
    """Normalized form of a name used for node identity.

    Case and surrounding/internal whitespace runs are ignored; accents are
    significant.
    """
    return " ".join(name.split()).casefold()


def node_id(group: NodeGroup, name: str) -> str:
    """Stable node id for a named entity: ``"<group>:<normalized name>"``."""
    return f"{group.value}:{node_key(name)}"


def letter_node_id(letter_key: str) -> str:
    """Node id for a letter; keys are used as given, not normalized."""
    return f"{NodeGroup.LETTER.value}:{letter_key}"


class GraphNode(BaseModel):
    """A node as handed to the renderer and exporters."""

    id: str = Field(description="Stable id; see node_id().")
    label: str = Field(description="Display label.")
    group: NodeGroup
    tier: Tier
    size: float = Field(ge=0.0)
    color: str = Field(description="Border/primary color.")
    background: str | None = Field(default=None, description="Fill color when it differs from color.")
    border_width: float = Field(default=1.0, ge=0.0)
    title: str = Field(default="", description="Tooltip text.")
    mention_count: int = Field(default=0, ge=0, description="Times mentioned across letters.")
    letter_count: int = Field(default=0, ge=0, description="Letters sent or received (people only).")
    date: dt.date | None = Field(default=None, description="Resolved letter date (letter nodes only).")


class GraphEdge(BaseModel):
    """A directed relation between two nodes. Parallel edges are kept."""

    id: str
    source: str
    target: str
    kind: EdgeKind
    category: EntityCategory | None = Field(default=None, description="Mention category for MENTIONS edges.")
    color: str
    width: float = Field(default=1.0, ge=0.0)
    dashes: bool = False
    arrows: bool = False
    label: str | None = None


class BiographyGraph(BaseModel):
    """Node and edge lists of one graph build (or a view derived from it)."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    central_id: str | None = Field(default=None, description="Id of the tier-1 node, if present.")

    def node(self, node_id_: str) -> GraphNode | None:
        """The node with id ``node_id_``, or None."""
        for n in self.nodes:
            if n.id == node_id_:
                return n
        return None

    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def nodes_in_tier(self, tier: Tier) -> list[GraphNode]:
        """Nodes of one tier, in build order."""
        return [n for n in self.nodes if n.tier == tier]

    def edges_of(self, node_id_: str) -> list[GraphEdge]:
        """Edges touching ``node_id_`` in either direction."""
        return [e for e in self.edges if e.source == node_id_ or e.target == node_id_]

    def subgraph(self, keep: Iterable[str], edges: Iterable[GraphEdge] | None = None) -> "BiographyGraph":
        """Graph restricted to ``keep``; edges default to those with both ends kept."""
        keep_ids = set(keep)
        nodes = [n for n in self.nodes if n.id in keep_ids]
        if edges is None:
            kept_edges = [e for e in self.edges if e.source in keep_ids and e.target in keep_ids]
        else:
            kept_edges = [e for e in edges if e.source in keep_ids and e.target in keep_ids]
        central = self.central_id if self.central_id in keep_ids else None
        return BiographyGraph(nodes=nodes, edges=kept_edges, central_id=central)
