"""Metric-driven restyling of a built graph.

The builder colors and sizes nodes by tier; these functions optionally
replace that with degree, betweenness or epoch encodings, and edge widths
and colors with parallel-edge weight. They return new graphs and never change
structure.
"""

from enum import Enum

from pydantic import BaseModel, Field

from biograph.graph.colors import CENTRAL_HIGHLIGHT, epoch_color, intensity_rgb
from biograph.graph.metrics import GraphMetrics
from biograph.graph.models import BiographyGraph, EdgeKind, NodeGroup

CENTRAL_SIZE_FACTOR = 1.5
CENTRAL_BORDER_WIDTH = 6.0

# (low, high) RGB endpoints per metric
DEGREE_GRADIENT = ((255, 0, 0), (0, 100, 255))
BETWEENNESS_GRADIENT = ((255, 100, 0), (155, 200, 50))
WEIGHT_RGB = (59, 130, 246)


class NodeColorBy(str, Enum):
    TYPE = "type"
    DEGREE = "degree"
    BETWEENNESS = "betweenness"
    EPOCH = "epoch"


class NodeSizeBy(str, Enum):
    FIXED = "fixed"
    DEGREE = "degree"
    BETWEENNESS = "betweenness"


class EdgeColorBy(str, Enum):
    TYPE = "type"
    WEIGHT = "weight"


class EdgeWidthBy(str, Enum):
    FIXED = "fixed"
    WEIGHT = "weight"


class NodeEncoding(BaseModel, frozen=True):
    """How nodes are recolored and resized. Defaults keep the builder's styling."""

    color_by: NodeColorBy = NodeColorBy.TYPE
    size_by: NodeSizeBy = NodeSizeBy.FIXED
    base_size: float = Field(default=15.0, ge=0.0)
    scale_factor: float = Field(default=2.0, ge=0.0)


class EdgeEncoding(BaseModel, frozen=True):
    """How edges are re-widthed, recolored and labeled."""

    color_by: EdgeColorBy = EdgeColorBy.TYPE
    width_by: EdgeWidthBy = EdgeWidthBy.FIXED
    base_width: float = Field(default=1.0, ge=0.0)
    scale_factor: float = Field(default=1.0, ge=0.0)
    show_labels: bool = False


def _ratio(value: float, maximum: float) -> float:
    return value / maximum if maximum > 0 else 0.0


def person_epochs(graph: BiographyGraph) -> dict[str, float]:
    """Person node id -> when, within the corpus, that person corresponded.

    Each person who sent or received a dated letter gets the mean date of
    those letters; means are then scaled to [0, 1] between the earliest and
    latest mean. The central person and people only ever mentioned are left
    out.
    """
    letter_dates = {n.id: n.date for n in graph.nodes if n.group == NodeGroup.LETTER and n.date is not None}
    people = {n.id for n in graph.nodes if n.group == NodeGroup.PERSON and n.id != graph.central_id}
    ordinals: dict[str, list[int]] = {}
    for edge in graph.edges:
        if edge.kind == EdgeKind.SENT:
            person, letter = edge.source, edge.target
        elif edge.kind == EdgeKind.RECEIVED:
            person, letter = edge.target, edge.source
        else:
            continue
        if person in people and letter in letter_dates:
            ordinals.setdefault(person, []).append(letter_dates[letter].toordinal())
    if not ordinals:
        return {}

    means = {person: sum(days) / len(days) for person, days in ordinals.items()}
    low = min(means.values())
    span = (max(means.values()) - low) or 1.0
    return {person: (mean - low) / span for person, mean in means.items()}


def apply_node_encoding(
    graph: BiographyGraph,
    metrics: GraphMetrics,
    encoding: NodeEncoding | None = None,
) -> BiographyGraph:
    """Recolor and resize nodes from metrics.

    The central node is always highlighted: gold, a thick border, and half
    again the size it would otherwise have.
    """
    encoding = encoding or NodeEncoding()
    max_degree = metrics.max_degree
    max_betweenness = metrics.max_betweenness
    epochs = person_epochs(graph) if encoding.color_by == NodeColorBy.EPOCH else {}

    nodes = []
    for node in graph.nodes:
        size = node.size
        color = node.color
        background = node.background
        border_width = node.border_width
        node_degree = metrics.degree.get(node.id, 0)
        node_betweenness = metrics.betweenness.get(node.id, 0.0)

        if encoding.color_by == NodeColorBy.DEGREE:
            color = intensity_rgb(_ratio(node_degree, max_degree), *DEGREE_GRADIENT)
        elif encoding.color_by == NodeColorBy.BETWEENNESS:
            color = intensity_rgb(_ratio(node_betweenness, max_betweenness), *BETWEENNESS_GRADIENT)
        elif node.id in epochs:
            color = background = epoch_color(epochs[node.id])

        if encoding.size_by == NodeSizeBy.DEGREE:
            size = encoding.base_size + node_degree * encoding.scale_factor
        elif encoding.size_by == NodeSizeBy.BETWEENNESS:
            size = encoding.base_size + node_betweenness * encoding.scale_factor

        if node.id == graph.central_id:
            size *= CENTRAL_SIZE_FACTOR
            border_width = CENTRAL_BORDER_WIDTH
            color = CENTRAL_HIGHLIGHT

        update = {"size": size, "color": color, "background": background, "border_width": border_width}
        nodes.append(node.model_copy(update=update))
    return graph.model_copy(update={"nodes": nodes})


def apply_edge_encoding(
    graph: BiographyGraph,
    metrics: GraphMetrics,
    encoding: EdgeEncoding | None = None,
) -> BiographyGraph:
    """Re-width and recolor edges by how many letters connect the same pair."""
    encoding = encoding or EdgeEncoding()
    max_weight = metrics.max_weight

    edges = []
    for edge in graph.edges:
        weight = metrics.weight_of(edge.source, edge.target) or 1
        width = edge.width
        color = edge.color
        if encoding.width_by == EdgeWidthBy.WEIGHT:
            width = encoding.base_width + weight * encoding.scale_factor
        if encoding.color_by == EdgeColorBy.WEIGHT:
            alpha = 0.3 + _ratio(weight, max_weight) * 0.7
            r, g, b = WEIGHT_RGB
            color = f"rgba({r}, {g}, {b}, {alpha:.2f})"
        label = (edge.label or edge.kind.value) if encoding.show_labels else None
        edges.append(edge.model_copy(update={"width": width, "color": color, "label": label}))
    return graph.model_copy(update={"edges": edges})
