"""Correspondence graph: synthesis, metrics, visual encoding, ego networks, layout."""

from biograph.graph.aliases import AliasMap, detect_central_person, is_unknown
from biograph.graph.builder import (
    DateRange,
    GraphFilters,
    GraphOptions,
    compute_activity,
    compute_date_range,
    filter_graph,
    node_size,
    transform_to_graph,
)
from biograph.graph.colors import adjust_brightness, color_by_date, epoch_color
from biograph.graph.layout import LayoutMode, compute_layout, renderer_nodes, renderer_options, tier_levels
from biograph.graph.metrics import GraphMetrics, betweenness, compute_metrics, degree, edge_weights
from biograph.graph.models import BiographyGraph, EdgeKind, GraphEdge, GraphNode, NodeGroup, Tier, node_id
from biograph.graph.traversal import ego_network
from biograph.graph.visual import EdgeEncoding, NodeEncoding, apply_edge_encoding, apply_node_encoding, person_epochs

__all__ = [
    "AliasMap",
    "BiographyGraph",
    "DateRange",
    "EdgeEncoding",
    "EdgeKind",
    "GraphEdge",
    "GraphFilters",
    "GraphMetrics",
    "GraphNode",
    "GraphOptions",
    "LayoutMode",
    "NodeEncoding",
    "NodeGroup",
    "Tier",
    "adjust_brightness",
    "apply_edge_encoding",
    "apply_node_encoding",
    "betweenness",
    "color_by_date",
    "compute_activity",
    "compute_date_range",
    "compute_layout",
    "compute_metrics",
    "degree",
    "detect_central_person",
    "edge_weights",
    "ego_network",
    "epoch_color",
    "filter_graph",
    "is_unknown",
    "node_id",
    "node_size",
    "person_epochs",
    "renderer_nodes",
    "renderer_options",
    "tier_levels",
    "transform_to_graph",
]
