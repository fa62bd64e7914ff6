"""Ego-network extraction: the neighborhood of one node within N hops."""

from biograph.graph.models import BiographyGraph
from biograph.logging import setup_logging

logger = setup_logging(name="biograph.graph.traversal")


def ego_network(graph: BiographyGraph, center_id: str, depth: int = 1) -> BiographyGraph:
    """Subgraph of everything reachable from ``center_id`` within ``depth`` hops.

    Expansion goes level by level, treating edges as undirected: each level
    adds both endpoints of every edge touching the current frontier. The
    result keeps every edge among the selected nodes once, in original
    order, so depth 1 yields the center and its immediate neighbors.

    Raises:
        ValueError: If ``depth`` is less than 1.
    """
    if depth < 1:
        raise ValueError(f"Ego network depth must be at least 1, got {depth}")
    if graph.node(center_id) is None:
        logger.warning({"message": "Ego network center not found", "center": center_id}, pprint=True)
        return BiographyGraph()

    selected = {center_id}
    frontier = {center_id}
    for _ in range(depth):
        next_frontier: set[str] = set()
        for edge in graph.edges:
            if edge.source in frontier or edge.target in frontier:
                for endpoint in (edge.source, edge.target):
                    if endpoint not in selected:
                        next_frontier.add(endpoint)
        if not next_frontier:
            break
        selected |= next_frontier
        frontier = next_frontier

    seen_edges: set[str] = set()
    edges = []
    for edge in graph.edges:
        if edge.id in seen_edges:
            continue
        if edge.source in selected and edge.target in selected:
            seen_edges.add(edge.id)
            edges.append(edge)
    return graph.subgraph(selected, edges=edges)
