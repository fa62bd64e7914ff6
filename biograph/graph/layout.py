"""Node placement for the two layout modes.

FORCE runs ForceAtlas2 from networkx (repulsion, spring attraction along
edges and a pull toward the center). HIERARCHICAL stacks the four tiers
top-down and orders each level with barycenter sweeps to cut edge
crossings. Levels always come from the tiers the builder assigned.

``renderer_options`` produces the matching options payload for a
vis-network style front end and ``renderer_nodes`` the node records it
draws, each carrying its tier as an explicit ``level``.
"""

from enum import Enum
from typing import Any

import networkx as nx

from biograph.graph.models import BiographyGraph

Position = tuple[float, float]

LEVEL_SEPARATION = 200.0
NODE_SPACING = 150.0
TREE_SPACING = 200.0
DEFAULT_GRAVITY = 0.3
DEFAULT_SEED = 42
FORCE_ITERATIONS = 500
BARYCENTER_SWEEPS = 4


class LayoutMode(str, Enum):
    FORCE = "force"
    HIERARCHICAL = "hierarchical"


def tier_levels(graph: BiographyGraph) -> dict[str, int]:
    """Node id -> hierarchical level, read straight from each node's tier."""
    return {node.id: int(node.tier) for node in graph.nodes}


def to_simple_graph(graph: BiographyGraph) -> nx.Graph:
    """Undirected simple graph of the same nodes; parallel edges collapse."""
    g = nx.Graph()
    g.add_nodes_from(node.id for node in graph.nodes)
    g.add_edges_from(
        (edge.source, edge.target)
        for edge in graph.edges
        if edge.source in g and edge.target in g and edge.source != edge.target
    )
    return g


def force_layout(
    graph: BiographyGraph,
    gravity: float = DEFAULT_GRAVITY,
    seed: int = DEFAULT_SEED,
    max_iter: int = FORCE_ITERATIONS,
) -> dict[str, Position]:
    """ForceAtlas2 positions, seeded so repeated runs agree.

    Parallel edges count once. Empty and single-node graphs skip the solver.
    """
    g = to_simple_graph(graph)
    if g.number_of_nodes() == 0:
        return {}
    if g.number_of_nodes() == 1:
        return {next(iter(g.nodes)): (0.0, 0.0)}
    pos = nx.forceatlas2_layout(g, max_iter=max_iter, gravity=gravity, seed=seed)
    return {node: (float(xy[0]), float(xy[1])) for node, xy in pos.items()}


def _centered(order: list[str]) -> dict[str, float]:
    offset = (len(order) - 1) / 2
    return {node: (i - offset) * NODE_SPACING for i, node in enumerate(order)}


def _x_positions(orders: dict[int, list[str]]) -> dict[str, float]:
    x: dict[str, float] = {}
    for order in orders.values():
        x.update(_centered(order))
    return x


def count_crossings(
    graph: BiographyGraph,
    levels: dict[str, int],
    x: dict[str, float],
) -> int:
    """Straight-line crossings among edges joining the same pair of levels."""
    by_levels: dict[tuple[int, int], list[tuple[float, float]]] = {}
    for edge in graph.edges:
        if edge.source not in x or edge.target not in x:
            continue
        a, b = edge.source, edge.target
        if levels[a] == levels[b]:
            continue
        if levels[a] > levels[b]:
            a, b = b, a
        by_levels.setdefault((levels[a], levels[b]), []).append((x[a], x[b]))

    crossings = 0
    for segments in by_levels.values():
        for i, (u1, v1) in enumerate(segments):
            for u2, v2 in segments[i + 1 :]:
                if (u1 - u2) * (v1 - v2) < 0:
                    crossings += 1
    return crossings


def _barycenter_order(
    order: list[str],
    neighbors: dict[str, set[str]],
    x: dict[str, float],
) -> list[str]:
    current = _centered(order)

    def key(node: str) -> tuple[float, int]:
        anchors = [x[n] for n in neighbors.get(node, ()) if n in x]
        center = sum(anchors) / len(anchors) if anchors else current[node]
        return (center, order.index(node))

    return sorted(order, key=key)


def hierarchical_layout(graph: BiographyGraph, sweeps: int = BARYCENTER_SWEEPS) -> dict[str, Position]:
    """Tiers top-down, each level ordered to reduce crossings.

    Alternating down and up sweeps sort every level by the mean x of its
    neighbors in the levels above (down) or below (up). The ordering with
    the fewest crossings seen is kept, starting from node order.
    """
    levels = tier_levels(graph)
    orders: dict[int, list[str]] = {}
    for node in graph.nodes:
        orders.setdefault(levels[node.id], []).append(node.id)
    level_keys = sorted(orders)

    above: dict[str, set[str]] = {node: set() for node in levels}
    below: dict[str, set[str]] = {node: set() for node in levels}
    for edge in graph.edges:
        a, b = edge.source, edge.target
        if a not in levels or b not in levels or levels[a] == levels[b]:
            continue
        if levels[a] > levels[b]:
            a, b = b, a
        below[a].add(b)
        above[b].add(a)

    best = {k: list(v) for k, v in orders.items()}
    best_crossings = count_crossings(graph, levels, _x_positions(best))
    for sweep in range(sweeps):
        downward = sweep % 2 == 0
        sequence = level_keys[1:] if downward else list(reversed(level_keys[:-1]))
        for level in sequence:
            x = _x_positions(orders)
            orders[level] = _barycenter_order(orders[level], above if downward else below, x)
        crossings = count_crossings(graph, levels, _x_positions(orders))
        if crossings < best_crossings:
            best = {k: list(v) for k, v in orders.items()}
            best_crossings = crossings

    x = _x_positions(best)
    return {node: (x[node], (levels[node] - 1) * LEVEL_SEPARATION) for node in levels}


def compute_layout(
    graph: BiographyGraph,
    mode: LayoutMode = LayoutMode.FORCE,
    gravity: float = DEFAULT_GRAVITY,
    seed: int = DEFAULT_SEED,
) -> dict[str, Position]:
    """Node id -> (x, y) for ``mode``."""
    if mode == LayoutMode.HIERARCHICAL:
        return hierarchical_layout(graph)
    return force_layout(graph, gravity=gravity, seed=seed)


def renderer_options(
    mode: LayoutMode = LayoutMode.FORCE,
    physics_enabled: bool = True,
    gravity: float = DEFAULT_GRAVITY,
    dark_mode: bool = False,
) -> dict[str, Any]:
    """Options payload for a vis-network renderer.

    With physics disabled, positions freeze once stabilization finishes.
    """
    if mode == LayoutMode.HIERARCHICAL:
        physics: dict[str, Any] = {
            "enabled": physics_enabled,
            "solver": "hierarchicalRepulsion",
            "hierarchicalRepulsion": {
                "centralGravity": 0.0,
                "springLength": 200,
                "springConstant": 0.01,
                "nodeDistance": NODE_SPACING,
                "damping": 0.09,
            },
            "stabilization": {"enabled": True, "iterations": 200},
        }
        layout: dict[str, Any] = {
            "hierarchical": {
                "enabled": True,
                "levelSeparation": LEVEL_SEPARATION,
                "nodeSpacing": NODE_SPACING,
                "treeSpacing": TREE_SPACING,
                "direction": "UD",
            }
        }
    else:
        physics = {
            "enabled": physics_enabled,
            "solver": "barnesHut",
            "barnesHut": {
                "gravitationalConstant": -4000,
                "centralGravity": gravity,
                "springLength": 150,
                "springConstant": 0.05,
                "damping": 0.09,
                "avoidOverlap": 0.3,
            },
            "stabilization": {"enabled": True, "iterations": FORCE_ITERATIONS},
        }
        layout = {"hierarchical": {"enabled": False}, "randomSeed": DEFAULT_SEED}

    return {
        "physics": physics,
        "layout": layout,
        "interaction": {"hover": True, "tooltipDelay": 100, "navigationButtons": True},
        "nodes": {"font": {"color": "#e5e7eb" if dark_mode else "#1f2937"}},
        "edges": {"smooth": {"type": "continuous"}},
    }


def renderer_nodes(graph: BiographyGraph) -> list[dict[str, Any]]:
    """vis-network node records for ``graph``.

    Every record carries ``level`` from its tier, so the hierarchical
    layout places the central person on top instead of inferring levels
    from edge direction.
    """
    levels = tier_levels(graph)
    records = []
    for node in graph.nodes:
        color: str | dict[str, str] = node.color
        if node.background is not None:
            color = {"border": node.color, "background": node.background}
        records.append(
            {
                "id": node.id,
                "label": node.label,
                "group": node.group.value,
                "level": levels[node.id],
                "size": node.size,
                "color": color,
                "borderWidth": node.border_width,
                "title": node.title,
            }
        )
    return records
