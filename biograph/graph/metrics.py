"""Structural metrics over a built graph.

All three are pure functions of the node and edge lists and are recomputed
from scratch whenever the graph is rebuilt.
"""

from collections import deque

from pydantic import BaseModel, Field

from biograph.graph.models import BiographyGraph


def pair_key(a: str, b: str) -> tuple[str, str]:
    """Unordered node pair as a sorted tuple."""
    return (a, b) if a <= b else (b, a)


def degree(graph: BiographyGraph) -> dict[str, int]:
    """Edges touching each node, either direction. A self-loop counts twice."""
    result = {n.id: 0 for n in graph.nodes}
    for edge in graph.edges:
        if edge.source in result:
            result[edge.source] += 1
        if edge.target in result:
            result[edge.target] += 1
    return result


def _adjacency(graph: BiographyGraph) -> dict[str, list[str]]:
    """Undirected simple adjacency; parallel edges and self-loops collapse."""
    neighbors: dict[str, set[str]] = {n.id: set() for n in graph.nodes}
    for edge in graph.edges:
        if edge.source == edge.target:
            continue
        if edge.source in neighbors and edge.target in neighbors:
            neighbors[edge.source].add(edge.target)
            neighbors[edge.target].add(edge.source)
    return {node: sorted(adj) for node, adj in neighbors.items()}


def betweenness(graph: BiographyGraph) -> dict[str, float]:
    """Brandes betweenness over the undirected graph.

    Each shortest path is counted from both of its endpoints, so dividing the
    raw sum by ``(n-1)(n-2)`` gives the usual normalized value for undirected
    graphs. Graphs with two nodes or fewer score zero everywhere.
    """
    adjacency = _adjacency(graph)
    nodes = list(adjacency)
    scores = {node: 0.0 for node in nodes}
    n = len(nodes)
    if n <= 2:
        return scores

    for source in nodes:
        stack: list[str] = []
        predecessors: dict[str, list[str]] = {node: [] for node in nodes}
        sigma = dict.fromkeys(nodes, 0)
        sigma[source] = 1
        distance = dict.fromkeys(nodes, -1)
        distance[source] = 0
        queue = deque([source])
        while queue:
            v = queue.popleft()
            stack.append(v)
            for w in adjacency[v]:
                if distance[w] < 0:
                    distance[w] = distance[v] + 1
                    queue.append(w)
                if distance[w] == distance[v] + 1:
                    sigma[w] += sigma[v]
                    predecessors[w].append(v)

        delta = dict.fromkeys(nodes, 0.0)
        while stack:
            w = stack.pop()
            for v in predecessors[w]:
                delta[v] += sigma[v] / sigma[w] * (1.0 + delta[w])
            if w != source:
                scores[w] += delta[w]

    scale = 1.0 / ((n - 1) * (n - 2))
    return {node: score * scale for node, score in scores.items()}


def edge_weights(graph: BiographyGraph) -> dict[tuple[str, str], int]:
    """Number of parallel edges per unordered node pair."""
    weights: dict[tuple[str, str], int] = {}
    for edge in graph.edges:
        key = pair_key(edge.source, edge.target)
        weights[key] = weights.get(key, 0) + 1
    return weights


class GraphMetrics(BaseModel):
    """Degree, betweenness and edge weights of one graph."""

    degree: dict[str, int] = Field(default_factory=dict)
    betweenness: dict[str, float] = Field(default_factory=dict)
    edge_weights: dict[tuple[str, str], int] = Field(default_factory=dict)

    def weight_of(self, source: str, target: str) -> int:
        """Letters linking the unordered pair; 0 when unlinked."""
        return self.edge_weights.get(pair_key(source, target), 0)

    @property
    def max_degree(self) -> int:
        return max(self.degree.values(), default=0)

    @property
    def max_betweenness(self) -> float:
        return max(self.betweenness.values(), default=0.0)

    @property
    def max_weight(self) -> int:
        return max(self.edge_weights.values(), default=0)


def compute_metrics(graph: BiographyGraph) -> GraphMetrics:
    """Degree, betweenness and edge weights for every node and pair of ``graph``."""
    return GraphMetrics(
        degree=degree(graph),
        betweenness=betweenness(graph),
        edge_weights=edge_weights(graph),
    )
