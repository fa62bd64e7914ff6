"""Tests for degree, betweenness and edge weights."""

import networkx as nx
import pytest

from biograph.graph.builder import transform_to_graph
from biograph.graph.layout import to_simple_graph
from biograph.graph.metrics import betweenness, compute_metrics, degree, edge_weights, pair_key
from biograph.graph.models import BiographyGraph, EdgeKind, GraphEdge, GraphNode, NodeGroup, Tier


def _graph(pairs, extra_nodes=()):
    ids = []
    for pair in pairs:
        for nid in pair:
            if nid not in ids:
                ids.append(nid)
    ids.extend(n for n in extra_nodes if n not in ids)
    nodes = [
        GraphNode(id=nid, label=nid, group=NodeGroup.PERSON, tier=Tier.CORRESPONDENT, size=10.0, color="#000000")
        for nid in ids
    ]
    edges = [
        GraphEdge(id=f"e{i}", source=a, target=b, kind=EdgeKind.SENT, color="#000000")
        for i, (a, b) in enumerate(pairs)
    ]
    return BiographyGraph(nodes=nodes, edges=edges)


class TestDegree:
    def test_counts_both_directions(self):
        assert degree(_graph([("a", "b"), ("b", "c"), ("c", "b")])) == {"a": 1, "b": 3, "c": 2}

    def test_isolated_node(self):
        assert degree(_graph([("a", "b")], extra_nodes=["z"]))["z"] == 0

    def test_sum_is_twice_edges(self, sample_letters, van_gogh_aliases):
        graph = transform_to_graph(sample_letters, "Vincent van Gogh", aliases=van_gogh_aliases)
        assert sum(degree(graph).values()) == 2 * len(graph.edges)


class TestBetweenness:
    def test_path(self):
        scores = betweenness(_graph([("a", "b"), ("b", "c")]))
        assert scores == {"a": 0.0, "b": 1.0, "c": 0.0}

    def test_star(self):
        scores = betweenness(_graph([("hub", "x"), ("hub", "y"), ("hub", "z")]))
        assert scores["hub"] == pytest.approx(1.0)
        assert scores["x"] == 0.0

    def test_small_graphs_score_zero(self):
        assert betweenness(_graph([("a", "b")])) == {"a": 0.0, "b": 0.0}
        assert betweenness(BiographyGraph()) == {}

    def test_parallel_edges_do_not_change_scores(self):
        single = betweenness(_graph([("a", "b"), ("b", "c")]))
        doubled = betweenness(_graph([("a", "b"), ("b", "a"), ("b", "c")]))
        assert single == doubled

    def test_matches_networkx(self, sample_letters, van_gogh_aliases):
        graph = transform_to_graph(sample_letters, "Vincent van Gogh", aliases=van_gogh_aliases)
        expected = nx.betweenness_centrality(to_simple_graph(graph), normalized=True)
        scores = betweenness(graph)
        assert scores.keys() == expected.keys()
        for node, value in expected.items():
            assert scores[node] == pytest.approx(value)
            assert scores[node] >= 0.0


class TestEdgeWeights:
    def test_parallel_edges_counted_per_pair(self):
        weights = edge_weights(_graph([("a", "b"), ("b", "a"), ("b", "c")]))
        assert weights == {("a", "b"): 2, ("b", "c"): 1}

    def test_pair_key_is_unordered(self):
        assert pair_key("b", "a") == pair_key("a", "b") == ("a", "b")


class TestComputeMetrics:
    def test_maxima(self):
        metrics = compute_metrics(_graph([("a", "b"), ("b", "a"), ("b", "c")]))
        assert metrics.max_degree == 3
        assert metrics.max_betweenness == 1.0
        assert metrics.max_weight == 2
        assert metrics.weight_of("b", "a") == 2
        assert metrics.weight_of("a", "c") == 0

    def test_empty_graph(self):
        metrics = compute_metrics(BiographyGraph())
        assert metrics.max_degree == 0
        assert metrics.max_betweenness == 0.0
        assert metrics.max_weight == 0
