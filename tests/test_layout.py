"""Tests for force and hierarchical layouts and renderer options."""

import math

import pytest

from biograph.graph.builder import transform_to_graph
from biograph.graph.layout import (
    LEVEL_SEPARATION,
    LayoutMode,
    compute_layout,
    count_crossings,
    force_layout,
    hierarchical_layout,
    renderer_nodes,
    renderer_options,
    tier_levels,
)
from biograph.graph.models import BiographyGraph, EdgeKind, GraphEdge, GraphNode, NodeGroup, Tier
from biograph.letter import Letter


@pytest.fixture
def graph(sample_letters, van_gogh_aliases):
    return transform_to_graph(sample_letters, "Vincent van Gogh", aliases=van_gogh_aliases)


def _node(nid, tier):
    group = NodeGroup.LETTER if tier == Tier.LETTER else NodeGroup.PERSON
    return GraphNode(id=nid, label=nid, group=group, tier=tier, size=10.0, color="#000000")


def _edge(i, source, target):
    return GraphEdge(id=f"e{i}", source=source, target=target, kind=EdgeKind.SENT, color="#000000")


@pytest.fixture
def crossed():
    """Two correspondents whose letters start out in crossing order."""
    return BiographyGraph(
        nodes=[
            _node("p", Tier.CORRESPONDENT),
            _node("q", Tier.CORRESPONDENT),
            _node("l1", Tier.LETTER),
            _node("l2", Tier.LETTER),
        ],
        edges=[_edge(0, "p", "l2"), _edge(1, "q", "l1")],
    )


class TestHierarchical:
    def test_levels_follow_tiers(self, graph):
        levels = tier_levels(graph)
        assert all(levels[n.id] == int(n.tier) for n in graph.nodes)

    def test_y_by_level(self, graph):
        positions = hierarchical_layout(graph)
        assert positions.keys() == set(graph.node_ids())
        for node in graph.nodes:
            assert positions[node.id][1] == (int(node.tier) - 1) * LEVEL_SEPARATION

    def test_distinct_x_within_level(self, graph):
        positions = hierarchical_layout(graph)
        for tier in Tier:
            xs = [positions[n.id][0] for n in graph.nodes_in_tier(tier)]
            assert len(xs) == len(set(xs))

    def test_crossings_removed(self, crossed):
        levels = tier_levels(crossed)
        before = {"p": -75.0, "q": 75.0, "l1": -75.0, "l2": 75.0}
        assert count_crossings(crossed, levels, before) == 1

        positions = hierarchical_layout(crossed)
        after = {nid: xy[0] for nid, xy in positions.items()}
        assert count_crossings(crossed, levels, after) == 0
        assert after["l2"] < after["l1"]

    def test_never_worse_than_input_order(self, graph):
        levels = tier_levels(graph)
        positions = hierarchical_layout(graph, sweeps=0)
        baseline = count_crossings(graph, levels, {n: xy[0] for n, xy in positions.items()})
        improved = hierarchical_layout(graph)
        assert count_crossings(graph, levels, {n: xy[0] for n, xy in improved.items()}) <= baseline

    def test_deterministic(self, graph):
        assert hierarchical_layout(graph) == hierarchical_layout(graph)


class TestForce:
    def test_positions_for_every_node(self, graph):
        positions = force_layout(graph)
        assert positions.keys() == set(graph.node_ids())
        assert all(math.isfinite(x) and math.isfinite(y) for x, y in positions.values())

    def test_seeded_runs_repeat(self, graph):
        assert force_layout(graph, seed=7, max_iter=50) == force_layout(graph, seed=7, max_iter=50)

    def test_trivial_graphs(self):
        assert force_layout(BiographyGraph()) == {}
        single = BiographyGraph(nodes=[_node("solo", Tier.CENTRAL)])
        assert force_layout(single) == {"solo": (0.0, 0.0)}

    def test_compute_layout_dispatch(self, crossed):
        assert compute_layout(crossed, LayoutMode.HIERARCHICAL) == hierarchical_layout(crossed)
        assert compute_layout(crossed).keys() == {"p", "q", "l1", "l2"}


class TestRendererOptions:
    def test_force(self):
        options = renderer_options(LayoutMode.FORCE, gravity=0.5)
        assert options["physics"]["solver"] == "barnesHut"
        assert options["physics"]["barnesHut"]["centralGravity"] == 0.5
        assert options["layout"]["hierarchical"]["enabled"] is False
        assert options["layout"]["randomSeed"] == 42

    def test_hierarchical(self):
        options = renderer_options(LayoutMode.HIERARCHICAL, physics_enabled=False)
        assert options["physics"]["enabled"] is False
        assert options["physics"]["solver"] == "hierarchicalRepulsion"
        hierarchical = options["layout"]["hierarchical"]
        assert hierarchical["enabled"] is True
        assert hierarchical["direction"] == "UD"
        assert hierarchical["levelSeparation"] == LEVEL_SEPARATION
        assert "sortMethod" not in hierarchical

    def test_dark_mode_font(self):
        assert renderer_options(dark_mode=True)["nodes"]["font"]["color"] == "#e5e7eb"
        assert renderer_options()["nodes"]["font"]["color"] == "#1f2937"


class TestRendererNodes:
    def test_level_is_tier(self, graph):
        records = renderer_nodes(graph)
        assert [r["id"] for r in records] == graph.node_ids()
        for record, node in zip(records, graph.nodes):
            assert record["level"] == int(node.tier)

    def test_central_person_on_top_when_only_receiving(self):
        letters = [Letter(letter_id="1", sender="Jo", recipient="Vincent")]
        records = {r["id"]: r for r in renderer_nodes(transform_to_graph(letters, "Vincent"))}
        assert records["person:vincent"]["level"] == 1
        assert records["person:jo"]["level"] == 2
        assert records["letter:1"]["level"] == 3

    def test_fill_color_split_from_border(self, graph):
        records = {r["id"]: r for r in renderer_nodes(graph)}
        node = next(n for n in graph.nodes if n.background is not None)
        assert records[node.id]["color"] == {"border": node.color, "background": node.background}
        assert records["letter:L1"]["color"] == graph.node("letter:L1").color
