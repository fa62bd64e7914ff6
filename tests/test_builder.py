"""Tests for the four-tier graph builder."""

import datetime as dt

from biograph.entity import EntityCategory
from biograph.graph.builder import (
    BASE_SIZES,
    GraphFilters,
    GraphOptions,
    compute_activity,
    compute_date_range,
    filter_graph,
    letter_mentions,
    node_size,
    transform_to_graph,
)
from biograph.graph.colors import CENTRAL_COLOR, LETTER_COLOR, PLACE_MENTION_EDGE
from biograph.graph.models import EdgeKind, NodeGroup, Tier, node_id
from biograph.letter import Letter

VINCENT = "person:vincent van gogh"
THEO = "person:theo van gogh"
GAUGUIN = "person:paul gauguin"


def _build(letters, aliases=None, **kwargs):
    return transform_to_graph(letters, "Vincent van Gogh", aliases=aliases, **kwargs)


class TestBasicShape:
    def test_single_letter_with_repeated_place(self):
        letters = [Letter(letter_id="1", sender="Jo", recipient="Vincent", mentioned_places=["Paris", "Paris"])]
        graph = transform_to_graph(letters, "Vincent")

        assert graph.node_ids() == ["person:vincent", "person:jo", "letter:1", "place:paris"]
        assert [e.kind for e in graph.edges] == [EdgeKind.SENT, EdgeKind.RECEIVED, EdgeKind.MENTIONS]
        assert graph.edges[0].source == "person:jo"
        assert graph.edges[0].target == "letter:1"
        assert graph.edges[1].target == "person:vincent"
        assert graph.central_id == "person:vincent"

    def test_central_node_present_without_letters(self):
        graph = transform_to_graph([], "Vincent van Gogh")
        assert graph.node_ids() == [VINCENT]
        assert graph.edges == []
        central = graph.node(VINCENT)
        assert central.tier == Tier.CENTRAL
        assert central.color == CENTRAL_COLOR
        assert central.letter_count == 0

    def test_sample_corpus(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases)
        assert graph.node_ids() == [
            VINCENT,
            THEO,
            "letter:L1",
            GAUGUIN,
            "place:arles",
            "place:paris",
            "letter:L2",
            "organization:goupil & cie",
            "letter:L3",
            "letter:L4",
        ]
        assert len(graph.edges) == 13
        assert [e.id for e in graph.edges] == [f"e{i}" for i in range(13)]

    def test_tiers(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases)
        assert [n.id for n in graph.nodes_in_tier(Tier.CENTRAL)] == [VINCENT]
        assert {n.id for n in graph.nodes_in_tier(Tier.CORRESPONDENT)} == {THEO, GAUGUIN}
        assert len(graph.nodes_in_tier(Tier.LETTER)) == 4
        assert {n.id for n in graph.nodes_in_tier(Tier.MENTION)} == {
            "place:arles",
            "place:paris",
            "organization:goupil & cie",
        }

    def test_counts_and_titles(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases)
        assert graph.node(VINCENT).letter_count == 4
        assert graph.node(THEO).letter_count == 2
        assert graph.node(THEO).mention_count == 1
        assert graph.node("place:arles").mention_count == 2
        assert graph.node(VINCENT).title == "Vincent van Gogh\n(Biography subject)\n4 letters"
        assert graph.node(THEO).title == "Theo van Gogh\n(Correspondent)\n2 letters"
        assert graph.node("place:arles").title == "Arles\n(Mentioned 2 times)"


class TestEdgeCounts:
    def test_both_correspondents_known(self):
        letter = Letter(
            sender="Jo",
            recipient="Vincent van Gogh",
            mentioned_places=["Paris", "Auvers"],
            mentioned_organizations=["Goupil"],
        )
        assert len(_build([letter]).edges) == 2 + 3

    def test_unknown_sender(self):
        letter = Letter(sender="Unknown", recipient="Vincent van Gogh", mentioned_places=["Paris"])
        graph = _build([letter])
        assert len(graph.edges) == 1 + 1
        assert "person:unknown" not in graph.node_ids()

    def test_missing_recipient_with_custom_unknown_names(self):
        letter = Letter(sender="Jo", mentioned_places=["Paris"])
        graph = _build([letter], unknown_names=("Desconocido",))
        assert "person:unknown" not in graph.node_ids()
        assert len(graph.edges) == 1 + 1

    def test_both_unknown(self):
        letter = Letter(sender="Desconocido", recipient=None, mentioned_places=["Paris", "Arles"])
        graph = _build([letter])
        assert len(graph.edges) == 2
        assert all(e.kind == EdgeKind.MENTIONS for e in graph.edges)

    def test_mentioning_a_correspondent_of_the_same_letter_adds_no_edge(self):
        letter = Letter(sender="Theo", recipient="Vincent van Gogh", mentioned_people=["Theo", "Vincent van Gogh"])
        graph = _build([letter])
        assert [e.kind for e in graph.edges] == [EdgeKind.SENT, EdgeKind.RECEIVED]

    def test_letters_never_deduplicated(self):
        letters = [Letter(letter_id="7", sender="Theo", recipient="Vincent van Gogh")] * 2
        graph = _build(letters)
        assert [n.id for n in graph.nodes_in_tier(Tier.LETTER)] == ["letter:7", "letter:7-2"]
        assert len(graph.edges) == 4


class TestIdentity:
    def test_case_and_whitespace_merge(self):
        letters = [
            Letter(sender="Paul  Gauguin", recipient="Vincent van Gogh"),
            Letter(sender="Vincent van Gogh", recipient="paul gauguin"),
        ]
        graph = _build(letters)
        assert len(graph.nodes_in_tier(Tier.CORRESPONDENT)) == 1
        assert graph.node(GAUGUIN).label == "Paul Gauguin"
        assert graph.node(GAUGUIN).letter_count == 2

    def test_alias_variants_share_one_correspondent_node(self, van_gogh_aliases):
        letters = [
            Letter(sender="Theo van Gogh", recipient="Vincent van Gogh"),
            Letter(sender="Theo", recipient="Vincent van Gogh"),
        ]
        graph = _build(letters, van_gogh_aliases)
        assert [n.id for n in graph.nodes_in_tier(Tier.CORRESPONDENT)] == [THEO]
        assert graph.node(THEO).letter_count == 2

    def test_alias_merges_correspondent_and_mention(self, van_gogh_aliases):
        letters = [
            Letter(sender="Theo van Gogh", recipient="Vincent van Gogh"),
            Letter(sender="Vincent", recipient="Paul Gauguin", mentioned_people=["Theo"]),
        ]
        graph = _build(letters, van_gogh_aliases)
        people = [n for n in graph.nodes if n.group == NodeGroup.PERSON]
        assert [n.id for n in people] == [VINCENT, THEO, GAUGUIN]
        assert graph.node(THEO).tier == Tier.CORRESPONDENT
        assert graph.node(THEO).letter_count == 1
        assert graph.node(THEO).mention_count == 1

    def test_mentioned_before_writing_is_still_a_correspondent(self):
        letters = [
            Letter(sender="Vincent van Gogh", recipient="Theo", mentioned_people=["Rappard"]),
            Letter(sender="Rappard", recipient="Vincent van Gogh"),
        ]
        graph = _build(letters)
        assert graph.node("person:rappard").tier == Tier.CORRESPONDENT

    def test_central_alias(self, van_gogh_aliases):
        graph = transform_to_graph(
            [Letter(sender="Vincent", recipient="Theo")], "V. van Gogh", aliases=van_gogh_aliases
        )
        assert graph.central_id == VINCENT
        assert graph.node(VINCENT).letter_count == 1

    def test_same_name_in_different_categories(self):
        letter = Letter(
            sender="Vincent van Gogh",
            recipient="Theo",
            mentioned_people=["Goupil"],
            mentioned_organizations=["Goupil"],
        )
        ids = _build([letter]).node_ids()
        assert "person:goupil" in ids
        assert "organization:goupil" in ids


class TestDeterminism:
    def test_rebuild_is_identical(self, sample_letters, van_gogh_aliases):
        first = _build(sample_letters, van_gogh_aliases)
        second = _build(sample_letters, van_gogh_aliases)
        assert first == second


class TestDates:
    def test_date_range_skips_invalid_dates(self, sample_letters):
        assert compute_date_range(sample_letters).min == dt.date(1888, 5, 1)
        assert compute_date_range(sample_letters).max == dt.date(1890, 7, 1)
        assert compute_date_range([Letter(date="??")]) is None

    def test_bad_date_uses_sentinel_year(self, sample_letters, van_gogh_aliases):
        letter_node = _build(sample_letters, van_gogh_aliases).node("letter:L3")
        assert letter_node.date == dt.date(1900, 1, 1)
        assert letter_node.label == "Letter 3\n1900"

    def test_time_gradient(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases)
        assert graph.node("letter:L1").color == "hsl(220, 80%, 35%)"
        assert graph.node("letter:L4").color == "hsl(160, 80%, 65%)"
        # the sentinel lies beyond the range and is clamped to the latest color
        assert graph.node("letter:L3").color == "hsl(160, 80%, 65%)"

    def test_flat_color_without_time_coloring(self, sample_letters):
        graph = _build(sample_letters, options=GraphOptions(color_by_time=False))
        assert {n.color for n in graph.nodes_in_tier(Tier.LETTER)} == {LETTER_COLOR}

    def test_single_date_uses_default_time_color(self):
        graph = _build([Letter(date="1888-05-01", sender="Theo", recipient="Vincent van Gogh")])
        assert graph.nodes_in_tier(Tier.LETTER)[0].color == "#6366f1"


class TestEdgeStyle:
    def test_light_mode_darkens_flow_edges(self):
        letters = [Letter(sender="Theo", recipient="Vincent van Gogh")]
        graph = _build(letters, options=GraphOptions(color_by_time=False))
        assert graph.edges[0].color == "#5829c3"
        assert graph.edges[0].arrows
        assert not graph.edges[0].dashes

    def test_dark_mode_keeps_letter_color(self):
        letters = [Letter(sender="Theo", recipient="Vincent van Gogh", mentioned_places=["Arles"])]
        graph = _build(letters, options=GraphOptions(color_by_time=False, dark_mode=True))
        assert graph.edges[0].color == LETTER_COLOR
        assert graph.edges[2].color == PLACE_MENTION_EDGE[0]
        assert graph.edges[2].dashes
        assert graph.edges[2].category == EntityCategory.PLACE

    def test_light_mode_mention_color(self):
        letters = [Letter(sender="Theo", recipient="Vincent van Gogh", mentioned_places=["Arles"])]
        assert _build(letters).edges[2].color == PLACE_MENTION_EDGE[1]


class TestSizing:
    def test_node_size(self):
        assert node_size(10.0, 0, 2.0) == 10.0
        assert node_size(10.0, 3, 2.0) == 16.0
        assert node_size(10.0, 50, 1.0, cap=20) == 30.0

    def test_fixed_sizes_by_default(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases)
        assert graph.node(VINCENT).size == BASE_SIZES[Tier.CENTRAL]
        assert graph.node("place:arles").size == BASE_SIZES[Tier.MENTION]

    def test_size_by_activity(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases, options=GraphOptions(size_by_activity=True))
        assert graph.node(VINCENT).size == 30.0 + 4 * 2.0
        assert graph.node(THEO).size == 18.0 + 2 * 1.5
        assert graph.node("place:arles").size == 10.0 + 2
        assert graph.node("letter:L1").size == BASE_SIZES[Tier.LETTER]

    def test_compute_activity(self, sample_letters, van_gogh_aliases):
        activity = compute_activity(sample_letters, van_gogh_aliases)
        assert activity[VINCENT] == 4
        assert activity[THEO] == 2
        assert activity["place:arles"] == 2
        assert activity["organization:goupil & cie"] == 1


class TestMentions:
    def test_letter_mentions_dedupe_and_alias(self, van_gogh_aliases):
        letter = Letter(mentioned_people=["Theo", "Theo van Gogh"], mentioned_places=["Paris", "PARIS"])
        assert letter_mentions(letter, van_gogh_aliases) == [
            (EntityCategory.PERSON, "Theo van Gogh"),
            (EntityCategory.PLACE, "Paris"),
        ]

    def test_letter_places_opt_in(self):
        letter = Letter(
            sender="Vincent van Gogh",
            recipient="Theo",
            place_from="Arles",
            place_to="Paris",
            mentioned_places=["Arles"],
        )
        assert len(_build([letter]).edges) == 3
        graph = _build([letter], options=GraphOptions(include_letter_places=True))
        assert len(graph.edges) == 4
        assert node_id(NodeGroup.PLACE, "Paris") in graph.node_ids()


class TestFilters:
    def test_hidden_categories_not_built(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases, filters=GraphFilters(show_places=False))
        assert not any(n.group == NodeGroup.PLACE for n in graph.nodes)
        assert not any(e.category == EntityCategory.PLACE for e in graph.edges)
        assert len(graph.edges) == 10

    def test_hiding_people_keeps_correspondents(self, sample_letters, van_gogh_aliases):
        graph = _build(sample_letters, van_gogh_aliases, filters=GraphFilters(show_people=False))
        assert THEO in graph.node_ids()
        assert GAUGUIN in graph.node_ids()
        assert not any(e.category == EntityCategory.PERSON for e in graph.edges)

    def test_filter_graph_matches_build_time_filtering(self, sample_letters, van_gogh_aliases):
        filters = GraphFilters(show_places=False, show_organizations=False)
        full = _build(sample_letters, van_gogh_aliases)
        filtered = filter_graph(full, filters)
        built = _build(sample_letters, van_gogh_aliases, filters=filters)
        assert filtered.node_ids() == built.node_ids()
        assert [(e.source, e.target, e.kind) for e in filtered.edges] == [
            (e.source, e.target, e.kind) for e in built.edges
        ]
        assert filtered.central_id == VINCENT

    def test_filters_shows(self):
        filters = GraphFilters(show_organizations=False)
        assert filters.shows(EntityCategory.PERSON)
        assert not filters.shows(EntityCategory.ORGANIZATION)
