"""Build the four-tier correspondence graph from letters.

Tiers, top to bottom:

1. the central person (always present, even with no letters);
2. everyone else who sent or received a letter;
3. one node per letter, never deduplicated;
4. people, places and organizations mentioned in letters.

Edges run sender -> letter -> recipient (solid, arrowed, letter-colored) and
letter -> mention (dashed, colored by mention category). Names pass through
the alias map before any node id is computed, and the same inputs always
produce the same node ids, edge ids and ordering.
"""

import datetime as dt
from collections import Counter
from typing import Iterable, Sequence

from pydantic import BaseModel, Field

from biograph.entity import EntityCategory, unique_names
from biograph.graph.aliases import DEFAULT_UNKNOWN_NAMES, AliasMap, is_unknown
from biograph.graph.colors import (
    CENTRAL_COLOR,
    CORRESPONDENT_COLOR,
    LETTER_COLOR,
    ORG_MENTION_BORDER,
    ORG_MENTION_EDGE,
    ORG_MENTION_FILL,
    PERSON_MENTION_BORDER,
    PERSON_MENTION_EDGE,
    PERSON_MENTION_FILL,
    PLACE_MENTION_BORDER,
    PLACE_MENTION_EDGE,
    PLACE_MENTION_FILL,
    adjust_brightness,
    color_by_date,
)
from biograph.graph.models import (
    BiographyGraph,
    EdgeKind,
    GraphEdge,
    GraphNode,
    NodeGroup,
    Tier,
    letter_node_id,
    node_id,
)
from biograph.letter import SENTINEL_DATE, Letter, is_valid_letter_date
from biograph.logging import setup_logging

logger = setup_logging(name="biograph.graph.builder")

BASE_SIZES = {
    Tier.CENTRAL: 30.0,
    Tier.CORRESPONDENT: 18.0,
    Tier.LETTER: 16.0,
    Tier.MENTION: 10.0,
}
ACTIVITY_FACTORS = {
    Tier.CENTRAL: 2.0,
    Tier.CORRESPONDENT: 1.5,
    Tier.LETTER: 1.0,
    Tier.MENTION: 1.0,
}
DEFAULT_ACTIVITY_CAP = 20
LIGHT_MODE_EDGE_DARKEN = -20

_MENTION_STYLE = {
    EntityCategory.PERSON: (PERSON_MENTION_BORDER, PERSON_MENTION_FILL, PERSON_MENTION_EDGE),
    EntityCategory.PLACE: (PLACE_MENTION_BORDER, PLACE_MENTION_FILL, PLACE_MENTION_EDGE),
    EntityCategory.ORGANIZATION: (ORG_MENTION_BORDER, ORG_MENTION_FILL, ORG_MENTION_EDGE),
}


class GraphOptions(BaseModel, frozen=True):
    """Visual options that change node/edge attributes, never the structure."""

    color_by_time: bool = Field(default=True, description="Color letters along the corpus date gradient.")
    size_by_activity: bool = Field(default=False, description="Grow nodes with their activity count.")
    activity_cap: int = Field(default=DEFAULT_ACTIVITY_CAP, ge=0)
    dark_mode: bool = False
    include_letter_places: bool = Field(
        default=False,
        description="Treat a letter's place_from/place_to as place mentions.",
    )


class GraphFilters(BaseModel, frozen=True):
    """Which mention categories to keep. Tiers 1-3 are never filtered."""

    show_people: bool = True
    show_places: bool = True
    show_organizations: bool = True

    def shows(self, category: EntityCategory) -> bool:
        """Whether mentions of ``category`` stay in the graph."""
        if category == EntityCategory.PERSON:
            return self.show_people
        if category == EntityCategory.PLACE:
            return self.show_places
        if category == EntityCategory.ORGANIZATION:
            return self.show_organizations
        return False


class DateRange(BaseModel, frozen=True):
    """Inclusive span of letter dates that drives the time gradient."""

    min: dt.date
    max: dt.date


def compute_date_range(letters: Iterable[Letter]) -> DateRange | None:
    """Earliest and latest parseable letter dates; None when no date parses."""
    dates = [letter.resolved_date() for letter in letters if is_valid_letter_date(letter.date)]
    if not dates:
        return None
    return DateRange(min=min(dates), max=max(dates))


def node_size(base: float, activity: int, factor: float, cap: int = DEFAULT_ACTIVITY_CAP) -> float:
    """``base`` grown by ``factor`` per unit of activity, activity capped at ``cap``."""
    if activity <= 0:
        return base
    return base + min(activity, cap) * factor


def letter_mentions(
    letter: Letter,
    aliases: AliasMap,
    include_letter_places: bool = False,
) -> list[tuple[EntityCategory, str]]:
    """A letter's mentions as ``(category, name)``, deduplicated by node id.

    Mentioned people go through the alias map; places and organizations are
    used as written.
    """
    places = list(letter.mentioned_places)
    if include_letter_places:
        places = [p for p in (letter.place_from, letter.place_to) if p] + places

    out: list[tuple[EntityCategory, str]] = []
    seen: set[str] = set()
    groups = (
        (EntityCategory.PERSON, [aliases.normalize(p) for p in letter.mentioned_people]),
        (EntityCategory.PLACE, places),
        (EntityCategory.ORGANIZATION, list(letter.mentioned_organizations)),
    )
    for category, names in groups:
        for name in unique_names(names):
            nid = node_id(NodeGroup.for_category(category), name)
            if nid in seen:
                continue
            seen.add(nid)
            out.append((category, name))
    return out


def _correspondents(
    letter: Letter,
    aliases: AliasMap,
    unknown_names: Sequence[str],
) -> tuple[str | None, str | None]:
    sender = None if is_unknown(letter.sender, unknown_names) else aliases.normalize(letter.sender)
    recipient = None if is_unknown(letter.recipient, unknown_names) else aliases.normalize(letter.recipient)
    return sender, recipient


def compute_activity(
    letters: Sequence[Letter],
    aliases: AliasMap | None = None,
    unknown_names: Sequence[str] = DEFAULT_UNKNOWN_NAMES,
    include_letter_places: bool = False,
) -> dict[str, int]:
    """Node id -> activity.

    People who sent or received letters count letters; everything else counts
    the letters that mention it.
    """
    aliases = aliases or AliasMap.empty()
    letter_counts: Counter[str] = Counter()
    mention_counts: Counter[str] = Counter()
    for letter in letters:
        sender, recipient = _correspondents(letter, aliases, unknown_names)
        for name in unique_names(n for n in (sender, recipient) if n):
            letter_counts[node_id(NodeGroup.PERSON, name)] += 1
        for category, name in letter_mentions(letter, aliases, include_letter_places):
            mention_counts[node_id(NodeGroup.for_category(category), name)] += 1

    activity = dict(mention_counts)
    activity.update(letter_counts)
    return activity


class _GraphAssembly:
    """Mutable state for one build; node and edge order follow letter order."""

    def __init__(self, options: GraphOptions, activity: dict[str, int]):
        self.options = options
        self.activity = activity
        self.nodes: dict[str, GraphNode] = {}
        self.edges: list[GraphEdge] = []
        self.letter_counts: Counter[str] = Counter()
        self.mention_counts: Counter[str] = Counter()

    def size(self, nid: str, tier: Tier) -> float:
        if not self.options.size_by_activity:
            return BASE_SIZES[tier]
        return node_size(BASE_SIZES[tier], self.activity.get(nid, 0), ACTIVITY_FACTORS[tier], self.options.activity_cap)

    def add_node(self, node: GraphNode) -> None:
        self.nodes.setdefault(node.id, node)

    def add_edge(self, **fields) -> None:
        self.edges.append(GraphEdge(id=f"e{len(self.edges)}", **fields))


def _person_node(nid: str, name: str, tier: Tier, assembly: _GraphAssembly) -> GraphNode:
    if tier == Tier.CENTRAL:
        return GraphNode(
            id=nid,
            label=name,
            group=NodeGroup.PERSON,
            tier=tier,
            size=assembly.size(nid, tier),
            color=CENTRAL_COLOR,
            background=CENTRAL_COLOR,
            border_width=3.0,
        )
    if tier == Tier.CORRESPONDENT:
        return GraphNode(
            id=nid,
            label=name,
            group=NodeGroup.PERSON,
            tier=tier,
            size=assembly.size(nid, tier),
            color=CORRESPONDENT_COLOR,
            background=CORRESPONDENT_COLOR,
            border_width=2.0,
        )
    return _mention_node(nid, name, EntityCategory.PERSON, assembly)


def _mention_node(nid: str, name: str, category: EntityCategory, assembly: _GraphAssembly) -> GraphNode:
    border, fill, _ = _MENTION_STYLE[category]
    return GraphNode(
        id=nid,
        label=name,
        group=NodeGroup.for_category(category),
        tier=Tier.MENTION,
        size=assembly.size(nid, Tier.MENTION),
        color=border,
        background=fill,
        border_width=1.0,
    )


def _letter_key(letter: Letter, number: int, used: set[str]) -> str:
    key = (letter.letter_id or "").strip() or str(number)
    if key in used:
        key = f"{key}-{number}"
    used.add(key)
    return key


def _titled(node: GraphNode, central_id: str) -> GraphNode:
    """Fill the tooltip from the final counts."""
    if node.group == NodeGroup.LETTER:
        return node
    if node.id == central_id:
        title = f"{node.label}\n(Biography subject)\n{node.letter_count} letters"
    elif node.tier == Tier.CORRESPONDENT:
        title = f"{node.label}\n(Correspondent)\n{node.letter_count} letters"
    else:
        title = f"{node.label}\n(Mentioned {node.mention_count} times)"
    return node.model_copy(update={"title": title})


def transform_to_graph(
    letters: Sequence[Letter],
    central_person: str,
    date_range: DateRange | None = None,
    options: GraphOptions | None = None,
    filters: GraphFilters | None = None,
    aliases: AliasMap | None = None,
    unknown_names: Sequence[str] = DEFAULT_UNKNOWN_NAMES,
    sentinel_date: dt.date = SENTINEL_DATE,
) -> BiographyGraph:
    """Turn letters into the four-tier graph.

    Args:
        letters: Letters in display order; letter numbers follow this order.
        central_person: Subject of the biography; becomes the tier-1 node.
        date_range: Range for the time gradient. Computed from ``letters``
            when None.
        options: Visual options.
        filters: Mention categories to include.
        aliases: Variant -> canonical name map, applied to correspondents,
            mentioned people and ``central_person``.
        unknown_names: Sender/recipient values that mean nobody.
        sentinel_date: Date used for letters whose date does not parse.
    """
    options = options or GraphOptions()
    filters = filters or GraphFilters()
    aliases = aliases or AliasMap.empty()
    unknown = tuple(unknown_names)
    if date_range is None:
        date_range = compute_date_range(letters)

    central_name = aliases.normalize(central_person)
    central_id = node_id(NodeGroup.PERSON, central_name)

    # First pass: who is a correspondent, so tiers do not depend on letter order.
    correspondent_ids: set[str] = set()
    for letter in letters:
        for name in _correspondents(letter, aliases, unknown):
            if name:
                correspondent_ids.add(node_id(NodeGroup.PERSON, name))

    activity = compute_activity(letters, aliases, unknown, options.include_letter_places)
    assembly = _GraphAssembly(options, activity)
    assembly.add_node(_person_node(central_id, central_name, Tier.CENTRAL, assembly))

    used_keys: set[str] = set()
    for number, letter in enumerate(letters, start=1):
        sender, recipient = _correspondents(letter, aliases, unknown)
        endpoint_ids: set[str] = set()
        for name in (sender, recipient):
            if not name:
                continue
            nid = node_id(NodeGroup.PERSON, name)
            endpoint_ids.add(nid)
            tier = Tier.CENTRAL if nid == central_id else Tier.CORRESPONDENT
            assembly.add_node(_person_node(nid, name, tier, assembly))
        for nid in endpoint_ids:
            assembly.letter_counts[nid] += 1

        letter_date = letter.resolved_date(sentinel=sentinel_date)
        if options.color_by_time and date_range is not None:
            letter_color = color_by_date(letter_date, date_range.min, date_range.max)
        else:
            letter_color = LETTER_COLOR
        lid = letter_node_id(_letter_key(letter, number, used_keys))
        sender_label = sender or "Unknown"
        recipient_label = recipient or "Unknown"
        assembly.add_node(
            GraphNode(
                id=lid,
                label=f"Letter {number}\n{letter_date.year}",
                group=NodeGroup.LETTER,
                tier=Tier.LETTER,
                size=BASE_SIZES[Tier.LETTER],
                color=letter_color,
                border_width=0.0,
                title=f"Letter {number} ({letter_date.year})\n{letter.title or ''}\n{sender_label} -> {recipient_label}",
                date=letter_date,
            )
        )

        flow_color = letter_color if options.dark_mode else adjust_brightness(letter_color, LIGHT_MODE_EDGE_DARKEN)
        if sender:
            assembly.add_edge(
                source=node_id(NodeGroup.PERSON, sender),
                target=lid,
                kind=EdgeKind.SENT,
                color=flow_color,
                width=2.0,
                arrows=True,
            )
        if recipient:
            assembly.add_edge(
                source=lid,
                target=node_id(NodeGroup.PERSON, recipient),
                kind=EdgeKind.RECEIVED,
                color=flow_color,
                width=2.0,
                arrows=True,
            )

        for category, name in letter_mentions(letter, aliases, options.include_letter_places):
            if not filters.shows(category):
                continue
            nid = node_id(NodeGroup.for_category(category), name)
            if category == EntityCategory.PERSON:
                if nid == central_id or nid in endpoint_ids:
                    continue
                tier = Tier.CORRESPONDENT if nid in correspondent_ids else Tier.MENTION
                assembly.add_node(_person_node(nid, name, tier, assembly))
            else:
                assembly.add_node(_mention_node(nid, name, category, assembly))
            assembly.mention_counts[nid] += 1
            dark_color, light_color = _MENTION_STYLE[category][2]
            assembly.add_edge(
                source=lid,
                target=nid,
                kind=EdgeKind.MENTIONS,
                category=category,
                color=dark_color if options.dark_mode else light_color,
                width=1.0,
                dashes=True,
            )

    nodes = [
        _titled(
            node.model_copy(
                update={
                    "letter_count": assembly.letter_counts.get(node.id, 0),
                    "mention_count": assembly.mention_counts.get(node.id, 0),
                }
            ),
            central_id,
        )
        for node in assembly.nodes.values()
    ]
    logger.debug(
        {
            "message": "Built correspondence graph",
            "letters": len(letters),
            "nodes": len(nodes),
            "edges": len(assembly.edges),
            "central": central_id,
        },
        pprint=True,
    )
    return BiographyGraph(nodes=nodes, edges=assembly.edges, central_id=central_id)


def filter_graph(graph: BiographyGraph, filters: GraphFilters) -> BiographyGraph:
    """Drop hidden mention categories from an already built graph.

    Mention edges of a hidden category go, as do tier-4 nodes of that
    category. The central node, correspondents and letters always stay.
    """
    hidden_groups = {
        NodeGroup.for_category(c)
        for c in (EntityCategory.PERSON, EntityCategory.PLACE, EntityCategory.ORGANIZATION)
        if not filters.shows(c)
    }
    keep = [
        n.id
        for n in graph.nodes
        if n.id == graph.central_id or n.tier != Tier.MENTION or n.group not in hidden_groups
    ]
    edges = [
        e
        for e in graph.edges
        if e.kind != EdgeKind.MENTIONS or e.category is None or filters.shows(e.category)
    ]
    return graph.subgraph(keep, edges=edges)
