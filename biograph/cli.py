"""Command-line entry point.

Build a correspondence graph from a letters file:
  biograph graph letters.json --output graph.gexf --format gexf

Enrich letters with detected people, places and organizations (needs the
"ner" extra):
  biograph extract letters.json --output enriched.json --dictionary vangogh

Letters files are JSON arrays of letter objects; camelCase keys such as
``personFrom`` and ``mentionedPlaces`` are accepted.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import NoReturn

from biograph.config import BiographConfig, ConfigError, load_config
from biograph.export import write_graph
from biograph.graph.aliases import AliasMap, detect_central_person
from biograph.graph.builder import GraphFilters, GraphOptions, transform_to_graph
from biograph.graph.metrics import compute_metrics
from biograph.graph.models import BiographyGraph, NodeGroup, node_id
from biograph.graph.traversal import ego_network
from biograph.graph.visual import NodeColorBy, NodeEncoding, NodeSizeBy, apply_node_encoding
from biograph.letter import Letter, load_letters
from biograph.logging import setup_logging
from biograph.ner.dictionary import DictionaryRegistry
from biograph.ner.extractor import NERService, enrich_letters

logger = setup_logging(name="biograph.cli")


def _fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _read_letters(path: Path) -> list[Letter]:
    if not path.is_file():
        _fail(f"letters file not found: {path}")
    try:
        return load_letters(path)
    except (OSError, ValueError) as e:
        _fail(f"cannot read letters from {path}: {e}")


def _resolve_node(graph: BiographyGraph, ref: str, aliases: AliasMap) -> str:
    """Accept a node id ("person:theo van gogh") or a person's name."""
    if graph.node(ref) is not None:
        return ref
    return node_id(NodeGroup.PERSON, aliases.normalize(ref))


def run_graph(args: argparse.Namespace, config: BiographConfig) -> None:
    letters = _read_letters(args.letters)
    aliases = AliasMap.from_config(config)
    central = args.central or detect_central_person(
        letters,
        aliases,
        config.graph.unknown_names,
        fallback=config.graph.fallback_central_person,
    )
    if not central:
        _fail("no sender or recipient found; pass --central NAME")

    options = GraphOptions(
        color_by_time=not args.no_time_colors,
        size_by_activity=args.size_by_activity,
        activity_cap=config.graph.activity_cap,
        include_letter_places=args.include_letter_places,
    )
    filters = GraphFilters(
        show_people=not args.hide_people,
        show_places=not args.hide_places,
        show_organizations=not args.hide_organizations,
    )
    graph = transform_to_graph(
        letters,
        central,
        options=options,
        filters=filters,
        aliases=aliases,
        unknown_names=config.graph.unknown_names,
        sentinel_date=config.graph.sentinel_date,
    )

    if args.ego:
        try:
            graph = ego_network(graph, _resolve_node(graph, args.ego, aliases), depth=args.depth)
        except ValueError as e:
            _fail(str(e))

    encoding = NodeEncoding(color_by=NodeColorBy(args.node_color_by), size_by=NodeSizeBy(args.node_size_by))
    if encoding != NodeEncoding():
        graph = apply_node_encoding(graph, compute_metrics(graph), encoding)

    written = write_graph(graph, args.output, args.format)
    logger.info(
        {"message": "Graph written", "central": central, "nodes": len(graph.nodes), "edges": len(graph.edges)},
        pprint=True,
    )
    for path in written:
        print(path, file=sys.stderr)
    print(f"Graph: {len(graph.nodes)} nodes, {len(graph.edges)} edges", file=sys.stderr)


def _print_progress(done: int, total: int) -> None:
    print(f"\rExtracting entities: {done}/{total}", end="" if done < total else "\n", file=sys.stderr)


async def _extract(letters: list[Letter], config: BiographConfig, dictionary: str | None):
    service = NERService(config=config.ner, dictionaries=DictionaryRegistry(config.dictionaries))
    try:
        await service.initialize()
    except Exception as e:
        _fail(f"NER model could not be loaded: {e!r}")
    return await enrich_letters(
        letters,
        service,
        use_dictionary=dictionary is not None,
        dictionary_name=dictionary,
        on_progress=_print_progress,
    )


def run_extract(args: argparse.Namespace, config: BiographConfig) -> None:
    letters = _read_letters(args.letters)
    result = asyncio.run(_extract(letters, config, args.dictionary))
    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as f:
        json.dump([letter.model_dump(mode="json") for letter in result.letters], f, indent=2, ensure_ascii=False)
    print(
        f"Extraction done: {result.enriched} of {result.processed} letters gained entities -> {args.output}",
        file=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biograph",
        description="Correspondence network and entity extraction for biographical letter archives.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to biograph.toml (default: BIOGRAPH_CONFIG or ./biograph.toml)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    graph = sub.add_parser("graph", help="Build the correspondence graph and export it")
    graph.add_argument("letters", type=Path, help="JSON file with letters")
    graph.add_argument("--output", type=Path, required=True, help="Output file")
    graph.add_argument("--format", choices=("json", "csv", "gexf"), default="json", help="Export format (default: json)")
    graph.add_argument("--central", default=None, help="Central person (default: most frequent correspondent)")
    graph.add_argument("--ego", default=None, metavar="NODE", help="Restrict to the ego network of a node id or person")
    graph.add_argument("--depth", type=int, default=1, help="Ego network depth (default: 1)")
    graph.add_argument("--no-time-colors", action="store_true", help="Color all letters alike instead of by date")
    graph.add_argument("--size-by-activity", action="store_true", help="Grow nodes with letters sent/received or mentions")
    graph.add_argument(
        "--include-letter-places",
        action="store_true",
        help="Treat each letter's origin and destination as place mentions",
    )
    graph.add_argument("--hide-people", action="store_true", help="Drop mentioned people")
    graph.add_argument("--hide-places", action="store_true", help="Drop mentioned places")
    graph.add_argument("--hide-organizations", action="store_true", help="Drop mentioned organizations")
    graph.add_argument(
        "--node-color-by",
        choices=[c.value for c in NodeColorBy],
        default=NodeColorBy.TYPE.value,
        help="Node color encoding (default: type)",
    )
    graph.add_argument(
        "--node-size-by",
        choices=[s.value for s in NodeSizeBy],
        default=NodeSizeBy.FIXED.value,
        help="Node size encoding (default: fixed)",
    )
    graph.set_defaults(func=run_graph)

    extract = sub.add_parser("extract", help="Add NER-detected entities to letters")
    extract.add_argument("letters", type=Path, help="JSON file with letters")
    extract.add_argument("--output", type=Path, required=True, help="Output JSON file for enriched letters")
    extract.add_argument(
        "--dictionary",
        default=None,
        help="Known-entity dictionary name (built-in, or from [dictionaries] in the config)",
    )
    extract.set_defaults(func=run_extract)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        _fail(str(e))
    args.func(args, config)


if __name__ == "__main__":
    main()
