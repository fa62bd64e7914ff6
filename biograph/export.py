"""Serialize graphs for external renderers and analysis tools.

JSON and CSV carry every node and edge attribute and read back to an equal
``BiographyGraph``. GEXF goes through networkx for Gephi; it keeps the same
attributes but is not read back into the graph model.
"""

import csv
import io
from pathlib import Path
from typing import Any

import networkx as nx

from biograph.graph.metrics import edge_weights, pair_key
from biograph.graph.models import BiographyGraph, GraphEdge, GraphNode

NODE_COLUMNS = list(GraphNode.model_fields)
EDGE_COLUMNS = list(GraphEdge.model_fields)
_BOOL_COLUMNS = {"dashes", "arrows"}
_OPTIONAL_NODE_COLUMNS = {"background", "date"}
_OPTIONAL_EDGE_COLUMNS = {"category", "label"}


def graph_to_json(graph: BiographyGraph, indent: int | None = 2) -> str:
    return graph.model_dump_json(indent=indent)


def graph_from_json(data: str | bytes) -> BiographyGraph:
    return BiographyGraph.model_validate_json(data)


def _csv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _write_rows(columns: list[str], rows: list[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_csv_cell(row.get(c)) for c in columns])
    return buffer.getvalue()


def graph_to_csv(graph: BiographyGraph) -> tuple[str, str]:
    """Return ``(nodes_csv, edges_csv)``, one row per node/edge, all attributes as columns.

    The central node is the one whose ``central`` column is ``true``.
    """
    node_rows = []
    for node in graph.nodes:
        row = node.model_dump(mode="json")
        row["central"] = node.id == graph.central_id
        node_rows.append(row)
    edge_rows = [edge.model_dump(mode="json") for edge in graph.edges]
    return (
        _write_rows([*NODE_COLUMNS, "central"], node_rows),
        _write_rows(EDGE_COLUMNS, edge_rows),
    )


def _parse_row(row: dict[str, str], optional: set[str]) -> dict[str, Any]:
    parsed: dict[str, Any] = {}
    for column, value in row.items():
        if column in optional and value == "":
            parsed[column] = None
        elif column in _BOOL_COLUMNS:
            parsed[column] = value == "true"
        elif column == "tier":
            parsed[column] = int(value)
        else:
            parsed[column] = value
    return parsed


def graph_from_csv(nodes_csv: str, edges_csv: str) -> BiographyGraph:
    """Inverse of ``graph_to_csv``.

    Raises:
        pydantic.ValidationError: If a row does not describe a valid node or edge.
    """
    nodes = []
    central_id = None
    for row in csv.DictReader(io.StringIO(nodes_csv)):
        if row.pop("central", "false") == "true":
            central_id = row["id"]
        nodes.append(GraphNode.model_validate(_parse_row(row, _OPTIONAL_NODE_COLUMNS)))
    edges = [
        GraphEdge.model_validate(_parse_row(row, _OPTIONAL_EDGE_COLUMNS))
        for row in csv.DictReader(io.StringIO(edges_csv))
    ]
    return BiographyGraph(nodes=nodes, edges=edges, central_id=central_id)


def _gexf_attrs(data: dict[str, Any]) -> dict[str, Any]:
    """GEXF attributes must be scalars; None values are dropped."""
    return {k: v for k, v in data.items() if v is not None}


def to_networkx(graph: BiographyGraph) -> nx.MultiDiGraph:
    """The graph as a networkx MultiDiGraph; parallel edges are kept.

    Each edge also carries ``weight``, the number of edges joining the same
    unordered node pair.
    """
    g = nx.MultiDiGraph(central_id=graph.central_id or "")
    for node in graph.nodes:
        attrs = node.model_dump(mode="json", exclude={"id"})
        attrs["central"] = node.id == graph.central_id
        g.add_node(node.id, **_gexf_attrs(attrs))
    weights = edge_weights(graph)
    for edge in graph.edges:
        attrs = edge.model_dump(mode="json", exclude={"source", "target"})
        attrs["weight"] = float(weights[pair_key(edge.source, edge.target)])
        g.add_edge(edge.source, edge.target, key=edge.id, **_gexf_attrs(attrs))
    return g


def write_gexf(graph: BiographyGraph, path: Path | str) -> None:
    nx.write_gexf(to_networkx(graph), str(path))


def read_gexf(path: Path | str) -> nx.MultiDiGraph:
    """Read a GEXF file back as a networkx graph (node ids as strings)."""
    g = nx.read_gexf(str(path))
    if isinstance(g, nx.MultiDiGraph):
        return g
    return nx.MultiDiGraph(g)


def write_graph(graph: BiographyGraph, output: Path, fmt: str) -> list[Path]:
    """Write ``graph`` in ``fmt`` ("json", "csv" or "gexf"); returns the files written.

    CSV produces ``<stem>_nodes.csv`` and ``<stem>_edges.csv`` next to ``output``.
    """
    output.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "json":
        output.write_text(graph_to_json(graph), encoding="utf-8")
        return [output]
    if fmt == "csv":
        nodes_csv, edges_csv = graph_to_csv(graph)
        nodes_path = output.with_name(f"{output.stem}_nodes.csv")
        edges_path = output.with_name(f"{output.stem}_edges.csv")
        nodes_path.write_text(nodes_csv, encoding="utf-8")
        edges_path.write_text(edges_csv, encoding="utf-8")
        return [nodes_path, edges_path]
    if fmt == "gexf":
        write_gexf(graph, output)
        return [output]
    raise ValueError(f"Unknown export format {fmt!r}; expected json, csv or gexf")
