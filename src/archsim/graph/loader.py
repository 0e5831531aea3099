"""Load a graph snapshot from a JSON or YAML file.

The file holds a single mapping with ``nodes`` and ``edges`` lists, in the
same shape the diagram editor exports::

    nodes:
      - {id: web}
      - {id: api, label: Orders API}
    edges:
      - {id: e1, source: web, target: api, protocol: https, latencyMs: 40}
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from archsim.graph.model import Graph, GraphReferenceError

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


def parse_graph(data: object) -> Graph:
    """Validate a decoded mapping into a :class:`Graph`.

    Raises
    ------
    GraphReferenceError
        If *data* is not a valid snapshot or references unknown nodes.
    """
    if not isinstance(data, dict):
        raise GraphReferenceError(
            f"Graph document must be a mapping, got {type(data).__name__}."
        )
    try:
        graph = Graph.model_validate(data)
    except ValidationError as exc:
        raise GraphReferenceError(f"Invalid graph document: {exc}") from exc
    graph.validate_references()
    return graph


def load_graph(path: str | Path) -> Graph:
    """Read and validate a graph snapshot from *path*.

    ``.yaml``/``.yml`` files are parsed with PyYAML, everything else as JSON.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    GraphReferenceError
        If the document is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Graph file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            if path.suffix.lower() in _YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise GraphReferenceError(f"Could not parse {path}: {exc}") from exc
    graph = parse_graph(data)
    logger.debug("Loaded %r from %s", graph, path)
    return graph


__all__ = ["load_graph", "parse_graph"]
