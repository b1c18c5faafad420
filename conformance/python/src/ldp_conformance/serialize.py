"""Write report artifacts to disk.

Every file is first written to a temporary sibling and moved into place with
:func:`os.replace`, so a reader never sees a half-written artifact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from rdflib import Graph

from .vocab import CONTEXT, new_graph

logger = logging.getLogger(__name__)

TURTLE_SUFFIX = ".ttl"
JSONLD_SUFFIX = ".jsonld"


@dataclass(frozen=True, slots=True)
class ArtifactResult:
    path: Path
    kind: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp creates files readable by the owner only; reports get the usual mode.
_FILE_MODE = 0o666 & ~_current_umask()


def atomic_write_text(path: Path, text: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
        os.chmod(tmp, _FILE_MODE)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def to_turtle(graph: Graph) -> str:
    return graph.serialize(format="turtle")


def _node_key(node: object) -> str:
    if isinstance(node, dict) and "@id" in node:
        return str(node["@id"])
    return json.dumps(node, sort_keys=True)


def _stable(value: object, key: str | None = None) -> object:
    # Property values are unordered in JSON-LD; only @list keeps its order.
    if isinstance(value, dict):
        return {k: v if k == "@context" else _stable(v, k) for k, v in value.items()}
    if isinstance(value, list):
        items = [_stable(item) for item in value]
        return items if key == "@list" else sorted(items, key=_node_key)
    return value


def to_jsonld(graph: Graph) -> str:
    text = graph.serialize(format="json-ld", context=CONTEXT, auto_compact=True, indent=2, sort_keys=True)
    return json.dumps(_stable(json.loads(text)), indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def _write(path: Path, kind: str, render) -> ArtifactResult:
    try:
        atomic_write_text(path, render())
    except Exception as exc:
        logger.error("Failed to write %s artifact %s: %s", kind, path, exc)
        return ArtifactResult(path=path, kind=kind, error=str(exc) or exc.__class__.__name__)
    logger.info("Wrote %s", path)
    return ArtifactResult(path=path, kind=kind)


def write_graph_artifacts(graph: Graph, out_dir: Path, basename: str) -> list[ArtifactResult]:
    """Serialize one graph snapshot to Turtle and to compacted JSON-LD."""

    out_dir = Path(out_dir)
    return [
        _write(out_dir / f"{basename}{TURTLE_SUFFIX}", "turtle", lambda: to_turtle(graph)),
        _write(out_dir / f"{basename}{JSONLD_SUFFIX}", "json-ld", lambda: to_jsonld(graph)),
    ]


def write_dashboard(html: str, out_dir: Path, filename: str) -> ArtifactResult:
    return _write(Path(out_dir) / filename, "html", lambda: html)


def write_artifacts(
    out_dir: Path,
    *,
    graphs: dict[str, Graph] | None = None,
    documents: dict[str, str] | None = None,
) -> list[ArtifactResult]:
    """Attempt every artifact, even after a failure, and report each one."""

    results: list[ArtifactResult] = []
    for basename, graph in (graphs or {}).items():
        results.extend(write_graph_artifacts(graph, out_dir, basename))
    for filename, html in (documents or {}).items():
        results.append(write_dashboard(html, out_dir, filename))
    return results


def convert_turtle(source: Path, target: Path | None = None) -> ArtifactResult:
    """Re-serialize a Turtle file as compacted JSON-LD next to it."""

    source = Path(source)
    target = Path(target) if target is not None else source.with_suffix(JSONLD_SUFFIX)
    graph = new_graph()
    graph.parse(source, format="turtle")
    return _write(target, "json-ld", lambda: to_jsonld(graph))
