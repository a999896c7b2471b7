import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Tuple

import click

from exportmap.cache import ExportMapCache
from exportmap.exports import ExportMap
from exportmap.loader import ExportMapLoader
from exportmap.logger import logger
from exportmap.models import ParserKind, SourceType
from exportmap.settings import ParserOptions, load_settings


def _setup_logging(debug: bool) -> None:
    # Ensure stdlib logger emits records so structlog output is visible
    level = logging.DEBUG if debug else logging.WARNING
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        # structlog renders the final message; keep stdlib formatter simple.
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setLevel(level)


def _to_dict(export_map: ExportMap) -> dict[str, Any]:
    names = []
    for name, entry in export_map.items():
        names.append(
            {
                "name": name,
                "line": entry.line,
                "found": entry.found,
                "trace": entry.trace,
                "namespace": entry.namespace_loader is not None,
                "doc": entry.doc.model_dump(mode="json") if entry.doc else None,
            }
        )
    return {
        "path": export_map.path,
        "size": export_map.size,
        "is_module": export_map.is_module,
        "doc": export_map.doc.model_dump(mode="json") if export_map.doc else None,
        "names": names,
        "imports": export_map.imports,
        "errors": [e.model_dump(mode="json") for e in export_map.errors],
    }


def _format(export_map: ExportMap) -> List[str]:
    lines = [f"{export_map.path} ({export_map.size} exports)"]
    if export_map.doc is not None:
        lines.append(f"  module doc: {export_map.doc.description or '-'}")
    for name, entry in export_map.items():
        flags = []
        if entry.namespace_loader is not None:
            flags.append("namespace")
        if not entry.found:
            flags.append("missing")
        if entry.doc is not None and entry.doc.deprecated is not None:
            flags.append(f"deprecated: {entry.doc.deprecated.description or ''}".rstrip())
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        lines.append(f"  {name}{suffix}")
    for err in export_map.errors:
        lines.append(f"  error: {err}")
    return lines


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
)
@click.option(
    "--parser",
    type=click.Choice([k.value for k in ParserKind]),
    default=ParserKind.JAVASCRIPT.value,
    help="Parser back-end to use.",
)
@click.option(
    "--source-type",
    type=click.Choice([s.value for s in SourceType]),
    default=SourceType.MODULE.value,
    help="Parse files as ES modules or as scripts.",
)
@click.option(
    "--ignore",
    "ignore",
    multiple=True,
    help="Gitignore-style pattern of files to skip (repeatable).",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit JSON.")
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug logging (cache and resolution events).",
)
def main(
    files: Tuple[Path, ...],
    parser: str,
    source_type: str,
    ignore: Tuple[str, ...],
    as_json: bool,
    debug: bool,
) -> None:
    """
    Print the export map of each FILE: exported names, documentation tags
    and parse errors.
    """
    _setup_logging(debug)

    settings = load_settings(
        parser=ParserKind(parser),
        parser_options=ParserOptions(source_type=SourceType(source_type)),
        ignore=list(ignore),
    )
    loader = ExportMapLoader(ExportMapCache())

    exit_code = 0
    results: List[dict[str, Any]] = []
    for file in files:
        path = str(file.resolve())
        if settings.is_ignored(os.path.relpath(path)):
            logger.debug("Skipping ignored file", path=path)
            continue
        export_map = loader.parse(path, settings)
        if export_map.errors:
            exit_code = 1
        if as_json:
            results.append(_to_dict(export_map))
        else:
            for line in _format(export_map):
                click.echo(line)

    if as_json:
        click.echo(json.dumps(results, indent=2))
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
