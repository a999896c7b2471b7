import pytest
from pathlib import Path

from exportmap.cache import ExportMapCache
from exportmap.lang.typescript import TypeScriptSourceParser
from exportmap.loader import ExportMapLoader
from exportmap.models import ParserKind, StatementKind
from exportmap.parsers import SourceParserRegistry
from exportmap.settings import AnalysisSettings

SAMPLES_DIR = Path(__file__).parent / "samples"


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #
def _settings(kind: ParserKind = ParserKind.TYPESCRIPT) -> AnalysisSettings:
    return AnalysisSettings(parser=kind)


def _load(name: str, kind: ParserKind = ParserKind.TYPESCRIPT):
    loader = ExportMapLoader(ExportMapCache())
    return loader.parse(str(SAMPLES_DIR / name), _settings(kind))


# --------------------------------------------------------------------------- #
# Tests
# --------------------------------------------------------------------------- #
def test_typescript_parser_is_registered():
    assert SourceParserRegistry.get_parser(ParserKind.TYPESCRIPT) is TypeScriptSourceParser
    assert SourceParserRegistry.get_parser(ParserKind.TSX) is TypeScriptSourceParser


def test_typescript_type_level_exports():
    export_map = _load("types.ts")

    assert export_map.errors == []
    assert list(export_map) == [
        "Shape",
        "Point",
        "Color",
        "Base",
        "Geometry",
        "measure",
        "Widget",
        "default",
    ]

    shape = export_map.get("Shape")
    assert shape.doc is not None
    assert shape.doc.description == "A shape."
    assert shape.doc.deprecated.description == "use Polygon instead"

    assert export_map.has_deep("Widget") == (
        True,
        [str(SAMPLES_DIR / "types.ts"), str(SAMPLES_DIR / "widget.ts")],
    )


def test_typescript_type_only_clause():
    parser = TypeScriptSourceParser(str(SAMPLES_DIR / "types.ts"), _settings())
    module = parser.parse()

    clause = next(s for s in module.statements if s.source == "./widget")
    assert clause.kind == StatementKind.EXPORT_NAMED
    assert clause.type_only
    assert [s.exported for s in clause.specifiers] == ["Widget"]


def test_typescript_export_assignment_of_namespace():
    parser = TypeScriptSourceParser(str(SAMPLES_DIR / "assignment.ts"), _settings())
    module = parser.parse()

    assert [s.kind for s in module.statements] == [
        StatementKind.NAMESPACE_DECLARATION,
        StatementKind.EXPORT_ASSIGNMENT,
    ]
    namespace, assignment = module.statements
    assert namespace.local == "Utils"
    assert [s.exported for s in namespace.specifiers] == ["helper", "run"]
    assert assignment.local == "Utils"
    assert module.is_module

    export_map = _load("assignment.ts")
    assert list(export_map) == ["helper", "run"]
    assert not export_map.has_default


def test_typescript_export_assignment_of_value():
    export_map = _load("assign-value.ts")

    assert list(export_map) == ["default"]
    assert export_map.get("default").declaration.kind == StatementKind.EXPORT_ASSIGNMENT


def test_tsx_component():
    export_map = _load("component.tsx", ParserKind.TSX)

    assert export_map.errors == []
    assert list(export_map) == ["Button", "default"]
    assert export_map.imports == {"react": None}


@pytest.mark.parametrize("kind", [ParserKind.TYPESCRIPT, ParserKind.TSX])
def test_typescript_parsers_are_cached_per_grammar(kind):
    first = TypeScriptSourceParser(str(SAMPLES_DIR / "widget.ts"), _settings(kind))
    second = TypeScriptSourceParser(str(SAMPLES_DIR / "widget.ts"), _settings(kind))

    assert first.parser is second.parser
