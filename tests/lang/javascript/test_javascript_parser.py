import pytest
from pathlib import Path

from exportmap.lang.javascript import JavaScriptSourceParser
from exportmap.models import CommentKind, ParserKind, SourceType, StatementKind
from exportmap.parsers import SourceParserRegistry
from exportmap.settings import AnalysisSettings, ParserOptions

SAMPLES_DIR = Path(__file__).parents[2] / "samples"

# ------------------------------------------------------------------ #
# helpers
# ------------------------------------------------------------------ #
def _parse(path, **settings):
    return JavaScriptSourceParser(str(path), AnalysisSettings(**settings)).parse()

# ------------------------------------------------------------------ #
# tests
# ------------------------------------------------------------------ #
def test_javascript_parser_is_registered():
    assert SourceParserRegistry.get_parser(ParserKind.JAVASCRIPT) is JavaScriptSourceParser


def test_javascript_parser_on_imports():
    module = _parse(SAMPLES_DIR / "importer.js")

    assert module.parser == ParserKind.JAVASCRIPT
    assert module.errors == []
    assert [s.kind for s in module.statements] == [
        StatementKind.IMPORT,
        StatementKind.IMPORT,
        StatementKind.IMPORT,
        StatementKind.EXPORT_NAMED,
    ]

    fs, sub, named, export = module.statements
    assert fs.source == "fs"
    assert [(s.exported, s.local) for s in fs.specifiers] == [("default", "fs")]
    assert sub.source == "./sub"
    assert [(s.exported, s.local) for s in sub.specifiers] == [("foo", "foo")]
    assert named.source == "./named-exports"
    assert named.local == "named"
    assert named.specifiers == []

    assert export.source is None
    assert [(s.exported, s.local) for s in export.specifiers] == [("named", "named")]
    assert module.is_module


def test_javascript_parser_export_forms(tmp_path):
    path = tmp_path / "forms.js"
    path.write_text(
        "export default function () {}\n"
        "export function* gen() {}\n"
        "export async function load() {}\n"
        "export let x, y = 2\n"
        "export * as ns from './ns'\n"
        "export * from './all'\n"
        "export { a as b, c } from './abc'\n"
    )

    module = _parse(path)

    kinds = [s.kind for s in module.statements]
    assert kinds == [
        StatementKind.EXPORT_DEFAULT,
        StatementKind.EXPORT_NAMED,
        StatementKind.EXPORT_NAMED,
        StatementKind.EXPORT_NAMED,
        StatementKind.EXPORT_NAMESPACE,
        StatementKind.EXPORT_ALL,
        StatementKind.EXPORT_NAMED,
    ]
    default, gen, load, xy, ns, star, clause = module.statements

    assert default.local is None
    assert [s.exported for s in default.specifiers] == ["default"]
    assert [s.exported for s in gen.specifiers] == ["gen"]
    assert [s.exported for s in load.specifiers] == ["load"]
    assert [s.exported for s in xy.specifiers] == ["x", "y"]
    assert xy.declaration_type == "lexical_declaration"
    assert (ns.source, [s.exported for s in ns.specifiers]) == ("./ns", ["ns"])
    assert star.source == "./all"
    assert star.specifiers == []
    assert clause.source == "./abc"
    assert [(s.local, s.exported) for s in clause.specifiers] == [("a", "b"), ("c", "c")]


def test_javascript_parser_default_identifier(tmp_path):
    path = tmp_path / "default.js"
    path.write_text("const thing = 1\nexport default thing\n")

    module = _parse(path)

    (stmt,) = module.statements
    assert stmt.kind == StatementKind.EXPORT_DEFAULT
    assert stmt.local == "thing"
    assert stmt.start_line == 2
    assert stmt.column == 0


def test_javascript_parser_attaches_leading_comments():
    module = _parse(SAMPLES_DIR / "deprecated.js")

    fn = module.statements[0]
    assert [c.kind for c in fn.comments] == [
        CommentKind.LINE,
        CommentKind.BLOCK,
        CommentKind.LINE,
    ]
    assert fn.comments[0].text == "// some line comment"

    chain = next(s for s in module.statements if s.specifiers and s.specifiers[0].exported == "CHAIN_A")
    assert [s.exported for s in chain.specifiers] == ["CHAIN_A", "CHAIN_B", "CHAIN_C"]
    assert "this chain is awful" in chain.comments[-1].text
    a, b, c = chain.specifiers
    assert a.comments == []
    assert "so awful" in b.comments[-1].text
    assert "still terrible" in c.comments[-1].text


def test_javascript_parser_without_comments():
    module = _parse(
        SAMPLES_DIR / "deprecated.js",
        parser_options=ParserOptions(attach_comment=False),
    )

    assert module.statements
    assert all(not s.comments for s in module.statements)
    assert all(not spec.comments for s in module.statements for spec in s.specifiers)


def test_javascript_parser_reports_syntax_errors():
    module = _parse(SAMPLES_DIR / "broken.js")

    assert module.errors
    assert all(e.line >= 1 for e in module.errors)
    assert str(module.errors[0]).endswith(f"({module.errors[0].line}:{module.errors[0].column})")


def test_javascript_parser_script_mode():
    module = _parse(
        SAMPLES_DIR / "importer.js",
        parser_options=ParserOptions(source_type=SourceType.SCRIPT),
    )

    assert module.statements == []
    assert not module.is_module
    assert len(module.errors) == 1
    assert module.errors[0].line == 1
    assert "sourceType: module" in module.errors[0].message


def test_javascript_parser_unreadable_file(tmp_path):
    module = _parse(tmp_path / "missing.js")

    assert module.statements == []
    assert len(module.errors) == 1


def test_javascript_parser_handler_failure_is_reported(monkeypatch):
    def _boom(self, node):
        raise RuntimeError("boom")

    monkeypatch.setattr(JavaScriptSourceParser, "_handle_export", _boom)

    module = _parse(SAMPLES_DIR / "export-all.js")

    assert module.statements == []
    assert module.errors[0].message == "Unable to analyze export_statement: boom"
    assert module.errors[0].line == 1


def test_javascript_parser_records_first_statement(tmp_path):
    path = tmp_path / "helper.js"
    path.write_text(
        "// header\n"
        "\n"
        "/** helper */\n"
        "function helper() {}\n"
        "export const a = 1\n"
    )

    module = _parse(path)

    # the first statement is not an export, so it is not in `statements`
    assert module.statements[0].start_line == 5
    assert module.first_statement_line == 4
    assert module.declaration_comment_bytes == [0, len("// header\n\n")]


def test_javascript_parser_first_statement_not_a_declaration(tmp_path):
    path = tmp_path / "entry.js"
    path.write_text("/** Entry point. */\nimport fs from 'fs'\n")

    module = _parse(path)

    assert module.first_statement_line == 2
    assert module.declaration_comment_bytes == []
