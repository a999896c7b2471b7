from typing import Dict, List, Optional

import tree_sitter as ts
import tree_sitter_typescript as tsts

from exportmap.helpers import strip_quotes
from exportmap.models import ParserKind, StatementKind
from exportmap.parsers import (
    AbstractSourceParser,
    ParsedComment,
    ParsedSpecifier,
    get_node_text,
)
from exportmap.settings import AnalysisSettings

TS_LANGUAGE = ts.Language(tsts.language_typescript())
TSX_LANGUAGE = ts.Language(tsts.language_tsx())
_parsers: Dict[ParserKind, ts.Parser] = {}

_NAMESPACE_TYPES = ("internal_module", "module")


def _get_ts_parser(kind: ParserKind) -> ts.Parser:
    parser = _parsers.get(kind)
    if parser is None:
        language = TSX_LANGUAGE if kind == ParserKind.TSX else TS_LANGUAGE
        parser = ts.Parser(language)
        _parsers[kind] = parser
    return parser


class TypeScriptSourceParser(AbstractSourceParser):
    """
    TypeScript and TSX modules. On top of the ECMAScript forms this back-end
    understands type-level declarations (interfaces, type aliases, enums,
    namespaces, ambient declarations), `export type { ... }` clauses and
    `export = x` assignments.
    """

    kinds = [ParserKind.TYPESCRIPT, ParserKind.TSX]

    def __init__(self, path: str, settings: AnalysisSettings) -> None:
        super().__init__(path, settings)
        self._handlers.update(
            {
                "expression_statement": self._handle_expression,
                "internal_module": self._handle_namespace,
                "module": self._handle_namespace,
                "ambient_declaration": self._handle_ambient,
            }
        )

    def _get_parser(self) -> ts.Parser:
        return _get_ts_parser(self.settings.parser)

    # --- declarations -----------------------------------------------
    def _declaration_specifiers(self, node: ts.Node) -> List[ParsedSpecifier]:
        if node.type == "ambient_declaration":
            inner = next(
                (c for c in node.named_children if c.type not in ("comment",)), None
            )
            if inner is None or inner.type in ("string", "statement_block"):
                return []
            return self._declaration_specifiers(inner)
        return super()._declaration_specifiers(node)

    def _declaration_name(self, node: ts.Node) -> Optional[str]:
        if node.type in _NAMESPACE_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is None or name_node.type == "string":
                # `declare module "pkg"` does not bind a name
                return None
            return get_node_text(name_node).split(".")[0] or None
        return super()._declaration_name(node)

    def _namespace_members(self, node: ts.Node) -> List[ParsedSpecifier]:
        body = node.child_by_field_name("body")
        if body is None:
            return []
        members: List[ParsedSpecifier] = []
        for ch in body.named_children:
            if ch.type != "export_statement":
                continue
            declaration = ch.child_by_field_name("declaration")
            if declaration is not None:
                members.extend(self._declaration_specifiers(declaration))
        return members

    # --- handlers ---------------------------------------------------
    def _handle_namespace(self, node: ts.Node, holder: Optional[ts.Node] = None) -> None:
        name = self._declaration_name(node)
        if not name:
            return
        assert self.parsed_module is not None
        self.parsed_module.statements.append(
            self._make_statement(
                holder or node,
                kind=StatementKind.NAMESPACE_DECLARATION,
                local=name,
                declaration_type=node.type,
                specifiers=self._namespace_members(node),
            )
        )

    def _handle_expression(self, node: ts.Node) -> None:
        # `namespace Foo { ... }` at the top level parses as an expression statement
        inner = next((c for c in node.named_children if c.type in _NAMESPACE_TYPES), None)
        if inner is not None:
            self._handle_namespace(inner, holder=node)

    def _handle_ambient(self, node: ts.Node) -> None:
        inner = next((c for c in node.named_children if c.type in _NAMESPACE_TYPES), None)
        if inner is not None:
            self._handle_namespace(inner, holder=node)

    def _handle_export_extra(self, node: ts.Node, comments: List[ParsedComment]) -> bool:
        child_types = [c.type for c in node.children]
        # export as namespace Foo;  (UMD global, binds nothing importable)
        if "as" in child_types and "namespace" in child_types:
            return True
        # export = value;
        if "=" in child_types:
            idx = child_types.index("=")
            value = next((c for c in node.children[idx + 1 :] if c.is_named), None)
            local = None
            if value is not None and value.type in ("identifier", "nested_identifier"):
                local = strip_quotes(get_node_text(value))
            assert self.parsed_module is not None
            self.parsed_module.statements.append(
                self._make_statement(
                    node,
                    kind=StatementKind.EXPORT_ASSIGNMENT,
                    local=local,
                    declaration_type=value.type if value is not None else None,
                    comments=comments,
                )
            )
            return True
        return False
