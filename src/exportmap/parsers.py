import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type

import tree_sitter as ts
from pydantic import BaseModel, Field

from exportmap.helpers import strip_quotes
from exportmap.logger import logger
from exportmap.models import (
    MODULE_KINDS,
    CommentKind,
    ParseDiagnostic,
    ParserKind,
    SourceType,
    StatementKind,
)
from exportmap.settings import AnalysisSettings


# Parser-specific data structures
class ParsedComment(BaseModel):
    text: str  # raw comment text including delimiters
    kind: CommentKind
    start_line: int
    end_line: int
    start_byte: int = 0
    end_byte: int = 0


class ParsedSpecifier(BaseModel):
    local: Optional[str] = None  # local binding name, if any
    exported: str  # name visible to importers ("default" for default exports)
    line: int = 0
    column: int = 0
    comments: List[ParsedComment] = Field(default_factory=list)


class ParsedStatement(BaseModel):
    kind: StatementKind
    text: str

    start_line: int
    end_line: int
    column: int = 0
    start_byte: int = 0
    end_byte: int = 0

    source: Optional[str] = None  # module specifier of `from "..."`
    local: Optional[str] = None  # default/assignment identifier, namespace import alias, namespace name
    declaration_type: Optional[str] = None  # syntax node type of the exported declaration
    type_only: bool = False  # TypeScript `export type { ... }` / `import type ...`
    specifiers: List[ParsedSpecifier] = Field(default_factory=list)
    comments: List[ParsedComment] = Field(default_factory=list)


class ParsedModule(BaseModel):
    path: str  # absolute path
    parser: ParserKind

    statements: List[ParsedStatement] = Field(default_factory=list)
    comments: List[ParsedComment] = Field(default_factory=list)  # top-level comments
    errors: List[ParseDiagnostic] = Field(default_factory=list)

    # line of the first top-level statement of any kind, not only import/export
    first_statement_line: Optional[int] = None
    # start bytes of the comments directly preceding that statement when it is a declaration
    declaration_comment_bytes: List[int] = Field(default_factory=list)

    @property
    def is_module(self) -> bool:
        return any(s.kind in MODULE_KINDS for s in self.statements)


# Abstract base parser class
class AbstractSourceParser(ABC):
    """
    Abstract base class for source parsers. Each back-end turns one file into
    a `ParsedModule`, the normalized representation the export map builder
    works on.
    """

    kinds: List[ParserKind]
    path: str
    settings: AnalysisSettings
    source_bytes: bytes
    parsed_module: ParsedModule | None
    parser: Any

    def __init_subclass__(cls, **kw):
        super().__init_subclass__(**kw)
        if not inspect.isabstract(cls):
            if not hasattr(cls, "kinds") or not cls.kinds:
                raise ValueError(f"{cls.__name__} missing `kinds`")
            SourceParserRegistry.register_parser(cls)

    def __init__(self, path: str, settings: AnalysisSettings) -> None:
        self.path = path
        self.settings = settings
        self.source_bytes = b""
        self.parsed_module = None
        self._handlers: Dict[str, Callable[[ts.Node], None]] = {
            "import_statement": self._handle_import,
            "export_statement": self._handle_export,
            "comment": self._handle_comment,
        }
        self.parser = self._get_parser()

    @abstractmethod
    def _get_parser(self) -> ts.Parser: ...

    def _handle_file(self, root_node: ts.Node) -> None:
        """
        Optional hook for back-end specific post-processing at file-level.
        """
        pass

    def _handle_export_extra(self, node: ts.Node, comments: List[ParsedComment]) -> bool:
        """
        Hook for export forms that only exist in some grammars. Returns True
        when the node was handled.
        """
        return False

    # Helpers
    def parse(self) -> ParsedModule:
        self.parsed_module = ParsedModule(path=self.path, parser=self.settings.parser)

        try:
            with open(self.path, "rb") as file:
                self.source_bytes = file.read()
        except OSError as exc:
            logger.warning("Unable to read source file", path=self.path, error=str(exc))
            self.parsed_module.errors.append(
                ParseDiagnostic(message=f"Unable to read file: {exc.strerror or exc}")
            )
            return self.parsed_module

        tree = self.parser.parse(self.source_bytes)
        root_node = tree.root_node
        self._collect_errors(root_node)

        for child in root_node.children:
            if (
                self.parsed_module.first_statement_line is None
                and child.is_named
                and child.type not in ("comment", "hash_bang_line")
            ):
                self._mark_first_statement(child)
            self._process_node(child)

        self._handle_file(root_node)

        if (
            self.settings.parser_options.source_type == SourceType.SCRIPT
            and self.parsed_module.is_module
        ):
            first = next(
                s for s in self.parsed_module.statements if s.kind in MODULE_KINDS
            )
            self.parsed_module.errors.append(
                ParseDiagnostic(
                    message="'import' and 'export' may appear only with 'sourceType: module'",
                    line=first.start_line,
                    column=first.column,
                )
            )
            self.parsed_module.statements = [
                s for s in self.parsed_module.statements if s.kind not in MODULE_KINDS
            ]

        if self.parsed_module.errors:
            logger.debug(
                "Parser reported syntax errors",
                path=self.path,
                count=len(self.parsed_module.errors),
            )
        return self.parsed_module

    def _process_node(self, node: ts.Node) -> None:
        handler = self._handlers.get(node.type)
        if handler is None:
            return
        try:
            handler(node)
        except Exception as ex:
            logger.warning(
                "Handler error; statement skipped",
                path=self.path,
                node_type=node.type,
                line=node.start_point[0] + 1,
                error=str(ex),
            )
            assert self.parsed_module is not None
            self.parsed_module.errors.append(
                ParseDiagnostic(
                    message=f"Unable to analyze {node.type}: {ex}",
                    line=node.start_point[0] + 1,
                    column=node.start_point[1],
                )
            )

    def _mark_first_statement(self, node: ts.Node) -> None:
        assert self.parsed_module is not None
        self.parsed_module.first_statement_line = node.start_point[0] + 1
        if self._is_declaration(node):
            self.parsed_module.declaration_comment_bytes = [
                c.start_byte for c in self._get_leading_comments(node)
            ]

    def _is_declaration(self, node: ts.Node) -> bool:
        if node.type == "export_statement" or node.type.endswith("_declaration"):
            return True
        if node.type in ("internal_module", "module"):
            return True
        # `namespace Foo { ... }` wrapped in an expression statement
        if node.type == "expression_statement":
            return any(
                c.type in ("internal_module", "module") for c in node.named_children
            )
        return False

    def _collect_errors(self, root_node: ts.Node) -> None:
        if not root_node.has_error:
            return
        assert self.parsed_module is not None
        stack = [root_node]
        while stack:
            node = stack.pop()
            if node.type == "ERROR":
                snippet = (get_node_text(node) or "").strip().splitlines()
                token = snippet[0][:40] if snippet else ""
                self.parsed_module.errors.append(
                    ParseDiagnostic(
                        message=f"Unexpected token {token!r}" if token else "Unexpected token",
                        line=node.start_point[0] + 1,
                        column=node.start_point[1],
                    )
                )
                continue
            if node.is_missing:
                self.parsed_module.errors.append(
                    ParseDiagnostic(
                        message=f"Missing {node.type!r}",
                        line=node.start_point[0] + 1,
                        column=node.start_point[1],
                    )
                )
                continue
            # children are pushed in reverse so diagnostics come out in source order
            for child in reversed(node.children):
                if child.has_error or child.is_missing:
                    stack.append(child)

    def _make_statement(
        self,
        node: ts.Node,
        *,
        kind: StatementKind,
        source: Optional[str] = None,
        local: Optional[str] = None,
        declaration_type: Optional[str] = None,
        specifiers: Optional[List[ParsedSpecifier]] = None,
        comments: Optional[List[ParsedComment]] = None,
        type_only: bool = False,
    ) -> ParsedStatement:
        """
        Construct a ParsedStatement from a tree-sitter node with common fields.
        """
        return ParsedStatement(
            kind=kind,
            text=get_node_text(node),
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            column=node.start_point[1],
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            source=source,
            local=local,
            declaration_type=declaration_type,
            type_only=type_only,
            specifiers=specifiers or [],
            comments=comments or [],
        )

    def _make_specifier(
        self,
        node: ts.Node,
        *,
        exported: str,
        local: Optional[str] = None,
        comments: Optional[List[ParsedComment]] = None,
    ) -> ParsedSpecifier:
        return ParsedSpecifier(
            local=local,
            exported=exported,
            line=node.start_point[0] + 1,
            column=node.start_point[1],
            comments=comments or [],
        )

    def _make_comment(self, node: ts.Node) -> ParsedComment:
        text = get_node_text(node)
        return ParsedComment(
            text=text,
            kind=CommentKind.BLOCK if text.startswith("/*") else CommentKind.LINE,
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            start_byte=node.start_byte,
            end_byte=node.end_byte,
        )

    def _get_leading_comments(self, node: ts.Node) -> List[ParsedComment]:
        if not self.settings.parser_options.attach_comment:
            return []
        comments: List[ParsedComment] = []
        sib = node.prev_sibling
        while sib is not None:
            if sib.type == "comment":
                comments.append(self._make_comment(sib))
                sib = sib.prev_sibling
                continue
            if sib.type in (",", ";"):
                sib = sib.prev_sibling
                continue
            break
        comments.reverse()
        return comments

    def _get_source(self, node: ts.Node) -> Optional[str]:
        source_node = node.child_by_field_name("source")
        if source_node is None:
            clause = next((c for c in node.children if c.type == "from_clause"), None)
            if clause is not None:
                source_node = clause.child_by_field_name("source")
        if source_node is None:
            return None
        return strip_quotes(get_node_text(source_node))

    def _module_export_name(self, node: Optional[ts.Node]) -> Optional[str]:
        if node is None:
            return None
        return strip_quotes(get_node_text(node)) or None

    # --- declarations -----------------------------------------------
    def _declaration_specifiers(self, node: ts.Node) -> List[ParsedSpecifier]:
        if node.type in ("lexical_declaration", "variable_declaration"):
            specs: List[ParsedSpecifier] = []
            for ch in node.named_children:
                if ch.type != "variable_declarator":
                    continue
                comments = self._get_leading_comments(ch)
                for name_node in self._pattern_names(ch.child_by_field_name("name")):
                    specs.append(
                        self._make_specifier(
                            name_node,
                            exported=get_node_text(name_node),
                            local=get_node_text(name_node),
                            comments=comments,
                        )
                    )
            return specs
        name = self._declaration_name(node)
        if not name:
            return []
        return [self._make_specifier(node, exported=name, local=name)]

    def _declaration_name(self, node: ts.Node) -> Optional[str]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            name_node = next(
                (
                    c
                    for c in node.named_children
                    if c.type in ("identifier", "type_identifier")
                ),
                None,
            )
        if name_node is None:
            return None
        return get_node_text(name_node) or None

    def _pattern_names(self, node: Optional[ts.Node]) -> List[ts.Node]:
        """
        Return the identifier nodes bound by a (possibly destructuring)
        binding pattern, in source order.
        """
        if node is None:
            return []
        if node.type in ("identifier", "shorthand_property_identifier_pattern"):
            return [node]
        if node.type == "pair_pattern":
            return self._pattern_names(node.child_by_field_name("value"))
        if node.type in ("assignment_pattern", "object_assignment_pattern"):
            return self._pattern_names(node.child_by_field_name("left"))
        if node.type in ("object_pattern", "array_pattern", "rest_pattern"):
            out: List[ts.Node] = []
            for ch in node.named_children:
                if ch.type == "comment":
                    continue
                out.extend(self._pattern_names(ch))
            return out
        return []

    # --- handlers ---------------------------------------------------
    def _handle_comment(self, node: ts.Node) -> None:
        assert self.parsed_module is not None
        self.parsed_module.comments.append(self._make_comment(node))

    def _handle_import(self, node: ts.Node) -> None:
        source = self._get_source(node)
        if source is None:
            src = next((c for c in node.children if c.type == "string"), None)
            source = strip_quotes(get_node_text(src)) if src is not None else None
        if not source:
            return
        namespace_local: Optional[str] = None
        specifiers: List[ParsedSpecifier] = []
        clause = next((c for c in node.children if c.type == "import_clause"), None)
        for ch in clause.named_children if clause is not None else []:
            if ch.type == "identifier":
                specifiers.append(
                    self._make_specifier(ch, exported="default", local=get_node_text(ch))
                )
            elif ch.type == "namespace_import":
                alias = next(
                    (c for c in ch.named_children if c.type == "identifier"), None
                )
                namespace_local = get_node_text(alias) or None
            elif ch.type == "named_imports":
                for spec in ch.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name = self._module_export_name(spec.child_by_field_name("name"))
                    alias = spec.child_by_field_name("alias")
                    if not name:
                        continue
                    specifiers.append(
                        self._make_specifier(
                            spec,
                            exported=name,
                            local=get_node_text(alias) if alias is not None else name,
                        )
                    )
        assert self.parsed_module is not None
        self.parsed_module.statements.append(
            self._make_statement(
                node,
                kind=StatementKind.IMPORT,
                source=source,
                local=namespace_local,
                specifiers=specifiers,
                type_only=any(c.type == "type" for c in node.children),
            )
        )

    def _handle_export(self, node: ts.Node) -> None:
        assert self.parsed_module is not None
        statements = self.parsed_module.statements
        comments = self._get_leading_comments(node)
        source = self._get_source(node)
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")

        # Case 1: default export
        if any(c.type == "default" for c in node.children):
            local: Optional[str] = None
            if value is not None and value.type == "identifier":
                local = get_node_text(value)
            elif declaration is not None:
                local = self._declaration_name(declaration)
            target = declaration or value or node
            statements.append(
                self._make_statement(
                    node,
                    kind=StatementKind.EXPORT_DEFAULT,
                    local=local,
                    declaration_type=target.type,
                    specifiers=[
                        self._make_specifier(target, exported="default", local=local)
                    ],
                    comments=comments,
                )
            )
            return

        # Case 2: local declaration
        if declaration is not None:
            statements.append(
                self._make_statement(
                    node,
                    kind=StatementKind.EXPORT_NAMED,
                    declaration_type=declaration.type,
                    specifiers=self._declaration_specifiers(declaration),
                    comments=comments,
                )
            )
            return

        # Case 3: star re-exports, `export * as ns from "x"` / `export * from "x"`
        ns = next((c for c in node.children if c.type == "namespace_export"), None)
        if ns is not None and source:
            name_node = ns.named_children[-1] if ns.named_children else None
            name = self._module_export_name(name_node)
            if name:
                statements.append(
                    self._make_statement(
                        node,
                        kind=StatementKind.EXPORT_NAMESPACE,
                        source=source,
                        specifiers=[self._make_specifier(ns, exported=name)],
                        comments=comments,
                    )
                )
            return
        if any(c.type == "*" for c in node.children) and source:
            # older grammars inline `* as name` without a namespace_export node
            alias = None
            if any(c.type == "as" for c in node.children):
                source_node = node.child_by_field_name("source")
                alias = next(
                    (
                        c
                        for c in node.named_children
                        if c.type in ("identifier", "string") and c != source_node
                    ),
                    None,
                )
            if alias is not None:
                statements.append(
                    self._make_statement(
                        node,
                        kind=StatementKind.EXPORT_NAMESPACE,
                        source=source,
                        specifiers=[
                            self._make_specifier(
                                alias, exported=self._module_export_name(alias) or ""
                            )
                        ],
                        comments=comments,
                    )
                )
            else:
                statements.append(
                    self._make_statement(
                        node,
                        kind=StatementKind.EXPORT_ALL,
                        source=source,
                        comments=comments,
                    )
                )
            return

        # Case 4: export clause, with or without a source
        clause = next((c for c in node.children if c.type == "export_clause"), None)
        if clause is not None:
            specifiers: List[ParsedSpecifier] = []
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name = self._module_export_name(spec.child_by_field_name("name"))
                alias = self._module_export_name(spec.child_by_field_name("alias"))
                if not name:
                    continue
                specifiers.append(
                    self._make_specifier(
                        spec,
                        exported=alias or name,
                        local=name,
                        comments=self._get_leading_comments(spec),
                    )
                )
            statements.append(
                self._make_statement(
                    node,
                    kind=StatementKind.EXPORT_NAMED,
                    source=source,
                    specifiers=specifiers,
                    comments=comments,
                    type_only=any(c.type == "type" for c in node.children),
                )
            )
            return

        if not self._handle_export_extra(node, comments):
            logger.debug(
                "Unknown export form",
                path=self.path,
                line=node.start_point[0] + 1,
                raw=get_node_text(node)[:200],
            )


class SourceParserRegistry:
    """
    Singleton registry mapping parser kinds to SourceParser implementations.
    """

    _instance = None
    _parsers: Dict[ParserKind, Type[AbstractSourceParser]] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(SourceParserRegistry, cls).__new__(cls)
        return cls._instance

    @classmethod
    def register_parser(cls, parser: Type[AbstractSourceParser]) -> None:
        for kind in parser.kinds:
            cls._parsers[kind] = parser

    @classmethod
    def get_parser(cls, kind: ParserKind) -> Optional[Type[AbstractSourceParser]]:
        return cls._parsers.get(kind)

    @classmethod
    def get_parsers(cls) -> Dict[ParserKind, Type[AbstractSourceParser]]:
        return dict(cls._parsers)


# Helpers
def get_node_text(node) -> str:
    """
    Get text of the tree sitter node
    """
    if not node or not node.text:
        return ""

    return node.text.decode("utf-8", errors="replace")
