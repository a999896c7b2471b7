from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from exportmap.docs import capture_doc, find_module_doc
from exportmap.exports import ExportEntry, ExportMap
from exportmap.models import StatementKind
from exportmap.parsers import ParsedModule, ParsedSpecifier, ParsedStatement
from exportmap.settings import AnalysisSettings


class LinkKind(str, Enum):
    STAR = "star"  # export * from "x": flatten names of x
    REEXPORT = "reexport"  # export { a as b } from "x": borrow metadata of x.a
    NAMESPACE = "namespace"  # entry value is the namespace object of x


@dataclass
class ModuleLink:
    """A reference to another module, resolved after the local pass."""

    kind: LinkKind
    source: str
    entry: Optional[ExportEntry] = None
    local: Optional[str] = None  # name looked up in the target (REEXPORT)


class ExportMapBuilder:
    """
    Turns a `ParsedModule` into an `ExportMap` holding the module's own
    exports, plus the list of links to other modules that the namespace
    resolver completes afterwards.
    """

    def __init__(self, settings: AnalysisSettings) -> None:
        self.settings = settings

    def build(
        self, module: ParsedModule, mtime: Optional[int] = None
    ) -> Tuple[ExportMap, List[ModuleLink]]:
        export_map = ExportMap(
            path=module.path,
            errors=list(module.errors),
            mtime=mtime,
            is_module=module.is_module,
        )
        if self.settings.parser_options.attach_comment:
            export_map.doc = find_module_doc(module)

        links: List[ModuleLink] = []
        # `import * as ns from "x"` aliases, in case they get exported later
        namespaces: Dict[str, str] = {}
        # TypeScript `namespace X { export ... }` members, for `export = X`
        declared: Dict[str, List[ParsedSpecifier]] = {}
        for stmt in module.statements:
            if stmt.kind == StatementKind.IMPORT:
                if stmt.source:
                    export_map.imports.setdefault(stmt.source, None)
                if stmt.local and stmt.source:
                    namespaces[stmt.local] = stmt.source
            elif stmt.kind == StatementKind.NAMESPACE_DECLARATION and stmt.local:
                declared.setdefault(stmt.local, []).extend(stmt.specifiers)

        for stmt in module.statements:
            if stmt.source:
                export_map.imports.setdefault(stmt.source, None)

            if stmt.kind == StatementKind.EXPORT_DEFAULT:
                entry = self._add(export_map, "default", stmt, stmt.comments)
                if entry is not None and stmt.local in namespaces:
                    links.append(
                        ModuleLink(LinkKind.NAMESPACE, namespaces[stmt.local], entry)
                    )

            elif stmt.kind == StatementKind.EXPORT_NAMED:
                self._add_named(export_map, stmt, namespaces, links)

            elif stmt.kind == StatementKind.EXPORT_ALL:
                links.append(ModuleLink(LinkKind.STAR, stmt.source or ""))

            elif stmt.kind == StatementKind.EXPORT_NAMESPACE:
                for spec in stmt.specifiers:
                    entry = self._add(export_map, spec.exported, stmt, stmt.comments)
                    if entry is not None:
                        links.append(
                            ModuleLink(LinkKind.NAMESPACE, stmt.source or "", entry)
                        )

            elif stmt.kind == StatementKind.EXPORT_ASSIGNMENT:
                self._add_assignment(export_map, stmt, namespaces, declared, links)

        return export_map, links

    def _add(
        self,
        export_map: ExportMap,
        name: str,
        stmt: ParsedStatement,
        *comment_groups,
    ) -> Optional[ExportEntry]:
        # first declaration wins on duplicate names
        if name in export_map.names:
            return None
        entry = ExportEntry(
            name=name,
            declaration=stmt,
            doc=capture_doc(self.settings.doc_style, *comment_groups),
            trace=[export_map.path],
        )
        export_map.names[name] = entry
        return entry

    def _add_named(
        self,
        export_map: ExportMap,
        stmt: ParsedStatement,
        namespaces: Dict[str, str],
        links: List[ModuleLink],
    ) -> None:
        for spec in stmt.specifiers:
            # a declarator's own comments take precedence over the statement's
            entry = self._add(export_map, spec.exported, stmt, spec.comments, stmt.comments)
            if entry is None:
                continue
            if stmt.source:
                links.append(
                    ModuleLink(LinkKind.REEXPORT, stmt.source, entry, local=spec.local)
                )
            elif stmt.declaration_type is None and spec.local in namespaces:
                links.append(ModuleLink(LinkKind.NAMESPACE, namespaces[spec.local], entry))

    def _add_assignment(
        self,
        export_map: ExportMap,
        stmt: ParsedStatement,
        namespaces: Dict[str, str],
        declared: Dict[str, List[ParsedSpecifier]],
        links: List[ModuleLink],
    ) -> None:
        members = declared.get(stmt.local or "")
        if members:
            for spec in members:
                self._add(export_map, spec.exported, stmt, spec.comments)
            return
        # not a local namespace: the assigned value is what a default import sees
        entry = self._add(export_map, "default", stmt, stmt.comments)
        if entry is not None and stmt.local in namespaces:
            links.append(ModuleLink(LinkKind.NAMESPACE, namespaces[stmt.local], entry))
