from pydantic import BaseModel, Field
from enum import Enum
from typing import List, Optional

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ParserKind(str, Enum):
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TSX = "tsx"


class SourceType(str, Enum):
    MODULE = "module"
    SCRIPT = "script"


class DocStyle(str, Enum):
    JSDOC = "jsdoc"
    TOMDOC = "tomdoc"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class StatementKind(str, Enum):
    IMPORT = "import"
    EXPORT_NAMED = "export_named"  # export { a }, export const a, export { a } from "x"
    EXPORT_DEFAULT = "export_default"  # export default ...
    EXPORT_ALL = "export_all"  # export * from "x"
    EXPORT_NAMESPACE = "export_namespace"  # export * as ns from "x"
    EXPORT_ASSIGNMENT = "export_assignment"  # TypeScript: export = x
    NAMESPACE_DECLARATION = "namespace_declaration"  # TypeScript: namespace X { ... }


EXPORT_KINDS = frozenset(
    {
        StatementKind.EXPORT_NAMED,
        StatementKind.EXPORT_DEFAULT,
        StatementKind.EXPORT_ALL,
        StatementKind.EXPORT_NAMESPACE,
        StatementKind.EXPORT_ASSIGNMENT,
    }
)
MODULE_KINDS = EXPORT_KINDS | {StatementKind.IMPORT}


class CommentKind(str, Enum):
    BLOCK = "block"
    LINE = "line"


# ---------------------------------------------------------------------------
# Documentation metadata
# ---------------------------------------------------------------------------


class DocTag(BaseModel):
    title: str
    description: Optional[str] = None
    type: Optional[str] = None  # text between braces: @type {String}
    name: Optional[str] = None  # @param {T} name


class DocBlock(BaseModel):
    description: str = ""
    tags: List[DocTag] = Field(default_factory=list)
    style: DocStyle = DocStyle.JSDOC

    def get_tag(self, title: str) -> Optional[DocTag]:
        return next((t for t in self.tags if t.title == title), None)

    @property
    def deprecated(self) -> Optional[DocTag]:
        return self.get_tag("deprecated")


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class ParseDiagnostic(BaseModel):
    message: str
    line: int = 0  # 1-based, 0 when the position is unknown
    column: int = 0  # 0-based
    severity: Severity = Severity.ERROR

    def __str__(self) -> str:
        return f"{self.message} ({self.line}:{self.column})"
