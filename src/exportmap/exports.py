from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from exportmap.models import DocBlock, ParseDiagnostic
from exportmap.parsers import ParsedStatement

NamespaceLoader = Callable[[], Optional["ExportMap"]]
# (absolute path, settings fingerprint)
ModuleKey = Tuple[str, str]


@dataclass(eq=False)
class ExportEntry:
    """One exported binding of a module."""

    name: str
    declaration: Optional[ParsedStatement] = None
    doc: Optional[DocBlock] = None
    # files the binding passed through, starting with the exporting module
    trace: List[str] = field(default_factory=list)
    # False when a re-export points at a module that lacks the name
    found: bool = True
    namespace_loader: Optional[NamespaceLoader] = field(default=None, repr=False)

    @property
    def namespace(self) -> Optional["ExportMap"]:
        """
        The export map of the module this binding is a namespace object of,
        or None. Resolved through the cache on every access, so a rebuilt
        target is picked up and an unchanged one is the same object.
        """
        if self.namespace_loader is None:
            return None
        return self.namespace_loader()

    @property
    def line(self) -> int:
        return self.declaration.start_line if self.declaration else 0

    @property
    def column(self) -> int:
        return self.declaration.column if self.declaration else 0

    def via(self, path: str) -> "ExportEntry":
        """Copy of this entry as seen through a re-export in *path*."""
        return replace(self, trace=[path, *self.trace])


@dataclass(eq=False)
class ExportMap:
    """
    Names exported by one module. Behaves as a read-only ordered mapping
    once built; the ordering follows the source, with names contributed by
    `export * from` statements appended after local ones.
    """

    path: str
    names: Dict[str, ExportEntry] = field(default_factory=dict)
    errors: List[ParseDiagnostic] = field(default_factory=list)
    doc: Optional[DocBlock] = None
    mtime: Optional[int] = None
    # specifier -> resolved absolute path (None when unresolvable)
    imports: Dict[str, Optional[str]] = field(default_factory=dict)
    is_module: bool = False
    # unfinished modules whose partial view was merged in because of a cycle
    partial_sources: Set[ModuleKey] = field(default_factory=set, repr=False)

    def has(self, name: str) -> bool:
        return name in self.names

    def get(self, name: str) -> Optional[ExportEntry]:
        return self.names.get(name)

    @property
    def size(self) -> int:
        return len(self.names)

    @property
    def has_default(self) -> bool:
        return "default" in self.names

    @property
    def complete(self) -> bool:
        return not self.partial_sources

    def has_deep(self, name: str) -> Tuple[bool, List[str]]:
        """
        Return whether *name* is really provided, following re-exports, and
        the list of files it was traced through. Re-exports from modules that
        cannot be resolved count as found.
        """
        entry = self.names.get(name)
        if entry is None:
            return False, [self.path]
        return entry.found, list(entry.trace) or [self.path]

    def for_each(self, callback: Callable[[ExportEntry, str, "ExportMap"], None]) -> None:
        for name, entry in self.names.items():
            callback(entry, name, self)

    def format_errors(self, specifier: str) -> str:
        details = ", ".join(str(e) for e in self.errors)
        return f"Parse errors in imported module '{specifier}': {details}"

    def items(self):
        return self.names.items()

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __bool__(self) -> bool:
        # a module that exports nothing still exists
        return True

    def __repr__(self) -> str:
        return f"ExportMap(path={self.path!r}, names={list(self.names)!r}, errors={len(self.errors)})"
