import os
from typing import Optional

import exportmap.lang  # noqa: F401  registers parser back-ends
from exportmap.builder import ExportMapBuilder
from exportmap.cache import ExportMapCache
from exportmap.exports import ExportMap, NamespaceLoader
from exportmap.helpers import file_mtime
from exportmap.logger import logger
from exportmap.namespaces import NamespaceResolver, VisitingArena
from exportmap.parsers import SourceParserRegistry
from exportmap.resolvers import NodePathResolver, PathResolver
from exportmap.settings import AnalysisSettings, LintContext


class ExportMapLoader:
    """
    Entry point used by lint rules to obtain export maps.

    `get` resolves a module specifier relative to the file being linted,
    `parse` builds directly from a known path. Both go through the cache
    handed in at construction time, which the caller owns.
    """

    def __init__(
        self,
        cache: Optional[ExportMapCache] = None,
        resolver: Optional[PathResolver] = None,
    ) -> None:
        self.cache = cache if cache is not None else ExportMapCache()
        self.resolver = resolver if resolver is not None else NodePathResolver()
        self.namespaces = NamespaceResolver(self)

    def resolve(
        self, specifier: str, importer: str, settings: AnalysisSettings
    ) -> Optional[str]:
        return self.resolver.resolve(specifier, importer, settings.resolver)

    def get(self, specifier: str, context: LintContext) -> Optional[ExportMap]:
        """
        Return the export map of *specifier* as imported from
        `context.filename`, or None when it does not resolve to a file.
        """
        path = self.resolve(specifier, context.filename, context.settings)
        if path is None:
            logger.debug(
                "Module not resolved", specifier=specifier, importer=context.filename
            )
            return None
        return self.for_path(path, context.settings)

    def parse(self, path: str, settings: AnalysisSettings) -> ExportMap:
        """
        Build the export map of *path* from scratch. Never returns None;
        problems reading or parsing the file are reported in `errors`.
        """
        path = os.path.abspath(path)
        return self._build(path, settings, VisitingArena(), file_mtime(path))

    def for_path(
        self,
        path: str,
        settings: AnalysisSettings,
        visiting: Optional[VisitingArena] = None,
    ) -> Optional[ExportMap]:
        """
        Return the cached export map of *path*, rebuilding it when missing or
        stale. Returns None when the file does not exist or has an extension
        that is not analyzed.
        """
        path = os.path.abspath(path)
        if not settings.has_valid_extension(path):
            logger.debug("Skipping file with unsupported extension", path=path)
            return None

        mtime = file_mtime(path)
        if mtime is None:
            logger.debug("Module file does not exist", path=path)
            return None

        fingerprint = settings.fingerprint()
        entry = self.cache.lookup(path, fingerprint)
        if entry is not None:
            if self.cache.is_valid(entry):
                logger.debug("Export map cache hit", path=path)
                return entry.map
            logger.debug("Export map cache entry is stale", path=path)

        if visiting is None:
            visiting = VisitingArena()
        export_map = self._build(path, settings, visiting, mtime)
        if export_map.complete:
            self.cache.store(path, fingerprint, export_map)
        else:
            logger.debug(
                "Export map built from a partial cycle view; not cached",
                path=path,
                partial=sorted(p for p, _ in export_map.partial_sources),
            )
        return export_map

    def namespace_loader(self, path: str, settings: AnalysisSettings) -> NamespaceLoader:
        def _load() -> Optional[ExportMap]:
            return self.for_path(path, settings)

        return _load

    def _build(
        self,
        path: str,
        settings: AnalysisSettings,
        visiting: VisitingArena,
        mtime: Optional[int],
    ) -> ExportMap:
        parser_cls = SourceParserRegistry.get_parser(settings.parser)
        if parser_cls is None:
            raise ValueError(f"No parser registered for {settings.parser.value!r}")

        module = parser_cls(path, settings).parse()
        export_map, links = ExportMapBuilder(settings).build(module, mtime)
        if export_map.errors:
            logger.warning(
                "Module has parse errors",
                path=path,
                errors=[str(e) for e in export_map.errors[:5]],
            )

        key = (path, settings.fingerprint())
        visiting.enter(key, export_map)
        try:
            self.namespaces.flatten(export_map, links, settings, visiting)
        finally:
            visiting.leave(key)
        return export_map
