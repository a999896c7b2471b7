from typing import TYPE_CHECKING, Dict, List, Optional

from exportmap.builder import LinkKind, ModuleLink
from exportmap.exports import ExportMap, ModuleKey
from exportmap.logger import logger
from exportmap.settings import AnalysisSettings

if TYPE_CHECKING:
    from exportmap.loader import ExportMapLoader


class VisitingArena:
    """
    Modules currently under construction within one top-level request,
    keyed by (path, settings fingerprint). Created by the loader for every
    outer `get`/`parse` call and threaded through the recursion; never shared
    between requests.
    """

    def __init__(self) -> None:
        self._maps: Dict[ModuleKey, ExportMap] = {}

    def enter(self, key: ModuleKey, export_map: ExportMap) -> None:
        self._maps[key] = export_map

    def leave(self, key: ModuleKey) -> None:
        self._maps.pop(key, None)

    def get(self, key: ModuleKey) -> Optional[ExportMap]:
        return self._maps.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._maps

    def __len__(self) -> int:
        return len(self._maps)


class NamespaceResolver:
    """
    Completes a freshly built export map by following its links into other
    modules: flattens `export * from` targets, borrows metadata for named
    re-exports and attaches namespace loaders.
    """

    def __init__(self, loader: "ExportMapLoader") -> None:
        self.loader = loader

    def flatten(
        self,
        export_map: ExportMap,
        links: List[ModuleLink],
        settings: AnalysisSettings,
        visiting: VisitingArena,
    ) -> ExportMap:
        fingerprint = settings.fingerprint()
        key = (export_map.path, fingerprint)

        for specifier in export_map.imports:
            export_map.imports[specifier] = self.loader.resolve(
                specifier, export_map.path, settings
            )

        for link in links:
            target_path = export_map.imports.get(link.source)
            if link.kind == LinkKind.NAMESPACE:
                self._attach_namespace(link, target_path, settings)
                continue
            if target_path is None:
                # unresolvable target: explicitly re-exported names stay declared
                continue
            if link.kind == LinkKind.REEXPORT:
                self._link_reexport(export_map, key, link, target_path, settings, visiting)
            elif link.kind == LinkKind.STAR:
                target = self._target_map(export_map, key, target_path, settings, visiting)
                if target is not None:
                    self._merge(export_map, target)

        return export_map

    def _target_map(
        self,
        export_map: ExportMap,
        key: ModuleKey,
        target_path: str,
        settings: AnalysisSettings,
        visiting: VisitingArena,
    ) -> Optional[ExportMap]:
        target_key = (target_path, key[1])
        if target_key == key:
            return export_map
        if target_key in visiting:
            # cycle: use whatever the unfinished module has so far
            logger.debug(
                "Cyclic module reference", path=export_map.path, target=target_path
            )
            export_map.partial_sources.add(target_key)
            return visiting.get(target_key)

        target = self.loader.for_path(target_path, settings, visiting)
        if target is not None:
            export_map.partial_sources.update(target.partial_sources - {key})
        return target

    def _merge(self, export_map: ExportMap, target: ExportMap) -> None:
        if target is export_map:
            return
        for name, entry in target.names.items():
            # `export *` never forwards the default export
            if name == "default" or name in export_map.names:
                continue
            export_map.names[name] = entry.via(export_map.path)

    def _link_reexport(
        self,
        export_map: ExportMap,
        key: ModuleKey,
        link: ModuleLink,
        target_path: str,
        settings: AnalysisSettings,
        visiting: VisitingArena,
    ) -> None:
        entry = link.entry
        if entry is None or not link.local:
            return
        if (target_path, key[1]) == key and link.local == entry.name:
            # `export { x } from "./self"` names nothing new
            return
        target = self._target_map(export_map, key, target_path, settings, visiting)
        if target is None:
            return
        remote = target.get(link.local)
        if remote is None or remote is entry:
            entry.found = False
            entry.trace = [export_map.path, target.path]
            return
        if entry.doc is None:
            entry.doc = remote.doc
        entry.namespace_loader = remote.namespace_loader
        entry.trace = [export_map.path, *remote.trace]
        entry.found = remote.found

    def _attach_namespace(
        self, link: ModuleLink, target_path: Optional[str], settings: AnalysisSettings
    ) -> None:
        if link.entry is None or target_path is None:
            return
        if not settings.has_valid_extension(target_path):
            return
        link.entry.namespace_loader = self.loader.namespace_loader(target_path, settings)
