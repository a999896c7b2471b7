import json
import os
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from exportmap.logger import logger

NODE_BUILTIN_MODULES = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "sys",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)


class PathResolver(ABC):
    """
    Maps a module specifier, as written in an import, to an absolute file
    path. Returns None when the specifier is unresolvable (missing file,
    built-in module, ...).
    """

    @abstractmethod
    def resolve(
        self, specifier: str, importer: str, settings: dict[str, Any]
    ) -> Optional[str]: ...


class NodePathResolver(PathResolver):
    """
    Node.js style resolution: relative and absolute paths with extension and
    index probing, bare specifiers looked up in `node_modules` directories
    walking up from the importing file.

    Recognized settings: ``extensions``, ``module_directories``, ``paths``.
    """

    DEFAULT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".json")
    DEFAULT_MODULE_DIRECTORIES = ("node_modules",)

    def resolve(
        self, specifier: str, importer: str, settings: dict[str, Any]
    ) -> Optional[str]:
        if not specifier:
            return None
        if self.is_builtin(specifier):
            return None

        extensions: Sequence[str] = settings.get("extensions") or self.DEFAULT_EXTENSIONS
        base_dir = os.path.dirname(os.path.abspath(importer))

        if specifier.startswith(("./", "../")) or specifier in (".", ".."):
            return self._resolve_path(os.path.join(base_dir, specifier), extensions)
        if os.path.isabs(specifier):
            return self._resolve_path(specifier, extensions)

        for root in self._search_roots(base_dir, settings):
            found = self._resolve_path(os.path.join(root, specifier), extensions)
            if found is not None:
                return found

        logger.debug("Unable to resolve module", specifier=specifier, importer=importer)
        return None

    @staticmethod
    def is_builtin(specifier: str) -> bool:
        if specifier.startswith("node:"):
            return True
        return specifier.split("/", 1)[0] in NODE_BUILTIN_MODULES

    def _search_roots(self, base_dir: str, settings: dict[str, Any]) -> List[str]:
        module_dirs = settings.get("module_directories") or self.DEFAULT_MODULE_DIRECTORIES
        roots: List[str] = []
        cur = base_dir
        while True:
            for md in module_dirs:
                roots.append(os.path.join(cur, md))
            parent = os.path.dirname(cur)
            if parent == cur:
                break
            cur = parent
        roots.extend(os.path.abspath(p) for p in settings.get("paths") or [])
        return roots

    def _resolve_path(self, candidate: str, extensions: Sequence[str]) -> Optional[str]:
        candidate = os.path.normpath(candidate)
        found = self._resolve_file(candidate, extensions)
        if found is None and os.path.isdir(candidate):
            found = self._resolve_directory(candidate, extensions)
        return found

    def _resolve_file(self, candidate: str, extensions: Sequence[str]) -> Optional[str]:
        if os.path.isfile(candidate):
            return os.path.abspath(candidate)
        for ext in extensions:
            path = f"{candidate}{ext}"
            if os.path.isfile(path):
                return os.path.abspath(path)
        return None

    def _resolve_directory(self, directory: str, extensions: Sequence[str]) -> Optional[str]:
        manifest = os.path.join(directory, "package.json")
        if os.path.isfile(manifest):
            try:
                with open(manifest, "r", encoding="utf-8") as f:
                    pkg = json.load(f)
            except (OSError, ValueError) as exc:
                logger.warning("Unreadable package.json", path=manifest, error=str(exc))
                pkg = {}
            for field_name in ("module", "jsnext:main", "main"):
                entry = pkg.get(field_name) if isinstance(pkg, dict) else None
                if isinstance(entry, str) and entry:
                    found = self._resolve_file(
                        os.path.normpath(os.path.join(directory, entry)), extensions
                    )
                    if found is None and os.path.isdir(os.path.join(directory, entry)):
                        found = self._resolve_file(
                            os.path.join(directory, entry, "index"), extensions
                        )
                    if found is not None:
                        return found
        return self._resolve_file(os.path.join(directory, "index"), extensions)
