from exportmap.cache import CacheEntry, ExportMapCache
from exportmap.exports import ExportEntry, ExportMap
from exportmap.loader import ExportMapLoader
from exportmap.models import DocBlock, DocStyle, DocTag, ParseDiagnostic, ParserKind
from exportmap.resolvers import NodePathResolver, PathResolver
from exportmap.settings import AnalysisSettings, LintContext, ParserOptions, load_settings

__all__ = [
    "AnalysisSettings",
    "CacheEntry",
    "DocBlock",
    "DocStyle",
    "DocTag",
    "ExportEntry",
    "ExportMap",
    "ExportMapCache",
    "ExportMapLoader",
    "LintContext",
    "NodePathResolver",
    "ParseDiagnostic",
    "ParserKind",
    "ParserOptions",
    "PathResolver",
    "load_settings",
]
