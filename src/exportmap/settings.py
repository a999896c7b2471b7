import json
import os
from typing import Any, List, Optional

import pathspec
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from exportmap.helpers import compute_symbol_hash
from exportmap.models import DocStyle, ParserKind, SourceType


class ParserOptions(BaseModel):
    """Options forwarded to the syntax parser back-end."""

    source_type: SourceType = Field(
        default=SourceType.MODULE,
        description=(
            'Either "module" or "script". Scripts may not contain import or '
            "export statements; any found are reported as parse errors."
        ),
    )
    attach_comment: bool = Field(
        default=True,
        description=(
            "If True, leading comments are associated with declarations so "
            "documentation metadata can be extracted."
        ),
    )


def _get_default_extensions() -> List[str]:
    return [".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".mts", ".cts"]


class AnalysisSettings(BaseSettings):
    """Parsing and resolution settings for one analysis configuration."""

    model_config = SettingsConfigDict(env_prefix="EXPORTMAP_", env_nested_delimiter="__")

    parser: ParserKind = Field(
        default=ParserKind.JAVASCRIPT,
        description='Parser back-end: "javascript", "typescript" or "tsx".',
    )
    parser_options: ParserOptions = Field(
        default_factory=ParserOptions,
        description="A `ParserOptions` object with parser-specific flags.",
    )
    resolver: dict[str, Any] = Field(
        default_factory=dict,
        description=(
            "Opaque settings handed to the path resolver. The bundled Node "
            'resolver understands "extensions" and "module_directories".'
        ),
    )
    ignore: List[str] = Field(
        default_factory=list,
        description=(
            "Gitignore-style patterns for files whose unresolved imports "
            "should not be reported by callers."
        ),
    )
    extensions: List[str] = Field(
        default_factory=_get_default_extensions,
        description="File extensions that are analyzed; other files yield no export map.",
    )
    doc_style: List[DocStyle] = Field(
        default_factory=lambda: [DocStyle.JSDOC],
        description='Documentation comment styles to recognize ("jsdoc", "tomdoc").',
    )

    def fingerprint(self) -> str:
        """
        Return a digest of everything that influences how a file is parsed
        and how its references are resolved. Two settings objects with the
        same fingerprint may share cached export maps.
        """
        payload = {
            "parser": self.parser.value,
            "parser_options": self.parser_options.model_dump(mode="json"),
            "resolver": self.resolver,
            "doc_style": [s.value for s in self.doc_style],
            "extensions": sorted(e.lower() for e in self.extensions),
        }
        return compute_symbol_hash(
            json.dumps(payload, sort_keys=True, default=str)
        )

    def has_valid_extension(self, path: str) -> bool:
        return os.path.splitext(path)[1].lower() in self.extensions

    def is_ignored(self, path: str) -> bool:
        if not self.ignore:
            return False
        spec = pathspec.PathSpec.from_lines("gitwildmatch", self.ignore)
        return spec.match_file(path)


class LintContext(BaseModel):
    """The file being linted together with the settings it is linted with."""

    filename: str
    settings: AnalysisSettings = Field(default_factory=AnalysisSettings)


def load_settings(env_prefix: Optional[str] = None, **kwargs) -> AnalysisSettings:
    config_dict = SettingsConfigDict(
        env_prefix=env_prefix if env_prefix is not None else "EXPORTMAP_",
        env_nested_delimiter="__",
    )

    class Settings(AnalysisSettings):
        model_config = config_dict

    return Settings(**kwargs)
