from typing import Optional

import tree_sitter as ts
import tree_sitter_javascript as tsjs

from exportmap.models import ParserKind
from exportmap.parsers import AbstractSourceParser

JS_LANGUAGE = ts.Language(tsjs.language())
_parser: Optional[ts.Parser] = None


def _get_js_parser() -> ts.Parser:
    global _parser
    if _parser is None:
        _parser = ts.Parser(JS_LANGUAGE)
    return _parser


class JavaScriptSourceParser(AbstractSourceParser):
    """
    ECMAScript modules, including JSX and class fields. Every export form is
    covered by the shared handlers in `AbstractSourceParser`.
    """

    kinds = [ParserKind.JAVASCRIPT]

    def _get_parser(self) -> ts.Parser:
        return _get_js_parser()
