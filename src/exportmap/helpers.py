import hashlib
import os
from typing import Optional, Union


def compute_symbol_hash(symbol: Union[str, bytes]) -> str:
    """
    Return the SHA-256 hex-digest of *symbol*.
    Accepts either ``str`` (automatically UTF-8-encoded) or raw ``bytes``.
    """
    sha256 = hashlib.sha256()
    if isinstance(symbol, str):
        symbol = symbol.encode("utf-8")
    sha256.update(symbol)
    return sha256.hexdigest()


def file_mtime(abs_path: str) -> Optional[int]:
    """
    Return the modification time of *abs_path* truncated to whole seconds,
    or None when the file does not exist.
    """
    try:
        return int(os.stat(abs_path).st_mtime)
    except FileNotFoundError:
        return None


def strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"', "`"):
        return text[1:-1]
    return text
