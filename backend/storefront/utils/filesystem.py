import logging
import os
from typing import Iterable

log = logging.getLogger("storefront.files")


def ensure_directory(path: str) -> str:
    os.makedirs(path, exist_ok=True)
    return path


def ensure_directories(paths: Iterable[str]):
    for path in paths:
        ensure_directory(path)


def remove_quietly(path: str) -> bool:
    """
    Best-effort unlink. Returns True when the file was removed; any OS error
    (missing file, permissions) is logged and swallowed.
    """
    try:
        os.remove(path)
        return True
    except OSError as e:
        log.warning(f"could not remove {path!r}: {e}")
        return False
