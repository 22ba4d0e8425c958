"""
Path handling and store caching for the MCP server.

Stores are cached per resolved path and invalidated when the file's
modification time changes.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import logging

from .constants import CACHE_MAX_SIZE, FORMAT_EXTENSIONS
from .document import MuiDBFile
from .model import OpenMode

logger = logging.getLogger("muidb-server")


@dataclass
class CachedStore:
    """Cache entry for a store with modification time tracking."""
    store: MuiDBFile
    mtime: Optional[float]


# LRU-style cache with size limit and mtime validation
_store_cache: Dict[str, CachedStore] = {}

# Directories used to resolve relative paths
_search_directories: List[Path] = []


def set_search_directories(directories: Iterable[Path]):
    """Set the directories relative paths are resolved against."""
    _search_directories[:] = [Path(d) for d in directories]
    logger.info(f"Search directories: {', '.join(str(d) for d in _search_directories) or '(cwd)'}")


def get_search_directories() -> List[Path]:
    return list(_search_directories) or [Path.cwd()]


def validate_file_extension(file_path: str, file_format: str = 'muidb') -> None:
    """
    Validate that the file has an allowed extension for its format.

    Args:
        file_path: The file path to validate
        file_format: One of 'muidb', 'resx', 'xliff'

    Raises:
        ValueError: If the format is unknown or the extension is not allowed
    """
    allowed = FORMAT_EXTENSIONS.get(file_format)
    if allowed is None:
        raise ValueError(
            f"Unknown format: '{file_format}' (expected one of: {', '.join(FORMAT_EXTENSIONS)})"
        )
    suffix = Path(file_path).suffix.lower()
    if suffix not in allowed:
        raise ValueError(
            f"Invalid file type: '{suffix}'. "
            f"{file_format} files must end with {', '.join(sorted(allowed))}"
        )


def resolve_file_path(file_path: str, must_exist: bool = True) -> Path:
    """
    Resolve a file path against the search directories.

    Absolute paths are used as they are. Relative paths are looked up in
    each search directory; if none contains the file, the first search
    directory is used.

    Raises:
        FileNotFoundError: If must_exist is set and the file can not be found
    """
    path = Path(file_path).expanduser()
    if path.is_absolute():
        candidates = [path]
    else:
        candidates = [directory / path for directory in get_search_directories()]

    for candidate in candidates:
        if candidate.is_file():
            resolved = candidate.resolve()
            logger.debug(f"Resolved {file_path} -> {resolved}")
            return resolved

    if must_exist:
        raise FileNotFoundError(f"File not found: {file_path}")
    return candidates[0].resolve()


def get_store(file_path: str, create: bool = False) -> MuiDBFile:
    """
    Get or create a store instance for the given MuiDB file.

    Uses LRU-style caching with modification time validation to ensure
    fresh data and bounded memory usage.

    Args:
        file_path: Path to the MuiDB file
        create: Start an empty document if the file does not exist

    Returns:
        MuiDBFile instance
    """
    validate_file_extension(file_path, 'muidb')
    path = resolve_file_path(file_path, must_exist=not create)
    normalized_path = str(path)

    current_mtime = path.stat().st_mtime if path.exists() else None

    if normalized_path in _store_cache:
        cached = _store_cache[normalized_path]
        if cached.mtime == current_mtime:
            # Move to end for LRU behavior (most recently used)
            _store_cache.pop(normalized_path)
            _store_cache[normalized_path] = cached
            return cached.store
        else:
            logger.debug(f"Cache invalidated for {normalized_path} (file modified)")
            _store_cache.pop(normalized_path)

    # Evict oldest entry if cache is full
    if len(_store_cache) >= CACHE_MAX_SIZE:
        oldest_key = next(iter(_store_cache))
        logger.debug(f"Evicting oldest cache entry: {oldest_key}")
        _store_cache.pop(oldest_key)

    mode = OpenMode.CREATE_IF_MISSING if create else OpenMode.OPEN_EXISTING
    store = MuiDBFile(normalized_path, mode)
    _store_cache[normalized_path] = CachedStore(store=store, mtime=current_mtime)

    return store


def is_store_cached(file_path: str) -> bool:
    """Check whether a store for the given path is held in the cache."""
    return str(resolve_file_path(file_path, must_exist=False)) in _store_cache


def clear_store_cache(file_path: Optional[str] = None):
    """
    Clear store cache for a specific file or all files.

    Args:
        file_path: Optional specific file path. If None, clears all cache.
    """
    if file_path:
        normalized_path = str(resolve_file_path(file_path, must_exist=False))
        _store_cache.pop(normalized_path, None)
    else:
        _store_cache.clear()
