"""
On-disk cache of a project's BuggyInfo.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Callable

from .history import BuggyInfo


def cache_path(cache_dir, project_key: str) -> Path:
    return Path(cache_dir) / f'{project_key}_buggy_info_cache.json'


def load_buggy_info(cache_dir, project_key: str) -> BuggyInfo | None:
    """Cached BuggyInfo, or None when missing or unreadable"""
    path = cache_path(cache_dir, project_key)
    if not path.exists():
        return None
    try:
        with open(path, encoding='utf-8') as f:
            return BuggyInfo.from_dict(json.load(f))
    except (OSError, ValueError, TypeError, AttributeError) as e:
        print(f"  WARNING: ignoring unreadable cache {path}: {e}", flush=True)
        return None


def write_json_atomic(path, data):
    """Write JSON next to its destination, then rename it into place"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def save_buggy_info(cache_dir, project_key: str, info: BuggyInfo) -> bool:
    """Persist BuggyInfo; returns False (after a warning) when the write fails"""
    path = cache_path(cache_dir, project_key)
    try:
        write_json_atomic(path, info.to_dict())
    except OSError as e:
        print(f"  WARNING: could not write cache {path}: {e}", flush=True)
        return False
    print(f"  Cached buggy info: {path}", flush=True)
    return True


def compute_or_load(cache_dir, project_key: str, compute: Callable[[], BuggyInfo]) -> tuple[BuggyInfo, bool]:
    """
    Return the cached BuggyInfo or compute it and try to cache the result.

    The flag is True when the cache file holds the returned BuggyInfo.
    """
    cached = load_buggy_info(cache_dir, project_key)
    if cached is not None:
        print(f"  Loaded buggy info from cache ({len(cached.buggy_methods)} buggy methods)", flush=True)
        return cached, True
    info = compute()
    return info, save_buggy_info(cache_dir, project_key, info)
