"""
Release name normalization, semver-style ordering and release selection.
"""

import re
from functools import cmp_to_key

from .config import HEAD_RELEASE

TAG_PREFIX = re.compile(r'^(?:v|release-)')


def normalize(tag: str) -> str:
    """Strip a leading 'v' or 'release-' from a tag name"""
    return TAG_PREFIX.sub('', tag, count=1)


def _to_int(chunk: str) -> int:
    try:
        return int(chunk)
    except ValueError:
        # suffixes such as '0-RC1' or 'beta'
        return 0


def compare(a: str, b: str) -> int:
    """
    Compare two release names component-wise.

    Missing components count as 0, as do components that are not integers,
    so the result is total over all inputs: -1, 0 or +1.
    """
    pa = normalize(a).split('.')
    pb = normalize(b).split('.')
    for i in range(max(len(pa), len(pb))):
        ai = _to_int(pa[i]) if i < len(pa) else 0
        bi = _to_int(pb[i]) if i < len(pb) else 0
        if ai != bi:
            return -1 if ai < bi else 1
    return 0


semver_key = cmp_to_key(compare)


def sort_releases(names) -> list[str]:
    """Sort release names ascending; ties keep their input order"""
    return sorted(names, key=semver_key)


def select_releases(tracker_versions, forge_tags) -> list[str]:
    """
    Intersect forge tags with issue-tracker versions by normalized name.

    Returns the retained tags sorted ascending by semver, or the synthetic
    ['HEAD'] release when nothing matches. Tags that normalize to the same
    name (e.g. 'v1.2.0' and 'release-1.2.0') are kept once, first one wins.
    """
    wanted = {normalize(v) for v in tracker_versions if v}
    retained = {}
    for tag in forge_tags:
        norm = normalize(tag)
        if norm in wanted and norm not in retained:
            retained[norm] = tag
    releases = sort_releases(retained.values())
    return releases or [HEAD_RELEASE]


def is_after(version: str, cut: str) -> bool:
    """True when version is strictly greater than the release cut"""
    return compare(version, cut) > 0
