"""
Diff-to-method attribution: which methods of a fix commit were touched, by
how much, and whether their bodies really changed.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime

from .models import DiffEntry, Hunk
from .parsing import MethodIndex, index_methods, method_id, normalize_body

HUNK_HEADER = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@')

CONDITION_MARKERS = ('if', 'case', 'switch')


# =============================================================================
# UNIFIED DIFF -> EDIT HUNKS
# =============================================================================

def parse_unified_diff(diff_text: str) -> list[Hunk]:
    """
    Split a unified diff into edit hunks.

    Each maximal run of '-'/'+' lines inside an '@@' block becomes one Hunk
    with 0-based half-open line ranges; context lines separate runs.
    """
    hunks = []
    if not diff_text:
        return hunks

    old_line = new_line = 0
    in_block = False
    current = None

    def close():
        nonlocal current
        if current is not None:
            hunks.append(Hunk(*current))
            current = None

    # only \n (optionally after \r) ends a line; Java text may hold \x0c or \u2028
    for line in _split_lines(diff_text):
        header = HUNK_HEADER.match(line)
        if header:
            close()
            old_start, old_len, new_start, new_len = header.groups()
            # a zero-length side names the line *before* the change
            old_line = int(old_start) - 1 if old_len != '0' else int(old_start)
            new_line = int(new_start) - 1 if new_len != '0' else int(new_start)
            in_block = True
            continue
        if not in_block or line.startswith('\\'):
            continue
        tag = line[:1]
        if tag == '-':
            if current is None:
                current = [old_line, old_line, new_line, new_line]
            old_line += 1
            current[1] = old_line
        elif tag == '+':
            if current is None:
                current = [old_line, old_line, new_line, new_line]
            new_line += 1
            current[3] = new_line
        else:
            close()
            old_line += 1
            new_line += 1
    close()
    return hunks


# =============================================================================
# ATTRIBUTION
# =============================================================================

@dataclass
class Attribution:
    """One diff hunk intersecting one method of the new revision"""
    method_id: str
    added: int
    deleted: int
    churn: int
    author: str
    timestamp: datetime | None = None
    else_added: int = 0
    else_deleted: int = 0
    cond_changes: int = 0
    added_lines: list[str] = field(default_factory=list, repr=False)
    deleted_lines: list[str] = field(default_factory=list, repr=False)


@dataclass
class EntryResult:
    """Everything one diff entry contributes to the history of its methods"""
    attributions: list[Attribution] = field(default_factory=list)
    changed_methods: set[str] = field(default_factory=set)
    parse_errors: list[str] = field(default_factory=list)


def skip_reason(entry: DiffEntry) -> str | None:
    """Why an entry takes no part in attribution, or None when it does"""
    if entry.change_type == 'RENAME':
        return 'renamed'
    if not entry.new_path or entry.change_type == 'DELETE':
        return 'deleted'
    path = entry.new_path.replace('\\', '/')
    if not path.endswith('.java'):
        return 'not java'
    if 'test/' in path or path.endswith('Test.java'):
        return 'test'
    if entry.is_added:
        return 'added'
    return None


def _split_lines(source: str | None) -> list[str]:
    if not source:
        return []
    return re.split(r'\r?\n', source)


def _slice(lines: list[str], begin: int, end: int) -> list[str]:
    return lines[max(begin, 0):min(end, len(lines))]


def attribute_entry(entry: DiffEntry, author: str, timestamp: datetime = None,
                    old_index: MethodIndex = None, new_index: MethodIndex = None) -> EntryResult:
    """
    Attribute the hunks of one diff entry to the methods they touch.

    A method of the new revision takes part only when the old revision has a
    method with the very same signature; other methods are treated as new.
    Paired methods whose normalized bodies differ are reported in
    changed_methods.
    """
    result = EntryResult()
    if skip_reason(entry):
        return result

    if new_index is None:
        new_index = index_methods(entry.new_source)
    if old_index is None:
        old_index = index_methods(entry.old_source)
    for idx in (old_index, new_index):
        if not idx.ok:
            result.parse_errors.append(f'{entry.new_path}: {idx.error}')

    new_lines = _split_lines(entry.new_source)
    old_lines = _split_lines(entry.old_source)

    for new_method in new_index:
        old_method = old_index.find(new_method.signature)
        if old_method is None:
            continue
        mid = method_id(entry.new_path, new_method.signature)

        for hunk in entry.hunks:
            if not new_method.contains_edit(hunk.new_begin, hunk.new_end):
                continue
            added_lines = _slice(new_lines, hunk.new_begin, hunk.new_end)
            deleted_lines = _slice(old_lines, hunk.old_begin, hunk.old_end)
            result.attributions.append(Attribution(
                method_id=mid,
                added=hunk.added,
                deleted=hunk.deleted,
                churn=hunk.churn,
                author=author,
                timestamp=timestamp,
                else_added=sum(1 for line in added_lines if 'else' in line),
                else_deleted=sum(1 for line in deleted_lines if 'else' in line),
                cond_changes=sum(1 for line in added_lines
                                 if any(marker in line for marker in CONDITION_MARKERS)),
                added_lines=added_lines,
                deleted_lines=deleted_lines,
            ))

        if normalize_body(old_method.body) != normalize_body(new_method.body):
            result.changed_methods.add(mid)

    return result
