"""
Linking issue-tracker bug tickets to the commits that fix them.
"""

import re
from collections import defaultdict
from typing import Iterable, Iterator

from .config import BUG_ISSUE_TYPE, BUG_RESOLUTION, BUG_STATUSES
from .models import Ticket


def _lower(value) -> str:
    return (value or '').strip().lower()


def is_bug_fix_ticket(ticket: Ticket) -> bool:
    """A fixed and closed (or resolved) bug with a usable key"""
    return (
        bool(ticket.key)
        and _lower(ticket.issue_type) == BUG_ISSUE_TYPE
        and _lower(ticket.resolution) == BUG_RESOLUTION
        and _lower(ticket.status) in BUG_STATUSES
    )


def filter_bug_tickets(tickets: Iterable[Ticket]) -> set[str]:
    """Upper-cased keys of the tickets that count as bug fixes"""
    return {t.key.upper() for t in tickets if is_bug_fix_ticket(t)}


def ticket_pattern(project_key: str) -> re.Pattern:
    """'{KEY}-<digits>', case-insensitive; greedy digits so PRJ-100 never reads as PRJ-10"""
    return re.compile(re.escape(project_key) + r'-\d+', re.IGNORECASE)


def find_ticket_keys(message: str, project_key: str, pattern: re.Pattern = None) -> list[str]:
    """All ticket keys mentioned in a commit message, upper-cased, in order of appearance"""
    pattern = pattern or ticket_pattern(project_key)
    seen = []
    for match in pattern.findall(message or ''):
        key = match.upper()
        if key not in seen:
            seen.append(key)
    return seen


class FixCommitLinker:
    """
    Streams the commits whose message references a valid bug ticket.

    Each commit is yielded at most once, together with the bug ticket keys
    it references, however many tickets the message names.
    """

    def __init__(self, tickets: Iterable[Ticket], project_key: str):
        self.project_key = project_key
        self.bug_keys = filter_bug_tickets(tickets)
        self.pattern = ticket_pattern(project_key)
        self.stats = defaultdict(int)

    def match(self, message: str) -> list[str]:
        """Referenced keys that belong to the bug ticket set"""
        return [k for k in find_ticket_keys(message, self.project_key, self.pattern) if k in self.bug_keys]

    def link(self, commits: Iterable) -> Iterator[tuple[object, list[str]]]:
        for commit in commits:
            self.stats['scanned'] += 1
            keys = self.match(commit.message)
            if not keys:
                continue
            self.stats['fix_commits'] += 1
            yield commit, keys

    def get_stats(self) -> dict:
        return {
            'bug_tickets': len(self.bug_keys),
            'scanned': self.stats['scanned'],
            'fix_commits': self.stats['fix_commits'],
        }


def link_fix_commits(commits: Iterable, tickets: Iterable[Ticket], project_key: str) -> Iterator[tuple[object, list[str]]]:
    """Convenience wrapper around FixCommitLinker.link"""
    return FixCommitLinker(tickets, project_key).link(commits)
