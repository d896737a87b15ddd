"""
Domain records shared by the fetchers, the miner and the dataset builder.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime

# Blob id of a missing file side (added or deleted file)
ZERO_ID = '0' * 40


def _parse_date(value) -> date | None:
    """Accept date objects, 'YYYY-MM-DD' or full ISO timestamps"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _format_date(value: date | None) -> str | None:
    return value.isoformat() if value else None


# =============================================================================
# ISSUE TRACKER
# =============================================================================

@dataclass
class Version:
    """A release as known by the issue tracker"""
    name: str
    release_date: date | None = None
    id: int = 0

    def to_dict(self) -> dict:
        return {'id': self.id, 'name': self.name, 'releaseDate': _format_date(self.release_date)}

    @classmethod
    def from_dict(cls, data: dict) -> 'Version':
        return cls(
            name=data.get('name'),
            release_date=_parse_date(data.get('releaseDate')),
            id=int(data.get('id') or 0),
        )


def order_versions(versions: list[Version], drop_undated: bool = False) -> list[Version]:
    """
    Sort versions by release date then name and assign ids 1..n.

    Versions without a release date go last, ordered by name, unless
    drop_undated is set.
    """
    dated = sorted((v for v in versions if v.release_date), key=lambda v: (v.release_date, v.name))
    undated = [] if drop_undated else sorted((v for v in versions if not v.release_date), key=lambda v: v.name)
    ordered = dated + undated
    for i, v in enumerate(ordered, 1):
        v.id = i
    return ordered


@dataclass
class Ticket:
    """An issue-tracker ticket; immutable once fetched"""
    key: str
    issue_type: str | None = None
    resolution: str | None = None
    status: str | None = None
    priority: str | None = None
    reporter: str | None = None
    assignee: str | None = None
    summary: str | None = None
    created: date | None = None
    resolution_date: date | None = None
    updated: date | None = None
    affected_versions: list[Version] = field(default_factory=list)
    fix_versions: list[Version] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary"""
        d = asdict(self)
        for key in ('created', 'resolution_date', 'updated'):
            d[key] = _format_date(getattr(self, key))
        d['affected_versions'] = [v.to_dict() for v in self.affected_versions]
        d['fix_versions'] = [v.to_dict() for v in self.fix_versions]
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'Ticket':
        return cls(
            key=data.get('key') or '',
            issue_type=data.get('issue_type'),
            resolution=data.get('resolution'),
            status=data.get('status'),
            priority=data.get('priority'),
            reporter=data.get('reporter'),
            assignee=data.get('assignee'),
            summary=data.get('summary'),
            created=_parse_date(data.get('created')),
            resolution_date=_parse_date(data.get('resolution_date')),
            updated=_parse_date(data.get('updated')),
            affected_versions=[Version.from_dict(v) for v in data.get('affected_versions') or []],
            fix_versions=[Version.from_dict(v) for v in data.get('fix_versions') or []],
            labels=list(data.get('labels') or []),
            components=list(data.get('components') or []),
        )


# =============================================================================
# VERSION CONTROL
# =============================================================================

@dataclass
class ReleaseTag:
    """A git tag with the commit it points to (annotated tags peeled)"""
    name: str
    commit_hash: str


@dataclass
class Release:
    """A release with its commit count; the commits point back by release_id"""
    id: int
    name: str
    release_date: date | None = None
    commit_count: int = 0


@dataclass
class Commit:
    hash: str
    author: str
    timestamp: datetime
    message: str = ''
    release_id: int = 0


def assign_commits_to_releases(commits: list[Commit], releases: list[Release]) -> list[Release]:
    """
    Attach every commit to the first release dated on or after it.

    Releases are expected in ascending date order. Commits newer than the
    last release keep release_id 0. Releases left without commits are
    dropped and the survivors renumbered from 1; commit ids follow.
    """
    counts = {id(r): 0 for r in releases}
    owner = {}
    for c in commits:
        day = c.timestamp.date()
        for r in releases:
            if r.release_date and day <= r.release_date:
                counts[id(r)] += 1
                owner[c.hash] = r
                break

    kept = [r for r in releases if counts[id(r)]]
    for i, r in enumerate(kept, 1):
        r.id = i
        r.commit_count = counts[id(r)]
    for c in commits:
        r = owner.get(c.hash)
        c.release_id = r.id if r else 0
    return kept


@dataclass
class Hunk:
    """
    One edit region of a diff.

    Lines are 0-based and half-open: [old_begin, old_end) were replaced by
    [new_begin, new_end). A pure insertion has old_begin == old_end.
    """
    old_begin: int
    old_end: int
    new_begin: int
    new_end: int

    @property
    def added(self) -> int:
        return self.new_end - self.new_begin

    @property
    def deleted(self) -> int:
        return self.old_end - self.old_begin

    @property
    def churn(self) -> int:
        return self.added + self.deleted


@dataclass
class DiffEntry:
    """A single file change between a commit and its first parent"""
    change_type: str
    old_path: str | None
    new_path: str | None
    old_source: str | None = None
    new_source: str | None = None
    hunks: list[Hunk] = field(default_factory=list)
    old_id: str | None = None     # blob ids, when the source of the entry knows them
    new_id: str | None = None

    @property
    def is_added(self) -> bool:
        return self.change_type == 'ADD' or self.old_id == ZERO_ID or self.old_source is None


@dataclass
class ChangeCommit:
    """
    A commit as consumed by the history aggregator.

    entries is a zero-argument callable so diffs are only computed for
    commits that turn out to be bug fixes.
    """
    hash: str
    author: str
    timestamp: datetime | None
    message: str
    parents: list[str] = field(default_factory=list)
    entries: object = None

    def diff_entries(self) -> list[DiffEntry]:
        if self.entries is None:
            return []
        if callable(self.entries):
            return list(self.entries())
        return list(self.entries)
