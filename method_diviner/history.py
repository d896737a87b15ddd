"""
Per-method change history over the bug-fix commits of a project.

The aggregator feeds every eligible diff entry of every fix commit through
the attributor, grows one accumulator per method id and, once all commits
are in, derives the averages and maxima stored in BuggyInfo.
"""

from collections import defaultdict
from dataclasses import dataclass, field

from .diffing import Attribution, attribute_entry, skip_reason
from .models import ChangeCommit
from .parsing import normalize_method_id


# =============================================================================
# ACCUMULATION
# =============================================================================

@dataclass
class ChangeAccumulator:
    """Running totals for one method id; every update is commutative"""
    churn: int = 0
    churns: list[int] = field(default_factory=list)
    adds: list[int] = field(default_factory=list)
    deletes: list[int] = field(default_factory=list)
    authors: set[str] = field(default_factory=set)
    commit_count: int = 0
    else_added: int = 0
    else_deleted: int = 0
    cond_changes: int = 0

    def add(self, a: Attribution):
        self.churn += a.churn
        self.churns.append(a.churn)
        self.adds.append(a.added)
        self.deletes.append(a.deleted)
        if a.author:
            self.authors.add(a.author)
        self.else_added += a.else_added
        self.else_deleted += a.else_deleted
        self.cond_changes += a.cond_changes

    def finalize(self) -> 'MethodMetrics':
        return MethodMetrics(
            churn=self.churn,
            avg_churn=_mean(self.churns),
            max_churn=max(self.churns, default=0),
            cond_changes=self.cond_changes,
            history_count=self.commit_count,
            author_count=len(self.authors),
            else_added=self.else_added,
            else_deleted=self.else_deleted,
            avg_added=_mean(self.adds),
            max_added=max(self.adds, default=0),
            avg_deleted=_mean(self.deletes),
            max_deleted=max(self.deletes, default=0),
        )


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


# =============================================================================
# DERIVED METRICS
# =============================================================================

@dataclass
class MethodMetrics:
    """Aggregated change metrics of one method; all zero for untouched methods"""
    # structural
    churn: int = 0
    avg_churn: float = 0.0
    max_churn: int = 0
    cond_changes: int = 0
    # complexity / history
    history_count: int = 0
    author_count: int = 0
    # else
    else_added: int = 0
    else_deleted: int = 0
    # add / delete
    avg_added: float = 0.0
    max_added: int = 0
    avg_deleted: float = 0.0
    max_deleted: int = 0

    def to_dict(self) -> dict:
        return {
            'structural': {
                'churn': self.churn,
                'avgChurn': self.avg_churn,
                'maxChurn': self.max_churn,
                'condChanges': self.cond_changes,
            },
            'complexity': {
                'historyCount': self.history_count,
                'authorCount': self.author_count,
            },
            'elseMetrics': {
                'elseAdded': self.else_added,
                'elseDeleted': self.else_deleted,
            },
            'addDelete': {
                'avgAdded': self.avg_added,
                'maxAdded': self.max_added,
                'avgDeleted': self.avg_deleted,
                'maxDeleted': self.max_deleted,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MethodMetrics':
        s = data.get('structural') or {}
        c = data.get('complexity') or {}
        e = data.get('elseMetrics') or {}
        ad = data.get('addDelete') or {}
        return cls(
            churn=int(s.get('churn', 0)),
            avg_churn=float(s.get('avgChurn', 0.0)),
            max_churn=int(s.get('maxChurn', 0)),
            cond_changes=int(s.get('condChanges', 0)),
            history_count=int(c.get('historyCount', 0)),
            author_count=int(c.get('authorCount', 0)),
            else_added=int(e.get('elseAdded', 0)),
            else_deleted=int(e.get('elseDeleted', 0)),
            avg_added=float(ad.get('avgAdded', 0.0)),
            max_added=int(ad.get('maxAdded', 0)),
            avg_deleted=float(ad.get('avgDeleted', 0.0)),
            max_deleted=int(ad.get('maxDeleted', 0)),
        )


@dataclass
class BuggyInfo:
    """Buggy method ids plus the change metrics of every touched method"""
    buggy_methods: set[str] = field(default_factory=set)
    metrics_by_method: dict[str, MethodMetrics] = field(default_factory=dict)

    def is_buggy(self, mid: str) -> bool:
        return normalize_method_id(mid) in self.buggy_methods

    def metrics_for(self, mid: str) -> MethodMetrics:
        return self.metrics_by_method.get(normalize_method_id(mid)) or MethodMetrics()

    def to_dict(self) -> dict:
        return {
            'buggyMethods': sorted(self.buggy_methods),
            'metricsByMethod': {mid: m.to_dict() for mid, m in sorted(self.metrics_by_method.items())},
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BuggyInfo':
        return cls(
            buggy_methods=set(data.get('buggyMethods') or []),
            metrics_by_method={
                mid: MethodMetrics.from_dict(m) for mid, m in (data.get('metricsByMethod') or {}).items()
            },
        )


# =============================================================================
# AGGREGATOR
# =============================================================================

class HistoryAggregator:
    """
    Collects change history and buggy labels from fix commits.

    A commit hash is processed once even when it shows up in several
    release ranges. Root commits are skipped silently.
    """

    def __init__(self, verbose: bool = True):
        self.verbose = verbose
        self.accumulators = defaultdict(ChangeAccumulator)
        self.buggy = set()
        self.processed = set()
        self.stats = defaultdict(int)

    def process_commit(self, commit: ChangeCommit) -> bool:
        """Fold one fix commit into the accumulators; False when it was skipped"""
        if commit.hash in self.processed:
            self.stats['duplicate_commits'] += 1
            return False
        self.processed.add(commit.hash)
        if not commit.parents:
            self.stats['no_parent'] += 1
            return False

        touched = set()
        for entry in commit.diff_entries():
            reason = skip_reason(entry)
            if reason:
                self.stats[f'skipped_{reason.replace(" ", "_")}'] += 1
                continue
            self.stats['entries'] += 1
            result = attribute_entry(entry, commit.author, commit.timestamp)
            for error in result.parse_errors:
                self.stats['parse_errors'] += 1
                if self.verbose:
                    print(f"  WARNING: could not parse {error}", flush=True)
            for a in result.attributions:
                self.accumulators[a.method_id].add(a)
                touched.add(a.method_id)
            self.buggy |= result.changed_methods

        for mid in touched:
            self.accumulators[mid].commit_count += 1
        self.stats['commits'] += 1
        return True

    def finalize(self) -> BuggyInfo:
        """Derive averages and maxima; the aggregator may keep growing afterwards"""
        return BuggyInfo(
            buggy_methods=set(self.buggy),
            metrics_by_method={mid: acc.finalize() for mid, acc in self.accumulators.items()},
        )

    def get_stats(self) -> dict:
        return {
            'commits': self.stats['commits'],
            'entries': self.stats['entries'],
            'methods': len(self.accumulators),
            'buggy_methods': len(self.buggy),
            'no_parent': self.stats['no_parent'],
            'duplicate_commits': self.stats['duplicate_commits'],
            'parse_errors': self.stats['parse_errors'],
        }
