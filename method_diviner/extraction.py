"""
Bug-fix mining: walks the release ranges of a repository, links commits to
bug tickets and folds the fix commits into a BuggyInfo.
"""

from enum import Enum
from pathlib import Path
from typing import Iterable

from git import GitCommandError, Repo

from .cache import compute_or_load
from .history import BuggyInfo, HistoryAggregator
from .linker import FixCommitLinker
from .models import ReleaseTag, Ticket
from .semver import semver_key
from . import vcs


class Stage(Enum):
    INITIALIZED = 'initialized'
    TAGS_ORDERED = 'tags_ordered'
    RANGE_ENUMERATED = 'range_enumerated'
    COMMITS_PROCESSED = 'commits_processed'
    METRICS_DERIVED = 'metrics_derived'
    PERSISTED = 'persisted'


class BuggyMethodMiner:
    """
    Computes the BuggyInfo of one repository.

    Release tags are ordered by semver and every adjacent pair (prev, curr]
    is scanned for fix commits. With fewer than two tags the log of all
    branches is scanned instead.
    """

    def __init__(self, repo_path, tickets: Iterable[Ticket], project_key: str, verbose: bool = True):
        self.repo_path = Path(repo_path)
        self.project_key = project_key
        self.verbose = verbose
        self.linker = FixCommitLinker(tickets, project_key)
        self.aggregator = HistoryAggregator(verbose=verbose)
        self.tags: list[ReleaseTag] = []
        self.ranges: list[tuple[ReleaseTag, ReleaseTag]] = []
        self.stage = Stage.INITIALIZED

    def log(self, msg: str):
        if self.verbose:
            print(msg, flush=True)

    def order_tags(self, tags: list[ReleaseTag]):
        self.tags = sorted(tags, key=lambda t: semver_key(t.name))
        self.stage = Stage.TAGS_ORDERED

    def enumerate_ranges(self):
        self.ranges = list(zip(self.tags, self.tags[1:]))
        self.stage = Stage.RANGE_ENUMERATED

    def _process(self, commits):
        for commit, _ in self.linker.link(commits):
            self.aggregator.process_commit(commit)

    def process_commits(self):
        if len(self.tags) < 2:
            self.log(f"  Only {len(self.tags)} tag(s): scanning all branches")
            self._process(vcs.iter_all_commits(self.repo_path))
        else:
            for i, (prev, curr) in enumerate(self.ranges, 1):
                self.log(f"  [{i}/{len(self.ranges)}] {prev.name}..{curr.name}")
                try:
                    self._process(vcs.commits_in_range(self.repo_path, prev.commit_hash, curr.commit_hash))
                except GitCommandError as e:
                    self.log(f"  WARNING: skipping range {prev.name}..{curr.name}: {e}")
        self.stage = Stage.COMMITS_PROCESSED

    def derive_metrics(self) -> BuggyInfo:
        info = self.aggregator.finalize()
        self.stage = Stage.METRICS_DERIVED
        return info

    def run(self, tags: list[ReleaseTag] = None) -> BuggyInfo:
        self.log(f"  Mining bug fixes for {self.project_key}...")
        if not self.linker.bug_keys:
            self.log("  No bug tickets survived the filter; every method is clean")
            return BuggyInfo()
        if tags is None:
            tags = vcs.list_tags(Repo(self.repo_path))
        self.order_tags(tags)
        self.enumerate_ranges()
        self.process_commits()
        info = self.derive_metrics()
        self.print_stats()
        return info

    def run_cached(self, cache_dir, tags: list[ReleaseTag] = None) -> BuggyInfo:
        """Like run, but served from and stored into the cache directory"""
        info, stored = compute_or_load(cache_dir, self.project_key, lambda: self.run(tags))
        if stored:
            self.stage = Stage.PERSISTED
        return info

    def get_stats(self) -> dict:
        return {**self.linker.get_stats(), **self.aggregator.get_stats(), 'ranges': len(self.ranges)}

    def print_stats(self):
        stats = self.get_stats()
        self.log(f"  Linked {stats['fix_commits']}/{stats['scanned']} commits to {stats['bug_tickets']} bug tickets")
        self.log(f"  History: {stats['methods']} methods, {stats['buggy_methods']} buggy, "
                 f"{stats['parse_errors']} parse errors, {stats['no_parent']} root commits skipped")


def build_buggy_info(repo_path, tickets: Iterable[Ticket], project_key: str,
                     cache_dir=None, tags: list[ReleaseTag] = None, verbose: bool = True) -> BuggyInfo:
    """BuggyInfo of a repository, served from the cache directory when present"""
    miner = BuggyMethodMiner(repo_path, tickets, project_key, verbose=verbose)
    if cache_dir is None:
        return miner.run(tags)
    return miner.run_cached(cache_dir, tags)
