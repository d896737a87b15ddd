"""
Version-control access: working trees, release tags and fix-commit diffs.

GitPython handles clones and tags; pydriller walks commits and computes the
per-file diffs against the first parent.
"""

from pathlib import Path
from typing import Iterator

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from pydriller import Git

from .diffing import parse_unified_diff
from .models import ChangeCommit, Commit, DiffEntry, ReleaseTag


def open_or_clone(remote_url: str, path) -> Repo:
    """Open an existing clone, cloning it first when needed"""
    path = Path(path)
    try:
        repo = Repo(path)
        print(f"  Using existing clone: {path}", flush=True)
        return repo
    except (InvalidGitRepositoryError, NoSuchPathError):
        pass
    print(f"  Cloning {remote_url} into {path}...", flush=True)
    path.parent.mkdir(parents=True, exist_ok=True)
    return Repo.clone_from(remote_url, path)


# =============================================================================
# TAGS
# =============================================================================

def local_tags(repo: Repo) -> list[ReleaseTag]:
    tags = []
    for ref in repo.tags:
        try:
            tags.append(ReleaseTag(ref.name, ref.commit.hexsha))
        except ValueError:
            # tag pointing to a tree or blob
            continue
    return tags


def parse_ls_remote(output: str) -> list[ReleaseTag]:
    """Tags from 'git ls-remote --tags' output; '^{}' lines give the peeled commit"""
    peeled = {}
    direct = {}
    for line in output.splitlines():
        parts = line.split('\t')
        if len(parts) != 2 or not parts[1].startswith('refs/tags/'):
            continue
        sha, ref = parts
        name = ref[len('refs/tags/'):]
        if name.endswith('^{}'):
            peeled[name[:-3]] = sha
        else:
            direct[name] = sha
    return [ReleaseTag(name, peeled.get(name, sha)) for name, sha in direct.items()]


def list_tags(repo: Repo) -> list[ReleaseTag]:
    """Local tags, or the remote's when the clone has none"""
    tags = local_tags(repo)
    if tags:
        return tags
    try:
        output = repo.git.ls_remote('--tags', 'origin')
    except GitCommandError as e:
        print(f"  WARNING: could not list remote tags: {e}", flush=True)
        return []
    return parse_ls_remote(output)


# =============================================================================
# COMMITS
# =============================================================================

def to_diff_entry(mod) -> DiffEntry:
    """Convert a pydriller ModifiedFile; sources are only read for Java files"""
    entry = DiffEntry(
        change_type=mod.change_type.name,
        old_path=mod.old_path,
        new_path=mod.new_path,
    )
    if (mod.new_path or '').endswith('.java') and entry.change_type not in ('DELETE', 'RENAME'):
        entry.old_source = mod.source_code_before
        entry.new_source = mod.source_code
        entry.hunks = parse_unified_diff(mod.diff)
    return entry


def to_change_commit(commit) -> ChangeCommit:
    """Wrap a pydriller Commit; diffs are computed on first use"""
    return ChangeCommit(
        hash=commit.hash,
        author=commit.author.name,
        timestamp=commit.author_date,
        message=commit.msg,
        parents=list(commit.parents),
        entries=lambda: [to_diff_entry(m) for m in commit.modified_files],
    )


def commits_in_range(repo_path, older: str, newer: str) -> Iterator[ChangeCommit]:
    """Commits reachable from newer but not from older, i.e. (older, newer]"""
    for commit in Git(str(repo_path)).get_list_commits(rev=f'{older}..{newer}'):
        yield to_change_commit(commit)


def iter_all_commits(repo_path) -> Iterator[ChangeCommit]:
    """Every commit on every branch"""
    for commit in Git(str(repo_path)).get_list_commits(rev='HEAD', all=True):
        yield to_change_commit(commit)


def list_commits(repo_path) -> list[Commit]:
    """Lightweight commit records (no diffs) of all branches"""
    return [
        Commit(hash=c.hash, author=c.author, timestamp=c.timestamp, message=c.message)
        for c in iter_all_commits(repo_path)
    ]
