"""
Per-project dataset pipeline: fetch, mine, assemble and post-process.
"""

import json
import shutil
import time
from pathlib import Path

from git import GitCommandError

from .cache import write_json_atomic
from .config import HEAD_RELEASE, WORK_DIR, ProjectConfig
from .dataset import deduplicate, filter_up_to, generate_csv, reduce_across_releases
from .extraction import build_buggy_info
from .features import walk_and_extract
from .github import GitHubClient, GitHubError, find_single_subdir
from .history import BuggyInfo
from .jira import JiraClient, JiraError
from .models import Release, Ticket, assign_commits_to_releases, order_versions
from .semver import select_releases
from . import vcs


class PipelineError(Exception):
    """A project run failed; the message starts with the project name"""


def output_paths(project: ProjectConfig, work_dir=None) -> dict[str, Path]:
    work = Path(work_dir or WORK_DIR)
    name = project.name
    return {
        'raw': work / f'dataset_{name}.csv',
        'dedup': work / f'dataset_{name}_dedup.csv',
        'filtered': work / f'dataset_{name}_filtered.csv',
        'final': work / f'{name}_dataset_final.csv',
    }


def load_or_fetch_tickets(jira: JiraClient, project: ProjectConfig, cache_dir: Path) -> list[Ticket]:
    """Tickets from the JSON dump of an earlier run, or freshly downloaded and dumped"""
    path = cache_dir / f'{project.name}_jira_tickets.json'
    if path.exists():
        try:
            with open(path, encoding='utf-8') as f:
                tickets = [Ticket.from_dict(t) for t in json.load(f)]
            print(f"  Loaded {len(tickets)} tickets from {path.name}", flush=True)
            return tickets
        except (OSError, ValueError, TypeError, AttributeError) as e:
            print(f"  WARNING: ignoring unreadable ticket dump {path}: {e}", flush=True)
    tickets = jira.list_tickets(project.jira_key)
    write_json_atomic(path, [t.to_dict() for t in tickets])
    print(f"  Downloaded {len(tickets)} tickets", flush=True)
    return tickets


def count_release_commits(repo_path, versions) -> list[Release]:
    """Releases that received at least one commit, with their commit counts"""
    releases = [Release(v.id, v.name, v.release_date) for v in versions if v.release_date]
    return assign_commits_to_releases(vcs.list_commits(repo_path), releases)


def extract_release(project: ProjectConfig, release: str, repo_path: Path, github: GitHubClient,
                    info: BuggyInfo, output_csv: Path) -> int:
    """Append one release's rows; HEAD uses the local working tree"""
    if release == HEAD_RELEASE:
        records = walk_and_extract(repo_path, project.exclude_globs)
        return generate_csv(release, records, info, output_csv)

    tmp = github.download_zipball(project.owner, project.repo, release)
    try:
        records = walk_and_extract(find_single_subdir(tmp), project.exclude_globs)
        return generate_csv(release, records, info, output_csv)
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


def run_project(project: ProjectConfig, work_dir=None, jira: JiraClient = None,
                github: GitHubClient = None) -> dict:
    """
    Build the dataset of one project.

    Any failure is re-raised as PipelineError naming the project, so a batch
    driver can report it and move on.
    """
    start = time.time()
    print(f"\n{'=' * 60}", flush=True)
    print(f"PROJECT: {project.owner}/{project.repo} ({project.jira_key})", flush=True)
    print(f"{'=' * 60}", flush=True)

    jira = jira or JiraClient()
    github = github or GitHubClient()
    paths = output_paths(project, work_dir)
    cache_dir = project.cache_dir(work_dir)
    repo_path = project.repo_dir(work_dir)

    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        repo = vcs.open_or_clone(project.remote_url, repo_path)

        tickets = load_or_fetch_tickets(jira, project, cache_dir)

        versions = order_versions(jira.list_versions(project.jira_key))
        write_json_atomic(cache_dir / f'{project.name}_jira_versions.json', [v.to_dict() for v in versions])
        forge_tags = github.list_tags(project.owner, project.repo)
        write_json_atomic(cache_dir / f'{project.name}_git_tags.json', forge_tags)
        releases = select_releases([v.name for v in versions], forge_tags)
        write_json_atomic(cache_dir / f'{project.name}_releases_intersection.json', releases)
        print(f"  Versions: {len(versions)}, tags: {len(forge_tags)}, releases: {len(releases)}", flush=True)

        active = count_release_commits(repo_path, versions)
        print(f"  Releases with commits: {len(active)} "
              f"({sum(r.commit_count for r in active)} commits)", flush=True)

        info = build_buggy_info(repo_path, tickets, project.jira_key, cache_dir=cache_dir,
                                tags=vcs.list_tags(repo))

        raw = paths['raw']
        if raw.exists():
            raw.unlink()
        rows = 0
        for i, release in enumerate(releases, 1):
            print(f"  [{i}/{len(releases)}] Extracting features for {release}...", flush=True)
            written = extract_release(project, release, repo_path, github, info, raw)
            print(f"    {written} methods", flush=True)
            rows += written

        if not raw.exists():
            raise PipelineError(f"{project.name}: no rows were produced")
        removed = deduplicate(raw, paths['dedup'])
        post_input = paths['dedup']
        if project.release_cut:
            kept = filter_up_to(paths['dedup'], paths['filtered'], project.release_cut)
            print(f"  Kept {kept} rows up to {project.release_cut}", flush=True)
            post_input = paths['filtered']
        final_rows = reduce_across_releases(post_input, paths['final'])
    except PipelineError:
        raise
    except (JiraError, GitHubError, GitCommandError, OSError, ValueError) as e:
        raise PipelineError(f"{project.name}: {e}") from e

    elapsed = time.time() - start
    print(f"\n  Rows: {rows} raw, {removed} duplicates removed, {final_rows} final", flush=True)
    print(f"  Saved to: {paths['final']} ({elapsed / 60:.1f} min)", flush=True)
    return {
        'project': project.name,
        'releases': len(releases),
        'rows': rows,
        'final_rows': final_rows,
        'buggy_methods': len(info.buggy_methods),
        'output': str(paths['final']),
    }


def run_all(projects: list[ProjectConfig], work_dir=None) -> list[dict]:
    """Run every project in turn; a failing project is reported and skipped"""
    results = []
    jira = JiraClient()
    github = GitHubClient()
    for i, project in enumerate(projects, 1):
        print(f"\n[{i}/{len(projects)}] ", end="")
        try:
            results.append(run_project(project, work_dir, jira=jira, github=github))
        except PipelineError as e:
            print(f"  ERROR: {e}", flush=True)
            continue
    print(f"\n{'=' * 60}")
    print(f"DONE: {len(results)}/{len(projects)} projects")
    print(f"{'=' * 60}")
    return results
