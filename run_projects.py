#!/usr/bin/env python3
"""
Runner for building method-level defect datasets.

Usage:
    python run_projects.py --project bookkeeper     # Run one configured project
    python run_projects.py --all                    # Run every configured project
    python run_projects.py --owner apache --repo openjpa --jira-key OPENJPA
    python run_projects.py --diagnose bookkeeper_dataset_final.csv
    python run_projects.py --status                 # Check progress
"""

import argparse
import sys
from pathlib import Path

from method_diviner import DEFAULT_PROJECTS, ProjectConfig, diagnose_dataset, run_all
from method_diviner.cache import cache_path
from method_diviner.config import WORK_DIR
from method_diviner.pipeline import output_paths


def find_project(name: str) -> ProjectConfig | None:
    """Configured project by repo name, case-insensitive"""
    for project in DEFAULT_PROJECTS:
        if project.name == name.lower():
            return project
    return None


def show_status(work_dir: Path):
    """Show which outputs and caches exist for each configured project"""
    print(f"\n{'='*60}")
    print("PROJECT STATUS")
    print(f"{'='*60}")
    print(f"Work dir: {work_dir}")
    print()

    for project in DEFAULT_PROJECTS:
        final = output_paths(project, work_dir)['final']
        cached = cache_path(project.cache_dir(work_dir), project.jira_key).exists()
        if final.exists():
            with open(final, encoding='utf-8') as f:
                rows = sum(1 for _ in f) - 1
            status = f"DONE ({rows} rows)"
        else:
            status = "PENDING"
        cut = f", cut {project.release_cut}" if project.release_cut else ""
        print(f"  {project.owner}/{project.repo} [{project.jira_key}{cut}] - {status}"
              f"{' - buggy info cached' if cached else ''}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Method-level defect dataset builder')
    parser.add_argument('--project', type=str, help='Configured project name (e.g. bookkeeper)')
    parser.add_argument('--all', action='store_true', help='Run every configured project')
    parser.add_argument('--owner', type=str, help='GitHub owner of an ad-hoc project')
    parser.add_argument('--repo', type=str, help='GitHub repository of an ad-hoc project')
    parser.add_argument('--jira-key', type=str, help='Jira project key of an ad-hoc project')
    parser.add_argument('--release-cut', type=str, help='Drop rows of releases after this one')
    parser.add_argument('--work-dir', type=Path, default=WORK_DIR, help='Where clones, caches and CSVs go')
    parser.add_argument('--diagnose', type=Path, metavar='CSV', help='Diagnose a produced dataset')
    parser.add_argument('--status', action='store_true', help='Show progress status')
    args = parser.parse_args(argv)

    if args.status:
        show_status(args.work_dir)
        return 0

    if args.diagnose:
        if not args.diagnose.exists():
            parser.error(f"no such file: {args.diagnose}")
        diagnose_dataset(args.diagnose)
        return 0

    if args.all:
        projects = list(DEFAULT_PROJECTS)
    elif args.project:
        project = find_project(args.project)
        if project is None:
            known = ', '.join(p.name for p in DEFAULT_PROJECTS)
            parser.error(f"unknown project '{args.project}' (configured: {known})")
        projects = [project]
    elif args.owner or args.repo or args.jira_key:
        try:
            projects = [ProjectConfig(args.owner, args.repo, args.jira_key, release_cut=args.release_cut)]
        except ValueError as e:
            parser.error(str(e))
    else:
        parser.print_help()
        print("\nExamples:")
        print("  python run_projects.py --status                # Check progress")
        print("  python run_projects.py --project bookkeeper    # Run one project")
        print("  python run_projects.py --all                   # Run all projects")
        return 0

    results = run_all(projects, args.work_dir)
    return 0 if len(results) == len(projects) else 1


if __name__ == "__main__":
    sys.exit(main())
