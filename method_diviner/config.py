"""
Configuration and constants for Method Diviner.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

# =============================================================================
# PROJECT SETTINGS
# =============================================================================

WORK_DIR = Path(os.environ.get('METHOD_DIVINER_WORK_DIR', os.getcwd()))

HEAD_RELEASE = 'HEAD'

# =============================================================================
# BUG TICKET FILTER
# =============================================================================

# Compared case-insensitively against the ticket fields
BUG_ISSUE_TYPE = 'bug'
BUG_RESOLUTION = 'fixed'
BUG_STATUSES = {'closed', 'resolved'}

# =============================================================================
# ISSUE TRACKER (JIRA) SETTINGS
# =============================================================================

JIRA_BASE_URL = os.environ.get('JIRA_BASE_URL', 'https://issues.apache.org/jira')
JIRA_USER = os.environ.get('JIRA_USER', '')
JIRA_PASS = os.environ.get('JIRA_PASS', '')
JIRA_PAGE_SIZE = 500

# =============================================================================
# GITHUB API SETTINGS
# =============================================================================

GITHUB_TOKEN = os.environ.get('GITHUB_TOKEN', '')
GITHUB_API_BASE = 'https://api.github.com'
GITHUB_PAGE_SIZE = 100

# Seconds before any outbound HTTP call gives up
HTTP_TIMEOUT = 30

# =============================================================================
# SOURCE FILTERS
# =============================================================================

# Paths skipped when walking a release tree for static features
DEFAULT_EXCLUDE_GLOBS = [
    # tests
    '**/src/test/java/**', '**/*Test.java', '**/*IT.java', '**/src/main/java/tests/**',
    # build output
    '**/target/**', '**/build/**', '**/generated-sources/**',
    # demos
    '**/demo/**', '**/sample/**', '**/example/**',
    '**/*Demo.java', '**/*Sample.java', '**/*Example.java',
    # mocks
    '**/mock/**', '**/stubs/**', '**/test-data/**',
    '**/*Mock.java', '**/*Stub.java', '**/*TestData.java',
    # benchmarks
    '**/benchmark/**', '**/*Benchmark.java',
]

# =============================================================================
# OUTPUT COLUMNS
# =============================================================================

CSV_COLUMNS = [
    # Identification
    'Version', 'File Name', 'Method Name',
    # Static metrics of the release
    'LOC', 'CognitiveComplexity', 'CyclomaticComplexity', 'CodeSmells',
    'NestingDepth', 'ParameterCount',
    # Change history over the bug-fix commits
    'ChurnTotal', 'AvgAdded', 'MaxAdded', 'AvgDeleted', 'MaxDeleted',
    'AvgChurn', 'MaxChurn', 'ElseAdded', 'ElseDeleted', 'CondChanges',
    'DecisionPoints', 'Histories', 'Authors',
    # Label
    'Buggy',
]


@dataclass
class ProjectConfig:
    """One project to mine: forge coordinates plus the issue-tracker key"""
    owner: str
    repo: str
    jira_key: str
    release_cut: str | None = None
    exclude_globs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_GLOBS))

    def __post_init__(self):
        for attr in ('owner', 'repo', 'jira_key'):
            if not getattr(self, attr):
                raise ValueError(f"ProjectConfig.{attr} must not be empty")

    @property
    def name(self) -> str:
        return self.repo.lower()

    @property
    def remote_url(self) -> str:
        return f'https://github.com/{self.owner}/{self.repo}.git'

    def repo_dir(self, work_dir: Path = None) -> Path:
        return Path(work_dir or WORK_DIR) / f'{self.name}_repo'

    def cache_dir(self, work_dir: Path = None) -> Path:
        return Path(work_dir or WORK_DIR) / 'cache' / self.name


DEFAULT_PROJECTS = [
    ProjectConfig('apache', 'bookkeeper', 'BOOKKEEPER', release_cut='4.2.1'),
]
