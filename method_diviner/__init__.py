"""
Method Diviner - Method-Level Defect Datasets from Issue Trackers
=================================================================

Builds a just-in-time defect prediction dataset for a Java project: one row
per method and release, with static metrics, change history over the bug-fix
commits and a buggy/clean label.

Key insight: a method is labelled buggy only when a fix commit linked to a
closed bug ticket really changed its code, not just its comments or layout.
"""

from .config import (
    DEFAULT_PROJECTS,
    CSV_COLUMNS,
    HEAD_RELEASE,
    ProjectConfig,
)

from .semver import (
    normalize,
    compare,
    select_releases,
)

from .parsing import (
    index_methods,
    method_id,
    normalize_method_id,
    normalize_body,
)

from .diffing import (
    parse_unified_diff,
    attribute_entry,
)

from .linker import (
    FixCommitLinker,
    filter_bug_tickets,
    link_fix_commits,
)

from .history import (
    BuggyInfo,
    HistoryAggregator,
    MethodMetrics,
)

from .cache import (
    load_buggy_info,
    save_buggy_info,
)

from .features import (
    MethodFeatures,
    extract_method_features,
    walk_and_extract,
)

from .extraction import (
    BuggyMethodMiner,
    build_buggy_info,
)

from .pipeline import (
    PipelineError,
    run_project,
    run_all,
)

from .diagnostics import diagnose_dataset

__version__ = "0.1.0"

__all__ = [
    # Config
    "DEFAULT_PROJECTS",
    "CSV_COLUMNS",
    "HEAD_RELEASE",
    "ProjectConfig",
    # Releases
    "normalize",
    "compare",
    "select_releases",
    # Parsing
    "index_methods",
    "method_id",
    "normalize_method_id",
    "normalize_body",
    # Diffing
    "parse_unified_diff",
    "attribute_entry",
    # Linking
    "FixCommitLinker",
    "filter_bug_tickets",
    "link_fix_commits",
    # History
    "BuggyInfo",
    "HistoryAggregator",
    "MethodMetrics",
    "load_buggy_info",
    "save_buggy_info",
    # Features
    "MethodFeatures",
    "extract_method_features",
    "walk_and_extract",
    # Extraction
    "BuggyMethodMiner",
    "build_buggy_info",
    # Pipeline
    "PipelineError",
    "run_project",
    "run_all",
    # Diagnostics
    "diagnose_dataset",
]
