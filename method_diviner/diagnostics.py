"""
Dataset diagnostics for assessing training data quality.
"""

from pathlib import Path

import numpy as np

from .dataset import read_dataset
from .semver import sort_releases

HISTORY_COLUMNS = ['ChurnTotal', 'Histories']


def diagnose_dataset(csv_path) -> dict:
    """Analyze a produced dataset's suitability for defect prediction training"""
    csv_path = Path(csv_path)
    print(f"\n{'='*60}")
    print(f"DATASET DIAGNOSTIC: {csv_path.name}")
    print(f"{'='*60}")

    df = read_dataset(csv_path)
    total = len(df)
    buggy = (df['Buggy'] == 'Yes').to_numpy() if total else np.array([], dtype=bool)
    releases = sort_releases(df['Version'].unique().tolist()) if total else []

    per_release = {}
    for release in releases:
        mask = (df['Version'] == release).to_numpy()
        per_release[release] = float(buggy[mask].mean()) if mask.any() else 0.0

    if total:
        history = np.zeros(total, dtype=bool)
        for col in HISTORY_COLUMNS:
            history |= df[col].astype(int).to_numpy() > 0
        history_ratio = float(history.mean())
        bug_ratio = float(buggy.mean())
    else:
        history_ratio = 0.0
        bug_ratio = 0.0

    # Quality assessment
    quality_score = 0
    issues = []

    # Buggy ratio (ideal: 1-50%)
    if 0.01 <= bug_ratio <= 0.50:
        quality_score += 25
    else:
        issues.append(f"Buggy ratio {bug_ratio:.1%} outside usable range (1-50%)")

    # Several releases for time-aware validation
    if len(releases) >= 2:
        quality_score += 25
    else:
        issues.append(f"Only {len(releases)} release(s) - no time-aware train/test split possible")

    # Enough rows
    if total >= 100:
        quality_score += 25
    else:
        issues.append(f"Only {total} rows - may not provide enough samples")

    # Change history present
    if history_ratio > 0:
        quality_score += 25
    else:
        issues.append("No method has change history - check ticket linking")

    # Print report
    print(f"\nRows: {total}")
    print(f"\nMetrics:")
    print(f"  Releases:            {len(releases):>6}")
    print(f"  Buggy methods:       {int(buggy.sum()):>6} ({bug_ratio:.1%})")
    print(f"  With change history: {history_ratio:>6.1%}")
    for release, ratio in per_release.items():
        print(f"    {release:<16} buggy {ratio:.1%}")

    print(f"\nQuality Score: {quality_score}/100")

    if quality_score >= 75:
        print("  GOOD - Suitable for training")
    elif quality_score >= 50:
        print("  ~ FAIR - Usable with caveats")
    else:
        print("  POOR - Consider alternatives")

    if issues:
        print(f"\nIssues:")
        for issue in issues:
            print(f"  - {issue}")

    return {
        'quality_score': quality_score,
        'rows': total,
        'releases': len(releases),
        'bug_ratio': bug_ratio,
        'bug_ratio_by_release': per_release,
        'history_ratio': history_ratio,
        'issues': issues,
    }
