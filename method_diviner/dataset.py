"""
CSV dataset assembly and the post-processing passes run over it.
"""

from pathlib import Path

import pandas as pd

from .config import CSV_COLUMNS
from .features import MethodRecord
from .history import BuggyInfo
from .parsing import method_id
from .semver import compare, is_after


def build_row(version: str, record: MethodRecord, info: BuggyInfo) -> dict:
    """One CSV row: static features joined with change history by method id"""
    mid = method_id(record.file_name, record.signature)
    m = info.metrics_for(mid)
    f = record.features
    values = [
        version, record.file_name, record.signature,
        f.loc, f.cognitive_complexity, f.cyclomatic_complexity, f.code_smells,
        f.nesting_depth, f.parameter_count,
        m.churn, f'{m.avg_added:.2f}', m.max_added, f'{m.avg_deleted:.2f}', m.max_deleted,
        f'{m.avg_churn:.2f}', m.max_churn, m.else_added, m.else_deleted, m.cond_changes,
        f.decision_points, m.history_count, m.author_count,
        'Yes' if info.is_buggy(mid) else 'No',
    ]
    return dict(zip(CSV_COLUMNS, values))


def generate_csv(version: str, records: list[MethodRecord], info: BuggyInfo, output_csv, append: bool = True) -> int:
    """
    Write one release's rows to output_csv and return how many were written.

    In append mode the header is only written when the file is new or empty.
    """
    output_csv = Path(output_csv)
    rows = [build_row(version, r, info) for r in records]
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    write_header = not append or not output_csv.exists() or output_csv.stat().st_size == 0
    output_csv.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_csv, mode='a' if append else 'w', header=write_header, index=False)
    return len(df)


def read_dataset(path) -> pd.DataFrame:
    """Read a dataset CSV keeping every cell as text ('0.50' stays '0.50')"""
    return pd.read_csv(path, dtype=str, keep_default_na=False)


# =============================================================================
# POST-PROCESSING
# =============================================================================

def deduplicate(input_csv, output_csv) -> int:
    """Drop fully identical rows, keeping the first; returns rows removed"""
    df = read_dataset(input_csv)
    out = df.drop_duplicates(keep='first')
    out.to_csv(output_csv, index=False)
    return len(df) - len(out)


def filter_up_to(input_csv, output_csv, release_cut: str) -> int:
    """Keep distinct rows whose Version is not after release_cut; returns rows kept"""
    df = read_dataset(input_csv)
    keep = df['Version'].map(lambda v: not is_after(v, release_cut))
    out = df[keep].drop_duplicates(keep='first')
    out.to_csv(output_csv, index=False)
    return len(out)


def reduce_across_releases(input_csv, output_csv) -> int:
    """
    Collapse rows that repeat across releases.

    Rows identical in every column but Version are one group; the row with
    the oldest Version represents it. Groups keep first-seen order.
    """
    df = read_dataset(input_csv)
    others = [c for c in df.columns if c != 'Version']
    versions = df['Version'].tolist()
    oldest = {}
    for i, key in enumerate(df[others].itertuples(index=False, name=None)):
        j = oldest.get(key)
        if j is None or compare(versions[i], versions[j]) < 0:
            oldest[key] = i
    out = df.iloc[list(oldest.values())]
    out.to_csv(output_csv, index=False)
    return len(out)
