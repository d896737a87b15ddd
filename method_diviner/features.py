"""
Feature definitions and static method metrics extraction.
"""

import os
from dataclasses import dataclass, asdict
from fnmatch import fnmatchcase
from pathlib import Path

from javalang.tree import DoStatement, ForStatement, IfStatement, SwitchStatementCase, WhileStatement
from javalang.ast import Node

from .parsing import index_methods

DECISION_NODES = (IfStatement, ForStatement, WhileStatement, DoStatement, SwitchStatementCase)


@dataclass
class MethodFeatures:
    """Static metrics of one method in one release"""
    loc: int = 0
    parameter_count: int = 0
    nesting_depth: int = 0
    decision_points: int = 0
    cyclomatic_complexity: int = 1
    cognitive_complexity: int = 0   # decision points, a simple proxy
    code_smells: int = 0            # not measured yet

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class MethodRecord:
    """A method found while walking a release tree"""
    path: str          # relative to the tree root, '/'-separated
    signature: str
    features: MethodFeatures

    @property
    def file_name(self) -> str:
        return Path(self.path).name


def _walk(node, depth: int, acc: dict):
    """Count decision points; each one nests its children one level deeper"""
    if isinstance(node, (list, tuple)):
        for item in node:
            _walk(item, depth, acc)
        return
    if not isinstance(node, Node):
        return
    if isinstance(node, DECISION_NODES):
        acc['decisions'] += 1
        depth += 1
        acc['max_depth'] = max(acc['max_depth'], depth)
    for child in node.children:
        _walk(child, depth, acc)


def method_features(node, begin: int, end: int) -> MethodFeatures:
    acc = {'decisions': 0, 'max_depth': 0}
    for child in node.children:
        _walk(child, 0, acc)
    return MethodFeatures(
        loc=end - begin + 1,
        parameter_count=len(node.parameters),
        nesting_depth=acc['max_depth'],
        decision_points=acc['decisions'],
        cyclomatic_complexity=acc['decisions'] + 1,
        cognitive_complexity=acc['decisions'],
        code_smells=0,
    )


def extract_method_features(code: str) -> dict[str, MethodFeatures] | None:
    """Features of every method of a Java file keyed by signature; None if unparsable"""
    index = index_methods(code)
    if not index.ok:
        return None
    result = {}
    for m in index:
        result.setdefault(m.signature, method_features(m.node, m.begin, m.end))
    return result


def _glob_matches(candidate: str, glob: str) -> bool:
    # '**/' may also match nothing, so 'src/test/...' hits '**/src/test/**' at the root
    if glob.startswith('**/'):
        glob = '*/' + glob[3:]
    elif not glob.startswith('/'):
        glob = '/' + glob
    return fnmatchcase(candidate, glob)


def is_excluded(rel_path: str, exclude_globs) -> bool:
    candidate = '/' + rel_path.replace('\\', '/').lstrip('/')
    return any(_glob_matches(candidate, g) for g in exclude_globs or [])


def iter_java_files(root, exclude_globs=None):
    """Relative paths of the .java files under root, in sorted walk order"""
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            if not name.endswith('.java'):
                continue
            rel = (Path(dirpath) / name).relative_to(root).as_posix()
            if is_excluded(rel, exclude_globs):
                continue
            yield rel


def walk_and_extract(root, exclude_globs=None, verbose: bool = True) -> list[MethodRecord]:
    """Static features of every method in a source tree; unparsable files are skipped"""
    records = []
    skipped = 0
    for rel in iter_java_files(root, exclude_globs):
        try:
            code = (Path(root) / rel).read_text(encoding='utf-8', errors='ignore')
        except OSError as e:
            print(f"  WARNING: could not read {rel}: {e}", flush=True)
            skipped += 1
            continue
        features = extract_method_features(code)
        if features is None:
            skipped += 1
            continue
        for signature, f in features.items():
            records.append(MethodRecord(rel, signature, f))
    if verbose and skipped:
        print(f"  WARNING: skipped {skipped} unparsable Java files", flush=True)
    return records
