#!/usr/bin/env python3
"""
Unit tests for method_diviner package.

Usage:
    python -m pytest tests/test_unit.py -v
"""

import io
import sys
import zipfile
from datetime import date, datetime
from pathlib import Path
from unittest import mock

import pytest
import requests

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


def _response(payload=None, status=200, content=b''):
    resp = mock.Mock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.content = content
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    else:
        resp.raise_for_status.return_value = None
    return resp


# =============================================================================
# CONFIG TESTS
# =============================================================================

def test_config_imports():
    """Config module should import without errors"""
    from method_diviner.config import (
        DEFAULT_PROJECTS,
        CSV_COLUMNS,
        DEFAULT_EXCLUDE_GLOBS,
        HTTP_TIMEOUT,
    )
    assert len(DEFAULT_PROJECTS) > 0
    assert HTTP_TIMEOUT > 0
    assert len(DEFAULT_EXCLUDE_GLOBS) > 0
    assert CSV_COLUMNS[0] == 'Version'
    assert CSV_COLUMNS[-1] == 'Buggy'
    assert len(CSV_COLUMNS) == 23


def test_project_config_paths(tmp_path):
    """ProjectConfig derives name, remote and directories"""
    from method_diviner.config import ProjectConfig

    p = ProjectConfig('apache', 'BookKeeper', 'BOOKKEEPER')
    assert p.name == 'bookkeeper'
    assert p.remote_url == 'https://github.com/apache/BookKeeper.git'
    assert p.repo_dir(tmp_path) == tmp_path / 'bookkeeper_repo'
    assert p.cache_dir(tmp_path) == tmp_path / 'cache' / 'bookkeeper'


def test_project_config_rejects_missing_key():
    """An empty Jira key is a configuration error"""
    from method_diviner.config import ProjectConfig

    with pytest.raises(ValueError):
        ProjectConfig('apache', 'bookkeeper', '')


# =============================================================================
# SEMVER TESTS
# =============================================================================

def test_normalize_strips_prefixes():
    from method_diviner.semver import normalize

    assert normalize('v1.2.0') == '1.2.0'
    assert normalize('release-4.2.1') == '4.2.1'
    assert normalize('1.0') == '1.0'
    # only one leading prefix
    assert normalize('vv1') == 'v1'


def test_compare_pads_and_ignores_garbage():
    from method_diviner.semver import compare

    assert compare('1.2', '1.2.0') == 0
    assert compare('1.10.0', '1.2.0') == 1
    assert compare('v1.2.0', 'release-1.2.1') == -1
    assert compare('1.0-RC1', '1.0') == 0
    assert compare('beta', '0') == 0


def test_compare_is_antisymmetric_and_transitive():
    from method_diviner.semver import compare

    tags = ['v1.10.0', 'release-1.2.0', '1.2.1', 'v1.2.0', '2', '0.9.9', '1.2.0.1', 'x.y']
    for a in tags:
        assert compare(a, a) == 0
        for b in tags:
            assert compare(a, b) == -compare(b, a)
            for c in tags:
                if compare(a, b) <= 0 and compare(b, c) <= 0:
                    assert compare(a, c) <= 0


def test_select_releases_orders_by_semver():
    """Tags that match tracker versions come back in ascending order"""
    from method_diviner.semver import select_releases, normalize

    tags = ["v1.10.0", "release-1.2.0", "1.2.1", "v1.2.0"]
    tracker = ["1.2.0", "1.2.1", "1.10.0"]
    releases = select_releases(tracker, tags)

    assert [normalize(r) for r in releases] == ['1.2.0', '1.2.1', '1.10.0']
    assert releases[0] in ('release-1.2.0', 'v1.2.0')


def test_select_releases_falls_back_to_head():
    from method_diviner.semver import select_releases

    assert select_releases(['1.0'], ['v2.0']) == ['HEAD']
    assert select_releases([], []) == ['HEAD']


def test_is_after():
    from method_diviner.semver import is_after

    assert is_after('4.2.2', '4.2.1')
    assert not is_after('4.2.1', 'release-4.2.1')
    assert not is_after('4.0.0', '4.2.1')


# =============================================================================
# MODEL TESTS
# =============================================================================

def test_order_versions_puts_undated_last():
    from method_diviner.models import Version, order_versions

    versions = [
        Version('2.0', date(2020, 5, 1)),
        Version('next'),
        Version('1.0', date(2019, 1, 1)),
        Version('1.1', date(2019, 1, 1)),
    ]
    ordered = order_versions(versions)
    assert [v.name for v in ordered] == ['1.0', '1.1', '2.0', 'next']
    assert [v.id for v in ordered] == [1, 2, 3, 4]

    assert [v.name for v in order_versions(versions, drop_undated=True)] == ['1.0', '1.1', '2.0']


def test_assign_commits_to_releases():
    """Commits go to the first release dated on or after them"""
    from method_diviner.models import Commit, Release, assign_commits_to_releases

    releases = [
        Release(1, '1.0', date(2020, 1, 10)),
        Release(2, '1.1', date(2020, 2, 10)),
        Release(3, '1.2', date(2020, 3, 10)),
    ]
    commits = [
        Commit('a', 'ann', datetime(2020, 1, 5)),
        Commit('b', 'bob', datetime(2020, 1, 10, 18, 0)),
        Commit('c', 'cy', datetime(2020, 3, 1)),
        Commit('d', 'dee', datetime(2021, 1, 1)),
    ]
    kept = assign_commits_to_releases(commits, releases)

    # 1.1 got nothing and is dropped, survivors renumbered
    assert [(r.id, r.name, r.commit_count) for r in kept] == [(1, '1.0', 2), (2, '1.2', 1)]
    assert [c.release_id for c in commits] == [1, 1, 2, 0]


def test_ticket_round_trip():
    from method_diviner.models import Ticket, Version

    t = Ticket(
        key='PRJ-1', issue_type='Bug', resolution='Fixed', status='Closed',
        created=date(2020, 1, 2), fix_versions=[Version('1.0', date(2020, 2, 1), 1)],
        labels=['core'],
    )
    d = t.to_dict()
    assert d['created'] == '2020-01-02'
    assert d['fix_versions'][0] == {'id': 1, 'name': '1.0', 'releaseDate': '2020-02-01'}
    assert Ticket.from_dict(d) == t


def test_hunk_counts():
    from method_diviner.models import Hunk

    h = Hunk(4, 6, 4, 7)
    assert (h.added, h.deleted, h.churn) == (3, 2, 5)


# =============================================================================
# PARSING TESTS
# =============================================================================

JAVA_SOURCE = '''package demo;

import java.util.List;

public class Shapes {
    private int count;

    /** Javadoc is not part of the range */
    @Override
    public String toString() {
        return "shapes";
    }

    public static <T> List<T> copy(List<? extends T> items, int[] sizes, String... names) throws Exception {
        return null;
    }

    int   area(int  w,
             int h) {
        // width times height
        return w * h;
    }
}
'''


def test_index_methods_signatures_and_ranges():
    from method_diviner.parsing import index_methods

    index = index_methods(JAVA_SOURCE)
    assert index.ok
    sigs = [m.signature for m in index]
    assert sigs == [
        'String toString()',
        'List<T> copy(List<? extends T>, int[], String...)',
        'int area(int, int)',
    ]
    to_string = index.find('String toString()')
    # annotation line starts the declaration
    assert (to_string.begin, to_string.end) == (9, 12)
    area = index.find('int area(int, int)')
    assert (area.begin, area.end) == (18, 22)
    assert 'return w * h;' in area.body
    assert area.body.strip().endswith('}')


def test_index_methods_parse_failure_is_not_fatal():
    from method_diviner.parsing import index_methods

    index = index_methods('public class Broken { void f( { }')
    assert not index.ok
    assert len(index) == 0
    assert index.error

    assert index_methods('').ok
    assert len(index_methods('class Empty {}')) == 0


def test_method_id_normalization():
    """Ids from a raw signature and from the aggregator agree"""
    from method_diviner.parsing import method_id, normalize_method_id

    assert normalize_method_id("File.java#int   f(int  x)") == "File.java#intf(intx)"
    assert method_id('src/main/java/File.java', 'int f(int x)') == "File.java#intf(intx)"
    for raw in ["A.java#void  g()", " B.java # int h(int a,\tint b) ", ""]:
        once = normalize_method_id(raw)
        assert normalize_method_id(once) == once


def test_normalize_body_ignores_comments_and_layout():
    from method_diviner.parsing import normalize_body

    a = "{\n    int x = 1; // one\n    return x + 2;\n}"
    b = "{ /* block\n comment */ int x=1;\n\n\treturn x+2; }"
    c = "{ int x = 1; return x + 3; }"
    assert normalize_body(a) == normalize_body(b)
    assert normalize_body(a) != normalize_body(c)
    assert normalize_body(None) == ''


def test_contains_edit_is_inclusive_at_both_ends():
    from method_diviner.parsing import MethodRevision

    m = MethodRevision('int f()', begin=10, end=20, body='{}')
    assert m.contains_edit(20, 21)
    assert m.contains_edit(5, 10)
    assert not m.contains_edit(21, 22)
    assert not m.contains_edit(3, 9)


# =============================================================================
# LINKER TESTS
# =============================================================================

def _ticket(key, issue_type='Bug', resolution='Fixed', status='Closed'):
    from method_diviner.models import Ticket
    return Ticket(key=key, issue_type=issue_type, resolution=resolution, status=status)


def test_bug_ticket_filter():
    from method_diviner.linker import filter_bug_tickets

    tickets = [
        _ticket('PRJ-1'),
        _ticket('PRJ-2', status='RESOLVED', resolution='fixed', issue_type='BUG'),
        _ticket('PRJ-3', status='Open'),
        _ticket('PRJ-4', resolution="Won't Fix"),
        _ticket('PRJ-5', issue_type='Improvement'),
        _ticket(''),
    ]
    assert filter_bug_tickets(tickets) == {'PRJ-1', 'PRJ-2'}


def test_find_ticket_keys_longest_match():
    from method_diviner.linker import find_ticket_keys

    keys = find_ticket_keys("Fix PRJ-10 and prj-100 (see PRJ-10)", 'PRJ')
    assert keys == ['PRJ-10', 'PRJ-100']
    assert find_ticket_keys("OTHER-1 only", 'PRJ') == []


def test_linker_yields_each_commit_once():
    from method_diviner.linker import FixCommitLinker
    from method_diviner.models import ChangeCommit

    commits = [
        ChangeCommit('a1', 'ann', None, 'PRJ-2, also touches PRJ-3'),
        ChangeCommit('b2', 'bob', None, 'PRJ-3 only'),
        ChangeCommit('c3', 'cy', None, 'no ticket'),
    ]
    linker = FixCommitLinker([_ticket('PRJ-2')], 'PRJ')
    linked = list(linker.link(commits))

    assert [(c.hash, keys) for c, keys in linked] == [('a1', ['PRJ-2'])]
    assert linker.get_stats() == {'bug_tickets': 1, 'scanned': 3, 'fix_commits': 1}


# =============================================================================
# JIRA TESTS
# =============================================================================

def _issue(key, status='Closed'):
    return {
        'key': key,
        'fields': {
            'issuetype': {'name': 'Bug'},
            'resolution': {'name': 'Fixed'},
            'status': {'name': status},
            'priority': {'name': 'Major'},
            'reporter': {'displayName': 'Ann'},
            'assignee': None,
            'created': '2020-01-02T10:00:00.000+0000',
            'resolutiondate': '2020-01-05T10:00:00.000+0000',
            'versions': [{'name': '1.0', 'releaseDate': '2019-12-01'}],
            'fixVersions': [{'name': '1.1'}],
            'components': [{'name': 'core'}],
        },
    }


def test_jira_list_tickets_paginates():
    from method_diviner.jira import JiraClient

    session = mock.Mock()
    session.get.side_effect = [
        _response({'total': 3, 'issues': [_issue('PRJ-1'), _issue('PRJ-2', status='Open')]}),
        _response({'total': 3, 'issues': [_issue('PRJ-3')]}),
    ]
    client = JiraClient('https://jira.example.org/', session=session)
    tickets = client.list_tickets('PRJ')

    assert [t.key for t in tickets] == ['PRJ-1', 'PRJ-2', 'PRJ-3']
    first = tickets[0]
    assert first.created == date(2020, 1, 2)
    assert first.resolution_date == date(2020, 1, 5)
    assert first.affected_versions[0].release_date == date(2019, 12, 1)
    assert first.fix_versions[0].name == '1.1'
    assert first.assignee is None
    assert first.components == ['core']

    url, = session.get.call_args_list[1].args
    params = session.get.call_args_list[1].kwargs['params']
    assert url == 'https://jira.example.org/rest/api/2/search'
    assert params['startAt'] == 2
    assert 'project = PRJ' in params['jql']


def test_jira_list_bug_tickets_filters():
    from method_diviner.jira import JiraClient

    session = mock.Mock()
    session.get.return_value = _response({'total': 2, 'issues': [_issue('PRJ-1'), _issue('PRJ-2', status='Open')]})
    tickets = JiraClient(session=session).list_bug_tickets('PRJ')
    assert [t.key for t in tickets] == ['PRJ-1']


def test_jira_versions():
    from method_diviner.jira import JiraClient

    session = mock.Mock()
    session.get.return_value = _response({'versions': [
        {'name': '1.0', 'releaseDate': '2019-01-01'}, {'name': '2.0'}, {'released': False},
    ]})
    versions = JiraClient(session=session).list_versions('PRJ')
    assert [(v.name, v.release_date) for v in versions] == [('1.0', date(2019, 1, 1)), ('2.0', None)]


def test_jira_failure_names_project():
    from method_diviner.jira import JiraClient, JiraError

    session = mock.Mock()
    session.get.return_value = _response(status=500)
    with pytest.raises(JiraError, match='PRJ'):
        JiraClient(session=session).list_versions('PRJ')

    session.get.side_effect = requests.ConnectionError('down')
    with pytest.raises(JiraError, match='PRJ'):
        JiraClient(session=session).list_tickets('PRJ')


# =============================================================================
# GITHUB TESTS
# =============================================================================

def test_parse_repo_url():
    """Should parse GitHub URLs correctly"""
    from method_diviner.github import parse_repo_url

    owner, repo = parse_repo_url("https://github.com/apache/bookkeeper")
    assert owner == "apache"
    assert repo == "bookkeeper"

    owner, repo = parse_repo_url("https://github.com/user/repo/")
    assert owner == "user"
    assert repo == "repo"

    owner, repo = parse_repo_url("https://github.com/apache/openjpa.git")
    assert owner == "apache"
    assert repo == "openjpa"


def test_github_list_tags_paginates():
    from method_diviner.github import GitHubClient

    session = mock.Mock()
    session.get.side_effect = [
        _response([{'name': f'v1.{i}'} for i in range(100)]),
        _response([{'name': 'v2.0'}]),
    ]
    tags = GitHubClient(session=session).list_tags('apache', 'bookkeeper')

    assert len(tags) == 101
    assert tags[-1] == 'v2.0'
    assert session.get.call_args_list[1].kwargs['params'] == {'per_page': 100, 'page': 2}


def test_github_errors_name_repo():
    from method_diviner.github import GitHubClient, GitHubError

    session = mock.Mock()
    session.get.return_value = _response(status=404)
    with pytest.raises(GitHubError, match='apache/nothing'):
        GitHubClient(session=session).list_tags('apache', 'nothing')


def test_github_download_zipball(tmp_path):
    import shutil
    from method_diviner.github import GitHubClient, find_single_subdir

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w') as zf:
        zf.writestr('apache-demo-abc123/src/main/java/A.java', 'class A {}')
    session = mock.Mock()
    session.get.return_value = _response(content=buf.getvalue())

    target = GitHubClient(session=session).download_zipball('apache', 'demo', 'v1.0')
    try:
        root = find_single_subdir(target)
        assert root.name == 'apache-demo-abc123'
        assert (root / 'src' / 'main' / 'java' / 'A.java').read_text() == 'class A {}'
    finally:
        shutil.rmtree(target, ignore_errors=True)


def test_find_single_subdir_requires_one(tmp_path):
    from method_diviner.github import GitHubError, find_single_subdir

    (tmp_path / 'a').mkdir()
    (tmp_path / 'b').mkdir()
    with pytest.raises(GitHubError):
        find_single_subdir(tmp_path)


# =============================================================================
# VCS TESTS
# =============================================================================

def test_parse_ls_remote_prefers_peeled():
    from method_diviner.vcs import parse_ls_remote

    output = (
        "1111111111111111111111111111111111111111\trefs/tags/v1.0\n"
        "2222222222222222222222222222222222222222\trefs/tags/v1.0^{}\n"
        "3333333333333333333333333333333333333333\trefs/tags/v1.1\n"
        "4444444444444444444444444444444444444444\trefs/heads/main\n"
    )
    tags = parse_ls_remote(output)
    assert [(t.name, t.commit_hash[0]) for t in tags] == [('v1.0', '2'), ('v1.1', '3')]


# =============================================================================
# INTEGRATION TESTS
# =============================================================================

def test_package_imports():
    """Main package should import all public APIs"""
    from method_diviner import (
        DEFAULT_PROJECTS,
        ProjectConfig,
        compare,
        select_releases,
        index_methods,
        parse_unified_diff,
        FixCommitLinker,
        HistoryAggregator,
        BuggyInfo,
        walk_and_extract,
        build_buggy_info,
        run_project,
        diagnose_dataset,
    )


def test_package_version():
    """Package should have version"""
    import method_diviner
    assert hasattr(method_diviner, '__version__')
    assert method_diviner.__version__


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
