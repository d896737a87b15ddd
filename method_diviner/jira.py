"""
Jira REST integration for project versions and tickets.
"""

import requests

from .config import JIRA_BASE_URL, JIRA_USER, JIRA_PASS, JIRA_PAGE_SIZE, HTTP_TIMEOUT
from .linker import is_bug_fix_ticket
from .models import Ticket, Version, _parse_date


class JiraError(Exception):
    """A tracker request failed; the message names the project key"""


def _name(field: dict | None, attr: str = 'name') -> str | None:
    return field.get(attr) if field else None


def parse_version(data: dict) -> Version:
    return Version(name=data.get('name'), release_date=_parse_date(data.get('releaseDate')))


def parse_issue(issue: dict) -> Ticket:
    """Map one issue of a search response onto a Ticket"""
    f = issue.get('fields') or {}
    return Ticket(
        key=issue.get('key') or '',
        issue_type=_name(f.get('issuetype')),
        resolution=_name(f.get('resolution')),
        status=_name(f.get('status')),
        priority=_name(f.get('priority')),
        reporter=_name(f.get('reporter'), 'displayName'),
        assignee=_name(f.get('assignee'), 'displayName'),
        summary=f.get('summary'),
        created=_parse_date(f.get('created')),
        resolution_date=_parse_date(f.get('resolutiondate')),
        updated=_parse_date(f.get('updated')),
        affected_versions=[parse_version(v) for v in f.get('versions') or []],
        fix_versions=[parse_version(v) for v in f.get('fixVersions') or []],
        labels=list(f.get('labels') or []),
        components=[c.get('name') for c in f.get('components') or [] if c.get('name')],
    )


class JiraClient:
    """Read-only access to one Jira instance"""

    def __init__(self, base_url: str = None, session: requests.Session = None):
        self.base_url = (base_url or JIRA_BASE_URL).rstrip('/')
        self.api_calls = 0
        if session:
            self.session = session
        else:
            self.session = requests.Session()
            if JIRA_USER and JIRA_PASS:
                self.session.auth = (JIRA_USER, JIRA_PASS)
            self.session.headers['Accept'] = 'application/json'
            self.session.headers['User-Agent'] = 'Method-Diviner'

    def _get_json(self, url: str, project_key: str, params: dict = None) -> dict:
        try:
            resp = self.session.get(url, params=params, timeout=HTTP_TIMEOUT)
            self.api_calls += 1
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise JiraError(f"Jira request for project {project_key} failed: {e}") from e

    def list_versions(self, project_key: str) -> list[Version]:
        """Versions of a project in tracker order (unsorted, ids unassigned)"""
        data = self._get_json(f'{self.base_url}/rest/api/latest/project/{project_key}', project_key)
        return [parse_version(v) for v in data.get('versions') or [] if v.get('name')]

    def list_tickets(self, project_key: str) -> list[Ticket]:
        """Every ticket of the project, oldest first"""
        url = f'{self.base_url}/rest/api/2/search'
        jql = f'project = {project_key} ORDER BY created ASC'
        tickets = []
        start_at = 0
        total = 1  # dummy value to start
        while start_at < total:
            params = {'jql': jql, 'fields': '*all', 'startAt': start_at, 'maxResults': JIRA_PAGE_SIZE}
            data = self._get_json(url, project_key, params)
            issues = data.get('issues') or []
            total = int(data.get('total', 0))
            tickets.extend(parse_issue(i) for i in issues)
            if not issues:
                break
            start_at += len(issues)
            print(f"  Fetched {len(tickets)} / {total} tickets...", flush=True)
        return tickets

    def list_bug_tickets(self, project_key: str) -> list[Ticket]:
        """Fixed bugs that are closed or resolved"""
        return [t for t in self.list_tickets(project_key) if is_bug_fix_ticket(t)]

    def get_stats(self) -> dict:
        return {'api_calls': self.api_calls}
