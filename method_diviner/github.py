"""
GitHub API integration for release tags and source zipballs.
"""

import io
import shutil
import tempfile
import time
import zipfile
from pathlib import Path

import requests

from .config import GITHUB_TOKEN, GITHUB_API_BASE, GITHUB_PAGE_SIZE, HTTP_TIMEOUT


class GitHubError(Exception):
    """A forge request failed; the message names the repository"""


def parse_repo_url(url: str) -> tuple[str, str]:
    """Extract owner and repo name from GitHub URL"""
    # Handle: https://github.com/owner/repo, github.com/owner/repo or a .git clone URL
    parts = url.rstrip('/').split('/')
    repo = parts[-1][:-4] if parts[-1].endswith('.git') else parts[-1]
    return parts[-2], repo


def find_single_subdir(path) -> Path:
    """The only directory inside path (zipballs wrap the tree in one folder)"""
    subdirs = [p for p in Path(path).iterdir() if p.is_dir()]
    if len(subdirs) != 1:
        raise GitHubError(f"Expected one top-level directory in {path}, found {len(subdirs)}")
    return subdirs[0]


class GitHubClient:
    """Paginated tag listing and zipball downloads for one session"""

    def __init__(self, session: requests.Session = None):
        self.api_calls = 0
        if session:
            self.session = session
        else:
            self.session = requests.Session()
            if GITHUB_TOKEN:
                self.session.headers['Authorization'] = f'token {GITHUB_TOKEN}'
            self.session.headers['Accept'] = 'application/vnd.github.v3+json'
            self.session.headers['User-Agent'] = 'Method-Diviner'

    def _get(self, url: str, what: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.get(url, timeout=HTTP_TIMEOUT, **kwargs)
            self.api_calls += 1
        except requests.RequestException as e:
            raise GitHubError(f"{what}: {e}") from e
        if resp.status_code == 403:
            print(f"  Rate limited by GitHub API. Set GITHUB_TOKEN env var for 5000/hr limit.", flush=True)
        if resp.status_code != 200:
            raise GitHubError(f"{what}: HTTP {resp.status_code}")
        return resp

    def list_tags(self, owner: str, repo: str) -> list[str]:
        """All tag names, 100 per page until a short page comes back"""
        tags = []
        page = 1
        while True:
            url = f'{GITHUB_API_BASE}/repos/{owner}/{repo}/tags'
            resp = self._get(url, f'listing tags of {owner}/{repo}',
                             params={'per_page': GITHUB_PAGE_SIZE, 'page': page})
            batch = resp.json()
            tags.extend(t['name'] for t in batch)
            if len(batch) < GITHUB_PAGE_SIZE:
                break
            page += 1
            # Rate limit: small delay between calls
            if self.api_calls % 10 == 0:
                time.sleep(0.5)
        return tags

    def download_zipball(self, owner: str, repo: str, tag: str) -> Path:
        """
        Download the source archive of a tag and unpack it into a temp dir.

        The caller owns the returned directory and must remove it.
        """
        url = f'{GITHUB_API_BASE}/repos/{owner}/{repo}/zipball/{tag}'
        resp = self._get(url, f'downloading {owner}/{repo}@{tag}')
        target = Path(tempfile.mkdtemp(prefix=f'{repo}-{tag}-'))
        try:
            with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
                zf.extractall(target)
        except zipfile.BadZipFile as e:
            shutil.rmtree(target, ignore_errors=True)
            raise GitHubError(f"downloading {owner}/{repo}@{tag}: {e}") from e
        return target

    def get_stats(self) -> dict:
        """Return API usage statistics"""
        return {'api_calls': self.api_calls}
