"""
GitHub integration

Resolves which GitHub instance the runners live on and reads the runners
registered for an organization or repository.
"""

import asyncio
from functools import partial
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import urlparse

import requests
import structlog

from runner_pool.common.constants import (
    DATA_RESIDENCY_SUFFIX,
    GITHUB_API_URL,
    GITHUB_API_VERSION,
    GITHUB_BASE_URL,
    GITHUB_PAGE_SIZE,
    TIMEOUTS,
)
from runner_pool.common.errors import ConfigurationError, InventoryFetchError
from runner_pool.common.schemas import GitHubUrls, RegisteredRunner, RunnerScope


logger = structlog.get_logger(__name__)


def get_github_enterprise_urls(ghes_url: Optional[str]) -> GitHubUrls:
    """
    Resolve API and web URLs for a configured GitHub base URL.

    - empty: github.com
    - ``*.ghe.com`` (Enterprise Cloud with data residency): ``https://api.<host>``
    - anything else (Enterprise Server): ``<base>/api/v3``
    """
    base_url = (ghes_url or "").strip().rstrip("/")
    if not base_url:
        return GitHubUrls(api_url=GITHUB_API_URL, base_url=GITHUB_BASE_URL)

    host = urlparse(base_url).hostname
    if not host:
        raise ConfigurationError(f"Invalid GitHub Enterprise URL: {ghes_url!r}")

    if host.endswith(DATA_RESIDENCY_SUFFIX):
        api_url = f"https://api.{host}"
    else:
        api_url = f"{base_url}/api/v3"
    return GitHubUrls(api_url=api_url, base_url=base_url)


class GitHubClient:
    """Minimal authenticated GitHub REST client"""
    
    def __init__(
        self,
        token: Optional[str],
        api_url: str = GITHUB_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = TIMEOUTS["GITHUB_REQUEST"],
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
    
    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        response = self.session.get(f"{self.api_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response
    
    def iter_pages(self, path: str, key: str) -> Iterator[Dict[str, Any]]:
        """Yield the items under ``key`` across every page of a list endpoint"""
        response = self.get(path, params={"per_page": GITHUB_PAGE_SIZE})
        while True:
            yield from response.json().get(key, [])
            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                return
            response = self.session.get(next_url, timeout=self.timeout)
            response.raise_for_status()
    
    def close(self) -> None:
        self.session.close()


def _runners_path(scope: RunnerScope) -> str:
    if scope.is_org:
        return f"/orgs/{scope.owner}/actions/runners"
    org, repo = scope.org_and_repo()
    return f"/repos/{org}/{repo}/actions/runners"


def _to_registered_runner(item: Dict[str, Any]) -> RegisteredRunner:
    return RegisteredRunner(
        id=item["id"],
        name=item["name"],
        status=item["status"],
        busy=bool(item.get("busy", False)),
        labels={label["name"] for label in item.get("labels", []) if label.get("name")},
    )


def list_registered_runners(client: GitHubClient, scope: RunnerScope) -> List[RegisteredRunner]:
    """
    List every runner registered at the scope, offline ones included.

    Raises:
        InventoryFetchError: If GitHub cannot be read or returns malformed runners
    """
    path = _runners_path(scope)
    try:
        runners = [_to_registered_runner(item) for item in client.iter_pages(path, "runners")]
    except requests.RequestException as e:
        raise InventoryFetchError("github", str(e)) from e
    except (KeyError, TypeError, ValueError) as e:
        raise InventoryFetchError("github", f"unexpected runner payload: {e}") from e
    
    logger.debug("Listed registered runners", owner=scope.owner, count=len(runners))
    return runners


class RegisteredRunnerReader:
    """Async adapter over :func:`list_registered_runners`"""
    
    async def list_runners(self, client: GitHubClient, scope: RunnerScope) -> List[RegisteredRunner]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(list_registered_runners, client, scope))
