"""
Target resolver - finds the merge target of the current branch.

Looks up open GitLab merge requests whose source branch is the current
branch and returns the declared target branch of the first match.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Union

import httpx

from changetest.domain.exceptions import (
    ConfigurationError,
    NoReviewFoundError,
    ReviewLookupError,
)

logger = logging.getLogger(__name__)

PER_PAGE = 100


class GitLabTargetResolver:
    """
    HTTP client for the GitLab merge request API (v4).

    Attributes:
        server_url: Base URL of the GitLab server
        token: Personal or project access token
        project_id: Numeric project id
        timeout: HTTP request timeout in seconds

    Examples:
        with GitLabTargetResolver(url, token, 42) as resolver:
            target = resolver.target_branch_for("feature/login")
    """

    def __init__(
        self,
        server_url: Optional[str],
        token: Optional[str],
        project_id: Optional[Union[int, str]],
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize resolver. No network call is made here.

        Args:
            server_url: GitLab URL (e.g. "https://gitlab.example.com")
            token: API token sent as PRIVATE-TOKEN
            project_id: Project to read merge requests from (numeric, may be
                        given as text; checked by validate())
            timeout: HTTP request timeout in seconds
            client: Optional preconfigured httpx.Client (not closed by us)
        """
        self.server_url = (server_url or "").strip().rstrip("/")
        self.token = token
        self.project_id = project_id
        self.timeout = timeout

        self._client = client
        self._owns_client = client is None

    def validate(self) -> None:
        """
        Check connection parameters before any remote call.

        Raises:
            ConfigurationError: If server URL, token or project id is
                missing or malformed
        """
        problems = []

        if not self.server_url:
            problems.append("gitlab_server is missing")
        elif not self.server_url.startswith(("http://", "https://")):
            problems.append(f"gitlab_server is not an http(s) URL: {self.server_url}")

        if not self.token or not self.token.strip():
            problems.append("gitlab_token is missing")

        raw_id = str(self.project_id).strip() if self.project_id is not None else ""
        if not raw_id:
            problems.append("gitlab_project_id is missing")
        else:
            try:
                project_id = int(raw_id)
            except ValueError:
                project_id = -1
            if project_id < 0:
                problems.append(f"gitlab_project_id is invalid: {raw_id}")
            else:
                self.project_id = project_id

        if problems:
            raise ConfigurationError(
                "Invalid GitLab configuration. Make sure to provide "
                "gitlab_server, gitlab_project_id and gitlab_token "
                f"({'; '.join(problems)})",
                details={"problems": problems},
            )

    @property
    def client(self) -> httpx.Client:
        """
        Get or create the HTTP client.

        Returns:
            Sync HTTP client instance
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=self.timeout)
            self._owns_client = True

        return self._client

    def target_branch_for(self, current_branch: str) -> str:
        """
        Resolve the target branch of the open merge request for a branch.

        Args:
            current_branch: Source branch of the merge request

        Returns:
            Target branch name

        Raises:
            ConfigurationError: If configuration is invalid or rejected
            NoReviewFoundError: If no open merge request matches
            ReviewLookupError: If the server cannot be queried
        """
        self.validate()

        logger.debug(f"Looking for merge request(s) for '{current_branch}'")

        for merge_request in self._open_merge_requests(current_branch):
            if merge_request.get("source_branch") == current_branch:
                target = merge_request.get("target_branch")
                if target:
                    logger.debug(
                        f"Merge request !{merge_request.get('iid')} "
                        f"targets '{target}'"
                    )
                    return target

        raise NoReviewFoundError(current_branch)

    def _open_merge_requests(self, source_branch: str) -> Iterator[Dict[str, Any]]:
        """Yield open merge requests page by page."""
        url = f"{self.server_url}/api/v4/projects/{self.project_id}/merge_requests"
        page: Optional[str] = "1"

        while page:
            params = {
                "state": "opened",
                "source_branch": source_branch,
                "per_page": str(PER_PAGE),
                "page": page,
            }
            response = self._get(url, params)

            try:
                payload = response.json()
            except ValueError as e:
                # Proxy login pages and wrong base paths answer 200 with HTML
                raise ReviewLookupError(
                    "GitLab returned a non-JSON merge request listing "
                    f"(content-type: {response.headers.get('content-type', '-')})",
                    details={"url": url},
                ) from e

            if not isinstance(payload, list):
                raise ReviewLookupError(
                    "Unexpected merge request listing from GitLab",
                    details={"url": url},
                )

            merge_requests: List[Dict[str, Any]] = payload
            yield from merge_requests

            page = response.headers.get("X-Next-Page") or None

    def _get(self, url: str, params: Dict[str, str]) -> httpx.Response:
        """Send one authenticated GET and map failures."""
        try:
            response = self.client.get(
                url, params=params, headers={"PRIVATE-TOKEN": self.token or ""}
            )
        except httpx.HTTPError as e:
            raise ReviewLookupError(
                f"GitLab request failed: {e}", details={"url": url}
            ) from e

        if response.status_code in (401, 403):
            raise ConfigurationError(
                f"GitLab rejected the token (HTTP {response.status_code})",
                details={"url": url, "status_code": response.status_code},
            )
        if response.status_code == 404:
            raise ConfigurationError(
                f"GitLab project {self.project_id} not found",
                details={"url": url, "status_code": 404},
            )
        if response.is_error:
            raise ReviewLookupError(
                f"GitLab returned HTTP {response.status_code}",
                details={"url": url, "status_code": response.status_code},
            )

        return response

    def close(self) -> None:
        """Close the HTTP client if this resolver created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "GitLabTargetResolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
