"""GitHub REST client used to discover source repositories."""

from typing import Any

import httpx

from ..core.exceptions import ApiError
from ..migration.base import RemoteLister
from ..models.remote import SourceRepo
from .base import ApiClient

PAGE_SIZE = 100


class GitHubClient(ApiClient, RemoteLister):
    """Lists the public repositories of a GitHub organization."""

    service_name = "GitHub"

    def __init__(
        self,
        token: str,
        org: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float = 1.0,
    ):
        super().__init__(
            base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout,
            transport=transport,
            retry_delay=retry_delay,
        )
        self.org = org

    def _error_for(self, response: httpx.Response) -> ApiError:
        rate_limited = response.status_code == 429 or (
            response.status_code == 403
            and response.headers.get("x-ratelimit-remaining") == "0"
        )
        if rate_limited:
            return ApiError(
                f"GitHub API rate limit exceeded: {response.status_code} "
                f"(reset at {response.headers.get('x-ratelimit-reset', 'unknown')})",
                status_code=429,
                response_text=response.text,
            )
        return super()._error_for(response)

    @staticmethod
    def _to_source_repo(data: dict[str, Any]) -> SourceRepo:
        full_name = data["full_name"]
        return SourceRepo(
            name=data["name"],
            full_name=full_name,
            clone_url=data.get("clone_url") or f"https://github.com/{full_name}.git",
            description=data.get("description"),
            is_private=data.get("private", False),
            default_branch=data.get("default_branch") or "main",
            has_wiki=data.get("has_wiki") or False,
            has_issues=data.get("has_issues", True),
            pushed_at=data.get("pushed_at"),
        )

    async def list_repos(self) -> list[SourceRepo]:
        """List public, non-archived repositories of the organization."""
        repos: list[SourceRepo] = []
        self.logger.info("Fetching public repos", org=self.org)

        url: str | None = f"/orgs/{self.org}/repos"
        params: dict[str, Any] | None = {"type": "public", "per_page": PAGE_SIZE}
        while url:
            response = await self.request("GET", url, params=params, retry=True)
            for data in response.json():
                if data.get("private") or data.get("archived"):
                    continue
                repos.append(self._to_source_repo(data))
            self.logger.debug("Fetched repos so far", count=len(repos))

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None

        self.logger.info("Total public repos found", org=self.org, count=len(repos))
        return repos

    async def get_repo(self, name: str) -> SourceRepo | None:
        try:
            response = await self.request("GET", f"/repos/{self.org}/{name}", retry=True)
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return self._to_source_repo(response.json())
