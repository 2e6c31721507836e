"""Codeberg (Gitea API) client used as the migration target."""

from datetime import datetime
from typing import Any

import httpx

from ..core.exceptions import ApiError
from ..migration.base import ApiMigrator
from ..models.remote import MigrateOptions, SourceRepo, TargetRepo
from .base import ApiClient

PAGE_SIZE = 50
MIGRATING_MARKER = "migrating from..."


class CodebergClient(ApiClient, ApiMigrator):
    """Gitea API client scoped to one target organization."""

    service_name = "Codeberg"

    def __init__(
        self,
        token: str,
        org: str,
        base_url: str = "https://codeberg.org/api/v1",
        source_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float = 1.0,
    ):
        super().__init__(
            base_url,
            headers={
                "Authorization": f"token {token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
            retry_delay=retry_delay,
        )
        self.org = org
        self.source_token = source_token

    async def get_repo(self, name: str) -> TargetRepo | None:
        try:
            data = await self.request_json("GET", f"/repos/{self.org}/{name}", retry=True)
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return TargetRepo(**_repo_fields(data))

    async def exists(self, name: str) -> bool:
        return await self.get_repo(name) is not None

    def build_migrate_payload(self, repo: SourceRepo, options: MigrateOptions) -> dict[str, Any]:
        """Payload for ``POST /repos/migrate``.

        ``service`` must be ``github`` so Gitea imports issues and pull
        requests; a plain ``git`` migration only copies the repository.
        """
        wiki = options.wiki if options.wiki is not None else repo.has_wiki
        return {
            "clone_addr": repo.clone_url,
            "repo_name": repo.name,
            "repo_owner": self.org,
            "service": "github",
            "auth_token": self.source_token or "",
            "mirror": False,
            "private": repo.is_private,
            "description": repo.description or "",
            "issues": options.issues,
            "pull_requests": options.pull_requests,
            "labels": options.labels,
            "milestones": options.milestones,
            "releases": options.releases,
            "wiki": wiki,
        }

    async def migrate(self, repo: SourceRepo, options: MigrateOptions) -> None:
        self.logger.info("Starting migration via Gitea API", repo=repo.name)
        await self.request(
            "POST",
            "/repos/migrate",
            json=self.build_migrate_payload(repo, options),
            retry=True,
        )

    async def delete_repo(self, name: str) -> None:
        self.logger.info("Deleting repo", repo=f"{self.org}/{name}")
        await self.request("DELETE", f"/repos/{self.org}/{name}")

    async def list_org_repos(self) -> list[TargetRepo]:
        """List every repository in the target organization."""
        repos: list[TargetRepo] = []
        page = 1
        while True:
            batch = await self.request_json(
                "GET",
                f"/orgs/{self.org}/repos",
                params={"page": page, "limit": PAGE_SIZE},
                retry=True,
            )
            if not batch:
                break
            repos.extend(TargetRepo(**_repo_fields(data)) for data in batch)
            if len(batch) < PAGE_SIZE:
                break
            page += 1
        return repos

    async def last_commit_date(self, name: str) -> datetime | None:
        """Date of the newest commit, or None for empty or missing repositories."""
        try:
            commits = await self.request_json(
                "GET",
                f"/repos/{self.org}/{name}/commits",
                params={"limit": 1},
                retry=True,
            )
        except ApiError as e:
            # 409 = empty repo, 404 = not found
            if e.status_code in (404, 409):
                return None
            raise
        if not commits:
            return None
        created = commits[0].get("created") or commits[0].get("commit", {}).get(
            "committer", {}
        ).get("date")
        return datetime.fromisoformat(created.replace("Z", "+00:00")) if created else None

    async def is_migrating(self, html_url: str) -> bool:
        """Whether the repository page still shows Gitea's "migrating" placeholder."""
        response = await self.request("GET", html_url, retry=True)
        return MIGRATING_MARKER in response.text.lower()


def _repo_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": data.get("id"),
        "name": data["name"],
        "full_name": data.get("full_name", ""),
        "clone_url": data.get("clone_url", ""),
        "html_url": data.get("html_url", ""),
        "updated_at": data.get("updated_at"),
    }
