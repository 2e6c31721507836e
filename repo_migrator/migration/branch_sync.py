"""Branch and tag synchronization through a git mirror clone and force push."""

import asyncio
import shutil
import tempfile
from pathlib import Path
from urllib.parse import quote, urlsplit, urlunsplit

import structlog

from ..core.retry import retrying
from ..core.subprocess_manager import SubprocessManager, redact
from ..models.remote import SourceRepo, SyncResult
from .base import ContentSyncer
from .classifier import is_transient

logger = structlog.get_logger()

TOKEN_PASSWORD = "x-oauth-basic"


def inject_token(url: str, token: str | None) -> str:
    """Embed a token as HTTPS basic-auth credentials; other URLs pass through."""
    if not token or not url.startswith("https://"):
        return url
    parts = urlsplit(url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote(token, safe='')}:{TOKEN_PASSWORD}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class GitMirrorSyncer(ContentSyncer):
    """Mirror-clone the source repository and force-push every ref to the target."""

    def __init__(
        self,
        target_base_url: str,
        target_org: str,
        work_dir: Path | str,
        source_token: str | None = None,
        target_token: str | None = None,
        subprocess_manager: SubprocessManager | None = None,
        timeout: float = 1800,
        retry_delay: float = 2.0,
    ):
        self.target_base_url = target_base_url.rstrip("/")
        self.target_org = target_org
        self.work_dir = Path(work_dir)
        self.source_token = source_token
        self.target_token = target_token
        self.subprocess_manager = subprocess_manager or SubprocessManager()
        self.timeout = timeout
        self.retry_delay = retry_delay
        self.logger = logger.bind(component="git_mirror_syncer")

    def target_url(self, name: str) -> str:
        return f"{self.target_base_url}/{self.target_org}/{name}.git"

    def _retrying(self, description: str):
        return retrying(description, should_retry=is_transient, initial_delay=self.retry_delay)

    @property
    def _secrets(self) -> list[str | None]:
        return [self.source_token, self.target_token]

    async def _git(self, *args: str, cwd: str | None = None) -> str:
        result = await self.subprocess_manager.run_command(
            ["git", *args],
            timeout=self.timeout,
            cwd=cwd,
            secrets=self._secrets,
        )
        return result.stdout

    async def sync(self, repo: SourceRepo) -> SyncResult:
        """Copy all branches and tags of ``repo`` to the target organization.

        Raises:
            GitCommandError: If cloning or pushing fails after all attempts
        """
        source_url = inject_token(repo.clone_url, self.source_token)
        target_url = inject_token(self.target_url(repo.name), self.target_token)
        log = self.logger.bind(
            repo=repo.name,
            source=repo.clone_url,
            target=redact(target_url, self._secrets),
        )

        await asyncio.to_thread(self.work_dir.mkdir, parents=True, exist_ok=True)
        local_path = await asyncio.to_thread(
            tempfile.mkdtemp, prefix=f"clone-{repo.name}-", dir=self.work_dir
        )
        mirror_path = str(Path(local_path) / "mirror.git")

        try:
            log.info("Cloning source repository (mirror)")
            await self._retrying(f"clone {repo.name}")(self._clone)(source_url, mirror_path)

            refs = await self._git("for-each-ref", "--format=%(refname)", cwd=mirror_path)
            ref_count = len([line for line in refs.splitlines() if line.strip()])
            log.info("Found refs", count=ref_count)

            await self._git("remote", "set-url", "origin", target_url, cwd=mirror_path)

            log.info("Force pushing to target (mirror)")
            await self._retrying(f"push {repo.name}")(self._git)(
                "push", "--mirror", "--force", "origin", cwd=mirror_path
            )

            log.info("Synced refs to target", count=ref_count)
            return SyncResult(success=True, items_processed=ref_count)

        finally:
            try:
                await asyncio.to_thread(shutil.rmtree, local_path)
            except OSError as e:
                log.warning("Failed to cleanup clone directory", path=local_path, error=str(e))

    async def _clone(self, source_url: str, mirror_path: str) -> None:
        # A failed attempt can leave a partial clone behind
        if Path(mirror_path).exists():
            await asyncio.to_thread(shutil.rmtree, mirror_path)
        await self._git("clone", "--mirror", source_url, mirror_path)

