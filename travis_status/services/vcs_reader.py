"""Async git queries for the checked-out branch and commit."""

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from travis_status.services.errors import VCSQueryError
from travis_status.utils.logging import get_logger


logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(slots=True)
class GitResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitStateReader:
    """
    Reads the current branch and commit of a working copy.

    Both queries shell out to ``git`` without blocking the event loop and
    raise ``VCSQueryError`` on any failure, including a timeout.
    """

    def __init__(
        self,
        executable: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.executable = executable or shutil.which("git") or "git"
        self.timeout_seconds = timeout_seconds

    async def current_branch(self, workspace_root: Union[str, Path]) -> str:
        result = await self._invoke(workspace_root, "rev-parse", "--abbrev-ref", "HEAD")
        branch = result.stdout.strip()
        if not branch:
            raise VCSQueryError(f"git reported no branch for {workspace_root}")
        return branch

    async def current_commit(self, workspace_root: Union[str, Path]) -> str:
        result = await self._invoke(workspace_root, "rev-parse", "HEAD")
        commit_id = result.stdout.strip()
        if not commit_id:
            raise VCSQueryError(f"git reported no commit for {workspace_root}")
        return commit_id

    async def _invoke(self, workspace_root: Union[str, Path], *args: str) -> GitResult:
        cmd = [self.executable, *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(workspace_root),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise VCSQueryError(f"Could not run git: {e}") from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise VCSQueryError(
                f"git {' '.join(args)} timed out after {self.timeout_seconds}s"
            ) from e

        result = GitResult(
            args=tuple(cmd),
            returncode=process.returncode,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
        )
        if not result.ok:
            logger.warning(
                f"git {' '.join(args)} failed",
                extra={"workspace": str(workspace_root), "returncode": result.returncode},
            )
            raise VCSQueryError(
                f"git {' '.join(args)} failed: {result.stderr.strip() or result.returncode}"
            )
        return result
