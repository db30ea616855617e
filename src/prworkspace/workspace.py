"""Workspace provisioning for pull request checkouts.

Builds the source tree a pull request automation run operates on. Each
pull request workspace lives at::

    <data_dir>/repos/<owner>/<name>/<pull number>/<workspace>

and is rebuilt from scratch with one of two strategies:

- MERGE_SIMULATED: shallow clone of the base branch, fetch of
  ``pull/<num>/head`` and a forced ``--no-ff`` merge, so ``HEAD^2`` is
  always the pull request head tip.
- FAST_CHECKOUT: depth-1 clone of the head branch.

Every command line, process output and error text passes through the
credential sanitizer before it is logged or raised.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from prworkspace.cloner import ClonedWorkspace, Cloner
from prworkspace.errors import CloneError, WorkspaceIOError
from prworkspace.models import CloneStrategy, PullRequest, Repository
from prworkspace.runner import CommandRunner, SubprocessRunner
from prworkspace.sanitizer import sanitize_git_credentials

WORKSPACE_DIR_PERMISSIONS = 0o700
MERGE_COMMIT_MESSAGE = "prworkspace-merge"
DEFAULT_CHECKOUT_DEPTH = 50


@dataclass
class WorkspaceConfig:
    """Configuration for workspace provisioning.

    Attributes:
        data_dir: Root directory under which checkouts are created.
        clone_strategy: How the pull request head state is reconstructed.
        checkout_depth: History depth for the merge-simulated clone and
            fetch. The merge base of both branches must lie within it.
        git_user_name: Author and committer name for the merge commit.
        git_user_email: Author and committer email for the merge commit.
        override_head_clone_url: Test-only replacement for the head URL.
        override_base_clone_url: Test-only replacement for the base URL.
    """

    data_dir: Path
    clone_strategy: CloneStrategy = CloneStrategy.FAST_CHECKOUT
    checkout_depth: int = DEFAULT_CHECKOUT_DEPTH
    git_user_name: str = "prworkspace"
    git_user_email: str = "prworkspace@localhost"
    override_head_clone_url: str = ""
    override_base_clone_url: str = ""


class WorkspaceProvisioner(Cloner):
    """Creates and manages pull request checkouts by running git.

    Commands run one at a time through the configured CommandRunner with
    the checkout directory as working directory. The caller owns the
    checkout directory for the duration of a call; no locking is done here.

    Attributes:
        config: Workspace configuration (data dir, strategy, identity).
        runner: CommandRunner used to invoke git.
    """

    def __init__(
        self,
        config: WorkspaceConfig,
        runner: Optional[CommandRunner] = None,
    ):
        self.config = config
        self.runner = runner or SubprocessRunner()

    def clone(
        self,
        log: Any,
        head_repo: Repository,
        pr: PullRequest,
        workspace: str,
    ) -> ClonedWorkspace:
        """Return an up-to-date checkout, cloning only when necessary.

        An existing checkout is reused when the pull request's
        ``head_commit`` is known and matches the checkout's head tip
        (``HEAD^2`` for merge-simulated checkouts, ``HEAD`` otherwise).

        Args:
            log: structlog-compatible logger for this operation.
            head_repo: Repository holding the pull request's head branch.
            pr: The pull request to check out.
            workspace: Workspace name within the pull request.

        Returns:
            ClonedWorkspace with the checkout path and whether it was rebuilt.

        Raises:
            WorkspaceIOError: If the checkout directory cannot be reset.
            CloneError: If any git command fails.
        """
        clone_dir = self._clone_dir(pr.base_repo, pr.num, workspace)

        if clone_dir.is_dir() and self._is_up_to_date(log, clone_dir, head_repo, pr):
            log.info(
                "repo is at correct commit so will not re-clone",
                path=str(clone_dir),
                commit=pr.head_commit,
            )
            return ClonedWorkspace(path=clone_dir, fresh=False)

        self.force_clone(log, clone_dir, head_repo, pr)
        return ClonedWorkspace(path=clone_dir, fresh=True)

    def force_clone(
        self,
        log: Any,
        target_dir: Path,
        head_repo: Repository,
        pr: PullRequest,
    ) -> None:
        """Rebuild target_dir from scratch for the pull request.

        Args:
            log: structlog-compatible logger for this operation.
            target_dir: Directory to (re)create and clone into.
            head_repo: Repository holding the pull request's head branch.
            pr: The pull request to check out.

        Raises:
            WorkspaceIOError: If the directory cannot be removed or created.
            CloneError: If any git command fails. Remaining commands are
                not run.
        """
        # git clone runs with target_dir as cwd, so it must not be relative.
        target_dir = Path(target_dir).absolute()
        self._remove_directory(target_dir)
        log.info("creating dir", path=str(target_dir))
        self._create_workspace_directory(target_dir)
        self._set_directory_permissions(target_dir)

        head_clone_url = self.config.override_head_clone_url or head_repo.clone_url
        base_clone_url = self.config.override_base_clone_url or pr.base_repo.clone_url

        commands = self._build_commands(target_dir, pr, head_clone_url, base_clone_url)
        for args in commands:
            self._run_git(log, args, target_dir, pr.base_repo, head_repo)

    def get_working_dir(
        self, repo: Repository, pull_num: int, workspace: str
    ) -> Optional[Path]:
        clone_dir = self._clone_dir(repo, pull_num, workspace)
        if not clone_dir.is_dir():
            return None
        return clone_dir

    def delete(self, repo: Repository, pull_num: int) -> None:
        self._remove_directory(self._pull_dir(repo, pull_num))

    def delete_for_workspace(
        self, repo: Repository, pull_num: int, workspace: str
    ) -> None:
        self._remove_directory(self._clone_dir(repo, pull_num, workspace))

    def _build_commands(
        self,
        target_dir: Path,
        pr: PullRequest,
        head_clone_url: str,
        base_clone_url: str,
    ) -> list[list[str]]:
        """Select the git command sequence for the configured strategy.

        Args:
            target_dir: Directory the clone lands in.
            pr: The pull request to check out.
            head_clone_url: Effective head repository URL.
            base_clone_url: Effective base repository URL.

        Returns:
            Commands to run in order.
        """
        if self.config.clone_strategy == CloneStrategy.MERGE_SIMULATED:
            depth = f"--depth={self.config.checkout_depth}"
            return [
                [
                    "git", "clone", "--branch", pr.base_branch, depth,
                    "--single-branch", base_clone_url, str(target_dir),
                ],
                ["git", "remote", "add", "head", head_clone_url],
                ["git", "fetch", depth, "head", f"pull/{pr.num}/head:"],
                # --no-ff always creates a merge commit, so HEAD^2 resolves
                # to the head tip even when a fast-forward was possible.
                [
                    "git", "merge", "-q", "--no-ff",
                    "-m", MERGE_COMMIT_MESSAGE, "FETCH_HEAD",
                ],
            ]

        return [
            [
                "git", "clone", "--branch", pr.head_branch, "--depth=1",
                "--single-branch", head_clone_url, str(target_dir),
            ],
        ]

    def _git_env(self) -> dict[str, str]:
        """Identity variables required by ``git merge``."""
        return {
            "EMAIL": self.config.git_user_email,
            "GIT_AUTHOR_NAME": self.config.git_user_name,
            "GIT_AUTHOR_EMAIL": self.config.git_user_email,
            "GIT_COMMITTER_NAME": self.config.git_user_name,
            "GIT_COMMITTER_EMAIL": self.config.git_user_email,
        }

    def _run_git(
        self,
        log: Any,
        args: list[str],
        cwd: Path,
        base_repo: Repository,
        head_repo: Repository,
    ) -> str:
        """Run one git command, sanitizing everything that leaves it.

        Args:
            log: structlog-compatible logger.
            args: The git command line.
            cwd: Working directory.
            base_repo: Base repository, for credential sanitizing.
            head_repo: Head repository, for credential sanitizing.

        Returns:
            The sanitized combined output.

        Raises:
            CloneError: If the command fails.
        """
        result = self.runner.run(args, cwd=cwd, env=self._git_env())

        command = sanitize_git_credentials(" ".join(args), base_repo, head_repo)
        output = sanitize_git_credentials(result.output, base_repo, head_repo)
        if not result.success:
            error = sanitize_git_credentials(result.error or "", base_repo, head_repo)
            raise CloneError(command, output, error)

        log.debug("ran git command", command=command, output=output.rstrip("\n"))
        return output

    def _is_up_to_date(
        self, log: Any, clone_dir: Path, head_repo: Repository, pr: PullRequest
    ) -> bool:
        """Check whether an existing checkout already holds the head commit.

        A failing rev-parse (corrupt or half-built checkout) counts as stale.
        """
        if not pr.head_commit:
            return False

        rev = "HEAD^2" if self.config.clone_strategy == CloneStrategy.MERGE_SIMULATED else "HEAD"
        result = self.runner.run(["git", "rev-parse", rev], cwd=clone_dir)
        if not result.success:
            log.info(
                "will re-clone repo, could not determine current commit",
                path=str(clone_dir),
                error=sanitize_git_credentials(result.error or "", pr.base_repo, head_repo),
            )
            return False

        current_commit = result.output.strip()
        if current_commit != pr.head_commit:
            log.info(
                "repo was already cloned but is not at correct commit, will re-clone",
                path=str(clone_dir),
                wanted=pr.head_commit,
                found=current_commit,
            )
            return False
        return True

    def _pull_dir(self, repo: Repository, pull_num: int) -> Path:
        return self.config.data_dir / "repos" / repo.owner / repo.name / str(pull_num)

    def _clone_dir(self, repo: Repository, pull_num: int, workspace: str) -> Path:
        return self._pull_dir(repo, pull_num) / workspace

    def _remove_directory(self, path: Path) -> None:
        """Recursively delete a directory; a missing directory is fine.

        Raises:
            WorkspaceIOError: If removal fails.
        """
        if not path.exists() and not path.is_symlink():
            return
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as exc:
            raise WorkspaceIOError(
                str(path), f"Failed to delete dir {path} before cloning: {exc}"
            ) from exc

    def _create_workspace_directory(self, workspace_path: Path) -> None:
        """Create the workspace directory and any missing parents.

        Raises:
            WorkspaceIOError: If directory creation fails.
        """
        try:
            workspace_path.mkdir(
                mode=WORKSPACE_DIR_PERMISSIONS, parents=True, exist_ok=True
            )
        except OSError as exc:
            raise WorkspaceIOError(
                str(workspace_path),
                f"Failed to create workspace at {workspace_path}: {exc}",
            ) from exc

    def _set_directory_permissions(self, workspace_path: Path) -> None:
        """Apply the restrictive mode regardless of the process umask.

        Raises:
            WorkspaceIOError: If permission setting fails.
        """
        try:
            workspace_path.chmod(WORKSPACE_DIR_PERMISSIONS)
        except OSError as exc:
            raise WorkspaceIOError(
                str(workspace_path),
                f"Failed to set permissions on {workspace_path}: {exc}",
            ) from exc
