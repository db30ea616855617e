"""Cloner interface and the token-rotating decorator.

A Cloner materializes a pull request checkout for one workspace. Two
implementations exist:
- WorkspaceProvisioner (prworkspace.workspace): runs git directly
- TokenRotatingCloner: refreshes an installation token before every clone
  and delegates to another Cloner

Installation tokens expire quickly, so TokenRotatingCloner never caches
rewritten repositories; each clone derives fresh, operation-scoped values.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from prworkspace.credentials import (
    CredentialProvider,
    configure_git_credential_helper,
    write_git_credentials,
)
from prworkspace.errors import ConfigError, CredentialError
from prworkspace.models import UNAUTHENTICATED_MARKER, PullRequest, Repository
from prworkspace.runner import CommandRunner

INSTALLATION_TOKEN_USERNAME = "x-access-token"


@dataclass
class ClonedWorkspace:
    """Result of a clone.

    Attributes:
        path: Directory holding the checkout.
        fresh: True when the directory was (re)built by this call, False
            when an up-to-date checkout was reused.
    """

    path: Path
    fresh: bool


class Cloner(ABC):
    """Materializes and manages pull request checkouts."""

    @abstractmethod
    def clone(
        self,
        log: Any,
        head_repo: Repository,
        pr: PullRequest,
        workspace: str,
    ) -> ClonedWorkspace:
        """Make sure the checkout for a pull request workspace exists.

        Args:
            log: structlog-compatible logger for this operation.
            head_repo: Repository holding the pull request's head branch.
            pr: The pull request to check out.
            workspace: Workspace name within the pull request.

        Returns:
            ClonedWorkspace with the checkout path.

        Raises:
            WorkspaceProvisionError: If the checkout cannot be produced.
        """

    @abstractmethod
    def get_working_dir(
        self, repo: Repository, pull_num: int, workspace: str
    ) -> Optional[Path]:
        """Return the checkout directory if it exists, else None."""

    @abstractmethod
    def delete(self, repo: Repository, pull_num: int) -> None:
        """Delete every workspace checkout of a pull request."""

    @abstractmethod
    def delete_for_workspace(
        self, repo: Repository, pull_num: int, workspace: str
    ) -> None:
        """Delete one workspace checkout of a pull request."""


def rewrite_clone_urls(repo: Repository, token: str) -> Repository:
    """Return a copy of repo with the installation token injected.

    The first ``"://:"`` marker in ``clone_url`` becomes
    ``"://x-access-token:<token>"`` with the token percent-encoded, so
    reserved characters cannot end the userinfo early. The first marker in
    ``sanitized_clone_url`` becomes ``"://x-access-token:"``. URLs without
    the marker are returned unchanged.

    Args:
        repo: Repository whose URLs may carry the empty-auth marker.
        token: Installation token.

    Returns:
        A new Repository; the input is not modified.
    """
    auth_fragment = f"://{INSTALLATION_TOKEN_USERNAME}:{quote(token, safe='')}"
    display_fragment = f"://{INSTALLATION_TOKEN_USERNAME}:"
    return repo.model_copy(
        update={
            "clone_url": repo.clone_url.replace(
                UNAUTHENTICATED_MARKER, auth_fragment, 1
            ),
            "sanitized_clone_url": repo.sanitized_clone_url.replace(
                UNAUTHENTICATED_MARKER, display_fragment, 1
            ),
        }
    )


class TokenRotatingCloner(Cloner):
    """Cloner that refreshes the installation token before every clone.

    Each clone fetches a new token, stores it in the git credential file
    for the configured host, injects it into the base and head clone URLs
    and hands the rewritten values to the wrapped cloner. Nothing is
    retried; a failure before delegation leaves the wrapped cloner
    untouched.

    Attributes:
        delegate: The Cloner that performs the checkout.
        credentials: Source of installation tokens.
        github_hostname: Host the credential entry is written for.
        home_dir: Directory holding the credential file; defaults to the
            invoking user's home directory.
        git_config_runner: When set, used to point global git config at the
            credential store after each write.
    """

    def __init__(
        self,
        delegate: Cloner,
        credentials: CredentialProvider,
        github_hostname: str,
        home_dir: Optional[Path] = None,
        git_config_runner: Optional[CommandRunner] = None,
    ):
        self.delegate = delegate
        self.credentials = credentials
        self.github_hostname = github_hostname
        self.home_dir = home_dir
        self.git_config_runner = git_config_runner

    def clone(
        self,
        log: Any,
        head_repo: Repository,
        pr: PullRequest,
        workspace: str,
    ) -> ClonedWorkspace:
        """Refresh credentials and delegate the clone.

        Raises:
            CredentialError: If the provider fails to return a token.
            ConfigError: If the home directory cannot be resolved.
            WorkspaceIOError: If the credential file cannot be written.
            WorkspaceProvisionError: Anything raised by the delegate.
        """
        log.info("refreshing git tokens for installation")

        try:
            token = self.credentials.get_token()
        except Exception as exc:
            raise CredentialError(
                f"getting installation token: {exc}"
            ) from exc
        if not token:
            raise CredentialError("getting installation token: provider returned an empty token")

        home = self._resolve_home_dir()
        write_git_credentials(
            INSTALLATION_TOKEN_USERNAME,
            token,
            self.github_hostname,
            home,
            log,
            overwrite=True,
        )
        if self.git_config_runner is not None:
            configure_git_credential_helper(
                self.git_config_runner, home, self.github_hostname, log
            )

        authed_pr = pr.model_copy(
            update={"base_repo": rewrite_clone_urls(pr.base_repo, token)}
        )
        authed_head_repo = rewrite_clone_urls(head_repo, token)

        return self.delegate.clone(log, authed_head_repo, authed_pr, workspace)

    def get_working_dir(
        self, repo: Repository, pull_num: int, workspace: str
    ) -> Optional[Path]:
        return self.delegate.get_working_dir(repo, pull_num, workspace)

    def delete(self, repo: Repository, pull_num: int) -> None:
        self.delegate.delete(repo, pull_num)

    def delete_for_workspace(
        self, repo: Repository, pull_num: int, workspace: str
    ) -> None:
        self.delegate.delete_for_workspace(repo, pull_num, workspace)

    def _resolve_home_dir(self) -> Path:
        if self.home_dir is not None:
            return Path(self.home_dir)
        try:
            return Path.home()
        except (KeyError, RuntimeError) as exc:
            raise ConfigError(
                "getting home dir to write ~/.git-credentials file"
            ) from exc
