"""Repository and pull request models.

This module defines the read-only inputs of a clone operation:
- CloneStrategy: How the pull request's head state is reconstructed
- Repository: A git repository reachable over HTTPS
- PullRequest: A pull request against a base repository

Models are frozen. Any URL rewriting produces a new instance via
``model_copy(update=...)`` so authenticated URLs never leak back into
values shared with the caller.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

UNAUTHENTICATED_MARKER = "://:"


class CloneStrategy(str, Enum):
    """Strategies for reconstructing a pull request's head state.

    Attributes:
        MERGE_SIMULATED: Clone the base branch and merge the pull request
            head into it with a forced merge commit.
        FAST_CHECKOUT: Clone the head branch tip directly at depth 1.
    """

    MERGE_SIMULATED = "merge"
    FAST_CHECKOUT = "branch"


class Repository(BaseModel):
    """A git repository hosted on a VCS server.

    ``clone_url`` may contain the empty-auth marker ``"://:"`` which is
    replaced with installation credentials right before use.
    ``sanitized_clone_url`` is the display form and never holds a secret.

    Attributes:
        full_name: Repository identifier in "owner/name" form.
        owner: Repository owner (user or organization).
        name: Repository name without the owner prefix.
        clone_url: URL passed to git; may embed credentials.
        sanitized_clone_url: URL safe for logs and error messages.
        hostname: VCS hostname (e.g., "github.com").
    """

    model_config = ConfigDict(frozen=True)

    full_name: str = Field(
        ...,
        min_length=3,
        pattern=r"^[^/]+/[^/]+$",
        description="Repository identifier in owner/name form",
    )

    owner: str = Field(
        ...,
        min_length=1,
        description="Repository owner (user or organization)",
    )

    name: str = Field(
        ...,
        min_length=1,
        description="Repository name without the owner prefix",
    )

    clone_url: str = Field(
        ...,
        min_length=1,
        description="Clone URL, possibly carrying the empty-auth marker",
    )

    sanitized_clone_url: str = Field(
        ...,
        min_length=1,
        description="Clone URL safe to display; never holds a secret",
    )

    hostname: str = Field(
        default="github.com",
        min_length=1,
        description="VCS hostname",
    )

    @classmethod
    def from_full_name(cls, full_name: str, hostname: str = "github.com") -> "Repository":
        """Build an HTTPS repository awaiting credential injection.

        Args:
            full_name: Repository identifier in "owner/name" form.
            hostname: VCS hostname.

        Returns:
            Repository whose clone URLs carry the empty-auth marker.
        """
        owner, _, name = full_name.partition("/")
        url = f"https{UNAUTHENTICATED_MARKER}@{hostname}/{full_name}.git"
        return cls(
            full_name=full_name,
            owner=owner,
            name=name,
            clone_url=url,
            sanitized_clone_url=url,
            hostname=hostname,
        )


class PullRequest(BaseModel):
    """A pull request whose head state should be materialized.

    Attributes:
        num: Pull request number within the base repository.
        base_repo: Repository the pull request targets.
        head_branch: Source branch of the pull request.
        base_branch: Target branch of the pull request.
        head_commit: SHA of the head tip as reported by the VCS. Empty
            when unknown, which forces a fresh clone every time.
    """

    model_config = ConfigDict(frozen=True)

    num: int = Field(
        ...,
        gt=0,
        description="Pull request number (positive integer)",
    )

    base_repo: Repository = Field(
        ...,
        description="Repository the pull request targets",
    )

    head_branch: str = Field(
        ...,
        min_length=1,
        description="Source branch of the pull request",
    )

    base_branch: str = Field(
        ...,
        min_length=1,
        description="Target branch of the pull request",
    )

    head_commit: str = Field(
        default="",
        description="SHA of the head tip, empty when unknown",
    )
