"""Pull request workspace provisioning with rotating installation tokens.

This package materializes the source tree a pull request automation run
operates on:
- Refreshing a short-lived installation token before every clone
- Rebuilding the checkout by merge simulation or direct head checkout
- Scrubbing credentials from every logged or raised string
"""

from prworkspace.cloner import (
    ClonedWorkspace,
    Cloner,
    TokenRotatingCloner,
    rewrite_clone_urls,
)
from prworkspace.credentials import (
    CredentialProvider,
    StaticTokenProvider,
    write_git_credentials,
)
from prworkspace.errors import (
    CloneError,
    ConfigError,
    CredentialError,
    WorkspaceIOError,
    WorkspaceProvisionError,
)
from prworkspace.models import CloneStrategy, PullRequest, Repository
from prworkspace.runner import CommandResult, CommandRunner, SubprocessRunner
from prworkspace.sanitizer import sanitize_git_credentials
from prworkspace.workspace import WorkspaceConfig, WorkspaceProvisioner

__all__ = [
    "CloneError",
    "CloneStrategy",
    "ClonedWorkspace",
    "Cloner",
    "CommandResult",
    "CommandRunner",
    "ConfigError",
    "CredentialError",
    "CredentialProvider",
    "PullRequest",
    "Repository",
    "StaticTokenProvider",
    "SubprocessRunner",
    "TokenRotatingCloner",
    "WorkspaceConfig",
    "WorkspaceIOError",
    "WorkspaceProvisionError",
    "WorkspaceProvisioner",
    "rewrite_clone_urls",
    "sanitize_git_credentials",
    "write_git_credentials",
]
