"""Command-line entry point for prworkspace.

Wires settings, logging and the cloner stack together and exposes a
``clone`` command that materializes one pull request workspace and prints
its path.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import structlog
from pydantic import ValidationError

from prworkspace.cloner import Cloner, TokenRotatingCloner
from prworkspace.config import WorkingDirSettings, get_settings
from prworkspace.credentials import CredentialProvider, StaticTokenProvider
from prworkspace.errors import WorkspaceProvisionError
from prworkspace.models import PullRequest, Repository
from prworkspace.runner import CommandRunner, SubprocessRunner
from prworkspace.workspace import WorkspaceConfig, WorkspaceProvisioner

logger = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog on top of stdlib logging with JSON output."""
    logging.basicConfig(level=getattr(logging, level.upper()), format="%(message)s")
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: WorkingDirSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info(
        "prworkspace configuration",
        github_hostname=settings.github_hostname,
        github_token=_redact_secret(settings.github_token),
        data_dir=settings.data_dir,
        checkout_strategy=settings.checkout_strategy.value,
        checkout_depth=settings.checkout_depth,
        home_dir=settings.home_dir,
        configure_git_helper=settings.configure_git_helper,
    )


def build_cloner(
    settings: WorkingDirSettings,
    credentials: Optional[CredentialProvider] = None,
    runner: Optional[CommandRunner] = None,
) -> Cloner:
    """Wire the token-rotating cloner over a workspace provisioner.

    Args:
        settings: Validated settings.
        credentials: Token source; defaults to the configured static token.
        runner: CommandRunner for git; defaults to SubprocessRunner.

    Returns:
        TokenRotatingCloner wrapping a WorkspaceProvisioner.
    """
    runner = runner or SubprocessRunner()
    provisioner = WorkspaceProvisioner(
        WorkspaceConfig(
            data_dir=Path(settings.data_dir),
            clone_strategy=settings.checkout_strategy,
            checkout_depth=settings.checkout_depth,
            git_user_name=settings.git_user_name,
            git_user_email=settings.git_user_email,
        ),
        runner=runner,
    )
    return TokenRotatingCloner(
        delegate=provisioner,
        credentials=credentials or StaticTokenProvider(settings.github_token),
        github_hostname=settings.github_hostname,
        home_dir=Path(settings.home_dir) if settings.home_dir else None,
        git_config_runner=runner if settings.configure_git_helper else None,
    )


@click.group()
def main() -> None:
    """prworkspace - pull request workspace provisioner."""


@main.command()
@click.option("--repo", "repo_name", required=True, help="Base repository (owner/name)")
@click.option("--pull", "pull_num", required=True, type=int, help="Pull request number")
@click.option("--head-branch", required=True, help="Pull request head branch")
@click.option("--base-branch", required=True, help="Pull request base branch")
@click.option(
    "--head-repo", "head_repo_name", default=None,
    help="Head repository (owner/name), defaults to --repo",
)
@click.option(
    "--head-commit", default="",
    help="Expected head commit; reuses an up-to-date checkout",
)
@click.option("--workspace", default="default", help="Workspace name")
def clone(
    repo_name: str,
    pull_num: int,
    head_branch: str,
    base_branch: str,
    head_repo_name: Optional[str],
    head_commit: str,
    workspace: str,
) -> None:
    """Clone a pull request workspace and print its path."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        click.echo(f"error: invalid configuration: {exc}", err=True)
        sys.exit(1)
    configure_logging(settings.log_level)
    _log_configuration(settings)

    base_repo = Repository.from_full_name(repo_name, settings.github_hostname)
    head_repo = (
        Repository.from_full_name(head_repo_name, settings.github_hostname)
        if head_repo_name
        else base_repo
    )
    pr = PullRequest(
        num=pull_num,
        base_repo=base_repo,
        head_branch=head_branch,
        base_branch=base_branch,
        head_commit=head_commit,
    )

    cloner = build_cloner(settings)
    log = logger.bind(repo=repo_name, pull=pull_num, workspace=workspace)
    try:
        result = cloner.clone(log, head_repo, pr, workspace)
    except WorkspaceProvisionError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)

    log.info("workspace ready", path=str(result.path), fresh=result.fresh)
    click.echo(str(result.path))


if __name__ == "__main__":
    main()
