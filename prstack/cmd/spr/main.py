"""CLI entry point."""

import os
import sys
import click
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar
from click import Context

from ... import setup_logging
from ...config import Config, default_config
from ...config.config_parser import parse_config
from ...git import RealGit
from ...github import GitHubClient
from ...github.adapters import create_github
from ...spr import StackedPR
from ...typing import GitHubAuthError, PrstackError

# Get module logger
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

# Exit code used when no usable GitHub credential is available
EXIT_AUTH = 3

class AliasedGroup(click.Group):
    """Command group with support for aliases."""

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None, **attrs: Any) -> None:
        """Initialize with aliases map."""
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def add_alias(self, alias: str, command: str) -> None:
        """Add an alias for a command."""
        self.aliases[alias] = command

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, supporting aliases."""
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        return super().get_command(ctx, cmd_name)

@click.group(cls=AliasedGroup)
@click.pass_context
def cli(ctx: Context) -> None:
    """prstack - Stacked Pull Requests on GitHub."""
    ctx.obj = {}

cli.add_alias('up', 'update')
cli.add_alias('st', 'status')

def common_options(func: F) -> F:
    """Options shared by every command."""
    func = click.option('-v', '--verbose', count=True,
                        help="Increase verbosity (can be used multiple times for more verbosity)")(func)
    func = click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
                        help='Run as if prstack was started in DIRECTORY instead of the current working directory')(func)
    return func

def setup_git(directory: Optional[str] = None) -> Tuple[Config, RealGit, GitHubClient]:
    """Setup Git command, config and GitHub client."""
    if directory:
        os.chdir(directory)

    git_cmd = RealGit(default_config())
    repo_root = Path(git_cmd.must_git("rev-parse --show-toplevel").strip())

    config = Config(parse_config(git_cmd, repo_root=repo_root))
    git_cmd = RealGit(config)
    github = GitHubClient(config, create_github(config))
    return config, git_cmd, github

def run(action: Callable[[], Any]) -> None:
    """Run a command body; errors end the process here and nowhere else."""
    try:
        action()
    except GitHubAuthError as e:
        click.echo(str(e), err=True)
        sys.exit(EXIT_AUTH)
    except PrstackError as e:
        logger.error(f"{e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        logger.debug("Traceback", exc_info=True)
        sys.exit(1)

@cli.command(name="update", help="Update and create pull requests for updated commits in the stack")
@common_options
@click.option('--reviewer', '-r', multiple=True,
              help="Add the specified reviewer to newly created pull requests")
@click.option('--count', '-c', type=int,
              help="Update a specified number of pull requests from the bottom of the stack")
@click.option('--no-rebase', '-nr', is_flag=True, help="Disable rebasing")
@click.option('--pretend', is_flag=True, help="Don't actually push or create/update pull requests, just show what would happen")
def update(directory: Optional[str], verbose: int, reviewer: List[str],
           count: Optional[int], no_rebase: bool, pretend: bool) -> None:
    """Update command."""
    setup_logging(verbose)

    def action() -> None:
        config, git_cmd, github = setup_git(directory)
        if no_rebase:
            config.user.no_rebase = True
        if pretend:
            config.tool.pretend = True
        stackedpr = StackedPR(config, github, git_cmd)
        stackedpr.update_pull_requests(list(reviewer) if reviewer else None, count)

    run(action)

@cli.command(name="status", help="Show status of open pull requests")
@common_options
def status(directory: Optional[str], verbose: int) -> None:
    """Status command."""
    setup_logging(verbose)

    def action() -> None:
        config, git_cmd, github = setup_git(directory)
        StackedPR(config, github, git_cmd).status_pull_requests()

    run(action)

@cli.command(name="merge", help="Merge all mergeable pull requests")
@common_options
@click.option('--count', '-c', type=int,
              help="Merge a specified number of pull requests from the bottom of the stack")
@click.option('--no-rebase', '-nr', is_flag=True, help="Disable rebasing")
def merge(directory: Optional[str], verbose: int, count: Optional[int], no_rebase: bool) -> None:
    """Merge command."""
    setup_logging(verbose)

    def action() -> None:
        config, git_cmd, github = setup_git(directory)
        if no_rebase:
            config.user.no_rebase = True
        StackedPR(config, github, git_cmd).merge_pull_requests(count)

    run(action)

def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
