"""Git interfaces and implementation."""

import os
import re
import shlex
import logging
from typing import Dict, List, Optional, Tuple
import git
from git.exc import GitCommandError, InvalidGitRepositoryError
from ..typing import (
    Commit, CommitID, GitInterface, MissingCommitIDError, DuplicateCommitIDError,
)
from ..config.models import PrstackConfig
from ..util import short_hash

# Get module logger
logger = logging.getLogger(__name__)

COMMIT_HASH_REGEX = re.compile(r'^commit ([a-f0-9]{40})')
COMMIT_ID_REGEX = re.compile(r'commit-id:([a-f0-9]{8})')

def get_local_branch_name(git_cmd: GitInterface) -> str:
    """Get the name of the checked out local branch."""
    branch = git_cmd.must_git("rev-parse --abbrev-ref HEAD").strip()
    if not branch or branch == "HEAD":
        raise Exception("cannot determine local git branch name (detached HEAD?)")
    return branch

def get_remote_branch_name(git_cmd: GitInterface, config: PrstackConfig) -> str:
    """Get the remote branch the stack for the current local branch lands on."""
    local_branch = get_local_branch_name(git_cmd)
    for remote_branch in config.repo.remote_branches:
        if local_branch == remote_branch:
            return remote_branch
    return config.repo.github_branch

def get_local_commit_stack(config: PrstackConfig, git_cmd: GitInterface) -> List[Commit]:
    """Get local commit stack. Returns commits ordered with bottom commit first."""
    remote = config.repo.github_remote
    target = get_remote_branch_name(git_cmd, config)
    commit_log = git_cmd.must_git(f"log --format=medium --no-color {remote}/{target}..HEAD")

    commits, valid = parse_local_commit_stack(commit_log)
    logger.debug(f"get_local_commit_stack: parsed {len(commits)} commits, valid={valid}")
    for c in commits:
        logger.debug(f"  {short_hash(c.commit_hash)}: id={c.commit_id}, subject='{c.subject}'")

    if not valid:
        raise MissingCommitIDError([c for c in commits if not c.commit_id])

    check_for_duplicate_commit_ids(commits)
    return commits

def parse_local_commit_stack(commit_log: str) -> Tuple[List[Commit], bool]:
    """Parse `git log --format=medium` output into commits.

    Returns (commits, valid). Commits are ordered oldest first. ``valid`` is
    False when any commit lacks a commit-id trailer; such commits are still
    returned, with an empty commit_id, so the caller can report them.
    """
    commits: List[Commit] = []
    if not commit_log.strip():
        return [], True

    valid = True
    scanned: Optional[Commit] = None
    subject_index = 0
    body_lines: List[str] = []

    def finish() -> None:
        nonlocal valid
        if scanned is None:
            return
        if not scanned.commit_id:
            valid = False
        scanned.body = "\n".join(body_lines).strip()
        commits.insert(0, scanned)

    for index, line in enumerate(commit_log.split('\n')):
        hash_match = COMMIT_HASH_REGEX.search(line)
        if hash_match:
            finish()
            scanned = Commit.from_strings("", hash_match.group(1), "")
            # commit, Author, Date, blank, then the indented subject
            subject_index = index + 4
            body_lines = []
            continue

        if scanned is None:
            continue

        id_match = COMMIT_ID_REGEX.search(line)
        if id_match:
            scanned.commit_id = CommitID(id_match.group(1))
            continue

        if index == subject_index:
            scanned.subject = line.strip()
            scanned.wip = scanned.subject.upper().startswith("WIP")
        elif index > subject_index:
            body_lines.append(line.strip())

    finish()
    return commits, valid

def check_for_duplicate_commit_ids(commits: List[Commit]) -> None:
    """Raise DuplicateCommitIDError if two commits share a commit-id."""
    by_id: Dict[str, List[Commit]] = {}
    for commit in commits:
        if not commit.commit_id:
            continue
        by_id.setdefault(commit.commit_id, []).append(commit)

    duplicates = {cid: cs for cid, cs in by_id.items() if len(cs) > 1}
    if duplicates:
        raise DuplicateCommitIDError(duplicates)

class RealGit:
    """Real Git implementation."""
    def __init__(self, config: PrstackConfig):
        """Initialize with config."""
        self.config: PrstackConfig = config

    def run_cmd(self, command: str) -> str:
        """Run git command."""
        cmd_str = command.strip()

        if self.config.tool.pretend and cmd_str.startswith('push'):
            logger.info(f"[PRETEND] > git {cmd_str}")
            return ""

        if self.config.user.log_git_commands:
            logger.info(f"> git {cmd_str}")
        else:
            logger.debug(f"> git {cmd_str}")
        try:
            repo = git.Repo(os.getcwd(), search_parent_directories=True)
            cmd_parts = shlex.split(cmd_str)
            method = getattr(repo.git, cmd_parts[0].replace('-', '_'))
            result = method(*cmd_parts[1:])
            return result if isinstance(result, str) else str(result)
        except GitCommandError as e:
            raise Exception(f"Git command failed: {e}") from e
        except InvalidGitRepositoryError as e:
            raise Exception("Not in a git repository") from e

    def must_git(self, command: str) -> str:
        """Run git command, failing on error."""
        return self.run_cmd(command)
