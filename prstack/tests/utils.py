"""Shared utilities for prstack tests."""
import logging
import shlex
from typing import Dict, List, Optional

from prstack.config import Config
from prstack.tests.fake_pygithub import FakeCommit, FakeGithub
from prstack.typing import Commit

logger = logging.getLogger(__name__)

OWNER = "alice"
REPO = "teststack"
REPO_FULL_NAME = f"{OWNER}/{REPO}"

def make_config(**repo: object) -> Config:
    """Config for the test repository, with repo overrides."""
    repo_config: Dict[str, object] = {
        'github_remote': 'origin',
        'github_branch': 'main',
        'github_repo_owner': OWNER,
        'github_repo_name': REPO,
    }
    repo_config.update(repo)
    return Config({'repo': repo_config, 'user': {'no_rebase': True}})

def make_commit(commit_id: str, subject: str, body: str = "", commit_hash: Optional[str] = None) -> Commit:
    """Commit with a hash derived from its id unless one is given."""
    return Commit.from_strings(commit_id, commit_hash or (commit_id * 5), subject, body)

def format_medium_log(commits: List[Commit]) -> str:
    """Render commits (oldest first) the way `git log --format=medium` prints them."""
    chunks: List[str] = []
    for commit in reversed(commits):
        lines = [
            f"commit {commit.commit_hash}",
            "Author: Test User <test@example.com>",
            "Date:   Mon Jan 1 00:00:00 2024 +0000",
            "",
            f"    {commit.subject}",
            "",
        ]
        if commit.body:
            lines.extend(f"    {line}" if line else "" for line in commit.body.split("\n"))
            lines.append("")
        if commit.commit_id:
            lines.append(f"    commit-id:{commit.commit_id}")
            lines.append("")
        chunks.append("\n".join(lines))
    return "\n".join(chunks)

class FakeGit:
    """Scripted git runner backed by a list of local commits.

    Pushes are forwarded to the fake GitHub so pushed branches can be used as
    pull request heads and bases.
    """

    def __init__(self, github: FakeGithub, branch: str = "feature",
                 repository: str = REPO_FULL_NAME) -> None:
        self.github = github
        self.branch = branch
        self.repository = repository
        self.commits: List[Commit] = []
        self.commands: List[str] = []

    def run_cmd(self, command: str) -> str:
        self.commands.append(command)
        if command == "rev-parse --abbrev-ref HEAD":
            return self.branch
        if command == "remote":
            return "origin"
        if command.startswith("log "):
            return format_medium_log(self.commits)
        if command.startswith("push "):
            self._push(command)
        return ""

    def must_git(self, command: str) -> str:
        return self.run_cmd(command)

    def _push(self, command: str) -> None:
        by_hash = {c.commit_hash: c for c in self.commits}
        for refspec in shlex.split(command)[1:]:
            if ":refs/heads/" not in refspec:
                continue
            commit_hash, branch = refspec.split(":refs/heads/")
            commit = by_hash[commit_hash]
            body = f"{commit.body}\n\ncommit-id:{commit.commit_id}" if commit.body else f"commit-id:{commit.commit_id}"
            self.github.push_branch(self.repository, branch, FakeCommit(commit_hash, commit.subject, body))

    def pushes(self) -> List[str]:
        return [c for c in self.commands if c.startswith("push ")]
