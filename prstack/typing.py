"""Common types used across the codebase."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, NewType

from .util import short_hash

# Create NewTypes for commit identifiers
CommitID = NewType('CommitID', str)
CommitHash = NewType('CommitHash', str)


@dataclass
class Commit:
    """A local commit.

    Equality covers the fingerprint, hash, subject and body; ``wip`` is
    derived from the subject and left out of comparisons.
    """
    commit_id: CommitID
    commit_hash: CommitHash
    subject: str
    body: str = ""
    wip: bool = field(default=False, compare=False)

    @classmethod
    def from_strings(cls, commit_id: str, commit_hash: str, subject: str,
                     body: str = "", wip: Optional[bool] = None) -> 'Commit':
        """Create a commit from plain strings."""
        if wip is None:
            wip = subject.upper().startswith("WIP")
        return cls(CommitID(commit_id), CommitHash(commit_hash), subject, body, wip)


class GitInterface(Protocol):
    """What the rest of the code expects from a git runner."""

    def run_cmd(self, command: str) -> str:
        """Run a git command and return its output."""
        ...

    def must_git(self, command: str) -> str:
        """Run a git command, raising on failure."""
        ...


class PrstackError(Exception):
    """Base class for errors that end a prstack run."""


class GitHubAuthError(PrstackError):
    """No usable GitHub credential, or GitHub rejected it."""


class PullRequestMutationError(PrstackError):
    """A create/update/merge/close/comment/review call failed."""

    def __init__(self, action: str, pr_id: str, number: int, title: str, cause: Exception):
        self.action = action
        self.pr_id = pr_id
        self.number = number
        self.title = title
        self.cause = cause
        super().__init__(
            f"pull request {action} failed: #{number} ({pr_id}) {title!r}: {cause}")


class MissingCommitIDError(PrstackError):
    """Local commits lack the commit-id trailer that ties them to pull requests."""

    def __init__(self, commits: List[Commit]):
        self.commits = commits
        lines = [f"  {short_hash(c.commit_hash)} {c.subject}" for c in commits]
        super().__init__(
            "The following commits have no commit-id trailer:\n"
            + "\n".join(lines)
            + "\nAdd a line 'commit-id:<8 hex chars>' to each commit message"
            " (for example with 'git rebase -i' and 'reword').")


class DuplicateCommitIDError(PrstackError):
    """Two or more local commits share a commit-id."""

    def __init__(self, duplicates: Dict[str, List[Commit]]):
        self.duplicates = duplicates
        lines: List[str] = []
        for commit_id, commits in duplicates.items():
            lines.append(f"  commit-id:{commit_id} appears in:")
            for c in commits:
                lines.append(f"    {short_hash(c.commit_hash)} {c.subject}")
        super().__init__(
            "Duplicate commit-ids found in the local stack:\n"
            + "\n".join(lines)
            + "\nEach commit needs a unique commit-id. This usually happens after a"
            " cherry-pick copied the trailer; give one of the copies a new id.")
