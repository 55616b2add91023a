"""Remote branch names for stacked pull requests.

Each pull request's head branch is named ``pr/<user>/<local-branch>/<commit-id>``.
The name is the only link between a remote branch and the local commit it
carries, so decoding it is how a snapshot is matched back to local work.
"""

import re
from typing import NamedTuple, Optional

from ..typing import Commit, CommitID
from .models import GitHubInfo

BRANCH_NAME_REGEX = re.compile(r'^pr/[a-zA-Z0-9_\-]+/([a-zA-Z0-9_\-/\.]+)/([a-f0-9]{8})$')
COMMIT_ID_REGEX = re.compile(r'^[a-f0-9]{8}$')
USER_NAME_REGEX = re.compile(r'^[a-zA-Z0-9_\-]+$')
LOCAL_BRANCH_REGEX = re.compile(r'^[a-zA-Z0-9_\-/\.]+$')

class BranchIdentity(NamedTuple):
    """Decoded components of a stack branch name."""
    local_branch: str
    commit_id: CommitID

def encode_branch_name(user_name: str, local_branch: str, commit_id: str) -> str:
    """Build the remote branch name for a commit.

    Raises:
        ValueError: If any component would make the name undecodable.
    """
    if not USER_NAME_REGEX.match(user_name):
        raise ValueError(f"invalid user name {user_name!r}: expected letters, digits, '_' or '-'")
    if not is_encodable_local_branch(local_branch):
        raise ValueError(f"invalid local branch {local_branch!r}: expected letters, digits, '_', '-', '/' or '.'")
    if not COMMIT_ID_REGEX.match(commit_id):
        raise ValueError(f"invalid commit id {commit_id!r}: expected 8 lowercase hex characters")
    return f"pr/{user_name}/{local_branch}/{commit_id}"

def is_encodable_local_branch(local_branch: str) -> bool:
    """Check whether stack branches can be named after local_branch."""
    return LOCAL_BRANCH_REGEX.match(local_branch) is not None

def decode_branch_name(branch_name: str) -> Optional[BranchIdentity]:
    """Split a stack branch name into (local_branch, commit_id).

    Returns None for branches that were not produced by encode_branch_name,
    such as the trunk or branches owned by other tools.
    """
    match = BRANCH_NAME_REGEX.match(branch_name)
    if not match:
        return None
    return BranchIdentity(match.group(1), CommitID(match.group(2)))

def branch_name_from_commit(info: GitHubInfo, commit: Commit) -> str:
    """Get the remote branch name for a commit within a snapshot."""
    return encode_branch_name(info.user_name, info.local_branch, commit.commit_id)

def is_stack_branch(branch_name: str) -> bool:
    """Check whether a (local) branch is itself a generated PR branch."""
    return decode_branch_name(branch_name) is not None
