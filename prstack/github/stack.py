"""Stack ordering and the stack summary rendered into PR bodies."""

import dataclasses
import logging
from typing import Dict, List, Sequence

from ..config.models import PrstackConfig
from ..typing import Commit
from .models import PullRequest

# Get module logger
logger = logging.getLogger(__name__)

MANUAL_MERGE_NOTICE = (
    "⚠️ *Part of a stack created by prstack. "
    "Do not merge manually using the UI - doing so may have unexpected results.*")

def sort_pull_requests(prs: Sequence[PullRequest], config: PrstackConfig,
                       target_branch: str) -> List[PullRequest]:
    """Order pull requests so the one on top of target_branch comes first.

    Each following entry is the one based on the previous entry's head
    branch. Entries that cannot be reached from target_branch are appended in
    their original order. The input is left untouched; the returned entries
    are copies carrying the derived ``stacked`` flag.
    """
    by_base: Dict[str, List[PullRequest]] = {}
    for pr in prs:
        by_base.setdefault(pr.to_branch, []).append(pr)

    chain: List[PullRequest] = []
    reached = set()
    target = target_branch
    while by_base.get(target):
        pr = by_base[target].pop(0)
        chain.append(pr)
        reached.add(id(pr))
        target = pr.from_branch

    disconnected = [pr for pr in prs if id(pr) not in reached]
    if disconnected:
        logger.warning(
            f"Pull request stack is broken after {target!r}; "
            f"{len(disconnected)} pull request(s) not reachable from {target_branch!r}: "
            + ", ".join(f"#{pr.number} ({pr.to_branch} <- {pr.from_branch})" for pr in disconnected))

    result: List[PullRequest] = []
    stacking = True
    for pr in chain:
        stacking = stacking and pr.ready(config)
        status = dataclasses.replace(pr.merge_status, stacked=stacking)
        result.append(dataclasses.replace(pr, merge_status=status))
    for pr in disconnected:
        status = dataclasses.replace(pr.merge_status, stacked=False)
        result.append(dataclasses.replace(pr, merge_status=status))
    return result

def format_stack_markdown(commit: Commit, stack: Sequence[PullRequest],
                          show_titles: bool = False) -> str:
    """Format the stack as a markdown list, marking the entry for commit."""
    lines: List[str] = []
    for pr in reversed(stack):
        suffix = " ⬅" if pr.commit == commit else ""
        title_part = f"{pr.title} " if show_titles and pr.title else ""
        lines.append(f"- {title_part}#{pr.number}{suffix}\n")
    return "".join(lines)

def add_manual_merge_notice(body: str) -> str:
    return body + "\n\n" + MANUAL_MERGE_NOTICE

def format_body(commit: Commit, stack: Sequence[PullRequest], show_titles: bool = False) -> str:
    """Format PR body with stack info."""
    if len(stack) <= 1:
        return commit.body.strip()

    stack_markdown = add_manual_merge_notice(format_stack_markdown(commit, stack, show_titles))
    if not commit.body:
        return f"**Stack**:\n{stack_markdown}"
    return f"{commit.body}\n\n---\n\n**Stack**:\n{stack_markdown}"
