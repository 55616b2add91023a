"""Stacked PR implementation."""

import dataclasses
import sys
import logging
import threading
from typing import Dict, List, Optional, Sequence

from ..git import get_local_commit_stack, get_local_branch_name, get_remote_branch_name
from ..config.models import PrstackConfig
from ..github import GitHubInfo, PullRequest, GitHubClient
from ..github.branch import branch_name_from_commit, is_encodable_local_branch, is_stack_branch
from ..github.stack import format_body
from ..pretty import format_pull_request_status, print_header
from ..typing import Commit, GitInterface, PrstackError
from ..util import short_hash

# Get module logger
logger = logging.getLogger(__name__)

class StackedPR:
    """Keeps a chain of pull requests in step with the local commit stack."""

    def __init__(self, config: PrstackConfig, github: GitHubClient, git_cmd: GitInterface):
        """Initialize with config, GitHub and git clients."""
        self.config = config
        self.github = github
        self.git_cmd = git_cmd
        self.output = sys.stdout
        self.pretend = config.tool.pretend

    def fetch_and_get_github_info(self) -> GitHubInfo:
        """Fetch from remote, rebase onto the target branch and take a snapshot."""
        remote = self.config.repo.github_remote

        remotes = self.git_cmd.must_git("remote").split()
        if remote not in remotes:
            raise PrstackError(f"Remote '{remote}' not found. Available remotes: {', '.join(remotes)}")

        local_branch = get_local_branch_name(self.git_cmd)
        if is_stack_branch(local_branch):
            raise PrstackError(
                "error: don't run prstack in a remote pr branch\n"
                " this could lead to weird duplicate pull requests getting created\n"
                " in general there is no need to checkout remote branches used for prs\n"
                " instead use local branches and run prstack update to sync your commit stack\n"
                "  with your pull requests on github\n"
                f"branch name: {local_branch}")
        if not is_encodable_local_branch(local_branch):
            raise PrstackError(
                f"Local branch name {local_branch!r} cannot be used for stacked pull requests: "
                "only letters, digits, '_', '-', '/' and '.' are allowed. Rename the branch and run again.")

        self.git_cmd.must_git("fetch")

        target = get_remote_branch_name(self.git_cmd, self.config)
        try:
            self.git_cmd.must_git(f"rev-parse --verify {remote}/{target}")
        except Exception as e:
            raise PrstackError(f"Branch '{target}' not found on remote '{remote}'. First push to the remote.") from e

        if self.config.user.no_rebase:
            logger.debug("Skipping rebase")
        else:
            try:
                self.git_cmd.must_git(f"rebase {remote}/{target} --autostash")
            except Exception as e:
                status = self.git_cmd.run_cmd("status")
                if "You have unmerged paths" in status or "fix conflicts" in status:
                    self.git_cmd.run_cmd("rebase --abort")
                    raise PrstackError("Rebase stopped due to conflicts. Fix conflicts and run update again.") from e
                raise PrstackError(f"Rebase failed: {e}") from e

        return self.github.get_info(self.git_cmd)

    def sync_commit_stack_to_github(self, info: GitHubInfo, commits: Sequence[Commit],
                                    prs_by_commit: Dict[str, PullRequest]) -> None:
        """Force-push the head branch of every new or changed commit in one atomic push."""
        ref_names: List[str] = []
        for commit in commits:
            pr = prs_by_commit.get(commit.commit_id)
            if pr is not None and pr.commit.commit_hash == commit.commit_hash:
                continue
            ref_names.append(f"{commit.commit_hash}:refs/heads/{branch_name_from_commit(info, commit)}")

        if ref_names:
            remote = self.config.repo.github_remote
            self.git_cmd.must_git(f"push --force --atomic {remote} " + " ".join(ref_names))

    def _cancelled(self, cancel: Optional[threading.Event], commit: Commit) -> bool:
        if cancel is not None and cancel.is_set():
            logger.warning(f"Update cancelled before {short_hash(commit.commit_hash)} {commit.subject!r}; "
                           "run update again to finish the stack")
            return True
        return False

    def _log_plan(self, info: GitHubInfo, commits: Sequence[Commit],
                  prs_by_commit: Dict[str, PullRequest]) -> None:
        planned = [dataclasses.replace(prs_by_commit[c.commit_id], commit=c)
                   for c in commits if c.commit_id in prs_by_commit]
        # New pull requests change every summary body in the stack
        membership_changes = len(planned) != len(commits)
        show_titles = self.config.repo.show_pr_titles_in_stack

        prev_commit: Optional[Commit] = None
        for commit in commits:
            head = branch_name_from_commit(info, commit)
            base = info.target_branch if prev_commit is None else branch_name_from_commit(info, prev_commit)
            pr = prs_by_commit.get(commit.commit_id)
            if pr is None:
                logger.info(f"[PRETEND] Would create PR for {short_hash(commit.commit_hash)} {commit.subject!r}: {head} -> {base}")
            else:
                changes: List[str] = []
                if pr.to_branch != base:
                    changes.append("base")
                if pr.title != commit.subject:
                    changes.append("title")
                if membership_changes or pr.body != format_body(commit, planned, show_titles):
                    changes.append("body")
                if changes:
                    logger.info(f"[PRETEND] Would update PR #{pr.number} ({', '.join(changes)}): {head} -> {base}")
                else:
                    logger.info(f"[PRETEND] PR #{pr.number} is up to date")
            prev_commit = commit

    def _resolve_reviewers(self, info: GitHubInfo, reviewers: Sequence[str]) -> List[str]:
        """Match requested reviewers against assignable users, dropping self-reviews."""
        assignable = {u.login.lower(): u.login for u in self.github.get_assignable_users()}
        logins: List[str] = []
        for reviewer in reviewers:
            login = assignable.get(reviewer.lower())
            if login is None:
                logger.warning(f"Reviewer {reviewer} is not an assignable user, skipping")
            elif login.lower() == info.user_name.lower():
                logger.debug(f"Not requesting review from {login}: author of the pull requests")
            else:
                logins.append(login)
        return logins

    def update_pull_requests(self, reviewers: Optional[Sequence[str]] = None,
                             count: Optional[int] = None,
                             cancel: Optional[threading.Event] = None) -> List[PullRequest]:
        """Create and update pull requests so they mirror the local commit stack.

        Commits are handled oldest first. Each commit's pull request is based
        on the branch of the commit below it, or on the target branch for the
        first commit. Every remote call finishes before the next one starts;
        ``cancel`` is checked between commits. Requested reviewers are added
        to each pull request right after it is created.

        Returns the pull requests of the stack in order.
        """
        info = self.fetch_and_get_github_info()
        local_commits = get_local_commit_stack(self.config, self.git_cmd)
        local_ids = {commit.commit_id for commit in local_commits}

        # Close PRs for commits that are no longer in the stack
        open_prs: List[PullRequest] = []
        for pr in info.pull_requests:
            if pr.commit.commit_id in local_ids:
                open_prs.append(pr)
            elif self.pretend:
                logger.info(f"[PRETEND] Would close PR #{pr.number} - commit {pr.commit.commit_id} has gone away")
            else:
                logger.info(f"Closing PR #{pr.number} - commit {pr.commit.commit_id} has gone away")
                self.github.comment_pull_request(pr, "Closing pull request: commit has gone away")
                self.github.close_pull_request(pr)

        # Nothing at or above a WIP commit is published
        commits: List[Commit] = []
        for commit in local_commits:
            if commit.wip:
                break
            commits.append(commit)
        if count is not None:
            commits = commits[:count]

        prs_by_commit = {pr.commit.commit_id: pr for pr in open_prs}
        self.sync_commit_stack_to_github(info, commits, prs_by_commit)

        if self.pretend:
            self._log_plan(info, commits, prs_by_commit)
            return [prs_by_commit[c.commit_id] for c in commits if c.commit_id in prs_by_commit]

        # First pass: every commit gets a pull request, bottom up
        stack: List[PullRequest] = []
        logins: Optional[List[str]] = None
        prev_commit: Optional[Commit] = None
        for commit in commits:
            if self._cancelled(cancel, commit):
                return stack
            existing = prs_by_commit.get(commit.commit_id)
            if existing is None:
                pr = self.github.create_pull_request(info, stack, commit, prev_commit)
                if reviewers:
                    if logins is None:
                        logins = self._resolve_reviewers(info, reviewers)
                    if logins:
                        self.github.add_reviewers(pr, logins)
            else:
                pr = dataclasses.replace(existing, commit=commit)
            stack.append(pr)
            prev_commit = commit

        # Second pass: bases, titles and bodies against the complete stack
        result: List[PullRequest] = []
        prev_commit = None
        for pr in stack:
            if self._cancelled(cancel, pr.commit):
                return result + stack[len(result):]
            result.append(self.github.update_pull_request(info, stack, pr, pr.commit, prev_commit))
            prev_commit = pr.commit

        self.print_stack(result)
        return result

    def print_stack(self, pull_requests: Sequence[PullRequest]) -> None:
        """Print the stack, newest pull request first."""
        print_header("Pull Requests", use_emoji=True, file=self.output)
        if not pull_requests:
            print("\npull request stack is empty\n", file=self.output)
            return
        print("", file=self.output)
        for pr in reversed(pull_requests):
            print(f"   {format_pull_request_status(pr, self.config)}", file=self.output)
        print("", file=self.output)

    def status_pull_requests(self) -> List[PullRequest]:
        """Show status of pull requests."""
        info = self.github.get_info(self.git_cmd)
        pull_requests = list(info.pull_requests)
        self.print_stack(pull_requests)
        return pull_requests

    def merge_pull_requests(self, count: Optional[int] = None) -> Optional[PullRequest]:
        """Merge the topmost stacked pull request and close the ones below it.

        Merging the topmost ready pull request into the target branch lands
        every commit below it too, so those pull requests are closed with a
        pointer to the merged one. ``count`` limits the search to the bottom
        ``count`` pull requests. Returns the merged pull request, if any.
        """
        info = self.fetch_and_get_github_info()
        candidates = list(info.pull_requests)
        if count is not None:
            candidates = candidates[:count]

        pr_index = -1
        for index, pr in enumerate(candidates):
            if not pr.merge_status.stacked:
                break
            pr_index = index

        if pr_index < 0:
            logger.info("No pull requests are ready to merge")
            return None

        pr_to_merge = candidates[pr_index]
        print_header("Merging Pull Requests", use_emoji=True, file=self.output)
        print(f"\n   Merging PR #{pr_to_merge.number} to {info.target_branch}", file=self.output)
        print(f"   This will merge {pr_index + 1} PR{'s' if pr_index > 0 else ''}\n", file=self.output)

        # Retarget the merging PR onto the target branch
        pr_to_merge = self.github.update_pull_request(
            info, info.pull_requests, pr_to_merge, pr_to_merge.commit, None)
        self.github.merge_pull_request(pr_to_merge, self.config.repo.merge_method)

        owner = self.config.repo.github_repo_owner or ''
        name = self.config.repo.github_repo_name or ''
        comment = (
            f"✓ Commit merged in pull request "
            f"[#{pr_to_merge.number}](https://{self.config.repo.github_host}/"
            f"{owner}/{name}/pull/{pr_to_merge.number})"
        )
        for pr in candidates[:pr_index]:
            self.github.comment_pull_request(pr, comment)
            self.github.close_pull_request(pr)

        for pr in candidates[:pr_index + 1]:
            print(f"   ✅ merged {pr}", file=self.output)
        return pr_to_merge
