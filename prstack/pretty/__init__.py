"""Pretty formatting utilities for CLI output."""

import shutil
import sys
from typing import IO, Optional

from ..config.models import PrstackConfig
from ..github.models import CheckStatus, PullRequest

CHECK_ICONS = {
    CheckStatus.PASS: "✅",
    CheckStatus.FAIL: "❌",
    CheckStatus.PENDING: "⌛",
    CheckStatus.UNKNOWN: "❓",
}

def get_term_width() -> int:
    """Get terminal width, default to 80 if can't detect."""
    return shutil.get_terminal_size((80, 24)).columns


def header(text: str, use_emoji: bool = True, width: Optional[int] = None) -> str:
    """Create a boxed header with optional emoji."""
    width = width or get_term_width()
    h_line = "─" * (width - 2)
    v_line = "│"
    emoji = "🎯 " if use_emoji else ""
    label = f" {emoji}{text}"

    result = [
        f"┌{h_line}┐",
        f"{v_line}{label.ljust(width - 2)}{v_line}",
        f"└{h_line}┘"
    ]
    return "\n".join(result)


def status_bits(pr: PullRequest, config: PrstackConfig) -> str:
    """Render checks, approval, conflicts and stacked as four icons.

    Signals the config does not require are shown as "➖".
    """
    status = pr.merge_status
    checks = CHECK_ICONS[status.checks_pass] if config.repo.require_checks else "➖"
    approved = ("✅" if status.review_approved else "❌") if config.repo.require_approval else "➖"
    no_conflicts = "✅" if status.no_conflicts else "❌"
    stacked = "✅" if status.stacked else "❌"
    return f"[{checks}{approved}{no_conflicts}{stacked}]"


def format_pull_request_status(pr: PullRequest, config: PrstackConfig) -> str:
    """One status line for a pull request, with a link when the repo is known."""
    line = f"{status_bits(pr, config)} {pr}"
    owner = config.repo.github_repo_owner
    name = config.repo.github_repo_name
    if owner and name:
        line += f"\n      https://{config.repo.github_host}/{owner}/{name}/pull/{pr.number}"
    return line


def print_header(text: str, use_emoji: bool = True, file: Optional[IO[str]] = None) -> None:
    """Print a header to file (default stdout)."""
    if file is None:
        file = sys.stdout
    print(header(text, use_emoji), file=file)
