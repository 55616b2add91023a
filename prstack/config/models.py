"""Pydantic models for config types."""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field

MergeMethod = Literal['merge', 'squash', 'rebase']

class RepoConfig(BaseModel):
    """Repository configuration."""
    github_remote: str = "origin"
    github_branch: str = "main"
    github_host: str = "github.com"
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None
    # Local branches that track a remote branch of the same name
    remote_branches: List[str] = Field(default_factory=list)
    require_checks: bool = True
    require_approval: bool = True
    merge_method: MergeMethod = "rebase"
    show_pr_titles_in_stack: bool = False

    class Config:
        """Pydantic config."""
        extra = "allow"

class UserConfig(BaseModel):
    """User configuration."""
    create_draft_prs: bool = False
    no_rebase: bool = False
    log_git_commands: bool = False
    log_github_calls: bool = False

    class Config:
        """Pydantic config."""
        extra = "allow"

class ToolConfig(BaseModel):
    """Tool configuration."""
    pretend: bool = False

    class Config:
        """Pydantic config."""
        extra = "allow"

class PrstackConfig(BaseModel):
    """Full prstack configuration."""
    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    tool: ToolConfig = Field(default_factory=ToolConfig)

    class Config:
        """Pydantic config."""
        extra = "allow"
