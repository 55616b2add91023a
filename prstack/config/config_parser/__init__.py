"""Config parser logic."""

from pathlib import Path
from typing import Dict, Union, Any, Optional, Tuple
import logging
import yaml

from ...typing import GitInterface

# Get module logger
logger = logging.getLogger(__name__)

ConfigValue = Union[str, bool]
RepoConfig = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, RepoConfig]

REPO_CONFIG_FILE = '.spr.yaml'

def default_config_dict() -> Config:
    """Default config values before any file is read."""
    return {
        'repo': {
            'github_remote': 'origin',
            'github_branch': 'main',
            'github_host': 'github.com',
            'remote_branches': [],
            'require_checks': True,
            'require_approval': True,
            'merge_method': 'rebase',
            'show_pr_titles_in_stack': False,
        },
        'user': {},
        'tool': {
            'prstack': {
                'pretend': False
            }
        }
    }

def _load_yaml(path: Path) -> Optional[Dict[str, Any]]:
    """Load a YAML mapping from path, or None if the file is absent."""
    try:
        with open(path, 'r') as f:
            logger.debug(f"Found {path}, loading...")
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug(f"No {path} found")
        return None
    if data is not None and not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: expected a mapping, got {type(data).__name__}")
        return None
    return data

def parse_remote_url(remote_url: str) -> Optional[Tuple[str, str]]:
    """Extract (owner, name) from an SSH or HTTPS remote URL."""
    remote_url = remote_url.strip()
    if "://" in remote_url:
        # HTTPS format: https://github.com/owner/repo.git
        repo_part = remote_url.split("://", 1)[1].split("/", 1)[-1]
    elif "@" in remote_url:
        # SSH format: git@github.com:owner/repo.git
        repo_part = remote_url.split(":")[-1]
    else:
        return None

    if repo_part.endswith(".git"):
        repo_part = repo_part[:-len(".git")]
    parts = repo_part.strip("/").split("/")
    if len(parts) < 2 or not parts[-2] or not parts[-1]:
        return None
    return parts[-2], parts[-1]

def parse_config(git_cmd: GitInterface, repo_root: Optional[Path] = None,
                 user_config_path: Optional[Path] = None) -> Config:
    """Parse config from repository and user config files."""
    config = default_config_dict()

    repo_file = (repo_root or Path('.')) / REPO_CONFIG_FILE
    repo_config = _load_yaml(repo_file)
    if repo_config:
        logger.debug(f"Config from {repo_file}: {repo_config}")
        if isinstance(repo_config.get('repo'), dict):
            config['repo'].update(repo_config['repo'])
        if isinstance(repo_config.get('user'), dict):
            config['user'].update(repo_config['user'])

    user_file = user_config_path or Path(internal_config_file_path())
    user_config = _load_yaml(user_file)
    if user_config and isinstance(user_config.get('user'), dict):
        logger.debug(f"Adding user config: {user_config['user']}")
        config['user'].update(user_config['user'])

    # Try to extract repo owner/name from git remote if not in config
    if not config['repo'].get('github_repo_owner') or not config['repo'].get('github_repo_name'):
        remote = config['repo']['github_remote']
        try:
            remote_url = git_cmd.run_cmd(f"remote get-url {remote}")
        except Exception as e:
            logger.error(f"Failed to read git remote {remote}: {e}")
            remote_url = ""
        parsed = parse_remote_url(remote_url)
        if parsed:
            owner, name = parsed
            if not config['repo'].get('github_repo_owner'):
                config['repo']['github_repo_owner'] = owner
            if not config['repo'].get('github_repo_name'):
                config['repo']['github_repo_name'] = name
        elif remote_url:
            logger.error(f"Failed to parse git remote url: {remote_url}")

    return config

def internal_config_file_path() -> str:
    """Get path to user config file."""
    return str(Path.home() / ".spr.yml")
