"""Config module."""

from typing import Any, Dict

from .config_parser import default_config_dict
from .models import MergeMethod, PrstackConfig, RepoConfig, ToolConfig, UserConfig

__all__ = ['Config', 'MergeMethod', 'PrstackConfig', 'default_config']

class Config(PrstackConfig):
    """Validated configuration built from the parser's nested dict.

    Sections: ``repo`` and ``user`` at the top level, tool options under
    ``tool.prstack``. Missing sections fall back to model defaults.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        tool_options = (config.get('tool') or {}).get('prstack') or {}
        super().__init__(
            repo=RepoConfig.model_validate(config.get('repo') or {}),
            user=UserConfig.model_validate(config.get('user') or {}),
            tool=ToolConfig.model_validate(tool_options),
        )

def default_config() -> Config:
    """Config from built-in defaults only, used before the repository is known."""
    return Config(default_config_dict())
