from .config_loader import ConfigLoader, DEFAULT_CONFIG_PATH, merge_config

__all__ = [
    'ConfigLoader',
    'DEFAULT_CONFIG_PATH',
    'merge_config',
]
