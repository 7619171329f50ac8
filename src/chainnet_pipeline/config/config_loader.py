"""
Configuration loader for the chaining pipeline.
Author: Rowel Facunla
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_config.yaml"


class ConfigLoader:
    """Loads and manages configuration from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.config: Dict[str, Any] = {}
        self.load_config()

    def load_config(self):
        """Load configuration from YAML file, falling back to built-in defaults."""
        try:
            with open(self.config_path, 'r') as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            logger.warning(f"Config file {self.config_path} not found. Using defaults.")
            self.config = self._get_default_config()
            return
        except yaml.YAMLError as e:
            logger.error(f"Error loading config file {self.config_path}: {e}")
            self.config = self._get_default_config()
            return

        if not isinstance(loaded, dict):
            raise ValueError(f"Invalid YAML format in {self.config_path}")
        self.config = merge_config(self._get_default_config(), loaded)

    def _get_default_config(self) -> Dict[str, Any]:
        """Return default configuration if YAML file is not found."""
        return {
            'io': {
                'psl_file': None,
                'chain_file': None,
                't_sizes': None,
                'q_sizes': None,
                't_fasta': None,
                'q_fasta': None,
                'output_dir': 'Results',
                'logs_dir': 'logs',
            },
            'chaining': {
                'min_score': 1000,
                'max_gap': None,
                'min_block_len': 1,
                'rescore': False,
                'on_bad_group': 'abort',
            },
            'gap_model': {'linear': 'medium'},
            'score_scheme': 'default',
            'netting': {
                'min_space': 25,
                'min_fill': None,
                'pre_net': False,
                'pre_net_pad': 1,
                'include_haplotypes': False,
                'min_fill_score': 0,
                'min_fill_ali': 0,
                'query_net': True,
                'syntenic': False,
            },
            'performance': {
                'num_workers': 'auto',
                'monitor': True,
            },
            'debug': {
                'log_level': 'INFO',
            },
        }

    def get_io_params(self) -> Dict[str, Any]:
        return self.config.get('io', {})

    def get_chaining_params(self) -> Dict[str, Any]:
        """Get chaining parameters."""
        return self.config.get('chaining', {})

    def get_gap_model_params(self) -> Dict[str, Any]:
        return self.config.get('gap_model', {})

    def get_netting_params(self) -> Dict[str, Any]:
        """Get net building parameters."""
        return self.config.get('netting', {})

    def get_performance_params(self) -> Dict[str, Any]:
        """Get performance parameters."""
        return self.config.get('performance', {})

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.config)


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``overrides`` on a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            if key == 'gap_model':
                # the two model kinds are alternatives, not fields to combine
                merged[key] = copy.deepcopy(value)
            else:
                merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


__all__ = [
    'DEFAULT_CONFIG_PATH',
    'ConfigLoader',
    'merge_config',
]
