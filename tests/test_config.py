"""
Tests for configuration loading and validation.
Author: Rowel Facunla
"""

import pytest
import yaml
from chainnet_pipeline.config.config_loader import DEFAULT_CONFIG_PATH, ConfigLoader, merge_config
from chainnet_pipeline.core.errors import ConfigurationError
from chainnet_pipeline.diagnostics.validation import check_config, validate_config, validate_inputs
from chainnet_pipeline.pipeline.main_pipeline import (
    ChainSettings,
    NetSettings,
    build_overrides,
    cli,
    parse_args,
    parse_num_workers,
)


def test_default_config_file():
    """The shipped YAML carries every section."""
    assert DEFAULT_CONFIG_PATH.is_file()
    config = ConfigLoader().to_dict()
    for section in ('io', 'chaining', 'gap_model', 'netting', 'performance', 'debug'):
        assert section in config
    assert config['gap_model'] == {'linear': 'medium'}
    assert config['netting']['min_space'] == 25
    assert config['chaining']['min_score'] == 1000


def test_missing_file_uses_defaults(tmp_path):
    loader = ConfigLoader(str(tmp_path / "nope.yaml"))
    assert loader.get_netting_params()['min_space'] == 25
    assert loader.get_chaining_params()['on_bad_group'] == 'abort'


def test_user_file_overlays_defaults(tmp_path):
    """Keys given in a user file replace defaults; the rest stay."""
    path = tmp_path / "run.yaml"
    path.write_text(yaml.safe_dump({
        'chaining': {'min_score': 5000},
        'gap_model': {'affine': {'open': 400, 'extend': 30}},
    }))
    loader = ConfigLoader(str(path))
    assert loader.get_chaining_params()['min_score'] == 5000
    assert loader.get_chaining_params()['min_block_len'] == 1
    # the two gap model kinds never combine
    assert loader.get_gap_model_params() == {'affine': {'open': 400, 'extend': 30}}


def test_non_mapping_yaml_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        ConfigLoader(str(path))


def test_merge_config():
    base = {'a': {'x': 1, 'y': 2}, 'b': 3}
    merged = merge_config(base, {'a': {'y': 5}, 'c': 4})
    assert merged == {'a': {'x': 1, 'y': 5}, 'b': 3, 'c': 4}
    assert base == {'a': {'x': 1, 'y': 2}, 'b': 3}


def test_validate_config_conflicts():
    """Conflicting settings are all reported."""
    config = ConfigLoader().to_dict()
    assert validate_config(config) == (True, [])

    config['gap_model'] = {'linear': 'medium', 'affine': {'open': 1, 'extend': 1}}
    config['netting']['min_space'] = 10
    config['netting']['min_fill'] = 20
    config['chaining']['on_bad_group'] = 'ignore'
    is_valid, errors = validate_config(config)
    assert not is_valid
    assert len(errors) == 3
    with pytest.raises(ConfigurationError):
        check_config(config)


def test_validate_inputs(tmp_path):
    """Missing inputs are reported before any work starts."""
    config = ConfigLoader().to_dict()
    config['io']['output_dir'] = str(tmp_path / "out")
    is_valid, errors = validate_inputs(config)
    assert not is_valid
    assert any('psl_file' in e for e in errors)

    config['io']['psl_file'] = str(tmp_path / "missing.psl")
    is_valid, errors = validate_inputs(config)
    assert not is_valid
    assert any('file not found' in e for e in errors)

    psl = tmp_path / "in.psl"
    psl.write_text("")
    config['io']['psl_file'] = str(psl)
    config['netting']['pre_net'] = True
    is_valid, errors = validate_inputs(config)
    assert not is_valid
    assert any('pre_net' in e for e in errors)


def test_settings_from_config():
    config = ConfigLoader().to_dict()
    chain_settings = ChainSettings.from_config(config)
    assert chain_settings.gap_model.describe() == "linear(medium)"
    assert chain_settings.min_score == 1000
    assert chain_settings.max_gap is None

    net_settings = NetSettings.from_config(config)
    assert (net_settings.min_space, net_settings.min_fill) == (25, 12)


def test_parse_num_workers():
    assert parse_num_workers('auto') >= 1
    assert parse_num_workers('4') == 4
    assert parse_num_workers(0) == 1
    assert parse_num_workers(None) == 1


def test_command_line_overrides():
    """Flags become a config overlay."""
    args = parse_args(['--psl', 'in.psl', '--min-score', '3000', '--gap-open', '400', '--gap-extend', '30'])
    overrides = build_overrides(args)
    assert overrides['io'] == {'psl_file': 'in.psl'}
    assert overrides['chaining'] == {'min_score': 3000}
    assert overrides['gap_model'] == {'affine': {'open': 400, 'extend': 30}}

    args = parse_args(['--linear-gap', 'loose', '--gap-open', '400'])
    with pytest.raises(ConfigurationError):
        build_overrides(args)
    assert cli(['--linear-gap', 'loose', '--gap-open', '400']) == 1


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main([__file__, "-v"]))
