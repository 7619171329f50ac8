"""
End-to-end pipeline: PSL blocks -> chains -> trimmed chains -> nets.
Author: Rowel Facunla
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from multiprocessing import Pool, cpu_count
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..algorithms.chaining import BlockGroup, assign_chain_ids, chain_group, group_blocks
from ..algorithms.netting import NetChrom, build_net, filter_net, net_order, resolve_thresholds
from ..algorithms.overlap_trimmer import trim_overlaps
from ..algorithms.pre_net import pre_net_filter
from ..algorithms.syntenic import classify_nets
from ..config.config_loader import DEFAULT_CONFIG_PATH, ConfigLoader, merge_config
from ..core.blocks import Chain, GroupKey
from ..core.errors import ConfigurationError, MalformedBlockError
from ..core.gap_cost import GapCost
from ..core.score_matrix import ScoreMatrix
from ..core.sequence_source import SequenceSource
from ..diagnostics.performance import PerformanceMonitor
from ..diagnostics.validation import check_config, validate_inputs
from ..io.chain_io import load_chains, write_chains
from ..io.net_io import write_nets
from ..io.psl_reader import load_psl, psl_block_entries
from ..io.sizes_reader import read_sizes

LOGGER_NAME = 'chainnet_pipeline'


# ================================================================
# Configuration and logging
# ================================================================
def load_config(config_path: str = None) -> Dict[str, Any]:
    """Load configuration from YAML file. Fails if file does not exist."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    config = ConfigLoader(str(path)).to_dict()
    config['_source'] = str(path.resolve())
    return config


def parse_num_workers(num_workers_spec) -> int:
    """Parse num_workers specification."""
    if num_workers_spec == 'auto':
        return max(1, cpu_count() - 1)
    elif isinstance(num_workers_spec, str) and num_workers_spec.isdigit():
        return max(1, int(num_workers_spec))
    elif isinstance(num_workers_spec, int):
        return max(1, num_workers_spec)
    else:
        return 1


def setup_logging(config: Dict[str, Any]) -> logging.Logger:
    """Setup logging configuration."""
    log_dir = Path(config['io']['logs_dir'])
    log_dir.mkdir(parents=True, exist_ok=True)

    log_level_str = config.get('debug', {}).get('log_level', 'INFO')
    log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    fh = logging.FileHandler(log_dir / 'pipeline.log')
    fh.setLevel(log_level)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    fh.setFormatter(formatter)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    return logger


# ================================================================
# Per-worker settings
# ================================================================
@dataclass(frozen=True)
class ChainSettings:
    gap_model: GapCost
    min_score: int = 0
    max_gap: Optional[int] = None
    min_block_len: int = 1

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ChainSettings':
        chaining = config.get('chaining', {})
        return cls(
            gap_model=GapCost.from_config(config.get('gap_model')),
            min_score=int(chaining.get('min_score', 0) or 0),
            max_gap=chaining.get('max_gap'),
            min_block_len=int(chaining.get('min_block_len', 1) or 1),
        )


@dataclass(frozen=True)
class NetSettings:
    min_space: int
    min_fill: int
    min_fill_score: int = 0
    min_fill_ali: int = 0

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'NetSettings':
        netting = config.get('netting', {})
        min_space, min_fill = resolve_thresholds(netting.get('min_space'), netting.get('min_fill'))
        return cls(
            min_space=min_space,
            min_fill=min_fill,
            min_fill_score=int(netting.get('min_fill_score', 0) or 0),
            min_fill_ali=int(netting.get('min_fill_ali', 0) or 0),
        )


def _chain_worker(task: Tuple[BlockGroup, ChainSettings]):
    """Chain and trim one group. Malformed input is returned, not raised."""
    group, settings = task
    try:
        chains = chain_group(group, settings.gap_model, settings.min_score, settings.max_gap)
    except MalformedBlockError as e:
        return group.key, None, e
    chains = trim_overlaps(chains, settings.gap_model, settings.min_block_len, settings.min_score)
    return group.key, chains, None


def _net_worker(task: Tuple[str, int, List[Chain], NetSettings, bool]) -> NetChrom:
    name, size, chains, settings, on_query = task
    chrom = build_net(name, size, chains, settings.min_space, settings.min_fill, on_query)
    if settings.min_fill_score or settings.min_fill_ali:
        chrom = filter_net(chrom, settings.min_fill_score, settings.min_fill_ali)
    return chrom


def _map(func, tasks: List, num_workers: int) -> List:
    if num_workers <= 1 or len(tasks) <= 1:
        return [func(t) for t in tasks]
    with Pool(processes=min(num_workers, len(tasks))) as pool:
        return pool.map(func, tasks)


# ================================================================
# Stages
# ================================================================
def load_block_groups(config: Dict[str, Any], logger: logging.Logger) -> Dict[GroupKey, BlockGroup]:
    """Read PSL input and partition its blocks into chaining groups."""
    io_cfg = config['io']
    records = load_psl(io_cfg['psl_file'])

    t_source = q_source = matrix = None
    if config.get('chaining', {}).get('rescore'):
        matrix = ScoreMatrix.from_config(config.get('score_scheme'))
        t_source = SequenceSource.from_fasta(io_cfg['t_fasta'])
        q_source = SequenceSource.from_fasta(io_cfg['q_fasta'])
        logger.info(f"Re-scoring blocks from sequence with the {matrix.name} matrix")

    groups = group_blocks(psl_block_entries(records, t_source, q_source, matrix))
    n_blocks = sum(len(g.blocks) for g in groups.values())
    logger.info(f"Loaded {n_blocks} blocks in {len(groups)} groups from {len(records)} PSL records")
    return groups


def run_chaining(
    groups: Dict[GroupKey, BlockGroup],
    settings: ChainSettings,
    num_workers: int = 1,
    on_bad_group: str = 'abort',
    logger: Optional[logging.Logger] = None,
) -> List[Chain]:
    """
    Chain every group (one worker task per group), trim overlaps and number
    the surviving chains 1..n by descending score.

    Raises:
        MalformedBlockError: for the first bad group when ``on_bad_group`` is 'abort'
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    tasks = [(group, settings) for group in groups.values()]
    results = _map(_chain_worker, tasks, num_workers)

    chains: List[Chain] = []
    for key, group_chains, error in results:
        if error is not None:
            if on_bad_group == 'skip':
                logger.error(f"Skipping group {'/'.join(key)}: {error}")
                continue
            raise error
        chains.extend(group_chains)

    chains = assign_chain_ids(chains)
    logger.info(f"Chained {len(groups)} groups into {len(chains)} chains")
    return chains


def run_netting(
    chains: List[Chain],
    sizes: Dict[str, int],
    settings: NetSettings,
    num_workers: int = 1,
    logger: Optional[logging.Logger] = None,
    on_query: bool = False,
) -> List[NetChrom]:
    """One net per target sequence, or per query sequence with ``on_query`` (one worker task each)."""
    logger = logger or logging.getLogger(LOGGER_NAME)
    by_name: Dict[str, List[Chain]] = {}
    for chain in chains:
        by_name.setdefault(chain.q_name if on_query else chain.t_name, []).append(chain)

    tasks = []
    for name in net_order(by_name, sizes):
        first = by_name[name][0]
        size = sizes.get(name, first.q_size if on_query else first.t_size)
        tasks.append((name, size, by_name[name], settings, on_query))
    nets = _map(_net_worker, tasks, num_workers)
    side = 'query' if on_query else 'target'
    logger.info(f"Built {len(nets)} {side} nets with {sum(len(n.fills()) for n in nets)} fills")
    return nets


def run_pipeline(config: Dict[str, Any], logger: logging.Logger) -> int:
    """Run the configured stages. Returns a process exit code."""
    try:
        check_config(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    is_valid, errors = validate_inputs(config)
    if not is_valid:
        for error in errors:
            logger.error(f"Validation error: {error}")
        return 1

    io_cfg = config['io']
    perf_cfg = config.get('performance', {})
    num_workers = parse_num_workers(perf_cfg.get('num_workers', 1))
    output_dir = Path(io_cfg.get('output_dir', 'Results'))
    output_dir.mkdir(parents=True, exist_ok=True)

    monitor = PerformanceMonitor() if perf_cfg.get('monitor') else None
    if monitor:
        monitor.start()

    try:
        chain_settings = ChainSettings.from_config(config)
        net_settings = NetSettings.from_config(config)
        logger.info(f"Gap model: {chain_settings.gap_model.describe()}, "
                    f"min_space={net_settings.min_space}, min_fill={net_settings.min_fill}, "
                    f"workers={num_workers}")

        if monitor:
            monitor.begin_stage('chaining')
        if io_cfg.get('psl_file'):
            groups = load_block_groups(config, logger)
            chains = run_chaining(
                groups, chain_settings, num_workers,
                config.get('chaining', {}).get('on_bad_group', 'abort'), logger,
            )
            write_chains(output_dir / 'all.chain', chains)
        else:
            chains = load_chains(io_cfg['chain_file'])
        if monitor:
            monitor.end_stage('chaining')

        t_sizes = read_sizes(io_cfg['t_sizes']) if io_cfg.get('t_sizes') else {}
        q_sizes = read_sizes(io_cfg['q_sizes']) if io_cfg.get('q_sizes') else {}
        netting_cfg = config.get('netting', {})
        if netting_cfg.get('pre_net'):
            chains = pre_net_filter(
                sorted(chains, key=lambda c: (-c.score, c.id)), t_sizes, q_sizes,
                pad=netting_cfg.get('pre_net_pad', 1),
                include_haplotypes=netting_cfg.get('include_haplotypes', False),
            )
            write_chains(output_dir / 'pre_net.chain', chains)

        if monitor:
            monitor.begin_stage('netting')
        nets = run_netting(chains, t_sizes, net_settings, num_workers, logger)
        if netting_cfg.get('syntenic'):
            classify_nets(nets)
        write_nets(output_dir / 'all.net', nets)
        if netting_cfg.get('query_net', True):
            q_nets = run_netting(chains, q_sizes, net_settings, num_workers, logger, on_query=True)
            write_nets(output_dir / 'query.net', q_nets)
        if monitor:
            monitor.end_stage('netting')

    except Exception as e:
        logger.error(f"Pipeline failed with error: {e}", exc_info=True)
        return 1
    finally:
        if monitor:
            monitor.stop()

    if monitor:
        monitor.log_report(logger)
        monitor.save_report(str(output_dir / 'performance.json'))

    logger.info("Pipeline completed successfully!")
    return 0


def main(config_path: Optional[str] = None, overrides: Optional[Dict] = None) -> int:
    """Main pipeline entry point."""
    try:
        config = load_config(config_path)
    except Exception as e:
        print(f"ERROR loading configuration: {e}")
        return 1

    if overrides:
        config = merge_config(config, overrides)

    logger = setup_logging(config)
    logger.info("Starting chaining and netting pipeline")
    logger.info(f"Configuration loaded from {config.get('_source', 'default')}")
    return run_pipeline(config, logger)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate command-line flags into a config overlay."""
    overrides: Dict[str, Any] = {}

    def put(section: str, key: str, value):
        if value is not None:
            overrides.setdefault(section, {})[key] = value

    put('io', 'psl_file', args.psl)
    put('io', 'chain_file', args.chains)
    put('io', 't_sizes', args.t_sizes)
    put('io', 'q_sizes', args.q_sizes)
    put('io', 'output_dir', args.output_dir)
    put('chaining', 'min_score', args.min_score)
    put('netting', 'min_space', args.min_space)
    put('netting', 'min_fill', args.min_fill)
    put('performance', 'num_workers', args.workers)
    if args.no_query_net:
        put('netting', 'query_net', False)
    if args.syntenic:
        put('netting', 'syntenic', True)
    if args.linear_gap and (args.gap_open is not None or args.gap_extend is not None):
        raise ConfigurationError("--linear-gap cannot be combined with --gap-open/--gap-extend")
    if args.linear_gap:
        overrides['gap_model'] = {'linear': args.linear_gap}
    elif args.gap_open is not None or args.gap_extend is not None:
        if args.gap_open is None or args.gap_extend is None:
            raise ConfigurationError("--gap-open and --gap-extend must be given together")
        overrides['gap_model'] = {'affine': {'open': args.gap_open, 'extend': args.gap_extend}}
    return overrides


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Genome alignment chaining and netting pipeline')
    parser.add_argument('--config', help='Path to config file')
    parser.add_argument('--psl', help='Input alignments in PSL format')
    parser.add_argument('--chains', help='Pre-computed chain file (skips chaining)')
    parser.add_argument('--t-sizes', help='Target sizes file')
    parser.add_argument('--q-sizes', help='Query sizes file')
    parser.add_argument('--output-dir', help='Directory for all.chain, all.net and query.net')
    parser.add_argument('--min-score', type=int, help='Minimum chain score')
    parser.add_argument('--linear-gap', choices=['medium', 'loose'], help='Quasi-natural gap curve')
    parser.add_argument('--gap-open', type=int, help='Affine gap open cost')
    parser.add_argument('--gap-extend', type=int, help='Affine gap extend cost')
    parser.add_argument('--min-space', type=int, help='Minimum region length a chain may fill')
    parser.add_argument('--min-fill', type=int, help='Minimum gap length kept in the net')
    parser.add_argument('--no-query-net', action='store_true', help='Skip the query-side net (query.net)')
    parser.add_argument('--syntenic', action='store_true', help='Classify target net fills by synteny')
    parser.add_argument('--workers', help="Worker processes ('auto' or a number)")
    return parser.parse_args(argv)


def cli(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        overrides = build_overrides(args)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return 1
    return main(args.config, overrides or None)


__all__ = [
    'load_config',
    'setup_logging',
    'ChainSettings',
    'NetSettings',
    'load_block_groups',
    'run_chaining',
    'run_netting',
    'run_pipeline',
    'main',
    'cli',
]


if __name__ == "__main__":
    sys.exit(cli())
