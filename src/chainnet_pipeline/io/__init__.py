from .chain_io import (
    read_chains,
    write_chain,
    format_chain,
    parse_chain,
    parse_chains,
    write_chains,
    load_chains,
)

from .net_io import (
    read_nets,
    write_net,
    format_net,
    parse_nets,
    write_nets,
    load_nets,
)

from .psl_reader import (
    PslRecord,
    read_psl,
    load_psl,
    psl_to_blocks,
    psl_block_entries,
)

from .sizes_reader import (
    read_sizes,
    write_sizes,
)

from .fasta_reader import (
    validate_fasta_file,
    fasta_sizes,
)

from .file_handler import (
    check_disk_space,
    ensure_directory,
    get_memory_usage,
)

__all__ = [
    # Chain format
    'read_chains',
    'write_chain',
    'format_chain',
    'parse_chain',
    'parse_chains',
    'write_chains',
    'load_chains',

    # Net format
    'read_nets',
    'write_net',
    'format_net',
    'parse_nets',
    'write_nets',
    'load_nets',

    # Alignment input
    'PslRecord',
    'read_psl',
    'load_psl',
    'psl_to_blocks',
    'psl_block_entries',
    'read_sizes',
    'write_sizes',

    # FASTA and files
    'validate_fasta_file',
    'fasta_sizes',
    'check_disk_space',
    'ensure_directory',
    'get_memory_usage',
]
