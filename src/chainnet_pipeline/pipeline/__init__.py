from .main_pipeline import main, cli, run_pipeline, run_chaining, run_netting

__all__ = [
    'main',
    'cli',
    'run_pipeline',
    'run_chaining',
    'run_netting',
]

__version__ = "1.0.0"
__author__ = "Rowel Facunla"

def get_pipeline_info():
    """Get information about the pipeline."""
    return {
        'version': __version__,
        'author': __author__,
        'description': 'Chaining and netting pipeline for pairwise genome alignments',
        'entry_point': 'chainnet_pipeline.pipeline.main_pipeline:cli',
    }
