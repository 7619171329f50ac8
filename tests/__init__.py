import sys
from pathlib import Path

SRC_DIR = Path(__file__).parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

__version__ = "1.0.0"
__author__ = "Rowel Facunla"
__description__ = "Test suite for the chaining and netting pipeline"

TEST_CATEGORIES = {
    'gap_cost': 'Gap cost model tests',
    'kd_tree': 'Predecessor index tests',
    'chaining': 'Block chaining tests',
    'overlap_trimmer': 'Block, chain and overlap trimming tests',
    'netting': 'Net construction tests',
    'syntenic': 'Fill synteny classification tests',
    'io': 'Chain, net, PSL and sizes format tests',
    'chain_ops': 'Chain operations, pre-net filter and scoring tests',
    'config': 'Configuration and validation tests',
    'pipeline': 'Integration and end-to-end tests',
}


def list_tests():
    """List test categories and the file each lives in."""
    print("Available Tests")
    print("=" * 60)
    for category, description in TEST_CATEGORIES.items():
        print(f"  {category:16} {description}  (tests/test_{category}.py)")
    print("\n" + "=" * 60)
    print("Run tests with: pytest tests/ -v")
    print("Run specific test: pytest tests/test_chaining.py::test_two_block_scenario -v")


def run_category(category: str):
    """Run tests in a specific category."""
    import subprocess

    if category not in TEST_CATEGORIES:
        print(f"Unknown category: {category}")
        print(f"Available categories: {', '.join(TEST_CATEGORIES.keys())}")
        return 1

    print(f"Running {category} tests...")
    print("=" * 60)
    result = subprocess.run([sys.executable, "-m", "pytest", f"tests/test_{category}.py", "-v"])
    return result.returncode


__all__ = [
    'list_tests',
    'run_category',
    'TEST_CATEGORIES',
    '__version__',
    '__author__',
    '__description__',
]
