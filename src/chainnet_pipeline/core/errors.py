"""
Exception types for the chaining and netting pipeline.
Author: Rowel Facunla
"""

from typing import Any, Optional, Tuple


class ChainNetError(Exception):
    """Base class for every error raised by chainnet_pipeline."""


class MalformedBlockError(ChainNetError):
    """
    A block that cannot take part in chaining.

    Raised for zero/negative length on either axis, axis-length mismatch
    within an ungapped block, or coordinate inversion. Fatal for the group
    that contains the block.
    """

    def __init__(self, group_key: Optional[Tuple[str, str, str]], block_index: int, reason: str):
        self.group_key = group_key
        self.block_index = block_index
        self.reason = reason
        group = "/".join(group_key) if group_key else "<ungrouped>"
        super().__init__(f"Malformed block #{block_index} in group {group}: {reason}")

    def __reduce__(self):
        return (self.__class__, (self.group_key, self.block_index, self.reason))


class ConfigurationError(ChainNetError):
    """Conflicting or invalid run configuration. Raised before any work starts."""


class NetInvariantError(ChainNetError):
    """
    Internal consistency failure while building or checking a net.

    ``state`` carries a dump of the structure being checked so the
    failure can be debugged after the fact.
    """

    def __init__(self, message: str, state: Any = None):
        self.state = state
        self.detail = message
        if state is not None:
            message = f"{message}\n--- state dump ---\n{state}"
        super().__init__(message)

    def __reduce__(self):
        return (self.__class__, (self.detail, self.state))


class ChainFormatError(ChainNetError):
    """Text that is not a valid chain or net record."""

    def __init__(self, message: str, line_no: Optional[int] = None):
        self.line_no = line_no
        self.detail = message
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)

    def __reduce__(self):
        return (self.__class__, (self.detail, self.line_no))


__all__ = [
    'ChainNetError',
    'MalformedBlockError',
    'ConfigurationError',
    'NetInvariantError',
    'ChainFormatError',
]
