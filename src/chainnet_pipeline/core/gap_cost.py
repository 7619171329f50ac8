"""
Gap cost models for chaining.

Two strategies share one dispatch function: an explicit affine cost and the
quasi-natural "linear" curves (``medium`` and ``loose``) used for closely and
distantly related genome pairs. The curve anchor tables are compatibility
constants and must not be re-derived.

Author: Rowel Facunla
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigurationError

# ================================================================
# Quasi-natural anchor tables
# ================================================================
CURVE_POSITIONS = (1, 2, 3, 11, 111, 2111, 12111, 32111, 72111, 152111, 252111)

CURVE_VALUES = {
    'medium': {
        'q': (325, 360, 400, 450, 600, 1100, 3600, 7600, 15600, 31600, 56600),
        't': (325, 360, 400, 450, 600, 1100, 3600, 7600, 15600, 31600, 56600),
        'b': (625, 660, 700, 750, 900, 1400, 4000, 8000, 16000, 32000, 57000),
    },
    'loose': {
        'q': (350, 425, 450, 600, 900, 2900, 22900, 57900, 117900, 217900, 317900),
        't': (350, 425, 450, 600, 900, 2900, 22900, 57900, 117900, 217900, 317900),
        'b': (750, 825, 850, 1000, 1300, 3300, 23300, 58300, 118300, 218300, 318300),
    },
}

# Gaps shorter than this are answered from a precomputed table
SMALL_SIZE = 111


def _interpolate(x: int, positions, values) -> float:
    """Piecewise-linear interpolation over anchor points."""
    for i, pos in enumerate(positions):
        if x == pos:
            return float(values[i])
        if x < pos:
            if i == 0:
                return float(values[0])
            ds = positions[i] - positions[i - 1]
            dv = values[i] - values[i - 1]
            return values[i - 1] + dv * (x - positions[i - 1]) / ds
    ds = positions[-1] - positions[-2]
    dv = values[-1] - values[-2]
    return values[-2] + dv * (x - positions[-2]) / ds


@dataclass(frozen=True)
class CurveTable:
    """One axis of a quasi-natural curve: a small lookup table plus long anchors."""
    small: Tuple[int, ...]
    long_pos: Tuple[int, ...]
    long_val: Tuple[float, ...]
    last_slope: float

    @classmethod
    def build(cls, positions, values) -> 'CurveTable':
        small = [0]
        for i in range(1, SMALL_SIZE):
            small.append(int(_interpolate(i, positions, values)))

        start = list(positions).index(SMALL_SIZE)
        long_pos = tuple(positions[start:])
        long_val = tuple(float(v) for v in values[start:])
        last_slope = (long_val[-1] - long_val[-2]) / (long_pos[-1] - long_pos[-2])
        return cls(tuple(small), long_pos, long_val, last_slope)

    def lookup(self, size: int) -> int:
        if size < SMALL_SIZE:
            return self.small[size]
        if size >= self.long_pos[-1]:
            return int(self.long_val[-1] + self.last_slope * (size - self.long_pos[-1]))
        return int(_interpolate(size, self.long_pos, self.long_val))


@dataclass(frozen=True)
class GapCost:
    """
    Gap cost strategy.

    ``kind`` is either ``'affine'`` (uses ``open`` and ``extend``) or
    ``'linear'`` (uses the three curve tables named by ``curve``).
    Instances are immutable and cheap to pickle into worker processes.
    """
    kind: str
    open: int = 0
    extend: int = 0
    curve: Optional[str] = None
    tables: Dict[str, CurveTable] = field(default_factory=dict, compare=False, repr=False)

    # ------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------
    @classmethod
    def affine(cls, open: int, extend: int) -> 'GapCost':
        if open < 0 or extend < 0:
            raise ConfigurationError(
                f"Affine gap costs must be non-negative (open={open}, extend={extend})"
            )
        return cls(kind='affine', open=int(open), extend=int(extend))

    @classmethod
    def linear(cls, curve: str = 'medium') -> 'GapCost':
        if curve not in CURVE_VALUES:
            raise ConfigurationError(
                f"Unknown linear gap curve '{curve}'. Use one of {sorted(CURVE_VALUES)}"
            )
        tables = {
            axis: CurveTable.build(CURVE_POSITIONS, vals)
            for axis, vals in CURVE_VALUES[curve].items()
        }
        return cls(kind='linear', curve=curve, tables=tables)

    @classmethod
    def medium(cls) -> 'GapCost':
        return cls.linear('medium')

    @classmethod
    def loose(cls) -> 'GapCost':
        return cls.linear('loose')

    @classmethod
    def from_config(cls, params: Optional[Dict[str, Any]]) -> 'GapCost':
        """
        Build a model from the ``gap_model`` config section.

        Accepted shapes::

            {'linear': 'medium'}
            {'affine': {'open': 400, 'extend': 30}}

        Args:
            params: Section contents (None selects the medium curve)

        Returns:
            GapCost instance
        """
        if not params:
            return cls.medium()
        if not isinstance(params, dict):
            raise ConfigurationError(f"gap_model must be a mapping, got {type(params).__name__}")

        affine = params.get('affine')
        linear = params.get('linear')
        if affine and linear:
            raise ConfigurationError(
                "gap_model specifies both affine costs and a linear curve; choose one"
            )
        if affine:
            if not isinstance(affine, dict) or 'open' not in affine or 'extend' not in affine:
                raise ConfigurationError("gap_model.affine needs 'open' and 'extend'")
            return cls.affine(affine['open'], affine['extend'])
        return cls.linear(linear or 'medium')

    # ------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------
    def cost(self, dt: int, dq: int) -> int:
        return gap_cost(self, dt, dq)

    def describe(self) -> str:
        if self.kind == 'affine':
            return f"affine(open={self.open}, extend={self.extend})"
        return f"linear({self.curve})"


def gap_cost(model: GapCost, dt: int, dq: int) -> int:
    """
    Penalty for a gap of ``dt`` target bases and ``dq`` query bases.

    ``gap_cost(model, 0, 0) == 0`` and the result never decreases when either
    argument grows.
    """
    dt = max(0, int(dt))
    dq = max(0, int(dq))
    if dt == 0 and dq == 0:
        return 0

    if model.kind == 'affine':
        return model.open + model.extend * max(dt, dq)

    if dt == 0:
        return model.tables['q'].lookup(dq)
    if dq == 0:
        return model.tables['t'].lookup(dt)
    return model.tables['b'].lookup(max(dt, dq))


def curve_points(curve: str) -> List[Tuple[int, int, int, int]]:
    """Anchor rows ``(position, q, t, both)`` for reporting."""
    vals = CURVE_VALUES[curve]
    return [
        (pos, vals['q'][i], vals['t'][i], vals['b'][i])
        for i, pos in enumerate(CURVE_POSITIONS)
    ]


__all__ = [
    'CURVE_POSITIONS',
    'CURVE_VALUES',
    'CurveTable',
    'GapCost',
    'gap_cost',
    'curve_points',
]
