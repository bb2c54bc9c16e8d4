"""
Pooling reduction strategies.
"""
from ._selectors import (
    PoolerSelector,
    Max,
    Mean,
    Extremum,
    SExpLog,
    SELECTOR_TYPES,
    get_selector
)

__all__ = [
    'PoolerSelector',
    'Max',
    'Mean',
    'Extremum',
    'SExpLog',
    'SELECTOR_TYPES',
    'get_selector'
]
