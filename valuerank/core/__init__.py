from .errors import (
    RankingError,
    InvalidDecision,
    DuplicateItemError,
    TooFewItemsError,
    UnknownStrategyError,
)
from .models import Item, ComparisonRequest, DecisionRecord, RankedEntry

__all__ = [
    'RankingError',
    'InvalidDecision',
    'DuplicateItemError',
    'TooFewItemsError',
    'UnknownStrategyError',
    'Item',
    'ComparisonRequest',
    'DecisionRecord',
    'RankedEntry',
]
