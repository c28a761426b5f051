"""
valuerank
两两比较排序引擎: 全配对、分治归并、交互式归并、ELO评分
"""

from valuerank.core.errors import (
    RankingError,
    InvalidDecision,
    DuplicateItemError,
    TooFewItemsError,
    UnknownStrategyError,
)
from valuerank.core.models import Item, ComparisonRequest, DecisionRecord, RankedEntry
from valuerank.core.session import RankingSession, load_items
from valuerank.infra.ranking import (
    RankingConfig,
    RankingState,
    StrategyType,
    RankingStrategy,
    ExhaustivePairwiseStrategy,
    DivideAndConquerMergeStrategy,
    InteractiveMergeStrategy,
    EloRatingStrategy,
    create_strategy,
)

__version__ = "0.1.0"

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
    'RankingSession',
    'load_items',
    'RankingConfig',
    'RankingState',
    'StrategyType',
    'RankingStrategy',
    'ExhaustivePairwiseStrategy',
    'DivideAndConquerMergeStrategy',
    'InteractiveMergeStrategy',
    'EloRatingStrategy',
    'create_strategy',
]
