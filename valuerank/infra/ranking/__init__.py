"""
排序引擎基础设施
提供配对策略、评分算法、边界决胜和四种排序策略
"""

from .state import (
    RankingConfig,
    RankingState,
    MergeProgress,
)
from .pairing_strategies import (
    PairingStrategy,
    QueuePairingStrategy,
    AdaptiveMergePairingStrategy,
    EloPairingStrategy,
)
from .rating_algorithms import (
    RatingAlgorithm,
    WinCountAlgorithm,
    ELORatingAlgorithm,
)
from .tie_breaker import CutoffTieBreaker
from .strategies import (
    StrategyType,
    RankingStrategy,
    ExhaustivePairwiseStrategy,
    DivideAndConquerMergeStrategy,
    InteractiveMergeStrategy,
    EloRatingStrategy,
    create_strategy,
    calculate_expected_comparisons,
    calculate_recommended_comparisons,
)

__all__ = [
    # 状态与配置
    'RankingConfig',
    'RankingState',
    'MergeProgress',
    # 配对策略
    'PairingStrategy',
    'QueuePairingStrategy',
    'AdaptiveMergePairingStrategy',
    'EloPairingStrategy',
    # 评分算法
    'RatingAlgorithm',
    'WinCountAlgorithm',
    'ELORatingAlgorithm',
    # 边界决胜
    'CutoffTieBreaker',
    # 排序策略
    'StrategyType',
    'RankingStrategy',
    'ExhaustivePairwiseStrategy',
    'DivideAndConquerMergeStrategy',
    'InteractiveMergeStrategy',
    'EloRatingStrategy',
    'create_strategy',
    'calculate_expected_comparisons',
    'calculate_recommended_comparisons',
]
