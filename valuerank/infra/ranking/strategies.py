"""
排序策略模块
四种可互换的排序策略: 全配对、分治归并、交互式归并、ELO评分
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import replace
from enum import Enum
from typing import List, Dict, Iterable, Optional, Union

from valuerank.core.errors import InvalidDecision, DuplicateItemError, UnknownStrategyError
from valuerank.core.models import Item, ComparisonRequest, DecisionRecord, RankedEntry
from valuerank.infra.ranking.pairing_strategies import (
    PairingStrategy,
    QueuePairingStrategy,
    AdaptiveMergePairingStrategy,
    EloPairingStrategy,
    all_pairs,
    merge_trace,
)
from valuerank.infra.ranking.rating_algorithms import (
    RatingAlgorithm,
    WinCountAlgorithm,
    ELORatingAlgorithm,
)
from valuerank.infra.ranking.state import RankingConfig, RankingState
from valuerank.infra.ranking.tie_breaker import CutoffTieBreaker
from valuerank.utils.logger import get_logger

logger = get_logger(__name__)


class StrategyType(str, Enum):
    EXHAUSTIVE = 'exhaustive'
    DIVIDE_AND_CONQUER = 'divide_and_conquer'
    INTERACTIVE_MERGE = 'interactive_merge'
    ELO = 'elo'


def calculate_expected_comparisons(n: int) -> int:
    """归并策略的预期比较次数: ceil(n * log2(n))"""
    if n <= 1:
        return 0
    return math.ceil(n * math.log2(n))


def calculate_recommended_comparisons(n: int, max_comparisons: int = 150) -> int:
    """ELO策略的推荐比较次数: 每项约3次，不超过全配对的一半，并设上限"""
    return max(0, min(n * 3, (n * (n - 1)) // 4, max_comparisons))


class RankingStrategy(ABC):
    """
    排序策略基类

    策略本身只持有配置；会话状态由 init() 创建并交给调用方持有，
    之后每次调用都显式传入。
    """

    strategy_type: StrategyType = None

    def __init__(self, config: Optional[RankingConfig] = None):
        self.config = config or RankingConfig()
        self.pairing_strategy: PairingStrategy = self._build_pairing_strategy()
        self.rating_algorithm: RatingAlgorithm = self._build_rating_algorithm()

    @abstractmethod
    def _build_pairing_strategy(self) -> PairingStrategy:
        pass

    def _build_rating_algorithm(self) -> RatingAlgorithm:
        return WinCountAlgorithm()

    def _prepare(self, state: RankingState):
        """策略相关的状态初始化"""
        pass

    def _after_decision(self, state: RankingState):
        """记录决策之后的钩子（如边界决胜）"""
        pass

    @abstractmethod
    def total_comparisons(self, state: RankingState) -> int:
        """当前预计的总比较次数"""
        pass

    @abstractmethod
    def is_complete(self, state: RankingState) -> bool:
        pass

    def init(self, items: Iterable[Item]) -> RankingState:
        """以宿主提供的条目列表创建新的排序状态"""
        initial = self.rating_algorithm.get_initial_rating()
        session_items: List[Item] = []
        positions: Dict[str, int] = {}
        for item in items:
            if item.id in positions:
                raise DuplicateItemError(f"条目id重复: {item.id}")
            positions[item.id] = len(session_items)
            session_items.append(replace(item, score=initial, rank=None))

        state = RankingState(
            strategy=self.strategy_type.value,
            items=session_items,
            positions=positions,
            scores={item.id: initial for item in session_items},
        )
        self._prepare(state)
        logger.debug(
            f"{self.strategy_type.value} 策略初始化: {len(session_items)} 项, "
            f"预计比较 {self.total_comparisons(state)} 次"
        )
        return state

    def next_comparison(self, state: RankingState) -> Optional[ComparisonRequest]:
        """返回当前待回答的比较；未回答前重复调用返回同一比较"""
        if state.pending is not None:
            return state.pending
        if self.is_complete(state):
            return None

        pair = self.pairing_strategy.next_pair(state)
        if pair is None:
            return None

        item_a, item_b = pair
        state.asked_pairs.add(frozenset(pair))
        state.pending = ComparisonRequest(
            item1=state.get_item(item_a),
            item2=state.get_item(item_b),
            sequence=state.completed + 1,
        )
        return state.pending

    def replay_comparison(self, state: RankingState, item1_id: str, item2_id: str) -> Optional[ComparisonRequest]:
        """回放决策日志时准备对应的比较；确定性策略按正常顺序重新生成"""
        return self.next_comparison(state)

    def record_decision(
        self,
        state: RankingState,
        item1_id: str,
        item2_id: str,
        winner_id: str
    ) -> RankingState:
        """记录一次人工选择；决策无效时抛出 InvalidDecision 且不修改状态"""
        self._validate_decision(state, item1_id, item2_id, winner_id)

        record = DecisionRecord(
            item1_id=item1_id,
            item2_id=item2_id,
            winner_id=winner_id,
            sequence=state.completed + 1,
        )

        old_a = state.scores[item1_id]
        old_b = state.scores[item2_id]
        new_a, new_b = self.rating_algorithm.update_ratings(
            item_a=item1_id,
            item_b=item2_id,
            winner=winner_id,
            current_ratings=state.scores,
        )
        state.scores[item1_id] = new_a
        state.scores[item2_id] = new_b
        state.get_item(item1_id).score = new_a
        state.get_item(item2_id).score = new_b

        self.pairing_strategy.advance(state, item1_id, item2_id, winner_id)
        state.decisions.append(record)
        state.pending = None

        logger.debug(
            f"第 {record.sequence} 次比较: {item1_id}({old_a}->{new_a}) vs "
            f"{item2_id}({old_b}->{new_b}), 胜者: {winner_id}"
        )

        self._after_decision(state)
        return state

    def _validate_decision(self, state: RankingState, item1_id: str, item2_id: str, winner_id: str):
        for item_id in (item1_id, item2_id):
            if item_id not in state.positions:
                raise InvalidDecision(f"条目不存在: {item_id}")

        if winner_id not in (item1_id, item2_id):
            raise InvalidDecision(f"胜者 {winner_id} 不属于比较双方: {item1_id}, {item2_id}")

        if state.pending is None:
            raise InvalidDecision("当前没有待回答的比较，请先调用 next_comparison")

        if not state.pending.involves(item1_id, item2_id):
            item_a, item_b = state.pending.pair
            raise InvalidDecision(
                f"决策 ({item1_id}, {item2_id}) 与当前比较 ({item_a}, {item_b}) 不符"
            )

    def top_k(self, state: RankingState, k: int) -> List[RankedEntry]:
        """按分数降序返回前k项，同分按输入顺序；条目为带名次的快照副本"""
        if k <= 0:
            return []

        result = []
        for rank, item_id in enumerate(state.ordered_ids()[:k], 1):
            result.append(RankedEntry(
                item=replace(state.get_item(item_id), rank=rank),
                score=state.scores[item_id],
                rank=rank,
            ))
        return result

    def progress(self, state: RankingState) -> Dict[str, float]:
        """返回 {completed, total, percentage}，用于界面展示"""
        completed = state.completed
        total = self.total_comparisons(state)
        percentage = 100.0 if total <= 0 else min(100.0, completed * 100 / total)
        return {
            'completed': completed,
            'total': total,
            'percentage': percentage,
        }


class _QueueStrategy(RankingStrategy):
    """按队列下发比较的策略公共部分"""

    def _build_pairing_strategy(self) -> PairingStrategy:
        return QueuePairingStrategy()

    def total_comparisons(self, state: RankingState) -> int:
        return len(state.queue)

    def is_complete(self, state: RankingState) -> bool:
        return state.pending is None and state.cursor >= len(state.queue)


class ExhaustivePairwiseStrategy(_QueueStrategy):
    """全配对策略: 每对恰好比较一次，共 N(N-1)/2 次"""

    strategy_type = StrategyType.EXHAUSTIVE

    def _prepare(self, state: RankingState):
        state.queue = all_pairs([item.id for item in state.items])
        state.target = len(state.queue)


class _TieBreakMixin:
    """主排序结束后在第 cutoff 名边界追加决胜比较"""

    def _build_tie_breaker(self, config: RankingConfig) -> CutoffTieBreaker:
        return CutoffTieBreaker(cutoff=config.cutoff, max_rounds=config.max_tie_break_rounds)

    def _primary_finished(self, state: RankingState) -> bool:
        return True

    def _extend_with_tie_break(self, state: RankingState):
        if not self._primary_finished(state) or state.cursor < len(state.queue):
            return

        pairs = self.tie_breaker.extend(state)
        if pairs:
            state.queue.extend(pairs)
            state.target += len(pairs)


class DivideAndConquerMergeStrategy(_TieBreakMixin, _QueueStrategy):
    """
    分治归并策略（批量）

    初始化时一次性生成完整的归并比较轨迹，轨迹不依赖用户选择，
    最终排名由累计胜场决定。主轨迹结束后按需追加边界决胜比较。
    """

    strategy_type = StrategyType.DIVIDE_AND_CONQUER

    def __init__(self, config: Optional[RankingConfig] = None):
        super().__init__(config)
        self.tie_breaker = self._build_tie_breaker(self.config)

    def _prepare(self, state: RankingState):
        state.queue = merge_trace([item.id for item in state.items])
        state.target = len(state.queue)
        self._extend_with_tie_break(state)

    def _after_decision(self, state: RankingState):
        self._extend_with_tie_break(state)

    def planned_comparisons(self, state: RankingState) -> List[ComparisonRequest]:
        """返回剩余的全部计划比较，供宿主批量展示"""
        planned = []
        for offset, (item_a, item_b) in enumerate(state.queue[state.cursor:]):
            planned.append(ComparisonRequest(
                item1=state.get_item(item_a),
                item2=state.get_item(item_b),
                sequence=state.completed + 1 + offset,
            ))
        return planned


class InteractiveMergeStrategy(_TieBreakMixin, RankingStrategy):
    """
    交互式归并策略

    按归并步骤逐个下发比较，下一对取决于本步骤中之前的胜者，
    即真正的归并排序；胜场计分，归并结束后按需追加边界决胜比较。
    """

    strategy_type = StrategyType.INTERACTIVE_MERGE

    def __init__(self, config: Optional[RankingConfig] = None):
        super().__init__(config)
        self.tie_breaker = self._build_tie_breaker(self.config)

    def _build_pairing_strategy(self) -> PairingStrategy:
        return AdaptiveMergePairingStrategy()

    def _prepare(self, state: RankingState):
        self.pairing_strategy.start(state)
        state.target = self.total_comparisons(state)
        self._extend_with_tie_break(state)

    def _primary_finished(self, state: RankingState) -> bool:
        return state.merge is None or state.merge.finished

    def _after_decision(self, state: RankingState):
        self._extend_with_tie_break(state)
        state.target = self.total_comparisons(state)

    def total_comparisons(self, state: RankingState) -> int:
        remaining_queue = len(state.queue) - state.cursor
        return (
            state.completed
            + self.pairing_strategy.remaining_upper_bound(state)
            + remaining_queue
        )

    def is_complete(self, state: RankingState) -> bool:
        return (
            state.pending is None
            and self._primary_finished(state)
            and state.cursor >= len(state.queue)
        )

    def merged_order(self, state: RankingState) -> List[str]:
        """归并得到的完整顺序（归并完成前为部分有序）"""
        return list(state.merge.order) if state.merge else []


class EloRatingStrategy(RankingStrategy):
    """
    ELO评分策略

    总比较次数 T = min(3N, N(N-1)/4, max_comparisons)，可由 target_comparisons 覆盖；
    达到 T 即结束，不做边界决胜。
    """

    strategy_type = StrategyType.ELO

    def _build_pairing_strategy(self) -> PairingStrategy:
        return EloPairingStrategy(
            random_attempts=self.config.random_attempts,
            top_attempts=self.config.top_attempts,
            top_pool_size=self.config.top_pool_size,
        )

    def _build_rating_algorithm(self) -> RatingAlgorithm:
        return ELORatingAlgorithm(
            init_rating=self.config.elo_init_rating,
            k_factor=self.config.elo_k_factor,
            logistic_constant=self.config.elo_logistic_constant,
        )

    def _prepare(self, state: RankingState):
        state.rng = random.Random(self.config.seed)
        if len(state.items) < 2:
            state.target = 0
        elif self.config.target_comparisons is not None:
            state.target = self.config.target_comparisons
        else:
            state.target = calculate_recommended_comparisons(
                len(state.items), self.config.max_comparisons
            )

    def replay_comparison(self, state: RankingState, item1_id: str, item2_id: str) -> Optional[ComparisonRequest]:
        """ELO配对是随机抽样的，回放时直接采用日志中记录的配对"""
        if state.pending is not None or self.is_complete(state):
            return state.pending

        for item_id in (item1_id, item2_id):
            if item_id not in state.positions:
                raise InvalidDecision(f"条目不存在: {item_id}")

        state.asked_pairs.add(frozenset((item1_id, item2_id)))
        state.pending = ComparisonRequest(
            item1=state.get_item(item1_id),
            item2=state.get_item(item2_id),
            sequence=state.completed + 1,
        )
        return state.pending

    def total_comparisons(self, state: RankingState) -> int:
        return state.target

    def is_complete(self, state: RankingState) -> bool:
        if state.pending is not None:
            return False
        return len(state.items) < 2 or state.completed >= state.target


STRATEGY_CLASSES = {
    StrategyType.EXHAUSTIVE: ExhaustivePairwiseStrategy,
    StrategyType.DIVIDE_AND_CONQUER: DivideAndConquerMergeStrategy,
    StrategyType.INTERACTIVE_MERGE: InteractiveMergeStrategy,
    StrategyType.ELO: EloRatingStrategy,
}


def create_strategy(
    strategy_type: Union[str, StrategyType],
    config: Optional[RankingConfig] = None
) -> RankingStrategy:
    """根据名称或枚举创建策略实例"""
    try:
        key = StrategyType(strategy_type)
    except ValueError:
        raise UnknownStrategyError(
            f"未知的排序策略: {strategy_type}，可选: {[t.value for t in StrategyType]}"
        )
    return STRATEGY_CLASSES[key](config)
