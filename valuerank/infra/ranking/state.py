"""
排序状态模块
定义策略配置和单次排序会话的内部状态
"""

import random
from dataclasses import dataclass, field
from typing import List, Dict, Set, Tuple, FrozenSet, Optional, Any

from valuerank.core.models import Item, ComparisonRequest, DecisionRecord


@dataclass
class RankingConfig:
    """策略配置: 决胜边界、ELO参数、随机抽样重试次数等"""

    cutoff: int = 10
    max_tie_break_rounds: Optional[int] = 5

    elo_init_rating: float = 1000
    elo_k_factor: float = 32
    elo_logistic_constant: float = 400
    max_comparisons: int = 150
    target_comparisons: Optional[int] = None
    random_attempts: int = 100
    top_attempts: int = 50
    top_pool_size: int = 15
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RankingConfig':
        """从扁平字典创建配置，忽略未知键"""
        known = {k: v for k, v in (data or {}).items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class MergeProgress:
    """自适应归并进度: 工作序列、后序归并步骤以及当前步骤内的游标"""

    order: List[str]
    steps: List[Tuple[int, int, int]]
    step_index: int = 0
    left_pos: int = 0
    right_pos: int = 0
    merged: List[str] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.step_index >= len(self.steps)


@dataclass
class RankingState:
    """单次排序会话的状态，由一个策略实例独占"""

    strategy: str
    items: List[Item]
    positions: Dict[str, int]
    scores: Dict[str, float]
    decisions: List[DecisionRecord] = field(default_factory=list)
    pending: Optional[ComparisonRequest] = None
    target: int = 0
    queue: List[Tuple[str, str]] = field(default_factory=list)
    cursor: int = 0
    asked_pairs: Set[FrozenSet[str]] = field(default_factory=set)
    tie_break_pairs: Set[FrozenSet[str]] = field(default_factory=set)
    tie_break_rounds: int = 0
    merge: Optional[MergeProgress] = None
    rng: Optional[random.Random] = None

    @property
    def completed(self) -> int:
        return len(self.decisions)

    def get_item(self, item_id: str) -> Item:
        return self.items[self.positions[item_id]]

    def ordered_ids(self) -> List[str]:
        """按分数降序排列的id列表，同分按输入顺序"""
        return [
            item.id for item in sorted(
                self.items,
                key=lambda it: (-self.scores[it.id], self.positions[it.id])
            )
        ]

    def snapshot(self) -> Dict[str, Any]:
        """导出可比较的状态快照"""
        return {
            'strategy': self.strategy,
            'scores': dict(self.scores),
            'decisions': [d.to_dict() for d in self.decisions],
            'pending': self.pending.pair if self.pending else None,
            'target': self.target,
            'queue': list(self.queue),
            'cursor': self.cursor,
            'asked_pairs': sorted(tuple(sorted(p)) for p in self.asked_pairs),
            'tie_break_pairs': sorted(tuple(sorted(p)) for p in self.tie_break_pairs),
            'tie_break_rounds': self.tie_break_rounds,
            'merge': None if self.merge is None else {
                'order': list(self.merge.order),
                'step_index': self.merge.step_index,
                'left_pos': self.merge.left_pos,
                'right_pos': self.merge.right_pos,
                'merged': list(self.merge.merged),
            },
            'rng': self.rng.getstate() if self.rng else None,
        }
