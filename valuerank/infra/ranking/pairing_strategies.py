"""
配对策略模块
决定下一次展示给用户的两项: 固定队列、自适应归并、ELO分阶段随机抽样
"""

from abc import ABC, abstractmethod
from typing import List, Tuple, Optional

from valuerank.infra.ranking.state import RankingState, MergeProgress


Pair = Tuple[str, str]


def all_pairs(item_ids: List[str]) -> List[Pair]:
    """按输入位置生成全部无序配对: i < j"""
    pairs = []
    for i, item_a in enumerate(item_ids):
        for item_b in item_ids[i + 1:]:
            pairs.append((item_a, item_b))
    return pairs


def merge_trace(item_ids: List[str]) -> List[Pair]:
    """
    预先生成归并排序的比较轨迹

    递归二分（mid = len // 2），先左后右，再归并。
    归并时暂定左侧获胜，因此轨迹与用户的实际选择无关。
    """
    pairs: List[Pair] = []

    def _split(arr: List[str]):
        if len(arr) <= 1:
            return
        mid = len(arr) // 2
        left, right = arr[:mid], arr[mid:]
        _split(left)
        _split(right)

        left_index = 0
        right_index = 0
        while left_index < len(left) and right_index < len(right):
            pairs.append((left[left_index], right[right_index]))
            left_index += 1

    _split(list(item_ids))
    return pairs


def merge_steps(n: int) -> List[Tuple[int, int, int]]:
    """生成递归二分的后序归并步骤 (lo, mid, hi)"""
    steps = []

    def _split(lo: int, hi: int):
        if hi - lo <= 1:
            return
        mid = lo + (hi - lo) // 2
        _split(lo, mid)
        _split(mid, hi)
        steps.append((lo, mid, hi))

    _split(0, n)
    return steps


class PairingStrategy(ABC):
    """配对策略基类: 定义选择下一对和推进状态的接口"""

    @abstractmethod
    def next_pair(self, state: RankingState) -> Optional[Pair]:
        """返回下一对待比较的id，无可比较项时返回None"""
        pass

    def advance(self, state: RankingState, item_a: str, item_b: str, winner: str):
        """记录决策后推进选择器状态"""
        pass


class QueuePairingStrategy(PairingStrategy):
    """队列配对策略: 按顺序逐个下发预先生成（及追加）的配对"""

    def next_pair(self, state: RankingState) -> Optional[Pair]:
        if state.cursor < len(state.queue):
            return state.queue[state.cursor]
        return None

    def advance(self, state: RankingState, item_a: str, item_b: str, winner: str):
        state.cursor += 1


class AdaptiveMergePairingStrategy(QueuePairingStrategy):
    """
    自适应归并配对策略

    真正的交互式归并排序: left[i] 与 right[j] 的胜者决定推进 i 还是 j。
    归并全部完成后，再下发队列中追加的决胜配对。
    """

    def start(self, state: RankingState):
        """初始化归并进度"""
        state.merge = MergeProgress(
            order=[item.id for item in state.items],
            steps=merge_steps(len(state.items)),
        )

    def next_pair(self, state: RankingState) -> Optional[Pair]:
        merge = state.merge
        if merge is None or merge.finished:
            return super().next_pair(state)

        lo, mid, hi = merge.steps[merge.step_index]
        left = merge.order[lo:mid]
        right = merge.order[mid:hi]
        return left[merge.left_pos], right[merge.right_pos]

    def advance(self, state: RankingState, item_a: str, item_b: str, winner: str):
        merge = state.merge
        if merge is None or merge.finished:
            super().advance(state, item_a, item_b, winner)
            return

        lo, mid, hi = merge.steps[merge.step_index]
        left = merge.order[lo:mid]
        right = merge.order[mid:hi]

        if winner == left[merge.left_pos]:
            merge.merged.append(left[merge.left_pos])
            merge.left_pos += 1
        else:
            merge.merged.append(right[merge.right_pos])
            merge.right_pos += 1

        if merge.left_pos >= len(left) or merge.right_pos >= len(right):
            merge.merged.extend(left[merge.left_pos:])
            merge.merged.extend(right[merge.right_pos:])
            merge.order[lo:hi] = merge.merged
            merge.step_index += 1
            merge.left_pos = 0
            merge.right_pos = 0
            merge.merged = []

    def remaining_upper_bound(self, state: RankingState) -> int:
        """剩余归并比较次数的上界（最坏情况）"""
        merge = state.merge
        if merge is None or merge.finished:
            return 0

        lo, mid, hi = merge.steps[merge.step_index]
        remaining = (mid - lo - merge.left_pos) + (hi - mid - merge.right_pos) - 1
        for lo, mid, hi in merge.steps[merge.step_index + 1:]:
            remaining += hi - lo - 1
        return remaining


class EloPairingStrategy(PairingStrategy):
    """
    ELO分阶段配对策略

    前半程在全部条目中随机抽取未比较过的配对；
    后半程只在当前评分前 top_pool_size 的条目中抽取。
    重试次数用尽时退回固定配对，保证总能继续。
    """

    def __init__(
        self,
        random_attempts: int = 100,
        top_attempts: int = 50,
        top_pool_size: int = 15
    ):
        self.random_attempts = random_attempts
        self.top_attempts = top_attempts
        # 候选池至少需要两项才能组成配对
        self.top_pool_size = max(2, top_pool_size)

    def next_pair(self, state: RankingState) -> Optional[Pair]:
        if len(state.items) < 2 or state.completed >= state.target:
            return None

        if state.completed < state.target / 2:
            return self._random_pair(state)
        return self._top_pair(state)

    def _random_pair(self, state: RankingState) -> Pair:
        item_ids = [item.id for item in state.items]
        pair = self._sample_unseen(state, item_ids, self.random_attempts)
        if pair is None:
            return item_ids[0], item_ids[1]
        return pair

    def _top_pair(self, state: RankingState) -> Pair:
        top_ids = state.ordered_ids()[:min(self.top_pool_size, len(state.items))]
        pair = self._sample_unseen(state, top_ids, self.top_attempts)
        if pair is None:
            return top_ids[0], top_ids[1]
        return pair

    @staticmethod
    def _sample_unseen(state: RankingState, pool: List[str], max_attempts: int) -> Optional[Pair]:
        if len(pool) < 2:
            return None

        for _ in range(max_attempts):
            idx1 = state.rng.randrange(len(pool))
            idx2 = state.rng.randrange(len(pool))
            while idx2 == idx1:
                idx2 = state.rng.randrange(len(pool))

            pair = (pool[idx1], pool[idx2])
            if frozenset(pair) not in state.asked_pairs:
                return pair
        return None
