"""
边界决胜模块
主排序结束后，若第 cutoff 名与第 cutoff+1 名同分，为同分条目追加两两比较
"""

from typing import List, Tuple, Optional

from valuerank.infra.ranking.state import RankingState
from valuerank.utils.logger import get_logger

logger = get_logger(__name__)


class CutoffTieBreaker:
    """
    边界决胜器

    同分组内每对只追加一次；每轮结束后重新检测边界，
    组内配对全部用尽或达到 max_rounds 时停止，剩余同分按输入顺序排列。
    """

    def __init__(self, cutoff: int = 10, max_rounds: Optional[int] = 5):
        self.cutoff = cutoff
        self.max_rounds = max_rounds

    def find_tied_group(self, state: RankingState) -> List[str]:
        """返回跨越边界的同分条目id（按输入顺序），无同分时返回空列表"""
        if self.cutoff <= 0 or len(state.items) <= self.cutoff:
            return []

        ordered = state.ordered_ids()
        boundary_score = state.scores[ordered[self.cutoff - 1]]
        if state.scores[ordered[self.cutoff]] != boundary_score:
            return []

        return [item.id for item in state.items if state.scores[item.id] == boundary_score]

    @staticmethod
    def generate_pairs(tied_ids: List[str], exclude) -> List[Tuple[str, str]]:
        """生成同分组内尚未在决胜轮中出现过的全部配对"""
        pairs = []
        for i, item_a in enumerate(tied_ids):
            for item_b in tied_ids[i + 1:]:
                if frozenset((item_a, item_b)) not in exclude:
                    pairs.append((item_a, item_b))
        return pairs

    def extend(self, state: RankingState) -> List[Tuple[str, str]]:
        """检测边界同分并生成新一轮决胜配对，同时更新状态中的轮次记录"""
        if self.max_rounds is not None and state.tie_break_rounds >= self.max_rounds:
            return []

        tied_ids = self.find_tied_group(state)
        if len(tied_ids) < 2:
            return []

        pairs = self.generate_pairs(tied_ids, state.tie_break_pairs)
        if not pairs:
            logger.info(f"边界同分组 {len(tied_ids)} 项的配对已全部比较，保留同分并按输入顺序排列")
            return []

        state.tie_break_rounds += 1
        state.tie_break_pairs.update(frozenset(pair) for pair in pairs)
        logger.info(
            f"第 {self.cutoff}/{self.cutoff + 1} 名同分，进入第 {state.tie_break_rounds} 轮决胜: "
            f"同分 {len(tied_ids)} 项，追加 {len(pairs)} 次比较"
        )
        return pairs
