"""
评分算法模块
提供胜场计数和ELO两种分数更新方式
"""

from abc import ABC, abstractmethod
from typing import Dict, Tuple
import math


class RatingAlgorithm(ABC):
    """评分算法基类: 定义分数更新接口"""

    @abstractmethod
    def update_ratings(
        self,
        item_a: str,
        item_b: str,
        winner: str,
        current_ratings: Dict[str, float],
    ) -> Tuple[float, float]:
        """根据一次比较结果，返回两个条目的新分数"""
        pass

    @abstractmethod
    def get_initial_rating(self) -> float:
        """获取初始分数"""
        pass


class WinCountAlgorithm(RatingAlgorithm):
    """胜场计数: 胜者+1，败者不变"""

    def get_initial_rating(self) -> float:
        return 0

    def update_ratings(
        self,
        item_a: str,
        item_b: str,
        winner: str,
        current_ratings: Dict[str, float],
    ) -> Tuple[float, float]:
        rating_a = current_ratings.get(item_a, 0)
        rating_b = current_ratings.get(item_b, 0)

        if winner == item_a:
            return rating_a + 1, rating_b
        return rating_a, rating_b + 1


class ELORatingAlgorithm(RatingAlgorithm):
    """ELO评分算法: 双方基于更新前的评分同步更新，结果取整"""

    def __init__(
        self,
        init_rating: float = 1000,
        k_factor: float = 32,
        logistic_constant: float = 400,
        round_ratings: bool = True
    ):
        self.init_rating = init_rating
        self.k_factor = k_factor
        self.logistic_constant = logistic_constant
        self.round_ratings = round_ratings

    def get_initial_rating(self) -> float:
        """获取初始评分"""
        return self.init_rating

    def get_expected_score(
        self,
        rating_a: float,
        rating_b: float
    ) -> float:
        """
        计算期望得分

        公式: E_a = 1 / (1 + 10^((R_b - R_a) / logistic_constant))
        """
        return 1 / (1 + 10 ** ((rating_b - rating_a) / self.logistic_constant))

    def update_ratings(
        self,
        item_a: str,
        item_b: str,
        winner: str,
        current_ratings: Dict[str, float],
    ) -> Tuple[float, float]:
        """ELO评分更新：new_rating = old_rating + K * (actual - expected)"""
        rating_a = current_ratings.get(item_a, self.init_rating)
        rating_b = current_ratings.get(item_b, self.init_rating)

        expected_a = self.get_expected_score(rating_a, rating_b)
        expected_b = 1 - expected_a

        actual_a = 1.0 if winner == item_a else 0.0
        actual_b = 1.0 - actual_a

        new_rating_a = rating_a + self.k_factor * (actual_a - expected_a)
        new_rating_b = rating_b + self.k_factor * (actual_b - expected_b)

        if self.round_ratings:
            return self._round_half_up(new_rating_a), self._round_half_up(new_rating_b)
        return new_rating_a, new_rating_b

    @staticmethod
    def _round_half_up(value: float) -> int:
        # 四舍五入，x.5 向正无穷方向
        return int(math.floor(value + 0.5))
