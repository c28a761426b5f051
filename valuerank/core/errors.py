"""排序引擎异常定义"""


class RankingError(Exception):
    """排序引擎异常基类"""


class InvalidDecision(RankingError, ValueError):
    """决策无效: id不在当前比较中，或胜者不是比较双方之一"""


class DuplicateItemError(RankingError, ValueError):
    """初始条目列表中存在重复id"""


class TooFewItemsError(RankingError, ValueError):
    """条目数量低于宿主要求的最小值"""


class UnknownStrategyError(RankingError, ValueError):
    """未知的排序策略名称"""
