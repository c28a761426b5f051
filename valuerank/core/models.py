"""
排序引擎数据模型
定义待排序条目、比较请求、决策记录和排名结果
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any


@dataclass(eq=False)
class Item:
    """待排序条目: 以id作为唯一标识，name/definition仅用于展示"""

    id: str
    name: str
    definition: Optional[str] = None
    score: float = 0
    rank: Optional[int] = None

    def __eq__(self, other) -> bool:
        if not isinstance(other, Item):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Item':
        """从字典创建条目，缺少name时使用id"""
        item_id = data.get('id')
        if item_id is None:
            raise ValueError(f"条目缺少id字段: {data}")
        return cls(
            id=str(item_id),
            name=data.get('name') or str(item_id),
            definition=data.get('definition'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'definition': self.definition,
            'score': self.score,
            'rank': self.rank,
        }


@dataclass(frozen=True)
class ComparisonRequest:
    """待展示给用户的一次比较"""

    item1: Item
    item2: Item
    sequence: int

    @property
    def pair(self):
        return self.item1.id, self.item2.id

    def involves(self, item1_id: str, item2_id: str) -> bool:
        """判断给定的两个id是否正是本次比较的两项（顺序无关）"""
        return {item1_id, item2_id} == {self.item1.id, self.item2.id} and item1_id != item2_id


@dataclass(frozen=True)
class DecisionRecord:
    """一次人工选择的结果，只追加不修改"""

    item1_id: str
    item2_id: str
    winner_id: str
    sequence: int

    def __post_init__(self):
        if self.winner_id not in (self.item1_id, self.item2_id):
            raise ValueError(
                f"胜者 {self.winner_id} 不属于比较双方: {self.item1_id}, {self.item2_id}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DecisionRecord':
        """从持久化的字典（如CSV行）恢复，id统一转为字符串"""
        return cls(
            item1_id=str(data['item1_id']),
            item2_id=str(data['item2_id']),
            winner_id=str(data['winner_id']),
            sequence=int(data['sequence']),
        )

    @property
    def loser_id(self) -> str:
        return self.item2_id if self.winner_id == self.item1_id else self.item1_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sequence': self.sequence,
            'item1_id': self.item1_id,
            'item2_id': self.item2_id,
            'winner_id': self.winner_id,
        }


@dataclass(frozen=True)
class RankedEntry:
    """排名结果中的一行"""

    item: Item
    score: float
    rank: int = field(default=0)
