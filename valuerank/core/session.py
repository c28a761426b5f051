"""
排序会话模块
把一个排序策略和它的状态绑定在一起，负责日志、决策回放、结果导出和二次筛选
"""

import json
import time
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Iterable, Optional, Union, Any

import numpy as np
import pandas as pd
import yaml

from valuerank.core.errors import TooFewItemsError
from valuerank.core.models import Item, ComparisonRequest, DecisionRecord, RankedEntry
from valuerank.infra.ranking.state import RankingConfig, RankingState
from valuerank.infra.ranking.strategies import (
    RankingStrategy,
    StrategyType,
    create_strategy,
    calculate_expected_comparisons,
)
from valuerank.utils.logger import get_logger

logger = get_logger(__name__)


def load_items(path: Union[str, Path]) -> List[Item]:
    """从JSON或YAML文件加载条目列表，支持纯字符串列表"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"条目文件不存在: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get('items', [])
    if not isinstance(data, list):
        raise ValueError(f"条目文件格式错误，应为列表: {path}")

    items = []
    for entry in data:
        if isinstance(entry, str):
            items.append(Item(id=entry, name=entry))
        else:
            items.append(Item.from_dict(entry))
    logger.info(f"已加载 {len(items)} 个条目: {path}")
    return items


class RankingSession:
    """排序会话: 驱动 next_comparison -> record_decision 循环，并记录决策日志"""

    def __init__(
        self,
        items: Iterable[Item],
        strategy: Union[str, StrategyType, RankingStrategy] = StrategyType.INTERACTIVE_MERGE,
        config: Optional[RankingConfig] = None,
        min_items: int = 0,
        session_id: Optional[str] = None
    ):
        items = list(items)
        if len(items) < min_items:
            raise TooFewItemsError(f"至少需要 {min_items} 个条目才能开始排序，当前 {len(items)} 个")

        if isinstance(strategy, RankingStrategy):
            self.strategy = strategy
        else:
            self.strategy = create_strategy(strategy, config)

        self.session_id = session_id or self.generate_session_id()
        self.created_at = datetime.now()
        self.state: RankingState = self.strategy.init(items)

        n = len(items)
        logger.info(
            f"[{self.session_id}] 开始排序: 策略 {self.strategy.strategy_type.value}, "
            f"条目 {n} 个, 预计比较 {self.progress()['total']} 次 "
            f"(全配对需 {n * (n - 1) // 2} 次)"
        )

    @staticmethod
    def generate_session_id() -> str:
        """生成会话ID，格式: YYYYMMDD_HHMMSS_ffffff"""
        return datetime.now().strftime('%Y%m%d_%H%M%S_%f')

    @classmethod
    def replay(
        cls,
        items: Iterable[Item],
        records: Iterable[Union[DecisionRecord, Dict[str, Any]]],
        strategy: Union[str, StrategyType, RankingStrategy] = StrategyType.INTERACTIVE_MERGE,
        config: Optional[RankingConfig] = None,
        session_id: Optional[str] = None
    ) -> 'RankingSession':
        """
        按已持久化的决策日志重建会话

        ELO策略直接采用日志中的配对，不依赖原会话的 seed；
        之后继续排序时的抽样顺序则只有 seed 相同才与原会话一致。
        """
        session = cls(items, strategy=strategy, config=config, session_id=session_id)
        for record in sorted(
            (r if isinstance(r, DecisionRecord) else DecisionRecord.from_dict(r) for r in records),
            key=lambda r: r.sequence
        ):
            session.strategy.replay_comparison(session.state, record.item1_id, record.item2_id)
            session.record_decision(record.item1_id, record.item2_id, record.winner_id)
        logger.info(f"[{session.session_id}] 已回放 {session.state.completed} 条决策")
        return session

    @property
    def decisions(self) -> List[DecisionRecord]:
        return list(self.state.decisions)

    def next_comparison(self) -> Optional[ComparisonRequest]:
        return self.strategy.next_comparison(self.state)

    def record_decision(self, item1_id: str, item2_id: str, winner_id: str) -> DecisionRecord:
        """记录一次选择，返回供宿主持久化的决策记录"""
        self.strategy.record_decision(self.state, item1_id, item2_id, winner_id)
        record = self.state.decisions[-1]

        if self.is_complete():
            self._log_current_ranking()
        return record

    def is_complete(self) -> bool:
        return self.strategy.is_complete(self.state)

    def top_k(self, k: int) -> List[RankedEntry]:
        return self.strategy.top_k(self.state, k)

    def progress(self) -> Dict[str, float]:
        return self.strategy.progress(self.state)

    def expected_comparisons(self) -> int:
        """归并策略展示用的预期比较次数"""
        return calculate_expected_comparisons(len(self.state.items))

    def refine(
        self,
        k: int = 10,
        strategy: Union[str, StrategyType, RankingStrategy] = StrategyType.EXHAUSTIVE,
        config: Optional[RankingConfig] = None
    ) -> 'RankingSession':
        """以当前前k项开启新一轮排序（默认全配对），用于进一步缩小到核心条目"""
        top_items = [
            Item(id=entry.item.id, name=entry.item.name, definition=entry.item.definition)
            for entry in self.top_k(k)
        ]
        logger.info(f"[{self.session_id}] 以前 {len(top_items)} 项开启二次排序")
        return RankingSession(
            top_items,
            strategy=strategy,
            config=config or self.strategy.config,
            session_id=f"{self.session_id}_refine",
        )

    def _log_current_ranking(self, limit: int = 10):
        """记录当前排名"""
        progress = self.progress()
        logger.info(f"[{self.session_id}] 排序完成，共比较 {progress['completed']} 次，前 {limit} 名:")
        for entry in self.top_k(limit):
            logger.info(f"  {entry.rank}. {entry.item.name} ({entry.item.id}) - {entry.score}")

    def decision_log_frame(self) -> pd.DataFrame:
        """决策日志表"""
        columns = ['sequence', 'item1_id', 'item2_id', 'winner_id']
        rows = [record.to_dict() for record in self.state.decisions]
        return pd.DataFrame(rows, columns=columns)

    def ranking_frame(self) -> pd.DataFrame:
        """完整排名表，normalized 为线性归一化到0-100的分数"""
        entries = self.top_k(len(self.state.items))
        scores = np.array([entry.score for entry in entries], dtype=float)

        if len(scores) == 0:
            normalized = scores
        else:
            score_range = scores.max() - scores.min()
            if score_range == 0:
                normalized = np.full(len(scores), 50.0)
            else:
                normalized = (scores - scores.min()) / score_range * 100

        return pd.DataFrame({
            'rank': [entry.rank for entry in entries],
            'id': [entry.item.id for entry in entries],
            'name': [entry.item.name for entry in entries],
            'definition': [entry.item.definition for entry in entries],
            'score': [entry.score for entry in entries],
            'normalized': normalized,
        })

    def save_results(
        self,
        output_dir: Optional[Path] = None,
        filename_templates: Optional[Dict[str, str]] = None
    ) -> Dict[str, Optional[str]]:
        """保存排名和决策日志为CSV"""
        if output_dir is None:
            day_tag = time.strftime('%Y_%m_%d', time.localtime())
            output_dir = Path("results") / day_tag
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        if filename_templates is None:
            filename_templates = {
                'ranking': "{session_id}_{strategy}_ranking.csv",
                'decisions': "{session_id}_{strategy}_decisions.csv",
            }

        format_params = {
            'session_id': self.session_id,
            'strategy': self.strategy.strategy_type.value,
        }

        ranking_path = output_dir / filename_templates['ranking'].format(**format_params)
        self.ranking_frame().to_csv(ranking_path, index=False)
        logger.info(f"已保存排名结果: {ranking_path}")

        if self.state.decisions:
            decisions_path = output_dir / filename_templates['decisions'].format(**format_params)
            self.decision_log_frame().to_csv(decisions_path, index=False)
            logger.info(f"已保存决策记录: {decisions_path}")
        else:
            decisions_path = None

        return {
            'ranking_path': str(ranking_path),
            'decisions_path': str(decisions_path) if decisions_path else None,
        }
