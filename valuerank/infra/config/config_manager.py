"""
统一配置管理器
加载和解析YAML配置文件，支持环境变量解析、配置验证
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import os
import time

import yaml

from valuerank.infra.ranking.state import RankingConfig
from valuerank.infra.ranking.strategies import StrategyType

DEFAULT_STRATEGY = StrategyType.INTERACTIVE_MERGE.value
DEFAULT_MIN_ITEMS = 5


class ConfigManager:
    """统一配置管理器: 加载YAML配置、解析环境变量、提供配置访问接口"""

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")

        self._config = self._load_config()

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ConfigManager':
        """直接由字典构造（不读取文件）"""
        manager = cls.__new__(cls)
        manager.config_path = None
        manager._config = dict(config or {})
        return manager

    def _load_config(self) -> dict:
        """加载配置文件"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"配置文件格式错误: {e}")

        if not config:
            raise ValueError("配置文件为空")
        if not isinstance(config, dict):
            raise ValueError(f"配置文件顶层必须是映射，实际为: {type(config).__name__}")
        return config

    def _resolve_env_var(self, value: Any) -> Any:
        """解析环境变量格式的配置值，支持格式: env_var:VARIABLE_NAME"""
        if isinstance(value, str) and value.startswith("env_var:"):
            env_key = value[8:]  # 移除 "env_var:" 前缀
            env_value = os.getenv(env_key)
            if env_value is None:
                raise ValueError(f"环境变量 {env_key} 未设置")
            return env_value
        return value

    def get_session_name(self) -> str:
        """获取会话名称（用作会话ID和输出文件名的前缀）"""
        return self._config.get('session_name', 'valuerank')

    def get_strategy_name(self) -> str:
        """获取排序策略名称"""
        return self._config.get('strategy', DEFAULT_STRATEGY)

    def get_min_items(self) -> int:
        """获取开始排序所需的最少条目数（宿主规则）"""
        return int(self._config.get('min_items', DEFAULT_MIN_ITEMS))

    def get_tie_break_settings(self) -> Dict:
        """获取边界决胜设置"""
        return self._config.get('tie_break', {}) or {}

    def get_elo_settings(self) -> Dict:
        """获取ELO评分设置"""
        return self._config.get('elo', {}) or {}

    def get_logging_settings(self) -> Dict:
        """获取日志设置"""
        return self._config.get('logging', {}) or {}

    def get_strategy_config(self) -> RankingConfig:
        """汇总各配置段，生成策略使用的 RankingConfig"""
        tie_break = self.get_tie_break_settings()
        elo = self.get_elo_settings()

        seed = self._resolve_env_var(elo.get('seed'))
        target = elo.get('target_comparisons')

        values = {
            'cutoff': tie_break.get('cutoff'),
            'max_tie_break_rounds': tie_break.get('max_rounds', 5),
            'elo_init_rating': elo.get('init_rating'),
            'elo_k_factor': elo.get('k_factor'),
            'elo_logistic_constant': elo.get('logistic_constant'),
            'max_comparisons': elo.get('max_comparisons'),
            'target_comparisons': int(target) if target is not None else None,
            'random_attempts': elo.get('random_attempts'),
            'top_attempts': elo.get('top_attempts'),
            'top_pool_size': elo.get('top_pool_size'),
            'seed': int(seed) if seed is not None else None,
        }
        # 未配置的项使用 RankingConfig 默认值；max_rounds 显式为 null 表示不限轮数
        return RankingConfig.from_dict({
            k: v for k, v in values.items()
            if v is not None or k == 'max_tie_break_rounds'
        })

    # ==================== 路径相关配置 ====================

    def get_results_dir(self) -> Path:
        """获取结果输出目录（相对路径按日期分目录）"""
        output = self._config.get('output', {}) or {}
        result_dir = output.get('result_dir', 'results')

        result_path = Path(result_dir)
        if result_path.is_absolute():
            return result_path

        day_tag = time.strftime('%Y_%m_%d', time.localtime())
        return result_path / day_tag

    def validate_config(self) -> List[str]:
        """验证配置文件的完整性和有效性"""
        errors = []

        strategy = self.get_strategy_name()
        valid_strategies = [t.value for t in StrategyType]
        if strategy not in valid_strategies:
            errors.append(f"未知的排序策略: {strategy}，可选: {', '.join(valid_strategies)}")

        try:
            if self.get_min_items() < 0:
                errors.append("min_items 不能为负数")
        except (TypeError, ValueError):
            errors.append(f"min_items 必须是整数: {self._config.get('min_items')}")

        tie_break = self.get_tie_break_settings()
        if 'cutoff' in tie_break and not self._is_positive_int(tie_break['cutoff']):
            errors.append(f"tie_break.cutoff 必须是正整数: {tie_break['cutoff']}")
        max_rounds = tie_break.get('max_rounds')
        if max_rounds is not None and not self._is_positive_int(max_rounds):
            errors.append(f"tie_break.max_rounds 必须是正整数或null: {max_rounds}")

        elo = self.get_elo_settings()
        for key in ('k_factor', 'logistic_constant'):
            value = elo.get(key)
            if value is not None and (not isinstance(value, (int, float)) or value <= 0):
                errors.append(f"elo.{key} 必须是正数: {value}")
        for key in ('max_comparisons', 'top_pool_size'):
            value = elo.get(key)
            if value is not None and not self._is_positive_int(value):
                errors.append(f"elo.{key} 必须是正整数: {value}")
        if elo.get('top_pool_size') is not None and self._is_positive_int(elo['top_pool_size']) \
                and elo['top_pool_size'] < 2:
            errors.append("elo.top_pool_size 至少为2")
        for key in ('random_attempts', 'top_attempts', 'target_comparisons'):
            value = elo.get(key)
            if value is not None and (not isinstance(value, int) or value < 0):
                errors.append(f"elo.{key} 必须是非负整数: {value}")

        try:
            seed = self._resolve_env_var(elo.get('seed'))
            if seed is not None:
                int(seed)
        except ValueError as e:
            errors.append(f"elo.seed 无效: {e}")

        return errors

    @staticmethod
    def _is_positive_int(value: Optional[Any]) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and value > 0
