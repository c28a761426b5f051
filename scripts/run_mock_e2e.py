#!/usr/bin/env python3
"""
端到端演示脚本
用固定的"真实偏好"代替人工作答，依次运行四种策略并输出结果
"""

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

try:
    from valuerank.core.session import RankingSession, load_items
    from valuerank.infra.config import ConfigManager
    from valuerank.infra.ranking import StrategyType
    from valuerank.run_valuerank import drive_session
    from valuerank.utils.logger import configure_root_logger
except ImportError as e:
    print(f"导入错误: {e}")
    print("\n💡 提示: 请先安装项目依赖:")
    print("   pip install -e .")
    sys.exit(1)


def main():
    configure_root_logger(level='INFO', log_to_file=False)

    config_manager = ConfigManager(str(ROOT_DIR / "valuerank" / "configs" / "default.yaml"))
    items = load_items(ROOT_DIR / "valuerank" / "configs" / "sample_values.yaml")

    # 输入顺序越靠前越受偏好
    preference = {item.id: len(items) - idx for idx, item in enumerate(items)}

    def chooser(request):
        if preference[request.item1.id] >= preference[request.item2.id]:
            return request.item1.id
        return request.item2.id

    for strategy_type in StrategyType:
        session = RankingSession(
            items,
            strategy=strategy_type,
            config=config_manager.get_strategy_config(),
            min_items=config_manager.get_min_items(),
        )
        drive_session(session, chooser)

        progress = session.progress()
        top3 = ", ".join(entry.item.id for entry in session.top_k(3))
        print(f"[mock] {strategy_type.value}: {progress['completed']} 次比较, 前三: {top3}")

        refined = drive_session(session.refine(10), chooser)
        print(f"[mock]   二次排序前三: {', '.join(e.item.id for e in refined.top_k(3))}")


if __name__ == "__main__":
    main()
