import argparse
import random
import sys
from typing import Callable, Optional

from valuerank.core.errors import InvalidDecision, RankingError
from valuerank.core.models import ComparisonRequest
from valuerank.core.session import RankingSession, load_items
from valuerank.infra.config import ConfigManager
from valuerank.utils.env_loader import load_project_env
from valuerank.utils.logger import configure_root_logger, get_logger

logger = get_logger(__name__)

Chooser = Callable[[ComparisonRequest], str]


def build_auto_chooser(mode: str, seed: Optional[int] = None) -> Chooser:
    """自动选择器: first 总选第一项，second 总选第二项，random 随机"""
    rng = random.Random(seed)
    if mode == 'first':
        return lambda request: request.item1.id
    if mode == 'second':
        return lambda request: request.item2.id
    if mode == 'random':
        return lambda request: rng.choice((request.item1.id, request.item2.id))
    raise ValueError(f"不支持的自动选择模式: {mode}")


def prompt_chooser(request: ComparisonRequest) -> str:
    """在终端询问用户，输入1或2"""
    while True:
        print(f"\n#{request.sequence}")
        print(f"  1) {request.item1.name}")
        print(f"  2) {request.item2.name}")
        answer = input("哪一项对你更重要? [1/2]: ").strip()
        if answer == '1':
            return request.item1.id
        if answer == '2':
            return request.item2.id
        logger.warning(f"无效输入: {answer!r}，请输入1或2")


def drive_session(session: RankingSession, chooser: Chooser) -> RankingSession:
    """循环展示比较并记录选择，直到排序完成"""
    while not session.is_complete():
        request = session.next_comparison()
        if request is None:
            break
        winner_id = chooser(request)
        try:
            session.record_decision(request.item1.id, request.item2.id, winner_id)
        except InvalidDecision as e:
            logger.warning(f"决策被拒绝，重新询问: {e}")
            continue

        progress = session.progress()
        logger.debug(f"进度: {progress['completed']}/{progress['total']} ({progress['percentage']:.0f}%)")
    return session


def main(argv=None) -> int:
    load_project_env()

    parser = argparse.ArgumentParser(description="valuerank 两两比较排序")
    parser.add_argument('--config', type=str, required=True, help='YAML配置文件路径')
    parser.add_argument('--items', type=str, required=True, help='条目列表文件（JSON或YAML）')
    parser.add_argument('--strategy', type=str, default=None, help='覆盖配置中的排序策略')
    parser.add_argument('--auto', choices=['first', 'second', 'random'], default=None,
                        help='自动作答（不读取终端输入）')
    parser.add_argument('--top', type=int, default=10, help='输出前K项')
    parser.add_argument('--output-dir', type=str, default=None, help='结果输出目录')
    args = parser.parse_args(argv)

    try:
        config_manager = ConfigManager(args.config)
    except (FileNotFoundError, ValueError) as e:
        configure_root_logger(level='INFO', log_to_file=False)
        logger.error(f"配置加载失败: {e}")
        return 1

    logging_settings = config_manager.get_logging_settings()
    configure_root_logger(
        level=logging_settings.get('level', 'INFO'),
        log_to_file=logging_settings.get('log_to_file', False),
        log_to_console=True,
    )

    validation_errors = config_manager.validate_config()
    if validation_errors:
        logger.error("配置验证失败，发现以下问题：")
        for error in validation_errors:
            logger.error(f"  - {error}")
        return 1

    try:
        items = load_items(args.items)
        strategy_config = config_manager.get_strategy_config()
        session = RankingSession(
            items,
            strategy=args.strategy or config_manager.get_strategy_name(),
            config=strategy_config,
            min_items=config_manager.get_min_items(),
            session_id=f"{config_manager.get_session_name()}_{RankingSession.generate_session_id()}",
        )
    except (FileNotFoundError, ValueError, RankingError) as e:
        logger.error(f"无法开始排序: {e}")
        return 1

    output_dir = args.output_dir or config_manager.get_results_dir()
    chooser = build_auto_chooser(args.auto, strategy_config.seed) if args.auto else prompt_chooser
    try:
        drive_session(session, chooser)
    except (EOFError, KeyboardInterrupt):
        logger.warning(f"[{session.session_id}] 输入已中断，保存已完成的 {session.state.completed} 次比较")
        session.save_results(output_dir)
        return 1

    for entry in session.top_k(args.top):
        print(f"{entry.rank}. {entry.item.name} - {entry.score}")

    paths = session.save_results(output_dir)
    logger.info(f"[{session.session_id}] 排序流程完成: {paths['ranking_path']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
