"""环境变量加载工具"""

from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from valuerank.utils.logger import get_logger

logger = get_logger(__name__)


def load_project_env(env_path: Optional[Union[str, Path]] = None) -> bool:
    """加载.env文件（默认当前目录），返回是否找到文件；已存在的环境变量不会被覆盖"""
    env_path = Path(env_path) if env_path else Path.cwd() / ".env"

    if not env_path.exists():
        logger.debug(f"未找到环境变量文件: {env_path}，使用系统环境变量")
        return False

    load_dotenv(env_path, override=False)
    logger.info(f"已加载环境变量文件: {env_path}")
    return True
