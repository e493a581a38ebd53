"""
日志管理模块
配置和管理应用的日志记录
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .config import Settings, get_settings


def setup_logger(name: str = "mindful_diary",
                 settings: Optional[Settings] = None) -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称
        settings: 配置实例，默认读取全局配置

    Returns:
        配置好的日志记录器
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # 创建日志记录器
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 清除已有的处理器
    logger.handlers.clear()

    # 创建格式化器
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # 控制台处理器
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # 文件处理器（log_file 为空时只输出到控制台）
    if settings.log_file:
        log_dir = Path(settings.log_file).parent
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


# 创建全局日志记录器
logger = setup_logger()
