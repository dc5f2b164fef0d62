"""pricetrack - 价格与净价历史记录库

按稳定商品ID保存价格/净价时间序列，并在只知道报价编码(offer code)时
把观测值暂存在待解析队列中，待状态检查返回稳定ID后再合并进时间序列。
"""

from __future__ import annotations

from pathlib import Path

from pricetrack.core.config import ConfigManager, TrackerConfig
from pricetrack.core.exceptions import (
    InvalidInputError,
    PersistenceUnavailableError,
    PriceTrackError,
)
from pricetrack.core.logging import configure_logging
from pricetrack.core.models import (
    NET_PRICE,
    PRICE,
    MetricKind,
    PendingRecord,
    ReconciliationPair,
    ResolvedRecord,
    Sample,
)
from pricetrack.core.services import PendingQueue, PriceTracker, SeriesStore
from pricetrack.core.storage import build_fallback_cache, build_object_store

__version__ = "0.3.0"

# 全局追踪器实例
_tracker: PriceTracker | None = None


def create_tracker(config: TrackerConfig | None = None, *, configure_logs: bool = True) -> PriceTracker:
    """根据配置创建 PriceTracker

    Args:
        config: 配置，为None时从默认配置文件和环境变量加载
        configure_logs: 是否按配置初始化日志
    """
    config = config or ConfigManager().get_config()
    if configure_logs:
        log_file = config.logging.file
        configure_logging(
            level=config.logging.level,
            console_output=config.logging.console,
            file_output=bool(log_file),
            file_path=str(Path(log_file).expanduser()) if log_file else None,
        )
    return PriceTracker(
        build_object_store(config.storage),
        build_fallback_cache(config.storage),
        kinds=config.metric_kinds().values(),
    )


def get_tracker() -> PriceTracker:
    """获取全局 PriceTracker 实例"""
    global _tracker
    if _tracker is None:
        _tracker = create_tracker()
    return _tracker


__all__ = [
    "__version__",
    "create_tracker",
    "get_tracker",
    "PriceTracker",
    "SeriesStore",
    "PendingQueue",
    "MetricKind",
    "PRICE",
    "NET_PRICE",
    "Sample",
    "PendingRecord",
    "ReconciliationPair",
    "ResolvedRecord",
    "TrackerConfig",
    "PriceTrackError",
    "InvalidInputError",
    "PersistenceUnavailableError",
]
