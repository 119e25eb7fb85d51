"""Telemetry - 统一日志和指标入口

提供统一的日志工厂和指标 facade，便于观测性追踪。

日志格式: [module:session[:8]] msg
指标示例: preview.renders, preview.errors, engine.parse_calls, export.artifacts
"""

import logging
from collections import Counter

# 全局日志配置
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """获取带模块前缀的 logger

    Args:
        name: 模块名（通常使用 __name__）

    Returns:
        配置好的 Logger 实例
    """
    return logging.getLogger(name)


def setup_logging(level: str | None = None) -> None:
    """配置根 logger（入口函数调用一次）

    Args:
        level: 日志级别，None 使用配置 LOG_LEVEL
    """
    from .config import LOG_LEVEL

    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=_LOG_FORMAT)


def format_session_log(module: str, session_id: str, msg: str) -> str:
    """格式化带 session_id 的日志消息

    Args:
        module: 模块名
        session_id: preview session 标识
        msg: 日志消息

    Returns:
        格式化的消息: [module:session_id[:8]] msg
    """
    session_short = session_id[:8] if session_id else "unknown"
    return f"[{module}:{session_short}] {msg}"


Labels = dict[str, str] | None


def _metric_key(name: str, labels: Labels) -> str:
    """preview.errors + {"kind": "ParseError"} -> preview.errors{kind=ParseError}"""
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={labels[k]}" for k in sorted(labels)) + "}"


class Metrics:
    """进程内指标 facade

    计数器只增不减，gauge 保存最近一次的值。snapshot() 供 /api/metrics 调试使用。
    """

    def __init__(self):
        self._counters: Counter[str] = Counter()
        self._gauges: dict[str, float] = {}

    def inc(self, name: str, labels: Labels = None, value: int = 1) -> None:
        """计数器 +value

        Args:
            name: 指标名（如 "engine.parse_calls"）
            labels: 可选标签（如 {"format": "pdf"}）
            value: 增量
        """
        self._counters[_metric_key(name, labels)] += value

    def gauge(self, name: str, value: float, labels: Labels = None) -> None:
        self._gauges[_metric_key(name, labels)] = value

    def get_counter(self, name: str, labels: Labels = None) -> int:
        return self._counters[_metric_key(name, labels)]

    def get_gauge(self, name: str, labels: Labels = None) -> float:
        return self._gauges.get(_metric_key(name, labels), 0.0)

    def snapshot(self) -> dict[str, dict]:
        return {"counters": dict(self._counters), "gauges": dict(self._gauges)}

    def reset(self) -> None:
        """清空全部指标（测试用）"""
        self._counters.clear()
        self._gauges.clear()


metrics = Metrics()
