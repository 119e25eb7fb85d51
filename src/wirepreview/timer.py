"""Timer - 统一延迟任务服务

提供按名字注册的 delay（延迟）任务，同名任务重新注册即取消旧任务。
支持同步/异步回调，异常隔离。预览防抖就是一个以 session 命名的 delay 任务。

使用示例:
    timer = Timer()

    # 注册延迟任务（300ms 后渲染）
    timer.register_delay("debounce:abc", 0.3, lambda: render("abc"))

    # 再次注册同名任务：旧任务被取消，重新计时
    timer.register_delay("debounce:abc", 0.3, lambda: render("abc"))

    # 取消延迟任务
    timer.cancel_delay("debounce:abc")

    # 停止（取消全部未触发任务）
    timer.stop()
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Coroutine

from .config import METRICS_ENABLED
from .telemetry import get_logger, metrics

logger = get_logger(__name__)

TimerCallback = Callable[[], Any | Coroutine[Any, Any, Any]]


@dataclass
class DelayTask:
    """延迟任务"""
    name: str
    delay: float  # 秒
    callback: TimerCallback
    handle: asyncio.TimerHandle | None = None
    scheduled_at: float = 0.0  # 调度时间（event loop time）
    trigger_at: float = 0.0  # 触发时间
    cancelled: bool = False


class Timer:
    """统一延迟任务服务

    设计原则:
    1. 单个 Timer 实例负责所有 session 的延迟任务
    2. 同名任务只保留最新一次注册
    3. 支持同步/异步回调（内部 create_task 包裹）
    4. 异常隔离：单个回调失败不影响其他任务
    """

    def __init__(self):
        self._delay_tasks: dict[str, DelayTask] = {}
        self._inflight: set[asyncio.Task] = set()
        self._stopped = False

    def register_delay(self, name: str, delay: float, callback: TimerCallback) -> None:
        """注册延迟任务

        如果已存在同名任务，会被覆盖（取消旧任务）。必须在 event loop 内调用。

        Args:
            name: 任务名（用于日志和取消）
            delay: 延迟时间（秒）
            callback: 回调函数（同步或异步）
        """
        loop = asyncio.get_running_loop()
        now = loop.time()

        if name in self._delay_tasks:
            logger.debug(f"[Timer] Overwriting delay task: {name}")
            self.cancel_delay(name)

        task = DelayTask(
            name=name,
            delay=delay,
            callback=callback,
            scheduled_at=now,
            trigger_at=now + delay,
        )
        task.handle = loop.call_later(delay, self._fire, task)
        self._delay_tasks[name] = task
        self._stopped = False
        logger.debug(f"[Timer] Registered delay task: {name} ({delay}s)")

    def cancel_delay(self, name: str) -> bool:
        """取消延迟任务

        Args:
            name: 任务名

        Returns:
            是否成功取消
        """
        task = self._delay_tasks.pop(name, None)
        if task is None:
            return False
        task.cancelled = True
        if task.handle is not None:
            task.handle.cancel()
        logger.debug(f"[Timer] Cancelled delay task: {name}")
        return True

    def has_delay(self, name: str) -> bool:
        """检查是否存在未触发的延迟任务"""
        return name in self._delay_tasks

    def stop(self) -> None:
        """停止 Timer

        取消所有未触发的延迟任务。已开始执行的回调允许运行完成。
        """
        if self._stopped:
            return
        self._stopped = True
        for name in list(self._delay_tasks.keys()):
            self.cancel_delay(name)
        logger.info("[Timer] Stopped")

    async def drain(self) -> None:
        """等待所有已触发回调执行完成（包括回调中新触发的）"""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _fire(self, task: DelayTask) -> None:
        """call_later 到期回调"""
        # 同名任务可能已被覆盖
        if task.cancelled or self._delay_tasks.get(task.name) is not task:
            return
        del self._delay_tasks[task.name]

        running = asyncio.get_running_loop().create_task(
            self._execute_callback(task.name, task.callback)
        )
        self._inflight.add(running)
        running.add_done_callback(self._inflight.discard)

    async def _execute_callback(self, name: str, callback: TimerCallback) -> None:
        """执行回调（带异常隔离）

        Args:
            name: 任务名
            callback: 回调函数
        """
        try:
            result = callback()
            # 如果是协程，await 它
            if inspect.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"[Timer] Task '{name}' failed: {e}")
            if METRICS_ENABLED:
                metrics.inc("timer.errors", {"task": name})

    # === 状态查询（用于测试）===

    @property
    def delay_task_count(self) -> int:
        """延迟任务数量"""
        return len(self._delay_tasks)

    @property
    def inflight_count(self) -> int:
        """正在执行的回调数量"""
        return len(self._inflight)

    def get_delay_tasks(self) -> list[str]:
        """获取所有延迟任务名"""
        return list(self._delay_tasks.keys())
