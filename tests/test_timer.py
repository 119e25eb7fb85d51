"""Timer 模块测试"""

import asyncio
import pytest
from unittest.mock import Mock, AsyncMock

from wirepreview.timer import Timer
from wirepreview.telemetry import metrics


@pytest.fixture
def timer():
    """创建测试用 Timer"""
    return Timer()


class TestTimerDelay:
    """延迟任务测试"""

    @pytest.mark.asyncio
    async def test_delay_sync_callback(self, timer):
        """测试同步回调的延迟任务"""
        callback = Mock()
        timer.register_delay("test", 0.05, callback)
        assert timer.has_delay("test")

        await asyncio.sleep(0.1)
        await timer.drain()

        callback.assert_called_once()
        assert not timer.has_delay("test")

    @pytest.mark.asyncio
    async def test_delay_async_callback(self, timer):
        """测试异步回调的延迟任务"""
        callback = AsyncMock()
        timer.register_delay("test", 0.05, callback)

        await asyncio.sleep(0.1)
        await timer.drain()

        callback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_overwrite_restarts_countdown(self, timer):
        """测试同名任务重新注册：旧回调不执行，重新计时"""
        first = Mock()
        second = Mock()

        timer.register_delay("debounce:a", 0.1, first)
        await asyncio.sleep(0.06)
        timer.register_delay("debounce:a", 0.1, second)
        await asyncio.sleep(0.06)

        # 距第一次注册已超过 0.1s，但计时已重置
        first.assert_not_called()
        second.assert_not_called()
        assert timer.delay_task_count == 1

        await asyncio.sleep(0.1)
        await timer.drain()
        first.assert_not_called()
        second.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancel_delay(self, timer):
        """测试取消延迟任务"""
        callback = Mock()
        timer.register_delay("test", 0.05, callback)

        assert timer.cancel_delay("test") is True
        assert timer.cancel_delay("test") is False

        await asyncio.sleep(0.1)
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_independent_names(self, timer):
        """测试不同名字的任务互不影响"""
        a, b = Mock(), Mock()
        timer.register_delay("debounce:a", 0.05, a)
        timer.register_delay("debounce:b", 0.05, b)
        timer.cancel_delay("debounce:a")

        await asyncio.sleep(0.1)
        await timer.drain()

        a.assert_not_called()
        b.assert_called_once()

    @pytest.mark.asyncio
    async def test_callback_error_isolated(self, timer):
        """测试回调异常被隔离并计数"""
        ok = Mock()
        timer.register_delay("bad", 0.02, Mock(side_effect=RuntimeError("boom")))
        timer.register_delay("good", 0.02, ok)

        await asyncio.sleep(0.06)
        await timer.drain()

        ok.assert_called_once()
        assert metrics.get_counter("timer.errors", {"task": "bad"}) == 1

    @pytest.mark.asyncio
    async def test_stop_cancels_pending(self, timer):
        """测试 stop 取消全部未触发任务"""
        callback = Mock()
        timer.register_delay("a", 0.05, callback)
        timer.register_delay("b", 0.05, callback)

        timer.stop()
        assert timer.delay_task_count == 0

        await asyncio.sleep(0.1)
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_drain_waits_for_inflight(self, timer):
        """测试 drain 等待已触发的异步回调完成"""
        done = []

        async def slow():
            await asyncio.sleep(0.05)
            done.append(True)

        timer.register_delay("slow", 0.01, slow)
        await asyncio.sleep(0.03)
        assert timer.inflight_count == 1

        await timer.drain()
        assert done == [True]
        assert timer.inflight_count == 0

    def test_register_requires_running_loop(self, timer):
        """测试在 event loop 外注册会失败"""
        with pytest.raises(RuntimeError):
            timer.register_delay("test", 0.1, Mock())
        assert timer.get_delay_tasks() == []
