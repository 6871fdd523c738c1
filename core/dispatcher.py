"""
Engine Dispatcher：單一寫入者的事件佇列

所有會碰到 RoundEngine 狀態的操作（開局、收盤、下注、加入、離線、快照）
都先進入同一個 asyncio.Queue，由唯一一個 task 依序處理完畢。

使用方式：
    dispatcher = EngineDispatcher(engine)
    await dispatcher.start()
    result = await dispatcher.call(PlaceBet(...))
    await dispatcher.stop()

注意：
    - RoundEngine.handle 是同步的，處理過程中不會讓出事件迴圈，
      因此任兩個指令不可能交錯
    - 計時器觸發也只是另一個指令來源，不會直接修改狀態
"""
from typing import Optional
import asyncio
import contextlib
import logging

from core.commands import OperationResult
from core.round_engine import RoundEngine

logger = logging.getLogger(__name__)


class EngineDispatcher:
    """把指令序列化後交給 RoundEngine"""

    def __init__(self, engine: RoundEngine, maxsize: int = 0):
        self.engine = engine
        self._maxsize = maxsize
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._maxsize)
        self._task = asyncio.create_task(self._run(), name="engine-dispatcher")
        logger.info("Engine dispatcher started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

        # 取消還在排隊的指令，讓等待者不會永遠卡住
        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.cancel()
        logger.info("Engine dispatcher stopped")

    def submit(self, command) -> asyncio.Future:
        """
        將指令放入佇列

        返回：
            完成時帶有 OperationResult 的 Future

        異常：
            RuntimeError: dispatcher 尚未啟動
        """
        if not self.running:
            raise RuntimeError("Engine dispatcher is not running")
        future = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((command, future))
        return future

    async def call(self, command) -> OperationResult:
        """放入佇列並等待處理結果"""
        return await self.submit(command)

    async def _run(self) -> None:
        while True:
            command, future = await self._queue.get()
            try:
                result = self.engine.handle(command)
            except Exception as e:
                logger.error(
                    f"Unhandled error while processing {type(command).__name__}: {e}",
                    exc_info=True
                )
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self._queue.task_done()
