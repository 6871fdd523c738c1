"""
Round Scheduler：固定節奏驅動開局與收盤

時間軸（預設值）：
    0s   開局（OpenRound）
    10s  收盤（CloseRound），進入結果展示
    15s  下一局開局
    ...

實作：
- APScheduler 的 interval job 每 round_period 秒送出 OpenRound（第一次立即執行）
- 開局成功後加一個 date job，在該局 close_time 送出 CloseRound
- job 只負責把指令送進 EngineDispatcher，不直接碰狀態
- 重複觸發由 RoundEngine 的防護吸收（RoundAlreadyOpen / RoundAlreadyClosed）
- 收盤 job 錯過時（事件迴圈卡住、主機休眠），下一次開局 tick 會先補收盤再開局
"""
from datetime import datetime
from typing import Callable, Optional
import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import Settings
from core.commands import CloseRound, OpenRound, OperationResult
from core.dispatcher import EngineDispatcher
from core.exceptions import RoundAlreadyOpen
from core.round_engine import epoch_ms

logger = logging.getLogger(__name__)

OPEN_ROUND_JOB_ID = "open_round"


class RoundScheduler:
    """開局 / 收盤計時器"""

    def __init__(
        self,
        dispatcher: EngineDispatcher,
        settings: Settings,
        scheduler: Optional[AsyncIOScheduler] = None,
        clock: Callable[[], int] = epoch_ms
    ):
        self._dispatcher = dispatcher
        self._settings = settings
        self._scheduler = scheduler
        self._clock = clock

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """
        啟動排程（必須在事件迴圈內呼叫）

        第一局立即開始，之後每 round_period_seconds 開一局。
        """
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())

        period = self._settings.round_period_seconds
        self._scheduler.add_job(
            self.open_round,
            "interval",
            seconds=period,
            id=OPEN_ROUND_JOB_ID,
            next_run_time=datetime.now(),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=max(1, int(period)),
            replace_existing=True
        )
        self._scheduler.start()
        logger.info(
            f"Round scheduler started: every {period}s, "
            f"betting window {self._settings.betting_window_seconds}s"
        )

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Round scheduler stopped")

    async def open_round(self) -> OperationResult:
        """
        送出 OpenRound，成功後排定該局的收盤

        如果上一局已過 close_time 仍在 OPEN（收盤 job 被略過），
        先補送 CloseRound，再重新開局。
        """
        result = await self._dispatcher.call(OpenRound())
        error = result.error
        if isinstance(error, RoundAlreadyOpen) and error.close_time is not None \
                and self._clock() >= error.close_time:
            logger.warning(f"Close of round #{error.round_number} was missed, closing it now")
            await self.close_round()
            result = await self._dispatcher.call(OpenRound())

        if not result.success:
            return result

        current = result.payload
        close_at = datetime.fromtimestamp(current.close_time / 1000)
        self._scheduler.add_job(
            self.close_round,
            "date",
            run_date=close_at,
            id=f"close_round_{current.round_number}",
            misfire_grace_time=max(1, int(self._settings.round_period_seconds)),
            replace_existing=True
        )
        logger.debug(f"Close of round #{current.round_number} scheduled at {close_at.isoformat()}")
        return result

    async def close_round(self) -> OperationResult:
        return await self._dispatcher.call(CloseRound())

