import unittest
from datetime import datetime
from unittest.mock import MagicMock

from config import Settings
from models import RoundState
from core.dispatcher import EngineDispatcher
from core.round_engine import RoundEngine
from core.scheduler import OPEN_ROUND_JOB_ID, RoundScheduler


class NullPublisher:
    def publish(self, notification) -> None:
        pass


class RoundSchedulerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.settings = Settings(round_period_seconds=15, betting_window_seconds=10)
        self.engine = RoundEngine(publisher=NullPublisher(), settings=self.settings)
        self.dispatcher = EngineDispatcher(self.engine)
        await self.dispatcher.start()
        self.apscheduler = MagicMock()
        self.scheduler = RoundScheduler(self.dispatcher, self.settings, scheduler=self.apscheduler)

    async def asyncTearDown(self) -> None:
        await self.dispatcher.stop()

    async def test_start_registers_interval_job_that_runs_immediately(self):
        self.scheduler.start()

        self.apscheduler.add_job.assert_called_once()
        args, kwargs = self.apscheduler.add_job.call_args
        self.assertEqual(args[0], self.scheduler.open_round)
        self.assertEqual(args[1], "interval")
        self.assertEqual(kwargs["seconds"], 15)
        self.assertEqual(kwargs["id"], OPEN_ROUND_JOB_ID)
        self.assertIsInstance(kwargs["next_run_time"], datetime)
        self.apscheduler.start.assert_called_once()

    async def test_open_round_schedules_close_at_round_close_time(self):
        result = await self.scheduler.open_round()

        self.assertTrue(result.success)
        self.assertEqual(self.engine.state, RoundState.OPEN)
        args, kwargs = self.apscheduler.add_job.call_args
        self.assertEqual(args[0], self.scheduler.close_round)
        self.assertEqual(args[1], "date")
        self.assertEqual(kwargs["id"], "close_round_1")
        self.assertEqual(
            kwargs["run_date"],
            datetime.fromtimestamp(self.engine.current_round.close_time / 1000)
        )

    async def test_duplicate_open_does_not_schedule_another_close(self):
        await self.scheduler.open_round()
        self.apscheduler.add_job.reset_mock()

        result = await self.scheduler.open_round()

        self.assertFalse(result.success)
        self.apscheduler.add_job.assert_not_called()
        self.assertEqual(self.engine.current_round.round_number, 1)

    async def test_missed_close_is_recovered_on_next_open_tick(self):
        await self.scheduler.open_round()
        overdue = self.engine.current_round.close_time + 1
        scheduler = RoundScheduler(
            self.dispatcher, self.settings, scheduler=self.apscheduler, clock=lambda: overdue
        )
        self.apscheduler.add_job.reset_mock()

        result = await scheduler.open_round()

        self.assertTrue(result.success)
        self.assertEqual(self.engine.state, RoundState.OPEN)
        self.assertEqual(self.engine.current_round.round_number, 2)
        self.assertEqual(self.engine.last_result.round_number, 1)
        _, kwargs = self.apscheduler.add_job.call_args
        self.assertEqual(kwargs["id"], "close_round_2")

    async def test_close_round_closes_open_round(self):
        await self.scheduler.open_round()

        result = await self.scheduler.close_round()

        self.assertTrue(result.success)
        self.assertEqual(self.engine.state, RoundState.RESULTS)

    async def test_late_close_is_absorbed(self):
        result = await self.scheduler.close_round()

        self.assertFalse(result.success)
        self.assertEqual(result.reason, "RoundAlreadyClosed")
        self.assertEqual(self.engine.state, RoundState.IDLE)

    async def test_shutdown_stops_running_scheduler(self):
        self.apscheduler.running = True
        self.scheduler.shutdown()
        self.apscheduler.shutdown.assert_called_once_with(wait=False)


if __name__ == "__main__":
    unittest.main()
