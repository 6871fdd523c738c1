import unittest
from decimal import Decimal

from pydantic import ValidationError

from config import Settings


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        settings = Settings(_env_file=None)

        self.assertEqual(settings.round_period_seconds, 15)
        self.assertEqual(settings.betting_window_seconds, 10)
        self.assertEqual(settings.betting_window_ms, 10_000)
        self.assertEqual(settings.win_multiplier, Decimal("1.45"))
        self.assertEqual(settings.two_cell_ratio_threshold, Decimal("1.7"))

    def test_betting_window_must_leave_a_quiet_interval(self):
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, round_period_seconds=10, betting_window_seconds=10)

    def test_non_positive_timing_is_rejected(self):
        with self.assertRaises(ValidationError):
            Settings(_env_file=None, betting_window_seconds=0)


if __name__ == "__main__":
    unittest.main()
