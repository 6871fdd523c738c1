import random
import unittest
from decimal import Decimal

from models import Bet
from services.mine_service import build_cell_stats, select_mine


def make_bet(identity: str, cell: int, stake: str) -> Bet:
    return Bet(
        identity=identity,
        display_name=identity.title(),
        cell=cell,
        stake=Decimal(stake),
        placed_at=0,
    )


class BuildCellStatsTests(unittest.TestCase):
    def test_groups_by_cell_and_sorts_by_cell_number(self):
        bets = [
            make_bet("a", 7, "10"),
            make_bet("b", 2, "5"),
            make_bet("c", 7, "2.5"),
        ]
        stats = build_cell_stats(bets)

        self.assertEqual([s.cell for s in stats], [2, 7])
        self.assertEqual(stats[0].total_stake, Decimal("5"))
        self.assertEqual(stats[0].player_count, 1)
        self.assertEqual(stats[1].total_stake, Decimal("12.5"))
        self.assertEqual(stats[1].player_count, 2)

    def test_no_bets_means_no_occupied_cells(self):
        self.assertEqual(build_cell_stats([]), [])


class SelectMineTests(unittest.TestCase):
    def test_no_bets_returns_cell_in_range(self):
        rng = random.Random(42)
        for _ in range(100):
            self.assertIn(select_mine([], rng=rng), range(1, 10))

    def test_single_occupied_cell_is_always_the_mine(self):
        bets = [
            make_bet("a", 6, "1"),
            make_bet("b", 6, "500"),
            make_bet("c", 6, "0.01"),
        ]
        self.assertEqual(select_mine(bets), 6)

    def test_two_cells_within_ratio_picks_lower_cell(self):
        # 150 / 100 = 1.5 <= 1.7
        bets = [make_bet("a", 7, "150"), make_bet("b", 3, "100")]
        self.assertEqual(select_mine(bets), 3)

    def test_two_cells_at_exact_ratio_picks_lower_cell(self):
        bets = [make_bet("a", 2, "100"), make_bet("b", 8, "170")]
        self.assertEqual(select_mine(bets), 2)

    def test_two_cells_with_equal_stakes_picks_lower_cell(self):
        bets = [make_bet("a", 9, "40"), make_bet("b", 4, "40")]
        self.assertEqual(select_mine(bets), 4)

    def test_two_cells_beyond_ratio_picks_higher_stake_cell(self):
        # 100 / 50 = 2.0 > 1.7
        bets = [make_bet("a", 2, "50"), make_bet("b", 8, "100")]
        self.assertEqual(select_mine(bets), 8)

        bets = [make_bet("a", 2, "100"), make_bet("b", 8, "50")]
        self.assertEqual(select_mine(bets), 2)

    def test_two_cells_compare_total_stake_per_cell(self):
        # cell 1: 30 + 30 = 60, cell 5: 100 -> ratio 1.67, lower cell wins
        bets = [
            make_bet("a", 1, "30"),
            make_bet("b", 1, "30"),
            make_bet("c", 5, "100"),
        ]
        self.assertEqual(select_mine(bets), 1)

    def test_custom_ratio_threshold(self):
        bets = [make_bet("a", 3, "100"), make_bet("b", 7, "150")]
        self.assertEqual(select_mine(bets, ratio_threshold=Decimal("1.2")), 7)

    def test_three_cells_tie_on_fewest_players_picks_lowest_cell(self):
        bets = [
            make_bet("a", 2, "10"),
            make_bet("b", 2, "10"),
            make_bet("c", 5, "10"),
            make_bet("d", 8, "10"),
        ]
        self.assertEqual(select_mine(bets), 5)

    def test_three_cells_ignore_stake_size(self):
        bets = [
            make_bet("a", 1, "1"),
            make_bet("b", 1, "1"),
            make_bet("c", 4, "1"),
            make_bet("d", 4, "1"),
            make_bet("e", 4, "1"),
            make_bet("f", 9, "10000"),
        ]
        self.assertEqual(select_mine(bets), 9)

    def test_many_cells_single_player_each_picks_lowest(self):
        bets = [make_bet(f"p{cell}", cell, "5") for cell in (9, 3, 6, 1)]
        self.assertEqual(select_mine(bets), 1)


if __name__ == "__main__":
    unittest.main()
