import unittest
from decimal import Decimal

from models import Bet
from services.payoff_service import calculate_payout, compute_outcomes, summarize_outcomes


def make_bet(identity: str, cell: int, stake: str) -> Bet:
    return Bet(
        identity=identity,
        display_name=identity.title(),
        cell=cell,
        stake=Decimal(stake),
        placed_at=0,
    )


class PayoffServiceTests(unittest.TestCase):
    def test_loser_on_mine_and_winner_elsewhere(self):
        bets = [make_bet("a", 4, "10"), make_bet("b", 5, "20")]
        outcomes = compute_outcomes(4, bets)

        self.assertEqual([o.win for o in outcomes], [False, True])
        self.assertEqual(outcomes[0].payout, Decimal("0"))
        self.assertEqual(outcomes[1].payout, Decimal("29"))

    def test_outcomes_keep_bet_order_and_details(self):
        bets = [make_bet("zoe", 9, "1.10"), make_bet("adam", 1, "3")]
        outcomes = compute_outcomes(1, bets)

        self.assertEqual([o.identity for o in outcomes], ["zoe", "adam"])
        self.assertEqual(outcomes[0].display_name, "Zoe")
        self.assertEqual(outcomes[0].cell, 9)
        self.assertEqual(outcomes[0].stake, Decimal("1.10"))

    def test_decimal_payout_has_no_float_drift(self):
        # 0.1 * 1.45 in floating point is 0.14500000000000002
        self.assertEqual(calculate_payout(Decimal("0.1"), True), Decimal("0.145"))
        self.assertEqual(calculate_payout(Decimal("0.1"), False), Decimal("0"))

    def test_payout_is_not_rounded(self):
        self.assertEqual(str(calculate_payout(Decimal("20"), True)), "29.00")
        self.assertEqual(str(calculate_payout(Decimal("20.5"), True)), "29.725")

    def test_custom_multiplier(self):
        outcomes = compute_outcomes(2, [make_bet("a", 3, "10")], multiplier=Decimal("2"))
        self.assertEqual(outcomes[0].payout, Decimal("20"))

    def test_no_bets_no_outcomes(self):
        self.assertEqual(compute_outcomes(5, []), [])

    def test_summarize_outcomes(self):
        bets = [
            make_bet("a", 4, "10"),
            make_bet("b", 5, "20"),
            make_bet("c", 6, "40"),
        ]
        summary = summarize_outcomes(compute_outcomes(4, bets))

        self.assertEqual(summary.winners, 2)
        self.assertEqual(summary.losers, 1)
        self.assertEqual(summary.total_staked, Decimal("70"))
        self.assertEqual(summary.total_paid, Decimal("87"))


if __name__ == "__main__":
    unittest.main()
