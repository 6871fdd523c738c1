import unittest
from decimal import Decimal

from models import Bet, RoundState
from core.exceptions import DuplicateBet, InvalidStateTransition
from core.ledger import BetLedger
from core.registry import PlayerRegistry
from core.state_machine import RoundStateMachine
from services.naming_service import generate_display_name, generate_round_id


def make_bet(identity: str, cell: int = 1, stake: str = "1") -> Bet:
    return Bet(identity=identity, display_name=identity, cell=cell, stake=Decimal(stake), placed_at=0)


class BetLedgerTests(unittest.TestCase):
    def test_one_bet_per_player(self):
        ledger = BetLedger(round_number=3)
        ledger.add(make_bet("alice", cell=2))

        with self.assertRaises(DuplicateBet) as ctx:
            ledger.add(make_bet("alice", cell=8))

        self.assertEqual(ctx.exception.round_number, 3)
        self.assertEqual(len(ledger), 1)
        self.assertEqual(ledger.freeze()[0].cell, 2)

    def test_freeze_keeps_placement_order(self):
        ledger = BetLedger()
        for identity in ("carol", "alice", "bob"):
            ledger.add(make_bet(identity))

        frozen = ledger.freeze()

        self.assertIsInstance(frozen, tuple)
        self.assertEqual([b.identity for b in frozen], ["carol", "alice", "bob"])

    def test_remove(self):
        ledger = BetLedger()
        ledger.add(make_bet("alice"))

        self.assertEqual(ledger.remove("alice").identity, "alice")
        self.assertIsNone(ledger.remove("alice"))
        self.assertFalse(ledger.has("alice"))


class PlayerRegistryTests(unittest.TestCase):
    def test_upsert_creates_then_updates(self):
        registry = PlayerRegistry()

        player, created = registry.upsert("alice", "Alice", Decimal("1"), "c1", now=100)
        self.assertTrue(created)

        same, created = registry.upsert("alice", "Al", Decimal("2"), "c2", now=200)
        self.assertFalse(created)
        self.assertIs(same, player)
        self.assertEqual((same.display_name, same.balance, same.connection_id), ("Al", Decimal("2"), "c2"))
        self.assertEqual(same.joined_at, 100)

    def test_remove_by_connection_only_matches_current_connection(self):
        registry = PlayerRegistry()
        registry.upsert("alice", "Alice", Decimal("0"), "c1", now=0)
        registry.upsert("alice", "Alice", Decimal("0"), "c2", now=0)

        self.assertEqual(registry.remove_by_connection("c1"), [])
        self.assertIn("alice", registry)
        self.assertEqual([p.identity for p in registry.remove_by_connection("c2")], ["alice"])
        self.assertEqual(len(registry), 0)

    def test_remove_by_connection_removes_all_identities_on_it(self):
        registry = PlayerRegistry()
        registry.upsert("alice", "Alice", Decimal("0"), "c1", now=0)
        registry.upsert("bob", "Bob", Decimal("0"), "c1", now=0)
        registry.upsert("carol", "Carol", Decimal("0"), "c2", now=0)

        removed = registry.remove_by_connection("c1")

        self.assertEqual([p.identity for p in removed], ["alice", "bob"])
        self.assertEqual([p.identity for p in registry.online()], ["carol"])


class RoundStateMachineTests(unittest.TestCase):
    def test_full_cycle(self):
        machine = RoundStateMachine()
        for target in (RoundState.OPEN, RoundState.CLOSING, RoundState.RESULTS, RoundState.OPEN):
            machine.transition(target)
        self.assertTrue(machine.is_open)

    def test_illegal_transitions_raise(self):
        machine = RoundStateMachine()
        for target in (RoundState.CLOSING, RoundState.RESULTS, RoundState.IDLE):
            with self.subTest(target=target):
                with self.assertRaises(InvalidStateTransition):
                    machine.transition(target)
        self.assertEqual(machine.state, RoundState.IDLE)

        machine.transition(RoundState.OPEN)
        with self.assertRaises(InvalidStateTransition):
            machine.transition(RoundState.OPEN)


class NamingServiceTests(unittest.TestCase):
    def test_round_id_follows_open_time(self):
        self.assertEqual(generate_round_id(1000), 1000)
        self.assertEqual(generate_round_id(1500, previous_round_id=1000), 1500)

    def test_round_id_never_repeats(self):
        self.assertEqual(generate_round_id(1000, previous_round_id=1000), 1001)
        self.assertEqual(generate_round_id(900, previous_round_id=1000), 1001)

    def test_display_name_fallback(self):
        self.assertEqual(generate_display_name("user_12345"), "Player-2345")
        self.assertEqual(generate_display_name("ab"), "Player-ab")


if __name__ == "__main__":
    unittest.main()
