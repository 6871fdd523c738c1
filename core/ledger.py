"""
Bet Ledger：單一回合的下注簿

規則：
- 以玩家 identity 為 key，每位玩家每回合最多一筆
- 只由 RoundEngine 在開局時建立，不跨回合重用
"""
from typing import Dict, Iterator, Optional, Tuple

from models import Bet
from core.exceptions import DuplicateBet


class BetLedger:
    """一回合內的下注集合（保留下注順序）"""

    def __init__(self, round_number: Optional[int] = None):
        self.round_number = round_number
        self._bets: Dict[str, Bet] = {}

    def add(self, bet: Bet) -> None:
        """
        新增一筆下注

        異常：
            DuplicateBet: 該玩家本回合已下注（下注簿不會被修改）
        """
        if bet.identity in self._bets:
            raise DuplicateBet(bet.identity, self.round_number)
        self._bets[bet.identity] = bet

    def remove(self, identity: str) -> Optional[Bet]:
        """移除玩家的下注，返回被移除的 Bet（沒有則返回 None）"""
        return self._bets.pop(identity, None)

    def has(self, identity: str) -> bool:
        return identity in self._bets

    def freeze(self) -> Tuple[Bet, ...]:
        """收盤用：取得不可變的下注快照"""
        return tuple(self._bets.values())

    def __len__(self) -> int:
        return len(self._bets)

    def __iter__(self) -> Iterator[Bet]:
        return iter(list(self._bets.values()))
