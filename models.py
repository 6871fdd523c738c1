"""
領域模型：Player / Bet / Round / Outcome

全部是純記憶體資料結構（不做持久化），由 RoundEngine 獨佔修改。
金額一律使用 Decimal，避免浮點數誤差。
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from core.ledger import BetLedger

CELL_MIN = 1
CELL_MAX = 9
CELLS = tuple(range(CELL_MIN, CELL_MAX + 1))


class RoundState(str, Enum):
    IDLE = "IDLE"          # 第一局開始前
    OPEN = "OPEN"          # 接受下注
    CLOSING = "CLOSING"    # 下注凍結，計算地雷與派彩
    RESULTS = "RESULTS"    # 結果展示，等待下一局


@dataclass
class Player:
    identity: str
    display_name: str
    balance: Decimal
    connection_id: str
    joined_at: int


@dataclass(frozen=True)
class Bet:
    identity: str
    display_name: str
    cell: int
    stake: Decimal
    placed_at: int


@dataclass
class Round:
    """
    一局遊戲

    注意：
        - bets 由 Round 擁有，Round 被丟棄時一併丟棄
        - mine_cell 在收盤前為 None
    """
    round_number: int
    round_id: int
    open_time: int
    close_time: int
    bets: "BetLedger"
    mine_cell: Optional[int] = None


@dataclass(frozen=True)
class Outcome:
    identity: str
    display_name: str
    stake: Decimal
    cell: int
    win: bool
    payout: Decimal


@dataclass
class CellStats:
    """單一格子的下注統計"""
    cell: int
    total_stake: Decimal = Decimal("0")
    player_count: int = 0
