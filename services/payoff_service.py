"""
計分服務：收盤時計算每位玩家的輸贏與派彩

純計算邏輯：
- 下注格子 != 地雷 → 贏，派彩 = 下注額 × 1.45
- 下注格子 == 地雷 → 輸，派彩 = 0

金額全部使用 Decimal，不做額外的捨入。
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

from models import Bet, Outcome

WIN_MULTIPLIER = Decimal("1.45")


@dataclass(frozen=True)
class OutcomeSummary:
    winners: int
    losers: int
    total_staked: Decimal
    total_paid: Decimal


def calculate_payout(stake: Decimal, win: bool, multiplier: Decimal = WIN_MULTIPLIER) -> Decimal:
    """
    計算單筆派彩

    不做捨入：派彩的小數位數 = 下注額的小數位數 + 倍率的小數位數。

    範例：
        calculate_payout(Decimal("20"), True)    -> Decimal("29.00")
        calculate_payout(Decimal("20.5"), True)  -> Decimal("29.725")
        calculate_payout(Decimal("10"), False)   -> Decimal("0")
    """
    if not win:
        return Decimal("0")
    return stake * multiplier


def compute_outcomes(
    mine: int,
    bets: Sequence[Bet],
    multiplier: Decimal = WIN_MULTIPLIER
) -> List[Outcome]:
    """
    計算一回合所有下注的結果

    參數：
        mine: 地雷格子
        bets: 收盤時凍結的下注（輸出順序與輸入相同）
        multiplier: 獲勝倍率

    返回：
        Outcome 列表
    """
    outcomes = []
    for bet in bets:
        win = bet.cell != mine
        outcomes.append(Outcome(
            identity=bet.identity,
            display_name=bet.display_name,
            stake=bet.stake,
            cell=bet.cell,
            win=win,
            payout=calculate_payout(bet.stake, win, multiplier)
        ))
    return outcomes


def summarize_outcomes(outcomes: Sequence[Outcome]) -> OutcomeSummary:
    """彙總一回合的輸贏（用於收盤日誌）"""
    winners = sum(1 for outcome in outcomes if outcome.win)
    return OutcomeSummary(
        winners=winners,
        losers=len(outcomes) - winners,
        total_staked=sum((outcome.stake for outcome in outcomes), Decimal("0")),
        total_paid=sum((outcome.payout for outcome in outcomes), Decimal("0"))
    )
