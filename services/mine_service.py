"""
地雷服務：收盤時決定哪一格是地雷

純計算邏輯，不涉及狀態轉換。

選雷策略（依序）：
1. 沒有任何下注 → 1-9 隨機
2. 只有一格有人下注 → 就是那一格（莊家必勝）
3. 兩格有人下注 → 比較兩格總下注額
   - 大/小 <= 1.7：選號碼較小的格子
   - 大/小 > 1.7：選下注額較大的格子
4. 三格以上 → 選下注人數最少的格子，同人數取號碼最小
5. 備援 → 在有人下注的格子中隨機

注意：
    兩格時看金額、三格以上只看人數，這個不對稱是刻意保留的行為
"""
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
import logging
import random

from models import Bet, CellStats, CELLS

logger = logging.getLogger(__name__)

TWO_CELL_RATIO_THRESHOLD = Decimal("1.7")


def build_cell_stats(bets: Sequence[Bet]) -> List[CellStats]:
    """
    依格子分組統計下注

    返回：
        只包含有人下注的格子，依格子號碼排序
    """
    stats: Dict[int, CellStats] = {}
    for bet in bets:
        cell_stats = stats.setdefault(bet.cell, CellStats(cell=bet.cell))
        cell_stats.total_stake += bet.stake
        cell_stats.player_count += 1
    return [stats[cell] for cell in sorted(stats)]


def select_mine(
    bets: Sequence[Bet],
    rng: Optional[random.Random] = None,
    ratio_threshold: Decimal = TWO_CELL_RATIO_THRESHOLD
) -> int:
    """
    選出本回合的地雷格子

    參數：
        bets: 收盤時凍結的下注
        rng: 亂數來源（測試時可注入固定 seed）
        ratio_threshold: 兩格情況下的金額比例門檻

    返回：
        地雷格子號碼（1-9）
    """
    rng = rng or random

    # 1. 沒有下注：完全隨機
    if not bets:
        cell = rng.choice(CELLS)
        logger.info(f"No bets this round, random mine: {cell}")
        return cell

    # 2. 依格子分組
    occupied = build_cell_stats(bets)
    for stats in occupied:
        logger.info(
            f"  Cell {stats.cell}: {stats.player_count} player(s), total stake {stats.total_stake}"
        )

    # 3. 只有一格
    if len(occupied) == 1:
        logger.info(f"Single occupied cell: {occupied[0].cell}")
        return occupied[0].cell

    # 4. 兩格：比較金額比例
    if len(occupied) == 2:
        lower, higher = occupied
        stakes = [lower.total_stake, higher.total_stake]
        ratio = max(stakes) / min(stakes)
        logger.info(
            f"Two occupied cells: {lower.cell} ({lower.total_stake}) vs "
            f"{higher.cell} ({higher.total_stake}), ratio {ratio:.2f}"
        )
        if ratio <= ratio_threshold:
            return lower.cell
        return lower.cell if lower.total_stake > higher.total_stake else higher.cell

    # 5. 三格以上：人數最少，同人數取號碼最小
    if len(occupied) >= 3:
        min_players = min(stats.player_count for stats in occupied)
        candidates = [stats for stats in occupied if stats.player_count == min_players]
        logger.info(
            f"Cells with fewest players ({min_players}): {[c.cell for c in candidates]}"
        )
        return min(candidates, key=lambda stats: stats.cell).cell

    # 6. 備援
    cell = rng.choice(occupied).cell
    logger.warning(f"Fallback random mine among occupied cells: {cell}")
    return cell
