"""
Player Registry：目前在線的玩家

職責：
1. 加入 / 重新連線時建立或更新 Player
2. 連線關閉時移除 Player
3. 提供在線名單快照
"""
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

from models import Player

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """identity -> Player 的對照表"""

    def __init__(self):
        self._players: Dict[str, Player] = {}

    def upsert(
        self,
        identity: str,
        display_name: str,
        balance: Decimal,
        connection_id: str,
        now: int
    ) -> Tuple[Player, bool]:
        """
        加入或更新玩家

        同一個 identity 重新連線時，原地更新連線、名稱與餘額，
        joined_at 保留第一次加入的時間。

        返回：
            (Player, 是否為新玩家)
        """
        player = self._players.get(identity)
        if player is None:
            player = Player(
                identity=identity,
                display_name=display_name,
                balance=balance,
                connection_id=connection_id,
                joined_at=now
            )
            self._players[identity] = player
            return player, True

        if player.connection_id != connection_id:
            logger.info(
                f"Player {identity} moved from connection {player.connection_id} to {connection_id}"
            )
        player.connection_id = connection_id
        player.display_name = display_name
        player.balance = balance
        return player, False

    def get(self, identity: str) -> Optional[Player]:
        return self._players.get(identity)

    def remove_by_connection(self, connection_id: str) -> List[Player]:
        """
        移除所有目前綁定在 connection_id 上的玩家

        同一條連線可以加入多個 identity，關閉時全部移除。

        注意：
            已經換到新連線的玩家不會因為舊連線關閉而被移除

        返回：
            被移除的玩家（依加入順序，沒有則為空列表）
        """
        removed = [p for p in self._players.values() if p.connection_id == connection_id]
        for player in removed:
            del self._players[player.identity]
        return removed

    def online(self) -> List[Player]:
        return list(self._players.values())

    def __contains__(self, identity: str) -> bool:
        return identity in self._players

    def __len__(self) -> int:
        return len(self._players)
