"""
命名服務：生成 Round ID 和 Player Display Name

純計算邏輯，不涉及狀態轉換
"""
from typing import Optional


def generate_round_id(open_time: int, previous_round_id: Optional[int] = None) -> int:
    """
    由開局時間（epoch 毫秒）產生回合 ID

    規則：
    - 預設就是開局時間
    - 如果和上一局落在同一毫秒（或時鐘倒退），改用上一局 ID + 1

    這保證在程序存活期間 ID 嚴格遞增、不會重複。

    範例：
        generate_round_id(1700000000000)                 -> 1700000000000
        generate_round_id(1700000000000, 1700000000000)  -> 1700000000001
    """
    if previous_round_id is not None and open_time <= previous_round_id:
        return previous_round_id + 1
    return open_time


def generate_display_name(identity: str) -> str:
    """
    玩家沒有提供名稱時的預設顯示名稱

    格式：「Player-」+ identity 最後 4 個字元

    範例：
        generate_display_name("user_12345") -> "Player-2345"
    """
    return f"Player-{identity[-4:]}"
