"""
自定義異常類別

集中管理所有業務邏輯異常，方便 RoundEngine 與傳輸層統一處理。
每個異常都帶有穩定的 reason 字串，直接作為 betRejected / error 事件的原因碼。
"""


class MinesGameException(Exception):
    """所有遊戲異常的基類"""
    reason = "Error"


# ============ 下注相關異常（回報給下注者） ============

class BetRejected(MinesGameException):
    """下注被拒絕"""
    reason = "BetRejected"


class RoundNotOpen(BetRejected):
    """目前沒有開放下注的回合"""
    reason = "RoundNotOpen"

    def __init__(self, state):
        self.state = state
        super().__init__(f"Round is not open for bets (state: {state.value})")


class UnknownPlayer(BetRejected):
    """玩家尚未加入"""
    reason = "UnknownPlayer"

    def __init__(self, identity):
        self.identity = identity
        super().__init__(f"Player {identity} has not joined")


class DuplicateBet(BetRejected):
    """玩家本回合已經下注過了"""
    reason = "DuplicateBet"

    def __init__(self, identity, round_number=None):
        self.identity = identity
        self.round_number = round_number
        super().__init__(f"Player {identity} already placed a bet in round {round_number}")


class InvalidBet(BetRejected):
    """格子不在 1-9 或金額不是正數"""
    reason = "InvalidBet"


# ============ 排程競態（靜默吸收，只記錄） ============

class SchedulerRace(MinesGameException):
    """開局 / 收盤重複觸發"""
    reason = "SchedulerRace"


class RoundAlreadyOpen(SchedulerRace):
    reason = "RoundAlreadyOpen"

    def __init__(self, round_number, close_time=None):
        self.round_number = round_number
        self.close_time = close_time
        super().__init__(f"Round {round_number} is already open")


class RoundAlreadyClosed(SchedulerRace):
    reason = "RoundAlreadyClosed"

    def __init__(self, state):
        self.state = state
        super().__init__(f"No open round to close (state: {state.value})")


# ============ 狀態轉換異常 ============

class InvalidStateTransition(MinesGameException):
    """非法的狀態轉換"""
    reason = "InvalidStateTransition"


# ============ 結算異常 ============

class SettlementFailed(MinesGameException):
    """收盤結算失敗，該局作廢（不公布結果）"""
    reason = "SettlementFailed"

    def __init__(self, round_number, cause):
        self.round_number = round_number
        self.cause = cause
        super().__init__(f"Round {round_number} could not be settled: {type(cause).__name__}")


# ============ 傳輸層訊息異常 ============

class InvalidMessage(MinesGameException):
    """客戶端訊息格式錯誤或類型未知"""
    reason = "InvalidMessage"
