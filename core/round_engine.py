"""
Round Engine：管理回合的完整生命週期

職責：
1. 開局（分配回合數、回合 ID、清空下注簿）
2. 接受 / 拒絕下注
3. 收盤（凍結下注 → 選雷 → 計算派彩 → 公布結果）
4. 玩家加入 / 離線

並發模型：
- RoundEngine 本身是同步、非執行緒安全的
- 只能由 EngineDispatcher 的單一 task 呼叫（single-writer）
- 對外通知交給 EventPublisher，絕不等待傳輸層

錯誤處理：
- 所有業務異常都在 handle() 邊界內轉成 OperationResult，不會往外拋
"""
from decimal import Decimal
from typing import Callable, Optional
import logging
import random
import time

from config import Settings
from models import Bet, Round, RoundState, CELL_MIN, CELL_MAX
from schemas import (
    BetAcceptedEvent,
    BetRejectedEvent,
    CurrentStateEvent,
    OnlinePlayersEvent,
    OutcomeView,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    PlayerView,
    RoundClosedEvent,
    RoundOpenedEvent,
    ServerEvent,
)
from core.commands import (
    CloseRound,
    Connect,
    Disconnect,
    EventPublisher,
    JoinPlayer,
    ListPlayers,
    Notification,
    OpenRound,
    OperationResult,
    PlaceBet,
    Snapshot,
)
from core.exceptions import (
    BetRejected,
    DuplicateBet,
    InvalidBet,
    MinesGameException,
    RoundAlreadyClosed,
    RoundAlreadyOpen,
    RoundNotOpen,
    SettlementFailed,
    UnknownPlayer,
)
from core.ledger import BetLedger
from core.registry import PlayerRegistry
from core.state_machine import RoundStateMachine
from services.mine_service import select_mine
from services.naming_service import generate_display_name, generate_round_id
from services.payoff_service import compute_outcomes, summarize_outcomes

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


class RoundEngine:
    """回合引擎（唯一的狀態擁有者）"""

    def __init__(
        self,
        publisher: EventPublisher,
        settings: Optional[Settings] = None,
        clock: Callable[[], int] = epoch_ms,
        rng: Optional[random.Random] = None
    ):
        settings = settings or Settings()
        self._publisher = publisher
        self._clock = clock
        self._rng = rng or random.Random()
        self._betting_window_ms = settings.betting_window_ms
        self._win_multiplier = settings.win_multiplier
        self._ratio_threshold = settings.two_cell_ratio_threshold
        self._max_stake = settings.max_stake
        self._stake_places = settings.stake_decimal_places

        self._machine = RoundStateMachine()
        self._players = PlayerRegistry()
        self._round: Optional[Round] = None
        self._last_result: Optional[RoundClosedEvent] = None

        self._handlers = {
            OpenRound: self.open_round,
            CloseRound: self.close_round,
            Connect: self.connect,
            JoinPlayer: self.join,
            PlaceBet: self.place_bet,
            Disconnect: self.disconnect,
            Snapshot: self.snapshot,
            ListPlayers: self.list_players,
        }

    # ============ 狀態查詢 ============

    @property
    def state(self) -> RoundState:
        return self._machine.state

    @property
    def current_round(self) -> Optional[Round]:
        return self._round

    @property
    def players(self) -> PlayerRegistry:
        return self._players

    @property
    def last_result(self) -> Optional[RoundClosedEvent]:
        return self._last_result

    # ============ 指令入口 ============

    def handle(self, command) -> OperationResult:
        """
        執行一個指令（由 EngineDispatcher 呼叫）

        業務異常一律轉成失敗的 OperationResult；
        未知的指令類型屬於程式錯誤，直接拋出 TypeError。
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported engine command: {type(command).__name__}")

        try:
            return handler(command)
        except MinesGameException as e:
            logger.warning(f"{type(command).__name__} ignored: {e}")
            return OperationResult.failure(e)

    # ============ 回合生命週期 ============

    def open_round(self, command: Optional[OpenRound] = None) -> OperationResult:
        """
        開局（IDLE/RESULTS -> OPEN）

        流程：
        1. 檢查沒有正在進行的回合
        2. 分配回合數與回合 ID
        3. 建立新的下注簿
        4. 通知所有人

        異常：
            RoundAlreadyOpen: 已經有回合在接受下注（重複觸發，no-op）
        """
        # 1. 防止同時存在兩個開放的回合
        if self._machine.is_open:
            raise RoundAlreadyOpen(self._round.round_number, self._round.close_time)

        # 2. 分配回合數與 ID
        now = self._clock()
        previous = self._round
        round_number = previous.round_number + 1 if previous else 1
        round_id = generate_round_id(now, previous.round_id if previous else None)

        self._machine.transition(RoundState.OPEN)

        # 3. 新回合、新下注簿
        self._round = Round(
            round_number=round_number,
            round_id=round_id,
            open_time=now,
            close_time=now + self._betting_window_ms,
            bets=BetLedger(round_number)
        )

        logger.info(
            f"Round #{round_number} opened (id={round_id}), bets until {self._round.close_time}, "
            f"{len(self._players)} player(s) online"
        )

        # 4. 通知所有人
        self._broadcast(RoundOpenedEvent(
            round_number=round_number,
            round_id=round_id,
            open_time=self._round.open_time,
            close_time=self._round.close_time,
            server_time=now
        ))
        return OperationResult.ok(self._round)

    def close_round(self, command: Optional[CloseRound] = None) -> OperationResult:
        """
        收盤（OPEN -> CLOSING -> RESULTS）

        流程：
        1. 凍結下注
        2. 選雷
        3. 計算派彩
        4. 公布結果

        下一局由排程器依固定節奏開啟，這裡不會立即開局。

        異常：
            RoundAlreadyClosed: 目前沒有開放的回合（重複觸發，no-op）
            SettlementFailed: 選雷或派彩計算失敗，該局作廢，狀態仍進入 RESULTS
        """
        if not self._machine.is_open:
            raise RoundAlreadyClosed(self._machine.state)

        self._machine.transition(RoundState.CLOSING)
        current = self._round
        logger.info(f"Closing round #{current.round_number} with {len(current.bets)} bet(s)")

        # 1. 凍結下注
        bets = current.bets.freeze()

        try:
            # 2. 選雷
            mine = select_mine(bets, rng=self._rng, ratio_threshold=self._ratio_threshold)

            # 3. 計算派彩
            outcomes = compute_outcomes(mine, bets, multiplier=self._win_multiplier)
            summary = summarize_outcomes(outcomes)
        except Exception as e:
            # 結算失敗也必須離開 CLOSING
            logger.error(f"Settlement of round #{current.round_number} failed: {e}", exc_info=True)
            self._machine.transition(RoundState.RESULTS)
            raise SettlementFailed(current.round_number, e) from e

        current.mine_cell = mine
        for outcome in outcomes:
            if outcome.win:
                logger.info(f"{outcome.display_name} won {outcome.payout} (stake {outcome.stake})")
            else:
                logger.info(f"{outcome.display_name} lost {outcome.stake}")

        # 4. 公布結果
        event = RoundClosedEvent(
            mine_cell=mine,
            outcomes=[OutcomeView.from_outcome(outcome) for outcome in outcomes],
            round_number=current.round_number,
            round_id=current.round_id,
            server_time=self._clock()
        )
        self._last_result = event
        self._machine.transition(RoundState.RESULTS)

        logger.info(
            f"Round #{current.round_number} mine: {mine}, winners: {summary.winners}/{len(outcomes)}, "
            f"staked {summary.total_staked}, paid {summary.total_paid}"
        )
        self._broadcast(event)
        return OperationResult.ok(event)

    # ============ 下注 ============

    def place_bet(self, command: PlaceBet) -> OperationResult:
        """
        下注

        檢查順序：
        1. 回合必須是 OPEN（RoundNotOpen）
        2. 玩家必須已加入（UnknownPlayer）
        3. 本回合還沒下注過（DuplicateBet）
        4. 格子 1-9、金額為正數（InvalidBet）

        任何失敗都不會修改下注簿，並以 betRejected 單獨回覆下注者。
        """
        try:
            bet = self._accept_bet(command)
        except BetRejected as e:
            logger.warning(f"Bet from {command.identity} rejected: {e.reason} ({e})")
            self._publish(
                BetRejectedEvent(identity=command.identity, reason=e.reason, message=str(e)),
                target=command.connection_id
            )
            return OperationResult.failure(e)

        logger.info(
            f"Bet accepted: {bet.display_name} staked {bet.stake} on cell {bet.cell} "
            f"({len(self._round.bets)} bet(s) this round)"
        )
        self._broadcast(BetAcceptedEvent(
            identity=bet.identity,
            display_name=bet.display_name,
            cell=bet.cell,
            stake=bet.stake
        ))
        return OperationResult.ok(bet)

    def _accept_bet(self, command: PlaceBet) -> Bet:
        if not self._machine.is_open:
            raise RoundNotOpen(self._machine.state)

        player = self._players.get(command.identity)
        if player is None:
            raise UnknownPlayer(command.identity)

        ledger = self._round.bets
        if ledger.has(command.identity):
            # DuplicateBet 必須先於 InvalidBet
            raise DuplicateBet(command.identity, self._round.round_number)

        cell = _validate_cell(command.cell)
        stake = _validate_stake(command.stake, self._max_stake, self._stake_places)

        bet = Bet(
            identity=player.identity,
            display_name=player.display_name,
            cell=cell,
            stake=stake,
            placed_at=self._clock()
        )
        ledger.add(bet)
        return bet

    # ============ 玩家 ============

    def connect(self, command: Connect) -> OperationResult:
        """新連線：單獨送出目前狀態與在線名單"""
        state = self._current_state()
        self._publish(state, target=command.connection_id)
        self._publish(self._online_players(), target=command.connection_id)
        return OperationResult.ok(state)

    def join(self, command: JoinPlayer) -> OperationResult:
        """
        玩家加入（或重新連線）

        通知：
        - playerJoined：給其他人
        - currentState：只給加入者
        - onlinePlayers：給所有人
        """
        display_name = command.display_name or generate_display_name(command.identity)
        player, created = self._players.upsert(
            identity=command.identity,
            display_name=display_name,
            balance=command.balance,
            connection_id=command.connection_id,
            now=self._clock()
        )

        logger.info(
            f"Player {'joined' if created else 'rejoined'}: {player.display_name} ({player.identity}), "
            f"{len(self._players)} online"
        )

        self._publish(
            PlayerJoinedEvent(player=PlayerView.from_player(player)),
            exclude=command.connection_id
        )
        self._publish(self._current_state(), target=command.connection_id)
        self._broadcast(self._online_players())
        return OperationResult.ok(player)

    def disconnect(self, command: Disconnect) -> OperationResult:
        """
        連線關閉

        - 移除所有綁定在此連線上的玩家
        - 如果回合還在 OPEN，這些玩家本回合的下注一併移除
        - 已收盤的回合不受影響

        返回：
            被移除的玩家列表
        """
        players = self._players.remove_by_connection(command.connection_id)
        if not players:
            logger.debug(f"Connection {command.connection_id} closed without an active player")
            return OperationResult.ok(players)

        for player in players:
            if self._machine.is_open and self._round.bets.remove(player.identity):
                logger.info(
                    f"{player.display_name} forfeited their bet in round #{self._round.round_number}"
                )
            logger.info(f"Player left: {player.display_name}, {len(self._players)} online")
            self._broadcast(PlayerLeftEvent(identity=player.identity))

        self._broadcast(self._online_players())
        return OperationResult.ok(players)

    def snapshot(self, command: Optional[Snapshot] = None) -> OperationResult:
        return OperationResult.ok(self._current_state())

    def list_players(self, command: Optional[ListPlayers] = None) -> OperationResult:
        return OperationResult.ok(self._online_players())

    # ============ 內部工具 ============

    def _current_state(self) -> CurrentStateEvent:
        current = self._round
        return CurrentStateEvent(
            is_open=self._machine.is_open,
            open_time=current.open_time if current else None,
            close_time=current.close_time if current else None,
            round_number=current.round_number if current else None,
            round_id=current.round_id if current else None,
            server_time=self._clock(),
            last_result=self._last_result
        )

    def _online_players(self) -> OnlinePlayersEvent:
        return OnlinePlayersEvent(
            players=[PlayerView.from_player(player) for player in self._players.online()]
        )

    def _broadcast(self, event: ServerEvent) -> None:
        self._publish(event)

    def _publish(self, event: ServerEvent, target: Optional[str] = None, exclude: Optional[str] = None) -> None:
        self._publisher.publish(Notification(event=event, target=target, exclude=exclude))


def _validate_cell(cell) -> int:
    # bool 是 int 的子類別，要排除
    if isinstance(cell, bool) or not isinstance(cell, int):
        raise InvalidBet(f"Cell must be an integer between {CELL_MIN} and {CELL_MAX}, got {cell!r}")
    if not CELL_MIN <= cell <= CELL_MAX:
        raise InvalidBet(f"Cell must be between {CELL_MIN} and {CELL_MAX}, got {cell}")
    return cell


def _validate_stake(stake, max_stake: Decimal, decimal_places: int) -> Decimal:
    if isinstance(stake, bool) or not isinstance(stake, (Decimal, int)):
        raise InvalidBet(f"Stake must be a decimal amount, got {stake!r}")
    stake = Decimal(stake)
    if not stake.is_finite() or stake <= 0:
        raise InvalidBet(f"Stake must be a positive amount, got {stake}")
    if stake > max_stake:
        raise InvalidBet(f"Stake must not exceed {max_stake}, got {stake}")
    if stake.as_tuple().exponent < -decimal_places:
        raise InvalidBet(f"Stake must have at most {decimal_places} decimal places, got {stake}")
    return stake
