"""
Pydantic schemas for everything that crosses the transport boundary.

Outbound events serialize with camelCase keys and Decimal amounts as strings.
"""
from decimal import Decimal
from typing import ClassVar, Dict, List, Optional, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models import Outcome, Player


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============ 共用結構 ============

class PlayerView(CamelModel):
    identity: str
    display_name: str
    balance: Decimal
    joined_at: int

    @classmethod
    def from_player(cls, player: Player) -> "PlayerView":
        return cls(
            identity=player.identity,
            display_name=player.display_name,
            balance=player.balance,
            joined_at=player.joined_at
        )


class OutcomeView(CamelModel):
    identity: str
    display_name: str
    stake: Decimal
    cell: int
    win: bool
    payout: Decimal

    @classmethod
    def from_outcome(cls, outcome: Outcome) -> "OutcomeView":
        return cls(
            identity=outcome.identity,
            display_name=outcome.display_name,
            stake=outcome.stake,
            cell=outcome.cell,
            win=outcome.win,
            payout=outcome.payout
        )


# ============ 伺服器 -> 客戶端事件 ============

class ServerEvent(CamelModel):
    event_type: ClassVar[str] = "event"

    def envelope(self) -> Dict[str, Any]:
        return {"type": self.event_type, "data": self.model_dump(mode="json", by_alias=True)}


class RoundOpenedEvent(ServerEvent):
    event_type: ClassVar[str] = "roundOpened"

    round_number: int
    round_id: int
    open_time: int
    close_time: int
    server_time: int


class RoundClosedEvent(ServerEvent):
    event_type: ClassVar[str] = "roundClosed"

    mine_cell: int
    outcomes: List[OutcomeView]
    round_number: int
    round_id: int
    server_time: int


class CurrentStateEvent(ServerEvent):
    event_type: ClassVar[str] = "currentState"

    is_open: bool
    open_time: Optional[int] = None
    close_time: Optional[int] = None
    round_number: Optional[int] = None
    round_id: Optional[int] = None
    server_time: int
    last_result: Optional[RoundClosedEvent] = None


class PlayerJoinedEvent(ServerEvent):
    event_type: ClassVar[str] = "playerJoined"

    player: PlayerView


class OnlinePlayersEvent(ServerEvent):
    event_type: ClassVar[str] = "onlinePlayers"

    players: List[PlayerView]


class PlayerLeftEvent(ServerEvent):
    event_type: ClassVar[str] = "playerLeft"

    identity: str


class BetAcceptedEvent(ServerEvent):
    event_type: ClassVar[str] = "betAccepted"

    identity: str
    display_name: str
    cell: int
    stake: Decimal


class BetRejectedEvent(ServerEvent):
    event_type: ClassVar[str] = "betRejected"

    identity: Optional[str] = None
    reason: str
    message: str


class ErrorEvent(ServerEvent):
    event_type: ClassVar[str] = "error"

    reason: str
    message: str


# ============ 客戶端 -> 伺服器訊息 ============

class ClientMessage(BaseModel):
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class JoinMessage(CamelModel):
    identity: str = Field(min_length=1)
    display_name: Optional[str] = None
    balance: Decimal = Decimal("0")


class PlaceBetMessage(CamelModel):
    identity: str = Field(min_length=1)
    cell: int = Field(strict=True)
    stake: Decimal
