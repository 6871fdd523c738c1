"""
Engine commands and outbound notifications.

Every mutation (and the read-only snapshot) reaches the RoundEngine as one of
these commands through the EngineDispatcher queue. Notifications travel the
other way: the engine hands them to an EventPublisher and never waits on it.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Protocol

from schemas import ServerEvent


# ============ Commands ============

@dataclass(frozen=True)
class OpenRound:
    pass


@dataclass(frozen=True)
class CloseRound:
    pass


@dataclass(frozen=True)
class Connect:
    connection_id: str


@dataclass(frozen=True)
class JoinPlayer:
    connection_id: str
    identity: str
    display_name: Optional[str]
    balance: Decimal


@dataclass(frozen=True)
class PlaceBet:
    connection_id: str
    identity: str
    cell: Any
    stake: Any


@dataclass(frozen=True)
class Disconnect:
    connection_id: str


@dataclass(frozen=True)
class Snapshot:
    pass


@dataclass(frozen=True)
class ListPlayers:
    pass


# ============ Results ============

@dataclass(frozen=True)
class OperationResult:
    """Definite outcome of one engine command."""

    success: bool
    error: Optional[Exception] = None
    payload: Any = None

    @classmethod
    def ok(cls, payload: Any = None) -> "OperationResult":
        return cls(success=True, payload=payload)

    @classmethod
    def failure(cls, error: Exception) -> "OperationResult":
        return cls(success=False, error=error)

    @property
    def reason(self) -> Optional[str]:
        return getattr(self.error, "reason", None) if self.error else None


# ============ Notifications ============

@dataclass(frozen=True)
class Notification:
    """
    An outbound event with its addressing.

    target set  -> unicast to that connection
    exclude set -> broadcast to everyone except that connection
    neither     -> broadcast to all
    """

    event: ServerEvent
    target: Optional[str] = None
    exclude: Optional[str] = None


class EventPublisher(Protocol):
    def publish(self, notification: Notification) -> None:
        """Hand off a notification. Must not block."""

        ...
