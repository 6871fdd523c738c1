"""
回合狀態機：集中管理所有狀態轉換

合法轉換：
    IDLE -> OPEN
    OPEN -> CLOSING
    CLOSING -> RESULTS
    RESULTS -> OPEN

沒有終止狀態，一直循環到程序結束。
"""
from typing import Dict, FrozenSet
import logging

from models import RoundState
from core.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)


class RoundStateMachine:
    """回合狀態機"""

    TRANSITIONS: Dict[RoundState, FrozenSet[RoundState]] = {
        RoundState.IDLE: frozenset({RoundState.OPEN}),
        RoundState.OPEN: frozenset({RoundState.CLOSING}),
        RoundState.CLOSING: frozenset({RoundState.RESULTS}),
        RoundState.RESULTS: frozenset({RoundState.OPEN}),
    }

    def __init__(self, initial: RoundState = RoundState.IDLE):
        self.state = initial

    def transition(self, target: RoundState) -> RoundState:
        """
        執行狀態轉換

        異常：
            InvalidStateTransition: 目前狀態不允許轉到 target
        """
        if target not in self.TRANSITIONS[self.state]:
            raise InvalidStateTransition(
                f"Cannot transition round from {self.state.value} to {target.value}"
            )
        logger.debug(f"Round state {self.state.value} -> {target.value}")
        self.state = target
        return self.state

    @property
    def is_open(self) -> bool:
        return self.state == RoundState.OPEN
