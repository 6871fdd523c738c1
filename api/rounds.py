"""
Round API Endpoints（唯讀）

回合的變更只會經由排程器與 WebSocket 發生，
這裡只提供目前狀態的查詢，同樣經過 EngineDispatcher 取得一致的快照。
"""
from fastapi import APIRouter, Depends, HTTPException

import logging

from schemas import CurrentStateEvent
from core.commands import Snapshot
from core.dispatcher import EngineDispatcher
from api.dependencies import get_dispatcher

router = APIRouter(prefix="/api/rounds", tags=["rounds"])
logger = logging.getLogger(__name__)


@router.get("/current", response_model=CurrentStateEvent, response_model_by_alias=True)
async def get_current_round(dispatcher: EngineDispatcher = Depends(get_dispatcher)):
    """
    取得當前回合資訊

    返回：
        - isOpen: 是否接受下注
        - openTime / closeTime: 開局與收盤時間（epoch 毫秒）
        - roundNumber / roundId
        - serverTime: 伺服器時間，讓前端校正倒數
        - lastResult: 上一局的結果（尚未收盤過則為 null）
    """
    try:
        result = await dispatcher.call(Snapshot())
        return result.payload

    except Exception as e:
        logger.error(f"Failed to get current round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
