"""
Player API Endpoints

玩家的加入與離線都走 WebSocket，這裡只提供在線名單查詢。
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import PlayerView
from core.commands import ListPlayers
from core.dispatcher import EngineDispatcher
from api.dependencies import get_dispatcher

router = APIRouter(prefix="/api/players", tags=["players"])
logger = logging.getLogger(__name__)


@router.get("/online", response_model=List[PlayerView], response_model_by_alias=True)
async def get_online_players(dispatcher: EngineDispatcher = Depends(get_dispatcher)):
    """
    取得在線玩家名單

    返回：
        PlayerView 列表（identity / displayName / balance / joinedAt）
    """
    try:
        result = await dispatcher.call(ListPlayers())
        return result.payload.players

    except Exception as e:
        logger.error(f"Failed to list online players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
