"""
WebSocket endpoint：玩家的雙向通道

訊息格式（JSON）：
    {"type": "join", "data": {"identity": "...", "displayName": "...", "balance": "100"}}
    {"type": "placeBet", "data": {"identity": "...", "cell": 5, "stake": "10"}}

流程：
1. 接受連線，單獨送出 currentState / onlinePlayers
2. 逐筆讀取訊息，轉成引擎指令送入 EngineDispatcher
3. 連線關閉時送出 Disconnect
"""
from typing import Optional
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from schemas import BetRejectedEvent, ClientMessage, ErrorEvent, JoinMessage, PlaceBetMessage
from core.commands import Connect, Disconnect, JoinPlayer, OperationResult, PlaceBet
from core.dispatcher import EngineDispatcher
from core.exceptions import InvalidBet, InvalidMessage
from api.connections import ConnectionManager

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def game_socket(websocket: WebSocket):
    connections: ConnectionManager = websocket.app.state.connections
    dispatcher: EngineDispatcher = websocket.app.state.dispatcher

    connection_id = await connections.connect(websocket)
    try:
        await dispatcher.call(Connect(connection_id))
        while True:
            raw = await websocket.receive_text()
            await handle_client_message(raw, connection_id, dispatcher, connections)
    except WebSocketDisconnect as e:
        logger.info(f"Client {connection_id} disconnected (code={e.code})")
    finally:
        # 先移除連線，離線通知就不會再送給它
        await connections.disconnect(connection_id)
        if dispatcher.running:
            await dispatcher.call(Disconnect(connection_id))


async def handle_client_message(
    raw: str,
    connection_id: str,
    dispatcher: EngineDispatcher,
    connections: ConnectionManager
) -> Optional[OperationResult]:
    """
    處理一筆客戶端訊息

    格式錯誤不會中斷連線：
    - placeBet 的資料錯誤 → betRejected（InvalidBet）
    - 其他錯誤 → error 事件

    返回：
        引擎的 OperationResult；訊息無法解析時返回 None
    """
    try:
        message = ClientMessage.model_validate_json(raw)
    except ValidationError as e:
        _reply_error(InvalidMessage(f"Malformed message: {_first_error(e)}"), connection_id, connections)
        return None

    try:
        command = build_command(message, connection_id)
    except InvalidBet as e:
        identity = message.data.get("identity")
        logger.warning(f"Malformed bet from {connection_id}: {e}")
        connections.send_personal_message(
            BetRejectedEvent(
                identity=identity if isinstance(identity, str) else None,
                reason=e.reason,
                message=str(e)
            ).envelope(),
            connection_id
        )
        return None
    except InvalidMessage as e:
        _reply_error(e, connection_id, connections)
        return None

    return await dispatcher.call(command)


def build_command(message: ClientMessage, connection_id: str):
    """
    把客戶端訊息轉成引擎指令

    異常：
        InvalidBet: placeBet 的資料無法解析
        InvalidMessage: 其他格式錯誤或未知的訊息類型
    """
    if message.type == "join":
        try:
            payload = JoinMessage.model_validate(message.data)
        except ValidationError as e:
            raise InvalidMessage(f"Invalid join payload: {_first_error(e)}")
        return JoinPlayer(
            connection_id=connection_id,
            identity=payload.identity,
            display_name=payload.display_name,
            balance=payload.balance
        )

    if message.type == "placeBet":
        try:
            payload = PlaceBetMessage.model_validate(message.data)
        except ValidationError as e:
            raise InvalidBet(f"Invalid bet payload: {_first_error(e)}")
        return PlaceBet(
            connection_id=connection_id,
            identity=payload.identity,
            cell=payload.cell,
            stake=payload.stake
        )

    raise InvalidMessage(f"Unknown message type: {message.type}")


def _reply_error(error: InvalidMessage, connection_id: str, connections: ConnectionManager):
    logger.warning(f"Bad message from {connection_id}: {error}")
    connections.send_personal_message(
        ErrorEvent(reason=error.reason, message=str(error)).envelope(),
        connection_id
    )


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]
