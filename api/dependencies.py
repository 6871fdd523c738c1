from fastapi import HTTPException, Request

from core.dispatcher import EngineDispatcher


def get_dispatcher(request: Request) -> EngineDispatcher:
    """
    FastAPI dependency：提供正在運作的 EngineDispatcher
    """
    dispatcher: EngineDispatcher = request.app.state.dispatcher
    if not dispatcher.running:
        raise HTTPException(status_code=503, detail="Game engine is not running")
    return dispatcher
