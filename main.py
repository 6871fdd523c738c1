from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
import logging

from config import Settings, get_settings
from core.dispatcher import EngineDispatcher
from core.round_engine import RoundEngine
from core.scheduler import RoundScheduler
from api import players, rounds, websocket
from api.connections import ConnectionManager

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    settings = app_settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: 建立引擎、單一寫入者佇列與排程器，第一局立即開始
        connections = ConnectionManager(queue_size=settings.outbound_queue_size)
        engine = RoundEngine(publisher=connections, settings=settings)
        dispatcher = EngineDispatcher(engine)
        await dispatcher.start()
        scheduler = RoundScheduler(dispatcher, settings)
        scheduler.start()

        app.state.connections = connections
        app.state.dispatcher = dispatcher
        app.state.scheduler = scheduler
        try:
            yield
        finally:
            # Shutdown: 先停計時器，再關連線，最後停佇列
            scheduler.shutdown()
            await connections.close_all()
            await dispatcher.stop()
            logger.info("Stop Server")

    app = FastAPI(
        title="Mines Round Game API",
        description="Perpetual nine-cell betting rounds over WebSocket",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(rounds.router)
    app.include_router(players.router)
    app.include_router(websocket.router)

    @app.get("/")
    def root():
        return {"message": "Mines Round Game API", "status": "ok"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
