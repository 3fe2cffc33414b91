from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from globalmoves.core.config import settings
from globalmoves.core.logging import setup_logging, get_logger
from globalmoves.database import init_databases, close_databases
from globalmoves.database.mysql import AsyncSessionLocal
from globalmoves.database.redis import is_redis_enabled, get_redis
from globalmoves.middleware import (
    ErrorHandlerMiddleware,
    LoggingMiddleware,
    create_http_exception_handler,
    create_validation_exception_handler,
)
from globalmoves.services import room_service
from globalmoves.websockets.connection_manager import manager
from globalmoves.websockets.relay import RedisEventRelay
from globalmoves.api.health import router as health_router
from globalmoves.api.auth import router as auth_router
from globalmoves.api.rooms import router as rooms_router
from globalmoves.api.invitations import router as invitations_router
from globalmoves.api.messages import router as messages_router
from globalmoves.api.opportunities import router as opportunities_router
from globalmoves.api.websocket import router as websocket_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    await init_databases()

    if settings.seed_public_rooms:
        async with AsyncSessionLocal() as db:
            await room_service.seed_public_rooms(db)

    relay = None
    if is_redis_enabled():
        relay = RedisEventRelay(await get_redis(), manager)
        await relay.start()
        manager.set_relay(relay)

    await manager.start_sweeper()
    logger.info("Breakout rooms service started")

    yield

    # Shutdown
    await manager.stop_sweeper()
    if relay is not None:
        manager.set_relay(None)
        await relay.stop()
    await close_databases()


app = FastAPI(
    title="The Global Moves - Breakout Rooms",
    lifespan=lifespan
)

# 미들웨어 (나중에 추가한 것이 바깥쪽)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 예외 핸들러 (HTTPException / 요청 검증 에러를 표준 에러 형식으로)
app.add_exception_handler(StarletteHTTPException, create_http_exception_handler())
app.add_exception_handler(RequestValidationError, create_validation_exception_handler())

# Include routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(rooms_router)
app.include_router(invitations_router)
app.include_router(messages_router)
app.include_router(opportunities_router)
app.include_router(websocket_router)


@app.get("/")
async def root():
    return {"message": "The Global Moves breakout rooms API"}
