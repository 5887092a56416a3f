from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database

from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware
from common.mongo.client import create_client, ensure_indexes, resolve_database

from .api.errors import register_exception_handlers
from .api.health import router as health_router
from .api.routes import api_router
from .chains.client import build_chain_clients
from .config import AppConfig, load_config
from .services.faucet_service import FaucetDispatcher
from .services.rate_limiter import SlidingWindowRateLimiter


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    """MongoDB 연결과 체인 클라이언트의 수명을 관리한다.

    create_app 에 이미 주입된 값(테스트)이 있으면 새로 만들지 않는다.
    """

    config: AppConfig = app.state.config
    client = None

    if app.state.database is None:
        client = create_client(config.mongo)
        database = resolve_database(client, config.mongo)
        ensure_indexes(database)
        app.state.database = database

    if app.state.faucet_dispatcher is None and config.faucet.private_key:
        app.state.faucet_dispatcher = FaucetDispatcher(
            config.faucet.chains, build_chain_clients(config.faucet)
        )

    logger.info(
        "faucet-service started (chains=%s, faucet_enabled=%s)",
        ",".join(config.faucet.chain_keys),
        app.state.faucet_dispatcher is not None,
    )
    try:
        yield
    finally:
        if client is not None:
            client.close()


def create_app(
    config: AppConfig | None = None,
    database: Database | None = None,
    faucet_dispatcher: FaucetDispatcher | None = None,
    rate_limiter: SlidingWindowRateLimiter | None = None,
) -> FastAPI:
    setup_logger()
    config = config or load_config()

    app = FastAPI(
        title="Faucet Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.database = database
    app.state.faucet_dispatcher = faucet_dispatcher
    app.state.rate_limiter = rate_limiter or SlidingWindowRateLimiter(
        max_requests=config.faucet.rate_limit.max_requests,
        window_seconds=config.faucet.rate_limit.window_seconds,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api")

    return app


def main() -> None:
    """명령행에서 실행할 수 있도록 uvicorn 런처를 제공한다."""

    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()

    port = int(os.getenv("FAUCET_SERVICE_PORT", "3001"))
    uvicorn.run(
        "faucet_service.app.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
