"""
FastAPI application for the quote sharing system.
Main application entry point for the REST and GraphQL API server.
"""

import random
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from auth_service import AuthService
from database import DatabaseManager, DatabaseOperations
from quote_engine import QuoteEngine
from utils import api_logger, config_manager, get_utc_time, __version__
from utils.config_manager import AuthConfig

from .graphql_schema import create_graphql_router
from .middleware import setup_middleware
from .routes import router


def create_app(database_url: Optional[str] = None,
               auth_config: Optional[AuthConfig] = None,
               rate_limit_per_minute: Optional[int] = None,
               cors_origins: Optional[List[str]] = None,
               rng: Optional[random.Random] = None) -> FastAPI:
    """创建应用实例，参数为空时使用配置文件"""
    api_config = config_manager.get_api_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        api_logger.info("[API] Starting Quote Sharing API...")

        db_ops = DatabaseOperations(DatabaseManager(database_url))
        await db_ops.initialize()

        app.state.db_ops = db_ops
        app.state.quote_engine = QuoteEngine(db_ops, rng=rng)
        app.state.auth_service = AuthService(db_ops, auth_config)
        api_logger.info("[API] Services initialized successfully")

        try:
            yield
        finally:
            api_logger.info("[API] Shutting down Quote Sharing API...")
            await db_ops.close()

    app = FastAPI(
        title="Quote Sharing API",
        description="Random quotes, likes, ratings and search over REST and GraphQL",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    setup_middleware(app, rate_limit_per_minute=rate_limit_per_minute, cors_origins=cors_origins)

    app.include_router(router, prefix="/api")
    app.include_router(create_graphql_router(api_config.graphiql), prefix="/graphql")

    @app.get("/")
    async def root():
        """根路径"""
        return {
            "message": "Quote Sharing API",
            "version": __version__,
            "docs": "/docs",
            "graphql": "/graphql",
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """健康检查端点"""
        database_ok = await app.state.db_ops.db.test_connection()
        return {
            "status": "healthy" if database_ok else "degraded",
            "database": "connected" if database_ok else "unavailable",
            "timestamp": get_utc_time().isoformat(),
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: Optional[str] = None, port: Optional[int] = None, reload: Optional[bool] = None):
    """启动 uvicorn 服务"""
    api_config = config_manager.get_api_config()
    host = host or api_config.host
    port = port or api_config.port
    reload = api_config.reload if reload is None else reload

    api_logger.info(f"[API] Starting server on {host}:{port}")

    # 开发模式
    if reload:
        uvicorn.run("api.app:app", host=host, port=port, reload=True, log_level="info")
    # 生产模式
    else:
        uvicorn.run("api.app:app", host=host, port=port, workers=api_config.workers, log_level="info")


if __name__ == "__main__":
    run_server()
