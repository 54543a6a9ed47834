"""
Database connection management.
Provides async SQLAlchemy engine and session factory (SQLite via aiosqlite by default,
PostgreSQL via asyncpg when configured).
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from utils import db_logger, config_manager, DatabaseError, ErrorCodes
from utils.path_utils import BASE_DIR

# 等待其他连接释放写锁的秒数
SQLITE_BUSY_TIMEOUT = 15


def _resolve_database_url(database_url: str) -> str:
    """SQLite 相对路径以项目根目录为基准，并确保目录存在"""
    url = make_url(database_url)
    if not url.drivername.startswith('sqlite'):
        return database_url

    database = url.database
    if not database or database == ':memory:':
        return database_url

    if not os.path.isabs(database):
        database = str(BASE_DIR / database)
    os.makedirs(os.path.dirname(database), exist_ok=True)
    return url.set(database=database).render_as_string(hide_password=False)


class DatabaseManager:
    """数据库管理器"""

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None,
                 isolation_level: Optional[str] = None):
        db_config = config_manager.get_database_config()
        self.database_url = _resolve_database_url(database_url or db_config.url)
        self.echo = db_config.echo if echo is None else echo
        self.isolation_level = isolation_level or db_config.isolation_level
        self.async_engine: Optional[AsyncEngine] = None
        self.AsyncSessionLocal: Optional[async_sessionmaker] = None
        db_logger.info(f"[Database] Using database: {make_url(self.database_url).render_as_string()}")

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).drivername.startswith('sqlite')

    @property
    def is_initialized(self) -> bool:
        return self.AsyncSessionLocal is not None

    def initialize(self):
        """初始化数据库连接"""
        if self.is_initialized:
            return

        try:
            engine_kwargs = {"echo": self.echo}
            if self.isolation_level:
                engine_kwargs["isolation_level"] = self.isolation_level

            if self.is_sqlite:
                engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
                # 内存数据库必须共享同一个连接
                if make_url(self.database_url).database in (None, '', ':memory:'):
                    engine_kwargs["poolclass"] = StaticPool
            else:
                engine_kwargs["pool_pre_ping"] = True

            self.async_engine = create_async_engine(self.database_url, **engine_kwargs)

            if self.is_sqlite:
                sync_engine = self.async_engine.sync_engine
                event.listen(sync_engine, "connect", _configure_sqlite_connection)
                if self.isolation_level != "AUTOCOMMIT":
                    event.listen(sync_engine, "begin", _begin_immediate)

            self.AsyncSessionLocal = async_sessionmaker(
                bind=self.async_engine,
                class_=AsyncSession,
                autoflush=False,
                expire_on_commit=False
            )

            db_logger.info("[Database] Database connection initialized successfully")

        except Exception as e:
            db_logger.error(f"[Database] Failed to initialize database: {e}")
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                ErrorCodes.DB_CONNECTION_FAILED
            ) from e

    async def create_tables(self):
        """创建数据库表"""
        from .models import Base

        self.initialize()
        try:
            async with self.async_engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            db_logger.info("[Database] Database tables created successfully")
        except Exception as e:
            db_logger.error(f"[Database] Failed to create tables: {e}")
            raise

    async def drop_tables(self):
        """删除所有表（仅用于测试与重置）"""
        from .models import Base

        self.initialize()
        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        db_logger.warning("[Database] All tables dropped")

    def get_async_session(self) -> AsyncSession:
        """获取异步数据库会话"""
        if not self.AsyncSessionLocal:
            raise RuntimeError("Database not initialized")
        return self.AsyncSessionLocal()

    async def test_connection(self) -> bool:
        """测试数据库连接"""
        try:
            self.initialize()
            async with self.async_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            db_logger.error(f"[Database] Connection test failed: {e}")
            return False

    async def close(self):
        """关闭数据库连接"""
        if self.async_engine is not None:
            await self.async_engine.dispose()
            db_logger.info("[Database] Database connections closed")
        self.async_engine = None
        self.AsyncSessionLocal = None


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # 由 begin 事件自行发出 BEGIN
    dbapi_connection.isolation_level = None
    # SQLite 默认不检查外键
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _begin_immediate(conn):
    """事务开始即获取写锁，并发写入按忙等待排队，而不是在读锁升级时失败"""
    conn.exec_driver_sql("BEGIN IMMEDIATE")


@asynccontextmanager
async def session_scope(manager: DatabaseManager) -> AsyncGenerator[AsyncSession, None]:
    """事务会话：正常退出提交，异常回滚"""
    async with manager.get_async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
