"""
Main entry point for the Quote Sharing System.
Provides command-line interface and system initialization.
"""

import asyncio
import argparse
import sys

import uvicorn

from utils import api_logger, db_logger, logger, config_manager, initialize_logging
from database import DatabaseManager, DatabaseOperations


class QuoteSharingSystem:
    """语录分享系统主类"""

    def __init__(self, database_url: str = None):
        self.config = config_manager
        self.db_ops = DatabaseOperations(DatabaseManager(database_url))

    async def initialize(self, create_tables: bool = True):
        """初始化数据库"""
        try:
            logger.info("[Main] Initializing Quote Sharing System...")
            await self.db_ops.initialize(create_tables=create_tables)
            logger.info("[Main] Quote Sharing System initialized successfully")
        except Exception as e:
            logger.error(f"[Main] Failed to initialize system: {e}")
            raise

    async def init_database(self, reset: bool = False):
        """创建数据表，reset 时先删除所有表"""
        self.db_ops.db.initialize()
        if reset:
            await self.db_ops.db.drop_tables()
        await self.db_ops.db.create_tables()
        db_logger.info("[Main] Database schema is ready")
        print("Database schema is ready.")

    async def show_system_status(self):
        """显示系统状态"""
        connected = await self.db_ops.db.test_connection()

        print("\n" + "=" * 60)
        print("         QUOTE SHARING SYSTEM STATUS")
        print("=" * 60)

        print("\nDatabase:")
        print(f"   Connected: {connected}")
        if connected:
            stats = await self.db_ops.get_database_statistics()
            print(f"   Users: {stats['users']:,}")
            print(f"   Quotes: {stats['quotes']:,}")
            print(f"   Likes: {stats['quote_likes']:,}")
            print(f"   Ratings: {stats['quote_ratings']:,}")

        api_config = self.config.get_api_config()
        print("\nAPI:")
        print(f"   Listen: {api_config.host}:{api_config.port}")
        print(f"   Workers: {api_config.workers}")
        print(f"   Rate Limit: {api_config.rate_limit_per_minute}/min")

        print("\n" + "=" * 60)

    async def shutdown(self):
        """关闭系统"""
        await self.db_ops.close()
        logger.info("[Main] Quote Sharing System shutdown completed")


def start_api_server(host: str = None, port: int = None):
    """启动API服务器（uvicorn 自行管理事件循环）"""
    api_config = config_manager.get_api_config()

    final_host = host if host is not None else api_config.host
    final_port = port if port is not None else api_config.port

    api_logger.info(f"[Main] Starting API server on {final_host}:{final_port}...")
    api_logger.info(f"[Main] API config - workers: {api_config.workers}, reload: {api_config.reload}")

    uvicorn.run(
        "api.app:app",
        host=final_host,
        port=final_port,
        workers=api_config.workers,
        reload=api_config.reload,
        log_level="info"
    )


def create_parser():
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        description="Quote Sharing System - 语录分享系统",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用示例:
  python main.py api --host 0.0.0.0 --port 8000  # 启动API服务器
  python main.py init-db                        # 创建数据表
  python main.py init-db --reset                # 删除并重建数据表
  python main.py status                         # 显示系统状态
        """
    )
    parser.add_argument('--database-url', help='数据库连接串（覆盖配置文件）')

    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    # API服务器
    api_parser = subparsers.add_parser('api', help='启动API服务器')
    api_parser.add_argument('--host', default=None, help='监听地址 (默认取配置)')
    api_parser.add_argument('--port', type=int, default=None, help='监听端口 (默认取配置)')

    # 数据库初始化
    init_parser = subparsers.add_parser('init-db', help='创建数据表')
    init_parser.add_argument('--reset', action='store_true', help='先删除所有表')

    # 状态
    subparsers.add_parser('status', help='显示系统状态')

    return parser


async def run_command(args) -> None:
    system = QuoteSharingSystem(args.database_url)
    try:
        if args.command == 'init-db':
            await system.init_database(reset=args.reset)
        elif args.command == 'status':
            await system.show_system_status()
    finally:
        await system.shutdown()


def main(argv=None):
    """主函数"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    initialize_logging()

    if args.database_url:
        config_manager.set_nested('database_config.url', args.database_url)

    try:
        if args.command == 'api':
            start_api_server(args.host, args.port)
        else:
            asyncio.run(run_command(args))

    except KeyboardInterrupt:
        logger.info("[Main] Received keyboard interrupt")
    except Exception as e:
        logger.error(f"[Main] System error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
