"""FastAPI 应用初始化"""

import asyncio

import uvicorn

from .. import config
from ..engine import get_gateway
from ..preview import SessionManager
from ..telemetry import get_logger, setup_logging
from .server import PreviewServer

logger = get_logger(__name__)


def create_app(manager: SessionManager | None = None) -> PreviewServer:
    """创建 Web 应用"""
    return PreviewServer(manager or SessionManager(get_gateway()))


async def start_server(host: str = config.SERVER_HOST, port: int = config.SERVER_PORT):
    """启动服务器"""
    server = create_app()

    uvicorn_config = uvicorn.Config(server.app, host=host, port=port, log_level=config.LOG_LEVEL.lower())
    uvicorn_server = uvicorn.Server(uvicorn_config)

    print(f"Wire Preview server starting at http://{host}:{port}")

    try:
        await uvicorn_server.serve()
    finally:
        server.manager.close_all()
        await server.manager.timer.drain()
        logger.info("[PreviewServer] Sessions closed")


def main():
    """入口函数"""
    setup_logging()
    try:
        asyncio.run(start_server())
    except KeyboardInterrupt:
        print("\nServer stopped")
