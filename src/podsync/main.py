"""podsync 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from podsync import __version__
from podsync.api import episodes, settings, subscriptions, sync
from podsync.config import get_settings
from podsync.models.database import close_db, init_db
from podsync.scheduler import create_scheduler, shutdown_scheduler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def _load_dynamic_settings() -> None:
    """从数据库加载动态配置."""
    from podsync.api.settings import load_dynamic_settings
    from podsync.models.database import async_session_maker

    session_factory = async_session_maker()
    async with session_factory() as session:
        await load_dynamic_settings(session)
    logger.info("动态配置已加载")


async def _reset_stuck_states() -> None:
    """重置卡住的刷新周期（服务重启后恢复）."""
    from sqlalchemy import update

    from podsync.models.database import async_session_maker
    from podsync.models.sync import SyncStatus
    from podsync.utils.timeutils import utcnow

    session_factory = async_session_maker()
    async with session_factory() as session:
        result = await session.execute(
            update(SyncStatus)
            .where(SyncStatus.status == "running")
            .values(status="failed", error_message="服务重启", completed_at=utcnow())
        )
        await session.commit()

        if result.rowcount > 0:
            logger.info(f"已重置卡住的刷新周期: {result.rowcount} 个")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    # 启动时初始化
    logger.info("正在初始化数据库...")
    await init_db(app_settings.database_url)

    # 加载动态配置
    logger.info("正在加载动态配置...")
    await _load_dynamic_settings()

    # 重置卡住的中间状态
    logger.info("正在检查并重置卡住的状态...")
    await _reset_stuck_states()

    logger.info("正在启动定时任务...")
    create_scheduler(app_settings)

    logger.info("podsync 启动完成！")
    yield

    # 关闭时清理
    logger.info("正在关闭...")
    await shutdown_scheduler()
    await close_db()
    logger.info("podsync 已关闭")


app = FastAPI(
    title="podsync",
    description="播客订阅同步引擎 - 拉取 feed、提取音频节目并去重入库",
    version=__version__,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(subscriptions.router)
app.include_router(episodes.router)
app.include_router(sync.router)
app.include_router(settings.router)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "podsync",
        "version": __version__,
        "description": "播客订阅同步引擎",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "podsync.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
