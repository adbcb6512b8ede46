"""测试配置和 fixtures."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import podsync.models  # noqa: F401
from podsync.core.store import SqlStore
from podsync.core.sync import SyncConfig

FEED_URL = "http://example.com/feed.xml"

RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
<channel>
<title>Test Podcast</title>
<link>http://example.com</link>
<description>&lt;p&gt;A &lt;b&gt;test&lt;/b&gt; podcast&lt;/p&gt;</description>
{items}
</channel>
</rss>
"""

ITEM_TEMPLATE = """<item>
<title>{title}</title>
<link>{link}</link>
<description>{description}</description>
<pubDate>{pub_date}</pubDate>
<enclosure url="{audio_url}" length="{length}" type="{mime_type}"/>
</item>"""


def make_item(
    title: str,
    audio_url: str,
    pub_date: str = "Mon, 01 Jan 2024 10:00:00 GMT",
    length: int = 12_345_678,
    mime_type: str = "audio/mpeg",
    link: str = "http://example.com/episode",
    description: str = "Episode notes",
) -> str:
    """生成一个 RSS item."""
    return ITEM_TEMPLATE.format(
        title=title,
        link=link,
        description=description,
        pub_date=pub_date,
        audio_url=audio_url,
        length=length,
        mime_type=mime_type,
    )


def make_rss(*items: str) -> bytes:
    """生成 RSS 文档."""
    return RSS_TEMPLATE.format(items="\n".join(items)).encode("utf-8")


@pytest.fixture
async def test_engine(tmp_path: Path):
    """创建测试数据库引擎（临时文件，允许多个会话并发访问）."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """创建测试会话工厂."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    """创建测试会话."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def store(test_session_factory) -> SqlStore:
    """基于测试数据库的存储."""
    return SqlStore(test_session_factory)


@pytest.fixture
def sync_config(tmp_path: Path) -> SyncConfig:
    """测试用同步配置."""
    return SyncConfig(
        user_agent="podsync-test",
        episode_no_title="Untitled episode",
        image_dir=tmp_path / "images",
        connect_timeout=1.0,
        read_timeout=1.0,
    )


@pytest.fixture
def feed_server() -> dict[str, Callable[[httpx.Request], httpx.Response] | bytes]:
    """
    模拟网络：URL -> 响应内容或处理函数.

    未登记的 URL 返回 404。
    """
    return {}


@pytest.fixture
async def http_client(feed_server) -> AsyncGenerator[httpx.AsyncClient, None]:
    """基于 MockTransport 的 HTTP 客户端."""

    def handler(request: httpx.Request) -> httpx.Response:
        route = feed_server.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return httpx.Response(200, content=route)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client
