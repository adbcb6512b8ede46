"""封面图片缓存."""

import asyncio
import logging
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)


class ImageCache:
    """按 ID 缓存订阅和节目图片，下载在后台进行."""

    def __init__(self, image_dir: Path, client: httpx.AsyncClient) -> None:
        self.image_dir = image_dir
        self._client = client
        self._pending: set[asyncio.Task[bool]] = set()

    def image_path(self, item_id: int) -> Path:
        """图片文件路径."""
        return self.image_dir / str(item_id)

    def is_downloaded(self, item_id: int) -> bool:
        """图片是否已缓存."""
        return self.image_path(item_id).exists()

    def download(self, item_id: int, url: str) -> None:
        """后台下载图片，不等待结果."""
        task = asyncio.create_task(self.fetch(item_id, url))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def fetch(self, item_id: int, url: str) -> bool:
        """下载图片并写入缓存，失败只记录日志."""
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            path = self.image_path(item_id)
            path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, response.content)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            logger.warning(f"{url}: 图片下载失败: {e}")
            return False

        logger.debug(f"图片已缓存: {item_id} <- {url}")
        return True

    async def wait_pending(self) -> None:
        """等待所有后台下载完成."""
        if self._pending:
            await asyncio.gather(*self._pending)
