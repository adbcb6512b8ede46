"""音频大小探测."""

import logging

import httpx

logger = logging.getLogger(__name__)


class ContentLengthProbe:
    """通过响应头获取音频文件大小."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def probe(self, url: str) -> int | None:
        """
        读取 URL 的 Content-Length，不下载响应体.

        Returns:
            字节数，服务器未声明时返回 None

        Raises:
            httpx.InvalidURL: URL 格式错误
            httpx.HTTPError: 网络或 HTTP 错误
        """
        async with self._client.stream("GET", url) as response:
            response.raise_for_status()
            length = response.headers.get("content-length")

        if length is None or not length.strip().isdigit():
            logger.debug(f"{url} 未声明 Content-Length")
            return None
        return int(length)
