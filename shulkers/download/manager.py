"""
下载管理器

流式下载插件/模组文件，失败时按指数退避重试。
"""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

import aiofiles
import aiohttp
from loguru import logger

from shulkers.exceptions import DownloadError, DownloadFileError, DownloadNetworkError
from shulkers.models import ServerCategory, VersionInfo
from shulkers.utils import format_bytes

CHUNK_SIZE = 8192


@dataclass
class DownloadResult:
    """下载结果"""

    file_path: Path
    size: int


def plugin_directory(category: ServerCategory, root: Union[str, Path]) -> Path:
    """模组服放在 mods/，插件服和代理放在 plugins/"""
    if category is ServerCategory.MOD:
        return Path(root) / "mods"
    return Path(root) / "plugins"


def file_name_from_url(url: str) -> str:
    return unquote(os.path.basename(urlparse(url).path)) or "download"


class DownloadManager:
    """下载管理器"""

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: Optional[str] = None,
    ):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.headers = {"User-Agent": user_agent} if user_agent else {}
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owned_session = True
        return self._session

    async def download(
        self, version_info: VersionInfo, directory: Union[str, Path]
    ) -> DownloadResult:
        """下载 VersionInfo 指向的文件"""
        return await self.download_file(
            version_info.download_url, directory, version_info.file_name
        )

    async def download_file(
        self,
        url: str,
        directory: Union[str, Path],
        file_name: Optional[str] = None,
    ) -> DownloadResult:
        """
        下载单个文件

        Args:
            url: 下载地址（跟随重定向）
            directory: 目标目录，不存在时自动创建
            file_name: 文件名，默认取 URL 的最后一段

        Raises:
            DownloadNetworkError: 重试耗尽后仍然失败
            DownloadFileError: 无法写入目标文件
        """
        directory = Path(directory)
        file_name = file_name or file_name_from_url(url)
        file_path = directory / file_name

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DownloadFileError(
                f"无法创建目录: {directory}", context={"error": str(e)}
            ) from e

        logger.info(f"[开始] 下载: {file_name}")

        for attempt in range(self.max_retries + 1):
            try:
                size = await self._fetch(url, file_path)
            except (aiohttp.ClientError, asyncio.TimeoutError, DownloadNetworkError) as e:
                _remove_partial(file_path)

                if attempt < self.max_retries:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"[重试] 下载 '{file_name}' 失败 (第 {attempt + 1} 次): {e}. "
                        f"{delay:.1f}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue

                logger.error(f"[错误] 下载 '{file_name}' 最终失败: {e}")
                if isinstance(e, DownloadError):
                    raise
                raise DownloadNetworkError(
                    f"下载失败: {file_name}", context={"url": url, "error": str(e)}
                ) from e
            except OSError as e:
                _remove_partial(file_path)
                raise DownloadFileError(
                    f"无法写入文件: {file_path}", context={"error": str(e)}
                ) from e

            logger.success(f"[完成] '{file_name}' 下载完成 ({format_bytes(size)})")
            return DownloadResult(file_path=file_path, size=size)

        raise DownloadError(f"下载失败: {file_name}", context={"url": url})

    async def _fetch(self, url: str, file_path: Path) -> int:
        async with self.session.get(url, headers=self.headers, allow_redirects=True) as response:
            if response.status != 200:
                raise DownloadNetworkError(
                    f"HTTP {response.status}",
                    context={"url": url, "status": response.status},
                )

            downloaded = 0
            async with aiofiles.open(file_path, "wb") as f:
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    await f.write(chunk)
                    downloaded += len(chunk)
            return downloaded

    async def close(self):
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _remove_partial(file_path: Path):
    """清理不完整的文件"""
    try:
        file_path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"无法删除不完整的文件 {file_path}: {e}")
