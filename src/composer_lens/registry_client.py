from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from composer_lens import __version__
from composer_lens.errors import PackageNotFound, RegistryUnavailable, VersionNotFound
from composer_lens.versions import pick_latest_version, sort_version_strings

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


@dataclass(frozen=True, slots=True)
class RegistrySettings:
    """
    包仓库（Packagist）访问配置。
    """

    base_url: str = "https://packagist.org"
    timeout_s: float = 30.0
    user_agent: str = f"composer-lens/{__version__}"


def _build_headers(settings: RegistrySettings) -> dict[str, str]:
    return {"Accept": "application/json", "User-Agent": settings.user_agent}


def create_async_client(settings: RegistrySettings) -> httpx.AsyncClient:
    """
    创建用于访问仓库的 AsyncClient。
    """
    return httpx.AsyncClient(
        base_url=settings.base_url.rstrip("/"),
        headers=_build_headers(settings),
        timeout=httpx.Timeout(settings.timeout_s),
        follow_redirects=True,
    )


class PackagistClient:
    """
    Packagist 只读 API 客户端：每次调用只发起一次请求，不重试、不缓存。
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: RegistrySettings) -> PackagistClient:
        return cls(create_async_client(settings))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(
        self,
        path: str,
        *,
        failure: str,
        package: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        GET 并解码 JSON 对象；任何传输/HTTP/解码错误都转换为 RegistryUnavailable。
        """
        logger.debug("GET %s params=%s", path, params)
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise RegistryUnavailable(failure, package=package, cause=str(exc) or type(exc).__name__) from exc

        if resp.status_code == 404:
            raise PackageNotFound(failure, package=package, cause="http 404")
        if resp.status_code >= 400:
            raise RegistryUnavailable(failure, package=package, cause=f"http {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise RegistryUnavailable(failure, package=package, cause=f"invalid json: {exc}") from exc
        if not isinstance(data, dict):
            raise RegistryUnavailable(failure, package=package, cause="Invalid response from Packagist API")
        return data

    async def search(self, query: str, per_page: int = 15) -> dict[str, Any]:
        """
        按关键字搜索包；per_page 被静默限制在 [1, 100]。
        """
        per_page = max(1, min(int(per_page), MAX_PER_PAGE))
        data = await self._get_json(
            "/search.json",
            failure="Failed to search packages",
            params={"q": query, "per_page": per_page},
        )
        return {
            "results": data.get("results") or [],
            "total": int(data.get("total") or 0),
        }

    async def get_package(self, name: str) -> dict[str, Any]:
        """
        获取包的完整元数据文档（原样返回）。
        """
        return await self._get_json(
            f"/packages/{name}.json",
            failure=f"Failed to get package information for '{name}'",
            package=name,
        )

    async def get_package_versions(self, name: str) -> dict[str, Any]:
        """
        获取包的全部版本文档（以版本字符串为键）。
        """
        data = await self.get_package(name)
        package = data.get("package") or {}
        versions = package.get("versions") if isinstance(package, dict) else None
        return versions if isinstance(versions, dict) else {}

    async def get_package_version(self, name: str, version: str) -> dict[str, Any]:
        """
        获取指定版本的子文档；版本不存在时抛出 VersionNotFound。
        """
        versions = await self.get_package_versions(name)
        if version not in versions:
            raise VersionNotFound(name, version)
        return versions[version]

    async def list_versions(self, name: str) -> dict[str, Any]:
        """
        列出包的版本（从新到旧）并给出最新稳定版本。
        """
        versions = await self.get_package_versions(name)
        return {
            "package": name,
            "versions": sort_version_strings(versions.keys()),
            "latest_stable": pick_latest_version(versions.keys()),
        }

    async def get_package_stats(self, name: str) -> dict[str, Any]:
        """
        获取包的下载量与依赖统计；缺失字段填默认值。
        """
        data = await self._get_json(
            f"/packages/{name}/stats.json",
            failure=f"Failed to get statistics for package '{name}'",
            package=name,
        )
        return {
            "downloads": data.get("downloads") or {},
            "dependents": int(data.get("dependents") or 0),
            "suggesters": int(data.get("suggesters") or 0),
            "favers": int(data.get("favers") or 0),
        }
