"""
数据库管理模块
通过 Supabase 的 HTTP 接口（PostgREST / GoTrue）读写远程数据表
"""

from typing import Any, Dict, List, Optional

import httpx

from .errors import PersistenceError
from .logger import logger


class SupabaseStore:
    """Supabase 数据访问类

    每个实例绑定一个 API key：service role key 绕过行级权限，
    anon key 配合用户的 access token 使用，受行级权限约束。
    """

    def __init__(self, base_url: str, api_key: str,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        初始化数据访问实例

        Args:
            base_url: Supabase 项目地址
            api_key: service role key 或 anon key
            transport: 自定义 httpx 传输层（测试时注入）
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self._transport)

    def _headers(self, access_token: Optional[str] = None,
                 prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token or self.api_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    @staticmethod
    def _eq_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        """把等值过滤条件转换为 PostgREST 查询参数"""
        return {column: f"eq.{value}" for column, value in (filters or {}).items()}

    async def _request(self, method: str, table: str, *,
                       params: Optional[Dict[str, str]] = None,
                       json: Any = None,
                       access_token: Optional[str] = None,
                       prefer: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        发送 PostgREST 请求

        Returns:
            返回的行列表

        Raises:
            PersistenceError: 网络错误或接口返回错误状态
        """
        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    f"/rest/v1/{table}",
                    params=params,
                    json=json,
                    headers=self._headers(access_token, prefer),
                )
        except httpx.HTTPError as e:
            logger.error(f"请求数据表 {table} 失败: {e}")
            raise PersistenceError(str(e)) from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = body.get("message") if isinstance(body, dict) else None
            message = message or response.text
            logger.error(f"数据表 {table} 返回错误: {response.status_code} - {message}")
            raise PersistenceError(message or f"HTTP {response.status_code}")

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"数据表 {table} 返回了无法解析的内容: {response.text[:200]}")
            raise PersistenceError(f"Malformed response from {table}") from e

    async def select(self, table: str, columns: str = "*",
                     filters: Optional[Dict[str, Any]] = None,
                     order: Optional[str] = None,
                     access_token: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        查询记录

        Args:
            table: 表名
            columns: 返回的列，逗号分隔
            filters: 等值过滤条件
            order: 排序，如 "created_at.desc"
            access_token: 用户 access token

        Returns:
            查询结果列表
        """
        params = {"select": columns, **self._eq_params(filters)}
        if order:
            params["order"] = order
        return await self._request("GET", table, params=params, access_token=access_token)

    async def insert(self, table: str, row: Dict[str, Any],
                     access_token: Optional[str] = None) -> Dict[str, Any]:
        """
        插入一条记录

        Args:
            table: 表名
            row: 记录内容
            access_token: 用户 access token

        Returns:
            插入后的完整记录（包含服务端生成的字段）
        """
        rows = await self._request(
            "POST", table,
            params={"select": "*"},
            json=[row],
            access_token=access_token,
            prefer="return=representation",
        )
        if len(rows) != 1:
            raise PersistenceError(f"Expected 1 inserted row, got {len(rows)}")
        return rows[0]

    async def update(self, table: str, values: Dict[str, Any],
                     filters: Dict[str, Any],
                     access_token: Optional[str] = None) -> int:
        """
        更新记录

        Returns:
            影响的行数
        """
        rows = await self._request(
            "PATCH", table,
            params=self._eq_params(filters),
            json=values,
            access_token=access_token,
            prefer="return=representation",
        )
        return len(rows)

    async def delete(self, table: str, filters: Dict[str, Any],
                     access_token: Optional[str] = None) -> int:
        """
        删除记录

        Returns:
            影响的行数
        """
        rows = await self._request(
            "DELETE", table,
            params=self._eq_params(filters),
            access_token=access_token,
            prefer="return=representation",
        )
        return len(rows)

    async def get_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """
        通过会话 access token 获取当前用户

        Args:
            access_token: 登录后获得的 access token

        Returns:
            用户信息，凭证无效时返回None
        """
        if not access_token:
            return None

        try:
            async with self._client() as client:
                response = await client.get(
                    "/auth/v1/user",
                    headers={
                        "apikey": self.api_key,
                        "Authorization": f"Bearer {access_token}",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"获取会话用户失败: {e}")
            return None

        if response.status_code != 200:
            logger.info(f"会话凭证无效: {response.status_code}")
            return None

        try:
            user = response.json()
        except ValueError:
            logger.error(f"会话接口返回了无法解析的内容: {response.text[:200]}")
            return None

        if not isinstance(user, dict) or not user.get("id"):
            return None
        return user
