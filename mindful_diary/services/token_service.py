"""
API 令牌服务
负责令牌的签发、校验、列表和删除，以及会话凭证的解析
"""

import secrets
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks

from mindful_diary.models.token import SUMMARY_COLUMNS, APIToken, APITokenSummary
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.errors import AuthenticationError, PersistenceError, ValidationError
from mindful_diary.utils.logger import logger

TABLE = "api_tokens"
BEARER_PREFIX = "Bearer "


def extract_bearer(authorization: Optional[str]) -> str:
    """
    从 Authorization 头中取出 Bearer 令牌

    Raises:
        AuthenticationError: 请求头缺失或格式不是 "Bearer <token>"
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Missing or invalid Authorization header")
    return authorization[len(BEARER_PREFIX):]


def generate_token(prefix: str = "mdt_", nbytes: int = 32) -> str:
    """生成带前缀的高熵令牌"""
    return f"{prefix}{secrets.token_hex(nbytes)}"


async def resolve_session_user(store: SupabaseStore,
                               authorization: Optional[str]) -> Tuple[str, str]:
    """
    通过会话凭证解析当前用户

    Args:
        store: 使用 anon key 的数据访问实例
        authorization: Authorization 请求头

    Returns:
        (用户ID, access token)

    Raises:
        AuthenticationError: 会话无效
    """
    access_token = (authorization or "").replace(BEARER_PREFIX, "", 1).strip()
    user = await store.get_user(access_token)
    if not user:
        raise AuthenticationError("Unauthorized")
    return user["id"], access_token


class TokenService:
    """API 令牌服务"""

    def __init__(self, store: SupabaseStore, token_prefix: str = "mdt_",
                 token_bytes: int = 32):
        """
        初始化令牌服务

        Args:
            store: 数据访问实例
            token_prefix: 令牌前缀，便于辨认
            token_bytes: 随机字节数
        """
        self.store = store
        self.token_prefix = token_prefix
        self.token_bytes = token_bytes

    async def verify_bearer(self, authorization: Optional[str],
                            background_tasks: Optional[BackgroundTasks] = None) -> str:
        """
        校验 Bearer 令牌并返回所属用户

        last_used_at 的刷新放进后台任务，响应发出后才执行；
        没有后台任务队列时直接执行。刷新失败只记录日志。

        Args:
            authorization: Authorization 请求头
            background_tasks: FastAPI 后台任务

        Returns:
            用户ID

        Raises:
            AuthenticationError: 请求头不合法或令牌不存在
        """
        token = extract_bearer(authorization)

        try:
            rows = await self.store.select(TABLE, columns="user_id", filters={"token": token})
        except PersistenceError as e:
            logger.error(f"查询令牌失败: {e.message}")
            raise AuthenticationError("Invalid token") from e

        if len(rows) != 1 or not rows[0].get("user_id"):
            raise AuthenticationError("Invalid token")

        if background_tasks is not None:
            background_tasks.add_task(self.mark_used, token)
        else:
            await self.mark_used(token)

        return rows[0]["user_id"]

    async def mark_used(self, token: str) -> None:
        """刷新令牌的最后使用时间"""
        try:
            await self.store.update(
                TABLE,
                {"last_used_at": datetime.now(timezone.utc).isoformat()},
                filters={"token": token},
            )
        except Exception as e:
            logger.warning(f"更新令牌使用时间失败: {e}")

    async def list_tokens(self, user_id: str,
                          access_token: Optional[str] = None) -> List[APITokenSummary]:
        """
        获取用户的令牌列表（不含令牌本身，按创建时间倒序）

        Args:
            user_id: 用户ID
            access_token: 用户 access token

        Returns:
            令牌列表
        """
        rows = await self.store.select(
            TABLE,
            columns=SUMMARY_COLUMNS,
            filters={"user_id": user_id},
            order="created_at.desc",
            access_token=access_token,
        )
        return [APITokenSummary.model_validate(row) for row in rows]

    async def create_token(self, user_id: str, name: object,
                           access_token: Optional[str] = None) -> APIToken:
        """
        签发新令牌

        Args:
            user_id: 用户ID
            name: 令牌名称
            access_token: 用户 access token

        Returns:
            新令牌（只有这一次会返回令牌本身）

        Raises:
            ValidationError: 名称缺失或为空
            PersistenceError: 写入失败
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Name is required and must be a string")

        row = await self.store.insert(
            TABLE,
            {
                "user_id": user_id,
                "token": generate_token(self.token_prefix, self.token_bytes),
                "name": name.strip(),
            },
            access_token=access_token,
        )
        created = APIToken.model_validate(row)
        logger.info(f"令牌创建成功: {created.id} ({created.name})")
        return created

    async def delete_token(self, user_id: str, token_id: str,
                           access_token: Optional[str] = None) -> int:
        """
        删除令牌，按 id 和 user_id 同时过滤

        Returns:
            删除的令牌数量
        """
        deleted = await self.store.delete(
            TABLE,
            filters={"id": token_id, "user_id": user_id},
            access_token=access_token,
        )
        if deleted:
            logger.info(f"令牌删除成功: {token_id}")
        else:
            logger.warning(f"令牌不存在或不属于当前用户: {token_id}")
        return deleted
