"""
接口公共依赖
从 app.state 取出启动时构建的配置和数据访问实例，并提供统一的错误响应
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

from mindful_diary.services.token_service import TokenService, resolve_session_user
from mindful_diary.utils.config import Settings
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.errors import DiaryError, ValidationError


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_admin_store(request: Request) -> SupabaseStore:
    """service role 数据访问实例，用于 Bearer 令牌路径"""
    return request.app.state.admin_store


def get_public_store(request: Request) -> SupabaseStore:
    """anon key 数据访问实例，用于会话认证路径"""
    return request.app.state.public_store


def make_token_service(settings: Settings, store: SupabaseStore) -> TokenService:
    return TokenService(store, settings.token_prefix, settings.token_bytes)


async def require_session(settings: Settings, store: SupabaseStore,
                          authorization: Optional[str]) -> Tuple[str, str]:
    """
    会话认证路径的前置检查

    Returns:
        (用户ID, access token)

    Raises:
        ConfigurationError: 缺少 anon key 或数据库地址
        AuthenticationError: 会话无效
    """
    settings.require_public()
    return await resolve_session_user(store, authorization)


async def read_json_object(request: Request) -> Dict[str, Any]:
    """
    读取 JSON 对象请求体

    Raises:
        ValidationError: 请求体不是合法的 JSON 对象
    """
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON")

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def error_response(error: DiaryError) -> JSONResponse:
    return JSONResponse({"error": error.message}, status_code=error.status_code)


def internal_error() -> JSONResponse:
    return JSONResponse({"error": "Internal server error"}, status_code=500)
