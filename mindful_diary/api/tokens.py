"""
API 令牌管理接口
使用登录会话认证，用户只能查看、创建和删除自己的令牌
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from mindful_diary.utils.config import Settings
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.errors import DiaryError, PersistenceError
from mindful_diary.utils.logger import logger
from .deps import (
    error_response,
    get_app_settings,
    get_public_store,
    internal_error,
    make_token_service,
    read_json_object,
    require_session,
)

router = APIRouter(prefix="/api/tokens", tags=["tokens"])


@router.get("")
async def list_tokens(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_public_store),
):
    """
    获取当前用户的令牌列表，不返回令牌本身

    Returns:
        {"data": 令牌列表}
    """
    try:
        user_id, access_token = await require_session(settings, store, authorization)
        tokens = await make_token_service(settings, store).list_tokens(user_id, access_token)
        return {"data": [token.model_dump(mode="json") for token in tokens]}

    except PersistenceError:
        return JSONResponse({"error": "Failed to fetch tokens"}, status_code=500)
    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"获取令牌列表时出现未知错误: {e}")
        return internal_error()


@router.post("")
async def create_token(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_public_store),
):
    """
    创建新令牌，令牌只在这里返回一次

    Returns:
        {"success": true, "data": 令牌}
    """
    try:
        user_id, access_token = await require_session(settings, store, authorization)

        body = await read_json_object(request)
        token = await make_token_service(settings, store).create_token(
            user_id, body.get("name"), access_token
        )
        return {"success": True, "data": token.model_dump(mode="json")}

    except PersistenceError:
        return JSONResponse({"error": "Failed to create token"}, status_code=500)
    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"创建令牌时出现未知错误: {e}")
        return internal_error()


@router.delete("/{token_id}")
async def delete_token(
    token_id: str,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_public_store),
):
    """
    删除令牌

    未匹配到任何令牌（不存在或属于他人）同样返回成功
    """
    try:
        user_id, access_token = await require_session(settings, store, authorization)
        await make_token_service(settings, store).delete_token(user_id, token_id, access_token)
        return {"success": True}

    except PersistenceError:
        return JSONResponse({"error": "Failed to delete token"}, status_code=500)
    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"删除令牌时出现未知错误: {e}")
        return internal_error()
