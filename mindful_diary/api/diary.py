"""
日记接口
POST /api/diary/create 通过 API 令牌创建日记；
其余接口使用登录会话，供前端查询、创建和删除自己的日记
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from fastapi.responses import JSONResponse

from mindful_diary.services.diary_service import DiaryService
from mindful_diary.utils.config import Settings
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.errors import DiaryError, PersistenceError
from mindful_diary.utils.logger import logger
from .deps import (
    error_response,
    get_admin_store,
    get_app_settings,
    get_public_store,
    internal_error,
    make_token_service,
    read_json_object,
    require_session,
)

router = APIRouter(prefix="/api/diary", tags=["diary"])


@router.post("/create")
async def create_diary_with_token(
    request: Request,
    background_tasks: BackgroundTasks,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_admin_store),
):
    """
    使用 API 令牌创建日记

    Returns:
        {"success": true, "data": 日记}
    """
    try:
        settings.require_admin()

        token_service = make_token_service(settings, store)
        user_id = await token_service.verify_bearer(authorization, background_tasks)

        body = await read_json_object(request)
        entry = await DiaryService(store).create_entry(
            user_id, body.get("content"), body.get("mood")
        )
        return {"success": True, "data": entry.model_dump(mode="json")}

    except PersistenceError:
        return JSONResponse({"error": "Failed to create diary entry"}, status_code=500)
    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"创建日记时出现未知错误: {e}")
        return internal_error()


@router.get("")
async def list_diaries(
    q: Optional[str] = None,
    mood: Optional[str] = None,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_public_store),
):
    """
    获取当前用户的日记列表

    Args:
        q: 内容关键字
        mood: 心情过滤

    Returns:
        {"data": 日记列表}
    """
    try:
        user_id, access_token = await require_session(settings, store, authorization)
        entries = await DiaryService(store).list_entries(
            user_id, access_token, query=q, mood=mood
        )
        return {"data": [entry.model_dump(mode="json") for entry in entries]}

    except PersistenceError:
        return JSONResponse({"error": "Failed to fetch diary entries"}, status_code=500)
    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"获取日记列表时出现未知错误: {e}")
        return internal_error()


@router.post("")
async def create_diary(
    request: Request,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_public_store),
):
    """使用登录会话创建日记"""
    try:
        user_id, access_token = await require_session(settings, store, authorization)

        body = await read_json_object(request)
        entry = await DiaryService(store).create_entry(
            user_id, body.get("content"), body.get("mood"), access_token=access_token
        )
        return {"success": True, "data": entry.model_dump(mode="json")}

    except PersistenceError:
        return JSONResponse({"error": "Failed to create diary entry"}, status_code=500)
    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"创建日记时出现未知错误: {e}")
        return internal_error()


@router.delete("/{entry_id}")
async def delete_diary(
    entry_id: str,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_public_store),
):
    """删除自己的日记"""
    try:
        user_id, access_token = await require_session(settings, store, authorization)
        await DiaryService(store).delete_entry(user_id, entry_id, access_token)
        return {"success": True}

    except PersistenceError:
        return JSONResponse({"error": "Failed to delete diary entry"}, status_code=500)
    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"删除日记时出现未知错误: {e}")
        return internal_error()
