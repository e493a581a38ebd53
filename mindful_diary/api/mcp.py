"""
MCP 接口
POST /api/mcp 接收 JSON-RPC 2.0 请求，GET /api/mcp 返回服务描述
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from fastapi.responses import JSONResponse

from mindful_diary.handlers.base_handler import BaseHandler
from mindful_diary.handlers.mcp_handler import CREATE_DIARY_TOOL, McpHandler
from mindful_diary.services.diary_service import DiaryService
from mindful_diary.utils.config import Settings
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.errors import INTERNAL_ERROR, DiaryError
from mindful_diary.utils.logger import logger
from .deps import error_response, get_admin_store, get_app_settings, make_token_service

router = APIRouter(prefix="/api/mcp", tags=["mcp"])


@router.post("")
async def handle_mcp(
    request: Request,
    background_tasks: BackgroundTasks,
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    store: SupabaseStore = Depends(get_admin_store),
):
    """
    处理 JSON-RPC 请求

    配置错误和认证失败返回普通的 {"error": ...}，
    其余错误都放在 JSON-RPC 响应信封里。
    """
    try:
        settings.require_admin()

        token_service = make_token_service(settings, store)
        user_id = await token_service.verify_bearer(authorization, background_tasks)

        message = await request.json()
        handler = McpHandler(DiaryService(store), user_id, settings.app_version)
        return await handler.handle(message)

    except DiaryError as e:
        return error_response(e)
    except Exception as e:
        logger.exception(f"MCP 请求处理失败: {e}")
        return JSONResponse(
            BaseHandler.error_response(None, INTERNAL_ERROR, "Internal error"),
            status_code=500,
        )


@router.get("")
async def describe_mcp(settings: Settings = Depends(get_app_settings)) -> Dict[str, Any]:
    """返回 MCP 服务描述"""
    return {
        "name": f"{settings.app_name} MCP Server",
        "version": settings.app_version,
        "description": "MCP server for creating diary entries",
        "tools": [CREATE_DIARY_TOOL],
        "transport": "http",
        "endpoint": "/api/mcp",
    }
