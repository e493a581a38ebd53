"""
MCP 工具调用处理器
对外暴露 initialize、tools/list、tools/call 三个方法，目前只有一个工具：create_diary_entry
"""

from datetime import datetime
from typing import Any, Dict

from mindful_diary.models.diary import VALID_MOODS, DiaryEntry
from mindful_diary.services.diary_service import DiaryService
from mindful_diary.utils.errors import (
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PersistenceError,
    ProtocolError,
    ValidationError,
)
from .base_handler import BaseHandler

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "mindful-diary"
CREATE_DIARY_TOOL = "create_diary_entry"

TOOLS = [
    {
        "name": CREATE_DIARY_TOOL,
        "description": "Create a new diary entry. Use this to record thoughts, feelings, or experiences.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": "The diary entry content. Can be plain text or markdown.",
                },
                "mood": {
                    "type": "string",
                    "enum": VALID_MOODS,
                    "description": "Optional mood indicator for the entry",
                },
            },
            "required": ["content"],
        },
    }
]


def format_created_at(created_at: datetime) -> str:
    """格式化为本地时间，如 2024/1/15 18:30:00"""
    local = created_at.astimezone()
    return f"{local.year}/{local.month}/{local.day} {local:%H:%M:%S}"


def format_confirmation(entry: DiaryEntry) -> str:
    """生成创建成功的提示文本"""
    mood = entry.mood.value if entry.mood else "无"
    return (
        "日记创建成功！\n\n"
        f"ID: {entry.id}\n"
        f"创建时间: {format_created_at(entry.created_at)}\n"
        f"心情: {mood}"
    )


class McpHandler(BaseHandler):
    """MCP 工具调用处理器，每个请求绑定一个已认证的用户"""

    def __init__(self, diary_service: DiaryService, user_id: str,
                 server_version: str = "1.0.0"):
        """
        初始化处理器

        Args:
            diary_service: 日记服务
            user_id: 已通过令牌认证的用户ID
            server_version: 对外报告的服务版本
        """
        super().__init__()
        self.diary_service = diary_service
        self.user_id = user_id
        self.server_version = server_version

    async def dispatch(self, method: Any, params: Any) -> Dict[str, Any]:
        if method == "initialize":
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "serverInfo": {"name": SERVER_NAME, "version": self.server_version},
                "capabilities": {"tools": {}},
            }

        if method == "tools/list":
            return {"tools": TOOLS}

        if method == "tools/call":
            return await self.call_tool(params)

        raise ProtocolError(f"Method not found: {method}", METHOD_NOT_FOUND)

    async def call_tool(self, params: Any) -> Dict[str, Any]:
        """
        调用工具

        Args:
            params: {"name": 工具名, "arguments": 工具参数}

        Returns:
            MCP 工具调用结果
        """
        if not isinstance(params, dict):
            raise ProtocolError("Invalid params", INVALID_PARAMS)

        name = params.get("name")
        if name != CREATE_DIARY_TOOL:
            raise ProtocolError(f"Unknown tool: {name}", METHOD_NOT_FOUND)

        arguments = params.get("arguments")
        if not isinstance(arguments, dict):
            arguments = {}
        return await self.create_diary_entry(arguments.get("content"), arguments.get("mood"))

    async def create_diary_entry(self, content: Any, mood: Any) -> Dict[str, Any]:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Invalid params: content is required and must be a string")

        try:
            entry = await self.diary_service.create_entry(self.user_id, content, mood)
        except ValidationError as e:
            raise ValidationError(f"Invalid params: {e.message}") from e
        except PersistenceError as e:
            raise PersistenceError(f"Error creating diary entry: {e.message}") from e

        return {"content": [{"type": "text", "text": format_confirmation(entry)}]}
