"""
日记服务
管理日记的校验、保存、查询和删除
"""

from typing import Any, List, Optional

from mindful_diary.models.diary import VALID_MOODS, DiaryCreate, DiaryEntry, Mood
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.errors import PersistenceError, ValidationError
from mindful_diary.utils.logger import logger

TABLE = "diary_entries"


def parse_mood(mood: Any) -> Optional[Mood]:
    """
    解析心情标签

    Args:
        mood: 原始输入，None 或空字符串表示未设置

    Returns:
        心情枚举，未设置时返回None

    Raises:
        ValidationError: 不在六种心情之内
    """
    if mood is None or mood == "":
        return None
    if not isinstance(mood, str) or mood not in VALID_MOODS:
        raise ValidationError(f"Invalid mood. Must be one of: {', '.join(VALID_MOODS)}")
    return Mood(mood)


class DiaryService:
    """日记服务"""

    def __init__(self, store: SupabaseStore):
        """
        初始化日记服务

        Args:
            store: 数据访问实例
        """
        self.store = store

    @staticmethod
    def validate_entry(user_id: str, content: Any, mood: Any = None) -> DiaryCreate:
        """
        校验并转换创建日记的输入

        Args:
            user_id: 用户ID
            content: 日记内容
            mood: 心情

        Returns:
            已校验的创建请求

        Raises:
            ValidationError: 内容缺失、不是字符串、为空，或心情不合法
        """
        if not isinstance(content, str) or not content:
            raise ValidationError("Content is required and must be a string")

        content = content.strip()
        if not content:
            raise ValidationError("Content cannot be empty")

        return DiaryCreate(user_id=user_id, content=content, mood=parse_mood(mood))

    async def create_entry(self, user_id: str, content: Any, mood: Any = None,
                           access_token: Optional[str] = None) -> DiaryEntry:
        """
        创建日记

        Args:
            user_id: 用户ID
            content: 日记内容
            mood: 心情
            access_token: 用户 access token，走行级权限时传入

        Returns:
            保存后的日记

        Raises:
            ValidationError: 输入不合法，此时不会写入任何数据
            PersistenceError: 写入失败
        """
        request = self.validate_entry(user_id, content, mood)

        try:
            row = await self.store.insert(TABLE, request.to_row(), access_token=access_token)
        except PersistenceError as e:
            logger.error(f"创建日记失败: {e.message}")
            raise

        entry = DiaryEntry.model_validate(row)
        logger.info(f"日记创建成功: {entry.id}")
        return entry

    async def list_entries(self, user_id: str, access_token: Optional[str] = None,
                           query: Optional[str] = None,
                           mood: Any = None) -> List[DiaryEntry]:
        """
        获取用户的日记列表（按创建时间倒序）

        Args:
            user_id: 用户ID
            access_token: 用户 access token
            query: 内容关键字，不区分大小写
            mood: 心情过滤

        Returns:
            日记列表
        """
        mood_filter = parse_mood(mood)

        rows = await self.store.select(
            TABLE,
            filters={"user_id": user_id},
            order="created_at.desc",
            access_token=access_token,
        )
        entries = [DiaryEntry.model_validate(row) for row in rows]

        if query:
            needle = query.strip().lower()
            entries = [e for e in entries if needle in e.content.lower()]
        if mood_filter is not None:
            entries = [e for e in entries if e.mood == mood_filter]

        return entries

    async def delete_entry(self, user_id: str, entry_id: str,
                           access_token: Optional[str] = None) -> int:
        """
        删除日记，只能删除自己的日记

        Returns:
            删除的日记数量
        """
        deleted = await self.store.delete(
            TABLE,
            filters={"id": entry_id, "user_id": user_id},
            access_token=access_token,
        )
        if deleted:
            logger.info(f"日记删除成功: {entry_id}")
        else:
            logger.warning(f"日记不存在或不属于当前用户: {entry_id}")
        return deleted
