"""
日记数据模型
定义日记相关的数据结构和心情枚举
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Mood(str, Enum):
    """心情标签"""

    HAPPY = "happy"
    CALM = "calm"
    SAD = "sad"
    EXCITED = "excited"
    THOUGHTFUL = "thoughtful"
    GRATEFUL = "grateful"


VALID_MOODS = [mood.value for mood in Mood]


class DiaryEntry(BaseModel):
    """日记模型（diary_entries 表中的一行）"""

    id: str
    user_id: str
    content: str
    mood: Optional[Mood] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DiaryCreate(BaseModel):
    """创建日记请求模型（已校验、已去除首尾空白）"""
    user_id: str
    content: str
    mood: Optional[Mood] = None

    def to_row(self) -> dict:
        return {
            "user_id": self.user_id,
            "content": self.content,
            "mood": self.mood.value if self.mood else None,
        }
