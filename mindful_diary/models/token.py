"""
API 令牌数据模型
定义令牌及其列表展示结构
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class APIToken(BaseModel):
    """API 令牌模型，仅在创建时完整返回给用户"""

    id: str
    user_id: str
    token: str
    name: str
    created_at: datetime
    last_used_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class APITokenSummary(BaseModel):
    """令牌列表项，不包含令牌密文"""
    id: str
    name: str
    created_at: datetime
    last_used_at: Optional[datetime] = None


# 列表查询只取这些列，令牌本身不会离开数据库
SUMMARY_COLUMNS = "id,name,created_at,last_used_at"
