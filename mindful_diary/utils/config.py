"""
配置管理模块
管理应用的所有配置信息，包括 Supabase 配置、令牌配置、服务器配置、日志配置等
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Supabase 配置
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_service_role_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_SERVICE_ROLE_KEY"),
    )
    supabase_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
    )

    # API 令牌配置
    token_prefix: str = "mdt_"
    token_bytes: int = 32

    # 服务器配置
    host: str = "0.0.0.0"
    port: int = 8000

    # 日志配置
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    # 应用配置
    app_name: str = "Mindful Diary"
    app_version: str = "1.0.0"
    debug: bool = False

    def require_admin(self) -> None:
        """
        检查令牌写入路径所需的特权配置

        Raises:
            ConfigurationError: 缺少数据库地址或 service role key
        """
        if not self.supabase_service_role_key:
            raise ConfigurationError(
                "Server configuration error: SUPABASE_SERVICE_ROLE_KEY not set"
            )
        if not self.supabase_url:
            raise ConfigurationError("Server configuration error: SUPABASE_URL not set")

    def require_public(self) -> None:
        """
        检查会话认证路径所需的公开配置

        Raises:
            ConfigurationError: 缺少数据库地址或 anon key
        """
        if not self.supabase_anon_key:
            raise ConfigurationError("Server configuration error: SUPABASE_ANON_KEY not set")
        if not self.supabase_url:
            raise ConfigurationError("Server configuration error: SUPABASE_URL not set")


@lru_cache()
def get_settings() -> Settings:
    """
    获取配置实例（单例模式）
    使用lru_cache确保只创建一个配置实例
    """
    return Settings()
