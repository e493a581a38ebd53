"""
Mindful Diary 应用主入口
启动FastAPI应用，提供日记、API 令牌和 MCP 接口
"""

from typing import Optional

from fastapi import FastAPI

from mindful_diary.api.diary import router as diary_router
from mindful_diary.api.mcp import router as mcp_router
from mindful_diary.api.tokens import router as tokens_router
from mindful_diary.utils.config import Settings, get_settings
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.logger import logger


def create_app(settings: Optional[Settings] = None,
               admin_store: Optional[SupabaseStore] = None,
               public_store: Optional[SupabaseStore] = None) -> FastAPI:
    """
    创建FastAPI应用

    配置和数据访问实例在这里构建一次，挂到 app.state 上供各接口使用

    Args:
        settings: 应用配置，默认从环境变量读取
        admin_store: 使用 service role key 的数据访问实例
        public_store: 使用 anon key 的数据访问实例

    Returns:
        FastAPI应用
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug
    )

    app.state.settings = settings
    app.state.admin_store = admin_store or SupabaseStore(
        settings.supabase_url, settings.supabase_service_role_key
    )
    app.state.public_store = public_store or SupabaseStore(
        settings.supabase_url, settings.supabase_anon_key
    )

    app.include_router(diary_router)
    app.include_router(mcp_router)
    app.include_router(tokens_router)

    @app.on_event("startup")
    async def startup_event():
        """应用启动时执行"""
        logger.info(f"{settings.app_name} v{settings.app_version} 启动成功")
        if not settings.supabase_url:
            logger.warning("SUPABASE_URL 未配置")
        if not settings.supabase_service_role_key:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY 未配置，令牌写入接口将返回 500")
        if not settings.supabase_anon_key:
            logger.warning("SUPABASE_ANON_KEY 未配置，会话接口将返回 500")

    @app.on_event("shutdown")
    async def shutdown_event():
        """应用关闭时执行"""
        logger.info(f"{settings.app_name} 已关闭")

    @app.get("/")
    async def root():
        """根路径，返回应用信息"""
        return {
            "app_name": settings.app_name,
            "version": settings.app_version,
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """健康检查接口"""
        return {"status": "healthy", "code": 0}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logger.info(f"启动服务器: {settings.host}:{settings.port}")
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
