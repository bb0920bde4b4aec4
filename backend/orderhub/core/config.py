from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "订单中心"
    API_V1_STR: str = "/api/v1"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置
    DATABASE_URI: str = "sqlite+aiosqlite:///./orderhub.db"
    SQL_DEBUG: bool = False

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    # 批量操作
    BATCH_MAX_ORDERS: int = Field(default=100, ge=1, description="单次批量操作允许的最大订单数")
    BATCH_CONCURRENCY: int = Field(default=1, ge=1, description="批量处理并发数，1 表示顺序处理")

    # 通知重试
    NOTIFICATION_RETRY_ENABLED: bool = True
    NOTIFICATION_RETRY_INTERVAL_SECONDS: int = 60
    NOTIFICATION_MAX_ATTEMPTS: int = 3

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"加载配置: API_V1_STR={settings.API_V1_STR}, DATABASE_URI={settings.DATABASE_URI}")
