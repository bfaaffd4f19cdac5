"""
应用配置模块

使用 Pydantic Settings 管理所有环境变量和配置。
配置从项目根目录的 .env 文件读取，支持类型验证和默认值。

关键概念：
- BaseSettings: Pydantic 的配置基类，自动从环境变量读取
- computed_field: 计算字段，根据其他字段动态生成
- model_validator: 模型验证器，用于自定义验证逻辑
"""
import secrets  # 用于生成安全的随机字符串
import warnings  # 用于发出警告
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    HttpUrl,
    PostgresDsn,
    computed_field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    """
    解析 CORS 配置值

    支持两种格式：
    1. 逗号分隔的字符串："http://localhost:3000,http://localhost:3001"
    2. 列表格式：["http://localhost:3000", "http://localhost:3001"]

    Raises:
        ValueError: 当输入格式不正确时
    """
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    """
    应用配置类

    配置来源优先级：
    1. 环境变量（最高优先级）
    2. .env 文件
    3. 代码中的默认值（最低优先级）
    """
    model_config = SettingsConfigDict(
        # 使用项目根目录的 .env 文件（backend/ 目录的上一级）
        env_file="../.env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_PREFIX: str = "/api"  # 所有路由的前缀，webhook 地址为 /api/webhooks/phonepe
    SECRET_KEY: str = secrets.token_urlsafe(32)  # JWT 验签密钥（与认证服务共享）
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        """CORS 允许的源（去除尾部斜杠）"""
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    PROJECT_NAME: str = "Storefront"
    SENTRY_DSN: HttpUrl | None = None

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # 店铺前端地址（支付跳转回来的页面）
    APP_URL: str = "http://localhost:3000"
    CURRENCY: str = "INR"

    # 首个管理员账号（initial_data 时创建）
    FIRST_ADMIN_EMAIL: str | None = None
    FIRST_ADMIN_NAME: str = "Admin"

    # 外部 HTTP 调用超时（秒）
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # PhonePe 支付网关配置
    PHONEPE_MOCK: bool = True  # 是否使用模拟模式（本地开发时）
    PHONEPE_API_VERSION: Literal["v1", "v2"] = "v1"
    PHONEPE_BASE_URL: str = "https://api-preprod.phonepe.com/apis/pg-sandbox"
    PHONEPE_MERCHANT_ID: str | None = None
    PHONEPE_SALT_KEY: str | None = None  # X-VERIFY 签名密钥
    PHONEPE_SALT_INDEX: str = "1"
    PHONEPE_CLIENT_ID: str | None = None  # v2 OAuth
    PHONEPE_CLIENT_SECRET: str | None = None
    PHONEPE_CLIENT_VERSION: str = "1"
    PHONEPE_WEBHOOK_USERNAME: str | None = None  # v2 webhook Authorization
    PHONEPE_WEBHOOK_PASSWORD: str | None = None
    # 签名不匹配时是否直接拒绝（默认只记录日志）
    PHONEPE_ENFORCE_SIGNATURE: bool = False

    # Shiprocket 物流聚合平台配置
    SHIPROCKET_MOCK: bool = True
    SHIPROCKET_BASE_URL: str = "https://apiv2.shiprocket.in/v1/external"
    SHIPROCKET_EMAIL: str | None = None
    SHIPROCKET_PASSWORD: str | None = None
    SHIPROCKET_PICKUP_LOCATION: str = "Primary"
    # 默认包裹规格（公斤 / 厘米）
    SHIPPING_PACKAGE_WEIGHT_KG: float = 0.3
    SHIPPING_PACKAGE_LENGTH_CM: float = 15
    SHIPPING_PACKAGE_BREADTH_CM: float = 10
    SHIPPING_PACKAGE_HEIGHT_CM: float = 6

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        """
        检查敏感配置是否使用了默认值 "changethis"

        本地环境只警告，其他环境直接报错。
        """
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("PHONEPE_SALT_KEY", self.PHONEPE_SALT_KEY)
        self._check_default_secret("PHONEPE_WEBHOOK_PASSWORD", self.PHONEPE_WEBHOOK_PASSWORD)

        return self


# 全局配置实例，整个应用共享
settings = Settings()  # type: ignore
