from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENVIRONMENT: str = "production"
    ENABLE_DEV_TOKENS: bool = False

    SECRET_KEY: str = "dev-secret-change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    REFRESH_TOKEN_EXPIRE_MINUTES: int = 43200  # 30 days

    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD_HASH: str = ""
    ADMIN_PHONES: str = ""  # comma separated
    VIP_PROFILE_PREFIX: str = "NCTV"

    NOTION_API_KEY: str = ""
    NOTION_CUSTOMER_DATABASE_ID: str = ""
    NOTION_VIP_DATABASE_ID: str = ""
    NOTION_VERSION: str = "2022-06-28"
    NOTION_TIMEOUT: int = 15

    GOOGLE_SERVICE_ACCOUNT_EMAIL: str = ""
    GOOGLE_PRIVATE_KEY: str = ""
    GOOGLE_DRIVE_ROOT_FOLDER_ID: str = ""
    GOOGLE_DRIVE_UPLOADS_FOLDER_ID: str = ""
    DRIVE_TIMEOUT: int = 60

    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_TIMEOUT: int = 90

    # Rates in IQD
    PRICE_FULL_SERVICE_PER_PAGE: int = 15000
    PRICE_SELF_TRANSLATION_PER_PAGE: int = 5000
    PRICE_AI_TRANSLATION_PER_PAGE: int = 10000
    PRICE_PER_WORD: int = 66
    PRICE_CERTIFICATION_PER_DOC: int = 5000
    PRICE_ADDITIONAL_COPY: int = 2500
    PRICE_DELIVERY: int = 5000
    PRICE_INSURANCE_31_DAYS: int = 5000
    PRICE_INSURANCE_45_DAYS: int = 7500
    PRICE_INSURANCE_90_DAYS: int = 12500
    PRICE_INSURANCE_1_YEAR: int = 25000
    PRICE_RUSH_MULTIPLIER: str = "1.5"
    PRICING_STRICT: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"

    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50MB
    MAX_UPLOAD_FILES: int = 10

    RATE_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 600  # 10 minutes

    IDEMPOTENCY_TTL: int = 300  # 5 minutes
    PRICE_CACHE_TTL: int = 60   # 60 seconds

    WEBHOOK_URL: str = ""
    WEBHOOK_TIMEOUT: int = 10
    WEBHOOK_RETRIES: int = 3

    ZAINCASH_WEBHOOK_SECRET: str = ""
    QICARD_WEBHOOK_SECRET: str = ""
    NOTION_WEBHOOK_SECRET: str = ""

    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_BACKEND: str = "redis://localhost:6379/2"

    API_TITLE: str = "NCT Translation Portal"
    API_DESCRIPTION: str = "Customer portal backend for orders, quotes and documents"
    API_VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def admin_phones(self) -> set:
        return {p.strip() for p in self.ADMIN_PHONES.split(",") if p.strip()}

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def dev_tokens_enabled(self) -> bool:
        return self.ENABLE_DEV_TOKENS and not self.is_production

settings = Settings()
