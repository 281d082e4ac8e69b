from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "samiwater-service"

    AUTH_JWT_SECRET: str = "change_me_auth"
    AUTH_JWT_TTL_HOURS: int = 24
    ADMIN_PHONES: str = "09384129843"
    ADMIN_PIN: str = ""
    CUSTOMER_OTP_LOGIN_ENABLED: bool = True

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"

    LOCAL_TIMEZONE: str = "Asia/Tehran"
    DEFAULT_CITY: str = "Isfahan"

    SMS_PROVIDER: str = "dummy"  # dummy | farazsms
    FARAZSMS_BASE_URL: str = "https://api.farazsms.com"
    FARAZSMS_API_KEY: str = ""
    FARAZSMS_SENDER: str = ""
    SMS_TIMEOUT_SECONDS: float = 10.0
    SMS_TEST_DEFAULT_TEXT: str = "SamiWater SMS test"
    OTP_SMS_TEMPLATE: str = "SamiWater login code: {code}\nValid for {minutes} minutes."

    OTP_TTL_SECONDS: int = 120
    OTP_MAX_ATTEMPTS: int = 5
    OTP_RATE_LIMIT_WINDOW_SECONDS: int = 300
    OTP_SEND_RATE_LIMIT: int = 5
    OTP_VERIFY_RATE_LIMIT: int = 20

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def admin_phones_list(self) -> List[str]:
        return [p.strip() for p in self.ADMIN_PHONES.split(",") if p.strip()]

settings = Settings()
