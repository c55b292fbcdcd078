from pydantic_settings import BaseSettings
from typing import List, Optional
import os


class Settings(BaseSettings):
    env: str = "dev"
    secret_key: str = "change_me_super_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12
    refresh_token_expire_minutes: int = 60 * 24 * 30
    database_url: str = "postgresql+psycopg2://caixa:caixa@db:5432/caixa"
    backend_cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"

    bcrypt_rounds: int = 12

    # Login brute-force guard
    login_rate_limit_max_attempts: int = 5
    login_rate_limit_window_seconds: int = 60

    # Payment gateway (Mercado Pago compatible)
    gateway_base_url: str = "https://api.mercadopago.com"
    gateway_access_token: Optional[str] = None
    gateway_webhook_secret: Optional[str] = None
    gateway_timeout_seconds: float = 15.0
    boleto_expiration_days: int = 3
    subscription_period_days: int = 30

    # Railway specific - use PORT env var if available
    port: int = int(os.getenv("PORT", "8000"))

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        origins = self.backend_cors_origins
        return [origin.strip() for origin in origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
