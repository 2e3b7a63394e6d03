"""
Configuración del gateway de pagos.

Cada adapter recibe su propia configuración explícita (StripeConfig,
PaygentConfig). Settings es opcional: la aplicación que embebe el gateway
puede usarla para cargar variables de entorno o un archivo .env.
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class StripeConfig(BaseModel):
    """Credenciales y opciones del adapter de Stripe."""

    api_key: SecretStr
    # Stripe autoriza y captura en una sola llamada salvo capture=False
    capture_on_authorize: bool = True
    timeout: float = Field(30.0, gt=0)


class PaygentConfig(BaseModel):
    """Credenciales y material TLS del adapter de Paygent."""

    merchant_id: str
    connect_id: str
    connect_password: SecretStr
    telegram_version: str = "1.0"

    # Certificado de cliente (PEM con clave cifrada o PKCS#12 .p12/.pfx) y CA del proveedor
    client_file_path: str = "paygent.pem"
    cert_password: SecretStr = SecretStr("changeit")
    ca_file_path: str = "curl-ca-bundle.crt"

    production_mode: bool = False
    connect_timeout: float = Field(10.0, gt=0)
    read_timeout: float = Field(60.0, gt=0)


class Settings(BaseSettings):
    """Configuración cargada del entorno para aplicaciones que la necesiten."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # Proveedor activo: "stripe", "paygent" o "mock"
    PAYMENT_PROVIDER: Literal["stripe", "paygent", "mock"] = "mock"
    REQUEST_TIMEOUT_SECONDS: float | None = None

    # Stripe
    STRIPE_SECRET_KEY: SecretStr = SecretStr("")
    STRIPE_CAPTURE_ON_AUTHORIZE: bool = True

    # Paygent
    PAYGENT_MERCHANT_ID: str = ""
    PAYGENT_CONNECT_ID: str = ""
    PAYGENT_CONNECT_PASSWORD: SecretStr = SecretStr("")
    PAYGENT_TELEGRAM_VERSION: str = "1.0"
    PAYGENT_CLIENT_FILE_PATH: str = "paygent.pem"
    PAYGENT_CERT_PASSWORD: SecretStr = SecretStr("changeit")
    PAYGENT_CA_FILE_PATH: str = "curl-ca-bundle.crt"
    PAYGENT_PRODUCTION_MODE: bool = False

    def stripe_config(self) -> StripeConfig:
        return StripeConfig(
            api_key=self.STRIPE_SECRET_KEY,
            capture_on_authorize=self.STRIPE_CAPTURE_ON_AUTHORIZE,
        )

    def paygent_config(self) -> PaygentConfig:
        return PaygentConfig(
            merchant_id=self.PAYGENT_MERCHANT_ID,
            connect_id=self.PAYGENT_CONNECT_ID,
            connect_password=self.PAYGENT_CONNECT_PASSWORD,
            telegram_version=self.PAYGENT_TELEGRAM_VERSION,
            client_file_path=self.PAYGENT_CLIENT_FILE_PATH,
            cert_password=self.PAYGENT_CERT_PASSWORD,
            ca_file_path=self.PAYGENT_CA_FILE_PATH,
            production_mode=self.PAYGENT_PRODUCTION_MODE,
        )


@lru_cache()
def get_settings() -> Settings:
    """Retorna instancia cacheada de settings."""
    return Settings()
