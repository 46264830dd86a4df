"""
➡️ But : Centraliser tous les paramètres configurables (nom d’app, DB, secrets, stockage, email...)

Utilise pydantic-settings pour charger automatiquement les variables d’environnement (.env, variables système…).

Fournit un objet settings unique, que tu importes ailleurs :

from onair.core.config import settings
print(settings.STORAGE_BACKEND)


🔹 Avantages :

Un seul endroit pour choisir le backend de stockage (b2 | cloudinary | local) et le transport email.

Facilite le passage entre environnements (dev / prod / test).
"""

from datetime import timedelta
from typing import List, Optional

from pydantic_settings import BaseSettings
from onair.security.tokens import JWTSettings


class Settings(BaseSettings):
    # -----------------------------
    # App
    # -----------------------------
    APP_NAME: str = "OnAir-Back"
    ENV: str = "dev"  # dev | prod | test
    FRONTEND_URL: str = "http://localhost:8080"
    PUBLIC_BASE_URL: str = "http://localhost:8000"  # URL publique de l'API (liens signés du stockage local)
    CORS_ORIGINS: List[str] = ["http://localhost:8080"]

    # -----------------------------
    # DB
    # -----------------------------
    SQLITE_PATH: str = "onair.db"
    DATABASE_URL: Optional[str] = None

    # -----------------------------
    # JWT / Auth
    # -----------------------------
    JWT_SECRET_KEY: str = "CHANGE_ME"     # ⚠️ change en prod
    JWT_ISSUER: str = "onair-api"
    JWT_ALGORITHM: str = "HS256"

    ACCESS_TTL_MINUTES: int = 60
    REFRESH_TTL_DAYS: int = 7

    VERIFICATION_TOKEN_HOURS: int = 24
    RESET_TOKEN_MINUTES: int = 60

    # Cookies (refresh)
    AUTH_REFRESH_COOKIE_NAME: str = "refresh_token"
    AUTH_COOKIE_SAMESITE: str = "lax"
    AUTH_COOKIE_PATH: str = "/api/v1/auth"
    AUTH_COOKIE_SECURE: Optional[bool] = None
    AUTH_COOKIE_MAX_AGE: Optional[int] = None

    # -----------------------------
    # Stockage objet
    # -----------------------------
    STORAGE_BACKEND: str = "local"  # b2 | cloudinary | local
    PRESIGN_TTL_SECONDS: int = 3600
    STORAGE_RETRY_ATTEMPTS: int = 3

    # Backblaze B2 (API compatible S3)
    B2_ENDPOINT: str = "https://s3.eu-central-003.backblazeb2.com"
    B2_REGION: str = "eu-central-003"
    B2_KEY_ID: str = ""
    B2_APPLICATION_KEY: str = ""
    B2_BUCKET: str = "onair-media"
    B2_PUBLIC_BASE_URL: str = ""  # ex: https://f003.backblazeb2.com/file/onair-media

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "onair"

    # Disque local
    MEDIA_ROOT: str = "media"

    # Limites d'upload (chemin proxifié par l'API)
    MAX_AUDIO_MB: int = 500
    MAX_IMAGE_MB: int = 10
    UPLOAD_TIMEOUT_SECONDS: int = 600
    MIN_AUDIO_BITRATE_KBPS: int = 0  # 0 = pas de contrôle de débit

    # -----------------------------
    # Email
    # -----------------------------
    EMAIL_BACKEND: str = "smtp"  # smtp | sendgrid | console
    USE_SENDGRID: bool = False
    SENDGRID_API_KEY: Optional[str] = None
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAIL_FROM: str = "noreply@onair.local"
    EMAIL_FROM_NAME: str = "OnAir Radio"
    ADMIN_NOTIFICATION_EMAIL: Optional[str] = None

    # -----------------------------
    # Mixcloud
    # -----------------------------
    MIXCLOUD_ACCESS_TOKEN: Optional[str] = None
    MIXCLOUD_USERNAME: str = "OnAirOnSite"

    # -----------------------------
    # Logs
    # -----------------------------
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    # -----------------------------
    # Post-process values
    # -----------------------------
    def model_post_init(self, __context):
        if not self.DATABASE_URL:
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{self.SQLITE_PATH}")

        if self.AUTH_COOKIE_SECURE is None:
            object.__setattr__(self, "AUTH_COOKIE_SECURE", self.ENV == "prod")

        if self.AUTH_COOKIE_MAX_AGE is None:
            max_age = self.REFRESH_TTL_DAYS * 24 * 60 * 60
            object.__setattr__(self, "AUTH_COOKIE_MAX_AGE", max_age)

        # SendGrid prioritaire si une clé est fournie (même règle que l'ancien serveur Node)
        if self.USE_SENDGRID or self.SENDGRID_API_KEY:
            object.__setattr__(self, "EMAIL_BACKEND", "sendgrid")


# Instance globale importable partout
settings = Settings()

# Objet JWT prêt à l'emploi pour les services
jwt_settings = JWTSettings(
    secret=settings.JWT_SECRET_KEY,
    issuer=settings.JWT_ISSUER,
    algorithm=settings.JWT_ALGORITHM,
    access_ttl=timedelta(minutes=settings.ACCESS_TTL_MINUTES),
    refresh_ttl=timedelta(days=settings.REFRESH_TTL_DAYS),
)
