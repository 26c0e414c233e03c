import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class Settings:
    environment: str = os.getenv("ENVIRONMENT", "development")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))
    cors_origins_raw: str = os.getenv("CORS_ORIGINS", "http://localhost:8501")
    storage_backend: str = os.getenv("STORAGE_BACKEND", "sql")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./plant_monitor.db")
    max_readings: int = int(os.getenv("MAX_READINGS", "10000"))
    reading_retention_hours: int = int(os.getenv("READING_RETENTION_HOURS", "0"))
    presence_freshness_seconds: int = int(os.getenv("PRESENCE_FRESHNESS_SECONDS", "180"))
    alert_cooldown_minutes: float = float(os.getenv("ALERT_COOLDOWN_MINUTES", "30"))
    night_start_hour: int = int(os.getenv("NIGHT_START_HOUR", "19"))
    night_end_hour: int = int(os.getenv("NIGHT_END_HOUR", "6"))
    alert_utc_offset_minutes: int = int(os.getenv("ALERT_UTC_OFFSET_MINUTES", "345"))
    smtp_host: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: str = os.getenv("SMTP_USERNAME", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    smtp_use_tls: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    alert_sender: str = os.getenv("ALERT_SENDER", "")
    alert_recipient: str = os.getenv("ALERT_RECIPIENT", "")
    notification_timeout_seconds: float = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.cors_origins_raw.split(",") if item.strip()]

    @property
    def alert_cooldown(self) -> timedelta:
        return timedelta(minutes=self.alert_cooldown_minutes)

    @property
    def presence_freshness(self) -> timedelta:
        return timedelta(seconds=self.presence_freshness_seconds)

    @property
    def reading_retention(self) -> timedelta | None:
        if self.reading_retention_hours <= 0:
            return None
        return timedelta(hours=self.reading_retention_hours)

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_username and self.smtp_password and self.alert_recipient)


settings = Settings()
