from abc import ABC, abstractmethod
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

from plant_monitor.core.config import Settings
from plant_monitor.core.exceptions import NotificationError
from plant_monitor.services.alert_policy import TRIGGER_BOTH, TRIGGER_LIGHT, TRIGGER_SOIL, Alert

# Delivery outcomes go to their own channel, separate from request logging
logger = logging.getLogger("plant_monitor.notifications")

_SUBJECTS = {
    TRIGGER_SOIL: "Alert: Low Soil Moisture Detected!",
    TRIGGER_LIGHT: "Alert: Poor Light Condition Detected!",
    TRIGGER_BOTH: "Alert: Your Plant Needs Water and Light!",
}


@dataclass(frozen=True)
class AlertMessage:
    recipient: str
    subject: str
    body: str


def compose_alert_message(alert: Alert, recipient: str) -> AlertMessage:
    lines = [f"Plant monitoring alert from device {alert.device_id}", ""]
    if alert.trigger in (TRIGGER_SOIL, TRIGGER_BOTH):
        lines += [
            "Your plant needs water!",
            f"Soil Moisture Value: {alert.soil_value}",
            f"Condition: {alert.soil_condition}",
            "",
        ]
    if alert.trigger != TRIGGER_SOIL:
        lines += [
            "Your plant needs more light!",
            f"Light Value: {alert.ldr_value}",
            f"Condition: {alert.light_condition}",
            "",
        ]
    lines.append(f"Local time: {alert.local_time:%Y-%m-%d %H:%M}")
    return AlertMessage(recipient=recipient, subject=_SUBJECTS[alert.trigger], body="\n".join(lines))


class Notifier(ABC):
    @abstractmethod
    def send(self, message: AlertMessage) -> None:
        """Deliver one message, raising ``NotificationError`` on failure."""


class LogNotifier(Notifier):
    """Used when no SMTP credentials are configured."""

    def send(self, message: AlertMessage) -> None:
        logger.warning(f"Email not configured, alert logged only: {message.subject}")


class EmailNotifier(Notifier):
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        use_tls: bool = True,
        timeout: float = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: AlertMessage) -> None:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = self.sender
        msg["To"] = message.recipient
        msg.set_content(message.body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {message.recipient} failed: {exc}") from exc


def build_notifier(settings: Settings) -> Notifier:
    if not settings.email_enabled:
        return LogNotifier()
    return EmailNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        sender=settings.alert_sender,
        use_tls=settings.smtp_use_tls,
        timeout=settings.notification_timeout_seconds,
    )


def dispatch_alert(notifier: Notifier, message: AlertMessage) -> bool:
    """Background-task entry point. Never raises."""
    try:
        notifier.send(message)
    except NotificationError as exc:
        logger.error(f"Alert delivery failed: {exc}")
        return False
    except Exception:
        logger.exception("Unexpected error while delivering alert")
        return False
    logger.info(f"Alert '{message.subject}' sent to {message.recipient}")
    return True
