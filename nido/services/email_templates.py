from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from nido.core.clock import as_utc
from nido.core.config import settings
from nido.models.notification import NotificationType


# Colombia has no DST
BOGOTA = timezone(timedelta(hours=-5), "COT")

_WEEKDAYS = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")
_MONTHS = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)

DEFAULT_DEADLINE_TEXT = "pronto"


def format_deadline(value: datetime | None) -> str:
    """'miércoles, 21 de octubre de 2026, 3:05 p. m.' in Bogotá time."""
    if value is None:
        return DEFAULT_DEADLINE_TEXT
    local = as_utc(value).astimezone(BOGOTA)
    hour = local.hour % 12 or 12
    meridiem = "a. m." if local.hour < 12 else "p. m."
    return (
        f"{_WEEKDAYS[local.weekday()]}, {local.day} de {_MONTHS[local.month - 1]} de {local.year}, "
        f"{hour}:{local.minute:02d} {meridiem}"
    )


def _greeting(name: str) -> str:
    return f"¡Hola {name}!" if name else "¡Hola!"


def _reminder_body(name: str, deadline: str) -> str:
    return "\n".join([
        _greeting(name),
        "",
        "Tu pago ha sido procesado exitosamente. Para que tu inmueble sea publicado, "
        "necesitamos verificar tu identidad.",
        "",
        f"Tienes hasta: {deadline}",
        "",
        "Sube tu documento de identidad ahora:",
        settings.verification_url,
        "",
        "Si no completas este paso, tu publicación será cancelada automáticamente.",
        "",
        "Saludos,",
        "El equipo de Nido",
    ])


def _urgent_body(name: str, deadline: str) -> str:
    return "\n".join([
        _greeting(name),
        "",
        "RECORDATORIO URGENTE",
        "",
        f"Tu plazo para verificar tu identidad vence mañana: {deadline}.",
        "",
        "Si no subes tu documento de identidad antes de esta fecha, tu publicación "
        "será RECHAZADA permanentemente.",
        "",
        "Verifica tu identidad ahora:",
        settings.verification_url,
        "",
        "No pierdas tu publicación.",
        "",
        "Saludos,",
        "El equipo de Nido",
    ])


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    body: Callable[[str, str], str]

    def render(self, *, name: str, deadline: str) -> str:
        return self.body(name, deadline)


TEMPLATES: dict[str, EmailTemplate] = {
    NotificationType.REMINDER_20MIN: EmailTemplate(
        subject="Completa tu verificación en Nido",
        body=_reminder_body,
    ),
    NotificationType.REMINDER_24HRS: EmailTemplate(
        subject="URGENTE: Solo quedan 24 horas para verificar tu identidad",
        body=_urgent_body,
    ),
}


def get_template(notification_type: str) -> EmailTemplate | None:
    return TEMPLATES.get(notification_type)
