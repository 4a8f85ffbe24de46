"""Transactional email via Resend."""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from html import escape

import resend
import structlog

from app.config import settings

logger = structlog.get_logger(__name__)

CONFIRMATION_SUBJECT = "Confirmação de Agendamento - AlertMed"

WEEKDAYS = (
    "segunda-feira",
    "terça-feira",
    "quarta-feira",
    "quinta-feira",
    "sexta-feira",
    "sábado",
    "domingo",
)
MONTHS = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)

APPOINTMENT_TYPE_LABELS = {
    "primeira-consulta": "Primeira Consulta",
    "retorno": "Retorno",
    "urgencia": "Urgência",
    "check-up": "Check-up",
}

INSTRUCTIONS = (
    "Chegue com 15 minutos de antecedência",
    "Traga um documento de identidade com foto",
    "Traga seu cartão do convênio (se aplicável)",
    "Traga exames anteriores relacionados à consulta",
    "Em caso de cancelamento, avise com pelo menos 24h de antecedência",
)


def format_long_date(value: datetime) -> str:
    """``sábado, 1 de junho de 2024``"""
    return f"{WEEKDAYS[value.weekday()]}, {value.day} de {MONTHS[value.month - 1]} de {value.year}"


def appointment_type_label(appointment_type: str | None) -> str:
    if not appointment_type:
        return "Consulta"
    return APPOINTMENT_TYPE_LABELS.get(appointment_type, appointment_type)


@dataclass(frozen=True)
class AppointmentConfirmation:
    """Data rendered into the self-service booking confirmation."""

    patient_name: str
    patient_email: str
    scheduled_start: datetime
    specialty: str
    appointment_type: str | None = None
    doctor_name: str | None = None
    location: str | None = None
    notes: str | None = None

    def detail_rows(self) -> list[tuple[str, str]]:
        rows = [
            ("Data", format_long_date(self.scheduled_start)),
            ("Horário", self.scheduled_start.strftime("%H:%M")),
            ("Especialidade", self.specialty),
        ]
        if self.doctor_name:
            rows.append(("Médico", self.doctor_name))
        rows.append(("Tipo de Consulta", appointment_type_label(self.appointment_type)))
        if self.location:
            rows.append(("Local", self.location))
        if self.notes:
            rows.append(("Observações", self.notes))
        return rows


def render_confirmation_html(data: AppointmentConfirmation) -> str:
    rows = "\n".join(
        f'<tr><td style="font-weight:bold;color:#64748b;padding:8px 0">{escape(label)}:</td>'
        f'<td style="color:#1e293b;padding:8px 0">{escape(value)}</td></tr>'
        for label, value in data.detail_rows()
    )
    instructions = "\n".join(f"<li>{escape(item)}</li>" for item in INSTRUCTIONS)
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Confirmação de Agendamento</title></head>
<body style="font-family:Arial,sans-serif;line-height:1.6;color:#333">
  <div style="max-width:600px;margin:0 auto;padding:20px">
    <div style="background:#3b82f6;color:white;padding:20px;text-align:center;border-radius:8px 8px 0 0">
      <div style="font-size:24px;font-weight:bold">AlertMed</div>
      <h1>Consulta Agendada com Sucesso!</h1>
    </div>
    <div style="background:#f8fafc;padding:30px;border-radius:0 0 8px 8px">
      <p>Olá <strong>{escape(data.patient_name)}</strong>,</p>
      <p>Sua consulta foi agendada com sucesso! Confira os detalhes abaixo:</p>
      <table style="background:white;padding:20px;border-radius:8px;width:100%">
{rows}
      </table>
      <h3>Instruções Importantes</h3>
      <ul>
{instructions}
      </ul>
      <p>Se precisar reagendar ou cancelar, acesse sua conta no AlertMed ou entre em contato conosco.</p>
      <p>Atenciosamente,<br><strong>Equipe AlertMed</strong></p>
    </div>
    <p style="text-align:center;color:#64748b;font-size:14px">
      Este é um email automático, não responda a esta mensagem.
    </p>
  </div>
</body>
</html>"""


def render_confirmation_text(data: AppointmentConfirmation) -> str:
    lines = [
        "CONSULTA AGENDADA COM SUCESSO - AlertMed",
        "",
        f"Olá {data.patient_name},",
        "",
        "Sua consulta foi agendada com sucesso! Confira os detalhes abaixo:",
        "",
        "DETALHES DA CONSULTA:",
    ]
    lines.extend(f"- {label}: {value}" for label, value in data.detail_rows())
    lines.extend(["", "INSTRUÇÕES IMPORTANTES:"])
    lines.extend(f"- {item}" for item in INSTRUCTIONS)
    lines.extend(
        [
            "",
            "Se precisar reagendar ou cancelar, acesse sua conta no AlertMed "
            "ou entre em contato conosco.",
            "",
            "Atenciosamente,",
            "Equipe AlertMed",
        ]
    )
    return "\n".join(lines)


class EmailService:
    """Sends transactional email through the Resend API."""

    def __init__(
        self,
        api_key: str | None = None,
        from_address: str | None = None,
        enabled: bool | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.from_address = from_address or settings.email_from_address
        self.enabled = settings.email_enabled if enabled is None else enabled

    async def send_appointment_confirmation(self, data: AppointmentConfirmation) -> bool:
        """
        Send the booking confirmation to the patient.

        Never raises: a disabled or misconfigured sender and any API error
        are logged and reported as False.

        Args:
            data: Appointment confirmation data

        Returns:
            True if Resend accepted the message
        """
        if not self.enabled:
            logger.info("email_disabled", email_type="appointment_confirmation")
            return False

        if not self.api_key:
            logger.warning("email_not_configured", reason="missing_resend_api_key")
            return False

        params = {
            "from": self.from_address,
            "to": [data.patient_email],
            "subject": CONFIRMATION_SUBJECT,
            "html": render_confirmation_html(data),
            "text": render_confirmation_text(data),
        }

        try:
            resend.api_key = self.api_key
            # The Resend SDK is synchronous
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            logger.error(
                "email_send_failed",
                email_type="appointment_confirmation",
                recipient=data.patient_email,
                error=str(e),
            )
            return False

        logger.info(
            "email_sent",
            email_type="appointment_confirmation",
            recipient=data.patient_email,
            message_id=response.get("id") if isinstance(response, dict) else None,
        )
        return True
