"""
Email notification service for the donations backend.

Every helper is fire-and-forget: failures are logged and reported as False,
never raised into the caller's transaction.

In development (DEBUG, or no SMTP_HOST configured) emails are appended to a
log file instead of being sent.
"""
import asyncio
import logging
import mimetypes
import smtplib
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from email.message import EmailMessage
from pathlib import Path
from typing import Optional, Sequence, Union

from app.core.config import settings

logger = logging.getLogger(__name__)

Recipients = Union[str, Sequence[str]]


@dataclass
class Attachment:
    filename: str
    path: str
    content_type: str = "application/pdf"


@dataclass
class DonationLine:
    """One row of the monthly summary table."""
    fecha: datetime
    campana: Optional[str]
    monto: Decimal


def _html_page(title: str, content: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{title}</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
{content}
    <p style="color: #999; font-size: 12px; margin-top: 30px;">
        {settings.APP_NAME} &middot; <a href="{settings.SITE_URL}">{settings.SITE_URL}</a>
    </p>
</body>
</html>
"""


class EmailService:
    """
    Email service for sending donor notifications.

    Development mode writes every message to `EMAIL_LOG_PATH`; otherwise
    messages go through the configured SMTP server.
    """

    def __init__(self):
        self.from_email = settings.SMTP_SENDER
        self.from_name = settings.APP_NAME
        self.site_url = settings.SITE_URL
        self.debug = settings.DEBUG
        self.email_log_path = Path(settings.EMAIL_LOG_PATH)

    @property
    def uses_smtp(self) -> bool:
        return not self.debug and bool(settings.SMTP_HOST)

    @staticmethod
    def _recipients(to: Recipients) -> list[str]:
        if isinstance(to, str):
            return [to]
        return list(to)

    def _log_email(
        self,
        to: list[str],
        subject: str,
        body: str,
        html: Optional[str] = None,
        attachments: Optional[Sequence[Attachment]] = None
    ):
        """Log email to file for development/testing."""
        timestamp = datetime.now().isoformat()
        log_entry = f"""
================================================================================
EMAIL SENT: {timestamp}
================================================================================
TO: {', '.join(to)}
FROM: {self.from_name} <{self.from_email}>
SUBJECT: {subject}
--------------------------------------------------------------------------------
BODY:
{body}
--------------------------------------------------------------------------------
"""
        if attachments:
            names = ", ".join(a.filename for a in attachments)
            log_entry += f"ATTACHMENTS: {names}\n"
        if html:
            log_entry += f"""
HTML:
{html}
--------------------------------------------------------------------------------
"""

        with open(self.email_log_path, 'a', encoding='utf-8') as f:
            f.write(log_entry)

        logger.info("Email logged: to=%s, subject=%s", to, subject)

    def _build_message(
        self,
        to: list[str],
        subject: str,
        body: str,
        html: Optional[str],
        attachments: Sequence[Attachment]
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = ", ".join(to)
        message["Subject"] = subject
        message.set_content(body)
        if html:
            message.add_alternative(html, subtype="html")

        for attachment in attachments:
            content_type = attachment.content_type or mimetypes.guess_type(attachment.filename)[0]
            maintype, _, subtype = (content_type or "application/octet-stream").partition("/")
            data = Path(attachment.path).read_bytes()
            message.add_attachment(data, maintype=maintype, subtype=subtype, filename=attachment.filename)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        if settings.SMTP_TLS and settings.SMTP_PORT == 465:
            server = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
        else:
            server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
            if settings.SMTP_TLS:
                server.starttls()
        with server:
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
            server.send_message(message)

    async def send_email(
        self,
        to: Recipients,
        subject: str,
        body: str,
        html: Optional[str] = None,
        attachments: Optional[Sequence[Attachment]] = None
    ) -> bool:
        """
        Send an email.

        Args:
            to: Recipient address or list of addresses
            subject: Email subject line
            body: Plain text body
            html: Optional HTML body
            attachments: Optional files to attach

        Returns:
            True if the email was sent/logged successfully
        """
        recipients = self._recipients(to)
        if not recipients:
            logger.warning("Email '%s' skipped: no recipients", subject)
            return False

        try:
            if not self.uses_smtp:
                self._log_email(recipients, subject, body, html, attachments)
                return True

            message = self._build_message(recipients, subject, body, html, attachments or [])
            await asyncio.to_thread(self._deliver, message)
            logger.info("Email sent: to=%s, subject=%s", recipients, subject)
            return True

        except Exception as e:
            logger.error("Failed to send email to %s: %s", recipients, e)
            return False

    async def send_welcome_email(self, to: str, nombre: str) -> bool:
        subject = "¡Bienvenido a nuestro sistema de donaciones!"
        body = f"""¡Bienvenido, {nombre}!

Gracias por registrarte en nuestro sistema de donaciones. Ahora podrás realizar
donaciones de forma rápida y segura, configurar donaciones recurrentes,
consultar tu historial y descargar tus comprobantes y facturas.

¡Gracias por tu apoyo!
"""
        html = _html_page(subject, f"""
    <h1>¡Bienvenido, {nombre}!</h1>
    <p>Gracias por registrarte en nuestro sistema de donaciones.</p>
    <p>Ahora podrás:</p>
    <ul>
        <li>Realizar donaciones de forma rápida y segura</li>
        <li>Configurar donaciones recurrentes</li>
        <li>Acceder a tu historial de donaciones</li>
        <li>Descargar tus comprobantes y facturas</li>
    </ul>
    <p>¡Gracias por tu apoyo!</p>
""")
        return await self.send_email(to, subject, body, html)

    async def send_donation_confirmation(
        self,
        to: str,
        monto: Decimal,
        campana: Optional[str],
        impacto: Optional[str] = None
    ) -> bool:
        destino = f'la campaña "{campana}"' if campana else "nuestra causa"
        subject = "Confirmación de donación"
        body = f"""¡Gracias por tu donación!

Hemos recibido tu donación de ${monto} para {destino}.
{f'Impacto de tu donación: {impacto}' if impacto else ''}
"""
        html = _html_page(subject, f"""
    <h1>¡Gracias por tu donación!</h1>
    <p>Hemos recibido tu donación de <strong>${monto}</strong> para {destino}.</p>
    {f'<p><strong>Impacto de tu donación:</strong> {impacto}</p>' if impacto else ''}
    <p>¡Gracias por tu generosidad!</p>
""")
        return await self.send_email(to, subject, body, html)

    async def send_password_reset(self, to: str, nombre: str, token: str) -> bool:
        reset_url = f"{self.site_url}/resetear-password?token={token}"
        subject = "Restablecimiento de contraseña"
        body = f"""Hola, {nombre}

Has solicitado restablecer tu contraseña. Abre el siguiente enlace para crear
una nueva contraseña:

{reset_url}

Este enlace expirará en 1 hora. Si no solicitaste este cambio, ignora este email.
"""
        html = _html_page(subject, f"""
    <h1>Hola, {nombre}</h1>
    <p>Has solicitado restablecer tu contraseña.</p>
    <p><a href="{reset_url}">Restablecer mi contraseña</a></p>
    <p>Este enlace expirará en 1 hora.</p>
    <p>Si no solicitaste este cambio, puedes ignorar este email.</p>
""")
        return await self.send_email(to, subject, body, html)

    async def send_subscription_reminder(
        self,
        to: str,
        nombre: str,
        monto: Decimal,
        frecuencia: str,
        fecha_renovacion: date
    ) -> bool:
        fecha = fecha_renovacion.strftime("%d/%m/%Y")
        subject = "Recordatorio de próxima donación recurrente"
        body = f"""Hola, {nombre}:

Tu donación recurrente de ${monto} ({frecuencia.lower()}) se renovará el día {fecha}.
No necesitas hacer nada, el pago se procesará automáticamente.
"""
        html = _html_page(subject, f"""
    <h1>Recordatorio de donación recurrente</h1>
    <p>Hola, {nombre}:</p>
    <p>Tu donación recurrente de ${monto} ({frecuencia.lower()}) se renovará el día {fecha}.</p>
    <p>No necesitas hacer nada, el pago se procesará automáticamente.</p>
    <p>Si deseas modificar o cancelar tu donación recurrente, puedes hacerlo desde tu panel de usuario.</p>
""")
        return await self.send_email(to, subject, body, html)

    async def send_monthly_summary(
        self,
        to: str,
        nombre: str,
        donaciones: Sequence[DonationLine],
        total_donado: Decimal,
        impacto_total: str
    ) -> bool:
        subject = "Resumen mensual de tus donaciones"
        rows = "".join(
            f"<tr><td>{d.fecha.strftime('%d/%m/%Y')}</td>"
            f"<td>{d.campana or 'Donación general'}</td><td>${d.monto}</td></tr>"
            for d in donaciones
        )
        body_rows = "\n".join(
            f"- {d.fecha.strftime('%d/%m/%Y')} | {d.campana or 'Donación general'} | ${d.monto}"
            for d in donaciones
        )
        body = f"""Hola, {nombre}:

Resumen de tus donaciones del último mes:
{body_rows or '(sin donaciones)'}

Total donado este mes: ${total_donado}
Impacto acumulado: {impacto_total}
"""
        html = _html_page(subject, f"""
    <h1>Resumen mensual de donaciones</h1>
    <p>Hola, {nombre}:</p>
    <table border="1" cellpadding="5" cellspacing="0" style="border-collapse: collapse; width: 100%;">
        <tr><th>Fecha</th><th>Campaña</th><th>Monto</th></tr>
        {rows}
    </table>
    <p><strong>Total donado este mes:</strong> ${total_donado}</p>
    <p><strong>Impacto acumulado:</strong> {impacto_total}</p>
""")
        return await self.send_email(to, subject, body, html)

    async def send_campaign_update(
        self,
        to: Sequence[str],
        nombre_campana: str,
        actualizacion: str,
        porcentaje_completado: float
    ) -> bool:
        subject = f"Actualización de la campaña: {nombre_campana}"
        body = f"""Actualización de la campaña "{nombre_campana}":

{actualizacion}

Progreso actual: {porcentaje_completado}% completado
"""
        html = _html_page(subject, f"""
    <h1>Actualización de campaña</h1>
    <p>Queremos mantenerte informado sobre el progreso de la campaña "{nombre_campana}".</p>
    <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">
        <p>{actualizacion}</p>
    </div>
    <p><strong>Progreso actual:</strong> {porcentaje_completado}% completado</p>
""")
        return await self.send_email(to, subject, body, html)

    async def send_receipt(self, to: str, codigo: str, monto: Decimal, pdf_path: Optional[str]) -> bool:
        subject = f"Comprobante de donación {codigo}"
        body = f"""Gracias por tu donación de ${monto}.

Adjuntamos tu comprobante {codigo}. Puedes verificarlo en:
{self.site_url}/comprobantes/verificar?codigo={codigo}
"""
        html = _html_page(subject, f"""
    <h1>Comprobante de donación</h1>
    <p>Gracias por tu donación de <strong>${monto}</strong>.</p>
    <p>Adjuntamos tu comprobante <strong>{codigo}</strong>.</p>
""")
        attachments = [Attachment(f"Comprobante-{codigo}.pdf", pdf_path)] if pdf_path else None
        return await self.send_email(to, subject, body, html, attachments)

    async def send_invoice(self, to: str, numero_factura: str, monto: Decimal, pdf_path: Optional[str]) -> bool:
        subject = f"Factura {numero_factura}"
        body = f"""Estimado cliente:

Adjunto encontrarás la factura {numero_factura} por un monto de ${monto}.
Gracias por tu donación.
"""
        html = _html_page(subject, f"""
    <h1>Tu factura está lista</h1>
    <p>Estimado cliente:</p>
    <p>Adjunto encontrarás la factura {numero_factura} por un monto de ${monto}.</p>
    <p>Gracias por tu donación.</p>
""")
        attachments = [Attachment(f"Factura-{numero_factura}.pdf", pdf_path)] if pdf_path else None
        return await self.send_email(to, subject, body, html, attachments)

    async def send_reward_assigned(self, to: str, nombre: str, recompensa: str, codigo: str) -> bool:
        subject = "¡Has obtenido una nueva recompensa!"
        body = f"""¡Felicidades, {nombre}!

Has obtenido la recompensa "{recompensa}". Tu código de canje es: {codigo}
"""
        html = _html_page(subject, f"""
    <h1>¡Felicidades, {nombre}!</h1>
    <p>Has obtenido la recompensa <strong>{recompensa}</strong>.</p>
    <p>Tu código de canje es: <code>{codigo}</code></p>
""")
        return await self.send_email(to, subject, body, html)


# Singleton instance
email_service = EmailService()
