"""
Email Service for SEIO
======================
Handles all outgoing mail:
- Password reset links
- Phase results (student and guardian, PDF attached)
- Final grade notices
- Improvement plan notifications

Mail goes out over SMTP with aiosmtplib. A failed send is logged and reported
as False so callers can carry on with the rest of a batch.
"""

import aiosmtplib
from html import escape
from email.mime.application import MIMEApplication
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List, Tuple
from datetime import datetime

from app.core.config import settings
from app.core.logging_config import logger


# (filename, bytes, mime subtype)
Attachment = Tuple[str, bytes, str]


def _layout(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: Arial, Helvetica, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background: #1e3a8a; color: white; padding: 24px; text-align: center; border-radius: 10px 10px 0 0; }}
            .content {{ background: #f9fafb; padding: 24px; border-radius: 0 0 10px 10px; }}
            .button {{ display: inline-block; background: #1e3a8a; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; }}
            .approved {{ color: #15803d; font-weight: bold; }}
            .failed {{ color: #b91c1c; font-weight: bold; }}
            .footer {{ text-align: center; margin-top: 24px; font-size: 12px; color: #6b7280; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>SEIO</h1>
                <p>{title}</p>
            </div>
            <div class="content">
                {body}
            </div>
            <div class="footer">
                <p>&copy; {datetime.utcnow().year} SEIO - Sistema Evaluativo Integral Online</p>
            </div>
        </div>
    </body>
    </html>
    """


def _bullets_to_html(text: Optional[str]) -> str:
    if not text:
        return ""
    items = [line.lstrip("• ").strip() for line in text.splitlines() if line.strip()]
    return "<ul>" + "".join(f"<li>{escape(item)}</li>" for item in items) + "</ul>"


class EmailService:
    """Async email service using SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> bool:
        """
        Send an email asynchronously.

        to_email may be a single address or a list of addresses.
        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        recipients = [to_email] if isinstance(to_email, str) else [e for e in to_email if e]
        if not recipients:
            logger.warning(f"[Email] No recipients for '{subject}', skipping")
            return False

        return await self._send_via_smtp(recipients, subject, html_content, text_content, attachments)

    async def _send_via_smtp(
        self,
        recipients: List[str],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> bool:
        """Send email via SMTP"""
        try:
            message = MIMEMultipart("mixed")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = ", ".join(recipients)
            message["Subject"] = subject

            body = MIMEMultipart("alternative")
            if text_content:
                body.attach(MIMEText(text_content, "plain", "utf-8"))
            body.attach(MIMEText(html_content, "html", "utf-8"))
            message.attach(body)

            for filename, content, subtype in attachments or []:
                part = MIMEApplication(content, _subtype=subtype)
                part.add_header("Content-Disposition", "attachment", filename=filename)
                message.attach(part)

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )

            logger.info(f"[Email/SMTP] Successfully sent email to {', '.join(recipients)}: {subject}")
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {', '.join(recipients)}: {e}")
            return False

    async def send_password_reset_email(self, to_email: str, user_name: str, reset_token: str) -> bool:
        """Send the password reset link"""
        reset_url = f"{self.frontend_url}/reset-password?token={reset_token}"
        subject = "Recuperación de Contraseña - SEIO"

        html_content = _layout("Recuperación de Contraseña", f"""
            <p>Hola {user_name},</p>
            <p>Recibimos una solicitud para restablecer la contraseña de tu cuenta.</p>
            <p style="text-align: center;"><a href="{reset_url}" class="button">Restablecer contraseña</a></p>
            <p>El enlace expira en {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutos.
            Si no solicitaste este cambio, ignora este mensaje.</p>
        """)
        text_content = (
            f"Hola {user_name},\n\n"
            f"Restablece tu contraseña aquí: {reset_url}\n"
            f"El enlace expira en {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutos.\n"
        )
        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_phase_results_email(
        self,
        student_email: str,
        guardian_email: Optional[str],
        student_name: str,
        phase: int,
        score: float,
        failed_indicators: List[str],
        pdf_bytes: Optional[bytes] = None,
    ) -> bool:
        """Send phase results to the student and the guardian"""
        passed = score >= settings.PHASE_PASSING_SCORE
        status = "APROBÓ" if passed else "NO APROBÓ"
        subject = f"Resultados Fase {phase} - {student_name} - {status}"

        indicators_html = ""
        if failed_indicators:
            indicators_html = "<p>Indicadores por reforzar:</p><ul>" + "".join(
                f"<li>{escape(desc)}</li>" for desc in failed_indicators
            ) + "</ul>"

        plan_html = "" if passed else (
            "<p>Se generó un plan de mejoramiento. Ingresa a la plataforma para ver las actividades.</p>"
        )
        html_content = _layout(f"Resultados Fase {phase}", f"""
            <p>Estudiante: <strong>{student_name}</strong></p>
            <p>Nota de la fase: <strong>{score:.2f}</strong></p>
            <p>Estado: <span class="{'approved' if passed else 'failed'}">{status}</span></p>
            {indicators_html}
            {plan_html}
        """)

        attachments = None
        if pdf_bytes:
            safe_name = "_".join(student_name.split())
            attachments = [(f"Resultados_Fase_{phase}_{safe_name}.pdf", pdf_bytes, "pdf")]

        return await self.send_email(
            [student_email, guardian_email], subject, html_content, attachments=attachments
        )

    async def send_final_grade_email(
        self,
        student_email: str,
        guardian_email: Optional[str],
        student_name: str,
        final_score: float,
        pdf_bytes: Optional[bytes] = None,
    ) -> bool:
        """Send the year's final grade"""
        status = "APROBÓ" if final_score >= settings.PHASE_PASSING_SCORE else "REPROBÓ"
        subject = f"Nota Final - {student_name} - {status}"

        html_content = _layout("Nota Final", f"""
            <p>Estudiante: <strong>{student_name}</strong></p>
            <p>Nota final: <strong>{final_score:.2f}</strong></p>
            <p>Estado: <span class="{'approved' if status == 'APROBÓ' else 'failed'}">{status}</span></p>
        """)

        attachments = None
        if pdf_bytes:
            safe_name = "_".join(student_name.split())
            attachments = [(f"Nota_Final_{safe_name}.pdf", pdf_bytes, "pdf")]

        return await self.send_email(
            [student_email, guardian_email], subject, html_content, attachments=attachments
        )

    async def send_improvement_plan_email(
        self,
        student_email: str,
        guardian_email: Optional[str],
        student_name: str,
        plan_title: str,
        subject_name: str,
        deadline: str,
        failed_achievements: Optional[str] = None,
        activities: Optional[str] = None,
    ) -> bool:
        """Notify a student (and guardian) about an improvement plan"""
        subject = f"Plan de Mejoramiento - {subject_name} - {student_name}"
        activities_html = f"<p>Actividades:</p><pre>{escape(activities)}</pre>" if activities else ""

        html_content = _layout(escape(plan_title), f"""
            <p>Hola {student_name},</p>
            <p>Tienes un plan de mejoramiento en <strong>{subject_name}</strong>.</p>
            <p>Fecha límite: <strong>{deadline}</strong></p>
            {'<p>Logros por alcanzar:</p>' + _bullets_to_html(failed_achievements) if failed_achievements else ''}
            {activities_html}
            <p style="text-align: center;"><a href="{self.frontend_url}/login" class="button">Ir a SEIO</a></p>
        """)
        return await self.send_email([student_email, guardian_email], subject, html_content)


# Singleton instance
email_service = EmailService()
