"""
邮件发送服务 - SMTP

发送失败只记录日志并返回 False，调用方（注册、找回密码）不会因此回滚。
"""
import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from jinja2 import Environment, select_autoescape

from vestisen.config import get_settings


settings = get_settings()
logger = logging.getLogger(__name__)

_env = Environment(autoescape=select_autoescape(default=True))

_LINK_TEMPLATE = _env.from_string("""
<div style="font-family: 'Helvetica Neue', Helvetica, Arial, sans-serif; max-width: 560px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 32px 24px;">
    <h2 style="color: #111827; margin-top: 0;">{{ title }}</h2>
    <p style="color: #374151; font-size: 15px;">Bonjour {{ first_name }},</p>
    <p style="color: #374151; font-size: 15px;">{{ intro }}</p>
    <p style="text-align: center; margin: 32px 0;">
        <a href="{{ link }}" style="background: #16a34a; color: #ffffff; padding: 12px 28px; border-radius: 8px; text-decoration: none; font-weight: 600;">{{ button }}</a>
    </p>
    <p style="color: #6b7280; font-size: 13px;">Ce lien expire dans {{ expire_hours }} heure(s).</p>
    <p style="color: #9ca3af; font-size: 12px;">Si vous n'êtes pas à l'origine de cette demande, ignorez cet email.</p>
</div>
""")


def send_email(to_email: str, subject: str, html_content: str) -> bool:
    """
    发送邮件 (同步方法，建议在后台任务中调用)
    """
    if not settings.smtp_user or not settings.smtp_password:
        logger.warning("Email service not configured, skipping send")
        return False

    try:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{settings.email_from_name} <{settings.smtp_user}>"
        msg['To'] = to_email

        if settings.email_reply_to:
            msg['Reply-To'] = settings.email_reply_to

        msg.attach(MIMEText(html_content, 'html', 'utf-8'))

        if settings.smtp_port == 465:
            server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=20)
        else:
            server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=20)
            server.ehlo()
            server.starttls()
            server.ehlo()

        with server:
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.smtp_user, [to_email], msg.as_string())

        logger.info("Email sent successfully to %s", _sanitize_log_input(to_email))
        return True
    except (smtplib.SMTPException, OSError) as e:
        # 不记录完整的异常信息，避免泄露敏感配置（如密码）
        logger.error("Failed to send email to %s: %s", _sanitize_log_input(to_email), type(e).__name__)
        return False


def _sanitize_log_input(email: str) -> str:
    """清理邮箱地址用于日志记录，防止日志注入"""
    if not email:
        return "(empty)"
    return ''.join(char for char in email if char.isprintable())[:100]


def verification_link(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/verify-email?token={token}"


def reset_password_link(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/reset-password?token={token}"


def send_verification_email(to_email: str, first_name: str, token: str) -> bool:
    html = _LINK_TEMPLATE.render(
        title="Vérifiez votre adresse email",
        first_name=first_name,
        intro="Merci pour votre inscription sur VestiSen. Confirmez votre adresse email pour activer votre compte.",
        link=verification_link(token),
        button="Vérifier mon email",
        expire_hours=settings.verification_token_hours,
    )
    return send_email(to_email, "Vérification de votre compte VestiSen", html)


def send_password_reset_email(to_email: str, first_name: str, token: str) -> bool:
    html = _LINK_TEMPLATE.render(
        title="Réinitialisation du mot de passe",
        first_name=first_name,
        intro="Vous avez demandé la réinitialisation de votre mot de passe.",
        link=reset_password_link(token),
        button="Choisir un nouveau mot de passe",
        expire_hours=settings.reset_token_hours,
    )
    return send_email(to_email, "Réinitialisation de votre mot de passe VestiSen", html)
