# finance_tracker/utils/email_utils.py
from flask_mail import Message

from ..extensions import mail


def send_mail(to_email: str, subject: str, html_body: str, text_body: str | None = None):
    msg = Message(subject=subject, recipients=[to_email])
    msg.body = text_body or "See HTML version."
    msg.html = html_body
    mail.send(msg)
