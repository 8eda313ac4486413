# finance_tracker/utils/tokens.py
from itsdangerous import BadSignature, URLSafeTimedSerializer
from flask import current_app


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"])


def generate_reset_token(email: str) -> str:
    s = _serializer()
    salt = current_app.config["SECURITY_PASSWORD_SALT"]
    return s.dumps(email, salt=salt)


def verify_reset_token(token: str, max_age_seconds: int = 3600) -> str | None:
    s = _serializer()
    salt = current_app.config["SECURITY_PASSWORD_SALT"]
    try:
        return s.loads(token, salt=salt, max_age=max_age_seconds)
    except BadSignature:  # SignatureExpired is a subclass
        return None
