# finance_tracker/auth/routes.py
# ------------------------------------------------------------
# Authentication routes:
# - GET/POST /auth/login          -> login form + submit
# - GET      /auth/logout         -> log out the current user
# - GET/POST /auth/register       -> self-serve signup
# - GET/POST /auth/forgot         -> email a reset link
# - GET/POST /auth/reset/<token>  -> set a new password
#
# Status messages travel as ?warning=... / ?success=... query params.
# ------------------------------------------------------------
import logging
from urllib.parse import urlencode, urlparse

from flask import request, render_template, redirect, url_for
from flask_login import login_user, logout_user, login_required, current_user

from ..extensions import db
from ..models import User
from ..utils.email_utils import send_mail
from ..utils.helpers import get_page_title
from ..utils.tokens import generate_reset_token, verify_reset_token
from . import auth

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


# ---------------------------
# Helpers
# ---------------------------
def _is_safe_url(target: str) -> bool:
    """
    Allow relative redirects within the same site only.
    Example safe: "/transactions"
    Example unsafe: "https://evil.com/login"
    """
    if not target:
        return False
    ref_url = urlparse(request.host_url)
    test_url = urlparse(urlparse(target).geturl())
    if not test_url.netloc:
        return test_url.path.startswith("/") and not target.startswith("//")
    return (test_url.scheme, test_url.netloc) == (ref_url.scheme, ref_url.netloc)


def _redirect_with_message(endpoint: str, *, warning: str | None = None, success: str | None = None, **kwargs):
    """
    Redirect to endpoint with optional ?warning=... or ?success=...
    """
    base = url_for(endpoint, **kwargs)
    qs = {}
    if warning:
        qs["warning"] = warning
    if success:
        qs["success"] = success
    if qs:
        return redirect(f"{base}?{urlencode(qs)}")
    return redirect(base)


# ---------------------------
# Login
# ---------------------------
@auth.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(url_for("main.transactions_page"))

    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        password = request.form.get("password") or ""
        next_url = request.args.get("next") or request.form.get("next") or ""

        if not email or not password:
            return _redirect_with_message("auth.login", warning="Email and password are required")

        user = db.session.query(User).filter_by(email=email).first()
        if not user or not user.check_password(password):
            logger.info(f"[auth] failed login for {email}")
            return _redirect_with_message("auth.login", warning="Invalid email or password")

        login_user(user)

        if next_url and _is_safe_url(next_url):
            return redirect(next_url)
        return redirect(url_for("main.transactions_page"))

    next_url = request.args.get("next", "")
    return render_template(
        "auth/login.html",
        next=next_url,
        page_title=get_page_title("Login"),
        warning=request.args.get("warning"),
        success=request.args.get("success"),
    )


# ---------------------------
# Logout
# ---------------------------
@auth.route("/logout", methods=["GET"])
@login_required
def logout():
    logout_user()
    return _redirect_with_message("auth.login", success="You have been logged out")


# ---------------------------
# Register
# ---------------------------
@auth.route("/register", methods=["GET", "POST"])
def register():
    if current_user.is_authenticated:
        return redirect(url_for("main.transactions_page"))

    if request.method == "POST":
        name = (request.form.get("name") or "").strip()
        email = (request.form.get("email") or "").strip().lower()
        password = request.form.get("password") or ""
        password2 = request.form.get("password2") or ""

        if not name or not email or not password or not password2:
            return _redirect_with_message("auth.register", warning="All fields are required")
        if password != password2:
            return _redirect_with_message("auth.register", warning="Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            return _redirect_with_message("auth.register", warning="Use at least 6 characters")
        if db.session.query(User).filter_by(email=email).first():
            return _redirect_with_message("auth.register", warning="Email is already registered")

        user = User(name=name, email=email)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        logger.info(f"[auth] registered user id={user.id}")

        login_user(user)
        return _redirect_with_message("main.transactions_page", success="Welcome!")

    return render_template(
        "auth/register.html",
        page_title=get_page_title("Register"),
        warning=request.args.get("warning"),
    )


# ---------------------------
# Forgot / reset password
# ---------------------------
@auth.route("/forgot", methods=["GET", "POST"], endpoint="forgot_password")
def forgot_password():
    if request.method == "POST":
        email = (request.form.get("email") or "").strip().lower()
        # Same response whether or not the email exists
        if email and db.session.query(User).filter_by(email=email).first():
            token = generate_reset_token(email)
            reset_url = url_for("auth.reset_password", token=token, _external=True)
            html = render_template("auth/reset_email.html", reset_url=reset_url)
            try:
                send_mail(email, "Reset your password", html, f"Reset your password: {reset_url}")
            except Exception:
                logger.exception(f"[auth] could not send reset mail to {email}")
        return render_template("auth/forgot_sent.html", email=email, page_title="Forgot Password")

    return render_template("auth/forgot.html", page_title="Forgot Password")


@auth.route("/reset/<token>", methods=["GET", "POST"], endpoint="reset_password")
def reset_password(token):
    email = verify_reset_token(token, max_age_seconds=3600)
    if not email:
        return _redirect_with_message("auth.login", warning="Reset link is invalid or expired")

    if request.method == "POST":
        pw = request.form.get("password") or ""
        pw2 = request.form.get("password2") or ""
        if not pw or not pw2:
            return _redirect_with_message("auth.reset_password", token=token, warning="Both fields are required")
        if pw != pw2:
            return _redirect_with_message("auth.reset_password", token=token, warning="Passwords do not match")
        if len(pw) < MIN_PASSWORD_LENGTH:
            return _redirect_with_message("auth.reset_password", token=token, warning="Use at least 6 characters")
        user = db.session.query(User).filter_by(email=email).first()
        if not user:
            return _redirect_with_message("auth.login", warning="Account not found")
        user.set_password(pw)
        db.session.commit()
        return _redirect_with_message("auth.login", success="Password updated. Please sign in.")

    return render_template("auth/reset.html", token=token, page_title="Reset Password",
                           warning=request.args.get("warning"))
