# finance_tracker/main/index.py
from flask import redirect, url_for
from flask_login import login_required

from ..main import main


@main.route("/", methods=["GET"])
@login_required
def index():
    return redirect(url_for("main.transactions_page"))
