# finance_tracker/main/__init__.py
# ---------------------------------
# Single blueprint named `main`; feature modules are imported at the bottom so their routes register.

from flask import Blueprint

main = Blueprint("main", __name__)

# Route modules (keep these imports at the end)
from . import index, categories, transactions, transactions_actions  # noqa: E402,F401
