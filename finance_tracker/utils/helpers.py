from flask import has_request_context, request


def get_page_title(default="Page"):
    """Return a human-friendly page title based on current path."""
    if not has_request_context():
        return default
    path = request.path.strip("/")
    if not path:
        return "Transactions"
    return path.split("/")[-1].replace("-", " ").title()
