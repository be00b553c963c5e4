import secrets

from flask import Request, session

CSRF_HEADER = "X-CSRF-Token"
CSRF_FIELD = "csrf_token"


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get(CSRF_FIELD)
    if not token:
        token = rotate_csrf_token()
    return token


def rotate_csrf_token() -> str:
    """Issue a fresh token. Called on login so a pre-login token stops working."""
    token = secrets.token_urlsafe(32)
    session[CSRF_FIELD] = token
    return token


def submitted_csrf_token(req: Request) -> str | None:
    token = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_FIELD)
    if token or not req.is_json:
        return token
    body = req.get_json(silent=True)
    if isinstance(body, dict) and body.get(CSRF_FIELD):
        return str(body[CSRF_FIELD])
    return None


def validate_csrf(req: Request) -> bool:
    token = submitted_csrf_token(req)
    expected = session.get(CSRF_FIELD)
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))
