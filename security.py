# security.py
from flask_login import current_user
from models import ROLE_VIEWER

def role() -> str:
    return (getattr(current_user, "role", "") or "").strip().lower()

def is_viewer() -> bool:
    return role() == ROLE_VIEWER

def can_import() -> bool:
    # viewers are read-only
    return bool(getattr(current_user, "is_authenticated", False)) and not is_viewer()
