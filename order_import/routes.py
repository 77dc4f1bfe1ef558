# order_import/routes.py
import logging

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from werkzeug.utils import secure_filename

from security import can_import

from .errors import ImportFileError
from .orchestrator import run_import, summarize

log = logging.getLogger(__name__)

import_bp = Blueprint("order_import", __name__, url_prefix="/imports")


def _allowed_file(filename: str) -> bool:
    allowed = current_app.config.get("ALLOWED_EXTENSIONS") or set()
    return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed


@import_bp.post("/service-orders")
@login_required
def import_service_orders():
    if not current_app.config.get("IMPORT_ENABLED", 1):
        return jsonify({"error": "Service order import is disabled."}), 403
    if not can_import():
        return jsonify({"error": "Your role is not allowed to import service orders."}), 403

    f = request.files.get("file")
    if not f or not f.filename:
        return jsonify({"error": "No file uploaded."}), 400

    filename = secure_filename(f.filename)
    if not filename or not _allowed_file(filename):
        return jsonify({"error": f"Unsupported file type: {f.filename}"}), 400

    data = f.read()
    if not data:
        return jsonify({"error": "The uploaded file is empty."}), 400

    try:
        report = run_import(current_user.id, filename, data, f.mimetype)
    except ImportFileError as e:
        log.warning("Import rejected (%s): %s", filename, e)
        return jsonify({"error": str(e)}), 400

    log.info("Import by user=%s file=%s -> %s", current_user.id, filename, summarize(report))
    return jsonify([entry.to_dict() for entry in report]), 200
