from flask import Flask, jsonify
from config import Config
import os, sys, logging
from logging.handlers import RotatingFileHandler
from extensions import db, login_manager

# Sentry
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import LoggingIntegration


# -------------------------------------------------------------------
# 1) Logging to file + console
# -------------------------------------------------------------------
def _configure_logging(app: Flask):
    formatter = logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s')
    root = logging.getLogger()
    root.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    logging.getLogger("order_import").setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    if root.handlers:
        return

    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(formatter)
    root.addHandler(sh)

    # tests log to the console only
    if app.config.get("TESTING"):
        return

    log_dir = app.config.get("LOG_DIR") or os.path.join(Config.BASE_DIR, "logs")
    os.makedirs(log_dir, exist_ok=True)
    fh = RotatingFileHandler(
        os.path.join(log_dir, 'app.log'),
        maxBytes=2_000_000,
        backupCount=3,
        encoding='utf-8'
    )
    fh.setFormatter(formatter)
    root.addHandler(fh)


# -------------------------------------------------------------------
# 2) Sentry (if SENTRY_DSN is set)
# -------------------------------------------------------------------
def _init_sentry(app: Flask):
    dsn = (app.config.get("SENTRY_DSN") or "").strip()
    if not dsn or app.config.get("TESTING"):
        logging.info("Sentry DSN not set; skipping Sentry init.")
        return
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration(), LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES", "0.0")),
        send_default_pii=False,
        environment=os.getenv("ENVIRONMENT", "development"),
    )
    logging.info("Sentry initialized.")


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    app.config.from_pyfile('config.py', silent=True)  # instance/config.py (if present)

    _configure_logging(app)
    _init_sentry(app)

    # -------------------------------------------------------------------
    # 3) DB / Login manager
    # -------------------------------------------------------------------
    os.makedirs(app.instance_path, exist_ok=True)
    db.init_app(app)
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"error": "Login required."}), 401

    # -------------------------------------------------------------------
    # 4) Blueprints
    # -------------------------------------------------------------------
    from order_import.routes import import_bp
    app.register_blueprint(import_bp)

    with app.app_context():
        db.create_all()

    logging.info(
        "Import flags: enabled=%s, compare=%s, ocr=%s",
        app.config.get("IMPORT_ENABLED"),
        ",".join(app.config.get("IMPORT_COMPARE_FIELDS") or ()),
        app.config.get("OCR_BACKEND"),
    )
    return app


# -------------------------------------------------------------------
# 5) Local run (dev)
# -------------------------------------------------------------------
if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG") == "1")
