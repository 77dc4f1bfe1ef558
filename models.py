import unicodedata
from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy.orm import relationship, validates
from sqlalchemy import UniqueConstraint
from extensions import db, login_manager

# --------------------------------
# User roles
# --------------------------------
ROLE_SUPERADMIN = 'superadmin'
ROLE_ADMIN      = 'admin'
ROLE_USER       = 'user'
ROLE_VIEWER     = 'viewer'
ROLE_TECHNICIAN = 'technician'

ALLOWED_ROLES = {
    ROLE_SUPERADMIN,
    ROLE_ADMIN,
    ROLE_TECHNICIAN,
    ROLE_USER,
    ROLE_VIEWER,
}

ROLE_ALIASES = {
    'tech': ROLE_TECHNICIAN,
    'technician': ROLE_TECHNICIAN,
    'super': ROLE_SUPERADMIN,
    'sa': ROLE_SUPERADMIN,
    'admin': ROLE_ADMIN,
    'administrator': ROLE_ADMIN,
    'viewer': ROLE_VIEWER,
    'read_only': ROLE_VIEWER,
    'user': ROLE_USER,
    'employee': ROLE_USER,
}

# --------------------------------
# Service order statuses
# --------------------------------
STATUS_PENDING          = 'pending'
STATUS_IN_PROGRESS      = 'in_progress'
STATUS_PENDING_APPROVAL = 'pending_approval'
STATUS_COMPLETED        = 'completed'
STATUS_CANCELLED        = 'cancelled'

ORDER_STATUSES = (
    STATUS_PENDING,
    STATUS_IN_PROGRESS,
    STATUS_PENDING_APPROVAL,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)


# --------------------------------
# Users (the importing account)
# --------------------------------
class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)

    @validates("role")
    def _validate_role(self, key, value: str | None):
        v = (value or "").strip().lower()
        v = ROLE_ALIASES.get(v, v)
        return v if v in ALLOWED_ROLES else ROLE_USER

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def password(self):
        raise AttributeError('password is not a readable attribute')

    @password.setter
    def password(self, password):
        self.set_password(password)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


# --------------------------------
# Customers / Devices / Suppliers
# --------------------------------
def casefold_key(value):
    """Lookup key for case-insensitive matching: NFC, whitespace collapsed, casefolded."""
    if value is None:
        return None
    s = " ".join(unicodedata.normalize("NFC", str(value)).split())
    return s.casefold() if s else None


class Customer(db.Model):
    __tablename__ = "customers"
    KEY_COLUMNS = {"name": "name_key"}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    name    = db.Column(db.String(160), nullable=False)
    name_key = db.Column(db.String(160), nullable=False, index=True)
    phone   = db.Column(db.String(32))
    email   = db.Column(db.String(160))
    address = db.Column(db.String(255))
    tax_id  = db.Column(db.String(20))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    devices = relationship("Device", backref="customer", lazy="selectin")

    @validates("name")
    def _set_name_key(self, key, value):
        self.name_key = casefold_key(value)
        return value


class Device(db.Model):
    __tablename__ = "devices"
    KEY_COLUMNS = {"brand": "brand_key", "model": "model_key", "serial_number": "serial_key"}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    brand         = db.Column(db.String(80), nullable=False)
    model         = db.Column(db.String(80), nullable=False)
    serial_number = db.Column(db.String(80), index=True)
    brand_key  = db.Column(db.String(80), nullable=False, index=True)
    model_key  = db.Column(db.String(80), nullable=False)
    serial_key = db.Column(db.String(80), index=True)
    defect_description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates("brand", "model", "serial_number")
    def _set_keys(self, key, value):
        setattr(self, self.KEY_COLUMNS[key], casefold_key(value))
        return value


class Supplier(db.Model):
    __tablename__ = "suppliers"
    KEY_COLUMNS = {"name": "name_key"}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    name     = db.Column(db.String(160), nullable=False)
    name_key = db.Column(db.String(160), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @validates("name")
    def _set_name_key(self, key, value):
        self.name_key = casefold_key(value)
        return value


# --------------------------------
# Service Orders
# --------------------------------
class ServiceOrder(db.Model):
    __tablename__ = "service_orders"
    __table_args__ = (
        UniqueConstraint("user_id", "external_order_number", name="uq_service_order_account_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    external_order_number = db.Column(db.String(64), nullable=False, index=True)

    customer_id      = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    device_id        = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=True, index=True)
    part_supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    customer      = relationship("Customer", lazy="joined")
    device        = relationship("Device", lazy="joined")
    part_supplier = relationship("Supplier", lazy="joined")

    status            = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    opened_at         = db.Column(db.DateTime, nullable=True)
    closed_at         = db.Column(db.DateTime, nullable=True)
    issue_description = db.Column(db.Text)
    service_details   = db.Column(db.Text)

    parts_cost   = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    service_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    freight_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    parts    = db.Column(db.JSON, nullable=True)
    payments = db.Column(db.JSON, nullable=True)

    guarantee_terms = db.Column(db.Text)
    warranty_days   = db.Column(db.Integer, nullable=False, default=90)
    technician_name = db.Column(db.String(80))
    notes           = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates("status")
    def _validate_status(self, key, value: str | None):
        v = (value or "").strip().lower()
        return v if v in ORDER_STATUSES else STATUS_PENDING
