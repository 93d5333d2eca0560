import enum

from disbursement import db, references
from disbursement.errors import UnsupportedFrequencyError


class Frequency(str, enum.Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFrequencyError(value) from None


class Merchant(db.Model):
    __tablename__ = "merchants"

    id = db.Column(db.Integer, primary_key=True)
    reference = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    live_on = db.Column(db.Date)
    # Kept as plain text so an unknown value surfaces as UnsupportedFrequencyError.
    disbursement_frequency = db.Column(db.String(10))
    minimum_monthly_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    orders = db.relationship("Order", back_populates="merchant")
    disbursements = db.relationship("Disbursement", back_populates="merchant")

    @property
    def frequency(self):
        return Frequency.parse(self.disbursement_frequency)

    def __repr__(self):
        return f"<Merchant {self.id} {self.reference}>"


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchants.id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False, default=0)
    # Set once, when a disbursement consumes the order; never cleared.
    disbursement_id = db.Column(db.Integer, db.ForeignKey("disbursements.id"), index=True)
    created_at = db.Column(db.DateTime, nullable=False, index=True)

    merchant = db.relationship("Merchant", back_populates="orders")


class Disbursement(db.Model):
    __tablename__ = "disbursements"
    __table_args__ = (
        db.UniqueConstraint("merchant_id", "disbursed_on", name="uq_disbursements_merchant_id_disbursed_on"),
    )

    id = db.Column(db.Integer, primary_key=True)
    merchant_id = db.Column(db.Integer, db.ForeignKey("merchants.id"), nullable=False, index=True)
    reference = db.Column(db.String(64), unique=True, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    fee_cents = db.Column(db.Integer, nullable=False, default=0)
    monthly_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    disbursed_on = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    merchant = db.relationship("Merchant", back_populates="disbursements")

    def ensure_reference(self):
        """Assign a fresh reference unless one is already set."""
        if self.reference is None:
            self.reference = references.generate(self.merchant_id, self.disbursed_on)
        return self.reference
