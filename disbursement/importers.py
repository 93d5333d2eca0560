"""Bulk loading of merchants and orders from ``;``-separated CSV exports."""

import csv
import os
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

from disbursement import db
from disbursement.models import Merchant, Order

CSV_OPTIONS = {"delimiter": ";"}

# Anything outside these characters is dropped from imported emails.
EMAIL_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_.@-]")

IMPORT_ERRORS = (csv.Error, KeyError, ValueError, InvalidOperation, SQLAlchemyError)


def complete_row(row, line_num):
    """Reject rows with missing columns; DictReader fills them with None."""
    missing = [name for name, value in row.items() if value is None]
    if missing:
        raise ValueError(f"line {line_num}: missing {', '.join(missing)}")
    return row


def sanitize_email(email):
    return EMAIL_INVALID_CHARS.sub("", email).lower()


def to_cents(amount):
    """``"10.5"`` -> ``1050``."""
    return int((Decimal(amount.strip()) * 100).to_integral_value(rounding=ROUND_HALF_UP))


class MerchantImporter:
    """Imports merchants in batches; each batch is committed on its own."""

    def __init__(self, file_path, logger=None, batch_size=None):
        self.file_path = file_path
        self.logger = logger or current_app.logger
        self.batch_size = batch_size or current_app.config["IMPORT_BATCH_SIZE"]
        self.currency = current_app.config["DEFAULT_CURRENCY"]

    def perform(self):
        if not os.path.exists(self.file_path):
            self.logger.error("File %s does not exist.", self.file_path)
            return 0

        references = set(db.session.scalars(select(Merchant.reference)))
        emails = set(db.session.scalars(select(Merchant.email)))
        imported = 0
        batch = []
        try:
            with open(self.file_path, newline="", encoding="utf-8") as handle:
                reader = csv.DictReader(handle, **CSV_OPTIONS)
                for row in reader:
                    merchant = self.build_merchant_data(complete_row(row, reader.line_num))
                    if merchant["reference"] in references or merchant["email"] in emails:
                        self.logger.warning("Skipping duplicate merchant %s", merchant["reference"])
                        continue
                    references.add(merchant["reference"])
                    emails.add(merchant["email"])

                    batch.append(merchant)
                    if len(batch) >= self.batch_size:
                        imported += self.bulk_insert(batch)
                        batch = []

            if batch:
                imported += self.bulk_insert(batch)
        except IMPORT_ERRORS as exc:
            db.session.rollback()
            self.logger.error("Error while importing merchants: %s", exc)
            return imported

        self.logger.info("Imported %d merchants from %s", imported, self.file_path)
        return imported

    def build_merchant_data(self, row):
        return {
            "reference": row["reference"].strip(),
            "email": sanitize_email(row["email"]),
            "live_on": date.fromisoformat(row["live_on"].strip()),
            "disbursement_frequency": row["disbursement_frequency"].strip().upper(),
            "minimum_monthly_fee_cents": to_cents(row["minimum_monthly_fee"]),
            "currency": self.currency,
        }

    def bulk_insert(self, merchants):
        db.session.execute(insert(Merchant), merchants)
        db.session.commit()
        return len(merchants)


class OrderImporter:
    """Imports a whole order file in one transaction; any bad row aborts it."""

    def __init__(self, file_path, logger=None, batch_size=None):
        self.file_path = file_path
        self.logger = logger or current_app.logger
        self.batch_size = batch_size or current_app.config["IMPORT_BATCH_SIZE"]

    def perform(self):
        if not os.path.exists(self.file_path):
            self.logger.error("File %s does not exist.", self.file_path)
            return 0

        merchant_ids = dict(db.session.execute(select(Merchant.reference, Merchant.id)).all())
        imported = 0
        batch = []
        try:
            with open(self.file_path, newline="", encoding="utf-8") as handle:
                reader = csv.DictReader(handle, **CSV_OPTIONS)
                for row in reader:
                    order = self.build_order(complete_row(row, reader.line_num), merchant_ids)
                    if order is None:
                        continue

                    batch.append(order)
                    if len(batch) >= self.batch_size:
                        db.session.execute(insert(Order), batch)
                        imported += len(batch)
                        batch = []

            if batch:
                db.session.execute(insert(Order), batch)
                imported += len(batch)
            db.session.commit()
        except IMPORT_ERRORS as exc:
            db.session.rollback()
            self.logger.error("Error while importing orders: %s", exc)
            return 0

        self.logger.info("Imported %d orders from %s", imported, self.file_path)
        return imported

    def build_order(self, row, merchant_ids):
        merchant_id = merchant_ids.get(row["merchant_reference"].strip())
        if merchant_id is None:
            self.logger.debug("Unknown merchant %s, order skipped", row["merchant_reference"])
            return None

        return {
            "merchant_id": merchant_id,
            "amount": to_cents(row["amount"]),
            "created_at": datetime.fromisoformat(row["created_at"].strip()),
        }
