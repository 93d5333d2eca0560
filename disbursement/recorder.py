from flask import current_app
from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from disbursement import db
from disbursement.errors import (
    DuplicatePeriodError,
    ReferenceCollisionError,
    StaleOrdersError,
    StorageError,
)
from disbursement.models import Disbursement, Order


class DisbursementRecorder:
    """Creates a disbursement and links the orders it pays out, all or nothing."""

    def __init__(self, logger=None, max_attempts=None):
        self.logger = logger or current_app.logger
        self.max_attempts = max_attempts or current_app.config["DISBURSEMENT_REFERENCE_ATTEMPTS"]

    def record(self, merchant, order_ids, gross_amount, transaction_fee, monthly_fee, disbursed_on):
        """
        Insert the disbursement and link ``order_ids`` to it in one transaction.

        Args:
            merchant: the merchant being paid
            order_ids: ids of the unlinked orders aggregated into ``gross_amount``
            gross_amount: sum of the orders, in cents
            transaction_fee: fee withheld from ``gross_amount``
            monthly_fee: minimum monthly fee top-up charged with this disbursement
            disbursed_on: date the disbursement covers

        Returns:
            Disbursement: the committed record

        Raises:
            DuplicatePeriodError: the merchant already has a disbursement on ``disbursed_on``
            StaleOrdersError: some orders were linked by another run in the meantime
            ReferenceCollisionError: every generated reference was already taken
            StorageError: any other database failure
        """
        if gross_amount <= 0 and monthly_fee <= 0:
            raise ValueError("nothing to disburse: no gross amount and no monthly fee")

        order_ids = sorted(order_ids)
        for attempt in range(1, self.max_attempts + 1):
            disbursement = Disbursement(
                merchant_id=merchant.id,
                amount_cents=gross_amount - transaction_fee,
                fee_cents=transaction_fee,
                monthly_fee_cents=monthly_fee,
                disbursed_on=disbursed_on,
            )
            reference = disbursement.ensure_reference()

            try:
                self._insert_and_link(disbursement, order_ids)
            except IntegrityError as exc:
                db.session.rollback()
                if self._period_taken(merchant.id, disbursed_on):
                    raise DuplicatePeriodError(merchant.id, disbursed_on) from exc
                if not self._reference_taken(reference):
                    raise StorageError(f"merchant {merchant.id}: {exc.orig}") from exc
                self.logger.warning(
                    "Reference %s already taken (attempt %d/%d)", reference, attempt, self.max_attempts
                )
                continue
            except StaleOrdersError:
                db.session.rollback()
                raise
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise StorageError(f"merchant {merchant.id}: {exc}") from exc

            self.logger.info(
                "Disbursement %s for merchant %s on %s: net=%d fee=%d monthly_fee=%d orders=%d",
                reference,
                merchant.id,
                disbursed_on,
                disbursement.amount_cents,
                disbursement.fee_cents,
                disbursement.monthly_fee_cents,
                len(order_ids),
            )
            return disbursement

        raise ReferenceCollisionError(merchant.id, self.max_attempts)

    def _insert_and_link(self, disbursement, order_ids):
        db.session.add(disbursement)
        db.session.flush()

        if order_ids:
            # Only unlinked orders may be claimed; a link is never reassigned.
            result = db.session.execute(
                update(Order)
                .where(Order.id.in_(order_ids), Order.disbursement_id.is_(None))
                .values(disbursement_id=disbursement.id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != len(order_ids):
                raise StaleOrdersError(disbursement.merchant_id, len(order_ids), result.rowcount)

        db.session.commit()

    @staticmethod
    def _period_taken(merchant_id, disbursed_on):
        return db.session.scalar(
            select(
                exists().where(
                    Disbursement.merchant_id == merchant_id,
                    Disbursement.disbursed_on == disbursed_on,
                )
            )
        )

    @staticmethod
    def _reference_taken(reference):
        return db.session.scalar(select(exists().where(Disbursement.reference == reference)))
