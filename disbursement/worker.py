"""Disbursement run over every merchant.

Each merchant is an independent task on a bounded thread pool with its own
application context (and so its own database session). A merchant's periods
are processed oldest first because the monthly fee of a period reads the fees
recorded for the periods before it.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from disbursement import aggregator, db, fees
from disbursement.errors import (
    DuplicatePeriodError,
    StaleOrdersError,
    StorageError,
    UnsupportedFrequencyError,
)
from disbursement.models import Merchant
from disbursement.periods import periods
from disbursement.recorder import DisbursementRecorder


@dataclass
class MerchantResult:
    merchant_id: int
    references: List[str] = field(default_factory=list)
    duplicates: int = 0
    skipped: bool = False
    error: Optional[str] = None

    def to_dict(self):
        return asdict(self)


@dataclass
class RunReport:
    today: date
    merchants: List[MerchantResult] = field(default_factory=list)

    @property
    def disbursement_count(self):
        return sum(len(result.references) for result in self.merchants)

    @property
    def failures(self):
        return [result for result in self.merchants if result.error]

    def to_dict(self):
        return {
            "today": self.today.isoformat(),
            "disbursements": self.disbursement_count,
            "merchants": [result.to_dict() for result in self.merchants],
        }


class DisbursementWorker:
    def __init__(self, app, logger=None, max_workers=None, today=None):
        self.app = app
        self.logger = logger or app.logger
        self.max_workers = max_workers or app.config["DISBURSEMENT_MAX_WORKERS"]
        self.today = today

    def perform(self):
        today = self.today or date.today()
        with self.app.app_context():
            merchant_ids = self._merchant_ids()

        self.logger.info(
            "Disbursement run for %s: %d merchants, %d workers", today, len(merchant_ids), self.max_workers
        )
        report = RunReport(today=today)
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="disbursement") as pool:
            futures = [pool.submit(self._run_merchant, merchant_id, today) for merchant_id in merchant_ids]
            for future in as_completed(futures):
                report.merchants.append(future.result())

        report.merchants.sort(key=lambda result: result.merchant_id)
        self.logger.info(
            "Disbursement run for %s finished: %d disbursements, %d merchants failed",
            today,
            report.disbursement_count,
            len(report.failures),
        )
        return report

    def _merchant_ids(self):
        return db.session.scalars(select(Merchant.id).order_by(Merchant.id)).all()

    def _run_merchant(self, merchant_id, today):
        result = MerchantResult(merchant_id)
        with self.app.app_context():
            try:
                self.process_merchant(merchant_id, today, result)
            except UnsupportedFrequencyError as exc:
                self.logger.error("Merchant %s skipped: %s", merchant_id, exc)
                result.error = str(exc)
            except (StorageError, SQLAlchemyError) as exc:
                db.session.rollback()
                self.logger.exception(
                    "Merchant %s: storage failure, remaining periods left for the next run", merchant_id
                )
                result.error = str(exc)
            except Exception as exc:
                db.session.rollback()
                self.logger.exception("Merchant %s: unexpected failure", merchant_id)
                result.error = str(exc)
        return result

    def process_merchant(self, merchant_id, today, result):
        merchant = db.session.get(Merchant, merchant_id)
        oldest = aggregator.oldest_unprocessed_date(merchant)
        if oldest is None:
            self.logger.debug("Merchant %s has no unprocessed orders", merchant_id)
            result.skipped = True
            return

        recorder = DisbursementRecorder(self.logger, self.app.config["DISBURSEMENT_REFERENCE_ATTEMPTS"])
        for period in periods(merchant.frequency, oldest, today):
            self.disburse_period(merchant, period, recorder, result)

    def disburse_period(self, merchant, period, recorder, result):
        gross_amount, order_ids = aggregator.sum_unprocessed(merchant, period.start, period.end)
        monthly_fee = fees.monthly_fee_due(merchant, period.start)
        if gross_amount <= 0 and monthly_fee <= 0:
            return

        try:
            disbursement = recorder.record(
                merchant,
                order_ids,
                gross_amount,
                fees.transaction_fee(gross_amount),
                monthly_fee,
                period.disbursed_on,
            )
        except (DuplicatePeriodError, StaleOrdersError) as exc:
            self.logger.warning("Merchant %s, period %s: %s; skipped", merchant.id, period.disbursed_on, exc)
            result.duplicates += 1
            return

        result.references.append(disbursement.reference)
