"""Failures raised while computing and recording disbursements.

Only ``StorageError`` (and its subclasses) abandons the rest of a merchant's
periods; the others are confined to a single merchant or period.
"""


class DisbursementError(Exception):
    """Base class for every disbursement engine failure."""


class UnsupportedFrequencyError(DisbursementError, ValueError):
    def __init__(self, frequency):
        super().__init__(f"unsupported disbursement frequency: {frequency!r}")
        self.frequency = frequency


class DuplicatePeriodError(DisbursementError):
    def __init__(self, merchant_id, disbursed_on):
        super().__init__(
            f"merchant {merchant_id} already has a disbursement on {disbursed_on.isoformat()}"
        )
        self.merchant_id = merchant_id
        self.disbursed_on = disbursed_on


class StaleOrdersError(DisbursementError):
    """Some of the aggregated orders were linked by another run meanwhile."""

    def __init__(self, merchant_id, expected, linked):
        super().__init__(
            f"merchant {merchant_id}: expected to link {expected} orders, linked {linked}"
        )
        self.merchant_id = merchant_id
        self.expected = expected
        self.linked = linked


class StorageError(DisbursementError):
    """The store failed a query or write for a reason other than the above."""


class ReferenceCollisionError(StorageError):
    def __init__(self, merchant_id, attempts):
        super().__init__(
            f"merchant {merchant_id}: no unique disbursement reference after {attempts} attempts"
        )
        self.merchant_id = merchant_id
        self.attempts = attempts
