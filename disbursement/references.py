import secrets

# 4 random bytes -> 8 hex characters.
RANDOM_BYTES = 4


def generate(merchant_id, disbursed_on):
    """Build a disbursement reference: ``<merchant id>-<YYYY-MM-DD>-<hex>``."""
    return f"{merchant_id}-{disbursed_on.isoformat()}-{secrets.token_hex(RANDOM_BYTES)}"
