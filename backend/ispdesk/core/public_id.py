"""Opaque record identifiers."""

import secrets
import string

ALPHABET = string.ascii_lowercase + string.digits

CITY_PREFIX = "ct"
CUSTOMER_PREFIX = "cu"
EXPENSE_PREFIX = "ex"
INCOME_PREFIX = "in"

ID_RANDOM_LENGTH = 12


def generate_public_id(prefix: str, length: int = ID_RANDOM_LENGTH) -> str:
    """Generate an opaque id like "cu_k3v9x0q2m1ab".

    Ids carry no meaning beyond their prefix and are never reused.
    """
    random_part = "".join(secrets.choice(ALPHABET) for _ in range(length))
    return f"{prefix}_{random_part}"
