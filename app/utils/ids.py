"""Identifier generation helpers."""

from __future__ import annotations

import secrets
import string
import time
import uuid

_NUMBER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def new_entity_id() -> str:
    """Create a UUID4-based opaque entity identifier."""
    return str(uuid.uuid4())


def new_contract_number(prefix: str = "CNT", suffix_length: int = 4) -> str:
    """Create a human-readable contract number: ``<prefix>-<epoch ms>-<suffix>``."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_NUMBER_SUFFIX_ALPHABET) for _ in range(suffix_length))
    return f"{prefix}-{millis}-{suffix}"
