"""
Turning inbound payloads into verdicts.

Anything that cannot become a WorkRecord with a non-negative integer value
raises MessageValidationError; the poller drops those messages.
"""

import json
import random
import re
from typing import Optional

from core.models.records import ResultRecord, WorkRecord
from infra.exceptions import MessageValidationError
from consumer.primality import DEFAULT_ROUNDS, is_probably_prime

_DIGITS = re.compile(r"[0-9]+")

# Stays under the interpreter's str -> int digit limit
_CHUNK_DIGITS = 4000


def parse_decimal(text: str) -> int:
    """Parse an unsigned decimal string of any length."""
    if not _DIGITS.fullmatch(text):
        raise ValueError("not an unsigned decimal integer")
    n = 0
    for start in range(0, len(text), _CHUNK_DIGITS):
        chunk = text[start:start + _CHUNK_DIGITS]
        n = n * 10 ** len(chunk) + int(chunk)
    return n


def parse_work_message(payload: bytes) -> WorkRecord:
    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError, UnicodeDecodeError and the int digit limit are all ValueErrors;
        # RecursionError comes from deeply nested arrays or objects
        raise MessageValidationError("payload is not valid JSON") from e

    if not isinstance(data, dict):
        raise MessageValidationError("payload is not a JSON object")
    if "id" not in data:
        raise MessageValidationError("missing 'id'")
    if data.get("value") is None:
        raise MessageValidationError("missing 'value'")
    record = WorkRecord(id=data["id"], value=data["value"])

    # Lone surrogates decode from JSON escapes but cannot be re-encoded for the reply
    try:
        record.to_json()
    except UnicodeEncodeError as e:
        raise MessageValidationError("payload holds text that cannot be encoded as UTF-8") from e
    return record


def number_of(record: WorkRecord) -> int:
    value = record.value
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    if not isinstance(value, str):
        raise MessageValidationError(f"'value' has type {type(value).__name__}")
    try:
        return parse_decimal(value)
    except ValueError as e:
        raise MessageValidationError("'value' is not an unsigned decimal integer") from e


def evaluate(
    payload: bytes,
    rounds: int = DEFAULT_ROUNDS,
    rng: Optional[random.Random] = None,
) -> ResultRecord:
    """Parse, validate and test one message."""
    record = parse_work_message(payload)
    n = number_of(record)
    return ResultRecord.for_work(record, is_probably_prime(n, rounds, rng))
