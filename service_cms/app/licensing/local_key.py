"""
Signed local license key codec.

A local key lets the site answer license checks without contacting the
licensing server for a few days. It is the JSON result of the last
successful remote check, base64 encoded and signed twice with md5 and the
shared licensing secret:

    inner = md5(checkdate + secret) + base64(json(results))
    key   = reverse(inner) + md5(reverse(inner) + secret)

The key is stored wrapped at 80 columns.
"""

import base64
import binascii
import hashlib
import json
from datetime import date, timedelta
from typing import Any, Dict, Optional

WRAP_WIDTH = 80
DIGEST_LENGTH = 32


def md5_hex(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def format_checkdate(day: date) -> str:
    return day.strftime("%Y%m%d")


def days_ago(days: int, today: Optional[date] = None) -> str:
    """Check date string for ``today - days``; check dates compare as strings."""
    today = today or date.today()
    return format_checkdate(today - timedelta(days=days))


def encode_local_key(results: Dict[str, Any], secret: str, checkdate: str) -> str:
    """Sign ``results`` stamped with ``checkdate`` into a wrapped local key."""
    payload = dict(results)
    payload["checkdate"] = checkdate

    encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    encoded = md5_hex(checkdate + secret) + encoded
    encoded = encoded[::-1]
    encoded = encoded + md5_hex(encoded + secret)

    return "\n".join(encoded[i:i + WRAP_WIDTH] for i in range(0, len(encoded), WRAP_WIDTH))


def decode_local_key(local_key: str, secret: str) -> Optional[Dict[str, Any]]:
    """Return the signed results, or None if the key is malformed or tampered with."""
    token = "".join(local_key.split())
    if len(token) <= DIGEST_LENGTH:
        return None

    body, digest = token[:-DIGEST_LENGTH], token[-DIGEST_LENGTH:]
    if digest != md5_hex(body + secret):
        return None

    body = body[::-1]
    inner_digest, body = body[:DIGEST_LENGTH], body[DIGEST_LENGTH:]

    try:
        results = json.loads(base64.b64decode(body, validate=True))
    except (binascii.Error, ValueError):
        return None

    if not isinstance(results, dict) or "checkdate" not in results:
        return None

    if inner_digest != md5_hex(str(results["checkdate"]) + secret):
        return None

    return results
