# ABOUTME: Secret masking for log output of the Weave GitOps add-on
# ABOUTME: Scrubs SSH keys, known hosts and tokens from strings and nested data

"""Secret masking applied to anything error-derived before it is logged."""

from __future__ import annotations

import re
from typing import Any

MASK = "***MASKED***"

SECRET_PATTERNS = [
    # PEM/OpenSSH private key blocks, including the armour lines
    (
        re.compile(
            r"-----BEGIN [A-Z0-9 ]*PRIVATE KEY-----.*?-----END [A-Z0-9 ]*PRIVATE KEY-----",
            re.S,
        ),
        MASK,
    ),
    (re.compile(r"((?:private|public)[_-]?key[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}]+", re.I), r"\1" + MASK),
    (re.compile(r"(known[_-]?hosts[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}]+", re.I), r"\1" + MASK),
    (re.compile(r"(token[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}]+", re.I), r"\1" + MASK),
    (re.compile(r"(password[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}]+", re.I), r"\1" + MASK),
    (re.compile(r"(secret[\"']?\s*[:=]\s*[\"']?)[^\"'\s,}]+", re.I), r"\1" + MASK),
]

SENSITIVE_KEYS = frozenset(
    [
        "private_key",
        "privatekey",
        "public_key",
        "publickey",
        "known_hosts",
        "knownhosts",
        "secretstring",
        "secretbinary",
        "token",
        "password",
        "secret",
    ]
)


def mask_sensitive_data(data: Any) -> Any:
    """Return a copy of data with sensitive values masked.

    Strings are scrubbed with SECRET_PATTERNS, dict values under sensitive
    keys are replaced, lists and dicts are walked recursively. Other types
    are returned unchanged.
    """
    if isinstance(data, str):
        masked = data
        for pattern, replacement in SECRET_PATTERNS:
            masked = pattern.sub(replacement, masked)
        return masked

    if isinstance(data, dict):
        result: dict[Any, Any] = {}
        for key, value in data.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                result[key] = MASK
            else:
                result[key] = mask_sensitive_data(value)
        return result

    if isinstance(data, (list, tuple)):
        return [mask_sensitive_data(item) for item in data]

    return data
