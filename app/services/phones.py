from __future__ import annotations

import re

MOBILE_RE = re.compile(r"^09\d{9}$")


def normalize_phone(raw: str | None) -> str:
    value = str(raw or "").strip()
    if not value:
        return ""
    digits = "".join(ch for ch in value if ch.isdigit())
    if value.startswith("+"):
        return f"+{digits}"
    return digits


def is_valid_mobile(raw: str | None) -> bool:
    return bool(MOBILE_RE.fullmatch(normalize_phone(raw)))
