# app/utils/id_generators.py
import re

ORG_CODE_MAX_LENGTH = 8

# PID-<SUB>-<TAIL> or PID-<TAIL>; TAIL is the end of the dash-less patient UUID
_PATIENT_DISPLAY_CODE_RE = re.compile(r"^pid-(?:[a-z0-9]+-)?([a-z0-9]{6,})$", re.IGNORECASE)


def to_org_code(subdomain: str | None) -> str:
    """
    Short uppercase alphanumeric tenant code used in visit/token numbers.

    Example: "apollo-north" -> "APOLLONO"
    """
    code = re.sub(r"[^A-Z0-9]", "", (subdomain or "ORG").upper())[:ORG_CODE_MAX_LENGTH]
    return code or "ORG"


def format_visit_number(org_code: str, date_key: str, seq: int) -> str:
    """
    Format a visit number: V-{ORGCODE}-{YYMMDD}-{seq:04d}

    Example: V-APOLLO-250127-0001
    """
    return f"V-{org_code}-{date_key[2:]}-{seq:04d}"


def format_token_number(org_code: str, date_key: str, seq: int) -> str:
    """
    Format a queue token number: T-{ORGCODE}-{YYMMDD}-{seq:04d}

    Example: T-APOLLO-250127-0001
    """
    return f"T-{org_code}-{date_key[2:]}-{seq:04d}"


def parse_patient_display_code(raw: str) -> str | None:
    """Return the lower-cased UUID tail of a patient display code, or None."""
    match = _PATIENT_DISPLAY_CODE_RE.match(raw.strip())
    if not match:
        return None
    return match.group(1).lower()
