"""
Ticket code generator.

Format: {PREFIX}-{XXXXXX}
- configurable prefix, "CP-T" by default
- random body drawn from an unambiguous uppercase alphabet
  (no 0/O/1/I/L), 31^6 ≈ 8.9 * 10^8 codes per prefix

Codes are printed on tickets and encoded into QR images, so scanners
may hand us lowercase or padded input; normalize_code() undoes that.
"""

import re
import secrets

CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
DEFAULT_PREFIX = "CP-T"
DEFAULT_LENGTH = 6


def generate_ticket_code(prefix: str = DEFAULT_PREFIX, length: int = DEFAULT_LENGTH) -> str:
    """Generate a random ticket code. Uniqueness is enforced by the store."""
    if length < 4:
        raise ValueError("Ticket code body must be at least 4 characters")
    body = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix.upper()}-{body}"


def normalize_code(raw: str) -> str:
    """Strip whitespace and uppercase a scanned code."""
    return (raw or "").strip().upper()


def is_well_formed(code: str, prefix: str = DEFAULT_PREFIX, length: int = DEFAULT_LENGTH) -> bool:
    pattern = rf"^{re.escape(prefix.upper())}-[{CODE_ALPHABET}]{{{length}}}$"
    return re.match(pattern, code) is not None
