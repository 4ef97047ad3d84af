"""
Display-only bidder pseudonyms.

``anonymize`` is a deterministic 32-bit string hash, not a cryptographic
one. It hides bidder identities on public auction pages; it must never be
used for access control, and different bidders may share a handle.
"""

ANONYMOUS_PREFIX = "BIDDER-"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def string_hash(text: str) -> int:
    """Rolling ``hash * 31 + code_unit`` over UTF-16 code units, wrapped to signed 32-bit."""
    encoded = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32(h * 31 + code_unit)
    return h


def anonymize(bidder_id: str, auction_id: str) -> str:
    """Stable ``BIDDER-XXXX`` handle for a bidder within one auction."""
    code = abs(string_hash(f"{bidder_id}-{auction_id}")) % 10000
    return f"{ANONYMOUS_PREFIX}{code:04d}"
