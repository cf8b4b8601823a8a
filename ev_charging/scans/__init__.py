"""
Scan Token Module

Scan tokens are the QR payloads owners present at the station. A token
binds a snapshot of the booking (owner, station, instant, status) and is
checked against the copy stored on the booking before check-in.

Key Components:
- token.py: token codec and payload snapshot
- service.py: issue, scan, check-in and QR image rendering
- router.py: FastAPI endpoints for operators and owners
- schemas.py: Pydantic models for payloads and scan results

Tokens are reversible encodings, not signatures. Integrity comes from the
exact match against the stored token.
"""

from .schemas import ScanPayload, ScanTokenResponse, ScanRequest, ScanResult
from .token import encode_scan_token, decode_scan_token, build_scan_payload

__all__ = [
    "ScanPayload",
    "ScanTokenResponse",
    "ScanRequest",
    "ScanResult",
    "encode_scan_token",
    "decode_scan_token",
    "build_scan_payload"
]
