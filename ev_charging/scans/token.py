import base64
from datetime import datetime, timezone

from ev_charging.exceptions import ValidationFailure
from ev_charging.models import Booking, Station, EVOwner
from ev_charging.scans.schemas import ScanPayload

TOKEN_PREFIX = "QR_"
INVALID_TOKEN_MESSAGE = "Invalid scan token format"

def build_scan_payload(booking: Booking, station: Station, owner: EVOwner, generated_at: datetime) -> ScanPayload:
    """Snapshot of the booking as it is right now"""
    return ScanPayload(
        booking_id=booking.id,
        user_id=booking.user_id,
        station_id=station.id,
        station_name=station.name,
        station_address=station.address,
        owner_name=owner.name,
        owner_nic=owner.nic,
        owner_phone=owner.phone,
        reservation_datetime=booking.reservation_datetime,
        status=booking.status,
        booking_created_at=booking.created_at,
        generated_at=generated_at
    )

def encode_scan_token(payload: ScanPayload, generated_at: datetime) -> str:
    """QR_ + base64(<json>_<unix seconds>)"""
    unix_seconds = int(generated_at.replace(tzinfo=timezone.utc).timestamp())
    raw = f"{payload.model_dump_json()}_{unix_seconds}"
    return TOKEN_PREFIX + base64.b64encode(raw.encode("utf-8")).decode("ascii")

def decode_scan_token(token: str) -> ScanPayload:
    if not token or not token.startswith(TOKEN_PREFIX):
        raise ValidationFailure(INVALID_TOKEN_MESSAGE)

    try:
        raw = base64.b64decode(token[len(TOKEN_PREFIX):], validate=True).decode("utf-8")
        json_data, _, unix_seconds = raw.rpartition("_")
        if not json_data or not unix_seconds.isdigit():
            raise ValueError("missing timestamp suffix")
        return ScanPayload.model_validate_json(json_data)
    except ValueError as e:
        # binascii, unicode and pydantic errors all derive from ValueError
        raise ValidationFailure(INVALID_TOKEN_MESSAGE) from e
