"""Storage-related data models shared by the backends."""

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, field_validator


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    """Epoch milliseconds for a datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


class ObjectMetadata(BaseModel):
    """Backend-side metadata for one stored object."""
    key: str                         # Logical key, storage prefix stripped
    size: int = 0                    # Bytes
    etag: str | None = None          # Provider-specific content tag, unquoted
    last_modified: datetime          # Timezone-aware UTC
    content_type: str | None = None

    @field_validator("etag")
    @classmethod
    def strip_etag_quotes(cls, v: str | None) -> str | None:
        """S3 and Azure return ETags wrapped in double quotes."""
        return v.strip('"') if v else v

    @field_validator("last_modified")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Normalize to timezone-aware UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def last_modified_millis(self) -> int:
        return to_epoch_millis(self.last_modified)
