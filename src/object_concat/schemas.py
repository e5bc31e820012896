# src/object_concat/schemas.py

import io
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BucketPrefix(BaseModel):
    """A `bucket/prefix` pair as given on the command line."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., min_length=1)
    prefix: str

    @classmethod
    def parse(cls, raw: str) -> "BucketPrefix":
        """Splits on the first '/'; everything after it is the prefix."""
        parts = raw.split("/", 1)
        if len(parts) != 2:
            raise ValueError(f"'{raw}' must contain a bucket and prefix separated by '/'")
        return cls(bucket=parts[0], prefix=parts[1])

    @field_validator("bucket")
    @classmethod
    def validate_bucket_name(cls, value: str) -> str:
        if value != value.strip():
            raise ValueError("bucket name must not have leading or trailing whitespace")
        return value

    def __str__(self) -> str:
        return f"{self.bucket}/{self.prefix}"


class SourceObject(BaseModel):
    """
    One entry of a bucket listing. Validated straight from the
    `Contents` items returned by `list_objects_v2`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., min_length=1, alias="Key")
    size: int = Field(..., ge=0, alias="Size")
    etag: str | None = Field(None, alias="ETag")
    last_modified: datetime | None = Field(None, alias="LastModified")


class StagedItem(BaseModel):
    """A local materialization of a SourceObject, on disk or in memory."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    key: str
    size: int = Field(..., ge=0)
    path: Path | None = None
    data: bytes | None = None

    @model_validator(mode="after")
    def exactly_one_location(self) -> "StagedItem":
        if (self.path is None) == (self.data is None):
            raise ValueError("a staged item needs exactly one of 'path' or 'data'")
        return self

    @property
    def on_disk(self) -> bool:
        return self.path is not None


class AppendedArtifact(BaseModel):
    """The concatenation of all staged items, ready for upload."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    size: int = Field(..., ge=0)
    sha256: str
    path: Path | None = None
    buffer: io.BytesIO | None = None
