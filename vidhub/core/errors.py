"""Error taxonomy shared by the ingest pipeline, the catalog and the HTTP layer.

Every error carries a stable ``code`` and a short ``reason``. The reason is
safe to show to callers: it never contains filesystem paths or engine command
lines, which are logged instead.
"""

from __future__ import annotations


class VidhubError(Exception):
    """Base class for all errors raised by the Vidhub core."""

    code = "vidhub_error"

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason or self.code)
        self.reason = reason or self.code


class UnsupportedFormat(VidhubError):
    """The upload is missing or its extension is not in the supported set."""

    code = "unsupported_format"


class InvalidProfile(VidhubError):
    """No derivation profile exists for the requested processing type."""

    code = "invalid_profile"


class DerivationError(VidhubError):
    """The media engine failed to produce the main artifact.

    Fatal to an ingestion: no record is committed and partial artifacts are purged.
    """

    code = "derivation_error"


class ThumbnailDerivationError(DerivationError):
    """The preview image could not be produced. Never fatal to an ingestion."""

    code = "thumbnail_derivation_error"


class InvalidQuery(VidhubError):
    """Listing parameters are out of range."""

    code = "invalid_query"


__all__ = [
    "VidhubError",
    "UnsupportedFormat",
    "InvalidProfile",
    "DerivationError",
    "ThumbnailDerivationError",
    "InvalidQuery",
]
