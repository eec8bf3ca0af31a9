"""Media-engine collaborators: profile selection, derivation jobs, thumbnails and probing."""

from vidhub.media.engine import DerivationEvent, DerivationExecutor
from vidhub.media.probe import probe_duration
from vidhub.media.profiles import DerivationProfile, select_profile
from vidhub.media.thumbnails import render_thumbnail

__all__ = [
    "DerivationEvent",
    "DerivationExecutor",
    "DerivationProfile",
    "probe_duration",
    "render_thumbnail",
    "select_profile",
]
