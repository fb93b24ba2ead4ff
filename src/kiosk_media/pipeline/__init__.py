"""Consumer-facing fetch pipeline: cached bytes for images, playable files for videos."""

from kiosk_media.pipeline.fetch import MediaFetchPipeline, PlayableLocation, RemoteFetcher
from kiosk_media.pipeline.tokens import LatestRequestGate, RequestToken

__all__ = [
    "LatestRequestGate",
    "MediaFetchPipeline",
    "PlayableLocation",
    "RemoteFetcher",
    "RequestToken",
]
