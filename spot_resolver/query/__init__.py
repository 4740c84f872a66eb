"""
Query layer for spot-resolver.

Components:
    - classify_link: Link to platform classification
    - DownloadLinkResolver: Ordered fallback chain from track to URL
    - ResultRecorder: Background persistence of query results
    - PlatformQueryService: Facade tying the above to the providers

Usage:
    from spot_resolver.query import build_service

    service = build_service(config, saavn=saavn, gaana=gaana)
"""

from spot_resolver.query.classifier import classify_link
from spot_resolver.query.recorder import ResultRecorder
from spot_resolver.query.resolver import DownloadLinkResolver
from spot_resolver.query.service import PlatformQueryService, build_service

__all__ = [
    "classify_link",
    "DownloadLinkResolver",
    "ResultRecorder",
    "PlatformQueryService",
    "build_service",
]
