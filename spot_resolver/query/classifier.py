"""
Link classification.

Maps a raw link to the platform that can resolve it using plain
substring tests, so short links (youtu.be), localized Spotify paths and
mobile share links all classify without URL parsing.
"""

from spot_resolver.core.models import Source

# Checked in order; first match wins
_LINK_MARKERS: tuple[tuple[tuple[str, ...], Source], ...] = (
    (("spotify",), Source.SPOTIFY),
    (("youtube.com", "youtu.be"), Source.YOUTUBE),
    (("saavn",), Source.JIO_SAAVN),
    (("gaana",), Source.GAANA),
)


def classify_link(url: str) -> Source | None:
    """
    Return the platform a link belongs to.

    Args:
        url: Any user-supplied string.

    Returns:
        The matching Source, or None when the link is invalid.

    Example:
        classify_link("https://youtu.be/dQw4w9WgXcQ")
        # Source.YOUTUBE
    """
    lowered = url.lower()
    for markers, source in _LINK_MARKERS:
        if any(marker in lowered for marker in markers):
            return source
    return None
