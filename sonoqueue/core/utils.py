import re
from urllib.parse import SplitResult, urlsplit

from sonoqueue.core.errors import ParseError

_BAD_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')


def parse_item(value: str) -> SplitResult:
    """
    Parse a URI given on the command line. Sonos accepts plenty of non-HTTP
    schemes (x-rincon-mp3radio:, x-sonos-spotify:, ...) so only well-formedness
    is checked.
    """
    if any(ord(c) < 0x20 or ord(c) == 0x7f for c in value):
        raise ParseError(f"{value!r}: invalid control character in URL")
    if value.startswith(':'):
        raise ParseError(f"{value!r}: missing protocol scheme")
    # the query is passed through as-is, only path and fragment must be escaped
    head, _, fragment = value.partition('#')
    if _BAD_ESCAPE.search(head.split('?', 1)[0]) or _BAD_ESCAPE.search(fragment):
        raise ParseError(f"{value!r}: invalid URL escape")
    try:
        parts = urlsplit(value)
        parts.port
    except ValueError as e:
        raise ParseError(f"{value!r}: {e}")
    return parts


def parse_location(value: str) -> SplitResult:
    """Parse an SSDP LOCATION header, which must be an absolute http(s) URL."""
    if not value:
        raise ParseError("empty location")
    parts = parse_item(value)
    if parts.scheme not in ('http', 'https') or not parts.hostname:
        raise ParseError(f"{value!r}: not an http(s) URL")
    return parts


def replace_path(location: str, path: str) -> str:
    """Copy location with its path swapped out, keeping scheme, host, port and query."""
    return parse_location(location)._replace(path=path).geturl()
