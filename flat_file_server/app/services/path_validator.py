import os
import re
from pathlib import Path
from urllib.parse import unquote_to_bytes

from flat_file_server.app.errors import BadRequest

# A '%' that does not start a two-digit hex escape
MALFORMED_ESCAPE = re.compile(rb'%(?![0-9A-Fa-f]{2})')


def decode_path(raw_path: bytes) -> str:
    """Percent-decode the path part of a request target.

    Raises BadRequest on a malformed escape or on bytes that are not UTF-8.
    """
    # Query strings are not part of the stored name
    raw_path = raw_path.split(b'?', 1)[0]
    if MALFORMED_ESCAPE.search(raw_path):
        raise BadRequest()
    try:
        return unquote_to_bytes(raw_path).decode('utf-8')
    except UnicodeDecodeError:
        raise BadRequest()


def extract_filename(decoded_path: str) -> str:
    """Strip the leading separator and check that one flat name remains."""
    filename = decoded_path[1:] if decoded_path.startswith('/') else decoded_path

    if '/' in filename or '..' in filename:
        raise BadRequest("Nested paths are not allowed")
    if '\0' in filename:
        raise BadRequest()

    return filename


def resolve_path(filename: str, root: Path) -> Path:
    """Join a validated filename with the storage root and normalize it."""
    if not filename:
        raise BadRequest()

    root = os.path.normpath(root)
    full_path = os.path.normpath(os.path.join(root, filename))
    if os.path.dirname(full_path) != root:
        raise BadRequest("Nested paths are not allowed")
    return Path(full_path)
