"""Bookmark document model for Chrome/Edge bookmark exports."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, List, Optional, Union

logger = logging.getLogger('bookmark_viewer')

# -11644473600000 = milliseconds from 1970-01-01 back to 1601-01-01 (UTC)
CHROME_EPOCH_OFFSET_MS = -11644473600000
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

ROOT_KEYS = ('bookmark_bar', 'other')


class BookmarkParseError(ValueError):
    """Raised when a bookmarks file is not a usable bookmark document."""


class SortCriterion(Enum):
    """Ordering applied to a folder's children for one render pass."""
    ORIGINAL = "org"
    TEXT = "text"
    DATE = "date"
    URL = "url"

    @classmethod
    def from_value(cls, value: Optional[str]) -> 'SortCriterion':
        if value is None or value == "":
            return cls.ORIGINAL
        if not isinstance(value, str):
            raise ValueError(f"Unknown sort criterion: {value!r}. Supported: 'text', 'date', 'url', 'org'")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown sort criterion: {value}. Supported: 'text', 'date', 'url', 'org'")


@dataclass(eq=False)
class BookmarkLink:
    """Represents a single bookmark."""
    id: str
    name: str
    url: str
    date_added: Optional[str] = None
    date_modified: Optional[str] = None


@dataclass(eq=False)
class BookmarkFolder:
    """Represents a bookmark folder containing other bookmarks or folders."""
    id: str
    name: str
    children: List[Union["BookmarkFolder", BookmarkLink]] = field(default_factory=list)
    date_added: Optional[str] = None
    date_modified: Optional[str] = None


BookmarkNode = Union[BookmarkFolder, BookmarkLink]


@dataclass
class BookmarkDocument:
    """The two renderable roots of a bookmarks file."""
    bookmark_bar: Optional[BookmarkFolder] = None
    other: Optional[BookmarkFolder] = None

    def roots(self) -> List[BookmarkFolder]:
        """Present roots, in display order"""
        return [root for root in (self.bookmark_bar, self.other) if root is not None]


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def parse_node(node: Any) -> Optional[BookmarkNode]:
    """
    Turn a raw JSON node into a BookmarkFolder or BookmarkLink.

    A node with a ``children`` list is a folder (even an empty one); otherwise a
    node with a non-empty ``url`` is a link. Anything else yields None.
    """
    if not isinstance(node, dict):
        return None

    node_id = _optional_str(node.get('id')) or ""
    name = _optional_str(node.get('name')) or ""
    date_added = _optional_str(node.get('date_added'))
    date_modified = _optional_str(node.get('date_modified'))

    children = node.get('children')
    if isinstance(children, list):
        parsed = []
        for child in children:
            child_node = parse_node(child)
            if child_node is None:
                logger.debug(f"Skipping unrecognized node inside folder '{node_id}'")
                continue
            parsed.append(child_node)
        return BookmarkFolder(id=node_id, name=name, children=parsed,
                              date_added=date_added, date_modified=date_modified)

    url = node.get('url')
    if isinstance(url, str) and url:
        return BookmarkLink(id=node_id, name=name, url=url,
                            date_added=date_added, date_modified=date_modified)

    return None


def parse_document(text: str) -> BookmarkDocument:
    """Parse the JSON text of a bookmarks file"""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise BookmarkParseError(f"Invalid JSON in bookmarks file: {e}") from e

    if not isinstance(data, dict):
        raise BookmarkParseError("Bookmarks file must contain a JSON object")
    roots = data.get('roots')
    if not isinstance(roots, dict):
        raise BookmarkParseError("Bookmarks file has no 'roots' object")

    document = BookmarkDocument()
    for key in ROOT_KEYS:
        root = parse_node(roots.get(key))
        if isinstance(root, BookmarkFolder):
            setattr(document, key, root)
        elif key in roots:
            logger.debug(f"Root '{key}' is not a folder, ignoring it")
    return document


def load_document(file_bytes: bytes) -> BookmarkDocument:
    """Decode raw file content as UTF-8 text and parse it"""
    return parse_document(file_bytes.decode('utf-8-sig', errors='replace'))


def decode_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """
    Convert a Chrome timestamp (microseconds since 1601-01-01) to an aware UTC datetime.

    Returns None for missing or non-numeric values so callers can render nothing.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    digits = text[1:] if text[:1] in ('-', '+') else text
    if not (digits.isascii() and digits.isdigit()):
        return None

    microseconds = int(text)
    millis = CHROME_EPOCH_OFFSET_MS + microseconds // 1000
    try:
        return UNIX_EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return None


def format_date(date: datetime, date_format: str = "%d.%m.%Y", zone=None) -> str:
    """Render the numeric year/month/day of a date in the given zone"""
    if zone is not None:
        try:
            date = date.astimezone(zone)
        except (OverflowError, ValueError, OSError):
            # zones cannot always be resolved at the calendar edges
            pass
    return date.strftime(date_format)
