"""Streaming decoder for the bucket listing (``GET /?...``) response.

The document is consumed as a flat stream of start/end events, never as a
tree: every element is cleared as soon as it has been handled and detached
from the document root once its top-level block ends. Only the result itself
grows with the size of the listing.
"""

import dataclasses
import enum
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable

from .exceptions import MalformedListingError, MalformedResponseError

_DIGITS = re.compile(r"[0-9]+")

_BUCKET_FIELDS = {
    "Name": "bucket_name",
    "Prefix": "prefix",
    "Marker": "marker",
    "MaxKeys": "max_keys",
    "Delimiter": "delimiter",
    "NextMarker": "next_marker",
}

_OBJECT_FIELDS = {
    "Key": "key",
    "LastModified": "last_modified",
    "ETag": "etag",
    "Type": "type",
    "StorageClass": "storage_class",
}

_OWNER_FIELDS = {
    "ID": "owner_id",
    "DisplayName": "owner_display_name",
}


@dataclasses.dataclass(frozen=True)
class ObjectRecord:
    key: str = ""
    last_modified: str = ""
    size: int = 0
    etag: str = ""
    type: str = ""
    storage_class: str = ""
    owner_id: str = ""
    owner_display_name: str = ""


@dataclasses.dataclass(frozen=True)
class BucketListing:
    bucket_name: str = ""
    prefix: str = ""
    marker: str = ""
    max_keys: str = ""
    delimiter: str = ""
    is_truncated: bool = False
    next_marker: str = ""
    objects: tuple[ObjectRecord, ...] = ()
    common_prefixes: tuple[str, ...] = ()


class _State(enum.Enum):
    IDLE = "idle"
    IN_CONTENTS = "in-contents"
    IN_OWNER = "in-owner"
    IN_COMMON_PREFIXES = "in-common-prefixes"
    DONE = "done"


def _local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


def _parse_size(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise MalformedListingError(f"Invalid object size: {text!r}")
    return int(text)


class ListingDecoder:
    """Incremental decoder: ``feed()`` response chunks in order, then
    ``close()`` to get the :class:`BucketListing`.

    A ``Contents`` block starts from an empty record, fields missing from
    the XML get their defaults instead of the previous object's values.
    """

    def __init__(self):
        self._parser = ET.XMLPullParser(events=("start", "end"))
        self._root: ET.Element | None = None
        self._depth = 0
        self._state = _State.IDLE
        self._has_content = False
        self._bucket: dict[str, str | bool] = {}
        self._scratch: dict[str, str | int] = {}
        self._objects: list[ObjectRecord] = []
        self._common_prefixes: list[str] = []

    def feed(self, data: bytes) -> None:
        if self._state is _State.DONE:
            raise ValueError("Cannot feed a closed ListingDecoder")
        if not self._has_content and data.strip():
            self._has_content = True
        self._run(self._parser.feed, data)

    def close(self) -> BucketListing:
        if self._state is _State.DONE:
            raise ValueError("ListingDecoder is already closed")

        # Some services answer an empty bucket with an empty body
        if not self._has_content:
            self._state = _State.DONE
            return BucketListing()

        self._run(self._parser.close)
        if self._state is not _State.IDLE:
            self._fail(f"Unexpected end of listing in state {self._state.value}")

        self._state = _State.DONE
        return BucketListing(
            **self._bucket,
            objects=tuple(self._objects),
            common_prefixes=tuple(self._common_prefixes),
        )

    def _run(self, func, *args) -> None:
        try:
            func(*args)
            for event, elem in self._parser.read_events():
                tag = _local_name(elem.tag)
                if event == "start":
                    if self._root is None:
                        self._root = elem
                    self._depth += 1
                    self._on_start(tag)
                else:
                    self._depth -= 1
                    self._on_end(tag, elem.text or "")
                    elem.clear()
                    if self._depth == 1:
                        self._root.clear()
        except ET.ParseError as e:
            self._fail(f"Invalid listing XML: {e}", e)
        except MalformedListingError:
            self._discard()
            raise

    def _on_start(self, tag: str) -> None:
        match self._state, tag:
            case _State.IDLE, "Contents":
                self._scratch = {}
                self._state = _State.IN_CONTENTS
            case _State.IDLE, "CommonPrefixes":
                self._state = _State.IN_COMMON_PREFIXES
            case _State.IN_CONTENTS, "Owner":
                self._state = _State.IN_OWNER

    def _on_end(self, tag: str, text: str) -> None:
        match self._state:
            case _State.IDLE:
                if tag == "IsTruncated":
                    self._bucket["is_truncated"] = text == "true"
                elif tag in _BUCKET_FIELDS:
                    self._bucket[_BUCKET_FIELDS[tag]] = text
            case _State.IN_CONTENTS:
                if tag == "Contents":
                    self._objects.append(ObjectRecord(**self._scratch))
                    self._state = _State.IDLE
                elif tag == "Size":
                    self._scratch["size"] = _parse_size(text)
                elif tag in _OBJECT_FIELDS:
                    self._scratch[_OBJECT_FIELDS[tag]] = text
            case _State.IN_OWNER:
                if tag == "Owner":
                    self._state = _State.IN_CONTENTS
                elif tag in _OWNER_FIELDS:
                    self._scratch[_OWNER_FIELDS[tag]] = text
            case _State.IN_COMMON_PREFIXES:
                if tag == "CommonPrefixes":
                    self._state = _State.IDLE
                elif tag == "Prefix":
                    self._common_prefixes.append(text)

    def _discard(self) -> None:
        self._state = _State.DONE
        self._root = None
        self._bucket = {}
        self._scratch = {}
        self._objects = []
        self._common_prefixes = []

    def _fail(self, message: str, cause: Exception | None = None):
        self._discard()
        raise MalformedListingError(message) from cause


def decode_listing(data: bytes | Iterable[bytes]) -> BucketListing:
    decoder = ListingDecoder()
    if isinstance(data, bytes | bytearray):
        data = [bytes(data)]
    for chunk in data:
        decoder.feed(chunk)
    return decoder.close()


def read_first_text(data: bytes, tag: str) -> str | None:
    """Text of the first element named ``tag`` (namespace ignored), or None.

    Parsing stops at the first match, the rest of the document is not checked.
    """
    parser = ET.XMLPullParser(events=("end",))
    try:
        parser.feed(data)
        for _, elem in parser.read_events():
            if _local_name(elem.tag) == tag:
                return elem.text or ""
        parser.close()
        for _, elem in parser.read_events():
            if _local_name(elem.tag) == tag:
                return elem.text or ""
    except ET.ParseError as e:
        raise MalformedResponseError(f"Invalid XML response: {e}") from e
    return None
