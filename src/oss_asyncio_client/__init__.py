"""Minimal asyncio client library for OSS style object storage."""

__version__ = "0.1.0"

from .auth import Credentials, authorization_header, canonicalize, sign
from .client import OSSClient
from .exceptions import (
    CopyError,
    CredentialError,
    DeleteError,
    EncodingError,
    GetError,
    HeadError,
    HttpStatusError,
    InvalidHeaderValueError,
    ListError,
    MalformedListingError,
    MalformedResponseError,
    OSSError,
    PutError,
    TransportError,
)
from .listing import BucketListing, ListingDecoder, ObjectRecord, decode_listing
from .transport import AiohttpTransport, Response, Transport
from .urlparsing import AddressStyle

__all__ = [
    "OSSClient",
    "AddressStyle",
    "Credentials",
    "canonicalize",
    "sign",
    "authorization_header",
    "BucketListing",
    "ObjectRecord",
    "ListingDecoder",
    "decode_listing",
    "Transport",
    "AiohttpTransport",
    "Response",
    "OSSError",
    "EncodingError",
    "InvalidHeaderValueError",
    "CredentialError",
    "MalformedResponseError",
    "MalformedListingError",
    "TransportError",
    "HttpStatusError",
    "ListError",
    "GetError",
    "HeadError",
    "PutError",
    "CopyError",
    "DeleteError",
]
