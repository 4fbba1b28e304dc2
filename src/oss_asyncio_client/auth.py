"""OSS signature version 1 authentication."""

import base64
import dataclasses
import datetime as dt
import hashlib
import hmac
import logging
import urllib.parse
from collections.abc import Mapping

from multidict import CIMultiDict
from yarl import URL

from .exceptions import CredentialError, EncodingError

logger = logging.getLogger(__name__)

VENDOR_HEADER_PREFIX = "x-oss-"

# Query parameters that take part in the signature, everything else is only
# carried in the URL.
SUBRESOURCES = frozenset(
    [
        "acl",
        "append",
        "asyncFetch",
        "bucketInfo",
        "callback",
        "callback-var",
        "cname",
        "comp",
        "continuation-token",
        "cors",
        "delete",
        "encryption",
        "endTime",
        "group",
        "inventory",
        "inventoryId",
        "lifecycle",
        "link",
        "live",
        "location",
        "logging",
        "metaQuery",
        "objectInfo",
        "objectMeta",
        "partNumber",
        "policy",
        "position",
        "qos",
        "qosInfo",
        "referer",
        "replication",
        "replicationLocation",
        "replicationProgress",
        "requestPayment",
        "response-cache-control",
        "response-content-disposition",
        "response-content-encoding",
        "response-content-language",
        "response-content-type",
        "response-expires",
        "restore",
        "security-token",
        "sequential",
        "startTime",
        "stat",
        "status",
        "symlink",
        "tagging",
        "transferAcceleration",
        "uploadId",
        "uploads",
        "versionId",
        "versioning",
        "versions",
        "vod",
        "website",
        "worm",
        "wormExtend",
        "wormId",
        "x-oss-process",
        "x-oss-request-payer",
        "x-oss-traffic-limit",
    ]
)


@dataclasses.dataclass(frozen=True)
class Credentials:
    access_key_id: str
    access_key_secret: str = dataclasses.field(repr=False)


def _get_header(headers: Mapping[str, str], name: str) -> str:
    name = name.lower()
    for header_name, value in headers.items():
        if header_name.lower() == name:
            return value
    return ""


def _param_to_query(name: str, value: str | None) -> str:
    return f"{name}={value}" if value else name


def canonicalize_headers(headers: Mapping[str, str]) -> str:
    """Build the CanonicalizedOSSHeaders block from ``x-oss-`` headers.

    Names are lower-cased and sorted, values of names that only differ in
    case are comma-joined. Every entry ends with a newline.
    """
    grouped: dict[str, list[str]] = {}
    for name, value in headers.items():
        lower_name = name.lower()
        if lower_name.startswith(VENDOR_HEADER_PREFIX):
            grouped.setdefault(lower_name, []).append(value.strip())

    return "".join(
        f"{name}:{','.join(grouped[name])}\n" for name in sorted(grouped)
    )


def canonicalize_resource(
    bucket: str, key: str, resources: Mapping[str, str | None] | None = None
) -> str:
    """Build the CanonicalizedResource: ``/bucket/key`` plus sub-resources."""
    resource = f"/{bucket}/{key}"
    if not resources:
        return resource

    subresources = sorted(
        (name, value) for name, value in resources.items() if name in SUBRESOURCES
    )
    if subresources:
        resource += "?" + "&".join(_param_to_query(k, v) for k, v in subresources)
    return resource


def canonicalize(
    method: str,
    bucket: str,
    key: str,
    headers: Mapping[str, str] | None = None,
    resources: Mapping[str, str | None] | None = None,
) -> str:
    if headers is None:
        headers = {}

    oss_headers = canonicalize_headers(headers)
    oss_resource = canonicalize_resource(bucket, key, resources)

    string_to_sign = "\n".join(
        [
            method.upper(),
            _get_header(headers, "Content-MD5"),
            _get_header(headers, "Content-Type"),
            _get_header(headers, "Date"),
            oss_headers + oss_resource,
        ]
    )

    try:
        string_to_sign.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Request can not be encoded as UTF-8: {e}") from e

    return string_to_sign


def sign(string_to_sign: str, secret: str | bytes) -> str:
    if isinstance(secret, str):
        try:
            key = secret.encode("utf-8")
        except UnicodeEncodeError as e:
            raise CredentialError("Access key secret is not valid UTF-8") from e
    elif isinstance(secret, bytes):
        key = secret
    else:
        raise CredentialError(
            f"Access key secret must be str or bytes, not {type(secret).__name__}"
        )

    try:
        message = string_to_sign.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"String to sign is not valid UTF-8: {e}") from e

    digest = hmac.new(key, message, hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def authorization_header(access_key_id: str, signature: str) -> str:
    return f"OSS {access_key_id}:{signature}"


class OSSSignature:
    def __init__(self, access_key_id: str, access_key_secret: str):
        if not access_key_id or not access_key_secret:
            raise CredentialError("Access key id and secret must not be empty")
        self.credentials = Credentials(access_key_id, access_key_secret)
        logger.debug("Init OSS auth: credentials: ******")

    def _make_signature(
        self,
        method: str,
        bucket: str,
        key: str,
        headers: Mapping[str, str],
        resources: Mapping[str, str | None] | None,
    ) -> str:
        string_to_sign = canonicalize(method, bucket, key, headers, resources)
        logger.debug("Make signature: string to be signed = %r", string_to_sign)
        return sign(string_to_sign, self.credentials.access_key_secret)

    def sign_request(
        self,
        method: str,
        bucket: str,
        key: str,
        headers: Mapping[str, str],
        resources: Mapping[str, str | None] | None = None,
    ) -> CIMultiDict[str]:
        headers = CIMultiDict(headers)
        signature = self._make_signature(method, bucket, key, headers, resources)
        headers["Authorization"] = authorization_header(
            self.credentials.access_key_id, signature
        )
        return headers

    def create_presigned_url(
        self,
        method: str,
        bucket: str,
        key: str,
        url: URL,
        expires_in: int = 3600,
        resources: Mapping[str, str | None] | None = None,
    ) -> str:
        expires = str(int(dt.datetime.now(dt.UTC).timestamp()) + expires_in)
        resources = dict(resources or {})

        signature = self._make_signature(
            method, bucket, key, {"Date": expires}, resources
        )

        resources.update(
            {
                "OSSAccessKeyId": self.credentials.access_key_id,
                "Expires": expires,
                "Signature": signature,
            }
        )
        query_string = "&".join(
            urllib.parse.quote(k, safe="")
            + (f"={urllib.parse.quote(v, safe='')}" if v else "")
            for k, v in resources.items()
        )
        return str(url) + "?" + query_string
