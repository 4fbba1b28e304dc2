import base64
import configparser
import datetime as dt
import email.utils
import hashlib
import logging
import os
import pathlib
import re
from collections.abc import Mapping
from typing import Self

from multidict import CIMultiDict
from yarl import URL

from .auth import VENDOR_HEADER_PREFIX, OSSSignature
from .exceptions import (
    HttpStatusError,
    InvalidHeaderValueError,
    MalformedResponseError,
)
from .listing import read_first_text
from .transport import AiohttpTransport, Response, Transport
from .urlparsing import (
    AddressStyle,
    build_object_url,
    get_bucket_url,
    normalize_endpoint,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_HEADER_VALUE = re.compile(r"[\t\x20-\x7e]*")


def http_date() -> str:
    return email.utils.format_datetime(dt.datetime.now(dt.UTC), usegmt=True)


def content_md5(data: bytes) -> str:
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


def _validate_header(name: str, value: str) -> None:
    if not isinstance(name, str) or not _TOKEN.fullmatch(name):
        raise InvalidHeaderValueError(str(name), "not a valid header name")
    if not isinstance(value, str):
        raise InvalidHeaderValueError(
            name, f"value must be str, not {type(value).__name__}"
        )
    if not _HEADER_VALUE.fullmatch(value):
        raise InvalidHeaderValueError(
            name, "value contains non-ASCII or control characters"
        )


class _OSSClientBase:
    def __init__(
        self,
        access_key_id: str,
        access_key_secret: str,
        endpoint_url: URL | str,
        bucket: str,
        address_style: AddressStyle = AddressStyle.AUTO,
        transport: Transport | None = None,
        timeout: float | None = None,
    ):
        self.access_key_id = access_key_id
        self.endpoint_url = normalize_endpoint(endpoint_url)
        self.bucket = bucket.strip("/")
        self.bucket_url = get_bucket_url(self.endpoint_url, bucket, address_style)

        self._auth = OSSSignature(access_key_id, access_key_secret)
        self._transport = transport or AiohttpTransport(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        bucket: str,
        config_path: str | pathlib.Path | None = None,
        section: str = "Credentials",
        **kwargs,
    ) -> Self:
        """Create a client from an ossutil style INI config file."""
        if config_path is None:
            config_path = pathlib.Path.home() / ".ossutilconfig"
        else:
            config_path = pathlib.Path(config_path)

        # Config file may or may not exist
        config_data = {}
        if config_path.exists():
            config = configparser.ConfigParser(interpolation=None)
            config.read(config_path)
            if section in config:
                config_data = dict(config[section])

        # configparser lower-cases option names
        access_key_id = config_data.get("accesskeyid")
        access_key_secret = config_data.get("accesskeysecret")

        if not access_key_id:
            raise ValueError(
                f"accessKeyID not found in section '{section}' of {config_path}"
            )
        if not access_key_secret:
            raise ValueError(
                f"accessKeySecret not found in section '{section}' of {config_path}"
            )

        endpoint_url = config_data.get("endpoint") or os.environ.get("OSS_ENDPOINT")
        if not endpoint_url:
            raise ValueError(
                f"endpoint not found in section '{section}' of {config_path} "
                f"and OSS_ENDPOINT is not set"
            )

        return cls(access_key_id, access_key_secret, endpoint_url, bucket, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self._transport.close()

    def build_request(
        self,
        method: str,
        key: str = "",
        headers: Mapping[str, str] | None = None,
        resources: Mapping[str, str | None] | None = None,
        data: bytes | None = None,
    ) -> tuple[URL, CIMultiDict[str]]:
        """Return the request URL and the signed headers.

        The passed ``headers`` mapping is copied, never modified. Header names
        are case-insensitive: a later ``x-oss-`` header is added next to an
        earlier one of the same name, any other header replaces it. Leading
        slashes are stripped from ``key``.
        """
        key = key.lstrip("/")
        request_headers = CIMultiDict()
        for name, value in (headers or {}).items():
            _validate_header(name, value)
            if name.lower().startswith(VENDOR_HEADER_PREFIX):
                request_headers.add(name, value)
            else:
                request_headers[name] = value

        request_headers.setdefault("Date", http_date())

        if data is not None:
            request_headers.setdefault("Content-Type", DEFAULT_CONTENT_TYPE)
            request_headers.setdefault("Content-MD5", content_md5(data))

        url = build_object_url(self.bucket_url, key, resources)
        signed_headers = self._auth.sign_request(
            method, self.bucket, key, request_headers, resources
        )
        return url, signed_headers

    def _raise_for_status(
        self, response: Response, error_class: type[HttpStatusError]
    ) -> None:
        if response.ok:
            return

        error_code = None
        message = None
        if response.body.strip():
            try:
                error_code = read_first_text(response.body, "Code")
                message = read_first_text(response.body, "Message")
            except MalformedResponseError:
                message = response.body[:200].decode("utf-8", errors="replace")

        raise error_class(response.status, message, error_code)

    async def _make_request(
        self,
        method: str,
        error_class: type[HttpStatusError],
        key: str = "",
        headers: Mapping[str, str] | None = None,
        resources: Mapping[str, str | None] | None = None,
        data: bytes | None = None,
    ) -> Response:
        url, signed_headers = self.build_request(method, key, headers, resources, data)

        logger.debug("%s %s", method, url)
        response = await self._transport.send(method, url, signed_headers, data)
        logger.debug("%s %s -> %s", method, url, response.status)

        self._raise_for_status(response, error_class)
        return response
