import enum
import re
import urllib.parse
from collections.abc import Mapping

from yarl import URL

from .exceptions import EncodingError


class AddressStyle(enum.Enum):
    AUTO = "auto"
    VIRTUAL_HOSTED = "virtual-hosted"
    PATH_STYLE = "path-style"


def normalize_endpoint(endpoint: URL | str) -> URL:
    """Endpoints are often configured as a bare host like
    ``oss-cn-hangzhou.aliyuncs.com``; those default to https.
    """
    endpoint = str(endpoint)
    if "://" not in endpoint:
        endpoint = f"https://{endpoint}"
    return URL(endpoint)


def get_bucket_url(
    url: URL, bucket: str, address_style: AddressStyle = AddressStyle.AUTO
) -> URL:
    """Constructs the bucket URL from the endpoint URL and bucket name.

    If the bucket name is already the first label of the endpoint host, the
    endpoint URL is returned as is. Otherwise the bucket becomes a subdomain
    or the first path segment, depending on whether it is a valid DNS label.
    """
    bucket = bucket.strip("/")

    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError("Invalid endpoint URL. Must be a valid HTTP(S) URL.")
    if not bucket:
        raise ValueError("Bucket name must not be empty")
    if url.host.startswith(bucket + ".") and url.path.rstrip("/").endswith(bucket):
        raise ValueError(
            f"Bucket '{bucket}' is both in the host and path part of the URL '{url}'. "
        )

    is_valid_host = is_valid_bucket_subdomain(bucket)

    # OSS and most S3 compatible services
    virtual_hosted_style = (
        url
        if url.host.startswith(bucket + ".")
        else url.with_host(f"{bucket}.{url.host}")
    )
    # bucket names that are not valid DNS labels, or self-hosted gateways
    path_style = url.with_path(bucket)

    match address_style:
        case AddressStyle.AUTO:
            return virtual_hosted_style if is_valid_host else path_style
        case AddressStyle.VIRTUAL_HOSTED:
            if is_valid_host:
                return virtual_hosted_style
        case AddressStyle.PATH_STYLE:
            return path_style

    raise ValueError(f"Invalid bucket name '{bucket}' for endpoint URL '{url}'")


def is_valid_bucket_subdomain(bucket: str) -> bool:
    """OSS bucket names: 3-63 lowercase letters, digits and hyphens,
    not starting or ending with a hyphen.
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9-]+$", bucket):
        return False

    if bucket[0] == "-" or bucket[-1] == "-":
        return False

    return True


def quote_key(key: str) -> str:
    try:
        return urllib.parse.quote(key, safe="/~")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Object key is not valid UTF-8: {e}") from e


def build_query_string(resources: Mapping[str, str | None] | None) -> str:
    """Serializes all resources sorted by name. Flag-style parameters
    (``None`` or empty value) are emitted as a bare name.
    """
    if not resources:
        return ""

    params = []
    for name, value in sorted(resources.items()):
        try:
            param = urllib.parse.quote(name, safe="")
            if value:
                param += "=" + urllib.parse.quote(value, safe="")
        except UnicodeEncodeError as e:
            raise EncodingError(
                f"Query parameter {name!r} is not valid UTF-8: {e}"
            ) from e
        params.append(param)
    return "&".join(params)


def build_object_url(
    bucket_url: URL,
    key: str = "",
    resources: Mapping[str, str | None] | None = None,
) -> URL:
    base = str(bucket_url).rstrip("/")
    url = f"{base}/{quote_key(key)}"
    query_string = build_query_string(resources)
    if query_string:
        url += "?" + query_string
    return URL(url, encoded=True)
