import pathlib

import pytest

from oss_asyncio_client.client import OSSClient
from oss_asyncio_client.exceptions import CredentialError
from oss_asyncio_client.transport import AiohttpTransport
from oss_asyncio_client.urlparsing import (
    AddressStyle,
    build_query_string,
    get_bucket_url,
    is_valid_bucket_subdomain,
    normalize_endpoint,
)


def test_client_initialization(mock_client):
    assert mock_client.access_key_id == "test-access-key"
    assert mock_client.bucket == "test-bucket"
    assert (
        str(mock_client.bucket_url)
        == "https://test-bucket.oss-cn-hangzhou.aliyuncs.com"
    )


def test_client_does_not_expose_secret(mock_client):
    assert "test-secret-key" not in repr(mock_client._auth.credentials)
    assert not hasattr(mock_client, "access_key_secret")


def test_client_bare_endpoint():
    client = OSSClient("id", "secret", "oss-cn-beijing.aliyuncs.com", "my-bucket")
    assert str(client.bucket_url) == "https://my-bucket.oss-cn-beijing.aliyuncs.com"
    assert isinstance(client._transport, AiohttpTransport)


def test_client_empty_secret():
    with pytest.raises(CredentialError):
        OSSClient("id", "", "https://oss-cn-beijing.aliyuncs.com", "my-bucket")


async def test_context_manager_closes_transport(transport):
    async with OSSClient(
        "id", "secret", "https://oss.example.com", "test-bucket", transport=transport
    ) as client:
        assert client._transport is transport
    assert transport.closed


@pytest.mark.asyncio
async def test_aiohttp_transport_session_lifecycle():
    transport = AiohttpTransport()
    assert transport._session is None
    await transport._ensure_session()
    assert transport._session is not None
    await transport.close()
    assert transport._session is None


class TestFromConfig:
    def test_from_config(self, tmp_path: pathlib.Path):
        config_file = tmp_path / "ossutilconfig"
        config_file.write_text("""[Credentials]
language=EN
endpoint=oss-cn-hangzhou.aliyuncs.com
accessKeyID=LTAI5tEXAMPLE
accessKeySecret=secret%with%percent
""")

        client = OSSClient.from_config("my-bucket", config_path=config_file)

        assert client.access_key_id == "LTAI5tEXAMPLE"
        assert client._auth.credentials.access_key_secret == "secret%with%percent"
        assert str(client.endpoint_url) == "https://oss-cn-hangzhou.aliyuncs.com"
        assert str(client.bucket_url) == "https://my-bucket.oss-cn-hangzhou.aliyuncs.com"

    def test_custom_section_and_kwargs(self, tmp_path: pathlib.Path, transport):
        config_file = tmp_path / "config"
        config_file.write_text("""[dev]
endpoint=http://localhost:9000
accessKeyID=DEVKEY
accessKeySecret=DEVSECRET
""")

        client = OSSClient.from_config(
            "my-bucket",
            config_path=config_file,
            section="dev",
            address_style=AddressStyle.PATH_STYLE,
            transport=transport,
        )

        assert client.access_key_id == "DEVKEY"
        assert str(client.bucket_url) == "http://localhost:9000/my-bucket"
        assert client._transport is transport

    def test_endpoint_from_environment(self, tmp_path: pathlib.Path, monkeypatch):
        config_file = tmp_path / "config"
        config_file.write_text("""[Credentials]
accessKeyID=KEY
accessKeySecret=SECRET
""")
        monkeypatch.setenv("OSS_ENDPOINT", "https://oss-eu-central-1.aliyuncs.com")

        client = OSSClient.from_config("my-bucket", config_path=config_file)

        assert str(client.endpoint_url) == "https://oss-eu-central-1.aliyuncs.com"

    def test_missing_endpoint(self, tmp_path: pathlib.Path, monkeypatch):
        config_file = tmp_path / "config"
        config_file.write_text("""[Credentials]
accessKeyID=KEY
accessKeySecret=SECRET
""")
        monkeypatch.delenv("OSS_ENDPOINT", raising=False)

        with pytest.raises(ValueError, match="endpoint not found"):
            OSSClient.from_config("my-bucket", config_path=config_file)

    def test_missing_secret(self, tmp_path: pathlib.Path):
        config_file = tmp_path / "config"
        config_file.write_text("""[Credentials]
endpoint=oss-cn-hangzhou.aliyuncs.com
accessKeyID=KEY
""")

        with pytest.raises(ValueError, match="accessKeySecret not found"):
            OSSClient.from_config("my-bucket", config_path=config_file)

    def test_missing_file(self, tmp_path: pathlib.Path):
        with pytest.raises(ValueError, match="accessKeyID not found"):
            OSSClient.from_config("my-bucket", config_path=tmp_path / "nope")


class TestUrlParsing:
    def test_normalize_endpoint(self):
        assert str(normalize_endpoint("oss.example.com")) == "https://oss.example.com"
        assert str(normalize_endpoint("http://oss.example.com")) == (
            "http://oss.example.com"
        )

    @pytest.mark.parametrize(
        "bucket, valid",
        [
            ("my-bucket", True),
            ("abc", True),
            ("ab", False),
            ("a" * 64, False),
            ("My-Bucket", False),
            ("my_bucket", False),
            ("-bucket", False),
            ("bucket-", False),
            ("my.bucket", False),
        ],
    )
    def test_is_valid_bucket_subdomain(self, bucket, valid):
        assert is_valid_bucket_subdomain(bucket) is valid

    def test_bucket_already_in_host(self):
        url = get_bucket_url(
            normalize_endpoint("https://my-bucket.oss-cn-hangzhou.aliyuncs.com"),
            "my-bucket",
        )
        assert str(url) == "https://my-bucket.oss-cn-hangzhou.aliyuncs.com"

    def test_virtual_hosted_invalid_bucket(self):
        with pytest.raises(ValueError, match="Invalid bucket name"):
            get_bucket_url(
                normalize_endpoint("https://oss.example.com"),
                "My_Bucket",
                AddressStyle.VIRTUAL_HOSTED,
            )

    def test_invalid_scheme(self):
        with pytest.raises(ValueError, match="Invalid endpoint URL"):
            get_bucket_url(normalize_endpoint("ftp://oss.example.com"), "my-bucket")

    def test_build_query_string(self):
        assert build_query_string(None) == ""
        assert build_query_string({"b": "2", "a": None, "c": "x y"}) == "a&b=2&c=x%20y"
