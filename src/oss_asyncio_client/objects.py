import pathlib
from collections.abc import Mapping
from typing import Any

from multidict import CIMultiDict

from .base import _OSSClientBase
from .exceptions import (
    CopyError,
    DeleteError,
    GetError,
    HeadError,
    ListError,
    PutError,
)
from .listing import BucketListing, ListingDecoder, read_first_text
from .urlparsing import build_object_url, quote_key

META_PREFIX = "x-oss-meta-"


class _ObjectOperations(_OSSClientBase):
    async def list_objects(
        self,
        prefix: str | None = None,
        marker: str | None = None,
        max_keys: int | None = None,
        delimiter: str | None = None,
        headers: Mapping[str, str] | None = None,
        resources: Mapping[str, str | None] | None = None,
    ) -> BucketListing:
        params = dict(resources or {})
        if prefix:
            params["prefix"] = prefix
        if marker:
            params["marker"] = marker
        if max_keys is not None:
            params["max-keys"] = str(max_keys)
        if delimiter:
            params["delimiter"] = delimiter

        response = await self._make_request(
            "GET", ListError, headers=headers, resources=params
        )

        decoder = ListingDecoder()
        decoder.feed(response.body)
        return decoder.close()

    async def get_object(
        self,
        key: str,
        headers: Mapping[str, str] | None = None,
        resources: Mapping[str, str | None] | None = None,
    ) -> bytes:
        response = await self._make_request(
            "GET", GetError, key=key, headers=headers, resources=resources
        )
        return response.body

    async def get_object_acl(self, key: str) -> str:
        body = await self.get_object(key, resources={"acl": None})
        return read_first_text(body, "Grant") or ""

    async def head_object(self, key: str) -> dict[str, Any]:
        """Get object metadata without downloading the object."""
        response = await self._make_request("HEAD", HeadError, key=key)

        metadata = {}
        for header_name, header_value in response.headers.items():
            if header_name.lower().startswith(META_PREFIX):
                metadata[header_name[len(META_PREFIX) :]] = header_value

        return {
            "content_type": response.headers.get("Content-Type"),
            "content_length": int(response.headers.get("Content-Length", 0)),
            "etag": response.headers.get("ETag", "").strip('"'),
            "last_modified": response.headers.get("Last-Modified"),
            "object_type": response.headers.get("x-oss-object-type"),
            "storage_class": response.headers.get("x-oss-storage-class"),
            "metadata": metadata,
        }

    async def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        resources: Mapping[str, str | None] | None = None,
    ) -> None:
        request_headers = CIMultiDict(headers or {})

        if content_type:
            request_headers["Content-Type"] = content_type

        if metadata:
            for key_name, value in metadata.items():
                request_headers[f"{META_PREFIX}{key_name}"] = value

        request_headers["Content-Length"] = str(len(data))

        await self._make_request(
            "PUT",
            PutError,
            key=key,
            headers=request_headers,
            resources=resources,
            data=data,
        )

    async def put_object_from_file(
        self,
        key: str,
        file_path: str | pathlib.Path,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        resources: Mapping[str, str | None] | None = None,
    ) -> None:
        """Upload a local file. The whole file is read into memory first."""
        data = pathlib.Path(file_path).read_bytes()
        await self.put_object(
            key,
            data,
            content_type=content_type,
            metadata=metadata,
            headers=headers,
            resources=resources,
        )

    async def copy_object(
        self,
        source_key: str,
        key: str,
        source_bucket: str | None = None,
        headers: Mapping[str, str] | None = None,
        resources: Mapping[str, str | None] | None = None,
    ) -> None:
        request_headers = CIMultiDict(headers or {})
        source_bucket = source_bucket or self.bucket
        request_headers["x-oss-copy-source"] = (
            f"/{source_bucket}/{quote_key(source_key.lstrip('/'))}"
        )

        await self._make_request(
            "PUT", CopyError, key=key, headers=request_headers, resources=resources
        )

    async def delete_object(self, key: str) -> None:
        await self._make_request("DELETE", DeleteError, key=key)

    def generate_presigned_url(
        self,
        method: str,
        key: str,
        expires_in: int = 3600,
        resources: Mapping[str, str | None] | None = None,
    ) -> str:
        key = key.lstrip("/")
        url = build_object_url(self.bucket_url, key)
        return self._auth.create_presigned_url(
            method, self.bucket, key, url, expires_in, resources
        )
