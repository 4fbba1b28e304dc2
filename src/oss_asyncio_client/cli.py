#!/usr/bin/env python3
"""OSS CLI interface using the oss-asyncio-client library."""

import asyncio
import json
import logging
import os
import sys

import click

from .client import OSSClient
from .exceptions import OSSError


def _run(coro):
    try:
        return asyncio.run(coro)
    except OSSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("--config-file", help="Path to ossutil style config file")
@click.option("--bucket", envvar="OSS_BUCKET", required=True, help="Bucket name")
@click.option("--debug", is_flag=True, help="Log signed requests to stderr")
@click.pass_context
def cli(ctx, config_file, bucket, debug):
    """OSS CLI - A command line interface for object storage operations."""
    ctx.ensure_object(dict)

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    # Create OSSClient from config file or environment variables
    if config_file:
        try:
            client = OSSClient.from_config(bucket, config_path=config_file)
        except (FileNotFoundError, ValueError) as e:
            click.echo(f"Error loading config file: {e}", err=True)
            sys.exit(1)
    else:
        access_key_id = os.getenv("OSS_ACCESS_KEY_ID")
        access_key_secret = os.getenv("OSS_ACCESS_KEY_SECRET")
        endpoint_url = os.getenv("OSS_ENDPOINT")

        if not access_key_id or not access_key_secret or not endpoint_url:
            click.echo(
                "Error: OSS_ACCESS_KEY_ID, OSS_ACCESS_KEY_SECRET and OSS_ENDPOINT "
                "must be set",
                err=True,
            )
            sys.exit(1)

        client = OSSClient(
            access_key_id=access_key_id,
            access_key_secret=access_key_secret,
            endpoint_url=endpoint_url,
            bucket=bucket,
        )

    ctx.obj["client"] = client


@cli.command()
@click.argument("key")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--content-type", help="Content type of the object")
@click.option("--metadata", help="JSON string of metadata key-value pairs")
@click.pass_context
def put(ctx, key, file_path, content_type, metadata):
    """Upload a file."""
    metadata_dict = None
    if metadata:
        try:
            metadata_dict = json.loads(metadata)
        except json.JSONDecodeError:
            click.echo("Error: Invalid JSON in metadata", err=True)
            sys.exit(1)

    async def _put():
        async with ctx.obj["client"] as client:
            await client.put_object_from_file(
                key, file_path, content_type=content_type, metadata=metadata_dict
            )

    _run(_put())
    click.echo("Upload successful!")


@cli.command()
@click.argument("key")
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.pass_context
def get(ctx, key, output_path):
    """Download an object to a file."""

    async def _get():
        async with ctx.obj["client"] as client:
            return await client.get_object(key)

    body = _run(_get())
    with open(output_path, "wb") as f:
        f.write(body)

    click.echo("Download successful!")
    click.echo(f"Content Length: {len(body)} bytes")


@cli.command()
@click.argument("key")
@click.pass_context
def acl(ctx, key):
    """Show the ACL grant of an object."""

    async def _acl():
        async with ctx.obj["client"] as client:
            return await client.get_object_acl(key)

    click.echo(_run(_acl()))


@cli.command(name="list")
@click.option("--prefix", help="Object key prefix filter")
@click.option("--marker", help="List keys after this one")
@click.option("--delimiter", help="Group keys sharing a prefix up to this")
@click.option("--max-keys", type=int, help="Maximum number of objects to return")
@click.pass_context
def list_(ctx, prefix, marker, delimiter, max_keys):
    """List objects in the bucket."""

    async def _list():
        async with ctx.obj["client"] as client:
            return await client.list_objects(
                prefix=prefix, marker=marker, max_keys=max_keys, delimiter=delimiter
            )

    listing = _run(_list())

    for common_prefix in listing.common_prefixes:
        click.echo(f"{'DIR':>30}  {common_prefix}")

    if not listing.objects and not listing.common_prefixes:
        click.echo("No objects found")
        return

    for obj in listing.objects:
        size_mb = obj.size / (1024 * 1024)
        click.echo(f"{obj.last_modified[:19]} {size_mb:>8.2f} MB  {obj.key}")

    if listing.is_truncated:
        click.echo(f"\n... (truncated, continue with --marker {listing.next_marker})")


@cli.command()
@click.argument("source_key")
@click.argument("key")
@click.option("--source-bucket", help="Bucket of the source object")
@click.pass_context
def copy(ctx, source_key, key, source_bucket):
    """Copy an object."""

    async def _copy():
        async with ctx.obj["client"] as client:
            await client.copy_object(source_key, key, source_bucket=source_bucket)

    _run(_copy())
    click.echo("Copy successful!")


@cli.command()
@click.argument("key")
@click.pass_context
def delete(ctx, key):
    """Delete an object."""

    async def _delete():
        async with ctx.obj["client"] as client:
            await client.delete_object(key)

    _run(_delete())
    click.echo("Delete successful!")


@cli.command()
@click.argument("method")
@click.argument("key")
@click.option("--expires-in", default=3600, help="URL expiration time in seconds")
@click.pass_context
def presigned_url(ctx, method, key, expires_in):
    """Generate a presigned URL."""
    client = ctx.obj["client"]

    url = client.generate_presigned_url(
        method=method.upper(), key=key, expires_in=expires_in
    )

    click.echo(url)


if __name__ == "__main__":
    cli()
