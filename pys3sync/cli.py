"""CLI interface for pys3sync."""

import logging
import threading
from pathlib import Path
from typing import Any, Optional

import click

from .client import S3Client
from .cli_progress import run_sync_with_progress
from .config import config
from .exceptions import S3ClientError, S3ConfigError, S3SyncError, SyncCancelledError
from .output import OutputFormatter
from .sync import (
    OperationType,
    SyncConfig,
    SyncConfigError,
    SyncEngine,
    SyncResult,
    load_sync_configs_from_json,
    summarize,
)
from .utils import LIST_PAGE_SIZE, format_size, parse_s3_url
from .validation import normalize_prefix, validate_bucket_name

logger = logging.getLogger(__name__)

COMPARE_CHOICES = ["smart", "size-only", "checksum", "time"]


def _make_client(ctx: Any) -> S3Client:
    """Build the S3 client from global options and configuration."""
    return S3Client(
        region=ctx.obj.get("region"),
        endpoint_url=ctx.obj.get("endpoint_url"),
        profile=ctx.obj.get("profile"),
    )


def _parse_target(out: OutputFormatter, ctx: Any, target: Optional[str]) -> tuple[str, str]:
    """Resolve TARGET, falling back to the configured default bucket."""
    try:
        bucket, prefix = parse_s3_url(target or "", default_bucket=config.default_bucket)
    except ValueError as e:
        if target:
            out.error(str(e))
        else:
            out.error("TARGET is required when no default bucket is configured")
        ctx.exit(1)
        raise  # Unreachable, but helps type checker
    return bucket, prefix


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option("--endpoint-url", help="Custom endpoint for S3-compatible services")
@click.option("--region", help="AWS region")
@click.option("--profile", help="Named AWS profile for credentials")
@click.version_option(package_name="pys3sync")
@click.pass_context
def main(
    ctx: Any,
    quiet: bool,
    json: bool,
    verbose: bool,
    endpoint_url: Optional[str],
    region: Optional[str],
    profile: Optional[str],
) -> None:
    """pys3sync - Synchronize local directories with S3 buckets."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["endpoint_url"] = endpoint_url
    ctx.obj["region"] = region
    ctx.obj["profile"] = profile
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pys3sync").setLevel(logging.DEBUG)
    else:
        # Keep boto3/botocore and our own debug chatter out of normal runs
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--region", help="Default AWS region")
@click.option("--endpoint-url", help="Default endpoint URL")
@click.option("--profile", help="Default AWS profile")
@click.option("--bucket", help="Default bucket for commands that accept one")
@click.pass_context
def init(
    ctx: Any,
    region: Optional[str],
    endpoint_url: Optional[str],
    profile: Optional[str],
    bucket: Optional[str],
) -> None:
    """Store default settings.

    Settings are written to ~/.config/pys3sync/config. Environment
    variables still take precedence over stored values.
    """
    out: OutputFormatter = ctx.obj["out"]

    settings = {
        "region": region,
        "endpoint_url": endpoint_url,
        "profile": profile,
        "default_bucket": bucket,
    }
    settings = {name: value for name, value in settings.items() if value}
    if not settings:
        out.error("Nothing to save. Pass at least one of --region, --endpoint-url, "
                  "--profile or --bucket")
        ctx.exit(1)

    if bucket:
        try:
            validate_bucket_name(bucket)
        except S3SyncError as e:
            out.error(str(e))
            ctx.exit(1)

    try:
        for name, value in settings.items():
            config.save_setting(name, value)
    except (OSError, S3ConfigError) as e:
        out.error(f"Failed to save configuration: {e}")
        ctx.exit(1)

    out.success(f"Configuration saved to {config.get_config_path()}")


def _output_result(out: OutputFormatter, result: SyncResult) -> None:
    if out.json_output:
        out.output_json(result.to_dict())


@main.command()
@click.argument("local", type=click.Path(), required=False)
@click.argument("target", required=False)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with sync definitions to run instead of LOCAL/TARGET",
)
@click.option("--dry-run", is_flag=True, help="Show what would be synced without syncing")
@click.option("--delete", is_flag=True, help="Delete remote objects with no local file")
@click.option("--include", "-i", multiple=True, help="Only sync files matching this glob")
@click.option("--exclude", "-e", multiple=True, help="Skip files matching this glob")
@click.option(
    "--workers",
    "-w",
    type=int,
    default=None,
    help="Number of parallel uploads (default: 5)",
)
@click.option(
    "--compare",
    type=click.Choice(COMPARE_CHOICES),
    default="smart",
    show_default=True,
    help="How to decide whether a file changed",
)
@click.option("--no-progress", is_flag=True, help="Disable progress display")
@click.pass_context
def sync(
    ctx: Any,
    local: Optional[str],
    target: Optional[str],
    config_file: Optional[Path],
    dry_run: bool,
    delete: bool,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    workers: Optional[int],
    compare: str,
    no_progress: bool,
) -> None:
    """Sync a local directory to an S3 prefix.

    LOCAL: Local directory to upload from

    TARGET: Destination in the form s3://bucket/prefix. Without a bucket
    (omitted, or s3:///prefix) the configured default bucket is used.

    Examples:
        pys3sync sync ./site s3://my-bucket/www
        pys3sync sync ./site s3://my-bucket/www --delete --dry-run
        pys3sync sync ./data s3://my-bucket -e "*.tmp" -e ".git/"
        pys3sync sync --config syncs.json
    """
    out: OutputFormatter = ctx.obj["out"]

    if workers is None:
        workers = config.concurrency

    if config_file is not None:
        if local or target:
            out.error("Cannot combine --config with LOCAL/TARGET arguments")
            ctx.exit(1)
        try:
            configs = load_sync_configs_from_json(config_file)
        except SyncConfigError as e:
            out.error(str(e))
            ctx.exit(1)
            return  # Unreachable, but helps type checker
        for sync_config in configs:
            sync_config.dry_run = dry_run
    else:
        if not local:
            out.error("LOCAL is required unless --config is given")
            ctx.exit(1)
            return  # Unreachable, but helps type checker
        bucket, prefix = _parse_target(out, ctx, target)
        configs = [
            SyncConfig(
                local_path=Path(local),
                bucket=bucket,
                prefix=prefix,
                dry_run=dry_run,
                delete_extra=delete,
                include_patterns=list(include),
                exclude_patterns=list(exclude),
                parallelism=workers,
                comparator=compare,
            )
        ]

    engine_out = OutputFormatter(json_output=out.json_output, quiet=out.quiet)
    engine = SyncEngine(_make_client(ctx), engine_out)

    # Set by the executor on Ctrl-C so in-flight work winds down
    cancel_event = threading.Event()
    failed = False
    for sync_config in configs:
        try:
            result = run_sync_with_progress(
                engine,
                sync_config,
                show_progress=not (no_progress or out.quiet or out.json_output),
                cancel_event=cancel_event,
            )
        except KeyboardInterrupt:
            cancel_event.set()
            out.warning("Sync cancelled by user")
            ctx.exit(130)
            return
        except SyncCancelledError as e:
            out.warning(f"Sync cancelled: {e}")
            ctx.exit(130)
            return
        except S3SyncError as e:
            out.error(str(e))
            failed = True
            continue

        _output_result(out, result)
        if result.has_errors:
            if out.quiet:
                out.error(f"{len(result.errors)} operation(s) failed")
            failed = True

    if failed:
        ctx.exit(1)


@main.command()
@click.argument("local", type=click.Path(exists=True, file_okay=False))
@click.argument("target", required=False)
@click.option("--delete", is_flag=True, help="Include deletes of remote-only objects")
@click.option("--include", "-i", multiple=True, help="Only consider files matching this glob")
@click.option("--exclude", "-e", multiple=True, help="Ignore files matching this glob")
@click.option(
    "--compare",
    type=click.Choice(COMPARE_CHOICES),
    default="smart",
    show_default=True,
    help="How to decide whether a file changed",
)
@click.option("--all", "show_all", is_flag=True, help="Also list skipped files")
@click.pass_context
def plan(
    ctx: Any,
    local: str,
    target: Optional[str],
    delete: bool,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    compare: str,
    show_all: bool,
) -> None:
    """Show the operations a sync would perform, without executing them.

    Examples:
        pys3sync plan ./site s3://my-bucket/www --delete
        pys3sync --json plan ./site s3://my-bucket/www
    """
    out: OutputFormatter = ctx.obj["out"]
    bucket, prefix = _parse_target(out, ctx, target)

    sync_config = SyncConfig(
        local_path=Path(local),
        bucket=bucket,
        prefix=prefix,
        dry_run=True,
        delete_extra=delete,
        include_patterns=list(include),
        exclude_patterns=list(exclude),
        comparator=compare,
    )

    engine = SyncEngine(_make_client(ctx), OutputFormatter(json_output=out.json_output, quiet=True))
    try:
        sync_config.validate()
        operations = engine.build_plan(sync_config)
    except S3SyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    summary = summarize(operations)
    if out.json_output:
        out.output_json(
            {
                "operations": [
                    {
                        "type": op.type.value,
                        "path": op.relative_path,
                        "key": op.remote_key,
                        "size": op.size,
                        "reason": op.reason,
                    }
                    for op in operations
                    if show_all or op.type != OperationType.SKIP
                ],
                "summary": summary.to_dict(),
            }
        )
        return

    rows = [
        [op.type.value, op.relative_path, op.remote_key, format_size(op.size), op.reason]
        for op in operations
        if show_all or op.type != OperationType.SKIP
    ]
    if rows:
        out.table(
            f"Sync plan for s3://{bucket}/{normalize_prefix(prefix)}",
            ["Action", "Path", "Key", "Size", "Reason"],
            rows,
        )
    out.info(
        f"{summary.uploads} upload(s) ({format_size(summary.upload_bytes)}), "
        f"{summary.deletes} delete(s), {summary.skips} unchanged"
    )


@main.command()
@click.argument("target", required=False)
@click.option("--limit", "-n", type=int, default=None, help="Stop after this many objects")
@click.pass_context
def ls(ctx: Any, target: Optional[str], limit: Optional[int]) -> None:
    """List objects under an S3 prefix.

    TARGET: s3://bucket/prefix (the prefix is optional; without TARGET the
    configured default bucket is listed)
    """
    out: OutputFormatter = ctx.obj["out"]
    bucket, prefix = _parse_target(out, ctx, target)
    client = _make_client(ctx)

    objects = []
    token: Optional[str] = None
    try:
        while True:
            page = client.list_objects_page(
                bucket, prefix, continuation_token=token, max_keys=LIST_PAGE_SIZE
            )
            objects.extend(page.objects)
            if limit is not None and len(objects) >= limit:
                objects = objects[:limit]
                break
            if not page.is_truncated or not page.next_token:
                break
            token = page.next_token
    except S3ClientError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            [
                {
                    "key": obj.key,
                    "size": obj.size,
                    "last_modified": obj.last_modified,
                    "etag": obj.etag,
                }
                for obj in objects
            ]
        )
        return

    if not objects:
        out.info("No objects found")
        return

    out.table(
        f"s3://{bucket}/{prefix}",
        ["Key", "Size", "Last modified"],
        [
            [
                obj.key,
                format_size(obj.size),
                obj.last_modified.strftime("%Y-%m-%d %H:%M:%S") if obj.last_modified else "",
            ]
            for obj in objects
        ],
    )
    total = sum(obj.size for obj in objects)
    out.info(f"{len(objects)} object(s), {format_size(total)}")


if __name__ == "__main__":
    main()
