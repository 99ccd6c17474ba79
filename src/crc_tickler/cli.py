import logging
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import click
import structlog

from crc_tickler.checksum import ChecksumValue, ContentDecodeError, compute_checksum, format_checksum, to_signed
from crc_tickler.config import MAX_COMMENT_LENGTH, SearchConfig
from crc_tickler.solver import find_matching_comment
from crc_tickler.state_queue import SingleSlotQueue
from crc_tickler.state_snapshot import SearchSnapshot
from crc_tickler.ui import ui_loop
from crc_tickler.utils import append_comment, backup_and_write, load_content, parse_checksum


def _stderr_logger(*args) -> structlog.PrintLogger:
    # Resolved per call so a swapped sys.stderr is honored.
    return structlog.PrintLogger(sys.stderr)


def configure_logging(verbose: bool) -> None:
    """Route structlog to stderr: INFO when verbose, WARNING otherwise."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO if verbose else logging.WARNING),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def read_file(file_path: str) -> str:
    try:
        return load_content(file_path)
    except (ContentDecodeError, OSError) as e:
        raise click.ClickException(str(e))


@click.group()
def cli():
    pass


def solver(content: str, target: ChecksumValue, config: SearchConfig, show_progress: bool) -> Optional[str]:
    """Run the comment search in the background while the UI follows its progress."""
    state_queue: SingleSlotQueue[SearchSnapshot] = SingleSlotQueue()
    stop = threading.Event()

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(
            find_matching_comment, content, target, config, state_queue=state_queue, stop=stop
        )

        try:
            if show_progress:
                ui_loop(state_queue)
            else:
                future.result()
        except KeyboardInterrupt:
            stop.set()
            state_queue.close()
            future.result()
            raise click.Abort()

        return future.result()


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def checksum(file_path: str):
    """Calculate the Flyway checksum of a migration file."""
    content = read_file(file_path)
    value = compute_checksum(content)

    click.echo(f"Source file: {file_path}")
    click.echo()
    click.echo("=== Calculating Checksum ===")
    click.echo(f"Checksum (Flyway): {to_signed(value)}")
    click.echo(f"Checksum (hex): 0x{value:08X}")
    click.echo(f"File size: {os.path.getsize(file_path)} bytes")


@cli.command()
@click.argument("dst_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--source", "-s", "src_path", type=click.Path(exists=True, dir_okay=False),
              help="File whose checksum DST_PATH must match")
@click.option("--target", "-t", "target_text", help="Checksum to match: signed/unsigned decimal or 0x hex")
@click.option("--workers", "-w", type=click.IntRange(min=1), default=16, show_default=True)
@click.option("--max-length", "-m", type=click.IntRange(1, MAX_COMMENT_LENGTH),
              default=MAX_COMMENT_LENGTH, show_default=True, help="Longest comment body to try")
@click.option("--dry-run", is_flag=True, help="Report the comment without changing DST_PATH")
@click.option("--progress/--no-progress", default=True, help="Show live search progress")
@click.option("--verbose", "-v", is_flag=True, help="Log search diagnostics to stderr")
def match(
    dst_path: str,
    src_path: Optional[str],
    target_text: Optional[str],
    workers: int,
    max_length: int,
    dry_run: bool,
    progress: bool,
    verbose: bool,
):
    """Append a comment to DST_PATH so its checksum matches the source's."""
    if (src_path is None) == (target_text is None):
        raise click.UsageError("Give exactly one of --source or --target")

    configure_logging(verbose)
    config = SearchConfig(verbose=verbose, workers=workers, max_length=max_length)

    dst_content = read_file(dst_path)
    dst_checksum = compute_checksum(dst_content)

    if src_path is not None:
        target = compute_checksum(read_file(src_path))
        click.echo("=== Flyway Checksum Tickler ===")
        click.echo(f"Source file: {src_path}")
    else:
        try:
            target = parse_checksum(target_text)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--target")
        click.echo("=== Flyway Checksum Tickler ===")
        click.echo("Source: --target")
    click.echo(f"  Checksum: {format_checksum(target)}")
    click.echo()
    click.echo(f"Target file: {dst_path}")
    click.echo(f"  Checksum: {format_checksum(dst_checksum)}")
    click.echo()

    if target == dst_checksum:
        click.echo("All OK! Checksums match!")
        return

    click.echo("Checksums differ. Searching for a comment '--<chars>' that produces the source checksum...")
    comment = solver(dst_content, target, config, progress)
    if comment is None:
        raise click.ClickException(f"Could not find printable comment up to length {max_length}")

    click.echo(f"Found printable comment: {comment!r}")

    modified_content = append_comment(dst_content, comment)
    verification = compute_checksum(modified_content)
    click.echo(f"Modified content checksum: {format_checksum(verification)}")
    if verification != target:
        raise click.ClickException("Verification failed! Checksums don't match. Not saving the file.")

    if dry_run:
        click.echo("Verification passed. Dry run, file not modified.")
        return

    try:
        backup_path = backup_and_write(dst_path, modified_content)
    except OSError as e:
        raise click.ClickException(str(e))
    click.echo(f"Original file backed up to: {backup_path}")
    click.echo(f"Modified file saved to: {dst_path}")


if __name__ == "__main__":
    cli()
