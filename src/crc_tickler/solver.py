import threading
import time
from typing import Optional, Union

import structlog

from crc_tickler.algorithm.brute import search_length
from crc_tickler.checksum import (
    BaseState,
    CRC32,
    ChecksumValue,
    MASK_32,
    feed_content,
    format_checksum,
    snapshot,
)
from crc_tickler.config import SearchConfig
from crc_tickler.search_space import count_candidates
from crc_tickler.state_queue import SingleSlotQueue
from crc_tickler.state_snapshot import SearchSnapshot

log = structlog.get_logger()


def compute_base_state(content: Union[str, bytes]) -> BaseState:
    """Hash the file body once; every candidate resumes from this register."""
    return snapshot(feed_content(CRC32(), content))


def brute_force(
    base_state: BaseState,
    target: ChecksumValue,
    config: SearchConfig,
    *,
    state_queue: Optional[SingleSlotQueue[SearchSnapshot]] = None,
    stop: Optional[threading.Event] = None,
) -> Optional[str]:
    """
    Escalate the comment length from 1 to config.max_length, one joined round
    per length, and return the first comment found. The shortest length with a
    solution wins; ties within a length go to whichever worker publishes first.
    """
    target &= MASK_32
    state_version = 0

    for length in range(1, config.max_length + 1):
        if stop is not None and stop.is_set():
            log.warning("search stopped", length=length)
            return None

        candidates_total = count_candidates(length, config.alphabet)
        log.info("trying comment length", length=length, candidates=candidates_total)
        started = time.monotonic()
        last_tried = 0

        def publish(tried: int, complete: bool = False, found: Optional[str] = None) -> None:
            nonlocal state_version, last_tried
            last_tried = tried
            if state_queue is None:
                return
            state_version += 1
            state_queue.publish(
                SearchSnapshot(
                    state_version=state_version,
                    complete=complete,
                    length=length,
                    max_length=config.max_length,
                    workers=config.workers,
                    candidates_total=candidates_total,
                    candidates_tried=tried,
                    elapsed_ms=int((time.monotonic() - started) * 1000),
                    found=found,
                )
            )

        publish(0)
        found = search_length(
            base_state,
            length,
            target,
            config.alphabet,
            config.workers,
            stop=stop,
            on_progress=publish,
            progress_interval=config.progress_interval,
            verbose=config.verbose,
        )
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if found is not None:
            log.info("found comment", length=length, comment=found, elapsed_ms=elapsed_ms)
            publish(last_tried, complete=True, found=found)
            return found

        if stop is not None and stop.is_set():
            log.warning("search stopped", length=length, elapsed_ms=elapsed_ms)
            return None

        log.info("not found at length", length=length, elapsed_ms=elapsed_ms)
        if length == config.max_length:
            publish(candidates_total, complete=True)

    return None


def find_matching_comment(
    target_file_content: Union[str, bytes],
    target_checksum: ChecksumValue,
    config: Optional[SearchConfig] = None,
    *,
    state_queue: Optional[SingleSlotQueue[SearchSnapshot]] = None,
    stop: Optional[threading.Event] = None,
) -> Optional[str]:
    """
    Find the shortest "--" comment that, appended as a last line of the content,
    gives it `target_checksum`. Returns None when nothing up to
    config.max_length matches or `stop` is set. Never touches any file.
    """
    config = config or SearchConfig()
    try:
        base_state = compute_base_state(target_file_content)
        if config.verbose:
            log.info(
                "base checksum",
                base=format_checksum(base_state.register),
                target=format_checksum(target_checksum & MASK_32),
                workers=config.workers,
            )
        return brute_force(base_state, target_checksum, config, state_queue=state_queue, stop=stop)
    finally:
        # Always close the queue so the UI can exit.
        if state_queue is not None:
            state_queue.close()
