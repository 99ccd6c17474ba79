import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from crc_tickler.checksum import BaseState, CRC32, ChecksumValue, MASK_32, restore
from crc_tickler.search_space import COMMENT_PREFIX, partition_alphabet

log = structlog.get_logger()

# Candidates a worker counts locally before adding them to the shared stats.
STATS_FLUSH_EVERY = 4096

ProgressFn = Callable[[int], None]


class ResultSlot:
    """Holds the winning comment of a round. First writer wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[str] = None

    def publish(self, comment: str) -> bool:
        """Store the comment unless one is already stored. Returns True if stored."""
        with self._lock:
            if self._value is not None:
                return False
            self._value = comment
            return True

    @property
    def value(self) -> Optional[str]:
        with self._lock:
            return self._value


class RoundStats:
    """Candidates evaluated so far by all workers of a round."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tried = 0

    def add(self, count: int) -> None:
        with self._lock:
            self._tried += count

    @property
    def tried(self) -> int:
        with self._lock:
            return self._tried


@dataclass(frozen=True, slots=True)
class SearchTask:
    worker_id: int
    first: range
    length: int
    base_state: BaseState
    target: ChecksumValue
    alphabet: str


def search_partition(
    task: SearchTask,
    cancel: threading.Event,
    result: ResultSlot,
    stats: Optional[RoundStats] = None,
) -> Optional[str]:
    """
    Depth-first search of every candidate whose first character is in task.first.
    - Each depth keeps a private accumulator advanced by "--" and the prefix,
      so a leaf costs a single byte feed. The shared base state is never touched.
    - `cancel` is checked before every candidate; once set, no new one starts.
    - On a hit the comment goes to `result` and `cancel` is set for everybody.
    Returns this worker's hit, which may lose the race for `result`.
    """
    if not task.first or task.length < 1:
        return None

    alphabet = task.alphabet
    encoded = [c.encode("ascii") for c in alphabet]
    full_span = range(len(alphabet))
    target = task.target & MASK_32
    last = task.length - 1
    pending = 0

    def descend(accumulator: CRC32, prefix: str, depth: int) -> Optional[str]:
        nonlocal pending
        span = task.first if depth == 0 else full_span

        if depth == last:
            for i in span:
                if cancel.is_set():
                    return None
                pending += 1
                if accumulator.peek(encoded[i]) == target:
                    return COMMENT_PREFIX + prefix + alphabet[i]
            if stats is not None and pending >= STATS_FLUSH_EVERY:
                stats.add(pending)
                pending = 0
            return None

        for i in span:
            if cancel.is_set():
                return None
            child = accumulator.copy()
            child.update(encoded[i])
            found = descend(child, prefix + alphabet[i], depth + 1)
            if found is not None:
                return found
        return None

    try:
        accumulator = restore(task.base_state)
        accumulator.update(COMMENT_PREFIX.encode("ascii"))
        found = descend(accumulator, "", 0)
    except Exception:
        log.exception("worker failed", worker=task.worker_id, length=task.length)
        cancel.set()
        raise
    finally:
        if stats is not None and pending:
            stats.add(pending)

    if found is not None:
        if result.publish(found):
            log.debug("worker won", worker=task.worker_id, comment=found)
        cancel.set()
    return found


def search_length(
    base_state: BaseState,
    length: int,
    target: ChecksumValue,
    alphabet: str,
    workers: int,
    *,
    stop: Optional[threading.Event] = None,
    on_progress: Optional[ProgressFn] = None,
    progress_interval: float = 0.1,
    verbose: bool = False,
) -> Optional[str]:
    """
    Run one round: every candidate of `length`, split across `workers` threads.
    The pool is joined before returning. A worker exception is re-raised after
    the join and no result is returned for the round.
    """
    cancel = threading.Event()
    result = ResultSlot()
    stats = RoundStats()

    tasks = []
    for worker_id, first in enumerate(partition_alphabet(len(alphabet), workers)):
        if not first:
            continue
        if verbose:
            log.info(
                "partition",
                worker=worker_id,
                length=length,
                first=alphabet[first.start],
                last=alphabet[first.stop - 1],
            )
        tasks.append(SearchTask(worker_id, first, length, base_state, target, alphabet))

    with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix=f"crc-len{length}") as executor:
        futures = [executor.submit(search_partition, task, cancel, result, stats) for task in tasks]
        pending = set(futures)
        while pending:
            _, pending = wait(pending, timeout=progress_interval)
            if stop is not None and stop.is_set():
                cancel.set()
            if on_progress is not None:
                on_progress(stats.tried)

    for future in futures:
        future.result()

    return result.value
