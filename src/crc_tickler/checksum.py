import binascii
import copy
from dataclasses import dataclass
from typing import List, Union

BOM = "\ufeff"
MASK_32 = 0xFFFFFFFF

type ChecksumValue = int


class ContentDecodeError(ValueError):
    pass


class EngineCapabilityError(RuntimeError):
    pass


class CRC32:
    """Streaming CRC-32 (zlib polynomial) with an exportable register.

    The register holds the finalized CRC of everything fed so far, which is
    exactly what binascii.crc32 accepts as its starting value, so a register
    taken from one accumulator can seed another and continue the stream.
    """

    digest_size = 4

    def __init__(self, buf: bytes | None = None):
        self._crc = 0
        if buf is not None:
            self.update(buf)

    def copy(self) -> "CRC32":
        return copy.copy(self)

    def update(self, buf: bytes) -> None:
        self._crc = binascii.crc32(buf, self._crc)

    def peek(self, buf: bytes) -> ChecksumValue:
        """Value the accumulator would have after `buf`, without feeding it."""
        return binascii.crc32(buf, self._crc) & MASK_32

    @property
    def value(self) -> ChecksumValue:
        return self._crc & MASK_32

    def export_state(self) -> int:
        """Raw 32-bit register."""
        return self._crc & MASK_32

    def import_state(self, register: int) -> None:
        """Force the raw register, as if the bytes behind it had been fed."""
        if isinstance(register, bool) or not isinstance(register, int):
            raise EngineCapabilityError(f"CRC32 register must be an int, got {type(register).__name__}")
        if not 0 <= register <= MASK_32:
            raise EngineCapabilityError(f"CRC32 register out of range: {register:#x}")
        self._crc = register

    @classmethod
    def from_state(cls, register: int) -> "CRC32":
        crc = cls()
        crc.import_state(register)
        return crc

    def hexdigest(self) -> str:
        return f"{self.value:08x}"


@dataclass(frozen=True, slots=True)
class BaseState:
    """Snapshot of an accumulator register; shared read-only between workers."""

    register: int


def snapshot(accumulator: CRC32) -> BaseState:
    export = getattr(accumulator, "export_state", None)
    if export is None:
        raise EngineCapabilityError(f"{type(accumulator).__name__} cannot export its register")
    return BaseState(register=export())


def restore(state: BaseState) -> CRC32:
    """Fresh accumulator whose register is forced to the snapshot."""
    return CRC32.from_state(state.register)


def split_lines(content: str) -> List[str]:
    """
    Split content the way Flyway does before hashing.
    - Split on "\\n" only; "\\r" stays part of the line.
    - A leading BOM is dropped from every line, not just the first one.
    """
    lines = []
    for line in content.split("\n"):
        if line.startswith(BOM):
            line = line[1:]
        lines.append(line)
    return lines


def _as_text(content: Union[str, bytes, bytearray, memoryview]) -> str:
    if isinstance(content, str):
        return content
    try:
        return bytes(content).decode("utf-8")
    except UnicodeDecodeError as e:
        raise ContentDecodeError(f"Content is not valid UTF-8: {e}") from e


def feed_content(accumulator: CRC32, content: Union[str, bytes]) -> CRC32:
    """Feed every normalized line into the accumulator. Separators are never fed."""
    for line in split_lines(_as_text(content)):
        accumulator.update(line.encode("utf-8"))
    return accumulator


def compute_checksum(content: Union[str, bytes]) -> ChecksumValue:
    """Flyway checksum of migration content, as an unsigned 32-bit value."""
    return feed_content(CRC32(), content).value


def to_signed(value: ChecksumValue) -> int:
    """Two's complement view, as stored in flyway_schema_history."""
    value &= MASK_32
    return value - (1 << 32) if value & 0x80000000 else value


def format_checksum(value: ChecksumValue) -> str:
    return f"{to_signed(value)} (0x{value & MASK_32:08X})"
