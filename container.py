import io
import logging

from errors import CorruptContainerError
from huffman import EncodedPayload

logger = logging.getLogger(__name__)

# --- CONTAINER LAYOUT (all integers big-endian) ---
# magic(4) version(1) kind(1) entry_count(4)
# entry_count x [symbol(4 for text, 1 for bytes) count(4)]
# bit_length(8)
# payload(remainder): code bits MSB-first, zero-padded to a whole byte
MAGIC = b"HUFF"
VERSION = 1

KIND_TEXT = 0
KIND_BYTES = 1

SYMBOL_SIZES = {KIND_TEXT: 4, KIND_BYTES: 1}
COUNT_SIZE = 4
ENTRY_COUNT_SIZE = 4
BIT_LENGTH_SIZE = 8

MAX_CODE_POINT = 0x10FFFF
# Surrogates are not characters and cannot be written out as UTF-8
SURROGATE_FIRST = 0xD800
SURROGATE_LAST = 0xDFFF
MAX_COUNT = 2 ** (8 * COUNT_SIZE) - 1


class Container:
    """Everything needed to decompress: the symbol kind, the table and the bits."""

    def __init__(self, kind, frequency, payload):
        self.kind = kind
        self.frequency = frequency
        self.payload = payload

    @property
    def symbol_count(self):
        return sum(self.frequency.values())

    def __repr__(self):
        kind = "text" if self.kind == KIND_TEXT else "bytes"
        return f"Container(kind={kind}, symbols={len(self.frequency)}, bit_length={self.payload.bit_length})"


def _symbol_to_int(symbol, kind):
    if kind == KIND_TEXT:
        if not isinstance(symbol, str) or len(symbol) != 1:
            raise ValueError(f"Text containers hold single characters, got {symbol!r}")
        value = ord(symbol)
        if SURROGATE_FIRST <= value <= SURROGATE_LAST:
            raise ValueError(f"Surrogate code point {value:#x} cannot be stored as text")
        return value

    if not isinstance(symbol, int) or not 0 <= symbol <= 0xFF:
        raise ValueError(f"Byte containers hold integers 0-255, got {symbol!r}")
    return symbol


def _int_to_symbol(value, kind, offset):
    if kind == KIND_TEXT:
        if value > MAX_CODE_POINT or SURROGATE_FIRST <= value <= SURROGATE_LAST:
            raise CorruptContainerError(f"Invalid code point {value:#x} in frequency table", offset)
        return chr(value)
    return value


### SERIALIZATION ###
def dump_container(frequency, payload, kind=KIND_TEXT):
    """Serializes the frequency table and the encoded payload to bytes."""
    if kind not in SYMBOL_SIZES:
        raise ValueError(f"Unknown container kind: {kind!r}")
    symbol_size = SYMBOL_SIZES[kind]

    out = bytearray()
    out += MAGIC
    out += VERSION.to_bytes(1, byteorder="big")
    out += kind.to_bytes(1, byteorder="big")
    out += len(frequency).to_bytes(ENTRY_COUNT_SIZE, byteorder="big")

    for symbol, count in frequency.items():
        out += _symbol_to_int(symbol, kind).to_bytes(symbol_size, byteorder="big")
        if count > MAX_COUNT:
            raise ValueError(f"Count {count} of {symbol!r} does not fit in {COUNT_SIZE} bytes")
        out += count.to_bytes(COUNT_SIZE, byteorder="big")

    out += payload.bit_length.to_bytes(BIT_LENGTH_SIZE, byteorder="big")
    out += payload.to_bytes()

    logger.debug(
        "Wrote container: %d table entries, %d payload bits, %d bytes total",
        len(frequency), payload.bit_length, len(out),
    )
    return bytes(out)


### DESERIALIZATION ###
def _read_exact(stream, size, what):
    offset = stream.tell()
    data = stream.read(size)
    if len(data) < size:
        raise CorruptContainerError(f"Container truncated while reading {what}", offset)
    return data


def _read_int(stream, size, what):
    return int.from_bytes(_read_exact(stream, size, what), byteorder="big")


def load_container(data):
    """Parses bytes produced by dump_container back into a Container."""
    stream = io.BytesIO(data)

    magic = _read_exact(stream, len(MAGIC), "magic")
    if magic != MAGIC:
        raise CorruptContainerError(f"Bad magic {magic!r}, not a Huffman container", 0)

    version = _read_int(stream, 1, "version")
    if version != VERSION:
        raise CorruptContainerError(f"Unsupported container version: {version}", len(MAGIC))

    kind_offset = stream.tell()
    kind = _read_int(stream, 1, "kind")
    if kind not in SYMBOL_SIZES:
        raise CorruptContainerError(f"Unknown symbol kind: {kind}", kind_offset)
    symbol_size = SYMBOL_SIZES[kind]

    entry_count = _read_int(stream, ENTRY_COUNT_SIZE, "frequency table size")

    frequency = {}
    for index in range(entry_count):
        entry_offset = stream.tell()
        value = _read_int(stream, symbol_size, f"symbol of table entry {index}")
        count = _read_int(stream, COUNT_SIZE, f"count of table entry {index}")

        symbol = _int_to_symbol(value, kind, entry_offset)
        if count == 0:
            raise CorruptContainerError(f"Zero count for symbol {symbol!r}", entry_offset)
        if symbol in frequency:
            raise CorruptContainerError(f"Duplicate symbol {symbol!r} in frequency table", entry_offset)
        frequency[symbol] = count

    bit_length = _read_int(stream, BIT_LENGTH_SIZE, "bit length")

    # The payload is not checked against bit_length here; a short payload is
    # reported by the decoder as a malformed stream.
    payload = EncodedPayload.from_bytes(stream.read(), bit_length)

    logger.debug("Read container: %d table entries, %d payload bits", len(frequency), bit_length)
    return Container(kind, frequency, payload)
