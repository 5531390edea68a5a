import filecmp
import logging
import os
import sys

from container import KIND_BYTES, KIND_TEXT, dump_container, load_container
from errors import HuffmanError
from huffman import build_huffman_tree_and_codes, count_frequencies, decode, encode, HuffmanTree

logger = logging.getLogger(__name__)

# --- CONSTANTS ---
COMPRESSED_EXTENSION = ".huff"
TEXT_ENCODING = "utf-8"


class CompressionStats:
    """Sizes before and after compression, as reported to the user."""

    def __init__(self, original_size, compressed_size, output_path=None):
        self.original_size = original_size
        self.compressed_size = compressed_size
        self.output_path = output_path

    @property
    def saved(self):
        return self.original_size - self.compressed_size

    @property
    def saved_percent(self):
        if not self.original_size:
            return 0
        return round(self.saved / self.original_size * 100, 2)

    def as_dict(self):
        return {
            "original_size": self.original_size,
            "compressed_size": self.compressed_size,
            "saved": self.saved,
            "saved_percent": self.saved_percent,
        }

    def __repr__(self):
        return (f"CompressionStats(original_size={self.original_size}, "
                f"compressed_size={self.compressed_size}, saved_percent={self.saved_percent})")


def compression_stats(original_size, compressed_size, output_path=None):
    return CompressionStats(original_size, compressed_size, output_path)


### IN-MEMORY PIPELINE ###
def _compress_symbols(symbols, kind):
    frequency = count_frequencies(symbols)
    tree, codes = build_huffman_tree_and_codes(frequency)
    payload = encode(symbols, codes)
    logger.debug("Compressing %d symbols (%d distinct) into %d bits",
                 len(symbols), len(frequency), payload.bit_length)
    return dump_container(frequency, payload, kind)


def _decompress_container(container):
    # The tree is rebuilt from the stored table, never stored itself
    tree = HuffmanTree(container.frequency)
    return decode(container.payload, tree, expected_count=container.symbol_count)


def compress_text(text):
    """Compresses a string; every character is one symbol."""
    return _compress_symbols(text, KIND_TEXT)


def compress_bytes(data):
    """Compresses raw bytes; every byte is one symbol."""
    return _compress_symbols(bytes(data), KIND_BYTES)


def decompress(data):
    """Decompresses a container, returning str or bytes depending on how it was made."""
    container = load_container(data)
    symbols = _decompress_container(container)
    if container.kind == KIND_TEXT:
        return "".join(symbols)
    return bytes(symbols)


def decompress_text(data):
    result = decompress(data)
    if not isinstance(result, str):
        raise TypeError("Container holds bytes, not text; use decompress_bytes()")
    return result


def decompress_bytes(data):
    result = decompress(data)
    if not isinstance(result, bytes):
        raise TypeError("Container holds text, not bytes; use decompress_text()")
    return result


### FILE I/O ###
def read_file(file_path, binary=False):
    """Reads the whole file into memory. Text keeps its newlines untouched."""
    if binary:
        with open(file_path, "rb") as f:
            return f.read()
    with open(file_path, "r", encoding=TEXT_ENCODING, newline="") as f:
        return f.read()


def write_file(file_path, content):
    if isinstance(content, str):
        with open(file_path, "w", encoding=TEXT_ENCODING, newline="") as f:
            f.write(content)
    else:
        with open(file_path, "wb") as f:
            f.write(content)


def compress_file(input_path, output_path=None, binary=False):
    """
    Compresses input_path into output_path (default: input_path + '.huff').
    Returns the CompressionStats of the run.
    """
    if output_path is None:
        output_path = input_path + COMPRESSED_EXTENSION

    content = read_file(input_path, binary=binary)
    compressed = compress_bytes(content) if binary else compress_text(content)
    write_file(output_path, compressed)

    stats = compression_stats(os.path.getsize(input_path), len(compressed), output_path)
    logger.info("Compressed %s (%d bytes) to %s (%d bytes), %.2f%% saved",
                input_path, stats.original_size, output_path, stats.compressed_size, stats.saved_percent)
    return stats


def decompress_file(compressed_path, output_path):
    """Restores the original file from a compressed one. Returns output_path."""
    with open(compressed_path, "rb") as f:
        data = f.read()

    content = decompress(data)
    write_file(output_path, content)

    logger.info("Decompressed %s to %s", compressed_path, output_path)
    return output_path


### COMMAND LINE DRIVER ###
USAGE = """Usage:
  huffman-text c INPUT OUTPUT   compress the UTF-8 text file INPUT into OUTPUT
  huffman-text b INPUT OUTPUT   compress INPUT byte by byte (any file type)
  huffman-text d INPUT OUTPUT   decompress INPUT into OUTPUT
  huffman-text t INPUT          compress, decompress and compare INPUT"""


def round_trip_test(test_file_path):
    """Compresses then decompresses a file and checks the result is identical."""
    compressed_file_path = test_file_path + COMPRESSED_EXTENSION
    decompressed_file_path = os.path.join(
        os.path.dirname(test_file_path), "decompressed_" + os.path.basename(test_file_path)
    )

    print("-" * 50)
    print(f"Starting Huffman Test on: {test_file_path}")
    print("-" * 50)

    stats = compress_file(test_file_path, compressed_file_path)
    print(f"Original Size: {stats.original_size} bytes")
    print(f"Compressed Size: {stats.compressed_size} bytes")
    print(f"Compression achieved: {stats.saved_percent:.2f}% reduction.")
    print(f"File compressed to {compressed_file_path}")

    decompress_file(compressed_file_path, decompressed_file_path)
    print(f"File decompressed to {decompressed_file_path}")

    if filecmp.cmp(test_file_path, decompressed_file_path, shallow=False):
        print("SUCCESS: Decompressed file is IDENTICAL to the original.")
        return True

    print("FAILURE: Decompressed file content MISMATCHES the original.")
    return False


def log_level_from_env():
    """Level named by HUFFMAN_LOG_LEVEL; unknown names fall back to WARNING."""
    level = logging.getLevelName(os.environ.get("HUFFMAN_LOG_LEVEL", "WARNING").upper())
    if not isinstance(level, int):
        return logging.WARNING
    return level


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    logging.basicConfig(
        level=log_level_from_env(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if not argv or argv[0] not in ("c", "b", "d", "t"):
        print(USAGE, file=sys.stderr)
        return 1

    mode, args = argv[0], argv[1:]
    if (mode == "t" and len(args) != 1) or (mode != "t" and len(args) != 2):
        print(USAGE, file=sys.stderr)
        return 1

    try:
        if mode in ("c", "b"):
            stats = compress_file(args[0], args[1], binary=mode == "b")
            print(f"Compressed '{args[0]}' -> '{args[1]}' ({stats.saved_percent:.2f}% saved)")
        elif mode == "d":
            decompress_file(args[0], args[1])
            print(f"Decompressed '{args[0]}' -> '{args[1]}'")
        else:
            return 0 if round_trip_test(args[0]) else 1
    except UnicodeDecodeError as e:
        print(f"Error: input is not UTF-8 text ({e}); use mode 'b' for binary files", file=sys.stderr)
        return 2
    except (HuffmanError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
