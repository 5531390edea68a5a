"""Errors raised by the Huffman compressor.

File system problems are not wrapped here: a missing or unreadable file
surfaces as the usual OSError.
"""


class HuffmanError(Exception):
    """Base class for every codec failure."""


class MissingCodeError(HuffmanError):
    """A symbol in the input has no entry in the code table."""

    def __init__(self, symbol, position):
        self.symbol = symbol
        self.position = position
        super().__init__(f"No Huffman code for symbol {symbol!r} at position {position}")


class MalformedStreamError(HuffmanError):
    """The encoded bits cannot be resolved into symbols."""

    def __init__(self, message, bit_position=None):
        self.bit_position = bit_position
        if bit_position is not None:
            message = f"{message} (bit {bit_position})"
        super().__init__(message)


class CorruptContainerError(HuffmanError):
    """The compressed record cannot be parsed into a table and a payload."""

    def __init__(self, message, offset=None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (byte {offset})"
        super().__init__(message)
