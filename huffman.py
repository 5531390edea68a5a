import heapq
import logging

from bitarray import bitarray, frozenbitarray

from errors import MalformedStreamError, MissingCodeError

logger = logging.getLogger(__name__)

# Code given to the only symbol of a one-symbol table. A root that is a leaf
# has an empty path, and an empty code cannot record how many times it occurs.
SINGLE_SYMBOL_CODE = frozenbitarray("0")


### FREQUENCY COUNTING ###
def count_frequencies(symbols):
    """Counts how often each symbol occurs, keyed in order of first appearance."""
    frequency = {}
    for symbol in symbols:
        frequency[symbol] = frequency.get(symbol, 0) + 1
    return frequency


### HUFFMAN NODE ARENA ###
class HuffmanNode:
    """One node of the tree arena.

    Leaves carry a symbol and its count. Internal nodes carry the summed
    weight of their children; ``left`` and ``right`` are ids into
    ``HuffmanTree.nodes``, never node objects.
    """

    __slots__ = ("weight", "symbol", "left", "right")

    def __init__(self, weight, symbol=None, left=None, right=None):
        self.weight = weight
        self.symbol = symbol
        self.left = left
        self.right = right

    def is_leaf(self):
        return self.left is None and self.right is None

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(weight={self.weight}, symbol={self.symbol!r})"
        return f"HuffmanNode(weight={self.weight}, left={self.left}, right={self.right})"


class HuffmanTree:
    """Huffman tree built from a frequency table.

    Nodes live in a flat list and refer to each other by index. Leaves are
    created first, in the iteration order of the frequency table, and every
    merged node is appended after them, so a node's id is also its insertion
    order. The priority queue is keyed on ``(weight, id)``: among nodes of
    equal weight the one inserted first is popped first. The first node
    popped becomes the left child and the second the right child.

    Building twice from the same table (same order of entries) therefore
    gives the same tree, which is what lets the decompressor rebuild the
    compressor's tree from the stored table alone.
    """

    def __init__(self, frequency):
        self.nodes = []
        self.root = None

        priority_queue = []
        for symbol, count in frequency.items():
            if not isinstance(count, int) or count < 1:
                raise ValueError(f"Frequency of {symbol!r} must be a positive integer, got {count!r}")
            node_id = self._add(HuffmanNode(count, symbol=symbol))
            priority_queue.append((count, node_id))
        # Ids are increasing, so the list is already ordered on its second key
        heapq.heapify(priority_queue)

        while len(priority_queue) > 1:
            left_weight, left = heapq.heappop(priority_queue)
            right_weight, right = heapq.heappop(priority_queue)

            merged_weight = left_weight + right_weight
            parent = self._add(HuffmanNode(merged_weight, left=left, right=right))
            heapq.heappush(priority_queue, (merged_weight, parent))

        if priority_queue:
            self.root = priority_queue[0][1]

        logger.debug("Built Huffman tree: %d symbols, %d nodes", len(frequency), len(self.nodes))

    def _add(self, node):
        self.nodes.append(node)
        return len(self.nodes) - 1

    def node(self, node_id):
        return self.nodes[node_id]

    @property
    def leaf_count(self):
        return sum(1 for node in self.nodes if node.is_leaf())

    @property
    def weight(self):
        """Total number of symbol occurrences the tree was built from."""
        if self.root is None:
            return 0
        return self.nodes[self.root].weight

    def is_empty(self):
        return self.root is None

    def __len__(self):
        return len(self.nodes)


def build_huffman_tree(frequency):
    return HuffmanTree(frequency)


### CODE GENERATION ###
def derive_codes(tree):
    """
    Walks the tree and returns the code table {symbol: frozenbitarray}.
    Going left appends a 0, going right appends a 1.
    """
    if tree.root is None:
        return {}

    root = tree.nodes[tree.root]
    if root.is_leaf():
        return {root.symbol: SINGLE_SYMBOL_CODE}

    codes = {}
    stack = [(tree.root, bitarray(endian="big"))]
    while stack:
        node_id, code = stack.pop()
        node = tree.nodes[node_id]
        if node.is_leaf():
            codes[node.symbol] = frozenbitarray(code)
            continue

        # Right is pushed first so the left subtree is visited first
        right_code = code.copy()
        right_code.append(1)
        stack.append((node.right, right_code))

        left_code = code.copy()
        left_code.append(0)
        stack.append((node.left, left_code))

    return codes


def build_huffman_tree_and_codes(frequency):
    """Builds the tree and its code table. Returns (tree, codes)."""
    tree = HuffmanTree(frequency)
    return tree, derive_codes(tree)


def code_lengths(codes):
    return {symbol: len(code) for symbol, code in codes.items()}


def average_code_length(frequency, codes):
    """Mean number of bits spent per input symbol."""
    total = sum(frequency.values())
    if total == 0:
        return 0.0
    return sum(len(codes[symbol]) * count for symbol, count in frequency.items()) / total


### ENCODED PAYLOAD ###
class EncodedPayload:
    """Packed code bits plus the number of them that are meaningful.

    Storage is byte aligned, so up to seven zero bits of padding follow the
    last code when the payload is written out. ``bit_length`` is what tells
    the decoder where the real bits stop.
    """

    def __init__(self, bits=None, bit_length=None):
        if bits is None:
            bits = bitarray(endian="big")
        self.bits = bits
        self.bit_length = len(bits) if bit_length is None else bit_length

    @classmethod
    def from_bytes(cls, data, bit_length):
        bits = bitarray(endian="big")
        bits.frombytes(bytes(data))
        return cls(bits, bit_length)

    def to_bytes(self):
        # tobytes() zero-fills the unused bits of the last byte
        return self.bits[:self.bit_length].tobytes()

    @property
    def padding_bits(self):
        return -self.bit_length % 8

    def __len__(self):
        return self.bit_length

    def __eq__(self, other):
        if not isinstance(other, EncodedPayload):
            return NotImplemented
        return self.bit_length == other.bit_length and self.to_bytes() == other.to_bytes()

    def __repr__(self):
        return f"EncodedPayload(bit_length={self.bit_length}, bits={self.bits[:self.bit_length].to01()!r})"


### ENCODING ###
def encode(symbols, codes):
    """Concatenates the code of every symbol, in order, into one payload."""
    bits = bitarray(endian="big")
    for position, symbol in enumerate(symbols):
        code = codes.get(symbol)
        if code is None:
            raise MissingCodeError(symbol, position)
        bits.extend(code)

    logger.debug("Encoded %d bits", len(bits))
    return EncodedPayload(bits)


### DECODING ###
def decode(payload, tree, expected_count=None):
    """
    Walks the tree bit by bit and returns the list of decoded symbols.

    Only the first ``payload.bit_length`` bits are read; anything after them
    is padding. If ``expected_count`` is given, the number of decoded symbols
    must match it.
    """
    bit_length = payload.bit_length
    bits = payload.bits
    if bit_length > len(bits):
        raise MalformedStreamError(
            f"Payload declares {bit_length} bits but only {len(bits)} are present", len(bits)
        )

    decoded = []
    if tree.root is None:
        if bit_length:
            raise MalformedStreamError("Encoded bits present but the frequency table is empty", 0)
    else:
        nodes = tree.nodes
        root = nodes[tree.root]

        if root.is_leaf():
            # No branch to take: every bit stands for one occurrence
            decoded = [root.symbol] * bit_length
        else:
            current = root
            for position in range(bit_length):
                child = current.right if bits[position] else current.left
                if child is None:
                    raise MalformedStreamError("Huffman tree node is missing a child", position)

                current = nodes[child]
                if current.is_leaf():
                    decoded.append(current.symbol)
                    current = root
                elif current.left is None or current.right is None:
                    raise MalformedStreamError("Huffman tree node has only one child", position)

            if current is not root:
                raise MalformedStreamError("Bitstream ends in the middle of a code", bit_length)

    if expected_count is not None and len(decoded) != expected_count:
        raise MalformedStreamError(
            f"Decoded {len(decoded)} symbols but the frequency table accounts for {expected_count}",
            bit_length,
        )

    logger.debug("Decoded %d symbols from %d bits", len(decoded), bit_length)
    return decoded


def decode_text(payload, tree, expected_count=None):
    return "".join(decode(payload, tree, expected_count))
