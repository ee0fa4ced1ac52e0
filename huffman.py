import heapq
import logging

logger = logging.getLogger(__name__)

ALPHABET_SIZE = 256 # byte values 0..255
PSEUDO_EOF = ALPHABET_SIZE # one past the largest real symbol

LEFT = '0'
RIGHT = '1'


class StructuralViolation(ValueError):
    """A tree edit would break the strict binary tree (occupied slot, duplicate symbol, missing child)."""


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency):
        self.symbol = symbol    # int for leaves, None for internal nodes
        self.frequency = frequency
        self.left = None # arena index of the left child
        self.right = None # arena index of the right child

    def is_leaf(self):
        return self.symbol is not None

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(symbol={self.symbol}, frequency={self.frequency})"
        return f"HuffmanNode(frequency={self.frequency}, left={self.left}, right={self.right})"


class HuffmanTree:
    """
    Strict binary tree stored as an arena of nodes.

    Children are integer indices into ``nodes``, so a tree never holds
    references into another tree and partially built trees have no aliasing.
    All walks use an explicit stack.
    """

    def __init__(self, alphabet_size=ALPHABET_SIZE):
        self.alphabet_size = alphabet_size
        self.nodes = []
        self.root = None
        self._symbols = set()

    @property
    def eof(self):
        return self.alphabet_size

    def __len__(self):
        return len(self.nodes)

    def node(self, index) -> HuffmanNode:
        return self.nodes[index]

    def add_leaf(self, symbol, frequency=0) -> int:
        if symbol in self._symbols:
            raise StructuralViolation(f"symbol {symbol} already has a leaf")
        self._symbols.add(symbol)
        self.nodes.append(HuffmanNode(symbol, frequency))
        return len(self.nodes) - 1

    def add_internal(self, frequency=0, left=None, right=None) -> int:
        node = HuffmanNode(None, frequency)
        node.left = left
        node.right = right
        self.nodes.append(node)
        return len(self.nodes) - 1

    def child(self, index, direction):
        node = self.nodes[index]
        return node.left if direction == LEFT else node.right

    def set_child(self, parent, direction, child):
        node = self.nodes[parent]
        if node.is_leaf():
            raise StructuralViolation(f"node {parent} is a leaf (symbol {node.symbol}) and cannot have children")
        if self.child(parent, direction) is not None:
            raise StructuralViolation(f"node {parent} already has a child on side {direction}")
        if direction == LEFT:
            node.left = child
        else:
            node.right = child

    def leaf_paths(self):
        """Yield (symbol, path) for every leaf, left subtree before right."""
        if self.root is None:
            return
        stack = [(self.root, '')]
        while stack:
            index, path = stack.pop()
            node = self.nodes[index]
            if node.is_leaf():
                yield node.symbol, path
                continue
            # right pushed first so the left subtree is visited first
            if node.right is not None:
                stack.append((node.right, path + RIGHT))
            if node.left is not None:
                stack.append((node.left, path + LEFT))

    def leaf_count(self):
        return sum(1 for node in self.nodes if node.is_leaf())

    def depth(self):
        if self.root is None:
            return 0
        deepest = 0
        stack = [(self.root, 0)]
        while stack:
            index, level = stack.pop()
            deepest = max(deepest, level)
            node = self.nodes[index]
            for child in (node.left, node.right):
                if child is not None:
                    stack.append((child, level + 1))
        return deepest

    def average_code_length(self, frequency_table):
        counts = _iter_counts(frequency_table)
        codes = generate_huffman_codes(self)
        total = 0
        weighted = 0
        for symbol, count in counts:
            if count and symbol in codes:
                total += count
                weighted += count * len(codes[symbol])
        return weighted / total if total else 0.0

    def validate(self):
        """Raise StructuralViolation unless every reachable internal node has two children."""
        if self.root is None:
            raise StructuralViolation("tree has no root")
        stack = [self.root]
        while stack:
            index = stack.pop()
            node = self.nodes[index]
            if node.is_leaf():
                continue
            if node.left is None or node.right is None:
                side = LEFT if node.left is None else RIGHT
                raise StructuralViolation(f"internal node {index} is missing its child on side {side}")
            stack.append(node.left)
            stack.append(node.right)


def _iter_counts(frequency_table):
    # sparse mapping or dense sequence indexed by symbol
    if hasattr(frequency_table, 'items'):
        return sorted(frequency_table.items())
    return list(enumerate(frequency_table))


def build_huffman_tree(frequency_table, alphabet_size=ALPHABET_SIZE) -> HuffmanTree: # frequency_table: dict of symbol -> frequency, or list indexed by symbol
    tree = HuffmanTree(alphabet_size)
    priority_queue = []
    sequence = 0 # insertion order breaks frequency ties

    for symbol, frequency in _iter_counts(frequency_table):
        if frequency < 0:
            raise ValueError(f"negative frequency {frequency} for symbol {symbol}")
        if frequency == 0:
            continue
        if symbol == alphabet_size:
            logger.debug("ignoring explicit count for end-of-stream symbol %d", symbol)
            continue
        if not 0 <= symbol < alphabet_size:
            raise ValueError(f"symbol {symbol} outside alphabet [0, {alphabet_size})")
        priority_queue.append((frequency, sequence, tree.add_leaf(symbol, frequency)))
        sequence += 1

    # the end-of-stream leaf is always present so decoding can terminate
    priority_queue.append((1, sequence, tree.add_leaf(alphabet_size, 1)))
    sequence += 1
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left_freq, _, left = heapq.heappop(priority_queue)
        right_freq, _, right = heapq.heappop(priority_queue)
        merged = tree.add_internal(left_freq + right_freq, left, right) # internal node with combined frequency
        heapq.heappush(priority_queue, (left_freq + right_freq, sequence, merged))
        sequence += 1

    tree.root = priority_queue[0][2]
    logger.debug("built tree: %d leaves, %d nodes, depth %d", tree.leaf_count(), len(tree), tree.depth())
    return tree


def generate_huffman_codes(tree) -> dict: # symbol -> path string
    return dict(tree.leaf_paths())


def freq_table(data: bytes) -> dict:
    ft = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft


def huffman_encode(data, code_map: dict, eof=None) -> str: # data: iterable of symbols, code_map: dict of symbol -> Huffman code
    try:
        bits = ''.join(code_map[symbol] for symbol in data)
        if eof is not None:
            bits += code_map[eof]
    except KeyError as e:
        raise ValueError(f"symbol {e.args[0]} has no code in this tree") from None
    return bits
