#!/usr/bin/env python3
"""ASM8 Assembler — single-pass assembler for the UFC 8-bit processor."""

import io
import sys
import argparse
from collections import namedtuple
from types import MappingProxyType

# ---------------------------------------------------------------------------
# Processor parameters
# ---------------------------------------------------------------------------

WORD_SIZE = 8
MIN_MEMORY_WORDS = 128
ZERO_WORD = "0" * WORD_SIZE
COMMENT_CHAR = ";"

# ---------------------------------------------------------------------------
# Instruction catalog
# ---------------------------------------------------------------------------

InstructionSpec = namedtuple("InstructionSpec", ["opcode", "arity"])

# Mnemonic -> (opcode bit pattern, number of argument lines that follow).
INSTRUCTIONS = MappingProxyType({
    "INC":  InstructionSpec("00000001", 1),
    "DEC":  InstructionSpec("00000010", 1),
    "NOT":  InstructionSpec("00000011", 1),
    "JMP":  InstructionSpec("00000100", 1),
    "ADD":  InstructionSpec("00010000", 2),
    "SUB":  InstructionSpec("00100000", 2),
    "MUL":  InstructionSpec("00110000", 2),
    "DIV":  InstructionSpec("01000000", 2),
    "MOD":  InstructionSpec("01010000", 2),
    "AND":  InstructionSpec("01100000", 2),
    "OR":   InstructionSpec("01110000", 2),
    "XOR":  InstructionSpec("10000000", 2),
    "NAND": InstructionSpec("10010000", 2),
    "NOR":  InstructionSpec("10100000", 2),
    "XNOR": InstructionSpec("10110000", 2),
    "COMP": InstructionSpec("11000000", 2),
})


def is_known(token, catalog=INSTRUCTIONS):
    """Return True if token is a mnemonic (exact, case-sensitive match)."""
    return token in catalog


def spec_of(token, catalog=INSTRUCTIONS):
    """Return the InstructionSpec for a known mnemonic."""
    return catalog[token]

# ---------------------------------------------------------------------------
# Line sanitizing and argument encoding
# ---------------------------------------------------------------------------


def strip_comment(line):
    """Remove comment from line, respecting that ; starts a comment."""
    idx = line.find(COMMENT_CHAR)
    if idx >= 0:
        return line[:idx]
    return line


def strip_whitespace(line):
    """Remove every space and tab, including interior ones."""
    return line.replace(" ", "").replace("\t", "")


def sanitize_line(line):
    """Return line with its comment and all spaces/tabs removed."""
    return strip_whitespace(strip_comment(line))


def is_binary(text):
    """True if text is non-empty and made only of '0' and '1'."""
    return bool(text) and not text.strip("01")


def pad_argument(text):
    """Left-pad a binary literal with zeros to WORD_SIZE characters."""
    return text.rjust(WORD_SIZE, "0")

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AssemblerError(Exception):
    """Base class; exit_code is the process status main() reports."""

    exit_code = 1

    def __init__(self, message, line_num=None):
        self.line_num = line_num
        self.message = message
        if line_num is None:
            super().__init__(message)
        else:
            super().__init__(f"Line {line_num}: {message}")


class InvocationError(AssemblerError):
    exit_code = 1


class FileAccessError(AssemblerError):
    exit_code = 2

    def __init__(self, path, role):
        self.path = path
        self.role = role
        super().__init__(f"Cannot open {role} file '{path}'")


class UnknownCommand(AssemblerError):
    exit_code = 3

    def __init__(self, line_num, token):
        self.token = token
        super().__init__(f"Unknown command '{token}'.", line_num)


class UnexpectedEndOfInput(AssemblerError):
    exit_code = 4

    def __init__(self, mnemonic, line_num=None):
        # line_num is where the unfinished instruction started
        self.mnemonic = mnemonic
        self.instruction_line = line_num
        super().__init__(
            f"End of file reached while expecting an argument for "
            f"command '{mnemonic}'.")


class InvalidArgument(AssemblerError):
    exit_code = 5

    def __init__(self, line_num, mnemonic, argument, width=WORD_SIZE):
        self.mnemonic = mnemonic
        self.argument = argument
        self.width = width
        super().__init__(
            f"Invalid argument '{argument}' for command '{mnemonic}'. "
            f"Expected an {width}-bit binary string.", line_num)

# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

EXPECT_INSTRUCTION = "instruction"
EXPECT_ARGUMENT = "argument"


class Assembler:
    """Two-state line consumer that builds the program word by word.

    In EXPECT_INSTRUCTION every non-blank line must be a mnemonic. After a
    mnemonic with arity N the assembler moves to EXPECT_ARGUMENT and the next
    N non-blank lines are taken as binary literals, whatever they look like.
    """

    def __init__(self, catalog=INSTRUCTIONS):
        self.catalog = catalog
        self.words = []      # program, append-only
        self.listing = []    # (address|None, word|None, raw_source_line)
        self.line_num = 0
        self.state = EXPECT_INSTRUCTION
        self.remaining = 0
        self.mnemonic = None
        self.mnemonic_line = None

    def emit(self, word, raw_line):
        self.listing.append((len(self.words), word, raw_line))
        self.words.append(word)

    def feed(self, raw_line):
        """Consume one physical source line (terminator optional)."""
        raw_line = raw_line.rstrip("\r\n")
        self.line_num += 1
        token = sanitize_line(raw_line)

        if not token:
            self.listing.append((None, None, raw_line))
            return

        if self.state == EXPECT_INSTRUCTION:
            self._instruction(token, raw_line)
        else:
            self._argument(token, raw_line)

    def _instruction(self, token, raw_line):
        if not is_known(token, self.catalog):
            raise UnknownCommand(self.line_num, token)

        spec = spec_of(token, self.catalog)
        self.emit(spec.opcode, raw_line)
        if spec.arity > 0:
            self.state = EXPECT_ARGUMENT
            self.remaining = spec.arity
            self.mnemonic = token
            self.mnemonic_line = self.line_num

    def _argument(self, token, raw_line):
        if not is_binary(token) or len(token) > WORD_SIZE:
            raise InvalidArgument(self.line_num, self.mnemonic, token)

        self.emit(pad_argument(token), raw_line)
        self.remaining -= 1
        if self.remaining == 0:
            self.state = EXPECT_INSTRUCTION
            self.mnemonic = None
            self.mnemonic_line = None

    def finish(self):
        """Check the terminal state and return a copy of the program."""
        if self.state == EXPECT_ARGUMENT:
            raise UnexpectedEndOfInput(self.mnemonic, self.mnemonic_line)
        return list(self.words)

    def assemble_lines(self, lines):
        """Assemble an iterable of lines (e.g. an open file)."""
        for raw_line in lines:
            self.feed(raw_line)
        return self.finish(), list(self.listing)

    def assemble(self, source_text):
        """Assemble source text; lines break at "\n" only, as in a file."""
        return self.assemble_lines(io.StringIO(source_text))

# ---------------------------------------------------------------------------
# Output generation
# ---------------------------------------------------------------------------


def pad_program(words, min_words=MIN_MEMORY_WORDS):
    """Append zero words until the program fills min_words. Never truncates."""
    padded = list(words)
    padded.extend([ZERO_WORD] * (min_words - len(padded)))
    return padded


def generate_bin(words):
    """Generate the text image: one 8-bit binary word per line."""
    return "".join(f"{word}\n" for word in pad_program(words))


def generate_hex(words):
    """Generate Intel HEX format from the padded program."""
    image = [int(word, 2) for word in pad_program(words)]
    lines = []
    # 16 bytes per data record
    for base in range(0, len(image), 16):
        data = image[base:base + 16]
        # Data record: :LLAAAATT[DD...]CC
        addr_hi = (base >> 8) & 0xFF
        addr_lo = base & 0xFF
        record = [len(data), addr_hi, addr_lo, 0x00] + data
        checksum = (~sum(record) + 1) & 0xFF
        hex_str = "".join(f"{b:02X}" for b in record) + f"{checksum:02X}"
        lines.append(f":{hex_str}")
    # EOF record
    lines.append(":00000001FF")
    return "\n".join(lines) + "\n"


def generate_lst(listing):
    """Generate listing file content."""
    lines = []
    for addr, word, raw in listing:
        if addr is not None:
            lines.append(f"{addr:04X}  {word}  {raw}")
        else:
            lines.append(f"                {raw}")
    return "\n".join(lines) + "\n"


GENERATORS = {"bin": generate_bin, "hex": generate_hex}

# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors as InvocationError instead of exiting with 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        raise InvocationError(message)


def build_parser():
    parser = _ArgumentParser(description="ASM8 Assembler")
    parser.add_argument("source", help="Assembly source file (.asm)")
    parser.add_argument("output", help="Output file (.bin)")
    parser.add_argument(
        "--format", choices=sorted(GENERATORS), default="bin",
        help="Output format: bin (one binary word per line, default), "
             "hex (Intel HEX)")
    parser.add_argument(
        "--listing", metavar="PATH",
        help="Also write an address/word/source listing to PATH")
    return parser


def read_source(path):
    """Assemble the file at path, returning (words, listing)."""
    try:
        # latin-1 maps every byte, so non-ASCII comments pass through
        f = open(path, "r", encoding="latin-1", newline="\n")
    except OSError as e:
        raise FileAccessError(path, "input") from e
    with f:
        return Assembler().assemble_lines(f)


def write_text(path, text):
    try:
        f = open(path, "w", encoding="latin-1")
    except OSError as e:
        raise FileAccessError(path, "output") from e
    with f:
        f.write(text)


def run(argv=None):
    """Run one assembly; raises AssemblerError on any failure."""
    args = build_parser().parse_args(argv)

    words, listing = read_source(args.source)
    write_text(args.output, GENERATORS[args.format](words))
    if args.listing:
        write_text(args.listing, generate_lst(listing))

    print(f"Compilation successful. {len(words)} lines of code generated.")
    print(f"Output written to '{args.output}'")
    if args.listing:
        print(f"Listing: {args.listing}")


def main(argv=None):
    try:
        run(argv)
    except AssemblerError as err:
        print(f"ERROR: {err}", file=sys.stderr)
        return err.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
