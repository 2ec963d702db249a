#!/usr/bin/env python3
"""
mu0kit — MU0 Assembler and Emulator
===================================

One CLI for the whole MU0 toolchain:
    mu0kit assemble  — Assemble MU0 source to machine code
    mu0kit emulate   — Run a machine-code file
    mu0kit disasm    — Decode a machine-code file word by word

Usage:
    python mu0kit.py <command> [options]
    python mu0kit.py --help
    python mu0kit.py <command> --help

Examples:
    python mu0kit.py assemble hello.asm hello.hex -v
    python mu0kit.py emulate hello.hex
    python mu0kit.py emulate loop.hex -l 1000 -v
    python mu0kit.py disasm hello.hex

Exit status:
    0    program halted on STP (or command succeeded)
    1    usage, file, assembly or machine-code error; console input exhausted
    124  emulation stopped by the step limit
    132  illegal instruction
    139  memory access out of range
"""

import argparse
import logging
import sys
import os

__version__ = "1.0.0"

# Ensure our packages are importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from mu0_assembler import Assembler, AssemblerError, disassemble_word
from mu0_assembler.lexer import parse_c_integer
from mu0_emulator import (
    MU0Emulator, StopReason, ConsoleDevice, MachineCodeError, load_machine_code,
)

logger = logging.getLogger("mu0kit")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STEP_LIMIT = 124
EXIT_ILLEGAL = 132
EXIT_SEGFAULT = 139

STOP_EXIT_CODES = {
    StopReason.HALT: EXIT_OK,
    StopReason.LIMIT: EXIT_STEP_LIMIT,
    StopReason.FAULT: EXIT_SEGFAULT,
    StopReason.ILLEGAL: EXIT_ILLEGAL,
    StopReason.INPUT_EXHAUSTED: EXIT_ERROR,
}

SOURCE_FORMAT_HELP = """\
The assembler chooses what to do with each line based on its first character:
    ';' or whitespace   the line is ignored
    ':'                 the next word is a label for the next memory location
    '#'                 the next number is stored at the next memory location
                        (decimal, 0x-prefixed hex or 0-prefixed octal)
    '$'                 the next character is stored as its ASCII code
If the line starts with one of the three letter commands
    LDA, STO, ADD, SUB, JMP, JGE, JNE
the opcode is stored and the next token is the memory address. An address
starting with ':' is a label. STP takes no address.
Lines must not exceed 90 characters.

The emulator expects 4 digit hex numbers, one per line. Memory location
0xfff is memory-mapped IO: LDA from 0xfff reads a character from stdin and
STO to 0xfff prints a character to stdout.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mu0kit",
        description="MU0 toolchain — assemble, emulate, disassemble",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=SOURCE_FORMAT_HELP,
    )
    parser.add_argument("--version", action="version", version=f"mu0kit {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── assemble ─────────────────────────────────────────────────────────
    p_asm = sub.add_parser("assemble", help="Assemble MU0 source to machine code",
                           formatter_class=argparse.RawDescriptionHelpFormatter,
                           epilog=SOURCE_FORMAT_HELP)
    p_asm.add_argument("input", help="Input assembly file")
    p_asm.add_argument("output", help="Output machine-code file")
    p_asm.add_argument("-v", "--verbose", action="store_true",
                       help="Trace label definitions")
    p_asm.add_argument("--listing", action="store_true",
                       help="Also print an address/word listing to stdout")

    # ── emulate ──────────────────────────────────────────────────────────
    p_emu = sub.add_parser("emulate", help="Run a machine-code file")
    p_emu.add_argument("input", help="Machine-code file")
    p_emu.add_argument("-v", "--verbose", action="store_true",
                       help="Trace every fetch/execute step to stderr")
    p_emu.add_argument("-l", "--limit", type=parse_c_integer, default=0,
                       metavar="N",
                       help="Stop after N steps (0: no limit)")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Decode a machine-code file")
    p_dis.add_argument("input", help="Machine-code file")

    return parser


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help(sys.stderr)
        return EXIT_ERROR

    setup_logging(getattr(args, "verbose", False))

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except OSError as e:
        logger.error("%s", e)
        return EXIT_ERROR


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

# ── assemble ─────────────────────────────────────────────────────────────
def cmd_assemble(args) -> int:
    # latin-1 maps every byte to one character, so "$" literals keep raw byte values
    with open(args.input, "r", encoding="latin-1") as f:
        source = f.read()

    asm = Assembler()
    try:
        asm.assemble(source)
    except AssemblerError as e:
        logger.error("Assembly error: %s", e)
        return EXIT_ERROR

    with open(args.output, "w", encoding="utf-8") as f:
        f.write(asm.to_machine_code())

    if args.listing:
        print(asm.get_listing())
    logger.info("Assembled %d words -> %s", len(asm.words), args.output)
    return EXIT_OK


# ── emulate ──────────────────────────────────────────────────────────────
def cmd_emulate(args) -> int:
    with open(args.input, "r", encoding="latin-1") as f:
        text = f.read()

    emu = MU0Emulator(ConsoleDevice())
    try:
        emu.load_text(text)
    except MachineCodeError as e:
        logger.error("%s", e)
        return EXIT_ERROR

    emu.enable_trace(args.verbose)
    reason = emu.run(limit=args.limit)
    logger.debug("Stopped: %s  %s", reason.value, emu.regs.display())
    return STOP_EXIT_CODES[reason]


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args) -> int:
    with open(args.input, "r", encoding="latin-1") as f:
        text = f.read()

    try:
        words = load_machine_code(text)
    except MachineCodeError as e:
        logger.error("%s", e)
        return EXIT_ERROR

    for addr, word in enumerate(words):
        print(f"{addr:03x}: {word & 0xFFFF:04x}  {disassemble_word(word)}")
    return EXIT_OK


COMMANDS = {
    "assemble": cmd_assemble,
    "emulate": cmd_emulate,
    "disasm": cmd_disasm,
}


if __name__ == "__main__":
    sys.exit(main())
