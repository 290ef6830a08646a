"""
Run LC-3 object files from the command line.

Usage:
  lc3sim [--trace] [--regs] [--max-steps N] FILE.obj [FILE.obj ...]

Files are loaded in order; execution starts at the load address of the
last one. Characters written to the display go to stdout.
"""

import argparse
import sys

from .lc3 import LC3, HALTED, FAULTED
from .loader import LoadError
from ._version import __version__

class ConsoleLC3(LC3):
    """
    Writes each display character to stdout as the raw byte stored in
    the DDR, without text encoding.
    """
    def Output(self, byte):
        sys.stdout.flush()
        sys.stdout.buffer.write(bytes([byte]))
        sys.stdout.buffer.flush()

def make_parser():
    parser = argparse.ArgumentParser(
        prog="lc3sim",
        description="Simulate LC-3 object files until the machine halts.")
    parser.add_argument("files", nargs="+", metavar="FILE",
                        help="object file: big-endian load address, then words")
    parser.add_argument("--trace", action="store_true",
                        help="print each instruction as it executes")
    parser.add_argument("--regs", action="store_true",
                        help="print the machine state after the run")
    parser.add_argument("--max-steps", type=int, default=None, metavar="N",
                        help="stop after N instructions")
    parser.add_argument("--version", action="version", version=__version__)
    return parser

def main(argv=None):
    args = make_parser().parse_args(argv)
    lc3 = ConsoleLC3()
    for filename in args.files:
        try:
            lc3.load_file(filename)
        except (OSError, LoadError) as exc:
            lc3.Error("Cannot load %s: %s\n" % (filename, exc))
            return 1
    lc3.debug = args.trace
    state = lc3.run(max_steps=args.max_steps)
    sys.stdout.flush()
    if args.regs:
        lc3.report()
    if state == FAULTED:
        return 1
    if state != HALTED:
        lc3.Error("\nStopped after %d instructions without halting\n" % lc3.instruction_count)
        return 1
    return 0

if __name__ == '__main__':
    sys.exit(main())
