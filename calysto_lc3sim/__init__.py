from ._version import __version__
from .lc3 import LC3, DecodeError, RUNNING, HALTED, FAULTED
from .decoder import decode, format_instruction
from .loader import LoadError, read_object, write_object, parse_words
