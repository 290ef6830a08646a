"""
Object images: a big-endian 16-bit load address followed by the
big-endian 16-bit words to place there.
"""

from array import array
import sys

class LoadError(ValueError):
    pass

def _to_native(words):
    if sys.byteorder == "little":
        words.byteswap()
    return words

def read_object(fp):
    """
    Read one object block from a binary file object. Returns
    (origin, words).
    """
    data = fp.read()
    if len(data) < 2:
        raise LoadError("object file is empty: no load address")
    if len(data) % 2:
        raise LoadError("object file has an odd number of bytes (%d)" % len(data))
    words = array('H')
    words.frombytes(data)
    words = _to_native(words)
    return words[0], list(words[1:])

def load_object_file(filename):
    with open(filename, 'rb') as fp:
        return read_object(fp)

def write_object(fp, origin, words):
    """ Write origin and words as a big-endian object block """
    block = array('H', [origin & 0xFFFF] + [word & 0xFFFF for word in words])
    _to_native(block).tofile(fp)

def save_object_file(filename, origin, words):
    with open(filename, 'wb') as fp:
        write_object(fp, origin, words)

def is_composed_of(s, letters):
    return len(s) > 0 and sum([s.count(letter) for letter in letters]) == len(s)

def is_hex(s):
    if len(s) > 1:
        if s[0] in "xX":
            return is_composed_of(s[1:].upper(), "0123456789ABCDEF")
    return False

def is_bin(s):
    return is_composed_of(s, "01")

def parse_words(text):
    """
    Parse the text form of an object block. Each line holds one word,
    either in hex (x3000) or in binary, where the binary digits may be
    split by spaces (0001 000 000 1 00101). Anything after ';' is a
    comment. The first word is the load address.
    """
    words = []
    for count, line in enumerate(text.splitlines(), 1):
        line = line.split(';')[0].strip()
        if not line:
            continue
        alltogether = "".join(line.split())
        if is_bin(alltogether):
            if len(alltogether) > 16:
                raise LoadError('more than 16 bits: "%s", line #%s' % (line, count))
            words.append(int(alltogether, 2))
        elif is_hex(alltogether):
            value = int(alltogether[1:], 16)
            if value > 0xFFFF:
                raise LoadError('more than 16 bits: "%s", line #%s' % (line, count))
            words.append(value)
        else:
            raise LoadError('not a hex or binary word: "%s", line #%s' % (line, count))
    if not words:
        raise LoadError("no load address given")
    return words[0], words[1:]
