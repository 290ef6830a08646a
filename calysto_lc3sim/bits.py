"""
Bit-level helpers for 16-bit LC-3 words.

Words are kept as 16-bit patterns (0 - 0xFFFF) everywhere in the
machine; lc_int() gives the two's-complement reading of a pattern.
"""

def ascii_str(i):
    if i < 256:
        if i < 32 or i > 127: # integers
            return "(or %s)" % i
        else: # int, or ASCII
            return "(or %s, %s)" % (i, repr(chr(i)))
    else:
        return ""

class HEX(int):
    def __repr__(self):
        return lc_hex(self)

def lc_hex(h):
    """ Format the value in the form xFFFF """
    return 'x%04X' % lc_bin(h)

def lc_bin(v):
    """ Truncate any extra bytes """
    return v & 0xFFFF

def lc_int(v):
    """ Signed value of a 16-bit pattern """
    if v & (1 << 15): # negative
        return -((~(v & 0xFFFF) + 1) & 0xFFFF)
    else:
        return v & 0xFFFF

def sext(binary, bits):
    """
    Sign-extend the low bits of binary to a 16-bit pattern, check the
    most significant bit
    """
    binary &= (1 << bits) - 1
    if binary & (1 << (bits - 1)):
        return lc_bin(binary | (0xFFFF << bits))
    else:
        return binary

def sign_extend(binary, bits):
    """ Sign-extend the low bits of binary, returning a Python int """
    return lc_int(sext(binary, bits))

def plus(v1, v2):
    """
    Add two values together, wrapping to a 16-bit pattern.
    """
    return lc_bin(lc_int(v1) + lc_int(v2))

# Instruction fields:
# 0000111222000333
#     ^dst
#        ^src1/base
#               ^src2

def opcode(word):
    return (word >> 12) & 0xF

def dest_reg(word):
    return (word >> 9) & 0b111

def src_reg1(word):
    return (word >> 6) & 0b111

base_reg = src_reg1

def src_reg2(word):
    return word & 0b111

def immediate_flag(word):
    return (word >> 5) & 0b1

def imm5(word):
    return sign_extend(word, 5)

def pc_offset6(word):
    return sign_extend(word, 6)

def pc_offset9(word):
    return sign_extend(word, 9)

def pc_offset11(word):
    return sign_extend(word, 11)

def trap_vector(word):
    """ Trap vectors are table indexes, never negative """
    return word & 0xFF

def nzp_bits(word):
    return ((word >> 11) & 1, (word >> 10) & 1, (word >> 9) & 1)
