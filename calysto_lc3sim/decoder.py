"""
Instruction decoding.

decode() turns a raw 16-bit word into one of a closed set of instruction
records. Opcodes this simulator does not execute (NOT, RTI, JSRR, JMP
through anything but R7, and the reserved opcode) decode to Unsupported
instead of raising, so the run loop can stop before touching any state.
"""

from collections import namedtuple

from .bits import (lc_hex, plus, ascii_str, opcode, dest_reg,
                   src_reg1, src_reg2, base_reg, immediate_flag, imm5,
                   pc_offset6, pc_offset9, pc_offset11, trap_vector,
                   nzp_bits)

AddImm = namedtuple("AddImm", ["dst", "src", "imm"])
AddReg = namedtuple("AddReg", ["dst", "src1", "src2"])
AndImm = namedtuple("AndImm", ["dst", "src", "imm"])
AndReg = namedtuple("AndReg", ["dst", "src1", "src2"])
Ld = namedtuple("Ld", ["dst", "offset"])
Ldi = namedtuple("Ldi", ["dst", "offset"])
Ldr = namedtuple("Ldr", ["dst", "base", "offset"])
Lea = namedtuple("Lea", ["dst", "offset"])
St = namedtuple("St", ["src", "offset"])
Sti = namedtuple("Sti", ["src", "offset"])
Str = namedtuple("Str", ["src", "base", "offset"])
Br = namedtuple("Br", ["n", "z", "p", "offset"])
Jsr = namedtuple("Jsr", ["offset"])
Ret = namedtuple("Ret", [])
Trap = namedtuple("Trap", ["vector"])
Unsupported = namedtuple("Unsupported", ["opcode"])

INSTRUCTIONS = (AddImm, AddReg, AndImm, AndReg, Ld, Ldi, Ldr, Lea,
                St, Sti, Str, Br, Jsr, Ret, Trap)

# Instructions that recompute N/Z/P from their destination register:
SETS_CC = (AddImm, AddReg, AndImm, AndReg, Ld, Ldi, Ldr, Lea)

LINKAGE_REGISTER = 7

mnemonic = {
    0b0000: "BR",
    0b0001: "ADD",
    0b0010: "LD",
    0b0011: "ST",
    0b0100: "JSR",
    0b0101: "AND",
    0b0110: "LDR",
    0b0111: "STR",
    0b1000: "RTI",
    0b1001: "NOT",
    0b1010: "LDI",
    0b1011: "STI",
    0b1100: "JMP",
    0b1101: "RESERVED",
    0b1110: "LEA",
    0b1111: "TRAP",
}

def _add(word):
    if immediate_flag(word):
        return AddImm(dest_reg(word), src_reg1(word), imm5(word))
    return AddReg(dest_reg(word), src_reg1(word), src_reg2(word))

def _and(word):
    if immediate_flag(word):
        return AndImm(dest_reg(word), src_reg1(word), imm5(word))
    return AndReg(dest_reg(word), src_reg1(word), src_reg2(word))

def _jsr(word):
    if word & 0b0000100000000000:
        return Jsr(pc_offset11(word))
    # JSRR
    return Unsupported(opcode(word))

def _jmp(word):
    if base_reg(word) == LINKAGE_REGISTER:
        return Ret()
    return Unsupported(opcode(word))

def _br(word):
    n, z, p = nzp_bits(word)
    return Br(n, z, p, pc_offset9(word))

_decoders = {
    0b0000: _br,
    0b0001: _add,
    0b0010: lambda word: Ld(dest_reg(word), pc_offset9(word)),
    0b0011: lambda word: St(dest_reg(word), pc_offset9(word)),
    0b0100: _jsr,
    0b0101: _and,
    0b0110: lambda word: Ldr(dest_reg(word), base_reg(word), pc_offset6(word)),
    0b0111: lambda word: Str(dest_reg(word), base_reg(word), pc_offset6(word)),
    0b1010: lambda word: Ldi(dest_reg(word), pc_offset9(word)),
    0b1011: lambda word: Sti(dest_reg(word), pc_offset9(word)),
    0b1100: _jmp,
    0b1110: lambda word: Lea(dest_reg(word), pc_offset9(word)),
    0b1111: lambda word: Trap(trap_vector(word)),
}

def decode(word):
    """
    Decode an instruction word into its instruction record. Never
    raises; unknown encodings come back as Unsupported(opcode).
    """
    op = opcode(word)
    if op in _decoders:
        return _decoders[op](word)
    return Unsupported(op)

def is_supported(instruction):
    return isinstance(instruction, INSTRUCTIONS)

trap_names = {
    0x20: "GETC",
    0x21: "OUT",
    0x22: "PUTS",
    0x23: "IN",
    0x24: "PUTSP",
    0x25: "HALT",
}

def format_instruction(word, location):
    """
    Disassemble the word stored at location. PC-relative targets are
    shown as absolute addresses.
    """
    instruction = decode(word)
    # PC-relative targets are taken from the incremented PC:
    def target(offset):
        return lc_hex(plus(location + 1, offset))
    kind = type(instruction)
    if kind is AddImm:
        return "ADD R%d, R%d, #%s" % instruction
    elif kind is AddReg:
        return "ADD R%d, R%d, R%d" % instruction
    elif kind is AndImm:
        return "AND R%d, R%d, #%s" % instruction
    elif kind is AndReg:
        return "AND R%d, R%d, R%d" % instruction
    elif kind in (Ld, Ldi, Lea, St, Sti):
        return "%s R%d, %s" % (kind.__name__.upper(), instruction[0],
                               target(instruction.offset))
    elif kind in (Ldr, Str):
        return "%s R%d, R%d, #%s" % (kind.__name__.upper(), instruction[0],
                                     instruction.base, instruction.offset)
    elif kind is Br:
        flags = "".join(f for f, bit in zip("nzp", instruction[:3]) if bit)
        if not flags:
            return "NOOP - (no BR to %s) %s" % (target(instruction.offset),
                                                ascii_str(word))
        return "BR%s %s" % (flags, target(instruction.offset))
    elif kind is Jsr:
        return "JSR %s" % target(instruction.offset)
    elif kind is Ret:
        return "RET"
    elif kind is Trap:
        if instruction.vector in trap_names:
            return trap_names[instruction.vector]
        return "TRAP %s" % lc_hex(instruction.vector).replace("x00", "x", 1)
    else:
        return ";; UNSUPPORTED %s (%s) %s" % (
            mnemonic[instruction.opcode], lc_hex(instruction.opcode),
            lc_hex(word & 0b0000111111111111))
