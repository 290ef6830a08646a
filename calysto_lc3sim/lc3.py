"""
The LC-3 machine: register file, memory with its memory-mapped device
registers, the per-instruction semantics and the fetch/execute loop.

Supports every instruction except NOT, JMP (other than RET), JSRR and
RTI. The display (DSR/DDR) is the only device; there is no keyboard.
Output latency is one instruction: a character stored to the DDR is
written out at the start of the following cycle.
"""

from array import array
import sys

from .bits import HEX, lc_hex, lc_bin, lc_int, plus, ascii_str
from .decoder import (decode, format_instruction, is_supported, AddImm,
                      AddReg, AndImm, AndReg, Ld, Ldi, Ldr, Lea, St, Sti,
                      Str, Br, Jsr, Ret, Trap, SETS_CC)
from . import loader

# Memory-mapped registers:
DSR = 0xFE04        ## Display Status Register, ready bit at [15]
DDR = 0xFE06        ## Display Data Register, char in [7:0]
MCR = 0xFFFE        ## Machine Control Register, power bit at [15]

DISPLAY_READY = 0x8000
DISPLAY_PENDING = 0x0000
POWER_ON = 0x8000

MEMORY_SIZE = 1 << 16
REG_COUNT = 8

RUNNING = "RUNNING"
HALTED = "HALTED"
FAULTED = "FAULTED"

## directives that take a fixed argument list
DIRECTIVE_ARGS = {
    "%warn": ["0|1"],
    "%pc": ["ADDRESS"],
    "%mem": ["ADDRESS", "VALUE"],
    "%reg": ["REGISTER", "VALUE"],
}

class DecodeError(ValueError):
    """
    Raised when the fetched word does not decode to an instruction this
    machine executes. pc is the address the word was fetched from.
    """
    def __init__(self, opcode, pc):
        self.opcode = opcode
        self.pc = pc
        super(DecodeError, self).__init__(
            "Unrecognized instruction with opcode %d\nPC = %s" % (opcode, lc_hex(pc)))

class LC3(object):
    """
    The LC3 Computer. This object loads, disassembles, and executes
    LC3 machine code.
    """

    def __init__(self, kernel=None):
        self.kernel = kernel
        self.breakpoints = {}
        # Functions for interpreting instructions:
        self.apply = {
            AddImm: self.ADD,
            AddReg: self.ADD,
            AndImm: self.AND,
            AndReg: self.AND,
            Ld: self.LD,
            Ldi: self.LDI,
            Ldr: self.LDR,
            Lea: self.LEA,
            St: self.ST,
            Sti: self.STI,
            Str: self.STR,
            Br: self.BR,
            Jsr: self.JSR,
            Ret: self.RET,
            Trap: self.TRAP,
        }
        self.initialize()

    def initialize(self):
        self.debug = False
        self.warn = False
        self.orig = HEX(0x3000)
        self.orig_end = self.orig
        self.instruction_count = 0
        self.suspended = False
        self.display_output = []
        self.ir = 0
        self.set_pc(0x3000)
        self.register = {0:0, 1:0, 2:0, 3:0, 4:0, 5:0, 6:0, 7:0}
        self.reset_memory()
        self.reset_registers()
        self.power_on()

    def reset_memory(self):
        self.memory = array('H', [0]) * MEMORY_SIZE
        self.breakpoints = {}

    def reset_registers(self):
        debug = self.debug
        self.debug = False
        for i in range(REG_COUNT):
            self.set_register(i, 0)
        self.set_nzp(0)
        self.debug = debug

    def power_on(self):
        """
        Put the devices in their start state: display ready, machine
        control register powered on, Z set.
        """
        self.display_status = DISPLAY_READY
        self.display_data = 0
        self.mcr = POWER_ON
        self.set_nzp(0)
        self.state = RUNNING
        self.fault = None

    #### Raw state access; memory here bypasses the device registers.
    def set_nzp(self, value):
        value = lc_bin(value)
        self.nzp = (int(value & (1 << 15) > 0),
                    int(value == 0),
                    int((value & (1 << 15) == 0) and value != 0))
        if self.debug:
            self.Print("    NZP <=", self.get_nzp())

    def get_nzp(self, register=None):
        if register is not None:
            return self.nzp[register]
        return self.nzp

    def get_pc(self):
        return self.pc

    def set_pc(self, value):
        self.pc = HEX(lc_bin(value))
        if self.debug:
            self.Print("    PC <= %s" % lc_hex(value))

    def increment_pc(self, value=1):
        self.set_pc(self.get_pc() + value)

    def get_register(self, position):
        return self.register[position]

    def set_register(self, position, value):
        self.register[position] = lc_bin(value)
        if self.debug:
            self.Print("    R%d <= %s" % (position, lc_hex(value)))

    def get_memory(self, location):
        return self.memory[lc_bin(location)]

    def set_memory(self, location, value):
        self.memory[lc_bin(location)] = lc_bin(value)
        if self.debug:
            self.Print("    memory[%s] <= %s" % (lc_hex(location), lc_hex(value)))

    #### Memory-mapped access; every operand read/write goes through here.
    def load_word(self, address):
        address = lc_bin(address)
        if address == DSR:
            value = self.display_status
        elif address == DDR:
            value = self.display_data
        elif address == MCR:
            value = self.mcr
        else:
            value = self.get_memory(address)
        return value

    def store_word(self, address, value):
        address = lc_bin(address)
        value = lc_bin(value)
        if address == DSR:
            self.display_status = value
            if self.debug:
                self.Print("    DSR <= %s" % lc_hex(value))
        elif address == DDR:
            self.display_data = value
            self.display_status = DISPLAY_PENDING
            if self.debug:
                self.Print("    DDR <= %s" % lc_hex(value))
        elif address == MCR:
            self.mcr = value
            if self.debug:
                self.Print("    MCR <= %s" % lc_hex(value))
        else:
            self.set_memory(address, value)

    def load_block(self, origin, words):
        """
        Place words in memory starting at origin. The PC is left at the
        origin, so the last block loaded is the one that runs.
        """
        origin = lc_bin(origin)
        for offset, word in enumerate(words):
            self.memory[lc_bin(origin + offset)] = lc_bin(word)
        self.orig = HEX(origin)
        self.orig_end = HEX(origin + len(words))
        self.set_pc(origin)
        return self.orig

    def load_file(self, filename):
        origin, words = loader.load_object_file(filename)
        return self.load_block(origin, words)

    @property
    def output(self):
        return "".join(self.display_output)

    @property
    def powered(self):
        return bool(self.mcr & POWER_ON)

    def Print(self, *args, end="\n"):
        print(*args, end=end)

    def Error(self, string):
        if self.kernel:
            self.kernel.Error(string)
        else:
            sys.stderr.write(string)

    #### Fetch / execute
    def Output(self, byte):
        self.Print(chr(byte), end="")

    def flush_display(self):
        byte = self.display_data & 0x00FF
        self.display_output.append(chr(byte))
        self.Output(byte)
        self.display_status = DISPLAY_READY

    def run(self, max_steps=None):
        """
        Step until the power bit is cleared, an unsupported instruction
        is fetched, a breakpoint is hit, or max_steps instructions have
        run. Returns the machine state.
        """
        self.suspended = False
        if self.debug:
            self.Print("Tracing Script! PC* is incremented Program Counter")
            self.Print("(Instr Count) INSTR (PC*: xHEX)")
            self.Print("----------------------------------------------------")
        steps = 0
        while self.state == RUNNING and not self.suspended:
            if max_steps is not None and steps >= max_steps:
                self.suspended = True
                break
            try:
                self.step()
            except DecodeError as exc:
                self.Error("\n%s\nExiting...\n" % exc)
                break
            steps += 1
        return self.state

    def step(self):
        if self.state != RUNNING:
            return self.state
        if self.display_status == DISPLAY_PENDING:
            self.flush_display()
        pc = self.get_pc()
        self.ir = self.get_memory(pc)
        self.increment_pc()
        instruction = decode(self.ir)
        if not is_supported(instruction):
            self.state = FAULTED
            self.fault = DecodeError(instruction.opcode, pc)
            raise self.fault
        self.instruction_count += 1
        if self.debug:
            self.Print("(%s) %s (%s*: %s)" % (
                self.instruction_count,
                format_instruction(self.ir, pc),
                lc_hex(self.get_pc()),
                lc_hex(self.ir)))
        self.apply[type(instruction)](instruction)
        if isinstance(instruction, SETS_CC):
            self.set_nzp(self.get_register(instruction.dst))
        if not self.powered:
            self.state = HALTED
        elif self.pc in self.breakpoints:
            self.suspended = True
            self.Print("...breakpoint hit at", lc_hex(self.pc))
        return self.state

    #### Instructions
    def ADD(self, instruction):
        if isinstance(instruction, AddImm):
            value = plus(self.get_register(instruction.src), instruction.imm)
        else:
            value = plus(self.get_register(instruction.src1),
                         self.get_register(instruction.src2))
        self.set_register(instruction.dst, value)

    def AND(self, instruction):
        if isinstance(instruction, AndImm):
            value = self.get_register(instruction.src) & lc_bin(instruction.imm)
        else:
            value = (self.get_register(instruction.src1) &
                     self.get_register(instruction.src2))
        self.set_register(instruction.dst, value)

    def LD(self, instruction):
        location = plus(self.get_pc(), instruction.offset)
        memory = self.load_word(location)
        if self.debug:
            self.Print("  Reading memory[x%04x] (x%04x) =>" % (location, memory))
        self.set_register(instruction.dst, memory)

    def LDI(self, instruction):
        location = plus(self.get_pc(), instruction.offset)
        memory1 = self.load_word(location)
        memory2 = self.load_word(memory1)
        if self.debug:
            self.Print("  Reading memory[x%04x] (x%04x) =>" % (location, memory1))
            self.Print("  Reading memory[x%04x] (x%04x) =>" % (memory1, memory2))
        self.set_register(instruction.dst, memory2)

    def LDR(self, instruction):
        location = plus(self.get_register(instruction.base), instruction.offset)
        memory = self.load_word(location)
        if self.debug:
            self.Print("  Reading memory[x%04x] (x%04x) =>" % (location, memory))
        self.set_register(instruction.dst, memory)

    def LEA(self, instruction):
        self.set_register(instruction.dst, plus(self.get_pc(), instruction.offset))

    def ST(self, instruction):
        self.store_word(plus(self.get_pc(), instruction.offset),
                        self.get_register(instruction.src))

    def STI(self, instruction):
        location = self.load_word(plus(self.get_pc(), instruction.offset))
        self.store_word(location, self.get_register(instruction.src))

    def STR(self, instruction):
        self.store_word(plus(self.get_register(instruction.base), instruction.offset),
                        self.get_register(instruction.src))

    def BR(self, instruction):
        if not (instruction.n or instruction.z or instruction.p) and self.warn:
            self.Error("Warning: executing NOOP at %s\n" % lc_hex(self.get_pc() - 1))
        if (instruction.n and self.get_nzp(0) or
            instruction.z and self.get_nzp(1) or
            instruction.p and self.get_nzp(2)):
            self.set_pc(plus(self.get_pc(), instruction.offset))
            if self.debug:
                self.Print("    True - branching to", lc_hex(self.get_pc()))
        else:
            if self.debug:
                self.Print("    False - continuing...")

    def JSR(self, instruction):
        temp = self.get_pc()
        self.set_register(7, temp)
        self.set_pc(plus(temp, instruction.offset))

    def RET(self, instruction):
        self.set_pc(self.get_register(7))

    def TRAP(self, instruction):
        self.set_register(7, self.get_pc())
        self.set_pc(self.load_word(instruction.vector))

    #### Diagnostics
    def psr(self):
        n, z, p = self.get_nzp()
        return (n << 2) + (z << 1) + p

    def cc(self):
        n, z, p = self.get_nzp()
        return "N" if n else "Z" if z else "P" if p else " "

    def dump_registers(self):
        self.Print()
        self.Print("=" * 60)
        self.Print("Registers:")
        self.Print("=" * 60)
        self.Print("PC: %s  IR: %s  PSR: %s  CC: %s" % (
            lc_hex(self.get_pc()), lc_hex(self.ir), lc_hex(self.psr()), self.cc()))
        for r,v in zip("NZP", self.get_nzp()):
            self.Print("%s: %s" % (r,v), end=" ")
        self.Print()
        count = 1
        for key in range(REG_COUNT):
            value = self.get_register(key)
            self.Print("R%d: %s #%-6d" % (key, lc_hex(value), lc_int(value)), end=" ")
            if count % 4 == 0:
                self.Print()
            count += 1

    def dump(self, orig_start=None, orig_stop=None, raw=False, header=True):
        if orig_start is None:
            start = self.orig
        else:
            start = orig_start
        if orig_stop is None:
            stop = self.orig_end
        else:
            stop = orig_stop + 1

        if stop <= start:
            stop = start + 10
        if stop - start > 100:
            stop = start + 100
        if raw:
            if header:
                self.Print("=" * 60)
                self.Print("Memory dump:")
                self.Print("=" * 60)
            for x in range(start, stop):
                self.Print("%-10s %s: %s" % ("", lc_hex(x), lc_hex(self.load_word(x))))
        else:
            if header:
                self.Print("=" * 60)
                self.Print("Memory disassembled:")
                self.Print("=" * 60)
            for memory in range(start, stop):
                instruction = self.get_memory(memory)
                if instruction == 0:
                    ascii = "\\0"
                else:
                    ascii = ascii_str(instruction)
                self.Print("%-10s %s: %s  %-41s %s" % (
                    "", lc_hex(memory), lc_hex(instruction),
                    format_instruction(instruction, memory), ascii))

    def report(self):
        self.Print()
        self.Print("=" * 60)
        if self.state == FAULTED:
            self.Print("Computation FAULTED")
        elif self.suspended:
            self.Print("Computation SUSPENDED")
        else:
            self.Print("Computation completed")
        self.Print("=" * 60)
        self.Print("Instructions:", self.instruction_count)
        self.dump_registers()

    def execute(self, text):
        """
        Handle one cell: either a %directive, or a text object block
        (origin word followed by the words to place there).
        """
        words = [word.strip() for word in text.split()]
        if not words:
            return True
        if words[0].startswith("%"):
            if words[0] in DIRECTIVE_ARGS and len(words) != len(DIRECTIVE_ARGS[words[0]]) + 1:
                self.Error("Usage: %s %s\n" % (words[0], " ".join(DIRECTIVE_ARGS[words[0]])))
                return False
            if words[0] == "%dump":
                self.dump(*[int("0" + word, 16) for word in words[1:]], raw=True)
                return True
            elif words[0] == "%regs":
                self.dump_registers()
                return True
            elif words[0] == "%dis":
                self.dump(*[int("0" + word, 16) for word in words[1:]])
                return True
            elif words[0] == "%d":
                self.debug = not self.debug
                self.Print("Debug is now %s" % ["off", "on"][int(self.debug)])
                return True
            elif words[0] == "%warn":
                self.warn = bool(int(words[1]))
                self.Print("NOOP warnings are now %s" % ["off", "on"][int(self.warn)])
                return True
            elif words[0] == "%load":
                ok = True
                for filename in words[1:]:
                    try:
                        origin = self.load_file(filename)
                    except (OSError, loader.LoadError) as exc:
                        self.Error("Load error: %s\n" % exc)
                        ok = False
                    else:
                        self.Print("Loaded %s at %s" % (filename, lc_hex(origin)))
                return ok
            elif words[0] == "%pc":
                self.instruction_count = 0
                self.set_pc(int("0" + words[1], 16))
                self.dump_registers()
                return True
            elif words[0] == "%mem":
                location = int("0" + words[1], 16)
                self.store_word(location, int("0" + words[2], 16))
                self.dump(location, location, raw=True)
                return True
            elif words[0] == "%reg":
                self.set_register(int(words[1].upper().lstrip("R")),
                                  int("0" + words[2], 16))
                self.dump_registers()
                return True
            elif words[0] == "%reset":
                self.initialize()
                self.dump_registers()
                return True
            elif words[0] == "%step":
                orig_debug = self.debug
                self.debug = True
                try:
                    self.step()
                except DecodeError as exc:
                    self.Error("\nRuntime error:\n%s\n" % exc)
                    return False
                finally:
                    self.debug = orig_debug
                self.dump_registers()
                return True
            elif words[0] == "%bp":
                if len(words) > 1:
                    if words[1] == "clear":
                        self.breakpoints = {}
                        self.Print("All breakpoints cleared")
                        return True
                    location = int("0" + words[1], 16)
                    self.breakpoints[location] = True
                if self.breakpoints:
                    count = 1
                    self.Print("=" * 60)
                    self.Print("Breakpoints")
                    self.Print("=" * 60)
                    for memory in sorted(self.breakpoints.keys()):
                        self.Print("    %d) " % count, end="")
                        self.dump(memory, memory, header=False)
                        count += 1
                else:
                    self.Print("    No breakpoints set")
                return True
            elif words[0] == "%exe" or words[0] == "%cont":
                if words[0] == "%exe":
                    self.instruction_count = 0
                    self.display_output = []
                    self.reset_registers()
                    self.power_on()
                    self.set_pc(self.orig)
                self.run()
                self.report()
                return self.state != FAULTED
            else:
                self.Error("Invalid Interactive Magic Directive\nHint: %help")
                return False
        else:
            ### Else, must be an object block in text form:
            try:
                origin, block = loader.parse_words(text)
            except loader.LoadError as exc:
                self.Error("\nLoad error\n%s\n" % exc)
                return False
            self.load_block(origin, block)
            self.Print("Loaded %d words at %s. Use %%dis or %%dump to examine; use %%exe to run." %
                       (len(block), lc_hex(origin)))
            return True
