import pytest

from calysto_lc3sim.decoder import INSTRUCTIONS, SETS_CC
from calysto_lc3sim.lc3 import (LC3, DecodeError, RUNNING, HALTED, FAULTED,
                                DSR, DDR, MCR, DISPLAY_READY, DISPLAY_PENDING)

from words import (ADDi, ADDr, ANDi, ANDr, LD, LDI, LDR, LEA, ST, STI, STR,
                   BR, JSR, RET, TRAP, HALT, boot)


@pytest.fixture
def lc3():
    return LC3()


def run_one(lc3, word, origin=0x3000):
    lc3.load_block(origin, [word])
    lc3.step()
    return lc3


def test_initial_state(lc3):
    assert lc3.state == RUNNING
    assert lc3.get_nzp() == (0, 1, 0)
    assert lc3.load_word(DSR) == DISPLAY_READY
    assert lc3.load_word(MCR) == 0x8000
    assert lc3.get_pc() == 0x3000
    assert all(lc3.get_register(r) == 0 for r in range(8))


def test_load_block_sets_pc_to_last_origin(lc3):
    lc3.load_block(0x0200, [1, 2])
    lc3.load_block(0x3000, [3])
    assert lc3.get_pc() == 0x3000
    assert lc3.get_memory(0x0201) == 2


# Memory-mapped access

def test_device_addresses_bypass_memory(lc3):
    lc3.set_memory(DSR, 0x1234)
    assert lc3.load_word(DSR) == DISPLAY_READY
    lc3.store_word(MCR, 0x0001)
    assert lc3.mcr == 0x0001
    assert lc3.get_memory(MCR) == 0
    assert not lc3.powered


def test_store_to_ddr_marks_pending(lc3):
    lc3.store_word(DDR, ord("A"))
    assert lc3.load_word(DDR) == ord("A")
    assert lc3.load_word(DSR) == DISPLAY_PENDING
    assert lc3.get_memory(DDR) == 0


def test_store_to_dsr_has_no_side_effect(lc3):
    lc3.store_word(DSR, 0x4000)
    assert lc3.display_status == 0x4000
    assert lc3.display_data == 0


def test_plain_memory(lc3):
    lc3.store_word(0x4000, -2)
    assert lc3.load_word(0x4000) == 0xFFFE


# Condition codes

def test_add_immediate_negative(lc3):
    run_one(lc3, ADDi(1, 1, -1))
    assert lc3.get_register(1) == 0xFFFF
    assert lc3.get_nzp() == (1, 0, 0)


def test_add_registers(lc3):
    lc3.set_register(2, 40)
    lc3.set_register(3, 2)
    run_one(lc3, ADDr(1, 2, 3))
    assert lc3.get_register(1) == 42
    assert lc3.get_nzp() == (0, 0, 1)


def test_add_wraps(lc3):
    lc3.set_register(0, 0x7FFF)
    run_one(lc3, ADDi(0, 0, 1))
    assert lc3.get_register(0) == 0x8000
    assert lc3.get_nzp() == (1, 0, 0)


def test_and_immediate_is_sign_extended(lc3):
    lc3.set_register(2, 0xF0F0)
    run_one(lc3, ANDi(1, 2, -16))   # xFFF0
    assert lc3.get_register(1) == 0xF0F0
    assert lc3.get_nzp() == (1, 0, 0)


def test_and_registers_zero(lc3):
    lc3.set_register(2, 0x0F0F)
    lc3.set_register(3, 0xF0F0)
    lc3.set_nzp(1)
    run_one(lc3, ANDr(1, 2, 3))
    assert lc3.get_register(1) == 0
    assert lc3.get_nzp() == (0, 1, 0)


def test_ld_uses_incremented_pc(lc3):
    lc3.load_block(0x3000, [LD(0, 1), 0, 0x8001])
    lc3.step()
    assert lc3.get_register(0) == 0x8001
    assert lc3.get_nzp() == (1, 0, 0)


def test_ld_negative_offset(lc3):
    lc3.set_memory(0x2F01, 7)
    lc3.load_block(0x3000, [LD(2, -256)])
    lc3.step()
    assert lc3.get_register(2) == 7


def test_ldr_from_ddr(lc3):
    lc3.store_word(DDR, ord("x"))
    lc3.set_register(1, DDR + 1)
    run_one(lc3, LDR(0, 1, -1))
    assert lc3.get_register(0) == ord("x")


def test_lea_no_memory_access_and_sets_cc(lc3):
    lc3.set_memory(0x3003, 0xFFFF)
    run_one(lc3, LEA(3, 2))
    assert lc3.get_register(3) == 0x3003
    assert lc3.get_nzp() == (0, 0, 1)


def test_lea_negative_address(lc3):
    lc3.load_block(0x8000, [LEA(0, 0)])
    lc3.step()
    assert lc3.get_register(0) == 0x8001
    assert lc3.get_nzp() == (1, 0, 0)


def test_ldi_maps_second_hop(lc3):
    lc3.load_block(0x3000, [LDI(0, 0), DSR])
    lc3.set_memory(DSR, 0x1234)
    lc3.step()
    assert lc3.get_register(0) == DISPLAY_READY
    assert lc3.get_nzp() == (1, 0, 0)


def test_ldi_maps_first_hop(lc3):
    # LDI R0, #3 at xFE00 reads its pointer from the DSR (x8000):
    lc3.set_memory(0x8000, 0x0042)
    lc3.set_memory(DSR, 0x9999)
    lc3.load_block(0xFE00, [LDI(0, 3)])
    lc3.step()
    assert lc3.get_register(0) == 0x0042
    assert lc3.get_nzp() == (0, 0, 1)


@pytest.mark.parametrize("word", [
    ST(0, 5), STI(0, 1), STR(0, 1, 0), BR(0, 0, 0, 3), BR(1, 0, 1, 3),
    JSR(3), RET, TRAP(0x30)])
def test_cc_untouched(lc3, word):
    lc3.set_register(0, 0x8000)
    lc3.set_register(1, 0x4000)
    lc3.set_register(7, 0x3000)
    lc3.set_memory(0x3002, 0x4001)
    lc3.set_nzp(0)
    run_one(lc3, word)
    assert lc3.get_nzp() == (0, 1, 0)


def test_st(lc3):
    lc3.set_register(4, 0xBEEF)
    run_one(lc3, ST(4, -2))
    assert lc3.get_memory(0x2FFF) == 0xBEEF


def test_sti(lc3):
    lc3.set_register(4, 99)
    lc3.load_block(0x3000, [STI(4, 0), 0x4000])
    lc3.step()
    assert lc3.get_memory(0x4000) == 99


def test_str_to_ddr_and_flush_next_cycle(lc3, capsys):
    lc3.set_register(0, ord("A"))
    lc3.set_register(1, DDR)
    lc3.load_block(0x3000, [STR(0, 1, 0), ADDi(2, 2, 1), ADDi(2, 2, 1)])
    lc3.step()
    assert lc3.display_status == DISPLAY_PENDING
    assert lc3.output == ""
    lc3.step()
    assert lc3.output == "A"
    assert lc3.display_status == DISPLAY_READY
    lc3.step()
    assert lc3.output == "A"
    assert capsys.readouterr().out == "A"


class ByteLC3(LC3):
    def __init__(self):
        self.written = []
        super(ByteLC3, self).__init__()

    def Output(self, byte):
        self.written.append(byte)


def test_output_hook_receives_byte(capsys):
    lc3 = ByteLC3()
    lc3.set_register(0, 0x01E9)
    lc3.load_block(0x3000, [STI(0, 1), ADDi(1, 1, 0), DDR])
    lc3.step()
    lc3.step()
    assert lc3.written == [0xE9]
    assert lc3.output == "\xe9"
    assert capsys.readouterr().out == ""


def test_sti_to_ddr_emits_low_byte(lc3):
    lc3.set_register(0, 0x0141)
    lc3.load_block(0x3000, [STI(0, 1), ADDi(1, 1, 0), DDR])
    lc3.step()
    assert lc3.output == ""
    lc3.step()
    assert lc3.output == "A"


def test_dsr_other_values_do_not_flush(lc3):
    lc3.store_word(DDR, ord("B"))
    lc3.store_word(DSR, 0x0001)
    lc3.load_block(0x3000, [ADDi(0, 0, 1)])
    lc3.step()
    assert lc3.output == ""


# Control flow

def test_br_never_without_flags(lc3):
    for nzp in (0x8000, 0, 1):
        lc3.set_nzp(nzp)
        lc3.load_block(0x3000, [BR(0, 0, 0, 10)])
        lc3.step()
        assert lc3.get_pc() == 0x3001


@pytest.mark.parametrize("value, flags", [
    (0x8000, (1, 0, 0)), (0, (0, 1, 0)), (5, (0, 0, 1))])
def test_br_taken_when_flag_matches(lc3, value, flags):
    lc3.set_nzp(value)
    lc3.load_block(0x3000, [BR(*(flags + (-6,)))])
    lc3.step()
    assert lc3.get_pc() == 0x2FFB


def test_br_not_taken_on_other_flags(lc3):
    lc3.set_nzp(5)
    lc3.load_block(0x3000, [BR(1, 1, 0, 10)])
    lc3.step()
    assert lc3.get_pc() == 0x3001


def test_noop_warning(lc3, capsys):
    lc3.warn = True
    run_one(lc3, BR(0, 0, 0, 0))
    assert "NOOP at x3000" in capsys.readouterr().err


def test_jsr_ret_round_trip(lc3):
    lc3.load_block(0x3000, [JSR(3), ADDi(0, 0, 1), 0, 0, ADDi(1, 1, 1), RET])
    lc3.step()
    assert lc3.get_pc() == 0x3004
    assert lc3.get_register(7) == 0x3001
    lc3.step()
    lc3.step()
    assert lc3.get_pc() == 0x3001


def test_jsr_backwards(lc3):
    run_one(lc3, JSR(-2))
    assert lc3.get_pc() == 0x2FFF


def test_trap(lc3):
    lc3.set_memory(0x0025, 0x0400)
    run_one(lc3, HALT)
    assert lc3.get_register(7) == 0x3001
    assert lc3.get_pc() == 0x0400


def test_trap_high_vector(lc3):
    lc3.set_memory(0x00FF, 0x0500)
    run_one(lc3, TRAP(0xFF))
    assert lc3.get_pc() == 0x0500


def test_pc_wraps(lc3):
    lc3.load_block(0xFFFF, [ADDi(0, 0, 0)])
    lc3.step()
    assert lc3.get_pc() == 0x0000


# Run loop

@pytest.mark.parametrize("word", [0x903F, 0x8000, 0xD000, 0x4080, 0xC080])
def test_decode_fault(lc3, word, capsys):
    lc3.set_register(3, 33)
    lc3.set_nzp(33)
    lc3.load_block(0x3000, [word])
    memory = lc3.memory[:]
    assert lc3.run() == FAULTED
    assert lc3.fault.opcode == word >> 12
    assert lc3.fault.pc == 0x3000
    assert [lc3.get_register(r) for r in range(8)] == [0, 0, 0, 33, 0, 0, 0, 0]
    assert lc3.get_nzp() == (0, 0, 1)
    assert lc3.memory == memory
    err = capsys.readouterr().err
    assert "opcode %d" % (word >> 12) in err
    assert "PC = x3000" in err


def test_step_raises_decode_error(lc3):
    lc3.load_block(0x3000, [0xD000])
    with pytest.raises(DecodeError) as excinfo:
        lc3.step()
    assert excinfo.value.pc == 0x3000
    assert lc3.state == FAULTED
    # Terminal: further steps do nothing
    assert lc3.step() == FAULTED


def test_end_to_end_halt(lc3):
    boot(lc3, 0x3000, [
        ANDi(0, 0, 0),      # x3000
        ADDi(0, 0, 5),      # x3001
        ST(0, 1),           # x3002  -> x3004
        HALT,               # x3003
        0,                  # x3004
    ])
    assert lc3.run() == HALTED
    assert lc3.get_memory(0x3004) == 5
    assert lc3.instruction_count == 6


def test_end_to_end_lea_store(lc3):
    boot(lc3, 0x3000, [
        LEA(0, 0),          # x3000  R0 <= x3001
        ADDi(0, 0, 5),      # x3001  R0 <= x3006
        ST(0, 2),           # x3002  -> x3005
        HALT,               # x3003
    ])
    assert lc3.run() == HALTED
    assert lc3.get_memory(0x3005) == 0x3006


def test_hello_output(lc3, capsys):
    boot(lc3, 0x3000, [
        LD(0, 4),           # x3000
        STI(0, 4),          # x3001
        LD(0, 4),           # x3002
        STI(0, 2),          # x3003
        HALT,               # x3004
        ord("H"),           # x3005
        DDR,                # x3006
        ord("i"),           # x3007
    ])
    assert lc3.run() == HALTED
    assert lc3.output == "Hi"
    assert capsys.readouterr().out == "Hi"


def test_run_max_steps_suspends(lc3):
    lc3.load_block(0x3000, [BR(1, 1, 1, -1)])
    assert lc3.run(max_steps=50) == RUNNING
    assert lc3.suspended
    assert lc3.instruction_count == 50


def test_breakpoint(lc3, capsys):
    lc3.load_block(0x3000, [ADDi(0, 0, 1), ADDi(0, 0, 1), ADDi(0, 0, 1)])
    lc3.breakpoints[0x3002] = True
    assert lc3.run() == RUNNING
    assert lc3.suspended
    assert lc3.get_register(0) == 2
    assert "breakpoint hit at x3002" in capsys.readouterr().out


def test_trace(lc3, capsys):
    lc3.debug = True
    run_one(lc3, ADDi(0, 0, 5))
    out = capsys.readouterr().out
    assert "ADD R0, R0, #5" in out
    assert "R0 <= x0005" in out


def test_every_supported_record_has_a_handler(lc3):
    assert set(lc3.apply) == set(INSTRUCTIONS)


@pytest.mark.parametrize("kind", SETS_CC)
def test_cc_follows_destination(lc3, kind):
    word = {"AddImm": ADDi(3, 3, -1), "AddReg": ADDr(3, 4, 4),
            "AndImm": ANDi(3, 4, -1), "AndReg": ANDr(3, 4, 4),
            "Ld": LD(3, 0), "Ldi": LDI(3, 0), "Ldr": LDR(3, 5, 0),
            "Lea": LEA(3, -256)}[kind.__name__]
    lc3.set_register(4, 0x8000)
    lc3.set_register(5, 0x3001)
    lc3.load_block(0x3000, [word, 0x3001])
    lc3.step()
    value = lc3.get_register(3)
    assert lc3.get_nzp() == (int(value >= 0x8000), int(value == 0),
                             int(0 < value < 0x8000))
