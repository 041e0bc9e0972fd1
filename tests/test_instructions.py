"""
Instruction Table Tests for the AQA assembly interpreter.

Covers grammar compilation, table ordering (conditional branches before
bare B), and each action run directly against fresh machine state.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from aqasim.errors import LabelNotFoundError, MemoryAddressError, UnsetRegisterError
from aqasim.instructions import (
    INSTRUCTIONS, LABEL, ControlSignal, SignalKind, compile_pattern, get_spec,
    match_instruction,
)
from aqasim.memory import Memory
from aqasim.regs import Flag, Registers


def _exec(line: str, regs: Registers = None, memory: Memory = None, labels: dict = None):
    """Match a line and run its action; returns (signal, regs, memory)."""
    regs = regs if regs is not None else Registers()
    memory = memory if memory is not None else Memory([])
    found = match_instruction(line)
    assert found is not None, f"no instruction matched {line!r}"
    spec, fields = found
    signal = spec.execute(memory, regs, labels or {}, fields)
    return signal, regs, memory


class TestGrammarCompilation:
    def test_register_placeholder(self):
        m = compile_pattern('X <register>').fullmatch('X R12')
        assert m.groups() == ('12',)

    def test_operand_captures_kind_and_digits(self):
        rx = compile_pattern('MOV <register>, <operand>')
        assert rx.fullmatch('MOV R1, #42').groups() == ('1', '#', '42')
        assert rx.fullmatch('MOV R1, R7').groups() == ('1', 'R', '7')

    def test_whitespace_is_optional(self):
        rx = compile_pattern('ADD <register>, <register>, <operand>')
        assert rx.fullmatch('ADD R0,R1,#2')
        assert rx.fullmatch('ADD R0, R1, #2')
        assert rx.fullmatch('ADD R0 ,R1,#2') is None

    def test_at_most_one_whitespace(self):
        rx = compile_pattern('LDR <register>, <memory>')
        assert rx.fullmatch('LDR R1,  0') is None

    def test_label_placeholder(self):
        assert compile_pattern('<label>:').fullmatch('loop_2:').groups() == ('loop_2',)

    def test_literal_text_escaped(self):
        rx = compile_pattern('HALT')
        assert rx.fullmatch('HALT')
        assert rx.fullmatch('HALTX') is None

    def test_unknown_placeholder_rejected(self):
        with pytest.raises(ValueError):
            compile_pattern('FOO <bogus>')


class TestTableOrdering:
    @pytest.mark.parametrize('mnem', ['BEQ', 'BNE', 'BGT', 'BLT'])
    def test_conditional_branch_not_swallowed_by_b(self, mnem):
        spec, fields = match_instruction(f'{mnem} done')
        assert spec.mnemonic == mnem
        assert fields == ('done',)

    def test_conditional_branches_declared_before_b(self):
        order = [spec.mnemonic for spec in INSTRUCTIONS]
        for mnem in ('BEQ', 'BNE', 'BGT', 'BLT'):
            assert order.index(mnem) < order.index('B')

    def test_bare_branch(self):
        spec, fields = match_instruction('B loop')
        assert spec.mnemonic == 'B'
        assert fields == ('loop',)

    def test_label_is_last(self):
        assert INSTRUCTIONS[-1] is LABEL

    def test_label_named_like_keyword(self):
        spec, fields = match_instruction('HALT:')
        assert spec is LABEL
        assert fields == ('HALT',)

    def test_unknown_line(self):
        assert match_instruction('NOP') is None
        assert match_instruction('MOV R0, 5') is None

    def test_every_mnemonic_present(self):
        expected = {'LDR', 'STR', 'ADD', 'SUB', 'MOV', 'CMP', 'BEQ', 'BNE', 'BGT',
                    'BLT', 'B', 'AND', 'ORR', 'EOR', 'MVN', 'LSL', 'LSR', 'HALT', 'LABEL'}
        assert {spec.mnemonic for spec in INSTRUCTIONS} == expected

    def test_get_spec(self):
        assert get_spec('ldr').name == 'Load to register'


class TestDataMovement:
    def test_ldr(self):
        signal, regs, _ = _exec('LDR R1, 2', memory=Memory([7, 8, 9]))
        assert regs[1] == 9
        assert signal.kind is SignalKind.CONTINUE

    def test_ldr_out_of_range(self):
        with pytest.raises(MemoryAddressError):
            _exec('LDR R1, 3', memory=Memory([7, 8, 9]))

    def test_str(self):
        regs = Registers()
        regs[0] = 42
        _, _, memory = _exec('STR R0, 1', regs=regs, memory=Memory([0, 0]))
        assert memory.snapshot() == [0, 42]

    def test_str_grows_memory(self):
        regs = Registers()
        regs[0] = 5
        _, _, memory = _exec('STR R0, 3', regs=regs, memory=Memory([1]))
        assert memory.snapshot() == [1, 0, 0, 5]

    def test_mov_literal_and_register(self):
        _, regs, _ = _exec('MOV R0, #9')
        _exec('MOV R3, R0', regs=regs)
        assert regs[0] == 9 and regs[3] == 9

    def test_read_unset_register(self):
        with pytest.raises(UnsetRegisterError) as exc:
            _exec('MOV R0, R4')
        assert exc.value.register == 4


class TestArithmetic:
    def _regs(self, **values):
        regs = Registers()
        for name, value in values.items():
            regs[int(name[1:])] = value
        return regs

    def test_add_literal(self):
        _, regs, _ = _exec('ADD R2, R0, #3', regs=self._regs(r0=4))
        assert regs[2] == 7

    def test_add_register(self):
        _, regs, _ = _exec('ADD R2, R0, R1', regs=self._regs(r0=4, r1=10))
        assert regs[2] == 14

    def test_sub_negative_result(self):
        _, regs, _ = _exec('SUB R0, R0, #10', regs=self._regs(r0=3))
        assert regs[0] == -7

    def test_no_overflow_wrap_on_add(self):
        _, regs, _ = _exec('ADD R0, R0, R0', regs=self._regs(r0=2 ** 40))
        assert regs[0] == 2 ** 41


class TestBitwise:
    def _regs(self):
        regs = Registers()
        regs[0] = 6
        regs[1] = 3
        return regs

    def test_and(self):
        _, regs, _ = _exec('AND R2, R0, R1', regs=self._regs())
        assert regs[2] == 2

    def test_orr(self):
        _, regs, _ = _exec('ORR R2, R0, R1', regs=self._regs())
        assert regs[2] == 7

    def test_eor(self):
        _, regs, _ = _exec('EOR R2, R0, #3', regs=self._regs())
        assert regs[2] == 5

    def test_mvn_register(self):
        _, regs, _ = _exec('MVN R1, R0', regs=self._regs())
        assert regs[1] == -7

    def test_mvn_literal(self):
        _, regs, _ = _exec('MVN R1, #0')
        assert regs[1] == -1

    def test_lsl(self):
        regs = Registers()
        regs[0] = 1
        _exec('LSL R1, R0, #3', regs=regs)
        assert regs[1] == 8

    def test_lsl_wraps_to_32_bits(self):
        regs = Registers()
        regs[0] = 1
        _exec('LSL R1, R0, #31', regs=regs)
        assert regs[1] == -2 ** 31

    def test_lsr(self):
        regs = Registers()
        regs[0] = 8
        _exec('LSR R1, R0, #3', regs=regs)
        assert regs[1] == 1

    def test_lsr_is_sign_preserving(self):
        regs = Registers()
        regs[0] = -16
        _exec('LSR R1, R0, #2', regs=regs)
        assert regs[1] == -4

    def test_shift_count_modulo_32(self):
        regs = Registers()
        regs[0] = 1
        _exec('LSL R1, R0, #33', regs=regs)
        assert regs[1] == 2


class TestCompareAndBranch:
    LABELS = {'target': 4}

    def _cmp(self, value: int, operand: str) -> Registers:
        regs = Registers()
        regs[0] = value
        _exec(f'CMP R0, {operand}', regs=regs)
        return regs

    def test_cmp_sets_flag(self):
        assert self._cmp(5, '#5').flag is Flag.EQ
        assert self._cmp(6, '#5').flag is Flag.GT
        assert self._cmp(4, '#5').flag is Flag.LT

    def test_cmp_register_operand(self):
        regs = Registers()
        regs[0] = 1
        regs[1] = 2
        _exec('CMP R0, R1', regs=regs)
        assert regs.flag is Flag.LT

    @pytest.mark.parametrize('mnem,flag,taken', [
        ('BEQ', Flag.EQ, True), ('BEQ', Flag.GT, False),
        ('BNE', Flag.EQ, False), ('BNE', Flag.LT, True),
        ('BGT', Flag.GT, True), ('BGT', Flag.EQ, False),
        ('BLT', Flag.LT, True), ('BLT', Flag.GT, False),
    ])
    def test_conditional_branches(self, mnem, flag, taken):
        regs = Registers()
        regs.flag = flag
        signal, _, _ = _exec(f'{mnem} target', regs=regs, labels=self.LABELS)
        if taken:
            assert signal == ControlSignal.jump(4)
        else:
            assert signal.kind is SignalKind.CONTINUE

    def test_bne_with_unset_flag_jumps(self):
        signal, _, _ = _exec('BNE target', labels=self.LABELS)
        assert signal.kind is SignalKind.JUMP

    def test_unconditional_branch(self):
        signal, _, _ = _exec('B target', labels=self.LABELS)
        assert signal.target == 4

    def test_taken_branch_to_missing_label(self):
        with pytest.raises(LabelNotFoundError) as exc:
            _exec('B nowhere', labels=self.LABELS)
        assert exc.value.label == 'nowhere'

    def test_untaken_branch_to_missing_label_is_fine(self):
        regs = Registers()
        regs.flag = Flag.LT
        signal, _, _ = _exec('BEQ nowhere', regs=regs)
        assert signal.kind is SignalKind.CONTINUE


class TestHaltAndLabel:
    def test_halt(self):
        signal, _, _ = _exec('HALT')
        assert signal == ControlSignal.halt()

    def test_label_has_no_effect(self):
        signal, regs, memory = _exec('loop:')
        assert signal.kind is SignalKind.CONTINUE
        assert len(regs) == 0
        assert len(memory) == 0
