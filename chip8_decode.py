"""
Instruction decoding for the CHIP-8.

Every instruction word is 16 bits, big-endian in memory. The high nibble picks
the family; families 0, 8, E and F need a second field (low byte or low
nibble) to pick the operation, and 5/9 must end in a zero nibble. The patterns
don't overlap, so decoding is a couple of table lookups rather than a scan.

    nnn - low 12 bits (address)
    x   - second nibble (register)
    y   - third nibble (register)
    n   - low nibble
    kk  - low byte
"""
import enum
from typing import NamedTuple

from chip8_errors import UnknownOpcodeError


class Op(enum.Enum):
    CLS = "00E0"
    RET = "00EE"
    SYS = "0nnn"
    JP = "1nnn"
    CALL = "2nnn"
    SE_VX_KK = "3xkk"
    SNE_VX_KK = "4xkk"
    SE_VX_VY = "5xy0"
    LD_VX_KK = "6xkk"
    ADD_VX_KK = "7xkk"
    LD_VX_VY = "8xy0"
    OR = "8xy1"
    AND = "8xy2"
    XOR = "8xy3"
    ADD_VX_VY = "8xy4"
    SUB = "8xy5"
    SHR = "8xy6"
    SUBN = "8xy7"
    SHL = "8xyE"
    SNE_VX_VY = "9xy0"
    LD_I = "Annn"
    JP_V0 = "Bnnn"
    RND = "Cxkk"
    DRW = "Dxyn"
    SKP = "Ex9E"
    SKNP = "ExA1"
    LD_VX_DT = "Fx07"
    LD_VX_K = "Fx0A"
    LD_DT_VX = "Fx15"
    LD_ST_VX = "Fx18"
    ADD_I_VX = "Fx1E"
    LD_F_VX = "Fx29"
    LD_B_VX = "Fx33"
    LD_MEM_VX = "Fx55"
    LD_VX_MEM = "Fx65"


class Instruction(NamedTuple):
    op: Op
    word: int
    x: int
    y: int
    n: int
    kk: int
    nnn: int


# families fully identified by the high nibble
_BY_FAMILY = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_VX_KK,
    0x4: Op.SNE_VX_KK,
    0x6: Op.LD_VX_KK,
    0x7: Op.ADD_VX_KK,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

# 8xyN - keyed by low nibble
_ALU = {
    0x0: Op.LD_VX_VY,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_VX_VY,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# ExKK - keyed by low byte
_KEYS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

# FxKK - keyed by low byte
_MISC = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I_VX,
    0x29: Op.LD_F_VX,
    0x33: Op.LD_B_VX,
    0x55: Op.LD_MEM_VX,
    0x65: Op.LD_VX_MEM,
}


def _select(word):
    family = word >> 12
    n = word & 0xF
    kk = word & 0xFF

    if family == 0x0:
        if word == 0x00E0:
            return Op.CLS
        if word == 0x00EE:
            return Op.RET
        return Op.SYS
    if family == 0x5:
        return Op.SE_VX_VY if n == 0 else None
    if family == 0x9:
        return Op.SNE_VX_VY if n == 0 else None
    if family == 0x8:
        return _ALU.get(n)
    if family == 0xE:
        return _KEYS.get(kk)
    if family == 0xF:
        return _MISC.get(kk)
    return _BY_FAMILY[family]


def decode(word, pc=0):
    """Decode a 16-bit instruction word.

    ``pc`` is only used to label the fault when the word is not a valid
    instruction.
    """
    word &= 0xFFFF
    op = _select(word)
    if op is None:
        raise UnknownOpcodeError(word, pc)
    return Instruction(
        op=op,
        word=word,
        x=(word >> 8) & 0xF,
        y=(word >> 4) & 0xF,
        n=word & 0xF,
        kk=word & 0xFF,
        nnn=word & 0x0FFF,
    )


# Cowgod mnemonics
_MNEMONICS = {
    Op.CLS: "CLS",
    Op.RET: "RET",
    Op.SYS: "SYS 0x{nnn:03X}",
    Op.JP: "JP 0x{nnn:03X}",
    Op.CALL: "CALL 0x{nnn:03X}",
    Op.SE_VX_KK: "SE V{x:X}, 0x{kk:02X}",
    Op.SNE_VX_KK: "SNE V{x:X}, 0x{kk:02X}",
    Op.SE_VX_VY: "SE V{x:X}, V{y:X}",
    Op.LD_VX_KK: "LD V{x:X}, 0x{kk:02X}",
    Op.ADD_VX_KK: "ADD V{x:X}, 0x{kk:02X}",
    Op.LD_VX_VY: "LD V{x:X}, V{y:X}",
    Op.OR: "OR V{x:X}, V{y:X}",
    Op.AND: "AND V{x:X}, V{y:X}",
    Op.XOR: "XOR V{x:X}, V{y:X}",
    Op.ADD_VX_VY: "ADD V{x:X}, V{y:X}",
    Op.SUB: "SUB V{x:X}, V{y:X}",
    Op.SHR: "SHR V{x:X}",
    Op.SUBN: "SUBN V{x:X}, V{y:X}",
    Op.SHL: "SHL V{x:X}",
    Op.SNE_VX_VY: "SNE V{x:X}, V{y:X}",
    Op.LD_I: "LD I, 0x{nnn:03X}",
    Op.JP_V0: "JP V0, 0x{nnn:03X}",
    Op.RND: "RND V{x:X}, 0x{kk:02X}",
    Op.DRW: "DRW V{x:X}, V{y:X}, {n}",
    Op.SKP: "SKP V{x:X}",
    Op.SKNP: "SKNP V{x:X}",
    Op.LD_VX_DT: "LD V{x:X}, DT",
    Op.LD_VX_K: "LD V{x:X}, K",
    Op.LD_DT_VX: "LD DT, V{x:X}",
    Op.LD_ST_VX: "LD ST, V{x:X}",
    Op.ADD_I_VX: "ADD I, V{x:X}",
    Op.LD_F_VX: "LD F, V{x:X}",
    Op.LD_B_VX: "LD B, V{x:X}",
    Op.LD_MEM_VX: "LD [I], V{x:X}",
    Op.LD_VX_MEM: "LD V{x:X}, [I]",
}


def disassemble(instruction):
    return _MNEMONICS[instruction.op].format(**instruction._asdict())
