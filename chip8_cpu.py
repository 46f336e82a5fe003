# CHIP8 Virtual Machine:
# Input - 16 key-down flags written by the host, read by SKP/SKNP and LD Vx, K.
# Output - 64x32 display (each pixel is either on or off (0 || 1)) & the sound timer.
# CPU - Cowgod's CHIP8 Technical reference http://devernay.free.fr/hacks/chip8/C8TECH10.HTM#0.0
# Memory - 4096 bytes which includes: the reserved area with the fonts, and the loaded program.
#----------------------------------------------------------------------------------------------
# Each step fetches the instruction at PC, moves PC past it, then executes it, so jumps
# overwrite PC and skips add another 2. Timers are ticked separately by the host at 60Hz.

import logging
import random

import numpy as np

from chip8_config import (
    FONT_GLYPH_SIZE,
    FONT_START,
    FONTSET,
    MAX_PROGRAM_SIZE,
    MEMORY_SIZE,
    NUM_KEYS,
    NUM_REGISTERS,
    PROGRAM_START,
    STACK_SIZE,
    height,
    width,
)
from chip8_decode import Op, decode, disassemble
from chip8_errors import (
    AddressOutOfRangeError,
    ProgramTooLargeError,
    StackOverflowError,
    StackUnderflowError,
)

logger = logging.getLogger(__name__)


class Chip8:

    def __init__(self, seed=None):
        self.rng = random.Random(seed)
        self.setup_funcmap()
        self.reset()

    def reset(self):
        # ---- CPU state ----
        self.memory = bytearray(MEMORY_SIZE)
        self.V = [0] * NUM_REGISTERS
        self.I = 0
        self.pc = PROGRAM_START
        self.stack = [0] * STACK_SIZE
        self.sp = 0
        self.delay = 0
        self.sound = 0
        self.vram = np.zeros((height, width), dtype=np.uint8)
        self.keys = [False] * NUM_KEYS
        self.key_wait = None        # key captured by LD Vx, K, waiting for its release
        self.should_draw = True
        self.cycles = 0

        # Load fontset into memory
        self.memory[FONT_START:FONT_START + len(FONTSET)] = bytes(FONTSET)

    # ---- Program ----
    def load_program(self, data):
        """Copy a program image into memory at 0x200.

        Raises ProgramTooLargeError, without touching memory, when the image
        doesn't fit between 0x200 and the end of memory.
        """
        data = bytes(data)
        if len(data) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeError(len(data), MAX_PROGRAM_SIZE)
        self.memory[PROGRAM_START:PROGRAM_START + len(data)] = data
        logger.info("Loaded %d byte program at 0x%03X", len(data), PROGRAM_START)

    # ---- Accessors ----
    @property
    def display(self):
        view = self.vram.view()
        view.flags.writeable = False
        return view

    @property
    def display_dirty(self):
        return self.should_draw

    def frame_consumed(self):
        self.should_draw = False

    @property
    def delay_timer(self):
        return self.delay

    @property
    def sound_timer(self):
        return self.sound

    @property
    def sound_active(self):
        return self.sound > 0

    def set_key(self, key, down):
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"No such key: {key}")
        self.keys[key] = bool(down)

    def press_key(self, key):
        self.set_key(key, True)

    def release_key(self, key):
        self.set_key(key, False)

    def dump_registers(self):
        lines = [f"V{i:X} = [{v:3d}]" for i, v in enumerate(self.V)]
        lines.append(f"I  = 0x{self.I:03X}")
        lines.append(f"PC = 0x{self.pc:03X}")
        lines.append(f"SP = {self.sp}")
        lines.append(f"DT = {self.delay}  ST = {self.sound}")
        return "\n".join(lines)

    # ---- Cycle ----
    def fetch(self):
        if self.pc < 0 or self.pc + 1 >= MEMORY_SIZE:
            raise AddressOutOfRangeError(self.pc, self.pc)
        return (self.memory[self.pc] << 8) | self.memory[self.pc + 1]

    def step(self):
        """Fetch, advance PC, decode and execute one instruction.

        Returns the executed instruction. Fatal conditions are raised as
        Chip8Fault subclasses.
        """
        address = self.pc
        word = self.fetch()
        self.pc = (self.pc + 2) & 0xFFFF
        instruction = decode(word, address)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%03X  %04X  %s", address, word, disassemble(instruction))
        self.execute(instruction)
        self.cycles += 1
        return instruction

    def execute(self, instruction):
        self.funcmap[instruction.op](instruction)

    # ---- timers ----
    def tick_timers(self):
        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1

    # ---- Opcode function map ----
    def setup_funcmap(self):
        self.funcmap = {
            Op.CLS: self.op_CLS,              # 00E0 - Clear the screen
            Op.RET: self.op_RET,              # 00EE - Return from a subroutine
            Op.SYS: self.op_SYS,              # 0nnn - Machine code routine, ignored
            Op.JP: self.op_JP,                # 1nnn - Jump to an address
            Op.CALL: self.op_CALL,            # 2nnn - Call a subroutine
            Op.SE_VX_KK: self.op_SE_Vx_kk,    # 3xkk - Skip if Vx == kk
            Op.SNE_VX_KK: self.op_SNE_Vx_kk,  # 4xkk - Skip if Vx != kk
            Op.SE_VX_VY: self.op_SE_Vx_Vy,    # 5xy0 - Skip if Vx == Vy
            Op.LD_VX_KK: self.op_LD_Vx_kk,    # 6xkk - Vx = kk
            Op.ADD_VX_KK: self.op_ADD_Vx_kk,  # 7xkk - Vx += kk, no carry
            Op.LD_VX_VY: self.op_LD_Vx_Vy,    # 8xy0..8xyE - math and logic between registers
            Op.OR: self.op_OR,
            Op.AND: self.op_AND,
            Op.XOR: self.op_XOR,
            Op.ADD_VX_VY: self.op_ADD,
            Op.SUB: self.op_SUB,
            Op.SHR: self.op_SHR,
            Op.SUBN: self.op_SUBN,
            Op.SHL: self.op_SHL,
            Op.SNE_VX_VY: self.op_SNE_Vx_Vy,  # 9xy0 - Skip if Vx != Vy
            Op.LD_I: self.op_LD_I,            # Annn - I = nnn
            Op.JP_V0: self.op_JP_V0,          # Bnnn - Jump to nnn + V0
            Op.RND: self.op_RND,              # Cxkk - Vx = random byte & kk
            Op.DRW: self.op_DRW,              # Dxyn - Draw a sprite at (Vx, Vy)
            Op.SKP: self.op_SKP,              # Ex9E / ExA1 - Skip on key state
            Op.SKNP: self.op_SKNP,
            Op.LD_VX_DT: self.op_LD_Vx_DT,    # Fx07..Fx65 - timers, memory, I and key input
            Op.LD_VX_K: self.op_WAITKEY,
            Op.LD_DT_VX: self.op_LD_DT_Vx,
            Op.LD_ST_VX: self.op_LD_ST_Vx,
            Op.ADD_I_VX: self.op_ADD_I_Vx,
            Op.LD_F_VX: self.op_FONT,
            Op.LD_B_VX: self.op_BCD,
            Op.LD_MEM_VX: self.op_STORE,
            Op.LD_VX_MEM: self.op_LOAD,
        }

    # ---- Opcode Handlers ----
    def _skip(self):
        self.pc = (self.pc + 2) & 0xFFFF

    def _check_range(self, last):
        if last >= MEMORY_SIZE:
            raise AddressOutOfRangeError(last, self.pc - 2)

    def op_CLS(self, ins):
        self.vram.fill(0)
        self.should_draw = True

    def op_RET(self, ins):
        if self.sp == 0:
            raise StackUnderflowError(self.pc - 2)
        self.sp -= 1
        self.pc = self.stack[self.sp]

    def op_SYS(self, ins):
        # 0nnn is ignored on modern interpreters
        pass

    def op_JP(self, ins):
        self.pc = ins.nnn

    def op_CALL(self, ins):
        if self.sp >= STACK_SIZE:
            raise StackOverflowError(self.pc - 2)
        self.stack[self.sp] = self.pc
        self.sp += 1
        self.pc = ins.nnn

    def op_SE_Vx_kk(self, ins):
        if self.V[ins.x] == ins.kk:
            self._skip()

    def op_SNE_Vx_kk(self, ins):
        if self.V[ins.x] != ins.kk:
            self._skip()

    def op_SE_Vx_Vy(self, ins):
        if self.V[ins.x] == self.V[ins.y]:
            self._skip()

    def op_LD_Vx_kk(self, ins):
        self.V[ins.x] = ins.kk

    def op_ADD_Vx_kk(self, ins):
        self.V[ins.x] = (self.V[ins.x] + ins.kk) & 0xFF

    def op_LD_Vx_Vy(self, ins):
        self.V[ins.x] = self.V[ins.y]

    def op_OR(self, ins):
        self.V[ins.x] |= self.V[ins.y]

    def op_AND(self, ins):
        self.V[ins.x] &= self.V[ins.y]

    def op_XOR(self, ins):
        self.V[ins.x] ^= self.V[ins.y]

    # VF is written last, so with x == F the flag is what remains
    def op_ADD(self, ins):
        total = self.V[ins.x] + self.V[ins.y]
        self.V[ins.x] = total & 0xFF
        self.V[0xF] = 1 if total > 0xFF else 0

    def op_SUB(self, ins):
        vx, vy = self.V[ins.x], self.V[ins.y]
        self.V[ins.x] = (vx - vy) & 0xFF
        self.V[0xF] = 1 if vx >= vy else 0

    def op_SHR(self, ins):
        vx = self.V[ins.x]
        self.V[ins.x] = vx >> 1
        self.V[0xF] = vx & 1

    def op_SUBN(self, ins):
        vx, vy = self.V[ins.x], self.V[ins.y]
        self.V[ins.x] = (vy - vx) & 0xFF
        self.V[0xF] = 1 if vy >= vx else 0

    def op_SHL(self, ins):
        vx = self.V[ins.x]
        self.V[ins.x] = (vx << 1) & 0xFF
        self.V[0xF] = (vx >> 7) & 1

    def op_SNE_Vx_Vy(self, ins):
        if self.V[ins.x] != self.V[ins.y]:
            self._skip()

    def op_LD_I(self, ins):
        self.I = ins.nnn

    def op_JP_V0(self, ins):
        self.pc = self.V[0] + ins.nnn

    def op_RND(self, ins):
        self.V[ins.x] = self.rng.getrandbits(8) & ins.kk

    def op_DRW(self, ins):
        px = self.V[ins.x]
        py = self.V[ins.y]
        collision = 0
        for row in range(ins.n):
            sprite = self.memory[(self.I + row) % MEMORY_SIZE]
            if sprite == 0:
                continue
            vy = (py + row) % height
            for bit in range(8):
                if sprite & (0x80 >> bit):
                    vx = (px + bit) % width
                    if self.vram[vy, vx]:
                        collision = 1
                    self.vram[vy, vx] ^= 1
        self.V[0xF] = collision
        self.should_draw = True

    def op_SKP(self, ins):
        if self.keys[self.V[ins.x] & 0xF]:
            self._skip()

    def op_SKNP(self, ins):
        if not self.keys[self.V[ins.x] & 0xF]:
            self._skip()

    def op_LD_Vx_DT(self, ins):
        self.V[ins.x] = self.delay

    def op_WAITKEY(self, ins):
        # Idle: capture the lowest key that is down. Captured: commit once it is released.
        if self.key_wait is None:
            for key in range(NUM_KEYS):
                if self.keys[key]:
                    self.key_wait = key
                    break
        if self.key_wait is not None and not self.keys[self.key_wait]:
            self.V[ins.x] = self.key_wait
            self.key_wait = None
            return
        self.pc = (self.pc - 2) & 0xFFFF  # stall (PC will re-execute this instr)

    def op_LD_DT_Vx(self, ins):
        self.delay = self.V[ins.x]

    def op_LD_ST_Vx(self, ins):
        self.sound = self.V[ins.x]

    def op_ADD_I_Vx(self, ins):
        self.I = (self.I + self.V[ins.x]) & 0xFFFF

    def op_FONT(self, ins):
        self.I = FONT_START + self.V[ins.x] * FONT_GLYPH_SIZE

    def op_BCD(self, ins):
        self._check_range(self.I + 2)
        v = self.V[ins.x]
        self.memory[self.I] = v // 100
        self.memory[self.I + 1] = (v // 10) % 10
        self.memory[self.I + 2] = v % 10

    def op_STORE(self, ins):
        self._check_range(self.I + ins.x)
        self.memory[self.I:self.I + ins.x + 1] = bytes(self.V[:ins.x + 1])

    def op_LOAD(self, ins):
        self._check_range(self.I + ins.x)
        self.V[:ins.x + 1] = list(self.memory[self.I:self.I + ins.x + 1])
