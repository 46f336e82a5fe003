"""
Errors raised by the CHIP-8 core.

ProgramTooLargeError is a setup error: the image is rejected and the machine
is left as it was. Everything under Chip8Fault stops the running program; the
host decides whether to halt, log or abort.
"""


class Chip8Error(Exception):
    """Base class for everything the core raises."""


class ProgramTooLargeError(Chip8Error):
    def __init__(self, size, limit):
        super().__init__(f"Program is {size} bytes, at most {limit} fit in memory")
        self.size = size
        self.limit = limit


class Chip8Fault(Chip8Error):
    """Unrecoverable condition hit while executing at ``pc``."""

    def __init__(self, message, pc):
        super().__init__(f"{message} (PC=0x{pc:03X})")
        self.pc = pc


class StackOverflowError(Chip8Fault):
    def __init__(self, pc):
        super().__init__("Stack overflow on CALL", pc)


class StackUnderflowError(Chip8Fault):
    def __init__(self, pc):
        super().__init__("Stack underflow on RET", pc)


class UnknownOpcodeError(Chip8Fault):
    def __init__(self, word, pc):
        super().__init__(f"Unknown opcode: {word:04X}", pc)
        self.word = word


class AddressOutOfRangeError(Chip8Fault):
    def __init__(self, address, pc):
        super().__init__(f"Memory access out of range: 0x{address:04X}", pc)
        self.address = address
