"""
Core enumerations for the CHIP-8 emulator: keypad keys and instruction
variants.
"""

from enum import IntEnum


class Key(IntEnum):
    """The sixteen keys of the hexadecimal keypad.

    The original COSMAC VIP keypad is laid out as::

        1 2 3 C
        4 5 6 D
        7 8 9 E
        A 0 B F
    """
    K0 = 0x0
    K1 = 0x1
    K2 = 0x2
    K3 = 0x3
    K4 = 0x4
    K5 = 0x5
    K6 = 0x6
    K7 = 0x7
    K8 = 0x8
    K9 = 0x9
    KA = 0xA
    KB = 0xB
    KC = 0xC
    KD = 0xD
    KE = 0xE
    KF = 0xF


class Op(IntEnum):
    """One variant per canonical CHIP-8 instruction (plus ``UNKNOWN``)."""
    UNKNOWN = 0
    CLS = 1           # 00E0
    RET = 2           # 00EE
    JP = 3            # 1NNN
    CALL = 4          # 2NNN
    SE_VX_NN = 5      # 3XNN
    SNE_VX_NN = 6     # 4XNN
    SE_VX_VY = 7      # 5XY0
    LD_VX_NN = 8      # 6XNN
    ADD_VX_NN = 9     # 7XNN
    LD_VX_VY = 10     # 8XY0
    OR = 11           # 8XY1
    AND = 12          # 8XY2
    XOR = 13          # 8XY3
    ADD_VX_VY = 14    # 8XY4
    SUB = 15          # 8XY5
    SHR = 16          # 8XY6
    SUBN = 17         # 8XY7
    SHL = 18          # 8XYE
    SNE_VX_VY = 19    # 9XY0
    LD_I = 20         # ANNN
    JP_V0 = 21        # BNNN
    RND = 22          # CXNN
    DRW = 23          # DXYN
    SKP = 24          # EX9E
    SKNP = 25         # EXA1
    LD_VX_DT = 26     # FX07
    LD_VX_K = 27      # FX0A
    LD_DT_VX = 28     # FX15
    LD_ST_VX = 29     # FX18
    ADD_I_VX = 30     # FX1E
    LD_F_VX = 31      # FX29
    LD_B_VX = 32      # FX33
    LD_MEM_VX = 33    # FX55
    LD_VX_MEM = 34    # FX65
    SYS = 35          # 0NNN (machine-code routine; not executable)
