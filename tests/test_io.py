"""
Display, keyboard and key-wait behaviour as seen by a host.
"""
import pytest

from chip8_config import FONT_START
from conftest import program


class TestDraw:

    # glyph "0": F0 90 90 90 F0
    ZERO = [
        [1, 1, 1, 1],
        [1, 0, 0, 1],
        [1, 0, 0, 1],
        [1, 0, 0, 1],
        [1, 1, 1, 1],
    ]

    def test_draw_glyph(self, run):
        chip = run(0x6000, 0x6100, 0xA050, 0xD015)
        assert chip.V[0xF] == 0
        assert chip.display[:5, :4].tolist() == self.ZERO
        assert chip.display.sum() == 14

    def test_redraw_erases_and_collides(self, run):
        chip = run(0x00E0, 0x6005, 0x6107, 0xA050, 0xD015, 0xD015)
        assert not chip.display.any()
        assert chip.V[0xF] == 1

    def test_partial_overlap_collides(self, run):
        # "1" drawn over "0": overlapping pixels flip off
        chip = run(0x6000, 0xA050, 0xD005, 0x6001, 0xF029, 0xD005)
        assert chip.V[0xF] == 1
        assert chip.I == FONT_START + 5

    def test_each_pixel_wraps(self, run):
        chip = run(0x603E, 0x611E, 0xA050, 0xD015)
        display = chip.display
        assert display[30, [62, 63, 0, 1]].tolist() == [1, 1, 1, 1]
        # third sprite row lands on y=0
        assert display[0, [62, 63, 0, 1]].tolist() == [1, 0, 0, 1]
        assert display[2, [62, 63, 0, 1]].tolist() == [1, 1, 1, 1]
        assert display[30, 2:62].sum() == 0

    def test_start_coordinates_wrap(self, run):
        chip = run(0x6043, 0x6122, 0xA050, 0xD015)
        assert chip.display[2:7, 3:7].tolist() == self.ZERO

    def test_zero_height_sprite(self, run):
        chip = run(0x6F01, 0xD000)
        assert chip.V[0xF] == 0
        assert not chip.display.any()

    def test_clear(self, run):
        chip = run(0xA050, 0xD005, 0x00E0)
        assert not chip.display.any()

    def test_display_is_read_only(self, chip):
        with pytest.raises(ValueError):
            chip.display[0, 0] = 1


class TestDirtyFlag:

    def test_cleared_by_host(self, run):
        chip = run(0x6000)
        chip.frame_consumed()
        assert not chip.display_dirty
        chip.load_program(program(0x6001, 0x7001))
        chip.pc = 0x200
        chip.step()
        chip.step()
        assert not chip.display_dirty

    @pytest.mark.parametrize("word", [0x00E0, 0xD005])
    def test_set_by_display_ops(self, chip, word):
        chip.frame_consumed()
        chip.load_program(program(word))
        chip.step()
        assert chip.display_dirty


class TestKeys:

    @pytest.mark.parametrize("pressed,word,skipped", [
        (True, 0xE09E, True),
        (False, 0xE09E, False),
        (True, 0xE0A1, False),
        (False, 0xE0A1, True),
    ])
    def test_skip_on_key(self, chip, pressed, word, skipped):
        chip.set_key(5, pressed)
        chip.load_program(program(0x6005, word))
        chip.step()
        chip.step()
        assert chip.pc == (0x206 if skipped else 0x204)

    @pytest.mark.parametrize("key", [-1, 16, 0x20])
    def test_bad_key_index_rejected(self, chip, key):
        with pytest.raises(ValueError):
            chip.set_key(key, True)
        assert not any(chip.keys)

    def test_key_index_masked(self, chip):
        chip.press_key(0x5)
        chip.load_program(program(0x6015, 0xE09E))
        chip.step()
        chip.step()
        assert chip.pc == 0x206


class TestWaitForKey:

    def _load(self, chip):
        # 200: LD V3, 0xAA / 202: LD V3, K / 204: JP 204
        chip.load_program(program(0x63AA, 0xF30A, 0x1204))
        chip.step()

    def test_blocks_with_no_keys(self, chip):
        self._load(chip)
        for _ in range(25):
            chip.step()
            assert chip.pc == 0x202
        assert chip.V[3] == 0xAA
        assert chip.key_wait is None

    def test_press_then_release_commits(self, chip):
        self._load(chip)
        chip.press_key(0xB)
        chip.step()
        assert chip.key_wait == 0xB
        assert chip.pc == 0x202
        assert chip.V[3] == 0xAA
        chip.release_key(0xB)
        chip.step()
        assert chip.V[3] == 0xB
        assert chip.pc == 0x204
        assert chip.key_wait is None

    def test_held_key_does_not_commit(self, chip):
        self._load(chip)
        chip.press_key(4)
        for _ in range(10):
            chip.step()
        assert chip.pc == 0x202
        assert chip.V[3] == 0xAA

    def test_lowest_key_captured(self, chip):
        self._load(chip)
        chip.press_key(9)
        chip.press_key(2)
        chip.step()
        assert chip.key_wait == 2
        # releasing another key changes nothing
        chip.release_key(9)
        chip.step()
        assert chip.pc == 0x202
        chip.release_key(2)
        chip.step()
        assert chip.V[3] == 2

    def test_captured_key_sticks(self, chip):
        self._load(chip)
        chip.press_key(6)
        chip.step()
        chip.press_key(1)
        chip.release_key(6)
        chip.step()
        assert chip.V[3] == 6
        assert chip.pc == 0x204


class TestSoundSignal:

    def test_active_until_timer_runs_out(self, run):
        chip = run(0x6002, 0xF018)
        assert chip.sound_active
        chip.tick_timers()
        assert chip.sound_active
        chip.tick_timers()
        assert not chip.sound_active
