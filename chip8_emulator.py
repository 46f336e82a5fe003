# CHIP-8 emulator front end.
# We subclass pyglet (that'll handle graphics, sound output, and keyboard handling) and drive
# the Chip8 core from pyglet's clock: every 1/60s run a batch of instructions, tick the timers,
# update the buzzer and redraw if the core touched the display.

import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np
import pyglet
from pyglet.media import synthesis
from pyglet.window import key

import chip8_config as config
from chip8_cpu import Chip8
from chip8_errors import Chip8Fault, ProgramTooLargeError

logger = logging.getLogger(__name__)

#map binding keys
KEYMAP = {
    key._1: 0x1, key._2: 0x2, key._3: 0x3, key._4: 0xC,
    key.Q: 0x4, key.W: 0x5, key.E: 0x6, key.R: 0xD,
    key.A: 0x7, key.S: 0x8, key.D: 0x9, key.F: 0xE,
    key.Z: 0xA, key.X: 0x0, key.C: 0xB, key.V: 0xF,
}


def generate_beep(duration=0.5, frequency=440, sample_rate=44100):
    # Use a Sine waveform from pyglet.media.synthesis
    wave = synthesis.Sine(duration=duration, frequency=frequency, sample_rate=sample_rate)
    return pyglet.media.StaticSource(wave)


def read_rom(path):
    return Path(path).read_bytes()


class Beeper:
    """Looping tone that plays while the sound timer is running."""

    def __init__(self, frequency=config.beep_frequency, sample_rate=config.sample_rate):
        self.player = pyglet.media.Player()
        self.player.queue(generate_beep(frequency=frequency, sample_rate=sample_rate))
        self.player.loop = True
        self.playing = False

    def update(self, active):
        if active and not self.playing:
            self.player.play()
            self.playing = True
        elif not active and self.playing:
            self.player.pause()
            self.playing = False

    def delete(self):
        self.player.delete()


class Chip8Emulator(pyglet.window.Window):

    def __init__(self, chip, scale=config.scale, instructions_per_tick=config.instructions_per_tick):
        super().__init__(
            width=config.width * scale,
            height=config.height * scale,
            caption="CHIP-8 Emulator",
            resizable=False,
            vsync=False
        )
        self.chip = chip
        self.scale = scale
        self.instructions_per_tick = instructions_per_tick
        self.ticks = 0
        self.fault = None
        self.beeper = Beeper()

        # 64x32 RGBA framebuffer, upscaled with numpy.repeat before upload
        self._small_framebuf = np.zeros((config.height, config.width, 4), dtype=np.uint8)
        self._small_framebuf[..., 3] = 255
        self.image = pyglet.image.ImageData(
            self.width,
            self.height,
            'RGBA',
            self._scaled().tobytes()
        )

        pyglet.clock.schedule_interval(self.frame, 1.0 / config.timer_HZ)

    # ---- Scheduler ----
    def frame(self, dt):
        try:
            for _ in range(self.instructions_per_tick):
                self.chip.step()
        except Chip8Fault as e:
            self.fault = e
            logger.error("Emulation stopped: %s", e)
            logger.error("Registers:\n%s", self.chip.dump_registers())
            self.close()
            return
        self.chip.tick_timers()
        self.ticks += 1
        self.beeper.update(self.chip.sound_active)

    # ---- Drawing ----
    def _scaled(self):
        if self.scale == 1:
            return self._small_framebuf
        return np.repeat(np.repeat(self._small_framebuf, self.scale, axis=0), self.scale, axis=1)

    def on_draw(self):
        if self.chip.display_dirty:
            # pyglet's origin is bottom-left, the CHIP-8's is top-left
            self._small_framebuf[..., :3] = (np.flipud(self.chip.display) * 255)[..., None]
            self.image.set_data('RGBA', self.width * 4, self._scaled().tobytes())
            self.chip.frame_consumed()
        self.clear()
        self.image.blit(0, 0)

    # ---- Input ----
    def on_key_press(self, symbol, modifiers):
        if symbol == key.ESCAPE:
            self.close()
        elif symbol == key.F1:
            cpu_logger = logging.getLogger("chip8_cpu")
            debug = cpu_logger.getEffectiveLevel() > logging.DEBUG
            cpu_logger.setLevel(logging.DEBUG if debug else logging.INFO)
            logger.info("Instruction logging %s", "on" if debug else "off")
        elif symbol in KEYMAP:
            self.chip.press_key(KEYMAP[symbol])

    def on_key_release(self, symbol, modifiers):
        if symbol in KEYMAP:
            self.chip.release_key(KEYMAP[symbol])

    def close(self):
        # ESC, a fault and the window's close button all end up here
        pyglet.clock.unschedule(self.frame)
        if self.beeper is not None:
            self.beeper.delete()
            self.beeper = None
        super().close()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument("rom", help="path to a CHIP-8 program image")
    parser.add_argument("--scale", type=int, default=config.scale,
                        help="window pixels per CHIP-8 pixel (default: %(default)s)")
    parser.add_argument("--ipt", type=int, default=config.instructions_per_tick,
                        help="instructions per 60Hz timer tick (default: %(default)s)")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed for the RND instruction")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=config.LOG_FORMAT)

    logger.info("Loading ROM: %s", args.rom)
    try:
        rom = read_rom(args.rom)
    except OSError as e:
        logger.error("Failed to open ROM: %s", e)
        return 1

    chip = Chip8(seed=args.seed)
    try:
        chip.load_program(rom)
    except ProgramTooLargeError as e:
        logger.error("%s", e)
        return 1

    window = Chip8Emulator(chip, scale=args.scale, instructions_per_tick=args.ipt)
    start = time.perf_counter()
    pyglet.app.run()
    elapsed = time.perf_counter() - start

    if elapsed > 0:
        logger.info("Total time played: %.1f seconds", elapsed)
        logger.info("CPU frequency: %.0f IPS", chip.cycles / elapsed)
        logger.info("Frame timer frequency: %.1f Hz", window.ticks / elapsed)
    return 1 if window.fault else 0


if __name__ == "__main__":
    sys.exit(main())
