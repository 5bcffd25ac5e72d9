"""
HeadTone - head-pose music instrument
Main entry point

Pose frames are read as JSON lines, one per frame: a list of [x, y, z]
landmarks (normalized face-mesh coordinates) or null when no face is
visible.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

from audio.engine import RecordingOutput
from audio.scheduler import LoopScheduler, ManualClock
from core.app import AppContext
from core.errors import ConfigurationError, PersistenceError
from core.events import BarChange, MetronomeBeat, Notice, NoteTriggered, OctaveToggled, StateChange
from core.persistence import PROFILE_SLOTS, ProfileStore, export_table, read_table, write_table
from core.settings import load_settings
from instruments.profiles import ACCOMPANIMENT_INSTRUMENTS, LEAD_INSTRUMENTS
from tracking.face_pose import landmarks_from_points

# Frame interval for pose files in simulate (30 fps camera)
FRAME_SECONDS = 1.0 / 30.0


def parse_frame(line: str):
    """One JSON line to a landmark list, or None for a lost face."""
    line = line.strip()
    if not line:
        return None
    points = json.loads(line)
    if points is None:
        return None
    return landmarks_from_points(points)


def attach_console(ctx: AppContext, clock=None):
    """Print engine events as tagged console lines."""
    def stamp() -> str:
        return f"{clock.time():7.3f} " if clock is not None else ""

    def on_bar(event: BarChange):
        measure = f" m{event.measure_number}" if event.measure_number is not None else ""
        hint = f"  ({event.hint})" if event.hint else ""
        print(f"{stamp()}[BAR] {event.bar_index}{measure} {event.chord} "
              f"{event.beats} beats {event.duration:.2f}s{hint}")

    def on_beat(event: MetronomeBeat):
        mark = ">" if event.is_accent else "."
        print(f"{stamp()}[BEAT] {mark} {event.beat_index + 1}/{event.total_beats}")

    def on_note(event: NoteTriggered):
        trigger = event.trigger
        print(f"{stamp()}[NOTE] zone {trigger.zone_id} {trigger.name} ({trigger.frequency:.1f} Hz)")

    ctx.events.subscribe(BarChange, on_bar)
    ctx.events.subscribe(MetronomeBeat, on_beat)
    ctx.events.subscribe(NoteTriggered, on_note)
    ctx.events.subscribe(OctaveToggled,
                         lambda e: print(f"{stamp()}[OCTAVE] {'up' if e.octave_up else 'normal'}"))
    ctx.events.subscribe(StateChange, lambda e: print(f"{stamp()}[STATE] {e.state}"))
    ctx.events.subscribe(Notice, lambda e: print(f"{stamp()}[{e.level.upper()}] {e.message}"))


def apply_accompaniment_args(ctx: AppContext, args):
    """Command-line overrides for the accompaniment settings."""
    sequencer = ctx.sequencer
    if args.progression:
        sequencer.select_progression(args.progression)
    if args.section is not None:
        sequencer.select_section(args.section)
    if args.bpm is not None:
        sequencer.set_bpm(args.bpm)
    if args.volume is not None:
        sequencer.set_volume(args.volume)
    if args.instrument:
        sequencer.set_instrument(args.instrument)
    if args.arpeggio:
        sequencer.set_arpeggio(True)
    if args.metronome:
        sequencer.set_metronome(True)


# ---- commands ---------------------------------------------------------------

async def run_play(args, settings) -> int:
    """Realtime session: sounddevice output, pyttsx3 narration, asyncio timers."""
    from audio.device import SoundDeviceOutput
    from audio.narration import Pyttsx3Speaker

    audio_settings = settings["audio"]
    scheduler = LoopScheduler()
    audio = SoundDeviceOutput(audio_settings["sample_rate"], audio_settings["buffer_size"],
                              audio_settings["output_device"])
    audio.start()
    speaker = Pyttsx3Speaker() if (args.narration or settings["accompaniment"]["narration"]) else None

    ctx = AppContext(scheduler, audio=audio, speaker=speaker, settings=settings)
    attach_console(ctx)
    try:
        ctx.start()
        if args.slot is not None:
            ctx.switch_profile(args.slot)
        apply_accompaniment_args(ctx, args)
        if args.narration:
            ctx.sequencer.set_narration(True)
        if ctx.sequencer.progression_key:
            ctx.sequencer.start()

        if args.poses:
            await feed_poses(ctx, args.poses)
        elif args.duration:
            await asyncio.sleep(args.duration)
        else:
            await asyncio.Event().wait()
    finally:
        ctx.shutdown()
    return 0


async def feed_poses(ctx: AppContext, source: str):
    """Read pose frames from a file or stdin ("-") without blocking timers."""
    loop = asyncio.get_running_loop()
    stream = sys.stdin if source == "-" else open(source, "r")
    try:
        while True:
            line = await loop.run_in_executor(None, stream.readline)
            if not line:
                break
            ctx.process_frame(parse_frame(line))
    finally:
        if stream is not sys.stdin:
            stream.close()


def run_simulate(args, settings) -> int:
    """Offline session on a virtual clock; prints events and the rendered notes."""
    clock = ManualClock()
    audio = RecordingOutput(clock)
    ctx = AppContext(clock, audio=audio, settings=settings)
    attach_console(ctx, clock)
    ctx.start()
    if args.slot is not None:
        ctx.switch_profile(args.slot)
    apply_accompaniment_args(ctx, args)

    if ctx.sequencer.progression_key:
        ctx.sequencer.start()

    if args.poses:
        with open(args.poses, "r") as f:
            for line in f:
                ctx.process_frame(parse_frame(line))
                clock.advance(FRAME_SECONDS)
    else:
        clock.advance(args.duration)

    ctx.sequencer.stop()
    print(f"\n{len(audio.notes)} notes:")
    for note in audio.notes:
        print(f"  {note.start_time:7.3f}  {note.note_name:<4} {note.frequency:8.2f} Hz  "
              f"{note.duration:.3f}s")
    return 0


def run_export(args, settings) -> int:
    store = _store(settings)
    profile = store.load(args.slot)
    if profile is None:
        print(f"[PROFILE] Profile {args.slot} is empty")
        return 1
    text = export_table(profile, args.slot)
    if args.output == "-":
        sys.stdout.write(text)
    else:
        write_table(Path(args.output), text)
        print(f"[PROFILE] Exported profile {args.slot} to {args.output}")
    return 0


def run_import(args, settings) -> int:
    store = _store(settings)
    ctx = AppContext(ManualClock(), store=store, settings=settings)
    if not ctx.switch_profile(args.slot):
        return 1
    text = sys.stdin.read() if args.input == "-" else read_table(Path(args.input))
    return 0 if ctx.import_table(text) else 1


def run_list(args, settings) -> int:
    ctx = AppContext(ManualClock(), settings=settings)
    print("Progressions:")
    for key in ctx.sequencer.progression_keys():
        progression = ctx.sequencer.progression(key)
        print(f"  {key:<14} {len(progression.bars)} bars")
        for index, section in enumerate(progression.sections):
            print(f"      [{index}] {section.name} (bars {section.start}-{section.end})")
    print("Accompaniment instruments: " + ", ".join(ACCOMPANIMENT_INSTRUMENTS))
    print("Lead instruments: " + ", ".join(LEAD_INSTRUMENTS))

    slots = set(ctx.store.populated_slots())
    print("Profiles:")
    for slot in PROFILE_SLOTS:
        print(f"  {slot}: {'saved' if slot in slots else 'empty'}")
    return 0


def _store(settings) -> ProfileStore:
    path = settings["storage"]["profile_path"]
    return ProfileStore(Path(path) if path else None)


# ---- argument parsing -------------------------------------------------------

def _add_accompaniment_args(parser: argparse.ArgumentParser):
    parser.add_argument("--progression", help="Progression key (see 'list')")
    parser.add_argument("--section", type=int, help="Song section index")
    parser.add_argument("--bpm", type=float, help="Tempo, 40-180")
    parser.add_argument("--volume", type=float, help="Accompaniment volume, 0-1")
    parser.add_argument("--instrument", help="Accompaniment instrument")
    parser.add_argument("--arpeggio", action="store_true", help="Arpeggiate chords")
    parser.add_argument("--metronome", action="store_true", help="Click every beat")
    parser.add_argument("--slot", type=int, choices=PROFILE_SLOTS, help="Calibration profile")
    parser.add_argument("--poses", help="Pose frames as JSON lines ('-' = stdin)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="headtone", description="Head-pose music instrument")
    parser.add_argument("--config-dir", type=Path, help="Settings directory (default ~/.headtone)")
    commands = parser.add_subparsers(dest="command", required=True)

    play = commands.add_parser("play", help="Realtime session")
    _add_accompaniment_args(play)
    play.add_argument("--narration", action="store_true", help="Speak bar hints")
    play.add_argument("--duration", type=float, help="Stop after this many seconds")

    simulate = commands.add_parser("simulate", help="Offline session on a virtual clock")
    _add_accompaniment_args(simulate)
    simulate.add_argument("--duration", type=float, default=10.0,
                          help="Seconds to simulate when no pose file is given")

    export = commands.add_parser("export", help="Write a profile as a calibration table")
    export.add_argument("--slot", type=int, choices=PROFILE_SLOTS, default=1)
    export.add_argument("output", help="Output file ('-' = stdout)")

    import_ = commands.add_parser("import", help="Load a calibration table into a profile")
    import_.add_argument("--slot", type=int, choices=PROFILE_SLOTS, default=1)
    import_.add_argument("input", help="Input file ('-' = stdin)")

    commands.add_parser("list", help="Show progressions, instruments and profiles")
    return parser


def main(argv=None) -> int:
    """Launch HeadTone."""
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config_dir)

    try:
        if args.command == "play":
            return asyncio.run(run_play(args, settings))
        if args.command == "simulate":
            return run_simulate(args, settings)
        if args.command == "export":
            return run_export(args, settings)
        if args.command == "import":
            return run_import(args, settings)
        return run_list(args, settings)
    except (ConfigurationError, PersistenceError) as e:
        print(f"[ERROR] {e}")
        return 1
    except KeyboardInterrupt:
        print("\nHeadTone closed.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
