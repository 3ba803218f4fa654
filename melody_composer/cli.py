"""Command line interface for Melody Composer.

``run_cli`` parses the arguments, builds an :class:`EngineConfig` and the
harmony options, generates the passage (or several variants) and writes a
MIDI file with one track per layer: chords, melody and the optional
counter-melody and harmony stack. :func:`main` configures logging and
delegates to ``run_cli``.

Example
-------
Running ``python -m melody_composer --key C4 --scale Dorian --timesig 4/4 \
    --bars 8 --mode Mixture --ext7 --counter-melody --output out.mid`` writes
an eight-bar Dorian passage with seventh chords and a counter line to
``out.mid``.

Validation errors are logged and terminate the process with exit status 1.
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .engine import EngineConfig, EngineMode, MelodyAndChords, VoicingStyle, generate, generate_variants
from .harmony_generator import AdvancedHarmonyOptions
from .midi_io import export_midi
from .note_utils import midi_to_note
from .performance import profile
from .phrase_planner import LOOP_LENGTHS
from .polyphony import HarmonyStackMode, RevoiceStyle, TensionLevel, make_counter_melody, make_harmony_stack
from .rhythm_engine import PolyrhythmMode
from .tension import ContourShape
from .theory import scale_names
from .utils import parse_key, validate_time_signature

__all__ = ["build_parser", "run_cli", "main"]


def _choices(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser used by :func:`run_cli`."""

    parser = argparse.ArgumentParser(
        description="Generate a melody, chords or both and save them as a MIDI file."
    )
    parser.add_argument("--list-scales", action="store_true", help="List all supported scales and exit")
    parser.add_argument("--key", type=str, default="C4", help="Tonic as a note name (e.g. C4, Bb3) or MIDI number (default: C4).")
    parser.add_argument("--scale", type=str, default="Major", help="Scale name (see --list-scales).")
    parser.add_argument("--timesig", type=str, default="4/4", help="Time signature in numerator/denominator format (e.g., 7/8).")
    parser.add_argument("--bars", type=int, default=4, help="Number of bars (1-128, default: 4).")
    parser.add_argument("--bpm", type=float, default=120.0, help="Tempo in beats per minute (default: 120).")
    parser.add_argument("--mode", type=str, default=EngineMode.CHORDS.value, choices=_choices(EngineMode), help="What to generate.")
    parser.add_argument("--rest-density", type=float, default=0.1, help="Chance that a rhythm step becomes a rest (0-1).")
    parser.add_argument("--note-density", type=float, default=0.5, help="Below 0.5 merges notes, above 0.5 splits them (0-1).")
    parser.add_argument("--tessitura", type=int, nargs=2, metavar=("LOW", "HIGH"), default=[48, 79], help="MIDI pitch range for every note.")
    parser.add_argument("--contour", type=str, default=ContourShape.ARCH.value, choices=_choices(ContourShape), help="Melodic contour.")
    parser.add_argument("--voicing", type=str, default=VoicingStyle.BLOCK.value, choices=_choices(VoicingStyle), help="How chords are played.")
    parser.add_argument("--chords-per-bar", type=int, default=0, choices=[0, 1, 2], help="Harmonic rhythm; 0 chooses per bar.")
    parser.add_argument("--loop-bars", type=int, default=0, choices=list(LOOP_LENGTHS), help="Repeat a motif of this many bars.")
    parser.add_argument("--polyrhythm", type=str, default=PolyrhythmMode.OFF.value, choices=_choices(PolyrhythmMode), help="Polyrhythm ratio.")
    parser.add_argument("--polyrhythm-amount", type=float, default=0.0, help="Chance per pattern cycle of playing the polyrhythm (0-1).")
    parser.add_argument("--timing", type=float, default=0.0, help="Humanize timing jitter (0-1).")
    parser.add_argument("--velocity", type=float, default=0.0, help="Humanize velocity spread (0-1).")
    parser.add_argument("--swing", type=float, default=0.0, help="Swing amount for off-beat eighths (0-1).")
    parser.add_argument("--feel", type=float, default=0.0, help="Lay-back feel (0-1).")
    parser.add_argument("--chord-color", type=str, default=TensionLevel.OFF.value, choices=_choices(TensionLevel), help="Chord colour level.")
    parser.add_argument("--revoice", type=str, default=RevoiceStyle.OFF.value, choices=_choices(RevoiceStyle), help="Rhythmic re-voicing of chords.")

    harmony = parser.add_argument_group("harmony rules")
    harmony.add_argument("--ext7", action="store_true", help="Allow seventh extensions")
    harmony.add_argument("--ext9", action="store_true", help="Allow ninth extensions")
    harmony.add_argument("--ext11", action="store_true", help="Allow eleventh extensions")
    harmony.add_argument("--ext13", action="store_true", help="Allow thirteenth extensions")
    harmony.add_argument("--sus24", action="store_true", help="Allow sus2/sus4 chords")
    harmony.add_argument("--alt", action="store_true", help="Allow altered tones (b5, #5, b9, #9)")
    harmony.add_argument("--slash", action="store_true", help="Allow slash voicings")
    harmony.add_argument("--extension-density", type=float, default=0.5, help="Chance a chord is extended (0-1).")
    harmony.add_argument("--secondary-dominants", action="store_true", help="Substitute secondary dominants")
    harmony.add_argument("--secondary-dominant-density", type=float, default=0.25)
    harmony.add_argument("--borrowed", action="store_true", help="Borrow chords from the parallel minor")
    harmony.add_argument("--borrowed-density", type=float, default=0.25)
    harmony.add_argument("--chromatic-mediants", action="store_true", help="Substitute chromatic mediants")
    harmony.add_argument("--chromatic-mediant-density", type=float, default=0.2)
    harmony.add_argument("--neapolitan", action="store_true", help="Substitute Neapolitan chords")
    harmony.add_argument("--neapolitan-density", type=float, default=0.2)
    harmony.add_argument("--tritone-sub", action="store_true", help="Substitute tritone subs for dominants")
    harmony.add_argument("--tritone-sub-density", type=float, default=0.3)

    layers = parser.add_argument_group("extra layers")
    layers.add_argument("--counter-melody", action="store_true", help="Add a counter-melody track")
    layers.add_argument("--harmony-stack", type=str, default=HarmonyStackMode.OFF.value, choices=_choices(HarmonyStackMode), help="Add a parallel harmony track")
    layers.add_argument("--avoid-overlaps", action="store_true", help="In Mixture mode drop melody notes that clash with chords")

    parser.add_argument("--variants", type=int, default=0, metavar="N", help="Write N (1-4) variants instead of one passage.")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible output")
    parser.add_argument("--output", type=str, default="output.mid", help="Output MIDI file path.")
    parser.add_argument("--profile", action="store_true", help="Print a cProfile report of the generation step")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _harmony_options(args: argparse.Namespace) -> AdvancedHarmonyOptions:
    return AdvancedHarmonyOptions(
        ext7=args.ext7,
        ext9=args.ext9,
        ext11=args.ext11,
        ext13=args.ext13,
        sus24=args.sus24,
        alt=args.alt,
        slash=args.slash,
        extension_density=args.extension_density,
        secondary_dominants=args.secondary_dominants,
        secondary_dominant_density=args.secondary_dominant_density,
        borrowed=args.borrowed,
        borrowed_density=args.borrowed_density,
        chromatic_mediants=args.chromatic_mediants,
        chromatic_mediant_density=args.chromatic_mediant_density,
        neapolitan=args.neapolitan,
        neapolitan_density=args.neapolitan_density,
        tritone_sub=args.tritone_sub,
        tritone_sub_density=args.tritone_sub_density,
    )


def _variant_path(output: Path, index: int) -> Path:
    return output.with_name(f"{output.stem}_{index + 1}{output.suffix}")


def _write(path: Path, result: MelodyAndChords, config: EngineConfig, args: argparse.Namespace) -> None:
    tracks = [result.chords, result.melody]
    names = ["Chords", "Melody"]
    if args.counter_melody and result.melody:
        tracks.append(make_counter_melody(result.melody, config))
        names.append("Counter")
    stack_mode = HarmonyStackMode.from_name(args.harmony_stack)
    if stack_mode is not HarmonyStackMode.OFF and result.melody:
        tracks.append(make_harmony_stack(result.melody, stack_mode, config))
        names.append(f"Stack {stack_mode.value}")
    export_midi(path, tracks, args.bpm, (config.numerator, config.denominator), names=names)


def run_cli(argv: Optional[Sequence[str]] = None) -> None:
    """Parse CLI arguments and generate a MIDI file.

    Parameters
    ----------
    argv:
        Argument list without the program name. Defaults to ``sys.argv[1:]``.
    """

    argv = list(sys.argv[1:] if argv is None else argv)
    if "--list-scales" in argv:
        print("\n".join(scale_names()))
        return
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.bpm <= 0:
        logging.error("BPM must be positive.")
        sys.exit(1)
    if not 1 <= args.bars <= 128:
        logging.error("Bars must be between 1 and 128.")
        sys.exit(1)
    if not 0 <= args.variants <= 4:
        logging.error("Variants must be between 0 and 4.")
        sys.exit(1)
    try:
        key = parse_key(args.key)
    except ValueError:
        logging.error("Invalid key provided: %s", args.key)
        sys.exit(1)
    try:
        numerator, denominator = validate_time_signature(args.timesig)
    except ValueError as exc:
        logging.error(str(exc))
        sys.exit(1)
    if args.scale.strip().lower() not in {name.lower() for name in scale_names()}:
        logging.error("Unknown scale: %s (see --list-scales)", args.scale)
        sys.exit(1)

    seed = args.seed if args.seed is not None else random.randrange(2**31)
    config = EngineConfig(
        key=key,
        scale=args.scale,
        numerator=numerator,
        denominator=denominator,
        bars=args.bars,
        rest_density=args.rest_density,
        note_density=args.note_density,
        tessitura=tuple(args.tessitura),
        contour=args.contour,
        voicing=args.voicing,
        chords_per_bar=args.chords_per_bar,
        loop_bars=args.loop_bars,
        polyrhythm=args.polyrhythm,
        polyrhythm_amount=args.polyrhythm_amount,
        timing=args.timing,
        velocity=args.velocity,
        swing=args.swing,
        feel=args.feel,
        mode=args.mode,
        chord_color=args.chord_color,
        revoice=args.revoice,
        seed=seed,
    )
    logging.info("Using seed %d", seed)
    logging.info("Using key %s (%d)", midi_to_note(key), key)
    options = _harmony_options(args)

    profiler = profile(sys.stdout) if args.profile else contextlib.nullcontext()
    with profiler:
        if args.variants:
            results = generate_variants(config, options, args.variants, avoid_overlaps=args.avoid_overlaps)
        else:
            results = [generate(config, random.Random(seed), options, avoid_overlaps=args.avoid_overlaps)]

    output = Path(args.output)
    try:
        if args.variants:
            for index, result in enumerate(results):
                _write(_variant_path(output, index), result, config, args)
        else:
            _write(output, results[0], config, args)
    except OSError as exc:
        logging.error("Could not write MIDI file: %s", exc)
        sys.exit(1)
    logging.info("Generation complete.")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Console entry point: configure logging and run the CLI."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli(argv)
