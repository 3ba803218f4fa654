"""Melody Composer library.

This package turns a handful of musical parameters (key, scale, meter, bar
count, style and harmony options) into timed, pitched note events: a melody,
a chord track or a blend of both. Extra layers such as a counter-melody or a
parallel harmony stack can be derived from the result, and everything can be
written to a Standard MIDI File.

A typical workflow builds an :class:`EngineConfig`, calls :func:`generate`
with a seeded :class:`random.Random` and passes the layers to
:func:`export_midi`::

    cfg = EngineConfig(key=62, scale="Dorian", bars=8, mode="Mixture")
    result = generate(cfg, random.Random(7))
    export_midi("song.mid", [result.chords, result.melody], 110, (4, 4))

Underlying Algorithm
--------------------
Melodies walk a weighted table of melodic movements (chord tones, scale
steps, neighbours, leaps, escape tones and so on). Before each draw the
weights are biased toward the requested contour and the phrase tension, and
the chosen pitch is snapped to the scale and kept inside the tessitura.
Onsets come from a rhythm pattern selected for the meter.

Chords follow a progression drawn from a bank of familiar patterns, lightly
mutated and continued by a Markov walk over root motion, with cadences
pinned by a phrase plan. Each chord is voiced with minimal movement from the
previous one, then optionally extended and recoloured by the harmony rules.

Algorithm Pseudocode
--------------------
::

    pattern = select_pattern(meter)
    for step in repeat(pattern):
        weights = contour_bias(MOVEMENTS, position)
        pitch = fit(apply(draw(weights), previous_pitch))
    notes = humanize(notes)
    return clamp(notes, passage, tessitura)

Features include:
- Forty-one scales with case-insensitive lookup and a safe fallback.
- Rhythm library for simple, compound and odd meters with polyrhythm warps.
- Extensions, suspensions, altered tones and chord colour families.
- Counter-melody, harmony stack, chord colour and re-voicing passes.
- Humanizer with timing, velocity, swing and feel controls.
- MIDI export through ``mido`` and a command line interface.
"""

__version__ = "0.1.0"

from .dynamics import accent_to_velocity, humanize
from .engine import (
    EngineConfig,
    EngineMode,
    MelodyAndChords,
    VoicingStyle,
    generate,
    generate_chord_track,
    generate_chords,
    generate_melody,
    generate_melody_and_chords,
    generate_variants,
    reharmonize,
)
from .harmony_generator import (
    AdvancedHarmonyOptions,
    ColorFamily,
    apply_color_families,
    apply_extensions,
)
from .midi_io import export_midi
from .note_utils import midi_to_note, note_to_midi
from .notes import Note
from .polyphony import (
    HarmonyStackMode,
    RevoiceStyle,
    TensionLevel,
    apply_chord_color,
    make_counter_melody,
    make_harmony_stack,
    revoice_chords,
)
from .rhythm_engine import PolyrhythmMode, RhythmPatternDatabase, select_pattern, warp
from .tension import ContourShape
from .theory import SCALES, Scale, scale_by_index, scale_by_name, scale_names


def main() -> None:
    """Run the command line interface."""

    from .cli import main as cli_main

    cli_main()


__all__ = [
    "__version__",
    "AdvancedHarmonyOptions",
    "ColorFamily",
    "ContourShape",
    "EngineConfig",
    "EngineMode",
    "HarmonyStackMode",
    "MelodyAndChords",
    "Note",
    "PolyrhythmMode",
    "RevoiceStyle",
    "RhythmPatternDatabase",
    "SCALES",
    "Scale",
    "TensionLevel",
    "VoicingStyle",
    "accent_to_velocity",
    "apply_chord_color",
    "apply_color_families",
    "apply_extensions",
    "export_midi",
    "generate",
    "generate_chord_track",
    "generate_chords",
    "generate_melody",
    "generate_melody_and_chords",
    "generate_variants",
    "humanize",
    "main",
    "make_counter_melody",
    "make_harmony_stack",
    "midi_to_note",
    "note_to_midi",
    "reharmonize",
    "revoice_chords",
    "scale_by_index",
    "scale_by_name",
    "scale_names",
    "select_pattern",
    "warp",
]
