#!/usr/bin/env python3
"""
spectrabeat - replay recorded spectrum frames through the aggregator and
peak detector.

Input is either JSON lines (one list of bin magnitudes per line) or a single
JSON document holding a list of such lists.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from config import Config, SpectrumScale, migrate_config
from config_persistence import load_config
from frame_driver import FrameDriver, PeakEvent
from logging_utils import log_event, set_log_level


def read_frames(path: Path) -> list[list[float]]:
    """Load recorded frames; raises ValueError when the file is not valid frame data."""
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()

    stripped = text.strip()
    if not stripped:
        return []

    # One JSON document (any indentation) holding a list of frames, else JSON lines
    try:
        frames = json.loads(stripped)
    except ValueError:
        frames = None
    if not (isinstance(frames, list) and frames and all(isinstance(f, list) for f in frames)):
        frames = [json.loads(line) for line in stripped.splitlines() if line.strip()]

    for i, frame in enumerate(frames):
        if not isinstance(frame, list) or not frame:
            raise ValueError(f"frame {i} is not a non-empty list of magnitudes")
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in frame):
            raise ValueError(f"frame {i} holds non-numeric magnitudes")
    return frames


def build_config(args: argparse.Namespace) -> Config:
    config = load_config() if args.use_saved_config else Config()

    if args.sample_rate is not None:
        config.analyzer.sample_rate = args.sample_rate
    if args.scale is not None:
        config.analyzer.scale = SpectrumScale[args.scale.upper()]
    if args.threshold is not None:
        config.peak.threshold = args.threshold
    if args.frames_per_peak is not None:
        config.peak.frames_per_peak = args.frames_per_peak
    if args.low_freq is not None:
        config.peak.low_freq = args.low_freq
    if args.high_freq is not None:
        config.peak.high_freq = args.high_freq
    if args.report_dir is None:
        config.report_generation_enabled = False

    # Clamp CLI overrides the same way saved configs are clamped
    migrate_config(config, config.version)
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay spectrum frames through spectrabeat")
    parser.add_argument("frames", type=Path, help="JSON / JSON-lines file of bin magnitude frames")
    parser.add_argument("--sample-rate", type=int, default=None, help="Sample rate in Hz (default: 44100)")
    parser.add_argument("--scale", choices=["byte", "normalized"], default=None,
                        help="Magnitude representation of the frames (default: byte)")
    parser.add_argument("--threshold", type=float, default=None, help="Peak threshold 0-1 (default: 0.35)")
    parser.add_argument("--frames-per-peak", type=int, default=None, help="Debounce window in frames (default: 20)")
    parser.add_argument("--low-freq", type=float, default=None, help="Low edge of the detector range in Hz")
    parser.add_argument("--high-freq", type=float, default=None, help="High edge of the detector range in Hz")
    parser.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    parser.add_argument("--report-dir", type=Path, default=None, help="Write session reports to this directory")
    parser.add_argument("--use-saved-config", action="store_true",
                        help="Start from ~/.spectrabeat/config.json instead of defaults")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = build_config(args)
    set_log_level(args.log_level or config.log_level)

    try:
        frames = read_frames(args.frames)
    except (OSError, ValueError) as e:
        log_event("ERROR", "Replay", "Could not read frames", path=args.frames, error=e)
        return 1

    peaks: list[PeakEvent] = []
    driver = FrameDriver(config, peaks.append, report_dir=args.report_dir)
    for frame in frames:
        driver.process_frame(frame)
    summary = driver.stop()

    log_event("INFO", "Replay", "Done", frames=len(frames), peaks=len(peaks),
              peak_frames=",".join(str(p.frame_index) for p in peaks) or "-")
    if summary is None:
        log_event("WARNING", "Replay", "No frames in input", path=args.frames)
    return 0


if __name__ == "__main__":
    sys.exit(main())
