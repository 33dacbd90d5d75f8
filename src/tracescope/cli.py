"""
CLI entry point.

Usage:
    tracescope <audio_file> [options]
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from tracescope.config import FEATURE_NAMES, TraceConfig
from tracescope.errors import AudioLoadError
from tracescope.io.encoder import QUALITY_PRESETS, encode_video
from tracescope.io.exporter import TraceExporter, save_frame_png
from tracescope.pipeline import TracePipeline
from tracescope.render.postprocess import BLUR_STAGES


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tracescope",
        description="Draw a monochrome trace of an audio file's spectral features",
    )
    parser.add_argument("audio", type=Path, help="Input audio file (wav, mp3, flac)")
    parser.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output MP4 path (default: <audio>_trace.mp4)",
    )
    parser.add_argument("--no-video", action="store_true", help="Skip video encoding")
    parser.add_argument("--png", type=Path, default=None, help="Write the final frame as PNG")
    parser.add_argument(
        "--trace", type=Path, default=None,
        help="Write per-frame features and cursor (.json or .npz)",
    )

    # Mapping
    parser.add_argument("--x-feature", choices=FEATURE_NAMES, default="flux")
    parser.add_argument("--y-feature", choices=FEATURE_NAMES, default="density")
    parser.add_argument("--x-scale", type=float, default=8.0, help="X multiplier (default: 8)")
    parser.add_argument("--y-scale", type=float, default=2.0, help="Y multiplier (default: 2)")
    parser.add_argument(
        "--inertia", type=float, default=0.97,
        help="Smoothing retention in (0, 1) (default: 0.97)",
    )

    # Output
    parser.add_argument("--size", type=int, default=800, help="Square output size in pixels")
    parser.add_argument("-f", "--fps", type=int, default=60, help="Frames per second (default: 60)")
    parser.add_argument("--blur", type=float, default=3.6, help="Blur radius (default: 3.6)")
    parser.add_argument(
        "--threshold", type=int, default=246,
        help="Luminance cutoff 0-255 (default: 246)",
    )
    parser.add_argument(
        "--blur-stage", choices=sorted(BLUR_STAGES), default="pillow",
        help="Blur implementation (default: pillow)",
    )

    # Limits & encoding
    parser.add_argument("--max-duration", type=float, default=None, help="Limit to N seconds")
    parser.add_argument(
        "-q", "--quality", choices=sorted(QUALITY_PRESETS), default="medium",
        help="Encoding quality (default: medium)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        sys.exit(1)

    if args.fps <= 0:
        print(f"Error: --fps must be positive; got {args.fps}", file=sys.stderr)
        sys.exit(2)

    try:
        config = TraceConfig(
            x_feature=args.x_feature,
            y_feature=args.y_feature,
            x_scale=args.x_scale,
            y_scale=args.y_scale,
            inertia=args.inertia,
            canvas_width=args.size,
            canvas_height=args.size,
            blur_radius=args.blur,
            threshold=args.threshold,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    blur_stage = BLUR_STAGES[args.blur_stage](radius=config.blur_radius)
    pipeline = TracePipeline(config, fps=args.fps, blur_stage=blur_stage)
    max_frames = None
    if args.max_duration is not None:
        max_frames = int(args.max_duration * args.fps)

    print(f"Tracing {args.audio}: {config.x_feature} x {config.y_feature}")
    t0 = time.time()

    try:
        if args.no_video:
            final = pipeline.render_final(
                args.audio, max_frames=max_frames, progress_callback=_progress_bar
            )
        else:
            output = args.output or args.audio.with_name(f"{args.audio.stem}_trace.mp4")
            # Decode before ffmpeg starts so a bad file never spawns it.
            pipeline.load(args.audio)
            frames = pipeline.render_frames(
                args.audio, max_frames=max_frames, progress_callback=_progress_bar
            )
            encode_video(
                frames,
                output_path=output,
                width=config.canvas_width,
                height=config.canvas_height,
                fps=args.fps,
                audio_path=args.audio,
                quality=args.quality,
                duration=args.max_duration,
            )
            final = pipeline.session.render()
            print(f"  Video: {output} ({output.stat().st_size / 1024 / 1024:.1f} MB)")
    except AudioLoadError as e:
        print(f"Error: could not load audio: {e}", file=sys.stderr)
        sys.exit(1)

    elapsed = time.time() - t0
    n_frames = pipeline.record.n_frames
    print(f"  {n_frames} frames in {elapsed:.1f}s ({n_frames / max(elapsed, 0.01):.1f} fps)")

    if args.png:
        save_frame_png(final, args.png)
        print(f"  Final frame: {args.png}")

    if args.trace:
        exporter = TraceExporter()
        if args.trace.suffix == ".npz":
            exporter.export_numpy(pipeline.record, args.trace)
        else:
            exporter.export_json(pipeline.record, args.trace)
        print(f"  Trace: {args.trace}")


if __name__ == "__main__":
    main()
