#!/usr/bin/env python3
"""
Photo Quality Analyzer

Decides whether a photo is blurry and whether its brightness is abnormal,
by rendering it through a pass-through pass and a Laplacian edge pass on
the GPU.

Usage:
    python analyze_photo.py photo.jpg               # Analyze one photo
    python analyze_photo.py photo.jpg --json        # Machine-readable output
    python analyze_photo.py photo.jpg --backend egl # Headless GPU context
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from image_quality import (
    REFERENCE_SURFACE_SIZE,
    AnalysisError,
    AnalysisReport,
    RenderingContext,
    analyze_photo,
)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route library logs to stderr at the requested level"""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def print_report(report: AnalysisReport, verbose: bool = False) -> None:
    """Print the verdict lines, or the failure, for a report"""
    if not report.ok:
        print(f"ERROR: Analysis failed for {report.image_name}")
        if report.error is not None:
            print(f"  [{report.error.code}] {report.error.message}")
            if verbose and report.error.diagnostic:
                print(report.error.diagnostic)
        return

    sharpness, brightness = report.result.describe()
    print(sharpness)
    print(brightness)
    if verbose:
        print(f"  Average luminance: {report.result.avg_luminance:.2f} (0-255)")
        print(f"  Variance of Laplacian: {report.result.edge_variance:.6f}")


def print_timing_summary(ctx: RenderingContext, title: str = "Render Timing Summary") -> None:
    """Print per-operation timing collected by the rendering context"""
    summary = ctx.get_timing_summary()
    if not summary:
        print(f"{title}: No timing data collected")
        return

    print(f"\n{'='*70}")
    print(f"{title}")
    print(f"{'='*70}")
    print(f"{'Operation':<35} {'Total (ms)':>12} {'Avg (ms)':>12} {'Count':>8}")
    print(f"{'-'*70}")

    sorted_ops = sorted(summary.items(), key=lambda x: x[1]['total_ms'], reverse=True)
    for op_name, stats in sorted_ops:
        print(f"{op_name:<35} {stats['total_ms']:>12.3f} {stats['avg_ms']:>12.4f} {stats['count']:>8}")

    print(f"{'='*70}\n")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Check a photo for blur and abnormal brightness on the GPU',
        epilog="""
Examples:
  python analyze_photo.py photo.jpg              # Analyze a photo
  python analyze_photo.py file:///tmp/photo.png  # file:// URIs work too
  python analyze_photo.py photo.jpg --json       # JSON report

The blur threshold is calibrated for a %dx%d surface; other sizes change
what it means.
        """ % REFERENCE_SURFACE_SIZE,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('image',
                       help='Image path or file:// URI')
    parser.add_argument('--width', type=int, default=REFERENCE_SURFACE_SIZE[0],
                       help='Analysis surface width (default: %(default)s)')
    parser.add_argument('--height', type=int, default=REFERENCE_SURFACE_SIZE[1],
                       help='Analysis surface height (default: %(default)s)')
    parser.add_argument('--backend', default=None,
                       help="OpenGL context backend, e.g. 'egl' for headless machines")
    parser.add_argument('--timing', action='store_true',
                       help='Print per-operation GPU timing')
    parser.add_argument('--json', action='store_true',
                       help='Print the report as JSON')
    parser.add_argument('-v', '--verbose', action='store_true',
                       help='Show statistics and debug logging')
    parser.add_argument('-q', '--quiet', action='store_true',
                       help='Only log errors')

    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    if args.width <= 0 or args.height <= 0:
        parser.error("--width and --height must be positive")

    if args.verbose and not args.json:
        print(f"Image: {args.image}")
        print(f"Surface: {args.width}x{args.height}")
        print("Initializing GPU context...")

    try:
        ctx = RenderingContext(
            width=args.width,
            height=args.height,
            backend=args.backend,
            enable_timing=args.timing
        )
    except AnalysisError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        if e.diagnostic:
            print(e.diagnostic, file=sys.stderr)
        return 1

    with ctx:
        report = analyze_photo(args.image, ctx)

        if args.json:
            print(json.dumps(report.to_dict(), indent=2))
        else:
            print_report(report, verbose=args.verbose)

        if args.timing:
            print_timing_summary(ctx)

    return 0 if report.ok else 1


if __name__ == '__main__':
    sys.exit(main())
