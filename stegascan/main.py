"""
Main CLI interface for stegascan.
"""
import argparse
import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from stegascan import config, engine
from stegascan.analyzers import ImageFilterAnalyzer
from stegascan.core import ReportManager, setup_logging
from stegascan.core.errors import DecodeError, StegascanError
from stegascan.core.serialization import make_json_serializable
from stegascan.jobs import ScanService
from stegascan.models import MediaType

logger = logging.getLogger("stegascan.main")

DEFAULT_REPORTS_DIR = config.RESULTS_DIR / "reports"


def print_summary(result: Dict[str, Any]) -> None:
    """
    Print a short human-readable verdict for one result document.

    Args:
        result: Result document as returned by the scan service
    """
    file_info = result["file_info"]
    magic = result["magic_bytes_analysis"]
    summary = result["summary"]

    print(f"\nSCAN SUMMARY: {file_info['path']}")
    print("========================")
    print(f"Detected type: {file_info['detected_type']} ({file_info['size_bytes']} bytes)")
    print(f"Primary format: {magic['primary_format']}")
    print(f"Steganography detected: {summary['steganography_detected']}")
    print(f"Confidence: {summary['confidence_level']}")
    if summary["threat_indicators"]:
        print("Threat indicators:")
        for indicator in summary["threat_indicators"]:
            print(f"  - {indicator}")
    for finding in magic["suspicious_findings"]:
        print(f"  * {finding}")
    print("Recommendations:")
    for recommendation in summary["recommendations"]:
        print(f"  - {recommendation}")


def export_filters(data: bytes, result: Dict[str, Any], filters_dir: Path, stem: str) -> List[Path]:
    """
    Write channel and LSB plane images of a scanned image for visual inspection.

    Args:
        data: Raw file bytes
        result: Result document of the scan
        filters_dir: Directory for the filtered images
        stem: File name prefix for the images

    Returns:
        Paths of the written images; empty if the file is not an image
    """
    detected = result["file_info"]["detected_type"]
    if detected != MediaType.IMAGE.value:
        logging.warning(f"Filtered images are only generated for images, {stem} is {detected}")
        return []
    try:
        paths = ImageFilterAnalyzer().export(data, filters_dir, stem)
    except DecodeError as e:
        logging.warning(f"Could not generate filtered images: {e}")
        return []
    print(f"Generated {len(paths)} filtered images in {filters_dir}")
    return paths


def scan_file(
    file_path: Path,
    output: Optional[Path] = None,
    video_sample_rate: Optional[int] = None,
    verbose: bool = False,
    filters_dir: Optional[Path] = None
) -> int:
    """
    Scan a single file and write its JSON report.

    Args:
        file_path: File to scan
        output: Report path. Defaults to results/reports/<name>_report.json
        video_sample_rate: Analyze every Nth video frame (default from config)
        verbose: Whether to enable verbose logging
        filters_dir: If set, also write filtered images of an image file here

    Returns:
        Process exit code
    """
    setup_logging(verbose, config.LOG_DIR if verbose else None)
    logging.info(f"Scanning {file_path}...")

    try:
        data = file_path.read_bytes()
    except OSError as e:
        logging.error(f"Could not read {file_path}: {e}")
        return 1

    with ScanService() as service:
        try:
            result = service.scan(data, str(file_path), video_sample_rate)
        except StegascanError as e:
            logging.error(f"Scan failed: {e}")
            return 1

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(make_json_serializable(result), f, indent=2)
        report_path = output
    else:
        report_path = ReportManager(DEFAULT_REPORTS_DIR).save_json(result, f"{file_path.name}_report")

    print_summary(result)
    if filters_dir is not None:
        export_filters(data, result, filters_dir, file_path.name)
    logging.info(f"Report saved to: {report_path}")
    return 0


def collect_files(input_dir: Path, extensions: Optional[List[str]] = None) -> List[Path]:
    """
    List the files of a directory tree, optionally filtered by extension.

    Args:
        input_dir: Directory to walk
        extensions: Extensions to keep, with or without a leading dot

    Returns:
        Sorted list of file paths
    """
    wanted = {ext.lower().lstrip(".") for ext in extensions} if extensions else None
    files = []
    for path in sorted(input_dir.rglob("*")):
        if not path.is_file():
            continue
        if wanted is not None and path.suffix.lower().lstrip(".") not in wanted:
            continue
        files.append(path)
    return files


async def run_batch(
    service: ScanService,
    files: List[Path],
    video_sample_rate: Optional[int]
) -> Dict[str, Dict[str, Any]]:
    """
    Submit every file to the service and collect the final job states.

    Args:
        service: Scan service to submit to
        files: Files to scan
        video_sample_rate: Analyze every Nth video frame (default from config)

    Returns:
        Mapping of file path to final poll response
    """
    outcomes: Dict[str, Dict[str, Any]] = {}
    jobs: Dict[str, str] = {}
    for path in files:
        try:
            data = path.read_bytes()
            submitted = await service.submit(data, str(path), video_sample_rate)
        except (OSError, StegascanError) as e:
            logging.warning(f"Skipping {path}: {e}")
            outcomes[str(path)] = {"status": "failed", "error": str(e)}
            continue
        jobs[str(path)] = submitted["analysis_id"]

    await service.drain()
    for path, analysis_id in jobs.items():
        outcomes[path] = await service.poll(analysis_id)
    return outcomes


def batch_scan(
    input_dir: Path,
    extensions: Optional[List[str]] = None,
    output_dir: Optional[Path] = None,
    video_sample_rate: Optional[int] = None,
    verbose: bool = False
) -> int:
    """
    Scan every file in a directory through the asynchronous job surface.

    Args:
        input_dir: Directory containing files to scan
        extensions: Optional extension filter
        output_dir: Report directory. Defaults to a timestamped folder under results/reports/
        video_sample_rate: Analyze every Nth video frame (default from config)
        verbose: Whether to enable verbose logging

    Returns:
        Process exit code
    """
    setup_logging(verbose, config.LOG_DIR if verbose else None)

    if not input_dir.is_dir():
        logging.error(f"Not a directory: {input_dir}")
        return 1
    try:
        video_sample_rate = engine.resolve_sample_rate(video_sample_rate)
    except StegascanError as e:
        logging.error(str(e))
        return 1

    files = collect_files(input_dir, extensions)
    if not files:
        logging.warning(f"No files to scan in {input_dir}")
        return 0
    logging.info(f"Starting batch scan of {len(files)} files...")

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    reports = ReportManager(output_dir or DEFAULT_REPORTS_DIR / f"batch_{timestamp}")

    with ScanService() as service:
        outcomes = asyncio.run(run_batch(service, files, video_sample_rate))

    batch_summary = {
        "input_dir": str(input_dir),
        "timestamp": timestamp,
        "files_scanned": len(files),
        "completed": 0,
        "failed": 0,
        "detected": [],
        "errors": {},
    }
    for path, outcome in outcomes.items():
        if outcome["status"] != "completed":
            batch_summary["failed"] += 1
            batch_summary["errors"][path] = outcome.get("error")
            continue
        batch_summary["completed"] += 1
        result = outcome["result"]
        reports.save_json(result, f"{Path(path).name}_report")
        if result["summary"]["steganography_detected"]:
            batch_summary["detected"].append({
                "path": path,
                "confidence_level": result["summary"]["confidence_level"],
                "threat_indicators": result["summary"]["threat_indicators"],
            })

    summary_path = reports.save_json(batch_summary, "batch_summary")

    print("\nBATCH SCAN SUMMARY:")
    print("========================")
    print(f"Files scanned: {batch_summary['files_scanned']}")
    print(f"Completed: {batch_summary['completed']}")
    print(f"Failed: {batch_summary['failed']}")
    print(f"Files with indicators: {len(batch_summary['detected'])}")
    for entry in batch_summary["detected"]:
        print(f"  - {entry['path']} ({entry['confidence_level']})")

    logging.info(f"Reports saved to: {reports.reports_dir}")
    logging.info(f"Batch summary: {summary_path}")
    return 0 if batch_summary["failed"] == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stegascan",
        description="Steganography detection for images, audio, video and documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan one file, report goes to results/reports/:
  python -m stegascan scan ./samples/cover.png

  # Scan an image and write its channel and LSB plane images:
  python -m stegascan scan ./samples/cover.png --filters-dir ./filters

  # Scan a video, sampling every 10th frame, with verbose logging:
  python -m stegascan scan ./samples/clip.mp4 --video-sample-rate 10 -v

  # Scan a directory of images and audio:
  python -m stegascan batch ./samples -e png jpg wav mp3 --output-dir ./reports
"""
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan a single file"
    )
    scan_parser.add_argument(
        "file",
        type=Path,
        help="File to scan"
    )
    scan_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Path for the JSON report"
    )
    scan_parser.add_argument(
        "--filters-dir",
        type=Path,
        help="Write channel and LSB plane images of an image file to this directory"
    )

    batch_parser = subparsers.add_parser(
        "batch",
        help="Scan every file in a directory"
    )
    batch_parser.add_argument(
        "input_dir",
        type=Path,
        help="Directory containing files to scan"
    )
    batch_parser.add_argument(
        "-e", "--extensions",
        nargs="+",
        help="Only scan files with these extensions"
    )
    batch_parser.add_argument(
        "-o", "--output-dir",
        type=Path,
        help="Directory for the JSON reports"
    )

    for sub in (scan_parser, batch_parser):
        sub.add_argument(
            "--video-sample-rate",
            type=int,
            default=config.VIDEO["default_sample_rate"],
            help="Analyze every Nth video frame (default: %(default)s)"
        )
        sub.add_argument(
            "-v", "--verbose",
            action="store_true",
            default=argparse.SUPPRESS,
            help="Enable verbose logging"
        )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "scan":
        return scan_file(args.file, args.output, args.video_sample_rate, args.verbose, args.filters_dir)
    elif args.command == "batch":
        return batch_scan(args.input_dir, args.extensions, args.output_dir, args.video_sample_rate, args.verbose)
    elif args.command is None:
        parser.print_help()
        return 0
    else:
        logging.error(f"Unknown command: {args.command}")
        parser.print_help()
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
