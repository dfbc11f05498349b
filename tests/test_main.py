"""
Tests for the command line interface.
"""

import json

from stegascan import main as cli
from tests.fixtures.media_factory import png_bytes, solid_jpeg, solid_png, stego_pixels


def test_scan_writes_report(tmp_path, capsys):
    source = tmp_path / "carrier.png"
    source.write_bytes(png_bytes(stego_pixels()) + solid_jpeg())
    output = tmp_path / "out" / "report.json"

    exit_code = cli.main(["scan", str(source), "-o", str(output)])

    assert exit_code == 0
    report = json.loads(output.read_text())
    assert report["file_info"]["path"] == str(source)
    assert report["summary"]["steganography_detected"] is True
    assert "SCAN SUMMARY" in capsys.readouterr().out


def test_scan_missing_file(tmp_path):
    assert cli.main(["scan", str(tmp_path / "nope.png")]) == 1


def test_batch_scans_directory(tmp_path):
    source_dir = tmp_path / "samples"
    source_dir.mkdir()
    (source_dir / "a.png").write_bytes(solid_png())
    (source_dir / "b.png").write_bytes(png_bytes(stego_pixels()))
    (source_dir / "notes.txt").write_text("hello")
    reports_dir = tmp_path / "reports"

    exit_code = cli.main(["batch", str(source_dir), "-e", "png", "-o", str(reports_dir)])

    assert exit_code == 0
    summary = json.loads((reports_dir / "batch_summary.json").read_text())
    assert summary["files_scanned"] == 2
    assert summary["completed"] == 2
    assert [entry["path"] for entry in summary["detected"]] == [str(source_dir / "b.png")]
    assert (reports_dir / "a.png_report.json").exists()


def test_batch_counts_empty_files_as_failures(tmp_path):
    source_dir = tmp_path / "samples"
    source_dir.mkdir()
    (source_dir / "empty.txt").write_bytes(b"")

    exit_code = cli.main(["batch", str(source_dir), "-o", str(tmp_path / "reports")])

    assert exit_code == 1


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_scan_exports_filtered_images(tmp_path, capsys):
    source = tmp_path / "cover.png"
    source.write_bytes(png_bytes(stego_pixels(size=16)))
    filters_dir = tmp_path / "filters"

    exit_code = cli.main(["scan", str(source), "-o", str(tmp_path / "r.json"), "--filters-dir", str(filters_dir)])

    assert exit_code == 0
    assert (filters_dir / "cover.png_filter_red_lsb.png").is_file()
    assert len(list(filters_dir.iterdir())) == 12
    assert "Generated 12 filtered images" in capsys.readouterr().out


def test_filters_are_skipped_for_non_images(tmp_path):
    source = tmp_path / "notes.txt"
    source.write_bytes(b"plain text")
    filters_dir = tmp_path / "filters"

    exit_code = cli.main(["scan", str(source), "-o", str(tmp_path / "r.json"), "--filters-dir", str(filters_dir)])

    assert exit_code == 0
    assert not filters_dir.exists()
