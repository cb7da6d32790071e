import csv
from datetime import datetime
from pathlib import Path

import pytest

from zping.core.models import AttemptOutcome, EchoFailed, EchoSucceeded, PingException, Target
from zping.reporting import csvlog

GENERATED = datetime(2024, 3, 9, 14, 5, 7)
TARGET = Target(name="example.com", ip="93.184.216.34")


def test_default_path_is_deterministic(tmp_path: Path) -> None:
    first = csvlog.default_log_path("example.com", GENERATED, tmp_path)
    second = csvlog.default_log_path("example.com", GENERATED, tmp_path)
    assert first == second == tmp_path / "zping-example.com-20240309T140507.csv"


def test_default_path_sanitizes_only_reserved_characters(tmp_path: Path) -> None:
    path = csvlog.default_log_path('a\\b/c:d*e?f"g<h>i|j k.l-m', GENERATED, tmp_path)
    assert path.name == "zping-a_b_c_d_e_f_g_h_i_j k.l-m-20240309T140507.csv"


def test_default_path_lands_in_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert csvlog.default_log_path("host", GENERATED).parent == tmp_path


def test_prepare_logging_disabled() -> None:
    config = csvlog.prepare_logging("host", csvlog=False, csvlog_path=None, generated_at=GENERATED)
    assert not config.enabled
    assert config.path is None


def test_prepare_logging_explicit_path_implies_logging(tmp_path: Path) -> None:
    target = tmp_path / "mine.csv"
    config = csvlog.prepare_logging("host", csvlog=False, csvlog_path=str(target), generated_at=GENERATED)
    assert config.enabled
    assert config.path == target


def test_prepare_logging_default_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    config = csvlog.prepare_logging("host", csvlog=True, csvlog_path=None, generated_at=GENERATED)
    assert config.path == tmp_path / "zping-host-20240309T140507.csv"


def test_prepare_logging_rejects_missing_directory(tmp_path: Path) -> None:
    missing = tmp_path / "nope" / "log.csv"
    with pytest.raises(csvlog.LogDirectoryError) as excinfo:
        csvlog.prepare_logging("host", csvlog=True, csvlog_path=str(missing), generated_at=GENERATED)
    assert str(tmp_path / "nope") in str(excinfo.value)
    assert not missing.parent.exists()


def _read(path: Path) -> list[list[str]]:
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.reader(fh))


def test_append_row_writes_header_once(tmp_path: Path) -> None:
    path = tmp_path / "log.csv"
    logged_at = datetime(2024, 3, 9, 14, 5, 7, 123456).astimezone()
    csvlog.append_row(path, AttemptOutcome(EchoSucceeded(17)), TARGET, logged_at)
    csvlog.append_row(path, AttemptOutcome(EchoFailed("TtlExpired", "203.0.113.5")), TARGET, logged_at)
    csvlog.append_row(path, AttemptOutcome(PingException("A ping exception occurred to 93.184.216.34: x")), TARGET)

    rows = _read(path)
    assert rows[0] == csvlog.CSV_HEADER
    assert len(rows) == 4
    assert rows[1] == [logged_at.isoformat(timespec="microseconds"), "example.com", "93.184.216.34", "Success", "17", ""]
    assert rows[1][0].startswith("2024-03-09T14:05:07.123456")
    assert rows[2][3:] == ["TtlExpired", "", "Reply from 203.0.113.5: TtlExpired"]
    assert rows[3][3:] == ["Exception", "", "A ping exception occurred to 93.184.216.34: x"]


def test_append_row_keeps_existing_rows(tmp_path: Path) -> None:
    path = tmp_path / "log.csv"
    csvlog.append_row(path, AttemptOutcome(EchoSucceeded(1)), TARGET)
    csvlog.append_row(path, AttemptOutcome(EchoSucceeded(2)), TARGET)
    rows = _read(path)
    assert [row[4] for row in rows[1:]] == ["1", "2"]
    assert rows.count(csvlog.CSV_HEADER) == 1


def test_prepare_logging_rejects_directory_as_path(tmp_path: Path) -> None:
    with pytest.raises(csvlog.LogDirectoryError, match="is a directory"):
        csvlog.prepare_logging("host", csvlog=False, csvlog_path=str(tmp_path), generated_at=GENERATED)
