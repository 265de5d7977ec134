"""Tests for the pipeline command line interface."""

import json
import logging
from pathlib import Path

import pytest

from src.database import DatabaseConnection
from src.etl.pipeline import cli
from src.settings import settings

REVIEWS = [
    {"outlet": "NYT", "critic_name": "Jesse Green", "original_rating": "4/5"},
    {"outlet": "WSJ", "critic_name": "Charles Isherwood", "original_rating": "B+"},
    {"outlet": "Variety", "critic_name": "Frank Rizzo", "original_rating": "Rave"},
    {"outlet": "Chicago Tribune", "critic_name": "Chris Jones", "original_rating": "3 out of 4"},
    {"outlet": "BroadwayWorld", "critic_name": "Ann Lee", "original_rating": "85/100"},
]


@pytest.fixture(autouse=True)
def configured_loggers(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Record logger setup instead of attaching handlers to the captured stdout."""
    names: list[str] = []

    def record(name: str) -> logging.Logger:
        names.append(name)
        return logging.getLogger(name)

    monkeypatch.setattr(cli, "setup_logger", record)
    return names


@pytest.fixture
def batch_file(tmp_path: Path) -> Path:
    path = tmp_path / "batch.json"
    data = {"shows": [{"show_id": "hamlet-2024", "opening_date": "2024-03-21", "reviews": REVIEWS}]}
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# -------------------------------------------------------------------------
# Parser
# -------------------------------------------------------------------------


class TestParser:
    @staticmethod
    def test_run_arguments() -> None:
        """Run arguments parse into paths and worker count."""
        args = cli._build_parser().parse_args(["run", "--input", "b.json", "--max-workers", "2"])
        assert args.command == "run"
        assert args.input == Path("b.json")
        assert args.max_workers == 2
        assert args.export is None

    @staticmethod
    def test_run_requires_input() -> None:
        """Run without --input exits."""
        with pytest.raises(SystemExit):
            cli._build_parser().parse_args(["run"])

    @staticmethod
    def test_no_command_exits(capsys: pytest.CaptureFixture[str]) -> None:
        """No subcommand prints help and exits with 1."""
        with pytest.raises(SystemExit) as exc:
            cli.main([])
        assert exc.value.code == 1
        assert "usage" in capsys.readouterr().out

    @staticmethod
    def test_configures_package_logger(shared_database: DatabaseConnection, configured_loggers: list[str]) -> None:
        """The CLI configures the src logger once."""
        cli.main(["audit"])
        assert configured_loggers == ["src"]


# -------------------------------------------------------------------------
# Commands
# -------------------------------------------------------------------------


class TestRunCommand:
    @staticmethod
    def test_run_exports_results(
        shared_database: DatabaseConnection,
        batch_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Run writes the aggregate export and audit report."""
        export = tmp_path / "out" / "scores.json"
        audit = tmp_path / "out" / "audit.json"
        cli.main(["run", "--input", str(batch_file), "--export", str(export), "--audit", str(audit)])

        assert "1/1 shows written" in capsys.readouterr().out
        scores = json.loads(export.read_text(encoding="utf-8"))
        assert scores["shows"][0]["weighted_score"] == 84.51
        assert json.loads(audit.read_text(encoding="utf-8"))["count"] == 5

    @staticmethod
    def test_missing_input_is_fatal(shared_database: DatabaseConnection, tmp_path: Path) -> None:
        """A missing batch file exits with 1."""
        with pytest.raises(SystemExit) as exc:
            cli.main(["run", "--input", str(tmp_path / "absent.json")])
        assert exc.value.code == 1


class TestShowCommand:
    @staticmethod
    def test_prints_aggregate(
        shared_database: DatabaseConnection,
        batch_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Show prints the stored aggregate as JSON."""
        cli.main(["run", "--input", str(batch_file)])
        capsys.readouterr()

        cli.main(["show", "hamlet-2024"])
        data = json.loads(capsys.readouterr().out)
        assert data["show_id"] == "hamlet-2024"
        assert data["review_count"] == 5

    @staticmethod
    def test_unknown_show(shared_database: DatabaseConnection) -> None:
        """An unknown show exits with 1."""
        with pytest.raises(SystemExit) as exc:
            cli.main(["show", "nothing"])
        assert exc.value.code == 1


class TestAuditCommand:
    @staticmethod
    def test_default_output(shared_database: DatabaseConnection, batch_file: Path) -> None:
        """Audit writes to the processed directory by default."""
        cli.main(["run", "--input", str(batch_file)])
        cli.main(["audit"])

        path = settings.paths.processed_dir / cli.AUDIT_FILENAME
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["count"] == 5


class TestCalibrateCommand:
    @staticmethod
    def test_writes_offsets(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Calibrate writes the offset table and reports the sample count."""
        samples = tmp_path / "samples.json"
        samples.write_text(
            json.dumps([{"raw_score": 80, "true_score": 84}, {"raw_score": 60, "true_score": 58}]),
            encoding="utf-8",
        )
        output = tmp_path / "offsets.json"
        cli.main(["calibrate", "--samples", str(samples), "--output", str(output)])

        assert output.exists()
        assert "2 samples" in capsys.readouterr().out


class TestInterrupts:
    @staticmethod
    def test_keyboard_interrupt_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
        """Ctrl-C exits with 130."""
        def interrupted(args: object) -> None:
            raise KeyboardInterrupt

        monkeypatch.setitem(cli._HANDLERS, "audit", interrupted)
        with pytest.raises(SystemExit) as exc:
            cli.main(["audit"])
        assert exc.value.code == 130
