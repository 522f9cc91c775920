"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from leadscore.cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("SQLITE_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return CliRunner()


class TestCli:
    """Tests for the leadscore command group."""

    def test_score_text(self, runner):
        """A transcript on stdin is scored offline."""
        result = runner.invoke(
            cli, ["score-text", "-", "-d", "180"], input="אני מעוניין בנכס בתל אביב, זה דחוף"
        )

        assert result.exit_code == 0
        assert "Overall score" in result.output
        assert "נכס בתל אביב" in result.output

    def test_intake_show_and_list(self, runner, audio_file):
        """A registered call shows up as pending."""
        intake = runner.invoke(
            cli, ["intake", audio_file, "--name", "דני כהן", "--phone", "050-1234567"]
        )
        assert intake.exit_code == 0
        assert "Created sales call #1" in intake.output

        show = runner.invoke(cli, ["show", "1"])
        assert show.exit_code == 0
        assert "דני כהן" in show.output
        assert "Analysis: pending" in show.output

        listing = runner.invoke(cli, ["list", "-s", "pending"])
        assert listing.exit_code == 0
        assert "#1" in listing.output

    def test_score_without_transcript(self, runner, audio_file):
        """Pipeline errors exit non-zero with the message."""
        runner.invoke(cli, ["intake", audio_file, "--name", "דני", "--phone", "050"])

        result = runner.invoke(cli, ["score", "1"])

        assert result.exit_code == 1
        assert "no transcript" in result.output

    def test_show_unknown_call(self, runner):
        """Unknown ids exit non-zero."""
        result = runner.invoke(cli, ["show", "9"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_read_commands_do_not_open_provider(self, runner, audio_file, monkeypatch):
        """show, score and list never construct the transcription client."""

        def refuse(*args, **kwargs):
            raise AssertionError("transcription client constructed")

        monkeypatch.setattr("leadscore.cli.WhisperTranscriptionGateway", refuse)
        runner.invoke(cli, ["intake", audio_file, "--name", "דני", "--phone", "050"])

        show = runner.invoke(cli, ["show", "1"])
        score = runner.invoke(cli, ["score", "1"])
        listing = runner.invoke(cli, ["list"])

        assert show.exit_code == 0
        assert listing.exit_code == 0
        assert "דני" in listing.output
        assert "no transcript" in score.output
        for result in (show, score, listing):
            assert not isinstance(result.exception, AssertionError)
