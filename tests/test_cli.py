import pytest
from click.testing import CliRunner

from prefixagg import __version__
from prefixagg import pipeline
from prefixagg.cli import main


SOURCES = {
    "https://a.example.com/list.txt": "192.0.2.0/25\n",
    "https://b.example.com/list.txt": "192.0.2.128/25\n2001:db8::/32\n",
}


@pytest.fixture
def runner(monkeypatch, fake_fetcher):
    for name in ("PREFIXAGG_TEMPDIR", "PREFIXAGG_LOG_FILE", "PREFIXAGG_SYSLOG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(pipeline, "fetcher_from_config", lambda config: fake_fetcher(SOURCES))
    return CliRunner()


def test_stdout(runner):
    result = runner.invoke(main, ["-", *SOURCES])
    assert result.exit_code == 0, result.output
    assert "192.0.2.0/24\n2001:db8::/32\n" in result.output


def test_file_with_stats(runner, tmp_path):
    dest = tmp_path / "out.txt"
    result = runner.invoke(main, ["--stats", str(dest), *SOURCES])
    assert result.exit_code == 0, result.output
    assert dest.read_text() == "192.0.2.0/24\n2001:db8::/32\n"
    assert "Aggregation Summary" in result.output


def test_fetch_failure_exits_nonzero(runner, tmp_path):
    dest = tmp_path / "out.txt"
    result = runner.invoke(main, [str(dest), "https://down.example.com/list.txt"])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert not dest.exists()


def test_unusable_tempdir(runner, tmp_path):
    result = runner.invoke(main, ["-t", str(tmp_path / "missing"), str(tmp_path / "out.txt"), *SOURCES])
    assert result.exit_code == 1
    assert "Failed to open temporary file" in result.output


def test_rejects_non_http_url(runner):
    result = runner.invoke(main, ["-", "ftp://example.com/list.txt"])
    assert result.exit_code == 2
    assert "unsupported URL scheme" in result.output


def test_requires_a_url(runner):
    result = runner.invoke(main, ["-"])
    assert result.exit_code == 2


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_logging_setup_failure(runner, monkeypatch, tmp_path):
    from prefixagg import cli

    def no_syslog(*args, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "/dev/log")

    monkeypatch.setattr(cli, "configure_logging", no_syslog)
    dest = tmp_path / "out.txt"
    result = runner.invoke(main, ["--syslog", str(dest), *SOURCES])
    assert result.exit_code == 1
    assert "Cannot set up logging" in result.output
    assert not dest.exists()


def test_malformed_environment_value(runner, monkeypatch):
    monkeypatch.setenv("PREFIXAGG_TIMEOUT", "soon")
    result = runner.invoke(main, ["-", *SOURCES])
    assert result.exit_code == 1
    assert "Invalid value for PREFIXAGG_TIMEOUT" in result.output
