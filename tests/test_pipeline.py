import io
import os

import pytest

from prefixagg.config import Config
from prefixagg.errors import FetchConnectionError, StagingUnavailable, UnsafeDestination
from prefixagg.pipeline import run
from prefixagg.publish.core import STAGING_PREFIX


SOURCES = {
    "https://a.example.com/list.txt": "# list A\n192.0.2.0/25\n10.0.0.0/8\n",
    "https://b.example.com/list.txt": "192.0.2.128/25 ; B\n10.20.0.0/16\n2001:db8::/33\n2001:db8:8000::/33\n",
}


def test_stdout_run(fake_fetcher):
    out = io.StringIO()
    config = Config(destination="-", sources=list(SOURCES))

    report = run(config, fetcher=fake_fetcher(SOURCES), stdout=out)

    assert out.getvalue() == "10.0.0.0/8\n192.0.2.0/24\n2001:db8::/32\n"
    assert report.sources == 2
    assert report.extracted == 6
    assert report.published == 3
    assert (report.ipv4, report.ipv6) == (2, 1)
    assert report.reduction_pct == pytest.approx(50.0)


def test_file_run_preserves_mode(tmp_path, fake_fetcher):
    dest = tmp_path / "aggregated.txt"
    dest.write_text("old\n")
    os.chmod(dest, 0o640)

    config = Config(destination=str(dest), sources=list(SOURCES))
    report = run(config, fetcher=fake_fetcher(SOURCES))

    assert dest.read_text() == "10.0.0.0/8\n192.0.2.0/24\n2001:db8::/32\n"
    assert dest.stat().st_mode & 0o777 == 0o640
    assert report.destination == str(dest)
    assert list(tmp_path.glob(f"{STAGING_PREFIX}*")) == []


def test_fetch_failure_leaves_destination(tmp_path, fake_fetcher):
    dest = tmp_path / "aggregated.txt"
    dest.write_text("old\n")
    config = Config(destination=str(dest), sources=[*SOURCES, "https://down.example.com/list.txt"])

    with pytest.raises(FetchConnectionError):
        run(config, fetcher=fake_fetcher(SOURCES))

    assert dest.read_text() == "old\n"
    assert list(tmp_path.glob(f"{STAGING_PREFIX}*")) == []


def test_staging_failure_before_download(tmp_path, fake_fetcher):
    fetcher = fake_fetcher(SOURCES)
    config = Config(destination=str(tmp_path / "out.txt"), sources=list(SOURCES), staging_dir=tmp_path / "missing")

    with pytest.raises(StagingUnavailable):
        run(config, fetcher=fetcher)

    assert fetcher.requested == []


def test_symlink_refused_before_download(tmp_path, fake_fetcher):
    real = tmp_path / "real.txt"
    real.write_text("keep\n")
    link = tmp_path / "link.txt"
    link.symlink_to(real)
    fetcher = fake_fetcher(SOURCES)

    with pytest.raises(UnsafeDestination):
        run(Config(destination=str(link), sources=list(SOURCES)), fetcher=fetcher)

    assert fetcher.requested == []
    assert real.read_text() == "keep\n"


def test_empty_sources_publish_empty_file(tmp_path, fake_fetcher):
    dest = tmp_path / "aggregated.txt"
    sources = {"https://empty.example.com/": "<html>nothing here</html>\n"}

    report = run(Config(destination=str(dest), sources=list(sources)), fetcher=fake_fetcher(sources))

    assert dest.read_text() == ""
    assert report.published == 0
    assert report.reduction_pct == 0.0
