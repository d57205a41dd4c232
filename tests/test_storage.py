import json

import pytest

from apk_downloader.exceptions import ConfigurationError
from apk_downloader.models.results import BatchReport, ErrorKind, FetchFailure, FetchSuccess
from apk_downloader.storage import PayloadSink, write_failed_list, write_report

from conftest import APK_BYTES


@pytest.fixture
def report() -> BatchReport:
    return BatchReport(
        total=3,
        succeeded=["com.a.b"],
        failed=[("com.c.d", ErrorKind.NOT_FOUND), ("com.e.f", ErrorKind.TIMEOUT)],
        messages={"com.c.d": "unknown app", "com.e.f": "No result within 5.0s"},
        bytes_downloaded=len(APK_BYTES),
        duration_s=1.25,
        peak_in_flight=2,
    )


class TestPayloadSink:
    def test_output_must_exist(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not a valid directory"):
            PayloadSink(tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_writes_successes(self, tmp_path):
        sink = PayloadSink(tmp_path)

        await sink(FetchSuccess("com.a.b", APK_BYTES))

        assert (tmp_path / "com.a.b.apk").read_bytes() == APK_BYTES
        assert not (tmp_path / "com.a.b.apk.part").exists()
        assert sink.saved == ["com.a.b"]
        assert sink.ok

    @pytest.mark.asyncio
    async def test_ignores_failures(self, tmp_path):
        sink = PayloadSink(tmp_path)

        await sink(FetchFailure("com.a.b", ErrorKind.NOT_FOUND))

        assert list(tmp_path.iterdir()) == []
        assert sink.saved == []

    @pytest.mark.asyncio
    async def test_keeps_existing_file(self, tmp_path):
        existing = tmp_path / "com.a.b.apk"
        existing.write_bytes(b"old")
        sink = PayloadSink(tmp_path)

        assert await sink.write(FetchSuccess("com.a.b", APK_BYTES)) is None

        assert existing.read_bytes() == b"old"
        assert sink.skipped == ["com.a.b"]

    @pytest.mark.asyncio
    async def test_overwrite(self, tmp_path):
        existing = tmp_path / "com.a.b.apk"
        existing.write_bytes(b"old")
        sink = PayloadSink(tmp_path, overwrite=True)

        path = await sink.write(FetchSuccess("com.a.b", APK_BYTES))

        assert path == existing
        assert existing.read_bytes() == APK_BYTES

    def test_file_names_are_sanitized(self, tmp_path):
        sink = PayloadSink(tmp_path)

        path = sink.path_for("com/evil:app")

        assert path.parent == tmp_path
        assert path.suffix == ".apk"
        assert "/" not in path.name and ":" not in path.name

    @pytest.mark.asyncio
    async def test_write_errors_are_recorded(self, tmp_path):
        sink = PayloadSink(tmp_path)
        # a directory in the way makes the final rename fail
        (tmp_path / "com.a.b.apk").mkdir()
        sink.overwrite = True

        await sink(FetchSuccess("com.a.b", APK_BYTES))

        assert "com.a.b" in sink.errors
        assert not sink.ok
        assert not (tmp_path / "com.a.b.apk.part").exists()


class TestReportWriters:
    def test_write_report(self, tmp_path, report):
        path = tmp_path / "report.json"

        write_report(report, path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["total"] == 3
        assert data["succeeded"] == ["com.a.b"]
        assert [entry["kind"] for entry in data["failed"]] == ["NotFound", "Timeout"]
        assert data["peak_in_flight"] == 2

    def test_write_failed_list(self, tmp_path, report):
        path = tmp_path / "failed.txt"

        count = write_failed_list(report, path)

        assert count == 2
        assert path.read_text(encoding="utf-8") == "com.c.d\ncom.e.f\n"

    def test_unwritable_destination(self, tmp_path, report):
        with pytest.raises(ConfigurationError):
            write_report(report, tmp_path / "missing" / "report.json")
        with pytest.raises(ConfigurationError):
            write_failed_list(report, tmp_path / "missing" / "failed.txt")
