import io

import pytest
from rich.console import Console

from apk_downloader.cli.formatters import format_error_with_suggestions
from apk_downloader.exceptions import SourceNetworkError
from apk_downloader.utils.formatting import format_duration, format_size, pluralize


@pytest.mark.parametrize(
    "byte_count, expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (2048, "2.0 KB"),
        (5 * 1024**2 + 300 * 1024, "5.3 MB"),
        (3 * 1024**4, "3.0 TB"),
        (2048 * 1024**4, "2048.0 TB"),
    ],
)
def test_format_size(byte_count, expected):
    assert format_size(byte_count) == expected


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0.0s"),
        (3.14, "3.1s"),
        (42, "42s"),
        (127, "2m 07s"),
        (3727, "1h 02m 07s"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_pluralize():
    assert pluralize(1, "app") == "1 app"
    assert pluralize(3, "app") == "3 apps"


def render(renderable) -> str:
    console = Console(file=io.StringIO(), width=120, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


class TestErrorPanel:
    def test_network_errors_suggest_less_parallelism(self):
        output = render(format_error_with_suggestions(SourceNetworkError("HTTP 503")))

        assert "SourceNetworkError: HTTP 503" in output
        assert "--parallel" in output

    def test_unlisted_errors_point_to_debug_logs(self):
        # same class name as aiohttp's response error, which never reaches the CLI
        error = type("ClientResponseError", (Exception,), {})("HTTP 500")

        output = render(format_error_with_suggestions(error, {"type": "Unexpected"}))

        assert "-vv" in output
        assert "network connection issue" not in output
        assert "Unexpected" in output
