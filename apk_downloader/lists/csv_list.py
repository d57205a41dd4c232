"""
Parses CSV or one-ID-per-line files into work items.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from apk_downloader.exceptions import ConfigurationError
from apk_downloader.models.results import WorkItem

log = logging.getLogger(__name__)

PACKAGE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z][A-Za-z0-9_]*)+$")


@dataclass(frozen=True)
class ParseDiagnostic:
    """A row that produced no work item."""

    line: int
    message: str

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}"


@dataclass
class ParsedList:
    items: list[WorkItem] = field(default_factory=list)
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)

    @property
    def identifiers(self) -> list[str]:
        return [item.identifier for item in self.items]


def is_package_name(value: str) -> bool:
    """Checks whether a value looks like an Android application ID."""
    return bool(PACKAGE_NAME_RE.match(value))


def parse_csv_text(
    text: str, field: int = 1, source: str = "<text>", validate: bool = True
) -> ParsedList:
    """
    Extracts app IDs from one column of CSV text.

    Args:
        text: The CSV content. A plain list is a CSV with a single field.
        field: The 1-based column holding the app IDs.
        source: Name used in work item hints and diagnostics.
        validate: Reject values that are not valid Android package names.

    Returns:
        The parsed work items plus a diagnostic for every rejected row.
    """
    if field < 1:
        raise ConfigurationError("Field must be 1 or greater.")

    parsed = ParsedList()
    index = field - 1
    reader = csv.reader(io.StringIO(text))
    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            parsed.diagnostics.append(ParseDiagnostic(reader.line_num, str(e)))
            break
        line_no = reader.line_num
        if not row or all(not cell.strip() for cell in row):
            continue
        if row[0].lstrip().startswith("#"):
            continue
        if len(row) <= index:
            parsed.diagnostics.append(
                ParseDiagnostic(line_no, f"only {len(row)} fields, need {field}")
            )
            continue

        value = row[index].strip()
        if not value:
            parsed.diagnostics.append(ParseDiagnostic(line_no, f"field {field} is empty"))
            continue
        if validate and not is_package_name(value):
            parsed.diagnostics.append(
                ParseDiagnostic(line_no, f"'{value}' is not a valid app ID")
            )
            continue

        parsed.items.append(WorkItem(value, source_hint=f"{source}:{line_no}"))

    return parsed


def load_csv_list(
    path: Union[str, Path], field: int = 1, validate: bool = True
) -> ParsedList:
    """
    Reads and parses a CSV file of app IDs.

    Raises:
        ConfigurationError: If the file cannot be read.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not read list file {path}: {e}") from e

    log.info(f"Reading app IDs from file: [dim]{path}[/dim]")
    return parse_csv_text(text, field=field, source=path.name, validate=validate)


def single_item(app_id: str) -> ParsedList:
    """Wraps an app ID given directly on the command line."""
    app_id = app_id.strip()
    if not app_id:
        raise ConfigurationError("App name cannot be empty.")
    return ParsedList(items=[WorkItem(app_id, source_hint="command line")])
