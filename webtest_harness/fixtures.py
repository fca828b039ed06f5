"""CSV fixture rows for parametrized test methods."""

import csv
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

log = logging.getLogger(__name__)

type FixtureRow = Mapping[str, str]


class FixtureNotFoundError(FileNotFoundError):
    """Raised when a method has no fixture file."""


def testing_type(module_name: str) -> str:
    """Last package segment of a module, e.g. ``ui`` for ``suites.ui.search``."""
    package, _, _ = module_name.rpartition(".")
    return (package or module_name).rpartition(".")[2]


def fixture_path(root: Path, module_name: str, class_name: str, method_name: str) -> Path:
    """Location of the fixture file for a test method."""
    return root / testing_type(module_name) / class_name / f"{method_name}.csv"


def load_rows(path: Path) -> Sequence[FixtureRow]:
    """Read a CSV file whose first row holds the field names.

    Each further row is one invocation. Missing trailing cells read as
    empty strings.

    Raises:
        FixtureNotFoundError: If the file does not exist

    """
    try:
        with path.open(newline="", encoding="utf-8") as handle:
            rows = [
                {key: value or "" for key, value in row.items() if key is not None}
                for row in csv.DictReader(handle, restval="")
            ]
    except FileNotFoundError:
        raise FixtureNotFoundError(f"File {path} was not found.") from None

    log.info("Loaded %d fixture row(s) from %s", len(rows), path)
    return rows
