"""Naming of test artifacts such as screenshots."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True, kw_only=True)
class ArtifactNamer:
    """Builds artifact paths grouped by date, suite, class and method."""

    root: Path
    suite_name: str
    class_name: str
    method_name: str
    clock: Callable[[], datetime] = field(default=datetime.now, repr=False)

    def screenshot_path(self, name: str) -> Path:
        """Path of a screenshot taken now.

        ``<root>/screenshots/<YYYYMMDD>/<suite>/<class>/<method>/<HHMMSSfff> <name>.png``
        """
        now = self.clock()
        timestamp = now.strftime("%H%M%S") + f"{now.microsecond // 1000:03d}"
        return (
            self.root
            / "screenshots"
            / now.strftime("%Y%m%d")
            / self.suite_name
            / self.class_name
            / self.method_name
            / f"{timestamp} {name}.png"
        )
