"""
Repository pattern for usage data access.

Loads daily usage from the ``ccusage`` CLI or from a JSON file it
produced. Nothing is persisted; every fetch returns a fresh report.
"""

import json
import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from .models import UsageDataError, UsageReport, parse_usage_report

logger = logging.getLogger(__name__)


class UsageRepository(ABC):
    """Source of daily usage reports."""

    @abstractmethod
    def fetch(self) -> UsageReport:
        """Return the full usage report.

        Raises:
            UsageDataError: If the data cannot be fetched or parsed
        """


class StaticRepository(UsageRepository):
    """Repository over an in-memory report (demo data, tests)."""

    def __init__(self, report: UsageReport):
        self.report = report

    def fetch(self) -> UsageReport:
        return self.report


class JsonFileRepository(UsageRepository):
    """Reads a saved ``ccusage daily --json`` output file."""

    def __init__(self, path: str):
        """Initialize the repository with a file path.

        Args:
            path: Path to the JSON file
        """
        self.path = Path(path)

    def fetch(self) -> UsageReport:
        logger.debug("Reading usage data from %s", self.path)
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                payload = json.load(f)
        except OSError as e:
            raise UsageDataError(f"Cannot read usage file {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise UsageDataError(f"Invalid JSON in usage file {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise UsageDataError(f"Usage file {self.path} is not valid UTF-8: {e}") from e
        return parse_usage_report(payload)


class CcusageRepository(UsageRepository):
    """Runs ``ccusage daily --json`` and parses its output.

    When no command is configured, ``ccusage`` is used if it is on the
    PATH; otherwise a global npm install is attempted, and ``npx ccusage``
    is the last resort.
    """

    def __init__(self, command: Optional[str] = None, timeout: float = 120.0):
        self.command = command
        self.timeout = timeout

    def resolve_command(self) -> List[str]:
        """Work out how to invoke ccusage."""
        if self.command:
            return shlex.split(self.command)

        try:
            subprocess.run(
                ["ccusage", "--version"],
                capture_output=True,
                check=True,
                timeout=self.timeout,
            )
            return ["ccusage"]
        except (OSError, subprocess.SubprocessError):
            logger.info("ccusage not found on PATH, installing it with npm")

        try:
            subprocess.run(
                ["npm", "install", "-g", "ccusage"],
                capture_output=True,
                check=True,
                timeout=self.timeout,
            )
            return ["ccusage"]
        except (OSError, subprocess.SubprocessError):
            logger.warning("Global ccusage install failed, falling back to npx")
            return ["npx", "ccusage"]

    def fetch(self) -> UsageReport:
        command = self.resolve_command() + ["daily", "--json"]
        logger.debug("Running %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            raise UsageDataError(
                f"ccusage exited with status {e.returncode}: {(e.stderr or '').strip()}"
            ) from e
        except UnicodeDecodeError as e:
            raise UsageDataError(f"ccusage output is not valid UTF-8: {e}") from e
        except (OSError, subprocess.SubprocessError) as e:
            raise UsageDataError(f"Failed to run ccusage: {e}") from e

        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise UsageDataError(f"ccusage returned invalid JSON: {e}") from e
        return parse_usage_report(payload)


def get_repository(
    input_path: Optional[str] = None,
    command: Optional[str] = None,
    timeout: float = 120.0,
) -> UsageRepository:
    """Get the repository for the requested usage source.

    Args:
        input_path: JSON file to read instead of running ccusage
        command: Explicit ccusage command line
        timeout: Seconds to wait for ccusage

    Returns:
        A UsageRepository instance
    """
    if input_path:
        return JsonFileRepository(input_path)
    return CcusageRepository(command=command, timeout=timeout)
