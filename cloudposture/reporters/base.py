"""
Base Reporter Module
====================

Common interface for the file-format reporters. A reporter turns a
:class:`~cloudposture.core.models.ScanResult` into a string and can
optionally write that string to a file.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from cloudposture.core.exceptions import ReportError
from cloudposture.core.models import ScanResult

# Module logger
logger = logging.getLogger(__name__)


class BaseReporter(ABC):
    """
    Abstract base class for report renderers.

    Parameters
    ----------
    output_path : str or Path, optional
        Default file to write when :meth:`render` is given no path.
    include_compliance : bool, default=True
        Whether the report shows its compliance section. Only the HTML
        report has one; data formats always carry ``compliance_status``.

    Notes
    -----
    Rendering never modifies the scan result, so one result can be
    rendered in several formats.
    """

    format_name: str = ""
    extension: str = ""

    def __init__(
        self,
        output_path: Optional[Union[str, Path]] = None,
        include_compliance: bool = True,
    ) -> None:
        self.output_path = output_path
        self.include_compliance = include_compliance
        logger.debug(f"Initialized {self.__class__.__name__} (output_path={output_path})")

    @abstractmethod
    def to_string(self, result: ScanResult) -> str:
        """Render the scan result."""
        pass

    def write(self, content: str, output_path: Union[str, Path]) -> str:
        """
        Write rendered content to a file.

        Raises
        ------
        ReportError
            If the file cannot be written.
        """
        path = Path(output_path)
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise ReportError(
                f"Failed to write {self.format_name} report: {e}",
                details={"path": str(path)},
            ) from e
        logger.info(f"{self.format_name.upper()} report written to {path}")
        return str(path)

    def render(
        self,
        result: ScanResult,
        output_path: Optional[Union[str, Path]] = None,
    ) -> str:
        """
        Render the result and write it if a path is known.

        Returns
        -------
        str
            The rendered report.
        """
        content = self.to_string(result)
        target = output_path or self.output_path
        if target:
            self.write(content, target)
        return content

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(output_path={self.output_path!r})"
