"""
Chapter Map — Shared Base Tool
===============================
Abstract base class for the batch tools in this repository.

Design Pattern:
    Template Method — the public ``run()`` method defines a fixed
    pipeline (validate → process → report) that subclasses fill in by
    implementing ``validate_inputs`` and ``process``.

Usage::

    from shared.python.base_tool import BatchTool

    class MyTool(BatchTool):
        def validate_inputs(self) -> None:
            ...
        def process(self) -> None:
            ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

# ---------------------------------------------------------------------------
# Root logger for the project; tool modules log to children of it such as
#   logging.getLogger("chaptermap.chapter_geocoder").
# ---------------------------------------------------------------------------
logger = logging.getLogger("chaptermap")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s — %(message)s"
LOG_DATEFMT = "%H:%M:%S"


class BatchTool(ABC):
    """Abstract base class for file-in, file-out batch tools.

    Attributes:
        input_path: Path to the primary input file.
        output_path: Path where the primary output will be written.
        verbose: When ``True`` DEBUG messages are logged as well.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        *,
        verbose: bool = False,
    ) -> None:
        self.input_path: Path = Path(input_path)
        self.output_path: Path = Path(output_path)
        self.verbose: bool = verbose

        self._configure_logging()

    # ------------------------------------------------------------------
    # Abstract interface, implemented by subclasses
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_inputs(self) -> None:
        """Validate all inputs before processing begins.

        Raises:
            InputFormatError: If a required file or column is missing.
        """

    @abstractmethod
    def process(self) -> None:
        """Execute the tool's work.

        Called by :meth:`run` only after :meth:`validate_inputs` succeeded.
        """

    # ------------------------------------------------------------------
    # Template method
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Execute the full tool pipeline.

        1. :meth:`validate_inputs` — verify all preconditions.
        2. :meth:`process` — perform the work.
        3. :meth:`_report_success` — log the elapsed time and every path
           returned by :meth:`written_paths`.

        Exceptions from either step propagate unchanged.
        """
        logger.info("Starting %s", self.__class__.__name__)
        start = time.perf_counter()

        self.validate_inputs()
        self.process()

        elapsed = time.perf_counter() - start
        self._report_success(elapsed)

    # ------------------------------------------------------------------
    # Protected helpers
    # ------------------------------------------------------------------

    def written_paths(self) -> list[Path]:
        """Files a successful run leaves behind; the primary output by default."""
        return [self.output_path]

    def _report_success(self, elapsed: float) -> None:
        logger.info("%s completed in %.2fs", self.__class__.__name__, elapsed)
        for path in self.written_paths():
            logger.info("  wrote %s", path)

    def _configure_logging(self) -> None:
        """Attach a console handler to the ``chaptermap`` logger once.

        Uses DEBUG level when ``self.verbose`` is set, otherwise INFO.
        """
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
            logger.addHandler(handler)

        logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"input_path={self.input_path!r}, "
            f"output_path={self.output_path!r})"
        )
