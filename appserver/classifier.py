"""Content-type classification of completed blobs."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from appserver.exceptions import ClassifierError

logger = get_logger(__name__)


class ContentClassifier(ABC):
    """Guesses the media type of a stored blob."""

    @abstractmethod
    async def classify(self, blob_path: Path) -> Optional[str]:
        """
        Classify a blob.

        Args:
            blob_path: Path of the completed blob

        Returns:
            Media type such as "image/png", or None when no guess is available
        """


class NullClassifier(ContentClassifier):
    """Never produces a guess; entries keep their declared content type."""

    async def classify(self, blob_path: Path) -> Optional[str]:
        return None


class FileCommandClassifier(ContentClassifier):
    """Runs `file -b --mime-type` on the blob."""

    def __init__(self, command: str = "file", timeout: float = 10.0):
        self.command = command
        self.timeout = timeout

    async def classify(self, blob_path: Path) -> Optional[str]:
        try:
            return await self._run(blob_path)
        except ClassifierError as e:
            logger.warning(f"Content classification failed for {blob_path}: {e}")
            return None

    async def _run(self, blob_path: Path) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.command, "-b", "--mime-type", str(blob_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ClassifierError(f"cannot run {self.command}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise ClassifierError(f"{self.command} timed out after {self.timeout}s")

        if proc.returncode != 0:
            message = stderr.decode(errors='replace').strip()
            raise ClassifierError(f"{self.command} failed: code={proc.returncode}: {message}")

        media_type = stdout.decode(errors='replace').strip()
        if not media_type:
            raise ClassifierError(f"{self.command} produced no output")
        return media_type


def create_classifier(kind: str, timeout: float = 10.0) -> ContentClassifier:
    """
    Build the classifier selected by configuration.

    Args:
        kind: "file" for the `file` command, "none" to disable classification
        timeout: Seconds to wait for the external command
    """
    if kind == "none":
        return NullClassifier()
    if kind == "file":
        return FileCommandClassifier(timeout=timeout)
    raise ValueError(f"Unknown classifier: {kind}")
