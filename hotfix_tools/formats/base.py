"""Base classes for format parsers."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from hotfix_tools.core.utils import atomic_write_bytes

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)


class FormatParser(ABC, Generic[T]):
    """Base class for format parsers."""

    @abstractmethod
    def parse(self, data: bytes | BinaryIO) -> T:
        """Parse serialized data.

        Args:
            data: Raw bytes or stream

        Returns:
            Parsed format object
        """
        ...

    def parse_file(self, path: str | Path) -> T:
        """Parse format from file.

        Args:
            path: File path

        Returns:
            Parsed format object
        """
        try:
            with open(path, "rb") as f:
                return self.parse(f)
        except OSError as e:
            logger.error("Failed to read file", path=str(path), error=str(e))
            raise ValueError(f"Cannot read file {path}: {e}") from e

    @abstractmethod
    def build(self, obj: T) -> bytes:
        """Serialize an object.

        Args:
            obj: Format object

        Returns:
            Serialized bytes
        """
        ...

    def validate(self, data: bytes) -> tuple[bool, str]:
        """Validate format data.

        Args:
            data: Serialized data to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            obj = self.parse(data)
            if self.parse(self.build(obj)) != obj:
                return False, "Round-trip validation failed"
            return True, "Valid"
        except ValueError as e:
            return False, str(e)

    def build_file(self, obj: T, path: str | Path) -> None:
        """Serialize to a file atomically.

        Args:
            obj: Format object
            path: Output file path
        """
        try:
            atomic_write_bytes(Path(path), self.build(obj))
        except OSError as e:
            logger.error("Failed to write file", path=str(path), error=str(e))
            raise ValueError(f"Cannot write file {path}: {e}") from e


class JsonModelParser(FormatParser[T]):
    """Parser for JSON documents backed by a pydantic model.

    Documents are written with camelCase keys and two-space indentation.
    Both camelCase and snake_case keys are accepted on input.
    """

    model: type[T]

    def parse(self, data: bytes | BinaryIO) -> T:
        """Parse a JSON document.

        Raises:
            ValueError: If the data is not valid JSON or fails validation
        """
        raw = data if isinstance(data, bytes) else data.read()
        try:
            return self.model.model_validate(json.loads(raw))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValueError(f"Invalid JSON for {self.model.__name__}: {e}") from e
        except ValidationError as e:
            raise ValueError(f"Invalid {self.model.__name__}: {e}") from e

    def parse_text(self, text: str) -> T:
        return self.parse(text.encode("utf-8"))

    def build(self, obj: T) -> bytes:
        return self.build_text(obj).encode("utf-8")

    def build_text(self, obj: T) -> str:
        return json.dumps(obj.model_dump(mode="json", by_alias=True), indent=2) + "\n"
