"""
Persists session cookies as a JSON file readable only by the owner.
"""

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from epub_downloader.exceptions import (
    ErrorCode,
    StorageError,
    invalid_cookies,
    make,
    wrap,
)
from epub_downloader.models.cookie import SessionCookie

log = logging.getLogger(__name__)

# TODO: Store cookies in the OS keyring instead of a 0600 file.
FILE_MODE = 0o600


def parse_cookies(json_text: str) -> list[SessionCookie]:
    """
    Parses a browser cookie export.

    Records without a name or value are skipped. Any other malformed record
    rejects the whole import.

    Raises:
        AuthenticationError: If the text is not a JSON array or no usable
        cookies remain after filtering.
    """
    try:
        records = json.loads(json_text)
    except (json.JSONDecodeError, TypeError) as e:
        raise wrap(
            e,
            ErrorCode.INVALID_COOKIES,
            "invalid JSON format",
            invalid_cookies().user_message,
        ) from e

    if not isinstance(records, list):
        raise invalid_cookies(
            f"expected a JSON array of cookies, got {type(records).__name__}"
        )

    cookies = []
    for record in records:
        if not isinstance(record, dict):
            log.debug(f"Skipping non-object cookie record: {record!r}")
            continue
        if not record.get("name") or not record.get("value"):
            log.debug(f"Skipping cookie without name or value: {record.get('name')!r}")
            continue
        try:
            cookies.append(SessionCookie.model_validate(record))
        except ValidationError as e:
            raise wrap(
                e,
                ErrorCode.INVALID_COOKIES,
                f"invalid cookie record '{record['name']}'",
                invalid_cookies().user_message,
            ) from e

    if not cookies:
        raise invalid_cookies("no usable cookies found in JSON")
    return cookies


class CookieStore:
    """Handles saving, loading, and deleting the persisted cookie file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, cookies: Iterable[SessionCookie]) -> None:
        """
        Writes the cookies as pretty-printed JSON with 0600 permissions.

        The file is written next to its destination and renamed into place.

        Raises:
            AppValidationError: If there are no cookies to save.
            StorageError: If the file cannot be written.
        """
        records: list[dict[str, Any]] = [c.to_wire() for c in cookies]
        if not records:
            raise make(ErrorCode.INVALID_INPUT, "no cookies to save")

        data = json.dumps(records, indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise wrap(
                e,
                ErrorCode.FILE,
                f"failed to create cookies file in {self.path.parent}",
            ) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise wrap(
                e, ErrorCode.FILE, f"failed to write cookies file {self.path}"
            ) from e

        log.debug(f"Saved {len(records)} cookies to {self.path}")

    def load(self) -> list[SessionCookie]:
        """
        Reads and parses the cookie file.

        Raises:
            StorageError: If the file is absent or unreadable.
            AuthenticationError: If its contents are not usable cookies.
        """
        if not self.path.is_file():
            raise StorageError(
                ErrorCode.FILE,
                f"cookies file not found: {self.path}",
                "No saved session was found. Please enter your cookies.",
            )

        try:
            data = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise wrap(
                e, ErrorCode.FILE, f"failed to read cookies file {self.path}"
            ) from e
        except UnicodeDecodeError as e:
            raise wrap(
                e,
                ErrorCode.INVALID_COOKIES,
                f"cookies file {self.path} is not valid UTF-8",
                invalid_cookies().user_message,
                retryable=False,
            ) from e

        return parse_cookies(data)

    def exists(self) -> bool:
        return self.path.is_file()

    def delete(self) -> None:
        """Removes the cookie file. Deleting a missing file is a no-op."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise wrap(
                e, ErrorCode.FILE, f"failed to delete cookies file {self.path}"
            ) from e
        log.debug(f"Deleted cookies file {self.path}")
