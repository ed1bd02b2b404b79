"""
Upload validator for spreadsheet exports.

Validates file size and extension before a file is parsed.
"""

from pathlib import PurePath
from typing import Union

from .constants import ALLOWED_EXTENSIONS, MAX_UPLOAD_SIZE


class UploadValidator:
    """Validate uploaded spreadsheet files"""

    MAX_FILE_SIZE = MAX_UPLOAD_SIZE

    def validate_size(self, content: Union[str, bytes]) -> None:
        """Ensure file is under size limit"""
        if isinstance(content, str):
            content = content.encode('utf-8')
        size = len(content)
        if size > self.MAX_FILE_SIZE:
            raise ValueError(f"Upload exceeds 10MB limit ({size / 1024 / 1024:.1f}MB)")

    def validate_extension(self, filename: str) -> bool:
        """Only accept spreadsheet exports"""
        return PurePath(filename.lower()).suffix in ALLOWED_EXTENSIONS

    def validate(self, filename: str, content: Union[str, bytes]) -> None:
        """Run every check, raising ValueError on the first failure"""
        if not self.validate_extension(filename):
            raise ValueError(
                f"Unsupported file type '{filename}'. "
                f"Allowed: {', '.join(ALLOWED_EXTENSIONS)}"
            )
        self.validate_size(content)
