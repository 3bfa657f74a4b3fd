"""Payment screenshot selection and the checks made before any upload."""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from quickfix.core.formatting import format_bytes

MAX_SCREENSHOT_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ScreenshotFile:
    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "ScreenshotFile":
        p = Path(path)
        guessed = content_type or mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        return cls(filename=p.name, content=p.read_bytes(), content_type=guessed)


def validate_screenshot(file: Optional[ScreenshotFile], max_bytes: int = MAX_SCREENSHOT_BYTES) -> Optional[str]:
    if file is None:
        return "Please select a screenshot file to upload."
    if not file.content_type.lower().startswith("image/"):
        return "Only image files can be uploaded as payment screenshots."
    if file.size > max_bytes:
        return f"Screenshot must be {format_bytes(max_bytes)} or smaller."
    return None
