"""
Scoped temporary audio files.

Voice notes pass through disk on both directions of the audio path. The
file exists only inside the `with` block and is removed on every exit,
including exceptions.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


@contextmanager
def scoped_temp_file(
    data: bytes,
    suffix: str = ".mp3",
    directory: Optional[str] = None,
) -> Iterator[Path]:
    """Write `data` to a temp file and yield its path; delete it afterwards."""
    tmp = tempfile.NamedTemporaryFile(suffix=suffix, dir=directory, delete=False)
    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(data)
        yield tmp_path
    finally:
        if tmp_path.exists():
            os.unlink(tmp_path)
            logger.debug(f"Cleaned up temporary file: {tmp_path}")
