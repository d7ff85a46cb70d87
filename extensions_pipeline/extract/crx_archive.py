# extensions_pipeline/extract/crx_archive.py
"""
In-memory access to packaged extension archives.

A ``.crx`` file is a zip container with a small signed header in
front of it. :mod:`zipfile` locates the central directory from the end
of the file, so the header does not need to be stripped.

Only text-like members (scripts, JSON and plain text) are of interest
to the loader; everything else in the archive is ignored.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Iterator, List, Tuple

TEXT_SUFFIXES: Tuple[str, ...] = (".js", ".json", ".txt")


def archive_path_for(extensions_directory: Path, extension_id: str) -> Path:
    """Location of the archive of ``extension_id``."""
    return Path(extensions_directory) / f"{extension_id}.crx"


def is_text_member(member_path: str) -> bool:
    return member_path.endswith(TEXT_SUFFIXES)


class CrxArchive:
    """
    Fully decompressed view of one extension archive.

    The whole file is read into memory on construction; members are
    listed in the archive's central-directory order.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._zip = zipfile.ZipFile(io.BytesIO(self.path.read_bytes()))

    def __enter__(self) -> "CrxArchive":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def members(self) -> List[str]:
        """All file members, directories excluded."""
        return [info.filename for info in self._zip.infolist() if not info.is_dir()]

    def text_members(self) -> List[str]:
        return [name for name in self.members() if is_text_member(name)]

    def read_text(self, member_path: str, encoding: str = "utf-8") -> str:
        """
        Decode a member as text.

        Raises
        ------
        UnicodeDecodeError
            If the member is not valid text in ``encoding``.
        """
        return self._zip.read(member_path).decode(encoding)

    def iter_text_files(self) -> Iterator[Tuple[str, str]]:
        """Yield ``(member_path, content)`` for every text member, lazily."""
        for member_path in self.text_members():
            yield member_path, self.read_text(member_path)
