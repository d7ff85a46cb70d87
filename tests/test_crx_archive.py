"""
Tests for in-memory archive access (extensions_pipeline/extract/crx_archive.py).
"""
from __future__ import annotations

import zipfile

import pytest

from extensions_pipeline.extract.crx_archive import CrxArchive, archive_path_for, is_text_member


def test_archive_path_for(tmp_path):
    assert archive_path_for(tmp_path, "abc") == tmp_path / "abc.crx"


@pytest.mark.parametrize(
    "member, expected",
    [
        ("background.js", True),
        ("manifest.json", True),
        ("_locales/en/notes.txt", True),
        ("icon.png", False),
        ("tool.exe", False),
        ("script.JS", False),
        ("archive.json.gz", False),
    ],
)
def test_is_text_member(member, expected):
    assert is_text_member(member) is expected


def test_text_members_keep_archive_order(tmp_path, make_crx):
    path = make_crx(
        tmp_path,
        "abc",
        {
            "a.js": b"console.log(1);",
            "b.png": b"\x89PNG",
            "c.json": b"{}",
            "d.txt": b"hello",
            "e.exe": b"MZ",
        },
    )

    with CrxArchive(path) as archive:
        assert archive.text_members() == ["a.js", "c.json", "d.txt"]
        assert list(archive.iter_text_files()) == [
            ("a.js", "console.log(1);"),
            ("c.json", "{}"),
            ("d.txt", "hello"),
        ]


def test_plain_zip_without_crx_header(tmp_path, make_crx):
    path = make_crx(tmp_path, "abc", {"js/main.js": b"x"}, header=False)

    with CrxArchive(path) as archive:
        assert archive.members() == ["js/main.js"]


def test_directories_are_not_members(tmp_path, make_crx):
    path = make_crx(tmp_path, "abc", {"js/": b"", "js/main.js": b"x"})

    with CrxArchive(path) as archive:
        assert archive.members() == ["js/main.js"]


def test_non_text_content_fails_to_decode(tmp_path, make_crx):
    path = make_crx(tmp_path, "abc", {"bad.js": b"\xff\xfe\x00"})

    with CrxArchive(path) as archive:
        with pytest.raises(UnicodeDecodeError):
            archive.read_text("bad.js")


def test_corrupt_archive(tmp_path):
    path = tmp_path / "abc.crx"
    path.write_bytes(b"Cr24 not a zip")

    with pytest.raises(zipfile.BadZipFile):
        CrxArchive(path)
