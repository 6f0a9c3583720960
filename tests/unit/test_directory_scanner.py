# tests/unit/test_directory_scanner.py
"""Directory walk, eligibility filter and concurrent reads."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path

import pytest

from context_collector.domain.exceptions import RootUnavailableError
from context_collector.services.directory_scanner import (
    DirectoryScanner,
    has_client_directive,
    is_eligible,
)
from context_collector.services.ignore_resolver import IgnoreResolver


def _scanner(project: Path, home: Path, **kwargs) -> DirectoryScanner:
    return DirectoryScanner(project, IgnoreResolver(project, home=home), **kwargs)


def _paths(scanner: DirectoryScanner) -> list[str]:
    return [f.record.path for f in asyncio.run(scanner.scan())]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("page.tsx", True),
        ("schema.prisma", True),
        ("globals.css", True),
        ("README.md", True),
        ("Dockerfile", True),
        ("turbo.json", True),
        (".env.example", True),
        ("main.py", False),
        ("logo.png", False),
        ("Makefile", False),
    ],
)
def test_eligibility(name, expected):
    assert is_eligible(name) is expected


def test_has_client_directive():
    assert has_client_directive("'use client'\nexport default 1")
    assert has_client_directive('"use client";\n')
    assert not has_client_directive("export const useClient = 1")


def test_scan_returns_eligible_files_sorted(project, write, empty_home):
    write("src/b.ts", "export const b = 1;\n")
    write("src/a.ts", "export const a = 1;\n")
    write("app/page.tsx", "export default function Page() {}\n")
    write("tools/run.py", "print(1)\n")
    write("Dockerfile", "FROM node:20\n")

    assert _paths(_scanner(project, empty_home)) == [
        "Dockerfile",
        "app/page.tsx",
        "src/a.ts",
        "src/b.ts",
    ]


def test_ignored_directories_are_never_entered(project, write, empty_home, monkeypatch):
    write("node_modules/react/index.js", "module.exports = {};\n")
    write("src/index.ts", "export {};\n")
    scanner = _scanner(project, empty_home)

    listed: list[Path] = []
    original = scanner._list_dir

    def _spy(path, **kwargs):
        listed.append(Path(path))
        return original(path, **kwargs)

    monkeypatch.setattr(scanner, "_list_dir", _spy)
    paths = _paths(scanner)

    assert paths == ["src/index.ts"]
    assert project / "node_modules" not in listed, "ignored directory must not be listed"


def test_ignored_files_are_skipped(project, write, empty_home):
    write(".gitignore", "*.generated.ts\n")
    write("src/api.generated.ts", "export {};\n")
    write("src/api.ts", "export {};\n")
    write(".env", "SECRET=1\n")
    write(".env.example", "SECRET=\n")

    assert _paths(_scanner(project, empty_home)) == [".env.example", "src/api.ts"]


def test_record_fields_and_stamp(project, write, empty_home):
    path = write("src/button.tsx", "'use client'\nexport function Button() {}\n")
    [item] = asyncio.run(_scanner(project, empty_home).scan())
    st = path.stat()

    assert item.record.path == "src/button.tsx"
    assert item.record.size == st.st_size
    assert item.record.is_client_component
    assert item.record.content.startswith("'use client'")
    assert item.stamp.mtime_ns == st.st_mtime_ns
    assert item.stamp.size == st.st_size
    assert item.record.last_modified.tzinfo is not None


def test_undecodable_file_is_skipped_with_warning(project, write, empty_home, caplog):
    write("src/ok.ts", "export {};\n")
    write("src/binary.ts", b"\x00\xff\xfe\x80")

    with caplog.at_level(logging.WARNING, logger="context_collector.services.directory_scanner"):
        paths = _paths(_scanner(project, empty_home))

    assert paths == ["src/ok.ts"]
    assert any("src/binary.ts" in r.getMessage() for r in caplog.records)


def test_unreadable_file_is_skipped_with_warning(project, write, empty_home, caplog, monkeypatch):
    write("src/ok.ts", "export {};\n")
    write("src/locked.ts", "export const secret = 1;\n")
    original = Path.read_bytes

    def read_bytes(self):
        if self.name == "locked.ts":
            raise PermissionError(13, "Permission denied", str(self))
        return original(self)

    monkeypatch.setattr(Path, "read_bytes", read_bytes)

    with caplog.at_level(logging.WARNING, logger="context_collector.services.directory_scanner"):
        paths = _paths(_scanner(project, empty_home))

    assert paths == ["src/ok.ts"], "the unreadable file should be dropped, the rest kept"
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("src/locked.ts" in r.getMessage() for r in warnings)


def test_unreadable_directory_is_skipped_with_warning(project, write, empty_home, caplog, monkeypatch):
    write("src/ok.ts", "export {};\n")
    write("secret/inner.ts", "export {};\n")
    write("secret/deeper/more.ts", "export {};\n")
    original = os.scandir

    def scandir(path="."):
        if Path(path).name == "secret":
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return original(path)

    monkeypatch.setattr(os, "scandir", scandir)

    with caplog.at_level(logging.WARNING, logger="context_collector.services.directory_scanner"):
        paths = _paths(_scanner(project, empty_home))

    assert paths == ["src/ok.ts"], "nothing under the unreadable directory should be returned"
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("secret" in r.getMessage() and "unreadable directory" in r.getMessage() for r in warnings)


def test_empty_root_scans_to_nothing(project, empty_home):
    assert _paths(_scanner(project, empty_home)) == []


def test_missing_root_raises(project, empty_home):
    scanner = _scanner(project, empty_home)
    shutil.rmtree(project)

    with pytest.raises(RootUnavailableError):
        asyncio.run(scanner.scan())


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlink_escaping_root_is_skipped(project, write, empty_home, tmp_path):
    outside = tmp_path / "outside.ts"
    outside.write_text("export const leaked = true;\n", encoding="utf-8")
    write("src/inside.ts", "export {};\n")
    try:
        (project / "src" / "leak.ts").symlink_to(outside)
    except OSError:
        pytest.skip("cannot create symlinks here")

    assert _paths(_scanner(project, empty_home)) == ["src/inside.ts"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinked_directories_are_not_followed(project, write, empty_home):
    write("src/real/a.ts", "export {};\n")
    try:
        (project / "src" / "alias").symlink_to(project / "src" / "real", target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks here")

    assert _paths(_scanner(project, empty_home)) == ["src/real/a.ts"]


def test_concurrency_bound_does_not_change_result(project, write, empty_home):
    for i in range(25):
        write(f"src/module_{i:02d}.ts", f"export const v{i} = {i};\n")

    serial = _paths(_scanner(project, empty_home, max_concurrency=1))
    wide = _paths(_scanner(project, empty_home, max_concurrency=64))

    assert serial == wide
    assert len(serial) == 25
