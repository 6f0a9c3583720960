"""Shared fixtures: throwaway project trees on disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest

WriteFn = Callable[..., Path]


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def empty_home(tmp_path: Path) -> Path:
    """A home directory with no global ignore file."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def write(project: Path) -> WriteFn:
    """Write a file under the project root, creating parent directories."""

    def _write(rel: str, content: str | bytes = "") -> Path:
        path = project / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_manifest(write: WriteFn) -> Callable[..., Path]:
    def _write_manifest(dependencies: dict[str, str] | None = None, **extra: object) -> Path:
        data = {"name": "fixture-app", "version": "0.1.0", **extra}
        if dependencies is not None:
            data["dependencies"] = dependencies
        return write("package.json", json.dumps(data, indent=2))

    return _write_manifest


@pytest.fixture
def nextjs_project(project: Path, write: WriteFn, write_manifest) -> Path:
    """A small mixed-router project with a few well-known files."""
    write_manifest(
        {
            "next": "^14.2.3",
            "react": "18.2.0",
            "@prisma/client": "5.10.0",
            "tailwindcss": "^3.4.1",
        }
    )
    write("pnpm-lock.yaml", "lockfileVersion: '6.0'\n")
    write("next.config.js", "module.exports = { reactStrictMode: true };\n")
    write("tsconfig.json", '{ "compilerOptions": { "strict": true } }\n')
    write("prisma/schema.prisma", "model User {\n  id Int @id\n}\n")
    write("app/layout.tsx", "export default function RootLayout() {\n  return null;\n}\n")
    write("app/page.tsx", "export default function Home() {\n  return null;\n}\n")
    write("pages/about.tsx", "export default function About() {\n  return null;\n}\n")
    write(
        "src/components/ui/button.tsx",
        "'use client'\nexport function Button() {\n  return null;\n}\n",
    )
    write("src/lib/utils.ts", "export const cn = (...c: string[]) => c.join(' ');\n")
    write("README.md", "# Fixture\n")
    write("node_modules/react/index.js", "module.exports = {};\n")
    write("scripts/build.py", "print('not collected')\n")
    return project
