# tests/unit/test_ignore_resolver.py
"""Ignore resolution: built-ins, project files, global file, caller patterns."""

from __future__ import annotations

import logging
from pathlib import Path

from context_collector.services.ignore_resolver import (
    BUILTIN_PATTERNS,
    IgnoreResolver,
    parse_patterns,
)


def _resolver(project: Path, home: Path, **kwargs) -> IgnoreResolver:
    return IgnoreResolver(project, home=home, **kwargs)


def test_parse_patterns_skips_blanks_and_comments():
    text = "# comment\n\nnode_modules/\n   \n  *.log  \n#another\n!keep.log\n"
    assert parse_patterns(text) == ["node_modules/", "*.log", "!keep.log"]


def test_builtin_patterns_cover_dependencies_and_build_output(project, empty_home):
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("node_modules", is_dir=True)
    assert resolver.is_ignored("packages/web/node_modules", is_dir=True)
    assert resolver.is_ignored(".next", is_dir=True)
    assert resolver.is_ignored("dist", is_dir=True)
    assert resolver.is_ignored(".git", is_dir=True)
    assert not resolver.is_ignored("src", is_dir=True)


def test_builtin_patterns_cover_lockfiles_media_and_secrets(project, empty_home):
    resolver = _resolver(project, empty_home)

    for path in ("pnpm-lock.yaml", "yarn.lock", "public/logo.png", "fonts/a.woff2", "certs/server.pem"):
        assert resolver.is_ignored(path), f"{path} should be ignored by the built-in set"
    assert resolver.is_ignored(".env")
    assert resolver.is_ignored(".env.local")
    assert not resolver.is_ignored(".env.example")
    assert not resolver.is_ignored("src/app/page.tsx")


def test_builtin_set_ignores_the_ignore_files_themselves(project, empty_home):
    resolver = _resolver(project, empty_home)
    assert ".gitignore" in BUILTIN_PATTERNS
    assert resolver.is_ignored(".gitignore")
    assert resolver.is_ignored(".cursorignore")


def test_gitignore_patterns_apply(project, write, empty_home):
    write(".gitignore", "generated/\n*.local.ts\n")
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("generated", is_dir=True)
    assert resolver.is_ignored("src/generated/types.ts")
    assert resolver.is_ignored("src/config.local.ts")
    assert not resolver.is_ignored("src/config.ts")
    assert resolver.describe().has_gitignore


def test_convention_files_are_merged(project, write, empty_home):
    write(".cursorignore", "fixtures/\n")
    write(".aiignore", "*.snap\n")
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("fixtures", is_dir=True)
    assert resolver.is_ignored("src/__snapshots__/a.snap")
    assert resolver.describe().convention_files == (".cursorignore", ".aiignore")


def test_missing_files_are_not_sources(project, empty_home):
    stats = _resolver(project, empty_home).describe()

    assert stats.sources == ("builtin",)
    assert not stats.has_gitignore
    assert stats.global_ignore_file is None
    assert stats.convention_files == ()


def test_global_ignore_file_is_read_from_home(project, empty_home):
    (empty_home / ".gitignore_global").write_text("*.secret\n", encoding="utf-8")
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("config/keys.secret")
    assert resolver.describe().global_ignore_file == str(empty_home / ".gitignore_global")


def test_only_first_global_file_is_used(project, empty_home):
    (empty_home / ".gitignore_global").write_text("*.first\n", encoding="utf-8")
    xdg = empty_home / ".config" / "git"
    xdg.mkdir(parents=True)
    (xdg / "ignore").write_text("*.second\n", encoding="utf-8")
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("a.first")
    assert not resolver.is_ignored("a.second")


def test_additional_patterns_apply_last(project, empty_home):
    resolver = _resolver(project, empty_home, additional_patterns=["legacy/", "  ", "*.draft.md"])

    assert resolver.is_ignored("legacy", is_dir=True)
    assert resolver.is_ignored("docs/intro.draft.md")
    assert resolver.describe().sources[-1] == "additional"


def test_negation_cannot_reinclude_across_sources(project, write, empty_home):
    write(".gitignore", "*.generated.ts\n")
    write(".cursorignore", "!keep.generated.ts\n")
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("keep.generated.ts")


def test_negation_reincludes_within_its_own_source(project, write, empty_home):
    write(".gitignore", "*.generated.ts\n!keep.generated.ts\n")
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("drop.generated.ts")
    assert not resolver.is_ignored("keep.generated.ts")


def test_undecodable_source_is_skipped_with_warning(project, write, empty_home, caplog):
    write(".gitignore", "generated/\n")
    write(".cursorignore", b"\xff\xfe\xfa bad bytes\n")

    with caplog.at_level(logging.WARNING, logger="context_collector.services.ignore_resolver"):
        resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("generated", is_dir=True), "other sources must still apply"
    assert ".cursorignore" not in resolver.describe().sources
    assert any(".cursorignore" in r.getMessage() for r in caplog.records)


def test_refresh_picks_up_changes_on_disk(project, write, empty_home):
    resolver = _resolver(project, empty_home)
    assert not resolver.is_ignored("tmp", is_dir=True)

    write(".gitignore", "tmp/\n")
    resolver.refresh()

    assert resolver.is_ignored("tmp", is_dir=True)


def test_paths_are_normalised(project, write, empty_home):
    write(".gitignore", "generated/\n")
    resolver = _resolver(project, empty_home)

    assert resolver.is_ignored("src\\generated\\a.ts")
    assert resolver.is_ignored("/generated/", is_dir=True)
    assert not resolver.is_ignored("")


def test_describe_counts_patterns(project, write, empty_home):
    write(".gitignore", "a/\nb/\n# c\n")
    stats = _resolver(project, empty_home).describe()

    assert stats.total_patterns == len(BUILTIN_PATTERNS) + 2
