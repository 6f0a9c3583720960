"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import hashlib
import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from context_collector.domain.exceptions import InvalidBudgetError, RootUnavailableError


@dataclass(frozen=True, slots=True)
class ProjectRoot:
    """Validated, absolute project root directory."""

    path: Path

    @classmethod
    def from_string(cls, raw: str | os.PathLike[str]) -> ProjectRoot:
        """Resolve *raw* and make sure it is a readable directory."""
        text = os.fspath(raw).strip()
        if not text:
            raise RootUnavailableError("Project root must not be empty.")
        path = Path(text).expanduser().resolve()
        if not path.is_dir():
            raise RootUnavailableError(f"Project root '{path}' is not a directory.")
        if not os.access(path, os.R_OK | os.X_OK):
            raise RootUnavailableError(f"Project root '{path}' is not readable.")
        return cls(path=path)

    def __str__(self) -> str:
        return str(self.path)


# ── Budget configuration ────────────────────────────────────────────────────

_PRESETS: dict[str, dict[str, object]] = {
    "maximum": {
        "max_total_files": 20,
        "max_tokens_per_file": 1000,
        "priority_threshold": 7,
        "exclude_technologies": ("prisma", "zenstack", "drizzle", "mongodb", "aws-sdk"),
        "exclude_file_types": (".test.ts", ".spec.js", ".stories.ts"),
        "exclude_large_files": True,
        "summarize_content": True,
        "remove_comments": True,
        "remove_empty_lines": True,
    },
    "balanced": {
        "max_total_files": 50,
        "max_tokens_per_file": 2000,
        "priority_threshold": 5,
        "exclude_technologies": ("aws-sdk", "mongodb"),
        "exclude_large_files": True,
        "remove_empty_lines": True,
    },
    "light": {
        "max_total_files": 100,
        "exclude_file_types": (".test.ts", ".spec.js"),
        "remove_empty_lines": True,
    },
    "none": {},
}


@dataclass(frozen=True, slots=True)
class BudgetConfig:
    """Caller-supplied selection budget.

    Every limit is optional.  Invalid values are rejected here, at
    construction time, so the optimizer never has to clamp anything.

    Parameters
    ----------
    max_total_files:
        Keep at most this many files (greedy, highest priority first).
    max_tokens_per_file:
        Truncate any file whose token estimate exceeds this value.
    priority_threshold:
        Drop files whose priority is below this value (0–100).
    exclude_technologies:
        Technology tags such as ``"prisma"`` or ``"aws-sdk"``.
    exclude_file_types:
        Path suffixes such as ``".test.ts"``.
    exclude_directories:
        Directory names; ``"a/b"`` matches the contiguous segments ``a``, ``b``.
    """

    max_total_files: int | None = None
    max_tokens_per_file: int | None = None
    priority_threshold: int | None = None
    exclude_technologies: tuple[str, ...] = ()
    exclude_file_types: tuple[str, ...] = ()
    exclude_directories: tuple[str, ...] = ()
    exclude_large_files: bool = False
    summarize_content: bool = False
    remove_comments: bool = False
    remove_empty_lines: bool = False

    def __post_init__(self) -> None:
        for name in ("max_total_files", "max_tokens_per_file"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidBudgetError(f"{name} must be a positive integer, got {value!r}.")

        threshold = self.priority_threshold
        if threshold is not None:
            if isinstance(threshold, bool) or not isinstance(threshold, int):
                raise InvalidBudgetError(
                    f"priority_threshold must be an integer, got {threshold!r}."
                )
            if not 0 <= threshold <= 100:
                raise InvalidBudgetError(
                    f"priority_threshold must be between 0 and 100, got {threshold}."
                )

        for name in ("exclude_technologies", "exclude_file_types", "exclude_directories"):
            values = getattr(self, name)
            if isinstance(values, str):
                raise InvalidBudgetError(f"{name} must be a sequence of strings, not a string.")
            cleaned = tuple(v.strip() for v in values)
            if any(not v for v in cleaned):
                raise InvalidBudgetError(f"{name} must not contain blank entries.")
            object.__setattr__(self, name, cleaned)

    @classmethod
    def preset(cls, name: str) -> BudgetConfig:
        """Return one of the named presets: maximum, balanced, light, none."""
        try:
            values = _PRESETS[name.strip().lower()]
        except KeyError:
            raise InvalidBudgetError(
                f"Unknown budget preset '{name}'. Expected one of: {', '.join(_PRESETS)}."
            ) from None
        return cls(**values)  # type: ignore[arg-type]

    def fingerprint(self) -> str:
        raw = json.dumps(asdict(self), sort_keys=True).encode("utf-8")
        return hashlib.sha256(raw).hexdigest()[:16]
