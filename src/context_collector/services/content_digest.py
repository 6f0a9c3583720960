"""Structural digest and lightweight content reduction.

The digest keeps import lines and exported-symbol signatures and ends with a
line-count note, so a file keeps its shape at a fraction of its size.
"""

from __future__ import annotations

import re

_SCRIPT_EXTS = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs")
_COMMENT_EXTS = _SCRIPT_EXTS + (".json", ".css", ".scss", ".less")

_IMPORT_RE = re.compile(r"^\s*(?:import\s|import\(|export\s+\*\s+from\s|.*\brequire\()")
_EXPORT_RE = re.compile(
    r"^\s*export\s+(?:default\s+)?"
    r"(?:async\s+)?(?:declare\s+)?(?:abstract\s+)?"
    r"(?:function\*?|class|const|let|var|interface|type|enum)\s+[\w$]+"
)
_EXPORT_LIST_RE = re.compile(r"^\s*export\s+(?:default\s+[\w$]+|\{)")
_SCHEMA_DECL_RE = re.compile(r"^\s*(?:model|enum|type|view|abstract\s+model|datasource|generator)\s+\w+")

_LINE_COMMENT_RE = re.compile(r"(?<![:\"'\\])//.*$", re.MULTILINE)
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_EMPTY_LINE_RE = re.compile(r"^[ \t]*\r?\n", re.MULTILINE)

_MAX_DIGEST_LINES = 60
_FALLBACK_HEAD_LINES = 40


def _signature(line: str) -> str:
    """Trim a declaration line to its signature (drop bodies and initialisers)."""
    text = line.rstrip()
    if text.endswith("{"):
        return text[:-1].rstrip()
    idx = text.find(" = ")
    if idx > 0:
        text = text[:idx]
    return text.rstrip()


def summarize(path: str, content: str) -> str:
    """Return the structural digest of *content*."""
    lines = content.splitlines()
    lower = path.lower()

    if lower.endswith(_SCRIPT_EXTS):
        imports = [ln.rstrip() for ln in lines if _IMPORT_RE.match(ln)]
        exports = [
            _signature(ln) for ln in lines
            if _EXPORT_RE.match(ln) or _EXPORT_LIST_RE.match(ln)
        ]
        body = imports + ([""] if imports and exports else []) + exports
    elif lower.endswith((".prisma", ".zmodel", ".graphql", ".gql")):
        body = [_signature(ln) for ln in lines if _SCHEMA_DECL_RE.match(ln)]
    else:
        body = lines[:_FALLBACK_HEAD_LINES]

    if len(body) > _MAX_DIGEST_LINES:
        body = body[:_MAX_DIGEST_LINES]

    note = f"// ... {len(lines)} lines in original file"
    return "\n".join([*body, note]) if body else note


def remove_empty_lines(content: str) -> str:
    return _EMPTY_LINE_RE.sub("", content)


def remove_comments(path: str, content: str) -> str:
    """Strip ``//`` and ``/* */`` comments from script-like files.

    URLs survive because ``//`` preceded by ``:`` is not treated as a comment.
    """
    if not path.lower().endswith(_COMMENT_EXTS):
        return content
    content = _BLOCK_COMMENT_RE.sub("", content)
    if path.lower().endswith(".css"):
        return content
    return _LINE_COMMENT_RE.sub("", content)
