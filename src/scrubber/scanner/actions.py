"""Quick fixes: text edits and setting toggles offered for each finding."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from scrubber.config import (
    ENABLE_COMMENT_SCANNING,
    ENABLE_FILE_PATH_SCANNING,
    ENABLE_SECRET_SCANNING,
    ENABLE_STRICT_SECRET_SCANNING,
)
from scrubber.scanner.models import Finding, FindingKind, Position, Range
from scrubber.scanner.patterns import IGNORE_FILE_MARKER, IGNORE_LINE_MARKER, CommentSyntax

SECRET_PLACEHOLDER = "<secret>"

_COMMENT_TEMPLATES: dict[CommentSyntax, str] = {
    CommentSyntax.LINE_SLASH: "// {}",
    CommentSyntax.BLOCK_C: "/* {} */",
    CommentSyntax.LINE_HASH: "# {}",
    CommentSyntax.BLOCK_HTML: "<!-- {} -->",
}

# File extension → comment syntax used when inserting markers
_SYNTAX_BY_EXTENSION: dict[str, CommentSyntax] = {
    **dict.fromkeys(
        ("ts", "tsx", "js", "jsx", "go", "java", "php", "cs", "cpp", "c", "h", "rs", "json"),
        CommentSyntax.LINE_SLASH,
    ),
    **dict.fromkeys(
        ("py", "rb", "yaml", "yml", "toml"),
        CommentSyntax.LINE_HASH,
    ),
    **dict.fromkeys(("css", "scss", "less"), CommentSyntax.BLOCK_C),
    **dict.fromkeys(("vue", "svelte", "html", "md"), CommentSyntax.BLOCK_HTML),
}

_INDENT = re.compile(r"^\s*")
_SEPARATORS = re.compile(r"[/\\]")
_BARE_DOTFILE = re.compile(r"^\.[^.]+$")


class FixKind(enum.Enum):
    """What a quick fix does."""

    IGNORE_FILE = "ignore-file"
    IGNORE_LINE = "ignore-line"
    DELETE_LINE = "delete-line"
    REPLACE_SECRET = "replace-secret"
    DISABLE_SCANNING = "disable-scanning"
    DISABLE_STRICT_SCANNING = "disable-strict-scanning"


@dataclass(frozen=True)
class TextEdit:
    """Replace the text in *range* with *new_text* (empty range = insert)."""

    range: Range
    new_text: str


@dataclass(frozen=True)
class QuickFix:
    """A fix is either a text edit or a setting to toggle."""

    title: str
    kind: FixKind
    edit: TextEdit | None = None
    setting: str | None = None


def comment_syntax_for(path: str) -> CommentSyntax:
    """Pick the comment syntax for a file, defaulting to ``//``.

    Dotenv files and bare dotfiles (``.npmrc``, ``.gitignore``) use ``#``.
    """
    name = _SEPARATORS.split(path)[-1]
    if name.lower().startswith(".env") or _BARE_DOTFILE.match(name):
        return CommentSyntax.LINE_HASH
    extension = name.rsplit(".", 1)[-1] if "." in name else ""
    return _SYNTAX_BY_EXTENSION.get(extension.lower(), CommentSyntax.LINE_SLASH)


def format_comment(syntax: CommentSyntax, text: str) -> str:
    return _COMMENT_TEMPLATES[syntax].format(text)


def ignore_file_edit(path: str) -> TextEdit:
    marker = format_comment(comment_syntax_for(path), IGNORE_FILE_MARKER)
    return TextEdit(Range.of(0, 0, 0, 0), marker + "\n")


def ignore_line_edit(path: str, content: str, line: int) -> TextEdit:
    """Insert the line-ignore marker above *line*, matching its indentation."""
    lines = content.split("\n")
    text = lines[line] if line < len(lines) else ""
    indent = _INDENT.match(text).group(0)
    marker = format_comment(comment_syntax_for(path), IGNORE_LINE_MARKER)
    return TextEdit(Range.of(line, 0, line, 0), f"{indent}{marker}\n")


def delete_line_edit(line: int) -> TextEdit:
    return TextEdit(Range.of(line, 0, line + 1, 0), "")


def replace_secret_edit(finding: Finding) -> TextEdit:
    return TextEdit(finding.range, SECRET_PLACEHOLDER)


def available_fixes(
    finding: Finding,
    path: str,
    content: str,
    strict_enabled: bool = True,
) -> list[QuickFix]:
    """List the quick fixes offered for a finding."""
    line = finding.range.start.line

    if finding.kind is FindingKind.FILE_PATH_VIOLATION:
        return [
            QuickFix("Ignore file path violation", FixKind.IGNORE_FILE, edit=ignore_file_edit(path)),
            QuickFix(
                "Disable file path scanning",
                FixKind.DISABLE_SCANNING,
                setting=ENABLE_FILE_PATH_SCANNING,
            ),
        ]

    ignore_fixes = [
        QuickFix("Ignore this line", FixKind.IGNORE_LINE, edit=ignore_line_edit(path, content, line)),
        QuickFix("Ignore entire file", FixKind.IGNORE_FILE, edit=ignore_file_edit(path)),
    ]

    if finding.kind is FindingKind.SECRET_DETECTED:
        fixes = ignore_fixes + [
            QuickFix(
                "Replace secret with placeholder",
                FixKind.REPLACE_SECRET,
                edit=replace_secret_edit(finding),
            ),
        ]
        if strict_enabled:
            fixes.append(
                QuickFix(
                    "Disable strict secret scanning",
                    FixKind.DISABLE_STRICT_SCANNING,
                    setting=ENABLE_STRICT_SECRET_SCANNING,
                )
            )
        fixes.append(
            QuickFix("Disable secret scanning", FixKind.DISABLE_SCANNING, setting=ENABLE_SECRET_SCANNING)
        )
        return fixes

    if finding.kind is FindingKind.COMMENT_HINT:
        return ignore_fixes + [
            QuickFix("Delete this comment", FixKind.DELETE_LINE, edit=delete_line_edit(line)),
            QuickFix("Disable comment scanning", FixKind.DISABLE_SCANNING, setting=ENABLE_COMMENT_SCANNING),
        ]

    raise ValueError(f"Unhandled finding kind: {finding.kind}")


def _offset(lines: list[str], position: Position) -> int:
    if position.line >= len(lines):
        return sum(len(line) + 1 for line in lines) - 1
    before = sum(len(line) + 1 for line in lines[: position.line])
    return before + min(position.column, len(lines[position.line]))


def apply_edit(content: str, edit: TextEdit) -> str:
    """Return *content* with *edit* applied; nothing outside the range changes."""
    lines = content.split("\n")
    start = _offset(lines, edit.range.start)
    end = _offset(lines, edit.range.end)
    return content[:start] + edit.new_text + content[end:]
