"""Terminal message helpers.

Each helper writes one styled line to stderr, so stdout stays clean for
output that may be piped. Emoji glyphs fall back to ASCII on terminals whose
encoding cannot represent them.
"""

import click

_GLYPHS = {
    "warn": ("⚠️", "[!]"),
    "success": ("✅", "[OK]"),
    "error": ("❌", "[X]"),
}  # pragma: no mutate


def _supports_character(character: str) -> bool:
    """Return True if ``character`` can be encoded on stderr."""
    encoding = getattr(click.get_text_stream("stderr"), "encoding", None) or "ascii"
    try:
        character.encode(encoding)
    except UnicodeEncodeError:
        return False
    return True


def glyph(kind: str) -> str:
    """Marker for ``kind`` ("warn", "success" or "error"), emoji when possible."""
    emoji, fallback = _GLYPHS[kind]
    return emoji if _supports_character(emoji) else fallback


def warn(msg: str) -> None:
    """Emit a yellow, bold warning line to stderr."""
    click.secho(f"{glyph('warn')}  {msg}", fg="yellow", bold=True, err=True)


def success(msg: str) -> None:
    """Emit a green, bold success line to stderr."""
    click.secho(f"{glyph('success')}  {msg}", fg="green", bold=True, err=True)


def error(msg: str) -> None:
    """Emit a red, bold error line to stderr."""
    click.secho(f"{glyph('error')}  {msg}", fg="red", bold=True, err=True)
