"""Message templates: shorthand field references and message formatting.

A template follows the usual brace syntax: ``{}`` takes the next positional
argument, ``{0}`` a positional argument by index, ``{name}`` a named argument,
``{{`` and ``}}`` are literal braces. A spec after a colon is applied with
:func:`format`. A spec that ends in ``?`` asks for the debug form of the value.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping

from .model import DefinitionError, Display, Field

_MAX_INDEX = 2**32 - 1
_INT = re.compile(r"[0-9]+")
_IDENT = re.compile(r"(r#)?([A-Za-z0-9_]*)")
_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")
_IDENT_START = frozenset(string.ascii_letters + "_")


@dataclass(frozen=True)
class _FieldValue:
    """Looks one field up in a mapping of field values keyed by member."""

    member: str | int

    def __call__(self, values: Mapping[Any, Any]) -> Any:
        return values[self.member]


def explicit_named_args(args: Iterable[Any], kwargs: Mapping[str, Any]) -> set[str]:
    """The names given explicitly to a template.

    Positional arguments never name a slot; only keyword arguments do.
    """
    names = set()
    for name in kwargs:
        if not isinstance(name, str) or not _NAME.match(name):
            raise DefinitionError(f"invalid argument name {name!r}", name)
        names.add(name)
    return names


def expand_shorthand(display: Display, fields: Iterable[Field]) -> Display:
    """Turn field references in the template into named arguments.

    ``"error {var}"`` becomes ``"error {var}"`` with ``var`` bound to the
    field, ``{0}`` on a positional field becomes ``{field__0}``. Each added
    argument is a callable that takes a mapping of field values keyed by
    member. Names already given explicitly are left to those arguments.
    A malformed template is returned unchanged.
    """
    named_args = explicit_named_args(display.args, display.kwargs)
    members = {f.member for f in fields}
    read = display.fmt
    out: list[str] = []
    kwargs = dict(display.kwargs)
    has_bonus_display = False

    while (brace := read.find("{")) != -1:
        out.append(read[: brace + 1])
        read = read[brace + 1 :]
        if read.startswith("{"):
            out.append("{")
            read = read[1:]
            continue
        if not read:
            return display
        first = read[0]
        if first in string.digits:
            digits = _INT.match(read).group()
            read = read[len(digits) :]
            index = int(digits)
            if index > _MAX_INDEX:
                return display
            if index not in members:
                out.append(digits)
                continue
            member: str | int = index
            formatvar = f"_{index}"
        elif first in _IDENT_START:
            match = _IDENT.match(read)
            read = read[match.end() :]
            raw, name = match.group(1), match.group(2)
            if not name:
                return display
            member = name
            formatvar = f"r_{name}" if raw else name
        else:
            continue
        if formatvar.startswith("_"):
            formatvar = f"field_{formatvar}"
        out.append(formatvar)
        if formatvar in named_args:
            continue
        named_args.add(formatvar)
        if member not in members:
            raise DefinitionError(
                f"format string refers to {formatvar!r}, which is neither a field "
                "nor a named argument",
                display,
            )
        kwargs[formatvar] = _FieldValue(member)
        if read.startswith("}"):
            has_bonus_display = True

    out.append(read)
    return replace(
        display,
        fmt="".join(out),
        kwargs=kwargs,
        has_bonus_display=has_bonus_display,
    )


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t", "\0": "\\0"}


def _debug_str(text: str) -> str:
    parts = []
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ch.isprintable():
            parts.append(ch)
        else:
            parts.append(f"\\u{{{ord(ch):x}}}")
    return '"' + "".join(parts) + '"'


def _debug(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _debug_str(value)
    if isinstance(value, list):
        return "[" + ", ".join(_debug(item) for item in value) + "]"
    if isinstance(value, tuple):
        return "(" + ", ".join(_debug(item) for item in value) + ")"
    return repr(value)


def _render(value: Any, spec: str) -> str:
    try:
        if spec.endswith("?"):
            spec = spec[:-1].replace("#", "", 1) if spec[:-1].endswith("#") else spec[:-1]
            return format(_debug(value), spec)
        if isinstance(value, bool):
            return format("true" if value else "false", spec)
        return format(value, spec)
    except (TypeError, ValueError) as exc:
        raise DefinitionError(f"cannot format {value!r} with spec {spec!r}: {exc}", value) from exc


def format_message(
    fmt: str, args: Iterable[Any] = (), kwargs: Mapping[str, Any] | None = None
) -> str:
    """Fill a template with already evaluated arguments."""
    args = list(args)
    kwargs = dict(kwargs or {})
    pieces: list[str] = []
    implicit = 0
    pos = 0
    while pos < len(fmt):
        ch = fmt[pos]
        if ch == "{":
            if fmt.startswith("{{", pos):
                pieces.append("{")
                pos += 2
                continue
            end = fmt.find("}", pos + 1)
            if end == -1:
                raise DefinitionError("unterminated '{' in format string", fmt)
            name, _, spec = fmt[pos + 1 : end].partition(":")
            if not name:
                index = implicit
                implicit += 1
                value = _positional(args, index)
            elif name.isdigit():
                value = _positional(args, int(name))
            elif _NAME.match(name):
                if name not in kwargs:
                    raise DefinitionError(f"no argument named {name!r}", fmt)
                value = kwargs[name]
            else:
                raise DefinitionError(f"invalid argument reference {name!r}", fmt)
            pieces.append(_render(value, spec))
            pos = end + 1
        elif ch == "}":
            if not fmt.startswith("}}", pos):
                raise DefinitionError("unmatched '}' in format string", fmt)
            pieces.append("}")
            pos += 2
        else:
            nxt = min((i for i in (fmt.find("{", pos), fmt.find("}", pos)) if i != -1), default=len(fmt))
            pieces.append(fmt[pos:nxt])
            pos = nxt
    return "".join(pieces)


def _positional(args: list[Any], index: int) -> Any:
    if index >= len(args):
        raise DefinitionError(
            f"format string refers to positional argument {index}, but only "
            f"{len(args)} were given",
            index,
        )
    return args[index]