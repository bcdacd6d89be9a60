"""Description of an error type: its attributes, fields and variants."""

from __future__ import annotations

import enum
import typing
from dataclasses import dataclass, field
from typing import Any, Iterable


class DefinitionError(Exception):
    """An error type was declared in a way that cannot be derived."""

    def __init__(self, message: str, target: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.target = target

    def __str__(self) -> str:
        return self.message


class Marker(enum.Enum):
    """Bare markers that may be attached to a field."""

    SOURCE = "source"
    BACKTRACE = "backtrace"
    FROM = "from"


@dataclass(frozen=True)
class Display:
    """A message template with its extra positional and keyword arguments."""

    fmt: str
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    has_bonus_display: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.fmt, str):
            raise DefinitionError("expected a format string", self.fmt)
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "kwargs", dict(self.kwargs))


@dataclass(frozen=True)
class Transparent:
    """Forward the message and source straight to the only field."""


@dataclass
class Attrs:
    """The attributes collected from one struct, variant or field."""

    display: Display | None = None
    source: bool = False
    backtrace: bool = False
    from_: bool = False
    transparent: Transparent | None = None

    def span(self) -> Display | Transparent | None:
        """The attribute that locates this item: its display, else its transparent marker."""
        if self.display is not None:
            return self.display
        if self.transparent is not None:
            return self.transparent
        return None


def collect_attrs(items: Iterable[Any]) -> Attrs:
    """Gather attribute items into an Attrs, rejecting duplicates.

    Items that are not a Display, Transparent or Marker are ignored.
    """
    attrs = Attrs()
    for item in items:
        match item:
            case Transparent():
                if attrs.transparent is not None:
                    raise DefinitionError("duplicate error(transparent) attribute", item)
                attrs.transparent = item
            case Display():
                if attrs.display is not None:
                    raise DefinitionError("only one error(...) attribute is allowed", item)
                attrs.display = item
            case Marker.SOURCE:
                if attrs.source:
                    raise DefinitionError("duplicate source marker", item)
                attrs.source = True
            case Marker.BACKTRACE:
                if attrs.backtrace:
                    raise DefinitionError("duplicate backtrace marker", item)
                attrs.backtrace = True
            case Marker.FROM:
                if attrs.from_:
                    raise DefinitionError("duplicate from marker", item)
                attrs.from_ = True
            case _:
                continue
    return attrs


def _type_name(ty: Any) -> tuple[str | None, bool]:
    """The last path segment of a type and whether it carries arguments."""
    if isinstance(ty, str):
        text = ty.strip()
        has_args = "[" in text
        if has_args:
            text = text[: text.index("[")]
        return text.rsplit(".", 1)[-1].strip(), has_args
    origin = typing.get_origin(ty)
    if origin is not None:
        return getattr(origin, "__name__", None), bool(typing.get_args(ty))
    if isinstance(ty, type):
        return ty.__name__, False
    return None, False


@dataclass
class Field:
    """One field: its name or position, its declared type and its attributes."""

    member: str | int
    ty: Any = None
    attrs: Attrs = field(default_factory=Attrs)

    def is_backtrace(self) -> bool:
        """True if the declared type is a plain type named Backtrace."""
        name, has_args = _type_name(self.ty)
        return name == "Backtrace" and not has_args


def _from_field(fields: list[Field]) -> Field | None:
    return next((f for f in fields if f.attrs.from_), None)


def _source_field(fields: list[Field]) -> Field | None:
    marked = next((f for f in fields if f.attrs.from_ or f.attrs.source), None)
    if marked is not None:
        return marked
    return next((f for f in fields if f.member == "source"), None)


def _backtrace_field(fields: list[Field]) -> Field | None:
    marked = next((f for f in fields if f.attrs.backtrace), None)
    if marked is not None:
        return marked
    return next((f for f in fields if f.is_backtrace()), None)


@dataclass
class Variant:
    """One variant of an error enum."""

    name: str
    attrs: Attrs = field(default_factory=Attrs)
    fields: list[Field] = field(default_factory=list)

    def from_field(self) -> Field | None:
        """The field marked as the conversion source, if any."""
        return _from_field(self.fields)

    def source_field(self) -> Field | None:
        """The marked source field, else a field named 'source', if any."""
        return _source_field(self.fields)

    def backtrace_field(self) -> Field | None:
        """The marked backtrace field, else one typed Backtrace, if any."""
        return _backtrace_field(self.fields)


@dataclass
class Struct:
    """An error type with a single shape."""

    name: str
    attrs: Attrs = field(default_factory=Attrs)
    fields: list[Field] = field(default_factory=list)

    def from_field(self) -> Field | None:
        """The field marked as the conversion source, if any."""
        return _from_field(self.fields)

    def source_field(self) -> Field | None:
        """The marked source field, else a field named 'source', if any."""
        return _source_field(self.fields)

    def backtrace_field(self) -> Field | None:
        """The marked backtrace field, else one typed Backtrace, if any."""
        return _backtrace_field(self.fields)


@dataclass
class Enum:
    """An error type made of variants.

    Variants without a message of their own take the enum's message; those
    left with neither a message nor a transparent marker take the enum's
    transparent marker.
    """

    name: str
    attrs: Attrs = field(default_factory=Attrs)
    variants: list[Variant] = field(default_factory=list)

    def __post_init__(self) -> None:
        for item in self.variants:
            if item.attrs.display is None:
                item.attrs.display = self.attrs.display
            if item.attrs.display is None and item.attrs.transparent is None:
                item.attrs.transparent = self.attrs.transparent

    def has_source(self) -> bool:
        """True if any variant has a source field or is transparent."""
        return any(
            v.source_field() is not None or v.attrs.transparent is not None
            for v in self.variants
        )

    def has_backtrace(self) -> bool:
        """True if any variant has a backtrace field."""
        return any(v.backtrace_field() is not None for v in self.variants)

    def has_display(self) -> bool:
        """True if a message can be produced for the enum."""
        return (
            self.attrs.display is not None
            or self.attrs.transparent is not None
            or any(v.attrs.display is not None for v in self.variants)
            or all(v.attrs.transparent is not None for v in self.variants)
        )