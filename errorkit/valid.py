"""Checks that an error type description can be derived."""

from __future__ import annotations

from typing import Iterable

from .model import Attrs, DefinitionError, Enum, Field, Struct, Variant


def validate(node: Struct | Enum) -> None:
    """Raise DefinitionError if the description cannot be derived."""
    match node:
        case Struct():
            _validate_struct(node)
        case Enum():
            _validate_enum(node)
        case _:
            raise DefinitionError("only structs and enums can be error types", node)


def _validate_struct(node: Struct) -> None:
    check_non_field_attrs(node.attrs)
    if node.attrs.transparent is not None:
        if len(node.fields) != 1:
            raise DefinitionError(
                "error(transparent) requires exactly one field", node.attrs.transparent
            )
        marked = next((f for f in node.fields if f.attrs.source), None)
        if marked is not None:
            raise DefinitionError("transparent error struct can't contain a source marker", marked)
    check_field_attrs(node.fields)
    _check_fields_have_no_display(node.fields)


def _validate_variant(node: Variant) -> None:
    check_non_field_attrs(node.attrs)
    if node.attrs.transparent is not None:
        if len(node.fields) != 1:
            raise DefinitionError("error(transparent) requires exactly one field", node)
        marked = next((f for f in node.fields if f.attrs.source), None)
        if marked is not None:
            raise DefinitionError("transparent variant can't contain a source marker", marked)
    check_field_attrs(node.fields)
    _check_fields_have_no_display(node.fields)


def _validate_enum(node: Enum) -> None:
    check_non_field_attrs(node.attrs)
    has_display = node.has_display()
    for item in node.variants:
        _validate_variant(item)
        if has_display and item.attrs.display is None and item.attrs.transparent is None:
            raise DefinitionError('missing error("...") display attribute', item)
    from_types: set[str] = set()
    for item in node.variants:
        from_field = item.from_field()
        if from_field is None:
            continue
        key = repr(from_field.ty)
        if key in from_types:
            raise DefinitionError(
                "cannot derive a conversion because another variant has the same source type",
                from_field,
            )
        from_types.add(key)


def _check_fields_have_no_display(fields: Iterable[Field]) -> None:
    for item in fields:
        if item.attrs.display is not None:
            raise DefinitionError(
                "not expected here; the error(...) attribute belongs on top of a "
                "struct or an enum variant",
                item.attrs.display,
            )


def check_non_field_attrs(attrs: Attrs) -> None:
    """Reject markers that belong on fields, and a message beside transparent."""
    if attrs.from_:
        raise DefinitionError(
            "not expected here; the from marker belongs on a specific field", attrs
        )
    if attrs.source:
        raise DefinitionError(
            "not expected here; the source marker belongs on a specific field", attrs
        )
    if attrs.backtrace:
        raise DefinitionError(
            "not expected here; the backtrace marker belongs on a specific field", attrs
        )
    if attrs.display is not None and attrs.transparent is not None:
        raise DefinitionError(
            "cannot have both error(transparent) and a display attribute", attrs.display
        )


def check_field_attrs(fields: list[Field]) -> None:
    """Check the markers of one struct's or variant's fields taken together."""
    from_field: Field | None = None
    source_field: Field | None = None
    backtrace_field: Field | None = None
    has_backtrace = False
    for item in fields:
        if item.attrs.from_:
            if from_field is not None:
                raise DefinitionError("duplicate from marker", item)
            from_field = item
        if item.attrs.source:
            if source_field is not None:
                raise DefinitionError("duplicate source marker", item)
            source_field = item
        if item.attrs.backtrace:
            if backtrace_field is not None:
                raise DefinitionError("duplicate backtrace marker", item)
            backtrace_field = item
            has_backtrace = True
        if item.attrs.transparent is not None:
            raise DefinitionError(
                "error(transparent) needs to go outside the enum or struct, "
                "not on an individual field",
                item,
            )
        has_backtrace = has_backtrace or item.is_backtrace()
    if from_field is not None and source_field is not None:
        if from_field.member != source_field.member:
            raise DefinitionError(
                "the from marker is only supported on the source field, not any other field",
                from_field,
            )
    if from_field is not None and len(fields) > 1 + int(has_backtrace):
        raise DefinitionError(
            "deriving a conversion requires no fields other than source and backtrace",
            from_field,
        )