"""Turn annotated exception classes into fully behaved error types.

A struct-like error is an exception class whose fields are its annotations.
Fields named ``_0``, ``_1``, ... are positional. Markers are attached with
``typing.Annotated``::

    @derive_error
    @error("failed to read {path}")
    class ReadError(Exception):
        path: str
        source: Annotated[OSError, Marker.FROM]

An enum-like error declares its variants with :func:`variant`. Each variant
becomes a subclass of the enum class, reachable as a class attribute.

Arguments given to :func:`error` that are callable are called with a view of
the field values. The view supports ``view[0]`` and ``view.name``.
"""

from __future__ import annotations

import re
import traceback
import typing
from dataclasses import dataclass
from typing import Annotated, Any, Iterable, Mapping

from .fmt import expand_shorthand, format_message
from .model import (
    Attrs,
    DefinitionError,
    Display,
    Enum,
    Field,
    Struct,
    Transparent,
    Variant,
    collect_attrs,
)
from .valid import validate

_POSITIONAL = re.compile(r"_([0-9]+)")
_ATTRS_KEY = "__error_attrs__"


@dataclass(frozen=True)
class _ErrorAttribute(Display):
    """A message attribute that can also decorate a class."""

    def __call__(self, cls: type) -> type:
        _prepend_attr(cls, self)
        return cls


def _prepend_attr(cls: type, item: Any) -> None:
    existing = list(cls.__dict__.get(_ATTRS_KEY, ()))
    setattr(cls, _ATTRS_KEY, [item, *existing])


def error(fmt, *args, **kwargs) -> _ErrorAttribute:
    """A message attribute; decorate a class with it or pass it to a variant."""
    return _ErrorAttribute(fmt, args, kwargs)


def transparent(target):
    """Mark a class so its message and source are those of its only field.

    The function itself may also be listed among a variant's or a field's
    attributes.
    """
    _prepend_attr(target, Transparent())
    return target


@dataclass(frozen=True)
class _VariantSpec:
    fields: tuple
    attrs: tuple


def variant(*args, attrs=()) -> _VariantSpec:
    """Declare an enum variant.

    Each argument is either a type, for a positional field, or a
    ``(name, type)`` pair, for a named field.
    """
    return _VariantSpec(tuple(args), tuple(attrs))


def _normalize(items: Iterable[Any]) -> list[Any]:
    return [Transparent() if item is transparent else item for item in items]


def _make_field(member: str | int, annotation: Any) -> Field:
    extras: tuple = ()
    if typing.get_origin(annotation) is Annotated:
        extras = annotation.__metadata__
        annotation = typing.get_args(annotation)[0]
    if isinstance(annotation, typing.ForwardRef):
        annotation = annotation.__forward_arg__
    return Field(member, annotation, collect_attrs(_normalize(extras)))


def _member(name: str) -> str | int:
    match = _POSITIONAL.fullmatch(name)
    return int(match.group(1)) if match else name


def _variant_fields(spec: _VariantSpec) -> list[Field]:
    fields = []
    position = 0
    for entry in spec.fields:
        if isinstance(entry, tuple) and len(entry) == 2 and isinstance(entry[0], str):
            fields.append(_make_field(entry[0], entry[1]))
        else:
            fields.append(_make_field(position, entry))
            position += 1
    return fields


class _FieldView:
    """Read-only access to field values by index or by attribute."""

    def __init__(self, values: Mapping[Any, Any]) -> None:
        self._values = values

    def __getitem__(self, member: Any) -> Any:
        return self._values[member]

    def __getattr__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(name) from None


def _evaluate(arg: Any, view: _FieldView) -> Any:
    return arg(view) if callable(arg) else arg


def _message(shape: Struct | Variant, values: Mapping[Any, Any]) -> str:
    if shape.attrs.transparent is not None:
        return str(values[shape.fields[0].member])
    display = shape.attrs.display
    view = _FieldView(values)
    args = [_evaluate(a, view) for a in display.args]
    kwargs = {k: _evaluate(v, view) for k, v in display.kwargs.items()}
    return format_message(display.fmt, args, kwargs)


def _bind(shape: Struct | Variant, args: tuple, kwargs: dict) -> dict:
    fields = shape.fields
    if len(args) > len(fields):
        raise TypeError(f"{shape.name} takes {len(fields)} fields, got {len(args)}")
    values = {f.member: a for f, a in zip(fields, args)}
    for name, value in kwargs.items():
        target = next((f for f in fields if f.member == name), None)
        if target is None:
            raise TypeError(f"{shape.name} has no field {name!r}")
        if name in values:
            raise TypeError(f"{shape.name} got field {name!r} twice")
        values[name] = value
    missing = [f.member for f in fields if f.member not in values]
    if missing:
        raise TypeError(f"{shape.name} is missing fields {missing!r}")
    return {f.member: values[f.member] for f in fields}


def _setup(obj: BaseException, shape: Struct | Variant, values: dict) -> None:
    obj._error_fields = values
    for member, value in values.items():
        if isinstance(member, str):
            setattr(obj, member, value)
    BaseException.__init__(obj, *values.values())
    source = shape.source_field()
    if shape.attrs.transparent is None and source is not None:
        value = values[source.member]
        if isinstance(value, BaseException):
            obj.__cause__ = value


def _shape(err: Any) -> Struct | Variant | None:
    return getattr(type(err), "__error_shape__", None)


def _instantiate(cls: type, values: dict) -> BaseException:
    obj = cls.__new__(cls)
    _setup(obj, cls.__error_shape__, values)
    return obj


def _init(self, *args, **kwargs) -> None:
    shape = _shape(self)
    if shape is None:
        raise TypeError(f"{type(self).__name__} cannot be built directly; use one of its variants")
    _setup(self, shape, _bind(shape, args, kwargs))


def _str(self) -> str:
    return _message(_shape(self), self._error_fields)


def _repr(self) -> str:
    parts = []
    for member, value in self._error_fields.items():
        parts.append(f"{member}={value!r}" if isinstance(member, str) else repr(value))
    return f"{type(self).__qualname__}({', '.join(parts)})"


def _getitem(self, index: int) -> Any:
    try:
        return self._error_fields[index]
    except KeyError:
        raise IndexError(index) from None


def _install(cls: type, with_display: bool) -> None:
    cls.__init__ = _init
    cls.__repr__ = _repr
    cls.__getitem__ = _getitem
    if with_display:
        cls.__str__ = _str


def derive_error(cls):
    """Derive construction, message, source and conversion for an error class."""
    if not (isinstance(cls, type) and issubclass(cls, BaseException)):
        raise DefinitionError("error types must be exception classes", cls)
    attrs = collect_attrs(_normalize(cls.__dict__.get(_ATTRS_KEY, ())))
    specs = [(name, v) for name, v in cls.__dict__.items() if isinstance(v, _VariantSpec)]
    if specs:
        variants = [
            Variant(name, collect_attrs(_normalize(spec.attrs)), _variant_fields(spec))
            for name, spec in specs
        ]
        node = Enum(cls.__name__, attrs, variants)
        for item in node.variants:
            if item.attrs.display is not None:
                item.attrs.display = expand_shorthand(item.attrs.display, item.fields)
        validate(node)
        cls.__error_spec__ = node
        cls.__error_shape__ = None
        has_display = node.has_display()
        _install(cls, has_display)
        for item in node.variants:
            sub = type(item.name, (cls,), {"__error_shape__": item, "__module__": cls.__module__})
            sub.__qualname__ = f"{cls.__qualname__}.{item.name}"
            setattr(cls, item.name, sub)
        return cls
    annotations = cls.__dict__.get("__annotations__", {})
    fields = [_make_field(_member(name), ann) for name, ann in annotations.items()]
    node = Struct(cls.__name__, attrs, fields)
    if node.attrs.display is not None:
        node.attrs.display = expand_shorthand(node.attrs.display, node.fields)
    validate(node)
    cls.__error_spec__ = node
    cls.__error_shape__ = node
    _install(cls, node.attrs.display is not None or node.attrs.transparent is not None)
    return cls


def source_of(err):
    """The lower-level error that caused this one, or None."""
    shape = _shape(err)
    if shape is None:
        return getattr(err, "__cause__", None)
    values = err._error_fields
    if shape.attrs.transparent is not None:
        inner = values[shape.fields[0].member]
        return source_of(inner) if isinstance(inner, BaseException) else None
    field = shape.source_field()
    return None if field is None else values[field.member]


def backtrace_of(err):
    """The backtrace carried by this error or by its source, or None."""
    shape = _shape(err)
    if shape is None:
        return None
    values = err._error_fields
    bt_field = shape.backtrace_field()
    if bt_field is None:
        return None
    own = values[bt_field.member]
    src_field = shape.source_field()
    if src_field is not None and (isinstance(shape, Struct) or not bt_field.attrs.backtrace):
        source = values[src_field.member]
        inner = backtrace_of(source) if source is not None else None
        return inner if inner is not None else own
    return own


def _capture() -> traceback.StackSummary:
    return traceback.StackSummary.from_list(traceback.extract_stack()[:-2])


def _accepts(ty: Any, value: Any) -> bool:
    if isinstance(ty, str):
        return type(value).__name__ == ty.rsplit(".", 1)[-1]
    try:
        return isinstance(value, ty)
    except TypeError:
        return False


def _from_values(shape: Struct | Variant, value: Any) -> dict:
    values = {shape.from_field().member: value}
    bt = shape.backtrace_field()
    if bt is not None:
        values[bt.member] = _capture()
    return values


def convert(cls, value):
    """Build an error of type cls from a lower-level error, via its from field."""
    node = getattr(cls, "__error_spec__", None)
    if isinstance(node, Struct):
        if node.from_field() is not None and _accepts(node.from_field().ty, value):
            return _instantiate(cls, _from_values(node, value))
    elif isinstance(node, Enum):
        for item in node.variants:
            ff = item.from_field()
            if ff is not None and _accepts(ff.ty, value):
                return _instantiate(getattr(cls, item.name), _from_values(item, value))
    raise TypeError(f"cannot convert {type(value).__name__} into {getattr(cls, '__name__', cls)}")