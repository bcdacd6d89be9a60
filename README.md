# errorkit

errorkit turns an annotated exception class into a complete error type. You
declare the fields, a message template and a few markers; `derive_error`
checks the declaration and installs construction, `str()`, `repr()`, the
link to the underlying cause and a conversion from the error it wraps.

Mistakes in a declaration raise `errorkit.model.DefinitionError` when the
class is decorated, not when the error is first raised or printed.

## A single-shape error

Fields are the class annotations. Names `_0`, `_1`, ... are positional
fields. Markers are attached with `typing.Annotated` and
`errorkit.model.Marker` (`SOURCE`, `FROM`, `BACKTRACE`).

```python
from typing import Annotated

from errorkit.derive import derive_error, error, source_of
from errorkit.model import Marker


@derive_error
@error("failed to read {path}")
class ReadError(Exception):
    path: str
    cause: Annotated[OSError, Marker.SOURCE]


err = ReadError("a.txt", OSError("disk gone"))
str(err)        # 'failed to read a.txt'
source_of(err)  # the OSError; it is also set as err.__cause__
```

Fields can be passed positionally or by name; missing, unknown or repeated
fields raise `TypeError`. Named fields are also plain attributes, and
positional ones are read with `err[0]`.

## An error with several cases

Cases are declared with `variant(*args, attrs=...)`. Each argument is a type
for a positional field or a `(name, type)` pair for a named field. After
`derive_error`, each case is a subclass of the class, reached as a class
attribute.

```python
from typing import Annotated

from errorkit.derive import convert, derive_error, error, variant
from errorkit.model import Marker


@derive_error
class StoreError(Exception):
    Disconnect = variant(Annotated[OSError, Marker.FROM], attrs=[error("data store disconnected")])
    Redaction = variant(str, attrs=[error("the data for key `{0}` is not available")])
    InvalidHeader = variant(
        ("expected", str),
        ("found", str),
        attrs=[error("invalid header (expected {expected:?}, found {found:?})")],
    )
    Unknown = variant(attrs=[error("unknown data store error")])


str(StoreError.InvalidHeader(expected="a", found="b"))
# 'invalid header (expected "a", found "b")'
convert(StoreError, OSError("x"))  # a StoreError.Disconnect
```

A message given on the whole class is inherited by cases without one. Once
any case has a message, every case needs one or must be transparent.

## Messages

`error(fmt, *args, **kwargs)` takes a template in brace syntax:

| in the template | renders as                                   |
|-----------------|----------------------------------------------|
| `{name}`        | the field `name`                             |
| `{0}`           | positional field 0, else positional arg 0    |
| `{}`            | the next extra positional argument           |
| `{name:>8}`     | the value through `format()` with that spec  |
| `{name:?}`      | the debug form: quoted strings, `true`/`false`, lists in brackets |
| `{{` and `}}`   | literal braces                               |

An extra argument that is callable is called with a view of the field
values, which supports `view[0]` and `view.name`:

```python
@derive_error
@error("!bool = {}", lambda f: not f[0])
class Flag(Exception):
    _0: bool
```

A keyword argument given explicitly wins over a field of the same name. A
reference that is neither a field nor a named argument is a
`DefinitionError`. Booleans render as `true` and `false`.

The template machinery is available on its own in `errorkit.fmt`:
`format_message(fmt, args, kwargs)`, `expand_shorthand(display, fields)` and
`explicit_named_args(args, kwargs)`.

## Transparent wrapping

`transparent` takes its message and its source from its only field, adding
nothing. Use it as a class decorator, or list it among a case's `attrs`:

```python
from errorkit.derive import derive_error, transparent, variant


@derive_error
@transparent
class Wrapper(Exception):
    _0: Exception


@derive_error
class AppError(Exception):
    Other = variant(Exception, attrs=[transparent])
```

## Sources, backtraces and conversions

- `source_of(err)` returns the field marked `SOURCE` or `FROM`, else a field
  named `source`; for a transparent error, the source of the wrapped error.
  For classes not built by `derive_error` it returns `__cause__`.
- `backtrace_of(err)` returns the field marked `BACKTRACE`, else one whose
  type is named `Backtrace`. When the error also has a source whose own
  backtrace is set, that one is returned instead (for a case, only when the
  backtrace field is not explicitly marked).
- `convert(cls, value)` builds `cls`, or the first of its cases, whose `FROM`
  field accepts `value` (an instance check; a string annotation matches by
  class name). A backtrace field is filled with the current stack as a
  `traceback.StackSummary`. Otherwise it raises `TypeError`.

## Checks

`errorkit.valid.validate` (run by `derive_error`) raises `DefinitionError`
when, among others:

- a message or transparency is declared twice, or both are declared;
- a transparent type or case does not have exactly one field, or marks it
  as the source;
- two fields carry the same marker;
- the `FROM` field is not the source field, or sits beside fields other
  than a backtrace;
- two cases convert from the same type;
- a message is put on a field, or a field marker on the whole type.

The declaration model itself (`Struct`, `Enum`, `Variant`, `Field`, `Attrs`,
`collect_attrs`) lives in `errorkit.model`.

## What it does not do

errorkit has no command-line tool. It does not check the types of field
values when an error is constructed; annotations are used only to find
markers, backtrace fields and conversion targets.

Requires Python 3.10 or newer; no runtime dependencies.