from typing import Annotated, Optional

import pytest

from errorkit.derive import (
    backtrace_of,
    convert,
    derive_error,
    error,
    source_of,
    transparent,
    variant,
)
from errorkit.model import DefinitionError, Marker


@derive_error
@error("...")
class Inner(Exception):
    pass


def test_braced():
    class E(Exception):
        msg: str

    E = derive_error(error("braced error: {msg}")(E))
    assert str(E(msg="T")) == "braced error: T"


def test_braced_unused():
    class E(Exception):
        extra: int

    E = derive_error(error("braced error")(E))
    assert str(E(extra=0)) == "braced error"


def test_tuple():
    class E(Exception):
        _0: int

    E = derive_error(error("tuple error: {0}")(E))
    assert str(E(0)) == "tuple error: 0"
    assert E(5)[0] == 5


def test_unit():
    class E(Exception):
        pass

    E = derive_error(error("unit error")(E))
    assert str(E()) == "unit error"


def test_enum():
    braced_attr = error("braced error: {id}")
    tuple_attr = error("tuple error: {0}")
    unit_attr = error("unit error")

    class E(Exception):
        Braced = variant(("id", int), attrs=[braced_attr])
        Tuple = variant(int, attrs=[tuple_attr])
        Unit = variant(attrs=[unit_attr])

    E = derive_error(E)
    assert str(E.Braced(id=0)) == "braced error: 0"
    assert str(E.Tuple(0)) == "tuple error: 0"
    assert str(E.Unit()) == "unit error"
    assert isinstance(E.Unit(), E)


def test_constants():
    class E(Exception):
        id: str

    E = derive_error(error("{MSG}: {id:?} (code {CODE:?})", MSG="failed to do", CODE=9)(E))
    assert str(E(id="")) == 'failed to do: "" (code 9)'


def test_inherit():
    other_attr = error("other error")

    class E(Exception):
        Some = variant(str)
        Other = variant(str, attrs=[other_attr])

    E = derive_error(error("{0}")(E))
    assert str(E.Some("some error")) == "some error"
    assert str(E.Other("...")) == "other error"


def test_brace_escape():
    class E(Exception):
        pass

    E = derive_error(error("fn main() {{}}")(E))
    assert str(E()) == "fn main() {}"


def test_expr():
    class E(Exception):
        pass

    E = derive_error(error("1 + 1 = {}", 1 + 1)(E))
    assert str(E()) == "1 + 1 = 2"


def test_nested():
    class E(Exception):
        _0: bool

    E = derive_error(error("!bool = {}", lambda f: not f[0])(E))
    assert str(E(True)) == "!bool = false"


def test_match():
    class E(Exception):
        _0: str
        _1: Optional[int]

    E = derive_error(
        error(
            "{}: {0}",
            lambda f: f"error occurred with {f[1]}" if f[1] is not None else "there was an empty error",
        )(E)
    )
    assert str(E("...", 1)) == "error occurred with 1: ..."
    assert str(E("...", None)) == "there was an empty error: ..."


def test_mixed():
    class E(Exception):
        a: int
        d: int

    E = derive_error(error("a={a} :: b={} :: c={c} :: d={d}", 1, c=2, d=3)(E))
    assert str(E(a=0, d=0)) == "a=0 :: b=1 :: c=2 :: d=3"


def test_ints():
    tuple_attr = error("error {0}")
    struct_attr = error("error {0}", "?")

    class E(Exception):
        Tuple = variant(int, int, attrs=[tuple_attr])
        Struct = variant(("v", int), attrs=[struct_attr])

    E = derive_error(E)
    assert str(E.Tuple(9, 0)) == "error 9"
    assert str(E.Struct(v=0)) == "error ?"


def test_field():
    class Data:
        def __init__(self, data):
            self.data = data

    class E(Exception):
        _0: object

    E = derive_error(error("{}", lambda f: f[0].data)(E))
    assert str(E(Data(0))) == "0"


def test_debug_int_shorthand():
    class E(Exception):
        Repro = variant(int)

    E = derive_error(error("{0:?}")(E))
    assert str(E.Repro(0)) == "0"


def test_raw():
    class E(Exception):
        fn: str

    E = derive_error(error("braced raw error: {r#fn}")(E))
    assert str(E(fn="T")) == "braced raw error: T"


def test_raw_conflict():
    braced_attr = error("braced raw error: {r#func}, {func}", func="U")

    class E(Exception):
        Braced = variant(("func", str), attrs=[braced_attr])

    E = derive_error(E)
    assert str(E.Braced(func="T")) == "braced raw error: T, U"


def test_keyword():
    class E(Exception):
        pass

    E = derive_error(error("error: {type}", type=1)(E))
    assert str(E()) == "error: 1"


def test_rcc():
    shift_attr = error(
        "cannot shift {} by {maximum} or more bits (got {current})",
        lambda f: "left" if f.is_left else "right",
    )
    user_attr = error("#error {}", lambda f: " ".join(f[0]))
    overflow_attr = error(
        "overflow while parsing {}integer literal",
        lambda f: "" if f.is_signed is None else ("signed " if f.is_signed else "unsigned "),
    )

    class CompilerError(Exception):
        TooManyShiftBits = variant(
            ("is_left", bool),
            ("maximum", int),
            ("current", int),
            attrs=[shift_attr],
        )
        User = variant(list, attrs=[user_attr])
        IntegerOverflow = variant(("is_signed", Optional[bool]), attrs=[overflow_attr])

    CompilerError = derive_error(CompilerError)
    err = CompilerError.TooManyShiftBits(is_left=True, maximum=32, current=50)
    assert str(err) == "cannot shift left by 32 or more bits (got 50)"
    assert str(CompilerError.User(["A", "B", "C"])) == "#error A B C"
    assert str(CompilerError.IntegerOverflow(is_signed=True)) == (
        "overflow while parsing signed integer literal"
    )


def test_rustup():
    unknown_attr = error(
        "toolchain '{name}' does not contain component {component}{}",
        lambda f: "" if f.suggestion is None else f"; did you mean '{f.suggestion}'?",
    )

    class RustupError(Exception):
        UnknownComponent = variant(
            ("name", str),
            ("component", str),
            ("suggestion", Optional[str]),
            attrs=[unknown_attr],
        )

    RustupError = derive_error(RustupError)
    err = RustupError.UnknownComponent(name="nightly", component="clipy", suggestion="clippy")
    assert str(err) == (
        "toolchain 'nightly' does not contain component clipy; did you mean 'clippy'?"
    )


def test_backtrace_structs():
    @derive_error
    @error("...")
    class Plain(Exception):
        backtrace: "Backtrace"  # noqa: F821

    @derive_error
    @error("...")
    class Opt(Exception):
        backtrace: Annotated[Optional[object], Marker.BACKTRACE]

    @derive_error
    @error("...")
    class BacktraceFrom(Exception):
        source: Annotated[Inner, Marker.FROM]
        backtrace: Annotated[object, Marker.BACKTRACE]

    marker = object()
    assert backtrace_of(Plain(backtrace=marker)) is marker
    assert backtrace_of(Opt(backtrace=marker)) is marker
    assert backtrace_of(Opt(backtrace=None)) is None
    converted = convert(BacktraceFrom, Inner())
    assert len(backtrace_of(converted)) > 0


def test_backtrace_enums():
    @derive_error
    class E(Exception):
        Test = variant(("backtrace", "Backtrace"), attrs=[error("...")])

    @derive_error
    class F(Exception):
        Test = variant(
            ("source", Annotated[Inner, Marker.FROM]),
            ("backtrace", Annotated[object, Marker.BACKTRACE]),
            attrs=[error("...")],
        )

    marker = object()
    assert backtrace_of(E.Test(backtrace=marker)) is marker
    assert len(backtrace_of(convert(F, Inner()))) > 0


def test_option_source():
    @derive_error
    @error("...")
    class OptSourceAlwaysBacktrace(Exception):
        source: Annotated[Optional[Exception], Marker.SOURCE]
        backtrace: "Backtrace"  # noqa: F821

    marker = object()
    err = OptSourceAlwaysBacktrace(source=None, backtrace=marker)
    assert source_of(err) is None
    assert backtrace_of(err) is marker
    cause = ValueError("x")
    assert source_of(OptSourceAlwaysBacktrace(source=cause, backtrace=marker)) is cause


def test_boxed_source():
    @derive_error
    @error("boxed source")
    class BoxedSource(Exception):
        source: Annotated[Exception, Marker.SOURCE]

    cause = OSError("oh no!")
    err = BoxedSource(source=cause)
    assert source_of(err) is cause
    assert err.__cause__ is cause
    assert str(err) == "boxed source"


def test_explicit_source():
    @derive_error
    @error("explicit source")
    class ExplicitSource(Exception):
        source: str
        io: Annotated[OSError, Marker.SOURCE]

    cause = OSError("oh no!")
    assert source_of(ExplicitSource(source="", io=cause)) is cause


def test_transparent_struct():
    @derive_error
    class ErrorKind(Exception):
        E0 = variant(attrs=[error("E0")])
        E1 = variant(Annotated[OSError, Marker.FROM], attrs=[error("E1")])

    @derive_error
    @transparent
    class Wrapper(Exception):
        _0: ErrorKind

    err = Wrapper(ErrorKind.E0())
    assert str(err) == "E0"
    assert source_of(err) is None

    cause = OSError("oh no!")
    err = Wrapper(convert(ErrorKind, cause))
    assert str(err) == "E1"
    assert source_of(err) is cause


def test_transparent_enum():
    @derive_error
    class E(Exception):
        This = variant(attrs=[error("this failed")])
        Other = variant(Exception, attrs=[transparent])

    assert str(E.This()) == "this failed"
    inner = ValueError("inner")
    outer = RuntimeError("outer")
    outer.__cause__ = inner
    err = E.Other(outer)
    assert str(err) == "outer"
    assert source_of(err) is inner


def test_from():
    @derive_error
    @error("...")
    class ErrorStruct(Exception):
        source: Annotated[OSError, Marker.FROM]

    @derive_error
    @error("...")
    class ErrorTuple(Exception):
        _0: Annotated[OSError, Marker.FROM]

    @derive_error
    @error("...")
    class Many(Exception):
        Io = variant(Annotated[OSError, Marker.FROM])

    cause = OSError("oh no!")
    assert convert(ErrorStruct, cause).source is cause
    assert convert(ErrorTuple, cause)[0] is cause
    many = convert(Many, cause)
    assert isinstance(many, Many.Io)
    assert source_of(many) is cause
    with pytest.raises(TypeError):
        convert(ErrorStruct, ValueError("no"))


def test_enum_base_not_constructible():
    a_attr = error("a")

    class E(Exception):
        A = variant(attrs=[a_attr])

    E = derive_error(E)
    with pytest.raises(TypeError):
        E()


def test_missing_fields_rejected():
    class E(Exception):
        a: int

    E = derive_error(error("{a}")(E))
    with pytest.raises(TypeError):
        E()


def test_missing_display_rejected():
    a_attr = error("...")

    class E(Exception):
        A = variant(int, attrs=[a_attr])
        B = variant(int)

    with pytest.raises(DefinitionError, match="missing"):
        derive_error(E)


def test_non_exception_rejected():
    with pytest.raises(DefinitionError):
        derive_error(int)