import functools
import io
from typing import Any, Callable, Dict, Iterable, Iterator, Mapping, Optional, TextIO

from jinja2 import Environment, StrictUndefined, Template, TemplateError, TemplateSyntaxError, UndefinedError, meta

from ..errors import RenderError, ValidationError
from .functions import HELPERS
from .variables import ProviderTable

_PENDING = object()


class LazyValue:
    """Stands in for a variable until the template actually uses it.

    Jinja looks up every name a template mentions before rendering starts,
    so handing it the value directly would prompt for variables that sit in
    branches never taken.
    """

    __slots__ = ("_table", "_name", "_value")

    def __init__(self, table: ProviderTable, name: str) -> None:
        self._table = table
        self._name = name
        self._value = _PENDING

    def resolve(self) -> Any:
        if self._value is _PENDING:
            self._value = self._table.value(self._name)
        return self._value

    def __getattr__(self, attr: str) -> Any:
        if attr.startswith("__"):
            raise AttributeError(attr)
        return getattr(self.resolve(), attr)

    def __str__(self) -> str:
        return str(self.resolve())

    def __repr__(self) -> str:
        return repr(self.resolve())

    def __format__(self, spec: str) -> str:
        return format(self.resolve(), spec)

    def __bool__(self) -> bool:
        return bool(self.resolve())

    def __hash__(self) -> int:
        return hash(self.resolve())

    def __eq__(self, other: Any) -> bool:
        return self.resolve() == _unwrap(other)

    def __ne__(self, other: Any) -> bool:
        return self.resolve() != _unwrap(other)

    def __lt__(self, other: Any) -> bool:
        return self.resolve() < _unwrap(other)

    def __le__(self, other: Any) -> bool:
        return self.resolve() <= _unwrap(other)

    def __gt__(self, other: Any) -> bool:
        return self.resolve() > _unwrap(other)

    def __ge__(self, other: Any) -> bool:
        return self.resolve() >= _unwrap(other)

    def __len__(self) -> int:
        return len(self.resolve())

    def __iter__(self) -> Iterator[Any]:
        return iter(self.resolve())

    def __contains__(self, item: Any) -> bool:
        return _unwrap(item) in self.resolve()

    def __getitem__(self, key: Any) -> Any:
        return self.resolve()[_unwrap(key)]

    def __int__(self) -> int:
        return int(self.resolve())

    def __float__(self) -> float:
        return float(self.resolve())

    def __index__(self) -> int:
        return self.resolve().__index__()

    def __neg__(self) -> Any:
        return -self.resolve()

    def __add__(self, other: Any) -> Any:
        return self.resolve() + _unwrap(other)

    def __radd__(self, other: Any) -> Any:
        return _unwrap(other) + self.resolve()

    def __sub__(self, other: Any) -> Any:
        return self.resolve() - _unwrap(other)

    def __rsub__(self, other: Any) -> Any:
        return _unwrap(other) - self.resolve()

    def __mul__(self, other: Any) -> Any:
        return self.resolve() * _unwrap(other)

    def __rmul__(self, other: Any) -> Any:
        return _unwrap(other) * self.resolve()

    def __truediv__(self, other: Any) -> Any:
        return self.resolve() / _unwrap(other)

    def __floordiv__(self, other: Any) -> Any:
        return self.resolve() // _unwrap(other)

    def __mod__(self, other: Any) -> Any:
        return self.resolve() % _unwrap(other)


def _unwrap(value: Any) -> Any:
    return value.resolve() if isinstance(value, LazyValue) else value


def _unwrapping(func: Callable) -> Callable:
    # functools.wraps carries jinja's pass_context/pass_environment markers over
    @functools.wraps(func)
    def call(*args, **kwargs):
        return func(*map(_unwrap, args), **{key: _unwrap(value) for key, value in kwargs.items()})

    return call


class ProviderScope(Mapping[str, Any]):
    """Read-only view over a provider table; values resolve on first use."""

    def __init__(self, table: ProviderTable, helpers: Mapping[str, Any]) -> None:
        self.table = table
        self.helpers = helpers

    def __getitem__(self, key: str) -> Any:
        if key in self.table.providers:
            return LazyValue(self.table, key)
        if key in self.table:
            return self.table.value(key)
        return self.helpers[key]

    def __contains__(self, key: object) -> bool:
        return key in self.table or key in self.helpers

    def __iter__(self) -> Iterator[str]:
        yield from self.table.providers
        yield from self.table.unset
        yield from (name for name in self.helpers if name not in self.table)

    def __len__(self) -> int:
        return sum(1 for _ in self)


def _describe(exc: TemplateSyntaxError) -> str:
    return f"line {exc.lineno}: {exc.message}"


class TemplateRenderer:
    def __init__(self, helpers: Optional[Dict[str, Any]] = None) -> None:
        self.env = Environment(
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        helpers = HELPERS if helpers is None else helpers
        self.env.globals.update({name: _unwrapping(func) for name, func in helpers.items()})
        # filters and tests see resolved values, never the LazyValue stand-ins
        self.env.filters = {name: _unwrapping(func) for name, func in self.env.filters.items()}
        self.env.tests = {
            name: func if name in ("defined", "undefined") else _unwrapping(func)
            for name, func in self.env.tests.items()
        }

    def parse(self, text: str, known: Iterable[str], name: str) -> None:
        """Check syntax and that every referenced variable is declared, without rendering."""
        try:
            ast = self.env.parse(text, name=name)
        except TemplateSyntaxError as exc:
            raise ValidationError(name, _describe(exc)) from exc

        unknown = meta.find_undeclared_variables(ast) - set(known) - set(self.env.globals)
        if unknown:
            raise ValidationError(name, "undeclared variable(s): " + ", ".join(sorted(unknown)))

        # unknown filters and tests only surface at compile time
        try:
            self.env.compile(ast, name=name)
        except TemplateSyntaxError as exc:
            raise ValidationError(name, _describe(exc)) from exc

    def _compile(self, text: str, name: str) -> Template:
        try:
            return self.env.from_string(text)
        except TemplateSyntaxError as exc:
            raise RenderError(name, _describe(exc)) from exc

    def render_to(self, text: str, table: ProviderTable, stream: TextIO, name: str) -> None:
        """Render ``text`` into ``stream``, resolving placeholders through ``table``."""
        template = self._compile(text, name)
        # shared=True hands the scope to the context as-is instead of copying
        # it into a dict, which would resolve (and prompt for) every variable.
        context = template.new_context(ProviderScope(table, self.env.globals), shared=True)
        try:
            for chunk in template.root_render_func(context):
                stream.write(chunk)
        except UndefinedError as exc:
            raise RenderError(name, f"unresolved variable ({exc.message})") from exc
        except TemplateError as exc:
            raise RenderError(name, str(exc)) from exc
        except Exception as exc:
            raise RenderError(name, f"{type(exc).__name__}: {exc}") from exc

    def render(self, text: str, table: ProviderTable, name: str) -> str:
        buf = io.StringIO()
        self.render_to(text, table, buf, name)
        return buf.getvalue()
