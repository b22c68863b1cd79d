"""Template variables and the per-render provider table.

A context file maps variable names to defaults of three shapes:

* a scalar (``"demo"``, ``8080``, ``true``)
* a list of scalars, whose first element is the default (``["mit", "bsd"]``)
* a group of child variables (``{"advanced": {"port": 8080}}``); the group's
  own key becomes a yes/no question that gates its children

:func:`resolve` binds each variable to a :class:`Provider` in one of three
modes: defaults only, pre-supplied values, or interactive prompts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from ..errors import ContextError
from ..utils.prompt import new_prompt

ScalarValue = Union[str, bool, int, float]
PromptFactory = Callable[[str, Any], Callable[[], Any]]

_SCALAR_TYPES = (str, bool, int, float)


@dataclass(frozen=True)
class Scalar:
    value: ScalarValue

    @property
    def default(self) -> ScalarValue:
        return self.value

    @property
    def prompt_default(self) -> ScalarValue:
        return self.value


@dataclass(frozen=True)
class Choice:
    options: Tuple[ScalarValue, ...]

    @property
    def default(self) -> ScalarValue:
        return self.options[0]

    @property
    def prompt_default(self) -> List[ScalarValue]:
        return list(self.options)


@dataclass(frozen=True)
class Group:
    children: Mapping[str, Union[Scalar, Choice]] = field(default_factory=dict)


Variable = Union[Scalar, Choice, Group]


def _parse_leaf(name: str, raw: Any) -> Union[Scalar, Choice]:
    if isinstance(raw, _SCALAR_TYPES):
        return Scalar(raw)
    if isinstance(raw, list):
        if not raw:
            return Scalar("")
        bad = [item for item in raw if not isinstance(item, _SCALAR_TYPES)]
        if bad:
            raise ContextError(f"variable {name!r}: list options must be scalars, got {bad[0]!r}")
        return Choice(tuple(raw))
    raise ContextError(f"variable {name!r}: unsupported default {raw!r}")


def parse_defaults(raw: Mapping[str, Any]) -> Dict[str, Variable]:
    """Turn a decoded context mapping into typed variable definitions.

    The input mapping is left untouched. Raises :class:`ContextError` for
    shapes that cannot be prompted for (``null``, groups inside groups).
    """
    variables: Dict[str, Variable] = {}
    for name, value in raw.items():
        if isinstance(value, Mapping):
            children = {}
            for child, child_value in value.items():
                if isinstance(child_value, Mapping):
                    raise ContextError(f"variable {name!r}: groups cannot be nested ({child!r})")
                children[child] = _parse_leaf(child, child_value)
            variables[name] = Group(children)
        else:
            variables[name] = _parse_leaf(name, value)
    return variables


def iter_leaves(defaults: Mapping[str, Variable]) -> Iterator[Tuple[str, Union[Scalar, Choice]]]:
    """Yield every bindable variable, with group children flattened in."""
    for name, variable in defaults.items():
        if isinstance(variable, Group):
            yield from variable.children.items()
        else:
            yield name, variable


def declared_names(defaults: Mapping[str, Variable]) -> frozenset:
    return frozenset(name for name, _ in iter_leaves(defaults))


class Provider(ABC):
    """Produces the value of one variable when a placeholder needs it."""

    @abstractmethod
    def resolve(self) -> Any:
        ...


class DefaultProvider(Provider):
    def __init__(self, variable: Union[Scalar, Choice]) -> None:
        self.variable = variable

    def resolve(self) -> Any:
        return self.variable.default


class ValueProvider(Provider):
    def __init__(self, value: Any) -> None:
        self.value = value

    def resolve(self) -> Any:
        return self.value


_UNRESOLVED = object()


class PromptProvider(Provider):
    """Asks once, on first use, and remembers the answer."""

    def __init__(self, name: str, default: Any, prompt: PromptFactory) -> None:
        self.name = name
        self._ask = prompt(name, default)
        self._value = _UNRESOLVED

    def resolve(self) -> Any:
        if self._value is _UNRESOLVED:
            self._value = self._ask()
        return self._value


class GatedProvider(Provider):
    """Defers to ``child`` only when ``gate`` resolves truthy."""

    def __init__(self, gate: Provider, child: Provider, default: Any) -> None:
        self.gate = gate
        self.child = child
        self.default = default

    def resolve(self) -> Any:
        if self.gate.resolve():
            return self.child.resolve()
        return self.default


@dataclass
class ProviderTable:
    """Name to provider bindings for a single render.

    ``unset`` holds declared variables that deliberately have no provider:
    in value mode a variable missing from the supplied values renders as an
    empty string rather than falling back to its default.
    """

    providers: Dict[str, Provider] = field(default_factory=dict)
    unset: set = field(default_factory=set)

    def bind(self, name: str, provider: Provider) -> None:
        self.providers[name] = provider
        self.unset.discard(name)

    def leave_unset(self, name: str) -> None:
        self.providers.pop(name, None)
        self.unset.add(name)

    def __contains__(self, name: object) -> bool:
        return name in self.providers or name in self.unset

    def value(self, name: str) -> Any:
        if name in self.providers:
            return self.providers[name].resolve()
        if name in self.unset:
            return ""
        raise KeyError(name)


def _bind_value(table: ProviderTable, name: str, values: Mapping[str, Any]) -> None:
    if name in values:
        table.bind(name, ValueProvider(values[name]))
    else:
        table.leave_unset(name)


def resolve(
    defaults: Mapping[str, Variable],
    values: Optional[Mapping[str, Any]] = None,
    use_defaults: bool = False,
    prompt: PromptFactory = new_prompt,
) -> ProviderTable:
    """Build the provider table for one render.

    ``use_defaults`` takes precedence over ``values``; with neither, every
    variable is prompted for lazily through ``prompt``.
    """
    table = ProviderTable()

    if use_defaults:
        for name, variable in iter_leaves(defaults):
            table.bind(name, DefaultProvider(variable))
        return table

    if values is not None:
        for name, variable in defaults.items():
            if isinstance(variable, Group):
                scope = values.get(name)
                if not isinstance(scope, Mapping):
                    scope = {}
                for child in variable.children:
                    _bind_value(table, child, scope)
            else:
                _bind_value(table, name, values)
        return table

    for name, variable in defaults.items():
        if isinstance(variable, Group):
            gate = PromptProvider(name, False, prompt)
            for child, child_variable in variable.children.items():
                table.bind(
                    child,
                    GatedProvider(
                        gate,
                        PromptProvider(child, child_variable.prompt_default, prompt),
                        child_variable.default,
                    ),
                )
        else:
            table.bind(name, PromptProvider(name, variable.prompt_default, prompt))
    return table
