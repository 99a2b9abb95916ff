"""
Function registry and invocation of parsed FunctionRefs.

The registry belongs to the host. Names are resolved when a ref is invoked,
never while a sheet is parsed, so a sheet may mention functions that are
registered later (or never).
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from sheetval.sheet_datatypes import FunctionRef
from sheetval.sheet_errors import FunctionNotFound

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


def sheet_api_method(func):
    """A decorator to explicitly mark host methods as callable from sheets."""
    func._is_sheet_api = True
    return func


def _is_api(member) -> bool:
    # The mark may sit on the bound method or the underlying function.
    if getattr(member, "_is_sheet_api", False):
        return True
    func = getattr(member, "__func__", None)
    return func is not None and getattr(func, "_is_sheet_api", False)


class FunctionRegistry:
    """Maps function names to handlers."""

    def __init__(self, handlers: Optional[Dict[str, Handler]] = None):
        self._handlers: Dict[str, Handler] = {}
        for name, handler in (handlers or {}).items():
            self.register(name, handler)

    @classmethod
    def from_host(cls, host: Any) -> 'FunctionRegistry':
        """Binds every @sheet_api_method of `host` under its method name."""
        registry = cls()
        registry.bind_host(host)
        return registry

    def bind_host(self, host: Any) -> List[str]:
        bound = []
        for name, member in inspect.getmembers(host):
            if name.startswith('_') or not callable(member) or not _is_api(member):
                continue
            self.register(name, member)
            bound.append(name)
        return bound

    def register(self, name: str, handler: Optional[Handler] = None):
        """Registers `handler` under `name`; usable as `@registry.register("name")`."""
        if handler is None:
            def decorator(fn: Handler) -> Handler:
                self.register(name, fn)
                return fn
            return decorator
        if not callable(handler):
            raise TypeError(f"handler for {name!r} is not callable")
        self._handlers[name] = handler
        return handler

    def unregister(self, name: str):
        if name not in self._handlers:
            raise KeyError(f"'{name}'")
        del self._handlers[name]

    def resolve(self, name: str) -> Optional[Handler]:
        return self._handlers.get(name)

    def names(self) -> List[str]:
        return list(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"<FunctionRegistry names=[{', '.join(self._handlers)}]>"


@dataclass
class InvokeResult:
    """The outcome of invoking a FunctionRef."""
    status: Literal['success', 'error']
    value: Any = None
    error: Optional[FunctionNotFound] = None

    @property
    def ok(self) -> bool:
        return self.status == 'success'


def _prepare(ref: FunctionRef, registry: FunctionRegistry,
             override_params: Optional[Sequence[Any]]):
    handler = registry.resolve(ref.name)
    if handler is None:
        logger.warning("invoke %s: no function registered under that name", ref.original_text)
        return None, None
    # Overrides replace the argument list outright; the ref itself is not touched.
    args = list(override_params) if override_params is not None else list(ref.params)
    return handler, args


def invoke(ref: FunctionRef, registry: FunctionRegistry,
           override_params: Optional[Sequence[Any]] = None) -> InvokeResult:
    """Calls the handler registered for `ref.name`.

    An unknown name is not an exception: the call is skipped and the result
    carries FunctionNotFound. Whatever the handler itself raises (bad arity
    included) propagates to the caller.
    """
    handler, args = _prepare(ref, registry, override_params)
    if handler is None:
        return InvokeResult(status='error', error=FunctionNotFound(ref.name))
    return InvokeResult(status='success', value=handler(*args))


async def ainvoke(ref: FunctionRef, registry: FunctionRegistry,
                  override_params: Optional[Sequence[Any]] = None) -> InvokeResult:
    """Like invoke, but awaits the handler's result when it is awaitable."""
    handler, args = _prepare(ref, registry, override_params)
    if handler is None:
        return InvokeResult(status='error', error=FunctionNotFound(ref.name))
    value = handler(*args)
    if inspect.isawaitable(value):
        value = await value
    return InvokeResult(status='success', value=value)
