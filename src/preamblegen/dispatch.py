"""
Arity-dispatched families: pick an implementation by the number of positional
arguments at the call site.

    greet = DispatchFamily("greet")

    @greet.register
    def greet1(name):
        return f"Hello {name}!"

    @greet.register
    def greet2(greeting, name):
        return f"{greeting} {name}!"

    greet("Sailor")               # 'Hello Sailor!'
    greet("Greetings", "Sailor")  # 'Greetings Sailor!'
    greet("a", "b", "c")          # ArityError: greet3 is not defined

Call sites can also be checked before anything runs with ``check_call_sites``.
"""

from __future__ import annotations

import ast
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import ArityError, CallSiteError, SpecError

MIN_ARITY = 1
MAX_ARITY = 8


def signature_arity(fn: Callable[..., Any]) -> int:
    """Number of positional parameters declared by ``fn``."""
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError) as exc:
        raise SpecError(f"cannot read signature of {fn!r}: {exc}") from exc
    count = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            raise SpecError(f"{getattr(fn, '__name__', fn)!r}: *args has no fixed arity")
        if param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is inspect.Parameter.empty:
            raise SpecError(
                f"{getattr(fn, '__name__', fn)!r}: required keyword-only parameter {param.name!r} "
                "cannot be supplied positionally"
            )
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            count += 1
    return count


@dataclass(frozen=True)
class DispatchResult:
    ok: bool
    value: Any = None
    error: Optional[ArityError] = None

    def unwrap(self) -> Any:
        if not self.ok:
            if self.error is None:
                raise SpecError("failed dispatch result carries no error")
            raise self.error
        return self.value


class DispatchFamily:
    def __init__(self, name: str, *, max_arity: int = MAX_ARITY) -> None:
        if not name.isidentifier():
            raise SpecError(f"dispatch family name must be an identifier: {name!r}")
        if not isinstance(max_arity, int) or not MIN_ARITY <= max_arity <= MAX_ARITY:
            raise SpecError(f"{name}: max_arity must be {MIN_ARITY}..{MAX_ARITY}, got {max_arity!r}")
        self.name = name
        self.max_arity = max_arity
        self._impls: Dict[int, Callable[..., Any]] = {}
        self._sealed = False

    def __repr__(self) -> str:
        return f"<DispatchFamily {self.name} arities={list(self.arities)}>"

    @property
    def arities(self) -> Tuple[int, ...]:
        return tuple(sorted(self._impls))

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> "DispatchFamily":
        self._sealed = True
        return self

    def _check_range(self, arity: int) -> None:
        if arity < MIN_ARITY:
            raise ArityError(self.name, arity, f"at least {MIN_ARITY} argument is required")
        if arity > self.max_arity:
            raise ArityError(self.name, arity, f"exceeds the maximum arity of {self.max_arity}")

    def register(self, fn: Optional[Callable[..., Any]] = None, *, arity: Optional[int] = None):
        def deco(f: Callable[..., Any]) -> Callable[..., Any]:
            k = signature_arity(f) if arity is None else arity
            if self._sealed:
                raise ArityError(self.name, k, "family is sealed")
            self._check_range(k)
            if k in self._impls:
                raise ArityError(self.name, k, "is already defined")
            self._impls[k] = f
            return f

        if fn is not None:
            return deco(fn)
        return deco

    def resolve(self, arity: int) -> Callable[..., Any]:
        self._check_range(arity)
        impl = self._impls.get(arity)
        if impl is None:
            raise ArityError(self.name, arity, "is not defined")
        return impl

    def __call__(self, *args: Any) -> Any:
        return self.resolve(len(args))(*args)

    def try_call(self, *args: Any) -> DispatchResult:
        try:
            impl = self.resolve(len(args))
        except ArityError as exc:
            return DispatchResult(False, error=exc)
        return DispatchResult(True, value=impl(*args))


def with_defaults(name: str, *impls: Callable[..., Any], max_arity: int = MAX_ARITY) -> DispatchFamily:
    family = DispatchFamily(name, max_arity=max_arity)
    for impl in impls:
        family.register(impl)
    return family.seal()


FamilySpec = Union[DispatchFamily, Iterable[int]]


def _arity_sets(families: Mapping[str, FamilySpec]) -> Dict[str, Tuple[int, Tuple[int, ...]]]:
    out: Dict[str, Tuple[int, Tuple[int, ...]]] = {}
    for name, fam in families.items():
        if isinstance(fam, DispatchFamily):
            out[name] = (fam.max_arity, fam.arities)
        else:
            out[name] = (MAX_ARITY, tuple(sorted(set(fam))))
    return out


def check_call_sites(
    source: str,
    families: Mapping[str, FamilySpec],
    *,
    filename: str = "<string>",
) -> List[CallSiteError]:
    """Report calls to known families whose argument count has no implementation."""
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as exc:
        raise SpecError(f"{filename}:{exc.lineno}: {exc.msg}") from exc

    known = _arity_sets(families)
    errors: List[CallSiteError] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call) or not isinstance(node.func, ast.Name):
            continue
        name = node.func.id
        if name not in known:
            continue
        max_arity, arities = known[name]
        if any(isinstance(a, ast.Starred) for a in node.args) or node.keywords:
            errors.append(
                CallSiteError(filename, node.lineno, name, None, "argument count is not static")
            )
            continue
        k = len(node.args)
        if k < MIN_ARITY:
            reason = f"at least {MIN_ARITY} argument is required"
        elif k > max_arity:
            reason = f"exceeds the maximum arity of {max_arity}"
        elif k not in arities:
            reason = "is not defined"
        else:
            continue
        errors.append(CallSiteError(filename, node.lineno, name, k, reason))
    errors.sort(key=lambda e: e.line)
    return errors


def assert_call_sites(
    source: str,
    families: Mapping[str, FamilySpec],
    *,
    filename: str = "<string>",
) -> None:
    errors = check_call_sites(source, families, filename=filename)
    if errors:
        first = errors[0]
        raise ArityError(first.family, first.arity, first.reason, where=f"{first.filename}:{first.line}")
