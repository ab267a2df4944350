"""
Base decorator factory for CLI parameter injection.

Provider modules use :func:`_create_param_decorator` to add a group of Typer
options to a callback without spelling them out in its signature. The
collected values end up in ``ctx.obj[context_key]``.
"""

from functools import wraps
from typing import Any, Callable, Optional
import inspect

import typer


def _find_context(args: tuple, kwargs: dict) -> Optional[typer.Context]:
    for candidate in (*args, *kwargs.values()):
        if isinstance(candidate, typer.Context):
            return candidate
    return None


def _create_param_decorator(
    param_specs: list[tuple[str, inspect.Parameter]],
    context_key: str,
    param_extractor: Callable[[dict[str, Any]], Any],
) -> Callable:
    """
    Factory for creating parameter injection decorators.

    Args:
        param_specs: List of (param_name, Parameter) tuples to inject
        context_key: Key to store extracted params in ctx.obj
        param_extractor: Builds the stored value from the injected kwargs

    Returns:
        Decorator function that injects parameters
    """
    injected_names = [name for name, _ in param_specs]

    def decorator(func: Callable) -> Callable:
        sig = inspect.signature(func)
        new_sig = sig.replace(
            parameters=[*sig.parameters.values(), *(param for _, param in param_specs)]
        )

        @wraps(func)
        def wrapper(*args, **kwargs):
            injected = {name: kwargs.pop(name) for name in injected_names if name in kwargs}
            ctx = _find_context(args, kwargs)
            if ctx is not None:
                ctx.ensure_object(dict)
                ctx.obj[context_key] = param_extractor(injected)
            return func(*args, **kwargs)

        # Typer inspects the signature to build options
        wrapper.__signature__ = new_sig
        return wrapper

    return decorator
