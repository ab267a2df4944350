"""Logging provider.

Example:
    ```python
    from libs.python.cli.providers.logging import logging_params

    @app.callback()
    @logging_params
    def setup(ctx: typer.Context):
        log_config = ctx.obj['logging']
        # LoggingContext(log_level='INFO', json_format=False)
    ```
"""

import inspect
from dataclasses import dataclass
from typing import Annotated, Callable, Optional

import typer

from libs.python.logging import LogContext, configure_logging

LogLevel = Annotated[
    str,
    typer.Option(envvar="LOG_LEVEL", help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"),
]
LogJson = Annotated[
    bool, typer.Option("--log-json", envvar="LOG_JSON", help="Emit JSON log lines")
]


@dataclass
class LoggingContext:
    """Logging options collected from the CLI.

    Attributes:
        log_level: Configured logging level
        json_format: Whether log lines are JSON
    """

    log_level: str = "INFO"
    json_format: bool = False

    def apply(self, service_name: Optional[str] = None) -> LogContext:
        """Configure process-wide logging with these options."""
        return configure_logging(
            service_name=service_name,
            log_level=self.log_level,
            json_format=self.json_format,
        )


def logging_params(func: Callable) -> Callable:
    """
    Decorator that injects logging parameters into the callback.

    Stores a :class:`LoggingContext` in ``ctx.obj['logging']``.
    """
    from libs.python.cli.params_base import _create_param_decorator

    param_specs = [
        ('log_level', inspect.Parameter(
            'log_level', inspect.Parameter.KEYWORD_ONLY,
            default="INFO", annotation=LogLevel
        )),
        ('log_json', inspect.Parameter(
            'log_json', inspect.Parameter.KEYWORD_ONLY,
            default=False, annotation=LogJson
        )),
    ]

    def extractor(kwargs):
        return LoggingContext(
            log_level=str(kwargs.get('log_level', 'INFO')).upper(),
            json_format=bool(kwargs.get('log_json', False)),
        )

    return _create_param_decorator(param_specs, 'logging', extractor)(func)
