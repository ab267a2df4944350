"""Reusable CLI components.

Provider decorators add groups of Typer options to a callback and store the
resulting typed context in ``ctx.obj``:

    ```python
    from libs.python.cli.providers.logging import logging_params
    from libs.python.cli.providers.rabbitmq import rmq_params

    app = typer.Typer()

    @app.callback()
    @rmq_params
    @logging_params
    def setup(ctx: typer.Context):
        ctx.obj['logging'].apply(service_name="billing-worker")
        uri = ctx.obj['rabbitmq'].build_uri()
    ```
"""
