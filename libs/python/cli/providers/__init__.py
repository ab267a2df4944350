"""CLI providers for common service dependencies.

Each provider module exports:
- Type aliases: Annotated types for Typer CLI parameters
- Context class: Dataclass holding the provider's settings
- Decorator: Injects the provider's options into a Typer callback

Available providers:
- rabbitmq: RabbitMQ connection settings
- logging: Logging setup
"""
