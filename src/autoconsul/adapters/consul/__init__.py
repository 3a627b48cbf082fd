from .cli import ConsulCli

__all__ = ["ConsulCli"]
