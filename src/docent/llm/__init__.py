from .client_factory import ClientFactory

__all__ = ["ClientFactory"]
