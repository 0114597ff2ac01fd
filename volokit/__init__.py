"""IDL configuration management, the volo command and gRPC client utilities."""

__version__ = "0.1.0"