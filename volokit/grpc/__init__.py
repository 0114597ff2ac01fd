"""gRPC status codes, compression, timeouts, request layers, call options and client building."""

__all__ = ["client", "compression", "config", "layers", "status", "timeout"]