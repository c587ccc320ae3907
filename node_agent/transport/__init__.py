from .mtls import MTLSAdapter, TransportConfigError, build_ssl_context, new_mtls_session

__all__ = ["MTLSAdapter", "TransportConfigError", "build_ssl_context", "new_mtls_session"]
