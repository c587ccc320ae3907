from .exporter import MetricsExporter, MetricsServer, parse_listen_address

__all__ = ["MetricsExporter", "MetricsServer", "parse_listen_address"]
