from .vm_client import SeriesPusher, VictoriaMetricsClient

__all__ = ["SeriesPusher", "VictoriaMetricsClient"]
