from .reporter import Reporter

__all__ = ["Reporter"]
