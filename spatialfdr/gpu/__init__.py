"""GPU acceleration utilities."""

from spatialfdr.gpu.backend import GPU_AVAILABLE, ensure_numpy, get_array_module

__all__ = ["GPU_AVAILABLE", "ensure_numpy", "get_array_module"]
