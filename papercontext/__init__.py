"""papercontext: evidence retrieval and context-budget packing for paper chat."""

__version__ = "0.3.0"
