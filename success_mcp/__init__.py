"""Success.co EOS tools for LLM clients."""

__version__ = "0.1.0"
