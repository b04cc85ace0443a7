"""Infrastructure layer exports."""

from .converter import ConverterClient, ConverterError

__all__ = [
    "ConverterClient",
    "ConverterError",
]
