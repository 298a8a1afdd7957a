"""Loading SMS exports into ``RawMessage`` sequences."""

from .utils import load_messages_from_csv

__all__ = ["load_messages_from_csv"]
