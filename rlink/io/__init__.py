"""File readers and writers for data frames."""
from .csv import CSV

__all__ = ["CSV"]
