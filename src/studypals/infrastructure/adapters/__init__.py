# Infrastructure Adapters Package
from .json_store import JsonFileStore

__all__ = ["JsonFileStore"]
