from .client import SupabaseBackend

__all__ = ["SupabaseBackend"]
