from .base import Base, BaseModel
from .local_flag import LocalFlag

__all__ = ["Base", "BaseModel", "LocalFlag"]
