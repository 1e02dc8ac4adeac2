from app.models.base import Base  # noqa: F401
from app.models.storage_slot import StorageSlot  # noqa: F401
