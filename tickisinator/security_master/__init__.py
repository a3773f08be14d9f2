"""Security master: identifier store with multi-key upsert and lookup."""

from tickisinator.security_master.cache import LookupCache
from tickisinator.security_master.config import SecurityMasterConfig
from tickisinator.security_master.repository import (
    InvalidRecordError,
    SecurityMasterRepository,
)
from tickisinator.security_master.schemas import Security, SecurityRecord
from tickisinator.security_master.service import SecurityMasterService

__all__ = [
    "InvalidRecordError",
    "LookupCache",
    "Security",
    "SecurityMasterConfig",
    "SecurityMasterRepository",
    "SecurityMasterService",
    "SecurityRecord",
]
