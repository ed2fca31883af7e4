"""Public API for the lexpack dataset loaders."""

from __future__ import annotations

from .config import ConfigurationError, DatasetConfig
from .container import encode_container, parse_container
from .data_manager import DataManager, NotInitializedError
from .format import FormatError, HeaderFormatError, write_dataset
from .packed import PackedDataManager
from .platforms import EmbeddedDataManager, PlatformProfile, create_data_manager, register_platform
from .pos import ConjugationForm, PosMatcher, PosToken, PosTokenTable, RangeTableSet
from .registry import (
    DatasetRegistry,
    get_packed_data_manager,
    get_user_pos_manager,
    register_packed_data_manager,
)
from .resource_limits import ResourceBudget, ResourceBudgetExceeded, ResourceError

__all__ = [
    "ConfigurationError",
    "ConjugationForm",
    "DataManager",
    "DatasetConfig",
    "DatasetRegistry",
    "EmbeddedDataManager",
    "FormatError",
    "HeaderFormatError",
    "NotInitializedError",
    "PackedDataManager",
    "PlatformProfile",
    "PosMatcher",
    "PosToken",
    "PosTokenTable",
    "RangeTableSet",
    "ResourceBudget",
    "ResourceBudgetExceeded",
    "ResourceError",
    "create_data_manager",
    "encode_container",
    "get_packed_data_manager",
    "get_user_pos_manager",
    "parse_container",
    "register_packed_data_manager",
    "register_platform",
    "write_dataset",
]
