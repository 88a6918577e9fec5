from flakegen.generator import (
    BIT_LEN_MACHINE_ID,
    BIT_LEN_SEQUENCE,
    BIT_LEN_TIME,
    MAX_ELAPSED_TIME,
    TIME_UNIT_NS,
    Generator,
    pack,
)
from flakegen.network import is_private_ipv4, resolve_private_ipv4
from flakegen.settings import (
    MAX_MACHINE_ID,
    Settings,
    derive_machine_id,
    validate_machine_id,
    validate_start_time,
)

__all__ = [
    "BIT_LEN_MACHINE_ID",
    "BIT_LEN_SEQUENCE",
    "BIT_LEN_TIME",
    "MAX_ELAPSED_TIME",
    "MAX_MACHINE_ID",
    "TIME_UNIT_NS",
    "Generator",
    "Settings",
    "derive_machine_id",
    "is_private_ipv4",
    "pack",
    "resolve_private_ipv4",
    "validate_machine_id",
    "validate_start_time",
]
