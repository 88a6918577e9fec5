"""Validated, immutable generator settings."""

import ipaddress
from datetime import datetime, timezone

from core.errors import InvalidMachineIdError, InvalidStartTimeError, NoPrivateAddressError
from flakegen.network import resolve_private_ipv4
from internal.logging import get_logger

MAX_MACHINE_ID = (1 << 16) - 1


def _as_utc(instant):
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def validate_start_time(start_time, now=None):
    """Return ``start_time`` as an aware UTC datetime, or raise.

    Naive datetimes are read as UTC. A start time equal to ``now`` is valid.
    """
    if start_time is None:
        raise InvalidStartTimeError("Start time cannot be None")
    if not isinstance(start_time, datetime):
        raise InvalidStartTimeError(f"Start time must be a datetime, got {type(start_time).__name__}",
                                    start_time=start_time)
    start_time = _as_utc(start_time)
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    if start_time > now:
        raise InvalidStartTimeError(f"Start time cannot be in the future: {start_time.isoformat()}",
                                    start_time=start_time)
    return start_time


def validate_machine_id(machine_id):
    # bool is an int subclass; True as a machine id is always a mistake
    if not isinstance(machine_id, int) or isinstance(machine_id, bool):
        raise InvalidMachineIdError(f"MachineId must be an int, got {type(machine_id).__name__}")
    if machine_id < 0 or machine_id > MAX_MACHINE_ID:
        raise InvalidMachineIdError(f"MachineId is out of range: {machine_id}", machine_id=machine_id)
    return machine_id


def machine_id_from_address(address):
    """Low 16 bits of an IPv4 address (third and fourth octets)."""
    octets = ipaddress.IPv4Address(address).packed
    return (octets[2] << 8) | octets[3]


def derive_machine_id(resolver=None):
    """Machine id from the host's private IPv4 address.

    Best effort only: hosts sharing the low 16 bits of their address collide.
    ``resolver`` is a zero-argument callable returning an IPv4Address and
    defaults to resolve_private_ipv4.
    """
    resolver = resolver or resolve_private_ipv4
    try:
        address = resolver()
        machine_id = machine_id_from_address(address)
    except NoPrivateAddressError:
        raise
    except Exception as exc:
        raise InvalidMachineIdError("Failed to generate Machine ID.", cause=exc) from exc

    get_logger("flakegen.settings").info("Derived machine id from private address",
                                         address=str(address), machine_id=machine_id)
    return machine_id


class Settings:
    """Start time and machine id for one Generator. Build with Settings.of()."""

    __slots__ = ("_start_time", "_machine_id")

    def __init__(self, start_time, machine_id):
        object.__setattr__(self, "_start_time", validate_start_time(start_time))
        object.__setattr__(self, "_machine_id", validate_machine_id(machine_id))

    @classmethod
    def of(cls, start_time, machine_id=None, resolver=None):
        """Validate and build settings, deriving the machine id when omitted."""
        validate_start_time(start_time)
        if machine_id is None:
            machine_id = derive_machine_id(resolver)
        return cls(start_time, machine_id)

    @property
    def start_time(self):
        return self._start_time

    @property
    def machine_id(self):
        return self._machine_id

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, other):
        if not isinstance(other, Settings):
            return NotImplemented
        return (self._start_time, self._machine_id) == (other._start_time, other._machine_id)

    def __hash__(self):
        return hash((self._start_time, self._machine_id))

    def __repr__(self):
        return f"Settings(start_time={self._start_time.isoformat()}, machine_id={self._machine_id})"

    def to_dict(self):
        return {"start_time": self._start_time.isoformat(), "machine_id": self._machine_id}
