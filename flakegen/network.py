"""Private IPv4 discovery used to derive a default machine id."""

import ipaddress
import socket

import psutil

from core.errors import NoPrivateAddressError

PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


def is_private_ipv4(address):
    """True for a non-loopback IPv4 address inside an RFC1918 block."""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    if ip.version != 4 or ip.is_loopback:
        return False
    return any(ip in network for network in PRIVATE_NETWORKS)


def host_ipv4_addresses():
    """IPv4 addresses bound to this host's network interfaces, without duplicates."""
    addresses = [
        addr.address
        for addrs in psutil.net_if_addrs().values()
        for addr in addrs
        if addr.family == socket.AF_INET
    ]
    return list(dict.fromkeys(addresses))


def resolve_private_ipv4(addresses=None):
    """Return the first private IPv4 address as an ipaddress.IPv4Address.

    ``addresses`` overrides host enumeration, which keeps tests off the
    network stack.
    """
    if addresses is None:
        addresses = host_ipv4_addresses()
    for address in addresses:
        if is_private_ipv4(address):
            return ipaddress.IPv4Address(address)
    raise NoPrivateAddressError("No private IP address found.",
                                context={"candidates": [str(a) for a in addresses]})
