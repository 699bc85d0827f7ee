"""Network address helpers."""

import ipaddress

# Rendered for packed values that are neither 4 nor 16 bytes long
INVALID_IP = "0.0.0.0"


def binary_to_string_ip(raw: bytes | bytearray | memoryview | None) -> str:
    """Convert a packed network address to its textual form.

    Args:
        raw: 4-byte IPv4 or 16-byte IPv6 address as stored in the log

    Returns:
        Dotted IPv4 / compressed IPv6 text. IPv4-mapped IPv6 addresses are
        rendered as plain IPv4. Anything else yields "0.0.0.0".
    """
    if raw is None:
        return INVALID_IP

    packed = bytes(raw)
    if len(packed) == 4:
        return str(ipaddress.IPv4Address(packed))

    if len(packed) == 16:
        address = ipaddress.IPv6Address(packed)
        if address.ipv4_mapped is not None:
            return str(address.ipv4_mapped)
        return str(address)

    return INVALID_IP


def string_to_binary_ip(ip: str) -> bytes:
    """Pack a textual IPv4/IPv6 address into its stored binary form.

    Raises:
        ValueError: if ``ip`` is not a valid address
    """
    return ipaddress.ip_address(ip.strip()).packed
