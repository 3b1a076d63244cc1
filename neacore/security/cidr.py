"""IPv4/IPv6 CIDR membership checks on integer representations.

Addresses are converted to unsigned integers (32 bit for IPv4, 128 bit for
IPv6) and compared under the prefix mask::

    (address & mask) == (network & mask)

The address family is chosen by the presence of ``:`` in the candidate
address. IPv4-mapped IPv6 addresses (``::ffff:a.b.c.d``) are normalised to
their IPv4 form first, so a proxy seen through a dual-stack socket still
matches IPv4 ranges.

A bad IPv6 literal raises ``MalformedAddressError`` instead of returning
False: it means a broken trusted range or a caller bug, never user input.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final, Literal

from neacore.core.exceptions import MalformedAddressError

IPV4_BITS: Final[int] = 32
IPV6_BITS: Final[int] = 128
IPV6_GROUPS: Final[int] = 8
IPV4_MAPPED_PREFIX: Final[str] = "::ffff:"

INVALID_IPV6_MESSAGE: Final[str] = "Invalid IPv6 address"


def normalize_address(ip: str) -> str:
    """Strip surrounding whitespace and the IPv4-mapped IPv6 prefix.

    Examples:
        >>> normalize_address("::ffff:10.0.0.1")
        '10.0.0.1'
        >>> normalize_address("2001:db8::1")
        '2001:db8::1'
    """
    ip = ip.strip()
    if ip.lower().startswith(IPV4_MAPPED_PREFIX) and "." in ip:
        return ip[len(IPV4_MAPPED_PREFIX) :]
    return ip


def is_ipv4(ip: str) -> bool:
    """Check that ``ip`` is a dotted quad with octets in 0-255."""
    octets = ip.split(".")
    return len(octets) == 4 and all(
        o.isdigit() and len(o) <= 3 and int(o) <= 255 for o in octets
    )


def ip_to_long(ip: str) -> int:
    """Convert a dotted-quad IPv4 address to an unsigned 32-bit integer.

    Examples:
        >>> ip_to_long("127.0.0.1")
        2130706433
    """
    result = 0
    for octet in ip.split("."):
        result = (result << 8) + int(octet, 10)
    return result & 0xFFFFFFFF


def long_to_ip(value: int) -> str:
    """Convert an unsigned 32-bit integer back to dotted-quad form."""
    return ".".join(str((value >> shift) & 0xFF) for shift in (24, 16, 8, 0))


def _split_cidr(cidr: str, default_bits: int) -> tuple[str, int]:
    base, _, bits = cidr.strip().partition("/")
    return base, int(bits) if bits else default_bits


def _mask(prefix_bits: int, width: int) -> int:
    if prefix_bits <= 0:
        return 0
    full = (1 << width) - 1
    return (full << (width - min(prefix_bits, width))) & full


def check_ipv4_in_cidr(ip: str, cidr: str) -> bool:
    """Check whether an IPv4 address lies in ``cidr`` (prefix defaults to /32)."""
    base, bits = _split_cidr(cidr, IPV4_BITS)
    mask = _mask(bits, IPV4_BITS)
    return (ip_to_long(ip) & mask) == (ip_to_long(base) & mask)


def convert_ipv6_to_int(ip: str) -> int:
    """Convert an IPv6 address, ``::`` compression included, to a 128-bit int.

    Args:
        ip: Textual IPv6 address.

    Returns:
        int: The address as an unsigned 128-bit integer.

    Raises:
        MalformedAddressError: If ``ip`` contains no ``:`` or does not expand
            to eight hexadecimal groups.

    Examples:
        >>> convert_ipv6_to_int("::1")
        1
    """
    if ":" not in ip:
        raise MalformedAddressError(INVALID_IPV6_MESSAGE, context={"address": ip})

    head, sep, tail = ip.partition("::")
    if "::" in tail:
        raise MalformedAddressError(INVALID_IPV6_MESSAGE, context={"address": ip})
    head_groups = [g for g in head.split(":") if g] if head else []
    tail_groups = [g for g in tail.split(":") if g] if tail else []

    if sep:
        padding = IPV6_GROUPS - len(head_groups) - len(tail_groups)
        groups = [*head_groups, *(["0"] * padding), *tail_groups]
    else:
        groups = ip.split(":")

    if len(groups) != IPV6_GROUPS:
        raise MalformedAddressError(INVALID_IPV6_MESSAGE, context={"address": ip})

    result = 0
    for group in groups:
        try:
            value = int(group, 16)
        except ValueError as e:
            raise MalformedAddressError(
                INVALID_IPV6_MESSAGE, context={"address": ip}, cause=e
            ) from e
        if not 0 <= value <= 0xFFFF:
            raise MalformedAddressError(INVALID_IPV6_MESSAGE, context={"address": ip})
        result = (result << 16) | value
    return result


def check_ipv6_in_cidr(ip: str, cidr: str) -> bool:
    """Check whether an IPv6 address lies in ``cidr`` (prefix defaults to /128)."""
    base, bits = _split_cidr(cidr, IPV6_BITS)
    mask = _mask(bits, IPV6_BITS)
    return (convert_ipv6_to_int(ip) & mask) == (convert_ipv6_to_int(base) & mask)


@dataclass(frozen=True, slots=True)
class CidrRange:
    """A pre-parsed CIDR block.

    Attributes:
        network: Base address as an integer, already masked.
        prefix_bits: Prefix length.
        family: 4 or 6.
    """

    network: int
    prefix_bits: int
    family: Literal[4, 6]

    @property
    def mask(self) -> int:
        """Bit mask of the prefix for this family."""
        return _mask(self.prefix_bits, IPV4_BITS if self.family == 4 else IPV6_BITS)

    def contains(self, ip: str) -> bool:
        """Check whether ``ip`` belongs to this block.

        Addresses of the other family never match.
        """
        ip = normalize_address(ip)
        if ":" in ip:
            if self.family != 6:
                return False
            value = convert_ipv6_to_int(ip)
        else:
            if self.family != 4 or not is_ipv4(ip):
                return False
            value = ip_to_long(ip)
        return (value & self.mask) == self.network

    def __str__(self) -> str:
        """Return the CIDR in textual form (IPv6 without compression)."""
        if self.family == 4:
            return f"{long_to_ip(self.network)}/{self.prefix_bits}"
        groups = [f"{(self.network >> (16 * i)) & 0xFFFF:x}" for i in range(7, -1, -1)]
        return f"{':'.join(groups)}/{self.prefix_bits}"


def parse_cidr(text: str) -> CidrRange:
    """Parse ``base[/bits]`` into a ``CidrRange``.

    Args:
        text: CIDR text such as ``173.245.48.0/20`` or ``2400:cb00::/32``.

    Returns:
        CidrRange: The parsed, masked block.

    Raises:
        MalformedAddressError: If the base address or prefix is invalid.
    """
    text = text.strip()
    family: Literal[4, 6] = 6 if ":" in text else 4
    width = IPV6_BITS if family == 6 else IPV4_BITS

    try:
        base, bits = _split_cidr(text, width)
    except ValueError as e:
        raise MalformedAddressError(
            f"Invalid CIDR prefix: {text}", context={"cidr": text}, cause=e
        ) from e
    if not 0 <= bits <= width:
        raise MalformedAddressError(
            f"Invalid CIDR prefix: {text}", context={"cidr": text}
        )

    if family == 6:
        value = convert_ipv6_to_int(base)
    else:
        if not is_ipv4(base):
            raise MalformedAddressError(
                f"Invalid IPv4 address: {base}", context={"cidr": text}
            )
        value = ip_to_long(base)

    return CidrRange(
        network=value & _mask(bits, width), prefix_bits=bits, family=family
    )


def ip_in_range(ip: str, cidr: str | CidrRange) -> bool:
    """Check ``ip`` against one CIDR, dispatching on the address family."""
    if isinstance(cidr, CidrRange):
        return cidr.contains(ip)

    ip = normalize_address(ip)
    if ":" in ip:
        # An IPv4 range can never hold an IPv6 address
        return ":" in cidr and check_ipv6_in_cidr(ip, cidr)
    return ":" not in cidr and check_ipv4_in_cidr(ip, cidr)


def ip_in_any_range(ip: str, cidrs: Iterable[str | CidrRange]) -> bool:
    """Check ``ip`` against every CIDR, stopping at the first match."""
    return any(ip_in_range(ip, cidr) for cidr in cidrs)
