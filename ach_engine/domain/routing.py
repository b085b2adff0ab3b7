"""ABA routing number checks"""

ROUTING_NUMBER_LENGTH = 9

# Weights applied to the nine digits: 3, 7, 1 repeating
_CHECKSUM_WEIGHTS = (3, 7, 1, 3, 7, 1, 3, 7, 1)


def routing_checksum(digits: str) -> int:
    """Weighted digit sum of a routing number"""
    return sum(int(d) * w for d, w in zip(digits, _CHECKSUM_WEIGHTS))


def is_valid_routing_number(routing_number: str) -> bool:
    """True if routing number is nine digits and the weighted sum is a multiple of 10"""
    if not routing_number or len(routing_number) != ROUTING_NUMBER_LENGTH:
        return False
    if not routing_number.isdigit():
        return False
    return routing_checksum(routing_number) % 10 == 0


def check_digit(first_eight: str) -> str:
    """Compute the ninth digit for an 8-digit DFI identifier"""
    if len(first_eight) != 8 or not first_eight.isdigit():
        raise ValueError(f"Expected 8 digits, got {first_eight!r}")
    partial = routing_checksum(first_eight)
    return str((10 - partial % 10) % 10)
