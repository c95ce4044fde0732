"""
Byte-size helpers shared by device discovery and reporting.
"""

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB


class MemoryUtils:
    """Conversions between raw byte counts and human-readable units."""

    @staticmethod
    def format_gib(num_bytes: int) -> str:
        """Format a byte count as gigabytes with two decimals, e.g. '23.50 GiB'."""
        return f"{num_bytes / GIB:.2f} GiB"
