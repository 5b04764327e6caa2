"""
Delivery of metric batches to a Carbon plaintext endpoint.
"""

from .transmitter import MAX_UDP_PAYLOAD, Transmitter, chunk_lines, format_value, render_lines

__all__ = [
    "MAX_UDP_PAYLOAD",
    "Transmitter",
    "chunk_lines",
    "format_value",
    "render_lines",
]
