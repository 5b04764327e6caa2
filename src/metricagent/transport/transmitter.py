"""
Carbon plaintext transmitter.

Serializes a `MetricBatch` into ``<path> <value> <timestamp>\\n`` lines and
delivers them over UDP or TCP. Failed deliveries are not retried; the next
tick's batch supersedes the lost one.
"""

import logging
import socket
from typing import Iterator, List, Optional, Tuple

from ..executor import CallGuard, CallGuardConfig
from ..models.config import Endpoint
from ..models.metrics import MetricBatch, Number
from ..validation import TransmissionError

logger = logging.getLogger(__name__)

# Keeps each datagram under a typical Ethernet MTU.
MAX_UDP_PAYLOAD = 1400


def format_value(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_lines(batch: MetricBatch) -> List[str]:
    """Render every batch entry as one newline-terminated plaintext line."""
    return [
        f"{path} {format_value(value)} {batch.timestamp}\n"
        for path, value in batch.items()
    ]


def chunk_lines(lines: List[str], max_bytes: int = MAX_UDP_PAYLOAD) -> Iterator[bytes]:
    """
    Pack lines into payloads of at most `max_bytes`.

    A line is never split; a single line longer than `max_bytes` goes out on
    its own.
    """
    buffer = b""
    for line in lines:
        encoded = line.encode("utf-8")
        if buffer and len(buffer) + len(encoded) > max_bytes:
            yield buffer
            buffer = b""
        buffer += encoded
    if buffer:
        yield buffer


class Transmitter:
    """
    Delivers batches to a Carbon endpoint.

    Name resolution runs under a `CallGuard` so a DNS lookup that never
    answers is bounded by the same timeout as the socket operations.

    Attributes:
        timeout: Timeout in seconds for resolution, connect and send.
    """

    def __init__(self, timeout: float = 5.0, call_guard: Optional[CallGuard] = None):
        self.timeout = timeout
        self.call_guard = call_guard or CallGuard(CallGuardConfig(thread_name_prefix="Resolve"))

    def send(self, batch: MetricBatch, endpoint: Endpoint, test_mode: bool = False) -> List[str]:
        """
        Send (or, in test mode, only render) a batch.

        Args:
            batch: The tick's batch; not retained after the call
            endpoint: Destination host, port and transport
            test_mode: Log the lines instead of sending them

        Returns:
            The rendered lines

        Raises:
            TransmissionError: If the lines could not be delivered
        """
        lines = render_lines(batch)

        if test_mode:
            logger.info(
                f"Test mode: {len(lines)} metric(s) not sent to "
                f"{endpoint.host}:{endpoint.port}"
            )
            for line in lines:
                logger.info(line.rstrip("\n"))
            return lines

        if not lines:
            logger.debug("Empty batch, nothing to send")
            return lines

        try:
            if endpoint.use_udp:
                self._send_udp(lines, endpoint)
            else:
                self._send_tcp(lines, endpoint)
        except (OSError, UnicodeError) as e:
            raise TransmissionError(
                f"Failed to send {len(lines)} metric(s) to "
                f"{endpoint.host}:{endpoint.port} "
                f"over {'udp' if endpoint.use_udp else 'tcp'}: {e}"
            ) from e

        logger.info(
            f"Sent {len(lines)} metric(s) to {endpoint.host}:{endpoint.port} "
            f"over {'udp' if endpoint.use_udp else 'tcp'}"
        )
        return lines

    def _resolve(self, endpoint: Endpoint, socktype: int) -> Tuple:
        """
        Resolve the endpoint to its first address.

        Raises:
            OSError: If resolution fails or does not finish within the timeout
        """
        key = (endpoint.host, endpoint.port, socktype)
        return self.call_guard.call(
            socket.getaddrinfo, self.timeout, endpoint.host, endpoint.port,
            type=socktype, call_key=key,
        )[0]

    def _send_udp(self, lines: List[str], endpoint: Endpoint) -> None:
        family, socktype, proto, _, address = self._resolve(endpoint, socket.SOCK_DGRAM)
        with socket.socket(family, socktype, proto) as sock:
            sock.settimeout(self.timeout)
            for payload in chunk_lines(lines):
                sock.sendto(payload, address)

    def _send_tcp(self, lines: List[str], endpoint: Endpoint) -> None:
        address = self._resolve(endpoint, socket.SOCK_STREAM)[4]
        with socket.create_connection(address[:2], timeout=self.timeout) as sock:
            sock.sendall("".join(lines).encode("utf-8"))
