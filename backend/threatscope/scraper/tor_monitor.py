"""Tor transport health monitoring."""

import asyncio
import contextlib
import ipaddress
import itertools
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

import httpx

from threatscope.clock import utcnow
from threatscope.scraper.fetcher import USER_AGENT

logger = logging.getLogger(__name__)

# Plain-text "what is my IP" services, queried through the proxy
IP_ENDPOINTS: list[str] = [
    "https://icanhazip.com",
    "https://ifconfig.me/ip",
    "https://ipinfo.io/ip",
    "https://api.ipify.org",
    "https://checkip.amazonaws.com",
    "https://ipecho.net/plain",
    "https://ident.me",
]

# JSON services and the field holding the address
JSON_IP_ENDPOINTS: list[tuple[str, str]] = [
    ("https://api.ipify.org?format=json", "ip"),
    ("https://check.torproject.org/api/ip", "IP"),
]

BOOTSTRAP_PROGRESS = re.compile(rb"PROGRESS=(\d+)")


class TransportState(str, Enum):
    """Lifecycle of the anonymizing transport."""

    DISCONNECTED = "disconnected"
    BOOTSTRAPPING = "bootstrapping"
    CONNECTED = "connected"


@dataclass(frozen=True)
class TransportStatus:
    """
    Point-in-time view of the Tor transport.

    A status can only be ``connected`` with a non-empty exit identity; one
    built as connected without it is downgraded to ``bootstrapping``.
    """

    state: TransportState
    message: str
    exit_identity: str | None = None
    bootstrap_progress: int | None = None
    checked_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.state is TransportState.CONNECTED and not self.exit_identity:
            object.__setattr__(self, "state", TransportState.BOOTSTRAPPING)

    @property
    def is_connected(self) -> bool:
        return self.state is TransportState.CONNECTED

    @classmethod
    def disconnected(cls, message: str) -> "TransportStatus":
        return cls(TransportState.DISCONNECTED, message, bootstrap_progress=0)

    @classmethod
    def bootstrapping(cls, progress: int | None, message: str) -> "TransportStatus":
        return cls(TransportState.BOOTSTRAPPING, message, bootstrap_progress=progress)

    @classmethod
    def connected(cls, exit_identity: str) -> "TransportStatus":
        return cls(
            TransportState.CONNECTED,
            "Tor connection active",
            exit_identity=exit_identity,
            bootstrap_progress=100,
        )


class TransportProbe(Protocol):
    """Checks the transport once and reports what it found."""

    async def probe(self) -> TransportStatus: ...


class ExitIdentityError(Exception):
    """An IP endpoint answered, but not with a usable address."""


class TorProbe:
    """
    Probes a Tor SOCKS proxy.

    Steps: TCP reachability of the SOCKS port, the optional control-port
    bootstrap percentage, then exit IP discovery through the proxy with
    every endpoint raced concurrently and the first valid answer kept.
    """

    def __init__(
        self,
        proxy_url: str,
        timeout_seconds: float = 10.0,
        connect_timeout_seconds: float = 1.0,
        control_host: str | None = None,
        control_port: int = 9051,
        control_password: str = "",
    ):
        proxy = httpx.URL(proxy_url)
        self.proxy_host = proxy.host
        self.proxy_port = proxy.port or 9050
        self.timeout_seconds = timeout_seconds
        self.connect_timeout_seconds = connect_timeout_seconds
        self.control_host = control_host
        self.control_port = control_port
        self.control_password = control_password
        self.http = httpx.AsyncClient(
            proxy=proxy_url,
            timeout=timeout_seconds,
            headers={"User-Agent": USER_AGENT},
        )

    async def probe(self) -> TransportStatus:
        error = await self._port_error()
        if error is not None:
            return TransportStatus.disconnected(
                f"Tor SOCKS5 port unreachable at {self.proxy_host}:{self.proxy_port}: {error}"
            )

        progress = await self._control_bootstrap_progress()
        if progress is not None and progress < 100:
            return TransportStatus.bootstrapping(progress, f"Tor is bootstrapping ({progress}%)")

        identity, responded, errors = await self._resolve_exit_identity()
        if identity:
            return TransportStatus.connected(identity)
        if responded:
            return TransportStatus.bootstrapping(
                progress or 90, "Tor connected but IP check failed: no valid address returned"
            )
        detail = errors[0] if errors else "no endpoint answered"
        return TransportStatus.bootstrapping(
            progress or 50, f"Tor proxy active but unable to retrieve exit IP: {detail}"
        )

    async def _port_error(self) -> str | None:
        """None if the SOCKS port accepts connections, else the error text."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.proxy_host, self.proxy_port),
                timeout=self.connect_timeout_seconds,
            )
        except TimeoutError:
            return "connection timed out"
        except OSError as e:
            return str(e) or type(e).__name__
        writer.close()
        return None

    async def _control_bootstrap_progress(self) -> int | None:
        """Ask the control port for the bootstrap percentage, if one is configured."""
        if not self.control_host:
            return None
        password = self.control_password.replace("\\", "\\\\").replace('"', '\\"')
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.control_host, self.control_port),
                timeout=self.connect_timeout_seconds,
            )
        except (OSError, TimeoutError) as e:
            logger.debug("Tor control port unavailable: %s", e)
            return None

        try:
            writer.write(f'AUTHENTICATE "{password}"\r\n'.encode())
            await writer.drain()
            reply = await asyncio.wait_for(reader.readline(), timeout=self.timeout_seconds)
            if not reply.startswith(b"250"):
                logger.warning("Tor control authentication rejected: %r", reply.strip())
                return None
            writer.write(b"GETINFO status/bootstrap-phase\r\n")
            await writer.drain()
            reply = await asyncio.wait_for(reader.readline(), timeout=self.timeout_seconds)
        except (OSError, TimeoutError) as e:
            logger.debug("Tor control query failed: %s", e)
            return None
        finally:
            writer.close()

        match = BOOTSTRAP_PROGRESS.search(reply)
        return int(match.group(1)) if match else None

    async def _ask_endpoint(self, url: str, json_field: str | None) -> str:
        response = await self.http.get(url)
        if response.status_code != 200:
            raise ExitIdentityError(f"{url} returned {response.status_code}")
        try:
            value = response.json()[json_field] if json_field else response.text
            return str(ipaddress.ip_address(str(value).strip()))
        except (ValueError, KeyError, TypeError) as e:
            raise ExitIdentityError(f"{url} returned no IP address") from e

    async def _resolve_exit_identity(self) -> tuple[str | None, bool, list[str]]:
        """
        Race all IP endpoints through the proxy.

        Returns:
            (exit IP or None, whether any endpoint answered at all, error messages)
        """
        endpoints: list[tuple[str, str | None]] = [(url, None) for url in IP_ENDPOINTS]
        endpoints += JSON_IP_ENDPOINTS
        tasks = [asyncio.create_task(self._ask_endpoint(url, key)) for url, key in endpoints]
        responded = False
        errors: list[str] = []
        try:
            for next_done in asyncio.as_completed(tasks, timeout=self.timeout_seconds):
                try:
                    return await next_done, True, errors
                except ExitIdentityError as e:
                    responded = True
                    errors.append(str(e))
                except httpx.HTTPError as e:
                    errors.append(f"{type(e).__name__}: {e}")
        except TimeoutError:
            errors.append(f"exit IP lookup timed out after {self.timeout_seconds:g}s")
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return None, responded, errors

    async def close(self) -> None:
        await self.http.aclose()


def refresh_intervals() -> Iterable[float]:
    """Seconds between checks: a fast burst after startup, then a steady pace."""
    return itertools.chain(
        itertools.repeat(2.0, 15),
        itertools.repeat(5.0, 12),
        itertools.repeat(15.0),
    )


class TransportMonitor:
    """
    Keeps the last known transport status.

    ``status()`` never waits on the network; a background task refreshes
    the snapshot on the ``refresh_intervals`` schedule and whenever
    ``request_refresh()`` is called.
    """

    def __init__(
        self,
        probe: TransportProbe,
        intervals: Callable[[], Iterable[float]] = refresh_intervals,
    ):
        self.probe = probe
        self.intervals = intervals
        self._status = TransportStatus.disconnected("Tor status not checked yet")
        self._lock = asyncio.Lock()
        self._wake = asyncio.Event()
        self._changed = asyncio.Event()
        self._task: asyncio.Task | None = None

    def status(self) -> TransportStatus:
        """Last known status, returned immediately."""
        return self._status

    async def refresh(self) -> TransportStatus:
        """Run one probe and publish the result."""
        async with self._lock:
            try:
                status = await self.probe.probe()
            except Exception as e:
                logger.exception("Tor probe raised")
                status = TransportStatus.disconnected(f"Tor status check failed: {e}")
            self._publish(status)
        return status

    def _publish(self, status: TransportStatus) -> None:
        previous = self._status
        self._status = status
        if previous.state is not status.state:
            logger.info("Tor transport %s -> %s: %s", previous.state.value, status.state.value, status.message)
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

    def request_refresh(self) -> None:
        """Wake the refresh loop early."""
        self._wake.set()

    async def wait_until_connected(self, timeout: float) -> TransportStatus:
        """Wait for the loop to report ``connected``; returns the last status on timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not self._status.is_connected:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            changed = self._changed
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(changed.wait(), timeout=remaining)
        return self._status

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="tor-monitor")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        for delay in self.intervals():
            self._wake.clear()
            await self.refresh()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._wake.wait(), timeout=delay)
