from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from . import config
from .errors import AuthError, SheetNotFoundError, StoreError
from .hosts import Host, HostRegistry
from .ping import run_probes
from .stats import ProbeResult
from .store import TabularStore
from .timeseries import TimeSeriesSheet

log = logging.getLogger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(config.TIMESTAMP_FORMAT)


async def sleep_until_stopped(stop_event: asyncio.Event, seconds: float) -> None:
    """Sleep for ``seconds`` or until ``stop_event`` is set."""
    if seconds <= 0:
        return
    with contextlib.suppress(asyncio.TimeoutError):
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)


class Daemon:
    """Probe the targets of one host and report to its worksheet.

    ``host`` is replaced, never mutated, on each config refresh; a cycle works
    on the Host it was handed.
    """

    def __init__(
        self,
        store: TabularStore,
        hostname: str,
        secret: str,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.hostname = hostname
        self.secret = secret
        self.clock = clock
        self.host: Optional[Host] = None

    def sheet(self, host: Host) -> TimeSeriesSheet:
        return TimeSeriesSheet(self.store, host.hostname)

    def refresh_config(self) -> Host:
        """Pull the host config and authenticate. Raises AuthError or StoreError."""
        registry = HostRegistry()
        registry.build_hosts(self.store.read_rows(config.CONFIG_WORKSHEET))

        host = registry.authenticate(self.hostname, self.secret)
        if host is None:
            log.debug("Host authentication failed")
            raise AuthError("hostname and matching secret not found")
        log.debug("Host authentication successful")

        sheet_id = self.sheet(host).sheet_id()
        if sheet_id is None:
            log.warning("Host worksheet was not found, one will be created")
        else:
            log.debug("Host worksheet found with ID %d", sheet_id)
        host = dataclasses.replace(host, id=sheet_id)
        self.host = host
        return host

    def ensure_worksheet(self, host: Host) -> Host:
        """Create the host worksheet when it does not exist yet."""
        if host.id is not None:
            return host
        sheet = self.sheet(host)
        try:
            sheet.create()
            host = dataclasses.replace(host, id=sheet.sheet_id())
        except StoreError as err:
            log.error("Unable to create worksheet %s: %s", host.hostname, err)
            return host
        self.host = host
        return host

    def evict(self, host: Host) -> int:
        try:
            return self.sheet(host).evict(host.max_rows)
        except StoreError as err:
            log.error("Error when deleting rows: %s", err)
            return 0

    def report(self, host: Host, results: List[ProbeResult]) -> bool:
        """Write one measurement row. Returns False when the row was skipped."""
        sheet = self.sheet(host)
        try:
            headers = sheet.reconcile_headers(host.targets)
        except SheetNotFoundError:
            log.error("An error has occurred: worksheet may be missing")
            log.info("Attempt to re-create worksheet to solve issue")
            try:
                sheet.create()
            except StoreError as err:
                log.error("Unable to create worksheet %s: %s", host.hostname, err)
            return False
        except StoreError as err:
            log.warning("Got an error when setting headers: %s", err)
            return False

        try:
            sheet.append(headers, results, utc_timestamp())
        except StoreError as err:
            log.error("Error uploading results: %s", err)
            return False
        log.debug("Upload successful")

        try:
            sheet.refresh_snapshot(headers)
        except StoreError as err:
            log.warning("Got an error when setting latest row: %s", err)
        return True

    async def run_cycle(self, host: Host) -> bool:
        log.debug("Ping targets start")
        results = await run_probes(host.count, host.targets)
        log.debug("Ping returned %d target results", len(results))
        return self.report(host, results)

    async def run(self, stop_event: asyncio.Event) -> None:
        log.info("Start host daemon")
        host: Optional[Host] = None
        last_refresh = 0.0

        while not stop_event.is_set():
            if (
                host is None
                or self.clock() - last_refresh >= config.CONFIG_PULL_INTERVAL_SECONDS
            ):
                started = self.clock()
                log.info("Config update start")
                try:
                    fresh = self.refresh_config()
                except (AuthError, StoreError) as err:
                    retry = host.interval if host else config.FALLBACK_RETRY_SECONDS
                    log.error("An error has been encountered: %s", err)
                    log.info("We will try again in %.0f seconds", retry)
                    await sleep_until_stopped(stop_event, retry)
                    continue
                last_refresh = self.clock()
                log.info("Config update finish: duration %.2fs", last_refresh - started)
                host = self.ensure_worksheet(fresh)
                self.evict(host)

            started = self.clock()
            await self.run_cycle(host)
            elapsed = self.clock() - started
            pause = max(0.0, host.interval - elapsed)
            log.debug("Ping targets finish: duration %.2fs, sleep for %.2fs", elapsed, pause)
            await sleep_until_stopped(stop_event, pause)

        log.info("Stop host daemon")
