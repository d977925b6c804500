from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import socket
from typing import List, Optional, Sequence

from . import config
from .errors import ProbeError
from .hosts import Target
from .stats import ProbeResult, summarize

log = logging.getLogger(__name__)

PING_RTT_RE = re.compile(r"time[=<]([0-9]*\.?[0-9]+) ?ms")
PING_SENT_RE = re.compile(r"(\d+) packets transmitted")
PING_RECV_RE = re.compile(r"(\d+) (?:packets )?received")


async def resolve(name: str) -> None:
    loop = asyncio.get_running_loop()
    try:
        await loop.getaddrinfo(name, None)
    # Malformed names (empty or over-long labels) fail in the idna codec
    except (socket.gaierror, UnicodeError) as err:
        raise ProbeError(f"unable to resolve: {err}") from err


async def run_ping(name: str, count: int) -> str:
    """Ping a host ``count`` times using the system 'ping' command (Linux-focused).

    Uses: ping -n -c {count} -i {spacing} -W {timeout} host
    Returns the combined stdout/stderr text.
    """
    # -n : numeric output (avoid DNS reverse lookups slowing us)
    # -W : seconds to wait for each reply
    try:
        proc = await asyncio.create_subprocess_exec(
            "ping",
            "-n",
            "-c",
            str(count),
            "-i",
            f"{config.PROBE_SPACING_SECONDS:g}",
            "-W",
            str(int(config.PROBE_TIMEOUT_SECONDS)),
            name,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as err:
        raise ProbeError(f"unable to run ping: {err}") from err

    deadline = (
        count * config.PROBE_SPACING_SECONDS
        + config.PROBE_TIMEOUT_SECONDS
        + config.PROBE_GRACE_SECONDS
    )
    try:
        out_bytes = await asyncio.wait_for(proc.communicate(), timeout=deadline)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise ProbeError(f"no answer within {deadline:.0f}s") from None
    return out_bytes[0].decode(errors="replace")


def parse_ping_output(target: Target, output: str) -> ProbeResult:
    """Turn ping output into a ProbeResult.

    Raises ProbeError when the summary line is missing, which is how ping
    reports errors like an unreachable network.
    """
    sent = PING_SENT_RE.search(output)
    received = PING_RECV_RE.search(output)
    if not sent or not received:
        last_line = output.strip().splitlines()[-1:] or ["no output"]
        raise ProbeError(last_line[0])
    samples = [float(m) for m in PING_RTT_RE.findall(output)]
    return summarize(target, int(sent.group(1)), int(received.group(1)), samples)


async def probe_target(target: Target, count: int) -> Optional[ProbeResult]:
    """Probe one target. Failures are logged and give None."""
    try:
        await resolve(target.name)
        output = await run_ping(target.name, count)
        result = parse_ping_output(target, output)
    except ProbeError as err:
        log.warning("Ping had an issue with target `%s`: %s", target.name, err)
        return None
    log.debug(
        "Ping %s: sent=%d received=%d rtt=%.2fms jitter=%.2fms",
        target.name,
        result.sent,
        result.received,
        result.rtt,
        result.jtt,
    )
    return result


async def run_probes(count: int, targets: Sequence[Target]) -> List[ProbeResult]:
    """Probe every target concurrently and wait for all of them.

    Results keep target order. Targets that failed are left out, so the list
    can be shorter than ``targets``.
    """
    for idx, target in enumerate(targets, start=1):
        log.debug("Run ping %d: %s", idx, target.name)
    outcomes = await asyncio.gather(*(probe_target(t, count) for t in targets))
    return [r for r in outcomes if r is not None]
