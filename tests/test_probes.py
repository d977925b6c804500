import asyncio
import logging
import math

import pytest

from sheetping import ping
from sheetping.errors import ProbeError
from sheetping.hosts import Target
from sheetping.stats import drops, jitter, mean_rtt, summarize

LINUX_OUTPUT = """PING 8.8.8.8 (8.8.8.8) 56(84) bytes of data.
64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=10.0 ms
64 bytes from 8.8.8.8: icmp_seq=2 ttl=117 time=14.0 ms
64 bytes from 8.8.8.8: icmp_seq=3 ttl=117 time=12.0 ms

--- 8.8.8.8 ping statistics ---
3 packets transmitted, 3 received, 0% packet loss, time 2003ms
rtt min/avg/max/mdev = 10.0/12.0/14.0/1.633 ms
"""

LOSSY_OUTPUT = """PING db (10.0.0.5) 56(84) bytes of data.
64 bytes from 10.0.0.5: icmp_seq=2 ttl=64 time=0.5 ms

--- db ping statistics ---
3 packets transmitted, 1 received, 66.6667% packet loss, time 2040ms
"""

DOWN_OUTPUT = """PING web (10.0.0.6) 56(84) bytes of data.

--- web ping statistics ---
4 packets transmitted, 0 received, 100% packet loss, time 3060ms
"""


def test_mean_and_jitter():
    samples = [10.0, 14.0, 12.0]
    assert mean_rtt(samples) == 12.0
    # |10-14| + |14-12| over 2 pairs
    assert jitter(samples) == 3.0


def test_jitter_single_and_no_samples_is_zero():
    assert jitter([42.0]) == 0.0
    assert jitter([]) == 0.0
    assert not math.isnan(jitter([42.0]))
    assert mean_rtt([]) == 0.0


def test_drops_floored_at_zero():
    assert drops(5, 3) == 2
    assert drops(3, 4) == 0


def test_summarize_without_replies():
    result = summarize(Target("x"), 4, 0, [])
    assert result.sent == 4
    assert result.drops == 4
    assert result.rtt == 0.0
    assert result.jtt == 0.0


def test_parse_ping_output():
    result = ping.parse_ping_output(Target("8.8.8.8"), LINUX_OUTPUT)
    assert result.sent == 3
    assert result.received == 3
    assert result.drops == 0
    assert result.rtt == 12.0
    assert result.jtt == 3.0


def test_parse_ping_output_single_reply():
    result = ping.parse_ping_output(Target("db"), LOSSY_OUTPUT)
    assert result.sent == 3
    assert result.drops == 2
    assert result.rtt == 0.5
    assert result.jtt == 0.0


def test_parse_ping_output_without_summary():
    with pytest.raises(ProbeError, match="Network is unreachable"):
        ping.parse_ping_output(Target("x"), "connect: Network is unreachable\n")


@pytest.fixture
def fake_network(monkeypatch):
    """Replace name resolution and the ping command with canned answers."""
    outputs = {"8.8.8.8": LINUX_OUTPUT, "db": LOSSY_OUTPUT, "web": DOWN_OUTPUT}
    calls = []

    async def fake_resolve(name):
        if name not in outputs:
            raise ProbeError("unable to resolve: Name or service not known")

    async def fake_run_ping(name, count):
        calls.append((name, count))
        await asyncio.sleep(0)
        return outputs[name]

    monkeypatch.setattr(ping, "resolve", fake_resolve)
    monkeypatch.setattr(ping, "run_ping", fake_run_ping)
    return calls


def test_run_probes_keeps_target_order(fake_network):
    targets = [Target("web"), Target("8.8.8.8"), Target("db")]
    results = asyncio.run(ping.run_probes(3, targets))
    assert [r.target.name for r in results] == ["web", "8.8.8.8", "db"]
    assert sorted(fake_network) == [("8.8.8.8", 3), ("db", 3), ("web", 3)]
    web = results[0]
    assert web.sent == 4 and web.drops == 4 and web.jtt == 0.0


def test_run_probes_omits_unresolvable_targets(fake_network, caplog):
    targets = [Target("nowhere.invalid"), Target("db")]
    with caplog.at_level(logging.WARNING):
        results = asyncio.run(ping.run_probes(3, targets))
    assert [r.target.name for r in results] == ["db"]
    assert "nowhere.invalid" in caplog.text
    # Nothing was sent to the target that failed to resolve
    assert fake_network == [("db", 3)]


def test_run_probes_with_no_targets():
    assert asyncio.run(ping.run_probes(3, [])) == []


def test_probe_target_when_ping_is_missing(monkeypatch):
    async def fake_resolve(name):
        return None

    async def broken_run_ping(name, count):
        raise ProbeError("unable to run ping: No such file or directory")

    monkeypatch.setattr(ping, "resolve", fake_resolve)
    monkeypatch.setattr(ping, "run_ping", broken_run_ping)
    assert asyncio.run(ping.probe_target(Target("8.8.8.8"), 1)) is None


def test_resolve_failure_raises_probe_error():
    with pytest.raises(ProbeError):
        asyncio.run(ping.resolve("name.invalid"))


def test_malformed_target_name_only_drops_that_target(monkeypatch):
    async def fake_run_ping(name, count):
        return LINUX_OUTPUT

    # Real resolution: the empty label fails in the idna codec
    monkeypatch.setattr(ping, "run_ping", fake_run_ping)
    results = asyncio.run(ping.run_probes(1, [Target("127.0.0.1"), Target("bad..name")]))
    assert [r.target.name for r in results] == ["127.0.0.1"]


def test_resolve_malformed_name_raises_probe_error():
    with pytest.raises(ProbeError):
        asyncio.run(ping.resolve("a" * 64 + ".example"))


class FakeProcess:
    def __init__(self, output=b"", hang=False):
        self.output = output
        self.hang = hang
        self.killed = False
        self.returncode = 0

    async def communicate(self):
        if self.hang:
            await asyncio.Event().wait()
        return self.output, None

    def kill(self):
        self.killed = True

    async def wait(self):
        return self.returncode


def fake_exec(monkeypatch, proc):
    calls = []

    async def create_subprocess_exec(*argv, **kwargs):
        calls.append(argv)
        return proc

    monkeypatch.setattr(ping.asyncio, "create_subprocess_exec", create_subprocess_exec)
    return calls


def test_run_ping_command_line(monkeypatch):
    calls = fake_exec(monkeypatch, FakeProcess(LINUX_OUTPUT.encode()))
    assert asyncio.run(ping.run_ping("8.8.8.8", 3)) == LINUX_OUTPUT
    assert calls == [("ping", "-n", "-c", "3", "-i", "1", "-W", "3", "8.8.8.8")]


def test_run_ping_kills_process_past_deadline(monkeypatch):
    monkeypatch.setattr(ping.config, "PROBE_SPACING_SECONDS", 0.0)
    monkeypatch.setattr(ping.config, "PROBE_TIMEOUT_SECONDS", 0.01)
    monkeypatch.setattr(ping.config, "PROBE_GRACE_SECONDS", 0.0)
    proc = FakeProcess(hang=True)
    fake_exec(monkeypatch, proc)
    with pytest.raises(ProbeError, match="no answer"):
        asyncio.run(ping.run_ping("8.8.8.8", 3))
    assert proc.killed


def test_run_ping_without_ping_binary(monkeypatch):
    async def missing(*argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "ping")

    monkeypatch.setattr(ping.asyncio, "create_subprocess_exec", missing)
    with pytest.raises(ProbeError, match="unable to run ping"):
        asyncio.run(ping.run_ping("8.8.8.8", 1))
