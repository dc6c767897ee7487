"""DeviceStateSnapshot collection and representation."""

import os

import pytest
from pydantic import ValidationError

from analytics_core import DeviceProbe, DeviceStateSnapshot, HostProbe, merge_state
from analytics_core.device import constants as keys

ALL_KEYS = {
    "amu", "bl", "dct", "dor", "gps", "sbo", "tss",
    "cpu_user", "cpu_sys", "tds", "fds", "tsm", "sma",
}


class TestRepresentation:
    def test_every_metric_present(self, probe):
        rep = DeviceStateSnapshot(probe=probe).dictionary_representation()
        assert set(rep) == ALL_KEYS
        assert rep["amu"] == 52_428_800
        assert rep["bl"] == 0.75
        assert rep["dct"] == "wifi"
        assert rep["tds"] == 64_000_000_000
        assert rep["tss"] == 12.5

    def test_unavailable_gps_has_no_key(self, no_gps_probe):
        snapshot = DeviceStateSnapshot(probe=no_gps_probe)
        rep = snapshot.dictionary_representation()
        assert snapshot.gps_state is None
        assert "gps" not in rep
        assert set(rep) == ALL_KEYS - {"gps"}

    def test_idempotent(self, probe):
        snapshot = DeviceStateSnapshot(probe=probe)
        first = snapshot.dictionary_representation()
        first["bl"] = 0.0
        assert snapshot.dictionary_representation() == DeviceStateSnapshot(probe=probe).dictionary_representation()
        assert snapshot.dictionary_representation()["bl"] == 0.75

    def test_empty_snapshot(self):
        snapshot = DeviceStateSnapshot(probe=DeviceProbe())
        assert snapshot.dictionary_representation() == {}

    def test_from_values_does_not_probe(self):
        snapshot = DeviceStateSnapshot.from_values(battery_level=0.5)
        assert snapshot.dictionary_representation() == {"bl": 0.5}
        assert DeviceStateSnapshot.from_values().dictionary_representation() == {}

    def test_validation_never_collects(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("host metrics were read during validation")

        for name in DeviceStateSnapshot.metric_names():
            monkeypatch.setattr(HostProbe, name, fail)

        assert DeviceStateSnapshot.from_values().dictionary_representation() == {}
        assert DeviceStateSnapshot.model_validate({}).dictionary_representation() == {}
        assert DeviceStateSnapshot.model_validate_json("{}").dictionary_representation() == {}

    def test_empty_snapshot_rebuilds_empty(self):
        empty = DeviceStateSnapshot(probe=DeviceProbe())
        rebuilt = DeviceStateSnapshot.model_validate_json(empty.model_dump_json())
        assert rebuilt == empty
        assert rebuilt.dictionary_representation() == {}

    def test_collecting_still_works_after_rebuild(self, probe):
        DeviceStateSnapshot.model_validate({})
        assert DeviceStateSnapshot(probe=probe).battery_level == 0.75


class TestBreakdownLabels:
    def test_label_cannot_shadow_scalar_key(self):
        snapshot = DeviceStateSnapshot.from_values(battery_level=0.5, cpu_usage_info={"bl": 99.0, "cpu_user": 1.0})
        assert snapshot.dictionary_representation() == {"bl": 0.5, "cpu_user": 1.0}

    def test_breakdowns_cannot_collide(self):
        snapshot = DeviceStateSnapshot.from_values(
            disk_space_info={"total": 10, keys.DISK_FREE: 4},
            system_memory_info={"total": 20, keys.SYSTEM_MEMORY_TOTAL: 8},
        )
        assert snapshot.dictionary_representation() == {keys.DISK_FREE: 4, keys.SYSTEM_MEMORY_TOTAL: 8}

    def test_unknown_labels_from_collector_are_dropped(self, probe):
        class Chatty(type(probe)):
            def disk_space_info(self):
                return {keys.DISK_TOTAL: 100, keys.DISK_FREE: 40, "amu": 1}

        rep = DeviceStateSnapshot(probe=Chatty()).dictionary_representation()
        assert rep["amu"] == 52_428_800
        assert rep[keys.DISK_TOTAL] == 100


class TestFailureTolerance:
    def test_raising_metric_is_omitted(self, probe):
        class Flaky(type(probe)):
            def battery_level(self):
                raise OSError("battery service unavailable")

            def disk_space_info(self):
                raise PermissionError("sandboxed")

        rep = DeviceStateSnapshot(probe=Flaky()).dictionary_representation()
        assert "bl" not in rep
        assert "tds" not in rep and "fds" not in rep
        assert rep["amu"] == 52_428_800

    def test_out_of_range_metric_is_dropped(self, probe):
        class Overcharged(type(probe)):
            def battery_level(self):
                return 1.5

        snapshot = DeviceStateSnapshot(probe=Overcharged())
        assert snapshot.battery_level is None
        assert snapshot.application_memory == 52_428_800

    def test_explicit_values_are_validated(self):
        with pytest.raises(ValidationError):
            DeviceStateSnapshot(battery_level=2.0)


class TestImmutability:
    def test_frozen(self, probe):
        snapshot = DeviceStateSnapshot(probe=probe)
        with pytest.raises(ValidationError):
            snapshot.battery_level = 0.1


class TestMergeState:
    def test_embeds_under_state_key(self, probe):
        info = {"name": "purchase"}
        merged = merge_state(info, DeviceStateSnapshot(probe=probe))
        assert merged["name"] == "purchase"
        assert merged[keys.STATE_INFORMATION_KEY]["dct"] == "wifi"
        assert keys.STATE_INFORMATION_KEY not in info

    def test_empty_snapshot_adds_nothing(self):
        merged = merge_state({"name": "purchase"}, DeviceStateSnapshot(probe=DeviceProbe()))
        assert merged == {"name": "purchase"}


@pytest.fixture
def fake_host(tmp_path):
    proc = tmp_path / "proc"
    sys_root = tmp_path / "sys"
    (proc / "self").mkdir(parents=True)
    (proc / "self" / "statm").write_text("5000 250 100 10 0 300 0\n")
    (proc / "meminfo").write_text(
        "MemTotal:        8000000 kB\n"
        "MemFree:          100000 kB\n"
        "MemAvailable:     500000 kB\n"
    )
    stat_fields = ["S"] + ["0"] * 18 + ["500"] + ["0"] * 10
    (proc / "self" / "stat").write_text("1234 (my proc) " + " ".join(stat_fields) + "\n")
    (proc / "uptime").write_text("100.00 50.00\n")

    battery = sys_root / "class" / "power_supply" / "BAT0"
    battery.mkdir(parents=True)
    (battery / "capacity").write_text("42\n")

    net = sys_root / "class" / "net"
    for name, state in (("lo", "unknown"), ("eth0", "down"), ("wlan0", "up")):
        (net / name).mkdir(parents=True)
        (net / name / "operstate").write_text(state + "\n")
    (net / "wlan0" / "wireless").mkdir()

    return HostProbe(proc_root=proc, sys_root=sys_root, disk_path=tmp_path)


class TestHostProbe:
    def test_reads_linux_sources(self, fake_host):
        assert fake_host.application_memory() == 250 * os.sysconf("SC_PAGE_SIZE")
        assert fake_host.battery_level() == 0.42
        assert fake_host.data_connection_status() == "wifi"
        assert fake_host.system_memory_info() == {
            keys.SYSTEM_MEMORY_TOTAL: 8000000 * 1024,
            keys.SYSTEM_MEMORY_AVAILABLE: 500000 * 1024,
            keys.SYSTEM_MEMORY_LOW: True,
        }
        expected = 100.0 - 500 / os.sysconf("SC_CLK_TCK")
        assert fake_host.time_since_start() == pytest.approx(expected)

    def test_disk_and_cpu(self, fake_host):
        disk = fake_host.disk_space_info()
        assert disk[keys.DISK_TOTAL] >= disk[keys.DISK_FREE] > 0
        cpu = fake_host.cpu_usage_info()
        assert cpu[keys.CPU_USER] >= 0.0

    def test_host_has_no_orientation_or_gps(self, fake_host):
        rep = DeviceStateSnapshot(probe=fake_host).dictionary_representation()
        for key in ("dor", "sbo", "gps"):
            assert key not in rep
        assert rep["bl"] == 0.42
        assert rep["dct"] == "wifi"

    def test_no_interfaces_up(self, tmp_path):
        net = tmp_path / "class" / "net" / "eth0"
        net.mkdir(parents=True)
        (net / "operstate").write_text("down\n")
        assert HostProbe(sys_root=tmp_path).data_connection_status() == "none"

    def test_missing_sources(self, tmp_path):
        probe = HostProbe(proc_root=tmp_path / "missing", sys_root=tmp_path / "missing")
        assert probe.battery_level() is None
        assert probe.data_connection_status() is None
        assert probe.system_memory_info() is None
        assert probe.time_since_start() >= 0.0

    def test_default_snapshot_never_fails(self):
        snapshot = DeviceStateSnapshot()
        assert isinstance(snapshot.dictionary_representation(), dict)
