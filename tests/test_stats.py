import pytest

from edgefleet.stats import StatsAggregator

from conftest import alert_input, device_input, reading_input


def test_empty_store(store):
    stats = StatsAggregator(store).compute()
    assert stats.total_devices == 0
    assert stats.online_devices == 0
    assert stats.active_alerts == 0
    assert stats.avg_cpu_usage == 0
    assert stats.uptime_percentage == 0


def test_counts_and_average(store, devices, telemetry, alerts):
    devices.create(device_input(status="online"))
    devices.create(device_input(status="online"))
    devices.create(device_input(status="offline"))
    devices.create(device_input(status="critical"))
    telemetry.create(reading_input(1, cpuUsage=20))
    telemetry.create(reading_input(2, cpuUsage=40))
    telemetry.create(reading_input(2, cpuUsage=90))
    a = alerts.create(alert_input(1, severity="critical"))
    alerts.create(alert_input(2, severity="critical"))
    alerts.create(alert_input(3, severity="info"))
    alerts.acknowledge(a.id)

    stats = StatsAggregator(store).compute()
    assert stats.total_devices == 4
    assert stats.online_devices == 2
    assert stats.active_alerts == 2
    assert stats.critical_alerts == 1
    assert stats.avg_cpu_usage == pytest.approx(50.0)
    assert stats.uptime_percentage == 50


def test_skips_undecodable_records(store, devices, telemetry):
    devices.create(device_input(status="online"))
    store.set("devices:9", "data", "oops")
    store.add_to_set("devices:all", 9)
    telemetry.create(reading_input(1, cpuUsage=60))
    store.set("telemetry:5", "data", '{"id": 5}')
    store.add_to_set("telemetry:all", 5)

    stats = StatsAggregator(store).compute()
    assert stats.total_devices == 2
    assert stats.online_devices == 1
    assert stats.online_devices <= stats.total_devices
    assert stats.avg_cpu_usage == pytest.approx(60.0)


def test_serialized_field_names(store):
    body = StatsAggregator(store).compute().model_dump(by_alias=True)
    assert {"totalDevices", "onlineDevices", "activeAlerts", "avgCpuUsage"} <= set(body)
