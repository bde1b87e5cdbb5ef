from .models import Stats
from .repositories import AlertRepository, DeviceRepository, TelemetryRepository
from .store import KVStore

class StatsAggregator:
    """Fleet-wide counters, recomputed from the store on every call."""

    def __init__(self, store: KVStore) -> None:
        self.devices = DeviceRepository(store)
        self.alerts = AlertRepository(store)
        self.telemetry = TelemetryRepository(store)
        self.store = store

    def compute(self) -> Stats:
        total = self.store.set_cardinality(self.devices.all_key)

        online = sum(1 for _ in self.devices.iter_all(lambda d: d.status == "online"))

        active = critical = 0
        for a in self.alerts.iter_all(lambda a: not a.acknowledged):
            active += 1
            if a.severity == "critical":
                critical += 1

        cpu_sum, n = 0.0, 0
        for t in self.telemetry.iter_all():
            cpu_sum += t.cpu_usage
            n += 1
        avg_cpu = cpu_sum / n if n else 0.0

        return Stats(
            total_devices=total,
            online_devices=online,
            active_alerts=active,
            critical_alerts=critical,
            avg_cpu_usage=avg_cpu,
            uptime_percentage=round(online / total * 100) if total else 0,
        )
