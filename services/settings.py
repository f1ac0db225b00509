from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    """Tunables read from ``app.config`` by the services."""

    local_utc_offset_hours: int = 8
    billing_grace_minutes: int = 5
    overtime_surcharge_per_half_hour: float = 0.0
    overtime_surcharge_before_cap: bool = True
    settle_backdate_tolerance_minutes: int = 10
    reservation_hold_minutes: int = 30
    default_price_per_half_hour: float = 20.0
    default_daily_max_price: float = 300.0

    @classmethod
    def from_config(cls, config):
        return cls(
            local_utc_offset_hours=int(config.get('LOCAL_UTC_OFFSET_HOURS', 8)),
            billing_grace_minutes=int(config.get('BILLING_GRACE_MINUTES', 5)),
            overtime_surcharge_per_half_hour=float(config.get('OVERTIME_SURCHARGE_PER_HALF_HOUR', 0)),
            overtime_surcharge_before_cap=bool(config.get('OVERTIME_SURCHARGE_BEFORE_CAP', True)),
            settle_backdate_tolerance_minutes=int(config.get('SETTLE_BACKDATE_TOLERANCE_MINUTES', 10)),
            reservation_hold_minutes=int(config.get('RESERVATION_HOLD_MINUTES', 30)),
            default_price_per_half_hour=float(config.get('DEFAULT_PRICE_PER_HALF_HOUR', 20)),
            default_daily_max_price=float(config.get('DEFAULT_DAILY_MAX_PRICE', 300)),
        )
