"""Decision engine mapping telemetry and hysteresis state to power targets.

The engine is a pure function: it performs no I/O, and the same inputs
always produce the same decision. Applying and advisory loops call
:func:`evaluate` identically, so suggestions match what the daemon would do
given the same history.
"""

from __future__ import annotations

from yablo.config_loader.models import AcProfile, BatteryProfile, YabloConfig
from yablo.engine.hysteresis import HysteresisCounter
from yablo.engine.models import Decision, LoadState, Snapshot


def classify_load(profile: AcProfile, snapshot: Snapshot) -> LoadState:
    """Classify the load of ``snapshot`` against ``profile`` thresholds.

    The load-average comparison is strict while the CPU percentage
    comparison is inclusive.
    """

    if snapshot.load_average > profile.loadavg_threshold:
        return LoadState.HIGH_SYSTEM_LOAD
    if snapshot.cpu_user_percent >= profile.loadperc_threshold:
        return LoadState.HIGH_CPU_USAGE
    return LoadState.OPTIMAL


def is_low_battery(profile: BatteryProfile, snapshot: Snapshot) -> bool:
    """Return whether the low-battery override applies to ``snapshot``.

    An absent battery is never considered low.
    """

    if snapshot.ac_power:
        return False
    if snapshot.battery_capacity is None:
        return False
    return snapshot.battery_capacity <= profile.battery_threshold


def evaluate(
    config: YabloConfig, snapshot: Snapshot, counter: HysteresisCounter
) -> tuple[Decision, HysteresisCounter]:
    """Decide the governor and turbo targets for one cycle.

    Args:
        config: Session profiles for AC and battery power.
        snapshot: Telemetry captured for this cycle.
        counter: Hysteresis counter carried over from the previous cycle.

    Returns:
        The decision for this cycle and the counter to carry into the next.
        Optimal load resets the counter, high load with turbo enabled
        advances it, and every other branch (including the low-battery
        override) leaves it unchanged.
    """

    source = snapshot.power_source
    profile = config.profile_for(source)
    load_state = classify_load(profile, snapshot)

    if not load_state.is_high:
        next_counter = counter.reset()
        decision = Decision(
            power_source=source,
            load_state=load_state,
            governor=profile.governor,
            turbo=False,
            counter_ticks=next_counter.ticks,
        )
        return decision, next_counter

    if isinstance(profile, BatteryProfile) and is_low_battery(profile, snapshot):
        decision = Decision(
            power_source=source,
            load_state=load_state,
            governor=profile.low_battery_governor,
            turbo=False,
            low_battery=True,
            counter_ticks=counter.ticks,
        )
        return decision, counter

    if not profile.turbo:
        decision = Decision(
            power_source=source,
            load_state=load_state,
            governor=profile.second_stage_governor,
            turbo=False,
            counter_ticks=counter.ticks,
        )
        return decision, counter

    next_counter = counter.advance()
    turbo = next_counter.reached(profile.turbo_delay)
    decision = Decision(
        power_source=source,
        load_state=load_state,
        governor=profile.second_stage_governor,
        turbo=turbo,
        turbo_delayed=not turbo,
        counter_ticks=next_counter.ticks,
    )
    return decision, next_counter
