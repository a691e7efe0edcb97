"""Rendu texte (markdown) d'un ParseResult pour le service de resume IA.

Le moteur n'appelle aucun service IA : ce module produit seulement le texte
que l'appelant transmettra.
"""

from __future__ import annotations

from core.constants import HR_ZONE_BOUNDARIES, POWER_PROFILE_DURATIONS_S, POWER_ZONE_BOUNDARIES
from core.models import ParseResult
from core.zones import zone_table


REPORT_CONTEXT = """\
=== CONTEXT FOR AI COACHING ===

I'm sharing a cycling session recorded by my bike computer. Please help me understand:
1. How hard the session was and where the effort went
2. Signs of fatigue or cardiovascular drift
3. Recommendations for the next sessions

KEY METRICS EXPLAINED:
- Normalized Power (NP): physiological cost of a variable effort (30 s rolling window)
- Intensity Factor (IF): NP / FTP
- TSS: session load from duration and IF
- Efficiency Factor (EF): NP / average heart rate
- Variability Index (VI): NP / average power, 1.00 = perfectly steady
- HR drift: second-half vs first-half average heart rate
"""


def _fmt(value, unit: str = "", decimals: int = 0) -> str:
    if value is None:
        return "--"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "--"
    if number != number:
        return "--"
    return f"{number:.{decimals}f}{unit}"


def _fmt_duration(seconds) -> str:
    if seconds is None:
        return "--"
    total = int(round(float(seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}" if hours else f"{minutes}:{secs:02d}"


def _drift_label(drift_pct: float) -> str:
    if drift_pct < 5:
        return "Excellent"
    if drift_pct < 10:
        return "Moderate"
    return "High Fatigue"


def _zone_lines(seconds: list[float], boundaries, prefix: str) -> list[str]:
    table = zone_table(seconds, boundaries, prefix=prefix)
    return [
        f"| {row.zone} | {row.range} | {row.time_s / 60.0:.1f} min | {row.time_pct:.1f}% |"
        for row in table.itertuples(index=False)
    ]


def render_session_report(result: ParseResult, *, include_context: bool = True) -> str:
    session = result.session
    device = result.device
    lines: list[str] = []

    if include_context:
        lines.append(REPORT_CONTEXT)

    title = " ".join(p for p in (session.date, session.start_time) if p) or "undated"
    lines.append(f"## Session {title}")
    if device.manufacturer or device.model:
        lines.append(f"Device: {device.manufacturer or '--'} {device.model or ''}".rstrip())
    lines.append("")

    lines.append("### Summary")
    lines.append(f"- Duration: {_fmt_duration(session.duration_s or session.total_elapsed_time)}")
    lines.append(f"- Distance: {_fmt(session.distance_m / 1000.0 if session.distance_m else None, ' km', 2)}")
    lines.append(f"- Elevation: +{_fmt(session.elevation_gain, ' m')} / -{_fmt(session.elevation_loss, ' m')}")
    lines.append(f"- Avg / max power: {_fmt(session.avg_power, ' W')} / {_fmt(session.max_power, ' W')}")
    lines.append(f"- Normalized power: {_fmt(session.normalized_power, ' W')}")
    lines.append(f"- IF: {_fmt(session.intensity_factor, '', 2)} | TSS: {_fmt(session.training_stress_score, '', 1)}")
    lines.append(f"- Avg / max HR: {_fmt(session.avg_heart_rate, ' bpm')} / {_fmt(session.max_heart_rate, ' bpm')}")
    lines.append(f"- Avg cadence: {_fmt(session.avg_cadence, ' rpm')}")
    if result.env.temperature_avg is not None:
        lines.append(f"- Temperature: {_fmt(result.env.temperature_avg, ' C', 1)}")
    lines.append("")

    lines.append("### Power profile")
    profile = result.power_profile
    for name, duration_s in POWER_PROFILE_DURATIONS_S:
        label = f"{duration_s}s" if duration_s < 60 else f"{duration_s // 60}min"
        lines.append(f"- {label}: {_fmt(getattr(profile, name), ' W')}")
    if profile.watts_per_kg_best_20min is not None:
        lines.append(f"- 20min W/kg: {_fmt(profile.watts_per_kg_best_20min, '', 2)}")
    lines.append("")

    if any(result.power_zones.as_list()):
        lines.append("### Time in power zones")
        lines.append("| Zone | Range (FTP) | Time | Share |")
        lines.append("|---|---|---|---|")
        lines.extend(_zone_lines(result.power_zones.as_list(), POWER_ZONE_BOUNDARIES, "Z"))
        lines.append("")

    if any(result.hr_zones.as_list()):
        lines.append("### Time in heart rate zones")
        lines.append("| Zone | Range (HR max) | Time | Share |")
        lines.append("|---|---|---|---|")
        lines.extend(_zone_lines(result.hr_zones.as_list(), HR_ZONE_BOUNDARIES, "HR Z"))
        lines.append("")

    dec = result.decoupling
    eff = result.efficiency
    lines.append("### Drift & efficiency")
    lines.append(
        f"- HR drift: {dec.hr_power_drift_percentage:.2f}% ({_drift_label(dec.hr_power_drift_percentage)})"
        f" | HR {dec.first_half_avg_hr:.0f} -> {dec.second_half_avg_hr:.0f} bpm"
        f" | power {dec.first_half_avg_power:.0f} -> {dec.second_half_avg_power:.0f} W"
    )
    lines.append(f"- EF: {eff.efficiency_factor:.2f} | VI: {eff.variability_index:.2f} | W/bpm: {eff.power_hr_ratio:.2f}")
    lines.append(f"- Cadence/power correlation: {eff.cadence_power_correlation:.2f}")
    if eff.left_right_balance is not None:
        lines.append(f"- L/R balance: {eff.left_right_balance:.1f} / {100.0 - eff.left_right_balance:.1f}")

    return "\n".join(lines).strip() + "\n"
