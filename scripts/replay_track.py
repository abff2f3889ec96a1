#!/usr/bin/env python3
"""Replay a recorded location track through the verification engine.

Reads a JSON file of device fixes, feeds them to a
:class:`~pygeoverify.SessionTracker` one at a time on a clock that follows
the fixes' own timestamps, and prints the anomalies each fix raised plus
the final verdict.

Usage
-----
::

    python scripts/replay_track.py track.json
    python scripts/replay_track.py fixes.json --lat 41.311081 --lng 69.240562 --radius 200
    python scripts/replay_track.py track.json --json

Input format::

    {
      "anchor": {"lat": 41.311081, "lng": 69.240562, "radius": 200},
      "fixes": [
        {"lat": 41.311081, "lng": 69.240562, "accuracy": 20, "timestamp": 1760000000},
        ...
      ]
    }

A bare list of fixes is accepted too, with the anchor given on the
command line (or through ``GEOVERIFY_*`` environment variables).

Options::

    --subject ID        Subject id used for the session (default: replay)
    --lat/--lng         Site coordinates (override the file and environment)
    --radius METERS     Geofence radius
    --reason REASON     Stop reason recorded in the verdict (default: COMPLETED)
    --json              Output as machine-readable JSON
    -v, --verbose       Enable debug logging
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pygeoverify import (  # noqa: E402
    GeoSample,
    GeoVerifyConfigError,
    SessionTracker,
    StopReason,
    VerificationConfig,
    format_anomaly_message,
)

# ── helpers ──────────────────────────────────────────────────


class _ReplayClock:
    """Clock that jumps to each fix's capture time as it is replayed."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance_to(self, moment: datetime | None) -> None:
        if moment is not None and moment > self.now:
            self.now = moment


def _load(path: Path) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return {}, data
    if isinstance(data, dict):
        return dict(data.get("anchor") or {}), list(data.get("fixes") or [])
    raise ValueError("expected a JSON object or list")


def _build_config(args: argparse.Namespace, anchor: dict[str, Any]) -> VerificationConfig:
    overrides: dict[str, Any] = {}
    lat = args.lat if args.lat is not None else anchor.get("lat", anchor.get("latitude"))
    lng = args.lng if args.lng is not None else anchor.get("lng", anchor.get("longitude"))
    radius = args.radius if args.radius is not None else anchor.get("radius")
    if lat is not None:
        overrides["office_latitude"] = float(lat)
    if lng is not None:
        overrides["office_longitude"] = float(lng)
    if radius is not None:
        overrides["geofence_radius_meters"] = float(radius)
    return VerificationConfig.from_env(**overrides)


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json") if model is not None else None


# ── main ─────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Replay a location track through pygeoverify")
    parser.add_argument("path", type=Path, help="JSON file with fixes")
    parser.add_argument("--subject", default="replay", help="Subject id for the session")
    parser.add_argument("--lat", type=float, default=None, help="Site latitude")
    parser.add_argument("--lng", type=float, default=None, help="Site longitude")
    parser.add_argument("--radius", type=float, default=None, help="Geofence radius in meters")
    parser.add_argument(
        "--reason",
        choices=[reason.value for reason in StopReason],
        default=StopReason.COMPLETED.value,
        help="Stop reason recorded in the verdict",
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        anchor, fixes = _load(args.path)
        config = _build_config(args, anchor)
    except (OSError, ValueError, GeoVerifyConfigError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if not fixes:
        print("error: no fixes to replay", file=sys.stderr)
        return 2

    first = GeoSample.model_validate(fixes[0])
    clock = _ReplayClock(first.captured_at or datetime.now(UTC))
    tracker = SessionTracker(config, clock=clock)

    steps: list[dict[str, Any]] = []
    started = tracker.start_tracking(args.subject, fixes[0])
    steps.append(
        {
            "index": 0,
            "success": started.success,
            "error": started.error,
            "anomalies": [_dump(started.initial_anomaly)] if started.initial_anomaly else [],
        }
    )
    if not started.success:
        print(f"error: could not start session: {started.error} {started.message}", file=sys.stderr)
        return 1

    for index, fix in enumerate(fixes[1:], start=1):
        parsed = GeoSample.model_validate(fix)
        # Unstamped fixes are assumed to arrive one second apart.
        clock.advance_to(parsed.captured_at or clock.now + timedelta(seconds=1))
        result = tracker.add_sample(args.subject, fix)
        steps.append(
            {
                "index": index,
                "success": result.success,
                "error": result.error,
                "anomalies": [_dump(anomaly) for anomaly in result.new_anomalies],
                "progress": round(result.tracking_progress, 1),
            }
        )

    stopped = tracker.stop_tracking(args.subject, StopReason(args.reason))
    verdict = stopped.verdict

    if args.json:
        json.dump({"steps": steps, "verdict": _dump(verdict)}, sys.stdout, indent=2, default=str)
        print()
        return 0 if stopped.success else 1

    for step in steps:
        status = "ok" if step["success"] else f"error={step['error']}"
        kinds = ", ".join(a["kind"] for a in step["anomalies"]) or "-"
        print(f"#{step['index']:>3}  {status:<24} {kinds}")

    if verdict is None:
        print(f"error: {stopped.error} {stopped.message}", file=sys.stderr)
        return 1

    print()
    print(f"Status:    {verdict.status}")
    print(f"Reason:    {verdict.reason}")
    print(f"Duration:  {verdict.duration_seconds:.0f}s")
    print(f"Updates:   {verdict.sample_count}")
    print(f"Severity:  {verdict.analysis.severity.name}")
    print(f"Summary:   {verdict.anomaly_summary}")
    message = format_anomaly_message(verdict.analysis)
    if message:
        print()
        print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
