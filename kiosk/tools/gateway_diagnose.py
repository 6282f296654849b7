from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from typing import Any

import httpx

SAMPLE_PHRASES = ("Hello", "Where is the gate?", "Thank you")


def emit(message: str = "") -> None:
    print(message, flush=True)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Poll the kiosk gateway and send sample round-trip translations to see "
            "whether the provider is reachable, retrying, or serving offline echoes."
        )
    )
    parser.add_argument(
        "--base-url",
        default="http://127.0.0.1:7001",
        help="Gateway base URL (default: http://127.0.0.1:7001)",
    )
    parser.add_argument(
        "--target",
        default="ja",
        help="Target language for the round trip (default: ja)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="How long to sample in seconds (default: 10)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Polling interval in seconds (default: 1.0)",
    )
    return parser.parse_args()


@dataclass
class Snapshot:
    online: bool = False
    requests_total: int = 0
    requests_succeeded: int = 0
    requests_failed: int = 0
    offline_echoes: int = 0
    retry_events: int = 0
    status_changes: int = 0
    average_processing_ms: float = 0.0
    last_error: str | None = None


def _to_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key, 0)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _to_float(payload: dict[str, Any], key: str) -> float:
    value = payload.get(key, 0.0)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def fetch_snapshot(client: httpx.Client, base_url: str) -> Snapshot:
    status = client.get(f"{base_url}/api/translation/status").json()
    last_error = status.get("last_error")
    return Snapshot(
        online=bool(status.get("is_online")),
        requests_total=_to_int(status, "requests_total"),
        requests_succeeded=_to_int(status, "requests_succeeded"),
        requests_failed=_to_int(status, "requests_failed"),
        offline_echoes=_to_int(status, "offline_echoes"),
        retry_events=_to_int(status, "retry_events"),
        status_changes=_to_int(status, "status_changes"),
        average_processing_ms=_to_float(status, "average_processing_ms"),
        last_error=last_error if isinstance(last_error, str) else None,
    )


def translate(
    client: httpx.Client,
    base_url: str,
    text: str,
    source: str,
    target: str,
) -> dict[str, Any]:
    response = client.post(
        f"{base_url}/api/translation/translate",
        json={"text": text, "source_language": source, "target_language": target},
    )
    response.raise_for_status()
    return response.json()


def round_trip(client: httpx.Client, base_url: str, text: str, target: str) -> str:
    outbound = translate(client, base_url, text, "en", target)
    if not outbound.get("success"):
        return f"{text!r} -> FAILED ({outbound.get('error_kind')}: {outbound.get('error_message')})"

    inbound = translate(client, base_url, str(outbound["translated_text"]), target, "en")
    label = outbound.get("provider")
    if not inbound.get("success"):
        return (
            f"{text!r} -> {outbound['translated_text']!r} [{label}] -> FAILED "
            f"({inbound.get('error_kind')}: {inbound.get('error_message')})"
        )
    return (
        f"{text!r} -> {outbound['translated_text']!r} -> {inbound['translated_text']!r} "
        f"[{label}, confidence={outbound.get('confidence')}, attempts={outbound.get('attempts')}]"
    )


def diagnose(start: Snapshot, end: Snapshot) -> str:
    d_total = end.requests_total - start.requests_total
    d_ok = end.requests_succeeded - start.requests_succeeded
    d_echo = end.offline_echoes - start.offline_echoes
    d_retry = end.retry_events - start.retry_events

    if d_total <= 0:
        return "NO TRAFFIC: the gateway did not record the sample translations."
    if not end.online and d_echo > 0:
        return (
            "OFFLINE: provider unreachable; kiosk is serving offline echoes until the "
            f"next recheck. last_error={end.last_error!r}"
        )
    if d_ok <= 0:
        return f"PROVIDER FAILING: no sample succeeded. last_error={end.last_error!r}"
    if d_retry > 0:
        return "DEGRADED: translations succeed but needed retries; provider is flaky."
    return "HEALTHY: translations succeed on the first attempt."


def main() -> int:
    args = parse_args()
    base_url = args.base_url.rstrip("/")
    interval = max(0.2, args.interval)
    rounds = max(1, int(max(1.0, args.duration) / interval))

    emit(
        f"gateway diagnose started (base_url={base_url}, target={args.target}, "
        f"duration={args.duration}s, interval={interval}s)"
    )

    with httpx.Client(timeout=30.0) as client:
        try:
            health = client.get(f"{base_url}/health")
            health.raise_for_status()
        except httpx.HTTPError as exc:
            emit(f"failed to reach gateway health endpoint: {exc}")
            return 2

        first = fetch_snapshot(client, base_url)
        emit(f"provider online={first.online} mode={health.json().get('checks', {}).get('translation_mode')}")

        for phrase in SAMPLE_PHRASES:
            emit(round_trip(client, base_url, phrase, args.target))

        prev = first
        for idx in range(rounds):
            time.sleep(interval)
            snap = fetch_snapshot(client, base_url)
            emit(
                f"[{idx+1:02d}] "
                f"online={snap.online} "
                f"total={snap.requests_total} (+{snap.requests_total - prev.requests_total}) "
                f"ok={snap.requests_succeeded} "
                f"failed={snap.requests_failed} "
                f"echo={snap.offline_echoes} "
                f"retry={snap.retry_events} "
                f"flips={snap.status_changes} "
                f"avg_ms={snap.average_processing_ms:.1f}"
            )
            prev = snap

        emit("")
        emit(f"VERDICT: {diagnose(first, prev)}")
        if prev.last_error:
            emit(f"last_translation_error: {prev.last_error}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
