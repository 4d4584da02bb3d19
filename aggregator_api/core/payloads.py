"""Serialización canónica de los payloads de salida.

El deduplicador compara bytes, así que el mismo contenido lógico debe
producir siempre los mismos bytes:
- majority: claves en orden fijo (state, counts, ts; conteos en STATE_ORDER)
- snapshot: claves ordenadas (OPT_SORT_KEYS)
"""

from __future__ import annotations

from typing import Mapping

import orjson

from .domain.device import STATE_ORDER, DeviceRecord, MajorityView


def majority_document(view: MajorityView, ts: int) -> dict:
    counts = {state.value: view.count_for(state) for state in STATE_ORDER}
    counts["online"] = view.online_total
    return {
        "state": view.winning_state.value,
        "counts": counts,
        "ts": ts,
    }


def build_majority_payload(view: MajorityView, ts: int) -> bytes:
    """``{"state", "counts": {blue, green, yellow, red, online}, "ts"}``"""
    return orjson.dumps(majority_document(view, ts))


def snapshot_document(records: Mapping[str, DeviceRecord]) -> dict:
    return {
        device_id: {
            "state": record.state.value,
            "ts": record.observed_at,
            "signalStrength": record.signal_strength,
        }
        for device_id, record in records.items()
    }


def build_snapshot_payload(records: Mapping[str, DeviceRecord]) -> bytes:
    """``{device_id: {"state", "ts", "signalStrength"}}`` con claves ordenadas."""
    return orjson.dumps(snapshot_document(records), option=orjson.OPT_SORT_KEYS)
