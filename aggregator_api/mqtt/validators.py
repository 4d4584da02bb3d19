"""Validadores de payloads MQTT de estado de dispositivo.

Esquema cerrado en la frontera de ingesta: todo lo que no cumple se
descarta como entrada malformada antes de tocar el registro.

Formato esperado (topic ``mugs/<device_id>/state``):
{
    "device_id": "mug-001",     # informativo, nunca se usa como identidad
    "state": "green",           # blue | green | yellow | red | offline
    "ts": 1760000000,           # opcional, epoch seconds
    "rssi": -61                 # opcional (alias: signalStrength)
}
o bien el marcador offline: {"status": "offline"}
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.domain.device import OFFLINE_MARKER, DeviceState

logger = logging.getLogger(__name__)


class DeviceReportPayload(BaseModel):
    """Schema de validación para reportes de estado."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    state: Optional[str] = None
    status: Optional[str] = None
    ts: Optional[float] = None
    signal_strength: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("signalStrength", "rssi", "signal_strength"),
    )
    device_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("device_id", "deviceId"),
    )

    @field_validator("ts", mode="before")
    @classmethod
    def validate_ts(cls, v):
        if v is None:
            return None
        # bool y strings no son timestamps numéricos
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"ts must be numeric, got {type(v).__name__}")
        return v

    @field_validator("signal_strength", mode="before")
    @classmethod
    def coerce_signal_strength(cls, v):
        # RSSI inválido no invalida el reporte: se descarta solo el campo
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, float) and math.isfinite(v):
            return int(v)
        return None

    @field_validator("state", "status", mode="before")
    @classmethod
    def normalize_text(cls, v):
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError(f"expected string, got {type(v).__name__}")
        return v.strip().lower()

    @field_validator("device_id", mode="before")
    @classmethod
    def stringify_device_id(cls, v):
        if v is None:
            return None
        return str(v)

    @property
    def is_offline(self) -> bool:
        return self.status == OFFLINE_MARKER or self.state == OFFLINE_MARKER

    @property
    def device_state(self) -> Optional[DeviceState]:
        return DeviceState.parse(self.state)

    @property
    def ts_value(self) -> Any:
        """ts tal como llegó (int si es entero), listo para el sanitizador."""
        if self.ts is not None and float(self.ts).is_integer():
            return int(self.ts)
        return self.ts


class RejectReason(str, Enum):
    MALFORMED = "malformed"
    UNKNOWN_STATE = "unknown_state"


@dataclass
class ValidationResult:
    """Resultado de validación."""

    valid: bool
    payload: Optional[DeviceReportPayload] = None
    error: Optional[str] = None
    reason: Optional[RejectReason] = None
    warnings: list[str] = field(default_factory=list)


def validate_device_report(data: Any) -> ValidationResult:
    """Valida un reporte ya decodificado de JSON.

    Args:
        data: Objeto JSON decodificado (se exige un dict)

    Returns:
        ValidationResult con payload validado o motivo de rechazo
    """
    if not isinstance(data, dict):
        return ValidationResult(
            valid=False,
            error=f"payload must be a JSON object, got {type(data).__name__}",
            reason=RejectReason.MALFORMED,
        )

    warnings = []
    if "rssi" in data and "signalStrength" in data:
        warnings.append("Both rssi and signalStrength present; using signalStrength")

    try:
        payload = DeviceReportPayload.model_validate(data)
    except ValidationError as e:
        return ValidationResult(
            valid=False,
            error=_summarize(e),
            reason=RejectReason.MALFORMED,
        )

    if payload.is_offline:
        return ValidationResult(valid=True, payload=payload, warnings=warnings)

    if payload.state is None:
        return ValidationResult(
            valid=False,
            error="state is required",
            reason=RejectReason.MALFORMED,
        )

    if payload.device_state is None:
        valid_states = ",".join(s.value for s in DeviceState)
        return ValidationResult(
            valid=False,
            error=f"unknown state {payload.state!r} (valid: {valid_states})",
            reason=RejectReason.UNKNOWN_STATE,
        )

    return ValidationResult(valid=True, payload=payload, warnings=warnings)


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{loc}: {item.get('msg')}")
    return "; ".join(parts) or str(error)
