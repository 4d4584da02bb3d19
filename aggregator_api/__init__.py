"""Agregador de estado de dispositivos.

Recibe reportes por MQTT, mantiene un registro con TTL y republica la
mayoría (retenida) y el snapshot de dispositivos (transitorio).
"""
