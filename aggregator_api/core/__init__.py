"""Core module - Motor de agregación.

Estructura:
- domain/      → DeviceState, DeviceRecord, MajorityView
- timestamps   → Saneamiento de timestamps
- registry     → Registro con TTL
- majority     → Cálculo de mayoría
- payloads     → Serialización canónica
- publishing   → Publicación deduplicada
- scheduler    → Ciclo por ticks
- executor     → Único escritor del registro
- monitoring/  → Stats
"""
